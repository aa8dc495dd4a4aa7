"""Build-root staging and spec file generation for RPM packages."""

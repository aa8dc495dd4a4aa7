"""
Custom exceptions for RPM staging and packaging.
"""


class EasyRpmError(Exception):
    """Base exception for all packaging run failures."""

    pass


class ConfigurationError(EasyRpmError):
    """Invalid configuration (file mapping without src/dest, unknown option, bad config file)."""

    pass


class FilesystemError(EasyRpmError):
    """Directory creation, deletion or file copy failure while staging."""

    pass


class PackagingToolError(EasyRpmError):
    """The packaging tool could not be spawned or exited non-zero.

    The tool's own output is kept verbatim in `output`.
    """

    def __init__(self, message: str, returncode: int | None = None, output: str = ""):
        super().__init__(message)
        self.returncode = returncode
        self.output = output

    def __str__(self):
        message = super().__str__()
        if self.output:
            return f"{message}\n{self.output}"
        return message


class ArtifactRelocationError(EasyRpmError):
    """The built package is missing or could not be copied to the output directory."""

    pass

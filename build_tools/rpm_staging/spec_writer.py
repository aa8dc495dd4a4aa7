# Copyright Advanced Micro Devices, Inc.
# SPDX-License-Identifier: MIT


from pathlib import Path

from jinja2 import Environment, FileSystemLoader

from .exceptions import FilesystemError
from .logger import log


SCRIPT_DIR = Path(__file__).resolve().parent


def render_spec(metadata, installed_paths, topdir) -> str:
    """Render the RPM spec file text.

    Sections come in a fixed order: macros, header, %description, %files,
    %pre, %post, %preun, %postun. Script sections are emitted even when
    empty. No validation is done on the metadata.

    Parameters:
    metadata: PackageMetadata, with attribute-derived lines already merged
    installed_paths: installed paths in manifest order
    topdir: rpmbuild topdir, written as an absolute path

    Returns: Spec file content
    """
    env = Environment(loader=FileSystemLoader(str(SCRIPT_DIR)))
    template = env.get_template("template/rpm_specfile.j2")

    context = {
        "topdir": Path(topdir).resolve(),
        "name": metadata.name,
        "version": metadata.version,
        "release": metadata.release,
        "summary": metadata.summary,
        "pkg_license": metadata.license,
        "build_arch": metadata.build_arch,
        "group": metadata.group,
        "requires": metadata.requires,
        "description": metadata.description,
        "files": list(installed_paths),
        "pre_install": metadata.pre_install,
        "post_install": metadata.post_install,
        "pre_uninstall": metadata.pre_uninstall,
        "post_uninstall": metadata.post_uninstall,
    }
    return template.render(context)


def write_spec_file(metadata, installed_paths, temp_root) -> Path:
    """Generate the spec file under <temp_root>/SPECS.

    Parameters:
    metadata: PackageMetadata to render
    installed_paths: installed paths in manifest order
    temp_root: rpmbuild topdir

    Returns: Path of the written spec file
    """
    log.info("Generating RPM spec file")
    specfile = Path(temp_root).resolve() / "SPECS" / metadata.spec_file_name
    content = render_spec(metadata, installed_paths, temp_root)

    try:
        specfile.parent.mkdir(parents=True, exist_ok=True)
        with specfile.open("w", encoding="utf-8") as f:
            f.write(content)
    except OSError as e:
        raise FilesystemError(f"Failed to write spec file {specfile}: {e}") from e

    log.debug(f"Spec file written to {specfile}")
    return specfile

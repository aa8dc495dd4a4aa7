# Copyright Advanced Micro Devices, Inc.
# SPDX-License-Identifier: MIT


import shlex
import shutil
import subprocess

from pathlib import Path

from .exceptions import ArtifactRelocationError, PackagingToolError
from .logger import log


def rpmbuild_command(spec_file, build_root, rpmbuild="rpmbuild") -> list[str]:
    """Binary-only rpmbuild invocation with the build root overridden."""
    return [str(rpmbuild), "-bb", "--buildroot", str(build_root), str(spec_file)]


def package_with_rpmbuild(spec_file, build_root, rpmbuild="rpmbuild"):
    """Generate a RPM package using `rpmbuild`

    Parameters:
    spec_file: Specfile for RPM package
    build_root: Populated BUILDROOT directory
    rpmbuild: rpmbuild executable

    Returns: Output of the tool
    """
    cmd = rpmbuild_command(spec_file, build_root, rpmbuild)
    log.info(f"Execute: {shlex.join(cmd)}")

    try:
        result = subprocess.run(
            cmd,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            stdin=subprocess.DEVNULL,
            text=True,
            check=True,
        )
    except OSError as e:
        # Missing, not executable or otherwise unspawnable tool
        raise PackagingToolError(f"Cannot run {cmd[0]}: {e}") from e
    except subprocess.CalledProcessError as e:
        raise PackagingToolError(
            f"{cmd[0]} failed with exit code {e.returncode}",
            returncode=e.returncode,
            output=e.output or "",
        ) from e

    for line in (result.stdout or "").splitlines():
        log.debug(line)
    log.info(f"RPM build completed successfully: {Path(spec_file).name}")
    return result.stdout


def relocate_artifact(temp_root, metadata, output_dir) -> Path:
    """Copy the built package from RPMS/<arch> to the output directory.

    Parameters:
    temp_root: rpmbuild topdir
    metadata: PackageMetadata of the built package
    output_dir: Destination directory

    Returns: Path of the copied package
    """
    artifact = Path(temp_root) / "RPMS" / metadata.build_arch / metadata.rpm_file_name
    destination = Path(output_dir) / metadata.rpm_file_name
    log.info(f"Copy output RPM package {artifact} to {destination}")

    if not artifact.is_file():
        raise ArtifactRelocationError(f"Expected package not found: {artifact}")
    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(artifact, destination)
    except OSError as e:
        raise ArtifactRelocationError(
            f"Failed to copy {artifact} to {destination}: {e}"
        ) from e

    return destination

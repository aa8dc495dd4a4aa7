# Copyright Advanced Micro Devices, Inc.
# SPDX-License-Identifier: MIT


import shutil

from pathlib import Path

from .exceptions import FilesystemError
from .logger import log
from .packaging_utils import RPM_STRUCTURE, remove_dir
from .path_policy import build_root_path


def create_build_layout(temp_root) -> Path:
    """Create the rpmbuild directory structure from scratch.

    An existing temp root (probably from a previous build) is deleted
    first, nothing from an earlier run survives.

    Parameters:
    temp_root: rpmbuild topdir

    Returns: Path of the BUILDROOT directory
    """
    temp_root = Path(temp_root).resolve()

    if temp_root.exists():
        log.info(f"Deleting old temp dir {temp_root}")
        remove_dir(temp_root)

    log.info(f"Creating RPM folder structure at {temp_root}")
    try:
        for subdir in RPM_STRUCTURE:
            (temp_root / subdir).mkdir(parents=True)
    except OSError as e:
        raise FilesystemError(f"Failed to create {temp_root / subdir}: {e}") from e

    return temp_root / "BUILDROOT"


def copy_to_build_root(source_path, destination: Path):
    """Copy a single file into the build root, creating parent directories."""
    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(source_path, destination)
        shutil.copymode(source_path, destination)
    except OSError as e:
        raise FilesystemError(
            f"Failed to copy {source_path} to {destination}: {e}"
        ) from e


def materialize(temp_root, manifest) -> Path:
    """Lay out the build root for a staging manifest.

    Parameters:
    temp_root: rpmbuild topdir, wiped and recreated
    manifest: StagingManifest to place under BUILDROOT

    Returns: Path of the BUILDROOT directory
    """
    build_root = create_build_layout(temp_root)

    log.info(f"Copying files to build root {build_root}")
    for placed in manifest.files:
        destination = build_root_path(build_root, placed.installed_path)
        log.info(f"Copying: {placed.source_path}")
        copy_to_build_root(placed.source_path, destination)

    return build_root

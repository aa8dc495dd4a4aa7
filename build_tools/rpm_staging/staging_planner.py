# Copyright Advanced Micro Devices, Inc.
# SPDX-License-Identifier: MIT


import os

from dataclasses import dataclass, field

from .exceptions import ConfigurationError
from .logger import log
from .packaging_utils import expand_sources
from .path_policy import installed_path, is_excluded, is_self_referential


SKIP_EXCLUDED = "excluded"
SKIP_DIRECTORY = "directory"
SKIP_SELF_REFERENTIAL = "self-referential"


@dataclass(frozen=True)
class PlacedFile:
    source_path: str
    installed_path: str
    mode: str | None = None
    owner: str | None = None
    group: str | None = None


@dataclass(frozen=True)
class SkippedSource:
    source_path: str
    reason: str


@dataclass(frozen=True)
class StagingManifest:
    files: tuple[PlacedFile, ...] = ()
    skipped: tuple[SkippedSource, ...] = field(default=())

    @property
    def installed_paths(self) -> list[str]:
        return [placed.installed_path for placed in self.files]

    def __len__(self):
        return len(self.files)


def validate_file_mappings(files):
    """Check that every file entry declares both sources and a destination.

    Must run before the build root is touched.

    Parameters:
    files: FileMapping entries

    Returns: None
    """
    for index, entry in enumerate(files):
        if not entry.sources or not entry.destination:
            raise ConfigurationError(
                f"All file entries must have both 'src' and 'dest' property "
                f"(entry #{index}: src={list(entry.sources)!r}, dest={entry.destination!r})"
            )


def attribute_script_lines(placed: PlacedFile) -> list[str]:
    """Post-install commands applying a file's mode, owner and group, in that order."""
    lines = []
    if placed.mode:
        lines.append(f"chmod {placed.mode} {placed.installed_path}")
    if placed.owner:
        lines.append(f"chown {placed.owner} {placed.installed_path}")
    if placed.group:
        lines.append(f"chgrp {placed.group} {placed.installed_path}")
    return lines


def plan(files, exclusion_set, temp_root=None):
    """Build the staging manifest from the declared file mappings.

    Sources are visited entry by entry, in expansion order. Excluded,
    directory and self-referential sources are skipped and recorded.
    The installed path joins the destination with the source as declared,
    so a working dir never leaks into the package layout.

    Parameters:
    files: FileMapping entries
    exclusion_set: normalized paths that are never staged
    temp_root: temp root of the current run, never staged from

    Returns:
    (StagingManifest, tuple of post-install lines derived from file attributes)
    """
    validate_file_mappings(files)

    placed_files = []
    skipped = []
    script_lines = []

    for entry in files:
        for declared_source in expand_sources(entry.sources, entry.working_dir):
            if is_excluded(declared_source, exclusion_set):
                log.info(f"Exclude: {os.path.normpath(declared_source)}")
                skipped.append(SkippedSource(declared_source, SKIP_EXCLUDED))
                continue

            source_path = os.path.normpath(declared_source)
            if entry.working_dir:
                source_path = os.path.join(entry.working_dir, declared_source)

            if not os.path.lexists(source_path):
                log.warning(f"Source does not exist, copying it will fail: {source_path}")

            if os.path.isdir(source_path):
                log.debug(f"Skipping directory: {source_path}")
                skipped.append(SkippedSource(source_path, SKIP_DIRECTORY))
                continue
            if is_self_referential(source_path, temp_root):
                log.info(f"Skipping temp directory content: {source_path}")
                skipped.append(SkippedSource(source_path, SKIP_SELF_REFERENTIAL))
                continue

            placed = PlacedFile(
                source_path=source_path,
                installed_path=installed_path(entry.destination, declared_source),
                mode=entry.mode,
                owner=entry.owner,
                group=entry.group,
            )
            placed_files.append(placed)
            script_lines.extend(attribute_script_lines(placed))

    log.info(f"Planned {len(placed_files)} files, skipped {len(skipped)} sources")
    return (
        StagingManifest(files=tuple(placed_files), skipped=tuple(skipped)),
        tuple(script_lines),
    )

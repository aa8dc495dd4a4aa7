# Copyright Advanced Micro Devices, Inc.
# SPDX-License-Identifier: MIT


import dataclasses
import glob
import json
import os
import shutil
import uuid

from dataclasses import dataclass, field
from pathlib import Path

import yaml

from .exceptions import ConfigurationError, FilesystemError
from .logger import log


# Prefix of every default temp root. Paths carrying it belong to a scratch
# directory of some run and are never staged.
TEMP_DIR_PREFIX = "easy-rpm-tmp-"

# Canonical rpmbuild topdir layout, recreated on every run
RPM_STRUCTURE = ("BUILD", "BUILDROOT", "RPMS", "SOURCES", "SPECS", "SRPMS")


# Package metadata rendered into the spec file
# vendor - accepted for compatibility, not written to the spec file
# requires - dependency string, "Requires:" is only emitted when non-empty
# pre_install, post_install, pre_uninstall, post_uninstall - script lines
@dataclass(frozen=True)
class PackageMetadata:
    name: str = "noname"
    summary: str = "No Summary"
    description: str = "No Description"
    version: str = "0.1.0"
    release: str = "1"
    license: str = "MIT"
    vendor: str = "Vendor"
    group: str = "Development/Tools"
    build_arch: str = "noarch"
    requires: str = ""
    pre_install: tuple[str, ...] = ()
    post_install: tuple[str, ...] = ()
    pre_uninstall: tuple[str, ...] = ()
    post_uninstall: tuple[str, ...] = ()

    @property
    def spec_file_name(self) -> str:
        return f"{self.name}-{self.version}-{self.build_arch}.spec"

    @property
    def rpm_file_name(self) -> str:
        return f"{self.name}-{self.version}-{self.release}.{self.build_arch}.rpm"

    def with_post_install_lines(self, lines):
        """Return a copy with `lines` appended after the declared post-install lines."""
        return dataclasses.replace(
            self, post_install=tuple(self.post_install) + tuple(lines)
        )


@dataclass(frozen=True)
class FileMapping:
    sources: tuple[str, ...]
    destination: str
    working_dir: str | None = None
    mode: str | None = None
    owner: str | None = None
    group: str | None = None


def default_temp_dir() -> Path:
    """Fresh randomized temp root name, unique per run."""
    return Path(f"{TEMP_DIR_PREFIX}{uuid.uuid4().hex[:12]}")


# User inputs controlling a packaging run
# metadata - PackageMetadata for the spec file
# files - ordered FileMapping entries
# exclude_files - glob patterns of sources that are never staged
# temp_dir - rpmbuild topdir, wiped and recreated on every run
# keep_temp - keep temp_dir after a successful run
# output_dir - where the final .rpm is copied
# rpmbuild - packaging tool executable
@dataclass
class PackageConfig:
    metadata: PackageMetadata = field(default_factory=PackageMetadata)
    files: tuple[FileMapping, ...] = ()
    exclude_files: tuple[str, ...] = ()
    temp_dir: Path = field(default_factory=default_temp_dir)
    keep_temp: bool = False
    output_dir: Path = field(default_factory=Path.cwd)
    rpmbuild: str = "rpmbuild"


# Config file option name -> PackageMetadata field
METADATA_OPTIONS = {
    "name": "name",
    "summary": "summary",
    "description": "description",
    "version": "version",
    "release": "release",
    "license": "license",
    "vendor": "vendor",
    "group": "group",
    "buildArch": "build_arch",
    "requires": "requires",
    "preInstallScript": "pre_install",
    "postInstallScript": "post_install",
    "preUninstallScript": "pre_uninstall",
    "postUninstallScript": "post_uninstall",
}

SCRIPT_FIELDS = {"pre_install", "post_install", "pre_uninstall", "post_uninstall"}

# Config file option name -> PackageConfig field
RUN_OPTIONS = {
    "tempDir": "temp_dir",
    "keepTemp": "keep_temp",
}


def as_list(value):
    """Accept a single string or a sequence of strings; None gives an empty list."""
    if value is None:
        return []
    if isinstance(value, (str, os.PathLike)):
        return [str(value)]
    return [str(item) for item in value]


def has_glob_magic(pattern: str) -> bool:
    return any(ch in pattern for ch in "*?[")


def expand_sources(patterns, working_dir=None):
    """Expand source glob patterns the way the task runner does.

    Patterns are matched relative to working_dir when given, else relative
    to the current directory. Plain paths are passed through untouched,
    patterns starting with "!" remove earlier matches. Results keep pattern
    order, each pattern's matches are sorted, duplicates are dropped.

    Parameters:
    patterns: glob pattern or list of patterns
    working_dir: directory the patterns are relative to

    Returns: List of paths as declared (relative to working_dir)
    """
    matches = []
    for pattern in as_list(patterns):
        negate = pattern.startswith("!")
        if negate:
            pattern = pattern[1:]

        if has_glob_magic(pattern):
            found = sorted(glob.glob(pattern, root_dir=working_dir, recursive=True))
        else:
            found = [pattern]

        if negate:
            removed = {os.path.normpath(p) for p in found}
            matches = [m for m in matches if os.path.normpath(m) not in removed]
        else:
            matches.extend(m for m in found if m not in matches)

    return matches


def expand_exclusions(patterns):
    """Expand exclusion globs relative to the current directory.

    Parameters:
    patterns: glob pattern or list of patterns

    Returns: List of matching paths
    """
    excluded = []
    for pattern in as_list(patterns):
        for path in sorted(glob.glob(pattern, recursive=True)):
            if path not in excluded:
                excluded.append(path)
    return excluded


def scalar_option(key, value) -> str:
    """Text of a string or integer option.

    Floats and booleans are refused: YAML reads `version: 2.10` as 2.1 and
    `mode: yes` as True, neither of which round-trips to what was written.
    """
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise ConfigurationError(
            f"Option '{key}' must be a string or an integer, got {value!r}; "
            f"quote it in the config file"
        )
    return str(value)


def file_mapping_from_dict(entry, index):
    """Build a FileMapping from a config file entry.

    Parameters:
    entry: dict with "src", "dest" and optional "cwd", "mode", "owner", "group"
    index: position of the entry, used in error messages

    Returns: FileMapping
    """
    if not isinstance(entry, dict):
        raise ConfigurationError(f"File entry #{index} must be a mapping, got {entry!r}")

    unknown = set(entry) - {"src", "dest", "cwd", "mode", "owner", "group"}
    if unknown:
        raise ConfigurationError(
            f"File entry #{index} has unknown keys: {', '.join(sorted(unknown))}"
        )

    def optional(key):
        value = entry.get(key)
        if value in (None, ""):
            return None
        return scalar_option(f"files[{index}].{key}", value)

    return FileMapping(
        sources=tuple(as_list(entry.get("src"))),
        destination=str(entry.get("dest") or ""),
        working_dir=optional("cwd"),
        mode=optional("mode"),
        owner=optional("owner"),
        group=optional("group"),
    )


def package_config_from_dict(data) -> PackageConfig:
    """Translate a parsed config file into a PackageConfig.

    Parameters:
    data: dict with optional "options", "files" and "excludeFiles" keys

    Returns: PackageConfig
    """
    data = data or {}
    unknown = set(data) - {"options", "files", "excludeFiles"}
    if unknown:
        raise ConfigurationError(f"Unknown config keys: {', '.join(sorted(unknown))}")

    options = data.get("options") or {}
    unknown = set(options) - set(METADATA_OPTIONS) - set(RUN_OPTIONS)
    if unknown:
        raise ConfigurationError(f"Unknown options: {', '.join(sorted(unknown))}")

    metadata_fields = {}
    for key, field_name in METADATA_OPTIONS.items():
        if key not in options:
            continue
        value = options[key]
        if field_name in SCRIPT_FIELDS:
            lines = [value] if isinstance(value, str) or value is None else value
            if not isinstance(lines, list):
                raise ConfigurationError(
                    f"Option '{key}' must be a string or a list of strings"
                )
            metadata_fields[field_name] = tuple(
                scalar_option(key, line) for line in lines if line is not None
            )
        else:
            metadata_fields[field_name] = (
                "" if value is None else scalar_option(key, value)
            )

    config = PackageConfig(
        metadata=PackageMetadata(**metadata_fields),
        files=tuple(
            file_mapping_from_dict(entry, i)
            for i, entry in enumerate(data.get("files") or [])
        ),
        exclude_files=tuple(as_list(data.get("excludeFiles"))),
    )
    if options.get("tempDir"):
        config.temp_dir = Path(options["tempDir"])
    if "keepTemp" in options:
        if not isinstance(options["keepTemp"], bool):
            raise ConfigurationError(
                f"Option 'keepTemp' must be true or false, got {options['keepTemp']!r}"
            )
        config.keep_temp = options["keepTemp"]
    return config


def load_config_file(config_file) -> PackageConfig:
    """Read a YAML or JSON config file.

    Parameters:
    config_file: Path to a .yml/.yaml or .json file

    Returns: PackageConfig
    """
    config_path = Path(config_file)
    log.info(f"Reading config file {config_path}")
    try:
        with config_path.open("r", encoding="utf-8") as f:
            if config_path.suffix.lower() == ".json":
                data = json.load(f)
            else:
                data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigurationError(f"Cannot read config file {config_path}: {e}") from e
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Invalid config file {config_path}: {e}") from e

    if data is not None and not isinstance(data, dict):
        raise ConfigurationError(f"{config_path}: top level must be a mapping")
    return package_config_from_dict(data)


def remove_dir(dir_name):
    """Remove the directory if it exists

    Parameters:
    dir_name : Path or str
        Directory to be removed

    Returns: None
    """
    dir_path = Path(dir_name)

    if not dir_path.exists():
        log.debug(f"Directory does not exist: {dir_path}")
        return
    try:
        shutil.rmtree(dir_path)
    except OSError as e:
        raise FilesystemError(f"Failed to remove directory {dir_path}: {e}") from e
    log.info(f"Removed directory: {dir_path}")

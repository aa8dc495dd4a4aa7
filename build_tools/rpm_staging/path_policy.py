"""Path normalization and inclusion rules for staged sources.

All functions here are pure string/path computations: nothing touches the
filesystem except `is_self_referential`, which resolves symlinks.
"""

import os
import posixpath

from pathlib import Path

from .exceptions import ConfigurationError
from .packaging_utils import TEMP_DIR_PREFIX


def normalize(path) -> str:
    """Canonical form of a path: `.`/`..` collapsed, `/` as separator."""
    normalized = os.path.normpath(os.fspath(path))
    return normalized.replace("\\", "/")


def build_exclusion_set(paths) -> frozenset:
    return frozenset(normalize(p) for p in paths)


def is_excluded(path, exclusion_set) -> bool:
    return normalize(path) in exclusion_set


def is_self_referential(path, temp_root=None, prefix: str = TEMP_DIR_PREFIX) -> bool:
    """Check whether a source lies inside a packaging scratch directory.

    True when the resolved path is under the current run's temp root, or when
    one of its components is a leftover temp root of another run (a directory
    named with the reserved prefix).
    """
    resolved = Path(path).resolve()
    if temp_root is not None:
        root = Path(temp_root).resolve()
        if resolved == root or root in resolved.parents:
            return True
    return any(part.startswith(prefix) for part in Path(normalize(path)).parts)


def installed_path(destination: str, declared_source: str) -> str:
    """Path of a source inside the installed package.

    The declared source (before working-dir resolution) is appended to the
    destination even when it is absolute. A result climbing above the
    destination root with `..` would land outside the build root and is
    refused.
    """
    source = normalize(declared_source).lstrip("/")
    destination = normalize(destination) if destination else ""
    if destination in ("", "."):
        joined = posixpath.normpath(source)
    else:
        joined = posixpath.normpath(f"{destination.rstrip('/')}/{source}")

    if joined == ".." or joined.startswith("../"):
        raise ConfigurationError(
            f"Installed path of '{declared_source}' under '{destination}' "
            f"escapes the package root: {joined}"
        )
    return joined


def build_root_path(build_root, installed: str) -> Path:
    """Location of an installed path re-rooted under the build root."""
    return Path(build_root) / installed.lstrip("/")

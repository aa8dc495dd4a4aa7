#!/usr/bin/env python3

# Copyright Advanced Micro Devices, Inc.
# SPDX-License-Identifier: MIT


"""Stages files into an rpmbuild tree, generates the spec file and builds
an RPM package with `rpmbuild`.

```
./easy_rpm.py --config easy_rpm.yml
./easy_rpm.py --name myapp --version 1.2.0 \
        --file /opt/myapp='bin/*' \
        --exclude 'bin/*.debug' \
        --keep-temp
```

Options given on the command line override the config file. Files and
exclusions given on the command line are added to the ones from the config
file. The package is written to the output directory (default: current
directory) as <name>-<version>-<release>.<buildArch>.rpm.
"""

import argparse
import dataclasses
import sys

from dataclasses import dataclass
from pathlib import Path

from rpm_staging.build_root import materialize
from rpm_staging.exceptions import ConfigurationError, EasyRpmError
from rpm_staging.logger import LOG_LEVELS, log, set_log_level, setup_file_logging
from rpm_staging.packaging_summary import print_build_summary
from rpm_staging.packaging_utils import (
    FileMapping,
    PackageConfig,
    PackageMetadata,
    expand_exclusions,
    load_config_file,
    remove_dir,
)
from rpm_staging.path_policy import build_exclusion_set
from rpm_staging.rpmbuild import package_with_rpmbuild, relocate_artifact
from rpm_staging.spec_writer import write_spec_file
from rpm_staging.staging_planner import StagingManifest, plan, validate_file_mappings


@dataclass
class BuildResult:
    metadata: PackageMetadata
    manifest: StagingManifest
    temp_root: Path
    spec_file: Path | None = None
    artifact: Path | None = None
    temp_kept: bool = False


def build_rpm(config: PackageConfig) -> BuildResult:
    """Run the whole packaging pipeline for one package.

    Steps run strictly in order and the first failure aborts the run.
    A failed run leaves the temp root in place.

    Parameters:
    config: PackageConfig for the package

    Returns: BuildResult
    """
    temp_root = Path(config.temp_dir).resolve()

    # Reject bad mappings before anything is written
    validate_file_mappings(config.files)

    exclusion_set = build_exclusion_set(expand_exclusions(config.exclude_files))
    manifest, attribute_lines = plan(config.files, exclusion_set, temp_root)
    metadata = config.metadata.with_post_install_lines(attribute_lines)
    result = BuildResult(metadata=metadata, manifest=manifest, temp_root=temp_root)

    build_root = materialize(temp_root, manifest)
    result.spec_file = write_spec_file(metadata, manifest.installed_paths, temp_root)

    log.info("Building RPM package")
    package_with_rpmbuild(result.spec_file, build_root, config.rpmbuild)
    result.artifact = relocate_artifact(temp_root, metadata, config.output_dir)

    if config.keep_temp:
        result.temp_kept = True
    else:
        log.info(f"Deleting temp folder {temp_root}")
        remove_dir(temp_root)

    return result


def parse_file_argument(value: str) -> FileMapping:
    """Parse a --file value of the form DEST=SRC[,SRC...]."""
    destination, sep, sources = value.partition("=")
    if not sep:
        raise ConfigurationError(f"Invalid --file '{value}': expected DEST=SRC[,SRC...]")
    return FileMapping(
        sources=tuple(s for s in sources.split(",") if s),
        destination=destination,
    )


# argparse destination -> PackageMetadata field
METADATA_ARGS = {
    "name": "name",
    "pkg_version": "version",
    "release": "release",
    "summary": "summary",
    "description": "description",
    "license": "license",
    "vendor": "vendor",
    "group": "group",
    "build_arch": "build_arch",
    "requires": "requires",
}

SCRIPT_ARGS = {
    "pre_install": "pre_install",
    "post_install": "post_install",
    "pre_uninstall": "pre_uninstall",
    "post_uninstall": "post_uninstall",
}


def config_from_args(args: argparse.Namespace) -> PackageConfig:
    """Merge the config file (if any) with the command line options."""
    config = load_config_file(args.config) if args.config else PackageConfig()

    overrides = {
        field_name: getattr(args, arg)
        for arg, field_name in METADATA_ARGS.items()
        if getattr(args, arg) is not None
    }
    for arg, field_name in SCRIPT_ARGS.items():
        lines = getattr(args, arg)
        if lines:
            overrides[field_name] = getattr(config.metadata, field_name) + tuple(lines)
    config.metadata = dataclasses.replace(config.metadata, **overrides)

    if args.files:
        config.files = config.files + tuple(parse_file_argument(f) for f in args.files)
    if args.exclude:
        config.exclude_files = config.exclude_files + tuple(args.exclude)
    if args.temp_dir:
        config.temp_dir = args.temp_dir
    if args.keep_temp:
        config.keep_temp = True
    if args.output_dir:
        config.output_dir = args.output_dir
    if args.rpmbuild:
        config.rpmbuild = args.rpmbuild
    return config


def run(args: argparse.Namespace) -> BuildResult:
    set_log_level(args.log_level)
    if args.log_file:
        setup_file_logging(args.log_file)

    config = config_from_args(args)
    result = build_rpm(config)
    print_build_summary(result)
    return result


def main(argv: list[str]) -> int:

    p = argparse.ArgumentParser(
        description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter
    )
    p.add_argument(
        "--config",
        type=Path,
        help="YAML or JSON file with 'options', 'files' and 'excludeFiles'",
    )

    p.add_argument("--name", help="Package name")
    p.add_argument("--version", dest="pkg_version", help="Package version")
    p.add_argument("--release", help="Package release")
    p.add_argument("--summary", help="One line package summary")
    p.add_argument("--description", help="Package description")
    p.add_argument("--license", help="Package license")
    p.add_argument("--vendor", help="Package vendor")
    p.add_argument("--group", help="Package group")
    p.add_argument("--build-arch", help="Package architecture (e.g. noarch, x86_64)")
    p.add_argument("--requires", help="Package dependencies")

    p.add_argument(
        "--pre-install", action="append", help="Line for the %%pre script section"
    )
    p.add_argument(
        "--post-install", action="append", help="Line for the %%post script section"
    )
    p.add_argument(
        "--pre-uninstall", action="append", help="Line for the %%preun script section"
    )
    p.add_argument(
        "--post-uninstall",
        action="append",
        help="Line for the %%postun script section",
    )

    p.add_argument(
        "--file",
        dest="files",
        action="append",
        metavar="DEST=SRC[,SRC...]",
        help="Install the files matching SRC globs under DEST",
    )
    p.add_argument(
        "--exclude",
        action="append",
        metavar="GLOB",
        help="Never package files matching GLOB",
    )

    p.add_argument(
        "--temp-dir",
        type=Path,
        help="rpmbuild topdir (default: randomized easy-rpm-tmp-* directory)",
    )
    p.add_argument(
        "--keep-temp",
        action="store_true",
        help="Keep the temp directory after a successful build",
    )
    p.add_argument(
        "--output-dir",
        type=Path,
        help="Directory receiving the .rpm (default: current directory)",
    )
    p.add_argument("--rpmbuild", help="rpmbuild executable to use")

    p.add_argument("--log-level", default="INFO", choices=LOG_LEVELS)
    p.add_argument("--log-file", type=Path, help="Also write the log to this file")

    args = p.parse_args(argv)
    try:
        run(args)
    except EasyRpmError as e:
        log.error(str(e))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))

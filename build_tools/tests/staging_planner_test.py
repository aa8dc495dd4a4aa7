from pathlib import Path
import os
import shutil
import sys
import tempfile
import unittest

sys.path.insert(0, os.fspath(Path(__file__).parent.parent))

from rpm_staging.exceptions import ConfigurationError
from rpm_staging.packaging_utils import FileMapping
from rpm_staging.path_policy import build_exclusion_set
from rpm_staging.staging_planner import (
    SKIP_DIRECTORY,
    SKIP_EXCLUDED,
    SKIP_SELF_REFERENTIAL,
    PlacedFile,
    attribute_script_lines,
    plan,
    validate_file_mappings,
)


class StagingPlannerTest(unittest.TestCase):
    """Tests for plan() over a scratch source tree."""

    def setUp(self):
        self.saved_cwd = os.getcwd()
        self.work_dir = Path(tempfile.mkdtemp())
        os.chdir(self.work_dir)
        for name in ["a.txt", "b.txt", "bin/run.sh", "bin/tool", "build/lib/x.so"]:
            path = self.work_dir / name
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(f"content of {name}\n")
        self.temp_root = self.work_dir / "pinned-temp"

    def tearDown(self):
        os.chdir(self.saved_cwd)
        shutil.rmtree(self.work_dir, ignore_errors=True)

    def test_single_file_without_attributes(self):
        files = [FileMapping(sources=("a.txt",), destination="/opt/app")]

        manifest, lines = plan(files, build_exclusion_set([]), self.temp_root)

        self.assertEqual(manifest.installed_paths, ["/opt/app/a.txt"])
        self.assertEqual(manifest.files[0].source_path, "a.txt")
        self.assertEqual(lines, ())

    def test_mode_adds_chmod_line(self):
        files = [FileMapping(sources=("a.txt",), destination="/opt/app", mode="755")]

        _, lines = plan(files, build_exclusion_set([]), self.temp_root)

        self.assertEqual(lines, ("chmod 755 /opt/app/a.txt",))

    def test_attribute_lines_in_mode_owner_group_order(self):
        files = [
            FileMapping(
                sources=("a.txt", "b.txt"),
                destination="/opt/app",
                mode="644",
                owner="app",
                group="staff",
            )
        ]

        _, lines = plan(files, build_exclusion_set([]), self.temp_root)

        self.assertEqual(
            lines,
            (
                "chmod 644 /opt/app/a.txt",
                "chown app /opt/app/a.txt",
                "chgrp staff /opt/app/a.txt",
                "chmod 644 /opt/app/b.txt",
                "chown app /opt/app/b.txt",
                "chgrp staff /opt/app/b.txt",
            ),
        )

    def test_only_owner(self):
        files = [FileMapping(sources=("a.txt",), destination="/opt", owner="root")]

        _, lines = plan(files, build_exclusion_set([]), self.temp_root)

        self.assertEqual(lines, ("chown root /opt/a.txt",))

    def test_excluded_source_not_in_manifest(self):
        files = [FileMapping(sources=("a.txt", "b.txt"), destination="/opt/app")]

        manifest, _ = plan(files, build_exclusion_set(["./a.txt"]), self.temp_root)

        self.assertEqual(manifest.installed_paths, ["/opt/app/b.txt"])
        self.assertEqual(manifest.skipped[0].reason, SKIP_EXCLUDED)

    def test_all_sources_excluded(self):
        files = [FileMapping(sources=("a.txt",), destination="/opt/app", mode="755")]

        manifest, lines = plan(files, build_exclusion_set(["a.txt"]), self.temp_root)

        self.assertEqual(len(manifest), 0)
        self.assertEqual(lines, ())

    def test_directory_source_is_skipped(self):
        files = [FileMapping(sources=("bin", "a.txt"), destination="/opt/app")]

        manifest, _ = plan(files, build_exclusion_set([]), self.temp_root)

        self.assertEqual(manifest.installed_paths, ["/opt/app/a.txt"])
        self.assertEqual(manifest.skipped[0].source_path, "bin")
        self.assertEqual(manifest.skipped[0].reason, SKIP_DIRECTORY)

    def test_glob_expansion_skips_directories(self):
        files = [FileMapping(sources=("bin/**",), destination="/opt/app")]

        manifest, _ = plan(files, build_exclusion_set([]), self.temp_root)

        self.assertEqual(
            manifest.installed_paths, ["/opt/app/bin/run.sh", "/opt/app/bin/tool"]
        )

    def test_working_dir_does_not_leak_into_installed_path(self):
        files = [
            FileMapping(
                sources=("lib/*.so",), destination="/usr/lib64", working_dir="build"
            )
        ]

        manifest, _ = plan(files, build_exclusion_set([]), self.temp_root)

        self.assertEqual(manifest.installed_paths, ["/usr/lib64/lib/x.so"])
        self.assertEqual(
            manifest.files[0].source_path, os.path.join("build", "lib/x.so")
        )

    def test_exclusion_uses_declared_path(self):
        files = [
            FileMapping(sources=("lib/x.so",), destination="/usr", working_dir="build")
        ]

        manifest, _ = plan(files, build_exclusion_set(["lib/x.so"]), self.temp_root)

        self.assertEqual(len(manifest), 0)

    def test_sources_under_current_temp_root_are_skipped(self):
        stale = self.temp_root / "BUILDROOT" / "old.txt"
        stale.parent.mkdir(parents=True)
        stale.write_text("stale")
        files = [FileMapping(sources=("pinned-temp/**", "a.txt"), destination="/opt")]

        manifest, _ = plan(files, build_exclusion_set([]), self.temp_root)

        self.assertEqual(manifest.installed_paths, ["/opt/a.txt"])
        self.assertIn(
            SKIP_SELF_REFERENTIAL, [skipped.reason for skipped in manifest.skipped]
        )

    def test_manifest_keeps_traversal_order(self):
        files = [
            FileMapping(sources=("b.txt",), destination="/second"),
            FileMapping(sources=("a.txt", "bin/tool"), destination="/first"),
        ]

        manifest, _ = plan(files, build_exclusion_set([]), self.temp_root)

        self.assertEqual(
            manifest.installed_paths,
            ["/second/b.txt", "/first/a.txt", "/first/bin/tool"],
        )

    def test_missing_source_is_reported_while_planning(self):
        files = [FileMapping(sources=("missing.txt",), destination="/opt/app")]

        with self.assertLogs("easy_rpm", level="WARNING") as logs:
            manifest, _ = plan(files, build_exclusion_set([]), self.temp_root)

        self.assertEqual(manifest.installed_paths, ["/opt/app/missing.txt"])
        self.assertIn("missing.txt", logs.output[0])

    def test_source_escaping_destination_is_configuration_error(self):
        files = [FileMapping(sources=("../../a.txt",), destination="opt", working_dir="bin")]

        with self.assertRaises(ConfigurationError):
            plan(files, build_exclusion_set([]), self.temp_root)

    def test_missing_destination_is_configuration_error(self):
        files = [
            FileMapping(sources=("a.txt",), destination="/opt"),
            FileMapping(sources=("b.txt",), destination=""),
        ]

        with self.assertRaises(ConfigurationError):
            plan(files, build_exclusion_set([]), self.temp_root)

    def test_missing_source_is_configuration_error(self):
        with self.assertRaises(ConfigurationError):
            validate_file_mappings([FileMapping(sources=(), destination="/opt")])


class AttributeScriptLinesTest(unittest.TestCase):
    def test_no_attributes(self):
        self.assertEqual(attribute_script_lines(PlacedFile("a", "/opt/a")), [])

    def test_group_only(self):
        placed = PlacedFile("a", "/opt/a", group="wheel")
        self.assertEqual(attribute_script_lines(placed), ["chgrp wheel /opt/a"])


if __name__ == "__main__":
    unittest.main()

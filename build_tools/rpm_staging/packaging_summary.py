from prettytable import PrettyTable


def staged_files_table(manifest) -> PrettyTable:
    """Table of staged files with the attributes applied after install."""
    table = PrettyTable(["Source", "Installed path", "Mode", "Owner", "Group"])
    table.align = "l"
    for placed in manifest.files:
        table.add_row(
            [
                placed.source_path,
                placed.installed_path,
                placed.mode or "",
                placed.owner or "",
                placed.group or "",
            ]
        )
    return table


def skipped_sources_table(manifest) -> PrettyTable:
    table = PrettyTable(["Source", "Reason"])
    table.align = "l"
    for skipped in manifest.skipped:
        table.add_row([skipped.source_path, skipped.reason])
    return table


def format_build_summary(result) -> str:
    """Build summary text for a finished packaging run.

    Parameters:
    result: BuildResult of the run

    Returns: Summary text
    """
    lines = [
        "=" * 80,
        "RPM BUILD SUMMARY",
        "=" * 80,
        f"Package: {result.metadata.rpm_file_name}",
        f"Staged files: {len(result.manifest.files)}",
        str(staged_files_table(result.manifest)),
    ]

    if result.manifest.skipped:
        lines.append(f"Skipped sources: {len(result.manifest.skipped)}")
        lines.append(str(skipped_sources_table(result.manifest)))

    lines.append(f"Spec file: {result.spec_file}")
    if result.artifact:
        lines.append(f"Output package: {result.artifact}")
    if result.temp_kept:
        lines.append(f"Temp directory kept: {result.temp_root}")
    lines.append("=" * 80)
    return "\n".join(lines)


def print_build_summary(result):
    print("\n" + format_build_summary(result) + "\n")

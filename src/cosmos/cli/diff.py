"""
CLI command for comparing two OpenAPI documents.

Both files may be OpenAPI 3.x or Swagger 2.0, in JSON or YAML. The exit code
reflects the most severe change found, so the command can gate a pipeline.
"""

from __future__ import annotations

import json
from pathlib import Path

from rich.markup import escape

from cosmos.cli.ux import console, error, header, print_table, success, warning
from cosmos.core.errors import BadInputError, ExitCode, format_error_message
from cosmos.openapi import (
    CompatibilityChange,
    CompatibilityDiffer,
    Severity,
    count_by_severity,
    load_document,
)

SEVERITY_STYLES = {
    Severity.INFO: "info",
    Severity.WARNING: "warning",
    Severity.BREAKING: "breaking",
}


def _print_changes(changes: list[CompatibilityChange]) -> None:
    rows = []
    for change in changes:
        style = SEVERITY_STYLES[change.severity]
        rows.append(
            [
                f"[{style}]{change.severity.value}[/{style}]",
                change.method,
                escape(change.path),
                change.kind,
                escape(change.description),
            ]
        )
    print_table("Changes", ["Severity", "Method", "Path", "Kind", "Description"], rows)


def diff_command(
    old_file: str,
    new_file: str,
    min_severity: str = "info",
    output_format: str = "table",
    fail_on: str = "breaking",
) -> int:
    """
    Compare two API documents.

    Returns:
        Exit code (0 when nothing reaches ``fail_on``, 1 otherwise, 12 on bad input)
    """
    documents = []
    for file_path in (old_file, new_file):
        path = Path(file_path)
        if not path.is_file():
            error(f"File not found: {file_path}")
            return ExitCode.NOT_FOUND
        try:
            documents.append(load_document(path.read_bytes()))
        except BadInputError as e:
            error(f"{path.name}: {format_error_message(e)}")
            return ExitCode.VALIDATION_ERROR

    changes = CompatibilityDiffer(min_severity).compare(documents[0], documents[1])
    failing = [change for change in changes if change.severity.at_least(fail_on)]

    if output_format == "json":
        output = {
            "old": old_file,
            "new": new_file,
            "summary": count_by_severity(changes),
            "changes": [change.to_dict() for change in changes],
        }
        print(json.dumps(output, indent=2))
        return ExitCode.WARNING if failing else ExitCode.SUCCESS

    header(f"API Diff: {Path(old_file).name} → {Path(new_file).name}")
    if not changes:
        success("No changes")
        return ExitCode.SUCCESS

    _print_changes(changes)
    counts = count_by_severity(changes)
    console.print(
        f"[muted]{counts['breaking']} breaking, {counts['warning']} warning, "
        f"{counts['info']} info[/muted]"
    )

    if failing:
        warning(f"{len(failing)} change(s) at or above '{fail_on}'")
        return ExitCode.WARNING
    success(f"No changes at or above '{fail_on}'")
    return ExitCode.SUCCESS

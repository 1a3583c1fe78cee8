"""
CLI command for validating an openclient manifest file.
"""

from pathlib import Path

from rich.markup import escape

from cosmos.cli.ux import console, error, header, success
from cosmos.core.errors import BadInputError, ExitCode, error_messages
from cosmos.manifest import parse_manifest, validate_manifest


def validate_manifest_command(file_path: str, application: str | None = None) -> int:
    """
    Validate a manifest file, optionally as the manifest of ``application``.

    Returns:
        Exit code (0 when valid, 12 when unparseable or invalid, 13 when missing)
    """
    header("Validate Manifest")

    path = Path(file_path)
    if not path.is_file():
        error(f"File not found: {file_path}")
        return ExitCode.NOT_FOUND

    try:
        manifest = parse_manifest(path.read_bytes())
    except BadInputError as e:
        error(f"{path.name} could not be parsed")
        for message in error_messages(e):
            console.print(f"  • {escape(message)}")
        return ExitCode.VALIDATION_ERROR

    result = validate_manifest(manifest, consumer=application)
    if not result.valid:
        error(f"{path.name}: {len(result.errors)} problem(s)")
        for message in result.errors:
            console.print(f"  • {escape(message)}")
        return ExitCode.VALIDATION_ERROR

    success(
        f"{path.name}: {result.dependency_count} dependencies, "
        f"{result.endpoint_count} endpoints"
    )
    return ExitCode.SUCCESS

"""
Manifest deserialization.

JSON is tried first; YAML is the fallback. Decoding failures and shape
mismatches are parse errors, distinct from the rule violations reported by
the validator.
"""

from __future__ import annotations

import json
from typing import Any

import yaml
from pydantic import ValidationError as PydanticValidationError

from cosmos.core.errors import ManifestParseError
from cosmos.manifest.models import OpenClientManifest


def load_tree(raw: str | bytes) -> Any:
    """Decode raw text as JSON, falling back to YAML."""
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ManifestParseError(f"manifest is not valid UTF-8: {e}") from e

    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        pass

    try:
        return yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ManifestParseError(f"manifest is neither valid JSON nor YAML: {e}") from e


def _format_pydantic_errors(exc: PydanticValidationError) -> list[str]:
    messages = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err["loc"]) or "<root>"
        messages.append(f"{location}: {err['msg']}")
    return messages


def parse_manifest(raw: str | bytes) -> OpenClientManifest:
    """
    Parse manifest text into an ``OpenClientManifest``.

    Raises:
        ManifestParseError: text does not decode, is empty, or has the wrong shape
    """
    tree = load_tree(raw)

    if tree is None:
        raise ManifestParseError("manifest document is empty")
    if not isinstance(tree, dict):
        raise ManifestParseError(
            f"manifest must be a mapping at the top level, got {type(tree).__name__}"
        )

    try:
        return OpenClientManifest.model_validate(tree)
    except PydanticValidationError as e:
        problems = _format_pydantic_errors(e)
        raise ManifestParseError(
            "manifest does not match the openclient schema: " + "; ".join(problems),
            details={"problems": problems},
        ) from e

"""
OpenAPI version detection and normalization.

Documents may be JSON or YAML; JSON is tried first. Swagger 2.0 trees are
converted to the OpenAPI 3 shape before the normalized document is built.
"""

from __future__ import annotations

import json
from typing import Any

import structlog
import yaml

from cosmos.core.errors import BadInputError, SpecParseError, UnsupportedFormatError
from cosmos.openapi.builder import build_document
from cosmos.openapi.converter import convert_v2_to_v3
from cosmos.openapi.models import OpenAPIDocument

logger = structlog.get_logger()

SUPPORTED_VERSIONS = (2, 3)


def _decode(raw: str | bytes, error_cls: type[BadInputError]) -> Any:
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise error_cls(f"document is not valid UTF-8: {e}") from e

    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        pass

    try:
        return yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise error_cls(f"document is neither valid JSON nor YAML: {e}") from e


def _discriminator(tree: dict[str, Any], key: str) -> str | None:
    value = tree.get(key)
    # Unquoted YAML scalars such as `swagger: 2.0` arrive as numbers
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value if isinstance(value, str) else None


def detect_version(raw: str | bytes) -> int:
    """
    Return the major OpenAPI version (2 or 3) of a raw document.

    Raises:
        UnsupportedFormatError: unparseable text, non-mapping root, or no
            recognised ``swagger``/``openapi`` field
    """
    tree = _decode(raw, UnsupportedFormatError)
    if not isinstance(tree, dict):
        raise UnsupportedFormatError("OpenAPI document must be a mapping at the top level")

    swagger = _discriminator(tree, "swagger")
    if swagger is not None and swagger.startswith("2.0"):
        return 2

    openapi = _discriminator(tree, "openapi")
    if openapi is not None and openapi.startswith("3"):
        return 3

    raise UnsupportedFormatError(
        "could not detect OpenAPI version",
        {"swagger": swagger, "openapi": openapi},
    )


def _json_safe(tree: dict[str, Any]) -> dict[str, Any]:
    # YAML may produce dates and integer keys; the stored tree must be plain JSON
    return json.loads(json.dumps(tree, default=str))


def document_from_tree(tree: dict[str, Any]) -> OpenAPIDocument:
    """Build a document from an OpenAPI 3 tree, e.g. a stored snapshot."""
    try:
        return build_document(tree)
    except SpecParseError:
        raise
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        raise SpecParseError(f"malformed OpenAPI document: {e}") from e


def normalize(raw: str | bytes, version: int) -> OpenAPIDocument:
    """
    Load a raw document of a known version into the normalized model.

    Raises:
        UnsupportedFormatError: version is neither 2 nor 3
        SpecParseError: the document cannot be decoded or is structurally broken
    """
    if version not in SUPPORTED_VERSIONS:
        raise UnsupportedFormatError(f"unsupported OpenAPI version: {version}")

    tree = _decode(raw, SpecParseError)
    if not isinstance(tree, dict):
        raise SpecParseError("OpenAPI document must be a mapping at the top level")
    tree = _json_safe(tree)

    if version == 2:
        try:
            tree = convert_v2_to_v3(tree)
        except SpecParseError:
            raise
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise SpecParseError(f"malformed Swagger 2.0 document: {e}") from e

    document = document_from_tree(tree)
    logger.debug(
        "openapi_normalized",
        source_version=version,
        title=document.title,
        operations=document.operation_count,
    )
    return document


def load_document(raw: str | bytes) -> OpenAPIDocument:
    """Detect the version of a raw document and normalize it."""
    return normalize(raw, detect_version(raw))

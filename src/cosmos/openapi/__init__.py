"""
OpenAPI loading, normalization and backward-compatibility diffing.
"""

from cosmos.openapi.changes import CompatibilityChange, Severity, count_by_severity
from cosmos.openapi.converter import convert_v2_to_v3
from cosmos.openapi.differ import CompatibilityDiffer, compare_documents
from cosmos.openapi.loader import detect_version, document_from_tree, load_document, normalize
from cosmos.openapi.models import (
    OpenAPIDocument,
    Operation,
    Parameter,
    RequestBody,
    Response,
    Schema,
)

__all__ = [
    "CompatibilityChange",
    "CompatibilityDiffer",
    "OpenAPIDocument",
    "Operation",
    "Parameter",
    "RequestBody",
    "Response",
    "Schema",
    "Severity",
    "compare_documents",
    "convert_v2_to_v3",
    "count_by_severity",
    "detect_version",
    "document_from_tree",
    "load_document",
    "normalize",
]

"""
OpenClient manifest parsing and validation.
"""

from cosmos.manifest.models import DependencySpec, EndpointSpec, OpenClientManifest
from cosmos.manifest.parser import parse_manifest
from cosmos.manifest.validator import (
    VALID_HTTP_METHODS,
    ValidationResult,
    is_valid_http_method,
    is_valid_path,
    validate_manifest,
)

__all__ = [
    "OpenClientManifest",
    "DependencySpec",
    "EndpointSpec",
    "parse_manifest",
    "validate_manifest",
    "ValidationResult",
    "VALID_HTTP_METHODS",
    "is_valid_path",
    "is_valid_http_method",
]

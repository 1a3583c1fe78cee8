"""
OpenClient manifest validation.

Checks every dependency, endpoint path and method, and reports all
violations together.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from cosmos.core.errors import ManifestValidationError
from cosmos.manifest.models import OpenClientManifest

VALID_HTTP_METHODS = frozenset(
    {"GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS", "TRACE"}
)

_PATH_CHARS = r"a-zA-Z0-9\-_.~!*'();:@&=+$,/?#\[\]{}|%"
_SEGMENT_CHARS = r"a-zA-Z0-9\-_.~!*'();:@&=+$,?#|%"

# Matches paths like /users, /users/{id}, /api/v1/users/{userId}/orders/{orderId}
_PATH_RE = re.compile(rf"^/[{_PATH_CHARS}]*$")
# A segment is plain text or a single {parameter}
_SEGMENT_RE = re.compile(rf"^([{_SEGMENT_CHARS}]+|\{{[{_SEGMENT_CHARS}]+\}})$")


def is_valid_path(path: str) -> bool:
    """Check an endpoint path against the allowed character set and segment rules."""
    if not _PATH_RE.match(path):
        return False

    for segment in path.split("/"):
        if segment and not _SEGMENT_RE.match(segment):
            return False
    return True


def is_valid_http_method(method: str) -> bool:
    return method.upper() in VALID_HTTP_METHODS


@dataclass
class ValidationResult:
    """Result of manifest validation."""

    valid: bool
    errors: list[str] = field(default_factory=list)
    dependency_count: int = 0
    endpoint_count: int = 0

    def raise_for_errors(self) -> None:
        if not self.valid:
            raise ManifestValidationError(self.errors)

    def __str__(self) -> str:
        if self.valid:
            return (
                f"Valid openclient manifest: {self.dependency_count} dependencies, "
                f"{self.endpoint_count} endpoints"
            )
        lines = ["Invalid openclient manifest"]
        lines.extend(f"  • {error}" for error in self.errors)
        return "\n".join(lines)


def validate_manifest(
    manifest: OpenClientManifest, consumer: str | None = None
) -> ValidationResult:
    """
    Validate an OpenClient manifest.

    Checks:
    1. Provider names are not empty
    2. Endpoint paths are not empty, start with '/', use URL characters and
       consist of literal or {parameter} segments
    3. Methods are not empty and are standard HTTP methods (any case)
    4. When ``consumer`` is given, it does not declare a dependency on itself

    An empty manifest is valid. The manifest is not modified.
    """
    errors: list[str] = []
    endpoint_count = 0

    for dep_name in sorted(manifest.dependencies):
        dependency = manifest.dependencies[dep_name]
        label = dep_name if dep_name.strip() else "<empty>"

        if not dep_name.strip():
            errors.append("dependency name cannot be empty")
        elif dep_name == consumer:
            errors.append(f"application '{consumer}' cannot declare a dependency on itself")

        for path in sorted(dependency.endpoints):
            methods = dependency.endpoints[path]

            if path == "":
                errors.append(f"endpoint path cannot be empty for dependency {label}")
            elif not is_valid_path(path):
                errors.append(
                    f"invalid path '{path}' for dependency {label}: path must start with '/' "
                    "and contain valid URL characters"
                )

            for method in sorted(methods):
                endpoint_count += 1
                if method == "":
                    errors.append(
                        f"endpoint method cannot be empty for path '{path}' of dependency {label}"
                    )
                elif not is_valid_http_method(method):
                    errors.append(
                        f"invalid HTTP method '{method}' for path '{path}' of dependency {label}: "
                        f"must be one of {', '.join(sorted(VALID_HTTP_METHODS))}"
                    )

    return ValidationResult(
        valid=not errors,
        errors=errors,
        dependency_count=len(manifest.dependencies),
        endpoint_count=endpoint_count,
    )

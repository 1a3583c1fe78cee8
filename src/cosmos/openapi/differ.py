"""
Backward-compatibility diff between two normalized OpenAPI documents.

Every difference is reported as a ``CompatibilityChange`` with a kind and a
severity. Requests and responses are judged in opposite directions: a
request may accept more than before, a response may not promise less.

Operations are matched on their path template with parameter names erased,
so renaming ``/users/{id}`` to ``/users/{userId}`` is not a removal.
"""

from __future__ import annotations

from typing import Iterator

import structlog

from cosmos.core.errors import CosmosError, DiffError
from cosmos.domain.mapping import path_parameter_names, path_template
from cosmos.openapi.changes import CompatibilityChange, Severity
from cosmos.openapi.models import OpenAPIDocument, Operation, Parameter, RequestBody, Schema

logger = structlog.get_logger()

WIDENED = "widened"
INCOMPATIBLE = "incompatible"

_WIDENING_FORMATS = {("int32", "int64"), ("float", "double")}

# (attribute, label); a larger lower bound or a smaller upper bound narrows
_LOWER_BOUNDS = (("minimum", "minimum"), ("min_length", "min-length"))
_UPPER_BOUNDS = (("maximum", "maximum"), ("max_length", "max-length"))


def type_change(old: Schema, new: Schema) -> str | None:
    """Classify a change of (type, format): None, ``widened`` or ``incompatible``."""
    if old.recursive or new.recursive:
        return None
    if (old.type, old.format) == (new.type, new.format):
        return None
    if old.type == new.type:
        if new.format is None or (old.format, new.format) in _WIDENING_FORMATS:
            return WIDENED
        return INCOMPATIBLE
    if new.type is None:
        return WIDENED
    if old.type == "integer" and new.type == "number" and new.format is None:
        return WIDENED
    return INCOMPATIBLE


def _describe_type(schema: Schema) -> str:
    if schema.type is None:
        return "any"
    return f"{schema.type}({schema.format})" if schema.format else schema.type


def _show(value: object) -> str:
    return "unset" if value is None else repr(value)


def _constraint_changes(old: Schema, new: Schema) -> Iterator[tuple[str, bool, str]]:
    """Yield (label, narrowed, description) for bound and pattern changes."""
    for attr, label in _LOWER_BOUNDS:
        before, after = getattr(old, attr), getattr(new, attr)
        if before != after:
            narrowed = after is not None and (before is None or after > before)
            yield label, narrowed, f"{label} changed from {_show(before)} to {_show(after)}"
    for attr, label in _UPPER_BOUNDS:
        before, after = getattr(old, attr), getattr(new, attr)
        if before != after:
            narrowed = after is not None and (before is None or after < before)
            yield label, narrowed, f"{label} changed from {_show(before)} to {_show(after)}"
    if old.pattern != new.pattern:
        yield (
            "pattern",
            new.pattern is not None,
            f"pattern changed from {_show(old.pattern)} to {_show(new.pattern)}",
        )


def _enum_delta(old: Schema, new: Schema) -> tuple[list[str], list[str]]:
    old_values = [repr(v) for v in old.enum or []]
    new_values = [repr(v) for v in new.enum or []]
    removed = sorted(v for v in old_values if v not in new_values)
    added = sorted(v for v in new_values if v not in old_values)
    return removed, added


class _Comparison:
    """Accumulates the changes of one document comparison."""

    def __init__(self) -> None:
        self.changes: list[CompatibilityChange] = []
        self._operation: Operation | None = None

    def add(self, kind: str, severity: Severity, description: str, location: str = "") -> None:
        assert self._operation is not None
        self.changes.append(
            CompatibilityChange(
                kind=kind,
                severity=severity,
                path=self._operation.path,
                method=self._operation.method,
                description=description,
                location=location,
            )
        )

    def run(self, old: OpenAPIDocument, new: OpenAPIDocument) -> list[CompatibilityChange]:
        old_ops = {(path_template(op.path), op.method): op for op in old.operations.values()}
        new_ops = {(path_template(op.path), op.method): op for op in new.operations.values()}

        for key, old_op in old_ops.items():
            new_op = new_ops.get(key)
            if new_op is None:
                self._operation = old_op
                self.add(
                    "operation-removed",
                    Severity.BREAKING,
                    f"{old_op.method} {old_op.path} was removed",
                )
            else:
                self._operation = new_op
                self.operation(old_op, new_op)

        for key, new_op in new_ops.items():
            if key not in old_ops:
                self._operation = new_op
                self.add(
                    "operation-added", Severity.INFO, f"{new_op.method} {new_op.path} was added"
                )

        return self.changes

    # Operations

    def operation(self, old: Operation, new: Operation) -> None:
        if new.deprecated and not old.deprecated:
            self.add(
                "operation-deprecated", Severity.INFO, f"{new.method} {new.path} is deprecated"
            )

        self.parameters(old, new)
        self.request_body(old.request_body, new.request_body)
        self.responses(old, new)

    def parameters(self, old: Operation, new: Operation) -> None:
        # Path parameters are matched by position so renames are transparent
        renamed = dict(zip(path_parameter_names(old.path), path_parameter_names(new.path)))
        old_params: dict[tuple[str, str], Parameter] = {}
        for (location, name), param in old.parameters.items():
            if location == "path":
                name = renamed.get(name, name)
            old_params[(location, name)] = param

        for key, old_param in old_params.items():
            new_param = new.parameters.get(key)
            if new_param is None:
                severity = Severity.BREAKING if old_param.required else Severity.WARNING
                qualifier = "required" if old_param.required else "optional"
                self.add(
                    "request-parameter-removed",
                    severity,
                    f"{qualifier} {old_param.label} was removed",
                    old_param.label,
                )
                continue

            location = new_param.label
            if new_param.required and not old_param.required:
                self.add(
                    "request-parameter-became-required",
                    Severity.BREAKING,
                    f"{location} became required",
                    location,
                )
            elif old_param.required and not new_param.required:
                self.add(
                    "request-parameter-became-optional",
                    Severity.INFO,
                    f"{location} became optional",
                    location,
                )
            self.request_schema(old_param.schema, new_param.schema, "request-parameter", location)

        for key, new_param in new.parameters.items():
            if key in old_params:
                continue
            if new_param.required:
                self.add(
                    "new-required-request-parameter",
                    Severity.BREAKING,
                    f"new required {new_param.label}",
                    new_param.label,
                )
            else:
                self.add(
                    "new-optional-request-parameter",
                    Severity.INFO,
                    f"new optional {new_param.label}",
                    new_param.label,
                )

    def request_body(self, old: RequestBody | None, new: RequestBody | None) -> None:
        location = "request body"
        if old is None and new is None:
            return
        if old is None:
            assert new is not None
            if new.required:
                self.add(
                    "request-body-added-required",
                    Severity.BREAKING,
                    "a required request body was added",
                    location,
                )
            else:
                self.add(
                    "request-body-added-optional",
                    Severity.INFO,
                    "an optional request body was added",
                    location,
                )
            return
        if new is None:
            self.add("request-body-removed", Severity.WARNING, "request body was removed", location)
            return

        if new.required and not old.required:
            self.add(
                "request-body-became-required",
                Severity.BREAKING,
                "request body became required",
                location,
            )
        elif old.required and not new.required:
            self.add(
                "request-body-became-optional",
                Severity.INFO,
                "request body became optional",
                location,
            )

        for media, old_schema in old.content.items():
            media_location = f"{location} {media}"
            new_schema = new.content.get(media)
            if new_schema is None:
                self.add(
                    "request-body-media-type-removed",
                    Severity.BREAKING,
                    f"request media type {media} is no longer accepted",
                    media_location,
                )
            else:
                self.request_schema(old_schema, new_schema, "request-body", media_location)

        for media in new.content:
            if media not in old.content:
                self.add(
                    "request-body-media-type-added",
                    Severity.INFO,
                    f"request media type {media} is now accepted",
                    f"{location} {media}",
                )

    def responses(self, old: Operation, new: Operation) -> None:
        for status, old_response in old.responses.items():
            new_response = new.responses.get(status)
            location = f"response {status}"
            if new_response is None:
                if old_response.is_success:
                    self.add(
                        "response-success-status-removed",
                        Severity.BREAKING,
                        f"success response {status} was removed",
                        location,
                    )
                else:
                    self.add(
                        "response-non-success-status-removed",
                        Severity.INFO,
                        f"response {status} was removed",
                        location,
                    )
                continue

            for media, old_schema in old_response.content.items():
                media_location = f"{location} {media}"
                new_schema = new_response.content.get(media)
                if new_schema is None:
                    self.add(
                        "response-media-type-removed",
                        Severity.BREAKING,
                        f"response media type {media} is no longer returned",
                        media_location,
                    )
                else:
                    self.response_schema(old_schema, new_schema, "response-body", media_location)

            for media in new_response.content:
                if media not in old_response.content:
                    self.add(
                        "response-media-type-added",
                        Severity.INFO,
                        f"response media type {media} was added",
                        f"{location} {media}",
                    )

        for status in new.responses:
            if status not in old.responses:
                self.add(
                    "response-status-added",
                    Severity.INFO,
                    f"response {status} was added",
                    f"response {status}",
                )

    # Schemas

    def request_schema(self, old: Schema, new: Schema, prefix: str, location: str) -> None:
        """Inputs may widen freely; any narrowing breaks existing callers."""
        if old.recursive or new.recursive:
            return

        change = type_change(old, new)
        if change is not None:
            self.add(
                f"{prefix}-type-changed",
                Severity.INFO if change == WIDENED else Severity.BREAKING,
                f"type changed from {_describe_type(old)} to {_describe_type(new)}",
                location,
            )

        if old.nullable and not new.nullable:
            self.add(
                f"{prefix}-nullable-narrowed",
                Severity.BREAKING,
                "null is no longer accepted",
                location,
            )
        elif new.nullable and not old.nullable:
            self.add(f"{prefix}-nullable-widened", Severity.INFO, "null is now accepted", location)

        if old.enum is not None and new.enum is not None:
            removed, added = _enum_delta(old, new)
            if removed:
                self.add(
                    f"{prefix}-enum-value-removed",
                    Severity.BREAKING,
                    f"enum values no longer accepted: {', '.join(removed)}",
                    location,
                )
            if added:
                self.add(
                    f"{prefix}-enum-value-added",
                    Severity.INFO,
                    f"enum values now accepted: {', '.join(added)}",
                    location,
                )
        elif new.enum is not None:
            self.add(
                f"{prefix}-enum-narrowed",
                Severity.BREAKING,
                "values are now restricted to an enum",
                location,
            )
        elif old.enum is not None:
            self.add(
                f"{prefix}-enum-widened", Severity.INFO, "enum restriction was removed", location
            )

        for label, narrowed, description in _constraint_changes(old, new):
            if narrowed:
                self.add(f"{prefix}-{label}-narrowed", Severity.BREAKING, description, location)
            else:
                self.add(f"{prefix}-{label}-widened", Severity.INFO, description, location)

        for name, old_prop in old.properties.items():
            prop_location = f"{location} property '{name}'"
            new_prop = new.properties.get(name)
            if new_prop is None:
                self.add(
                    "request-property-removed",
                    Severity.WARNING,
                    f"request property '{name}' was removed",
                    prop_location,
                )
                continue
            if name in new.required and name not in old.required:
                self.add(
                    "request-property-became-required",
                    Severity.BREAKING,
                    f"request property '{name}' became required",
                    prop_location,
                )
            elif name in old.required and name not in new.required:
                self.add(
                    "request-property-became-optional",
                    Severity.INFO,
                    f"request property '{name}' became optional",
                    prop_location,
                )
            self.request_schema(old_prop, new_prop, "request-property", prop_location)

        for name in new.properties:
            if name in old.properties:
                continue
            prop_location = f"{location} property '{name}'"
            if name in new.required:
                self.add(
                    "new-required-request-property",
                    Severity.BREAKING,
                    f"new required request property '{name}'",
                    prop_location,
                )
            else:
                self.add(
                    "new-optional-request-property",
                    Severity.INFO,
                    f"new optional request property '{name}'",
                    prop_location,
                )

        if old.items is not None and new.items is not None:
            self.request_schema(old.items, new.items, prefix, f"{location}[]")

    def response_schema(self, old: Schema, new: Schema, prefix: str, location: str) -> None:
        """Outputs may only promise more; anything looser breaks readers."""
        if old.recursive or new.recursive:
            return

        change = type_change(old, new)
        if change is not None:
            # any -> concrete type only narrows what readers receive
            self.add(
                f"{prefix}-type-changed",
                Severity.INFO if old.type is None else Severity.BREAKING,
                f"type changed from {_describe_type(old)} to {_describe_type(new)}",
                location,
            )

        if new.nullable and not old.nullable:
            self.add(
                f"{prefix}-became-nullable", Severity.BREAKING, "value may now be null", location
            )

        if old.enum is not None and new.enum is not None:
            removed, added = _enum_delta(old, new)
            if added:
                self.add(
                    f"{prefix}-enum-value-added",
                    Severity.WARNING,
                    f"new enum values may be returned: {', '.join(added)}",
                    location,
                )
            if removed:
                self.add(
                    f"{prefix}-enum-value-removed",
                    Severity.INFO,
                    f"enum values no longer returned: {', '.join(removed)}",
                    location,
                )
        elif old.enum is not None:
            self.add(
                f"{prefix}-enum-value-added",
                Severity.WARNING,
                "enum restriction was removed, any value may be returned",
                location,
            )

        for name, old_prop in old.properties.items():
            prop_location = f"{location} property '{name}'"
            new_prop = new.properties.get(name)
            if new_prop is None:
                if name in old.required:
                    self.add(
                        "response-required-property-removed",
                        Severity.BREAKING,
                        f"required response property '{name}' was removed",
                        prop_location,
                    )
                else:
                    self.add(
                        "response-optional-property-removed",
                        Severity.WARNING,
                        f"optional response property '{name}' was removed",
                        prop_location,
                    )
                continue
            if name in old.required and name not in new.required:
                self.add(
                    "response-property-became-optional",
                    Severity.BREAKING,
                    f"response property '{name}' is no longer always present",
                    prop_location,
                )
            elif name in new.required and name not in old.required:
                self.add(
                    "response-property-became-required",
                    Severity.INFO,
                    f"response property '{name}' is now always present",
                    prop_location,
                )
            self.response_schema(old_prop, new_prop, "response-property", prop_location)

        for name in new.properties:
            if name not in old.properties:
                self.add(
                    "new-response-property",
                    Severity.INFO,
                    f"new response property '{name}'",
                    f"{location} property '{name}'",
                )

        if old.items is not None and new.items is not None:
            self.response_schema(old.items, new.items, prefix, f"{location}[]")


class CompatibilityDiffer:
    """
    Compares two normalized documents.

    Args:
        min_severity: changes below this severity are dropped from the result
    """

    def __init__(self, min_severity: Severity | str = Severity.INFO):
        self.min_severity = Severity(min_severity)

    def compare(self, old: OpenAPIDocument, new: OpenAPIDocument) -> list[CompatibilityChange]:
        """
        Return the ordered list of changes from ``old`` to ``new``.

        Raises:
            DiffError: the comparison failed; no partial result is returned
        """
        try:
            changes = _Comparison().run(old, new)
        except CosmosError:
            raise
        except Exception as e:
            logger.error("openapi_diff_failed", error_type=type(e).__name__, error=str(e))
            raise DiffError(f"failed to compare OpenAPI documents: {e}") from e

        selected = [c for c in changes if c.severity.at_least(self.min_severity)]
        return sorted(selected, key=lambda change: change.sort_key)


def compare_documents(
    old: OpenAPIDocument,
    new: OpenAPIDocument,
    min_severity: Severity | str = Severity.INFO,
) -> list[CompatibilityChange]:
    return CompatibilityDiffer(min_severity).compare(old, new)

"""
Normalized OpenAPI document model.

Both Swagger 2.0 and OpenAPI 3.x inputs end up in this shape, so the differ
never needs to know which version a document came from. Only the facts that
matter for backward compatibility are kept.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

HTTP_METHODS = ("get", "put", "post", "delete", "options", "head", "patch", "trace")


@dataclass
class Schema:
    """A resolved JSON schema node."""

    type: str | None = None
    format: str | None = None
    nullable: bool = False
    enum: list[Any] | None = None
    properties: dict[str, Schema] = field(default_factory=dict)
    required: set[str] = field(default_factory=set)
    items: Schema | None = None
    minimum: float | None = None
    maximum: float | None = None
    min_length: int | None = None
    max_length: int | None = None
    pattern: str | None = None
    # Name of the component this node was resolved from, if any
    ref: str | None = None
    # Set on the node that closes a reference cycle; it carries no structure
    recursive: bool = False


@dataclass
class Parameter:
    name: str
    location: str  # path, query, header, cookie
    required: bool = False
    deprecated: bool = False
    schema: Schema = field(default_factory=Schema)

    @property
    def key(self) -> tuple[str, str]:
        return (self.location, self.name)

    @property
    def label(self) -> str:
        return f"{self.location} parameter '{self.name}'"


@dataclass
class RequestBody:
    required: bool = False
    content: dict[str, Schema] = field(default_factory=dict)


@dataclass
class Response:
    status: str
    content: dict[str, Schema] = field(default_factory=dict)

    @property
    def is_success(self) -> bool:
        return self.status.startswith("2") or self.status.lower() == "2xx"


@dataclass
class Operation:
    path: str
    method: str  # upper case
    operation_id: str | None = None
    deprecated: bool = False
    parameters: dict[tuple[str, str], Parameter] = field(default_factory=dict)
    request_body: RequestBody | None = None
    responses: dict[str, Response] = field(default_factory=dict)


@dataclass
class OpenAPIDocument:
    title: str = ""
    version: str = ""
    operations: dict[tuple[str, str], Operation] = field(default_factory=dict)
    # The v3-shaped tree the document was built from; this is what gets persisted
    tree: dict[str, Any] = field(default_factory=dict, repr=False)

    def get_operation(self, path: str, method: str) -> Operation | None:
        return self.operations.get((path, method.upper()))

    @property
    def operation_count(self) -> int:
        return len(self.operations)

"""
Build the normalized OpenAPIDocument from an OpenAPI 3 tree.

References are resolved against the tree itself, ``allOf`` members are merged
into one schema and path-item parameters are folded into every operation.
A reference that points back at a schema already being expanded ends the
expansion with a ``recursive`` placeholder.
"""

from __future__ import annotations

from typing import Any

from cosmos.core.errors import SpecParseError
from cosmos.openapi.models import (
    HTTP_METHODS,
    OpenAPIDocument,
    Operation,
    Parameter,
    RequestBody,
    Response,
    Schema,
)


class DocumentBuilder:
    """Walks one v3 tree and produces its normalized document."""

    def __init__(self, tree: dict[str, Any]):
        self.tree = tree

    # References

    def resolve_pointer(self, ref: Any) -> Any:
        if not isinstance(ref, str) or not ref.startswith("#/"):
            raise SpecParseError(f"unsupported reference '{ref}'", {"ref": ref})

        node: Any = self.tree
        for raw in ref[2:].split("/"):
            part = raw.replace("~1", "/").replace("~0", "~")
            if not isinstance(node, dict) or part not in node:
                raise SpecParseError(f"unresolvable reference '{ref}'", {"ref": ref})
            node = node[part]
        return node

    def _deref(self, node: Any, what: str) -> dict[str, Any]:
        seen: set[str] = set()
        while isinstance(node, dict) and "$ref" in node:
            ref = node["$ref"]
            if ref in seen:
                raise SpecParseError(f"circular {what} reference '{ref}'", {"ref": ref})
            seen.add(ref)
            node = self.resolve_pointer(ref)
        if not isinstance(node, dict):
            raise SpecParseError(f"{what} must be a mapping, got {type(node).__name__}")
        return node

    # Schemas

    def schema(self, node: Any, stack: tuple[str, ...] = ()) -> Schema:
        if node is None:
            return Schema()
        if not isinstance(node, dict):
            raise SpecParseError(f"schema must be a mapping, got {type(node).__name__}")

        ref = node.get("$ref")
        if ref is not None:
            name = str(ref).rsplit("/", 1)[-1]
            if ref in stack:
                return Schema(ref=name, recursive=True)
            resolved = self.schema(self.resolve_pointer(ref), stack + (ref,))
            if resolved.ref is None:
                resolved.ref = name
            return resolved

        result = Schema()
        for member in node.get("allOf") or []:
            _merge(result, self.schema(member, stack))
        _merge(result, self._own_schema(node, stack))
        return result

    def _own_schema(self, node: dict[str, Any], stack: tuple[str, ...]) -> Schema:
        schema_type = node.get("type")
        nullable = bool(node.get("nullable", False))
        if isinstance(schema_type, list):
            # OpenAPI 3.1 style: ["string", "null"]
            types = [t for t in schema_type if t != "null"]
            nullable = nullable or len(types) != len(schema_type)
            schema_type = types[0] if len(types) == 1 else None

        properties = node.get("properties") or {}
        if not isinstance(properties, dict):
            raise SpecParseError("schema 'properties' must be a mapping")

        enum = node.get("enum")
        items = node.get("items")
        return Schema(
            type=schema_type,
            format=node.get("format"),
            nullable=nullable,
            enum=list(enum) if isinstance(enum, list) else None,
            properties={name: self.schema(prop, stack) for name, prop in properties.items()},
            required=set(node.get("required") or []),
            items=self.schema(items, stack) if items is not None else None,
            minimum=node.get("minimum"),
            maximum=node.get("maximum"),
            min_length=node.get("minLength"),
            max_length=node.get("maxLength"),
            pattern=node.get("pattern"),
        )

    def _content(self, content: Any) -> dict[str, Schema]:
        if content is None:
            return {}
        if not isinstance(content, dict):
            raise SpecParseError("'content' must be a mapping")
        return {
            media: self.schema((media_obj or {}).get("schema"))
            for media, media_obj in content.items()
        }

    # Operations

    def parameter(self, node: Any) -> Parameter:
        param = self._deref(node, "parameter")
        name = param.get("name")
        location = param.get("in")
        if not name or not location:
            raise SpecParseError("parameter requires 'name' and 'in'")

        schema_node = param.get("schema")
        if schema_node is None and isinstance(param.get("content"), dict):
            media = next(iter(param["content"].values()), None) or {}
            schema_node = media.get("schema")

        return Parameter(
            name=str(name),
            location=str(location),
            required=location == "path" or bool(param.get("required", False)),
            deprecated=bool(param.get("deprecated", False)),
            schema=self.schema(schema_node),
        )

    def request_body(self, node: Any) -> RequestBody | None:
        if node is None:
            return None
        body = self._deref(node, "request body")
        return RequestBody(
            required=bool(body.get("required", False)),
            content=self._content(body.get("content")),
        )

    def response(self, status: str, node: Any) -> Response:
        response = self._deref(node, "response")
        return Response(status=status, content=self._content(response.get("content")))

    def operation(
        self, path: str, method: str, node: Any, shared: list[Parameter]
    ) -> Operation:
        if not isinstance(node, dict):
            raise SpecParseError(f"operation {method.upper()} {path} must be a mapping")

        parameters = {param.key: param for param in shared}
        for raw in node.get("parameters") or []:
            param = self.parameter(raw)
            parameters[param.key] = param

        responses = node.get("responses") or {}
        if not isinstance(responses, dict):
            raise SpecParseError(f"responses of {method.upper()} {path} must be a mapping")

        return Operation(
            path=path,
            method=method.upper(),
            operation_id=node.get("operationId"),
            deprecated=bool(node.get("deprecated", False)),
            parameters=parameters,
            request_body=self.request_body(node.get("requestBody")),
            responses={
                str(status): self.response(str(status), response)
                for status, response in responses.items()
            },
        )

    def build(self) -> OpenAPIDocument:
        paths = self.tree.get("paths") or {}
        if not isinstance(paths, dict):
            raise SpecParseError("'paths' must be a mapping")

        operations: dict[tuple[str, str], Operation] = {}
        for path, item in paths.items():
            if item is None:
                continue
            item = self._deref(item, "path item")
            shared = [self.parameter(p) for p in item.get("parameters") or []]
            for method in HTTP_METHODS:
                if method in item:
                    operation = self.operation(path, method, item[method], shared)
                    operations[(path, operation.method)] = operation

        info = self.tree.get("info") or {}
        return OpenAPIDocument(
            title=str(info.get("title", "")),
            version=str(info.get("version", "")),
            operations=operations,
            tree=self.tree,
        )


def _merge(target: Schema, source: Schema) -> None:
    """Fold ``source`` into ``target``; set values on ``source`` win."""
    for attr in (
        "type",
        "format",
        "enum",
        "items",
        "minimum",
        "maximum",
        "min_length",
        "max_length",
        "pattern",
        "ref",
    ):
        value = getattr(source, attr)
        if value is not None:
            setattr(target, attr, value)
    target.nullable = target.nullable or source.nullable
    target.recursive = target.recursive or source.recursive
    target.properties.update(source.properties)
    target.required |= source.required


def build_document(tree: dict[str, Any]) -> OpenAPIDocument:
    return DocumentBuilder(tree).build()

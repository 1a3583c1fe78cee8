"""
Swagger 2.0 to OpenAPI 3 conversion.

Works on plain JSON trees. The output is a v3 tree that the document builder
loads exactly like a native v3 document.
"""

from __future__ import annotations

from copy import deepcopy
from typing import Any

from cosmos.core.errors import SpecParseError
from cosmos.openapi.models import HTTP_METHODS

TARGET_VERSION = "3.0.3"

_DEFAULT_MEDIA_TYPES = ["application/json"]

# Keys a v2 non-body parameter shares with a v3 schema object
_PARAMETER_SCHEMA_KEYS = (
    "type",
    "format",
    "enum",
    "default",
    "minimum",
    "maximum",
    "exclusiveMinimum",
    "exclusiveMaximum",
    "minLength",
    "maxLength",
    "pattern",
    "minItems",
    "maxItems",
    "uniqueItems",
    "multipleOf",
)

_OPERATION_PASSTHROUGH_KEYS = (
    "summary",
    "description",
    "operationId",
    "tags",
    "deprecated",
    "security",
    "externalDocs",
)

_OAUTH2_FLOWS = {
    "implicit": "implicit",
    "password": "password",
    "application": "clientCredentials",
    "accessCode": "authorizationCode",
}


def convert_schema(node: Any) -> Any:
    """Rewrite a v2 schema tree: definition refs, x-nullable and file types."""
    if isinstance(node, list):
        return [convert_schema(item) for item in node]
    if not isinstance(node, dict):
        return node

    converted: dict[str, Any] = {}
    for key, value in node.items():
        if key == "$ref" and isinstance(value, str) and value.startswith("#/definitions/"):
            converted["$ref"] = "#/components/schemas/" + value[len("#/definitions/") :]
        elif key == "x-nullable":
            converted["nullable"] = bool(value)
        elif key == "type" and value == "file":
            converted["type"] = "string"
            converted["format"] = "binary"
        else:
            converted[key] = convert_schema(value)
    return converted


def _parameter_schema(param: dict[str, Any]) -> dict[str, Any]:
    schema = {key: deepcopy(param[key]) for key in _PARAMETER_SCHEMA_KEYS if key in param}
    if "items" in param:
        schema["items"] = _parameter_schema(param["items"])
    return convert_schema(schema)


class _SwaggerConverter:
    def __init__(self, swagger: dict[str, Any]) -> None:
        self.swagger = swagger
        self.global_parameters = swagger.get("parameters") or {}
        self.global_responses = swagger.get("responses") or {}
        self.consumes = swagger.get("consumes") or _DEFAULT_MEDIA_TYPES
        self.produces = swagger.get("produces") or _DEFAULT_MEDIA_TYPES

    def convert(self) -> dict[str, Any]:
        swagger = self.swagger
        doc: dict[str, Any] = {
            "openapi": TARGET_VERSION,
            "info": deepcopy(swagger.get("info") or {}),
        }

        servers = self._servers()
        if servers:
            doc["servers"] = servers

        paths = swagger.get("paths") or {}
        if not isinstance(paths, dict):
            raise SpecParseError("'paths' must be a mapping")
        doc["paths"] = {path: self._path_item(path, item) for path, item in paths.items()}

        components: dict[str, Any] = {}
        definitions = swagger.get("definitions") or {}
        if definitions:
            components["schemas"] = {
                name: convert_schema(schema) for name, schema in definitions.items()
            }
        security_definitions = swagger.get("securityDefinitions") or {}
        if security_definitions:
            components["securitySchemes"] = {
                name: self._security_scheme(scheme)
                for name, scheme in security_definitions.items()
            }
        if components:
            doc["components"] = components

        for key in ("tags", "security", "externalDocs"):
            if key in swagger:
                doc[key] = deepcopy(swagger[key])

        return doc

    def _servers(self) -> list[dict[str, str]]:
        host = self.swagger.get("host")
        base_path = self.swagger.get("basePath") or ""
        if host:
            schemes = self.swagger.get("schemes") or ["https"]
            return [{"url": f"{scheme}://{host}{base_path}"} for scheme in schemes]
        if base_path:
            return [{"url": base_path}]
        return []

    def _resolve_parameter(self, param: Any) -> dict[str, Any]:
        if not isinstance(param, dict):
            raise SpecParseError(f"parameter must be a mapping, got {type(param).__name__}")
        ref = param.get("$ref")
        if ref is None:
            return param
        prefix = "#/parameters/"
        name = ref[len(prefix) :] if isinstance(ref, str) and ref.startswith(prefix) else None
        if name is None or name not in self.global_parameters:
            raise SpecParseError(f"unresolvable parameter reference '{ref}'")
        return self.global_parameters[name]

    def _resolve_response(self, response: Any) -> dict[str, Any]:
        if not isinstance(response, dict):
            raise SpecParseError(f"response must be a mapping, got {type(response).__name__}")
        ref = response.get("$ref")
        if ref is None:
            return response
        prefix = "#/responses/"
        name = ref[len(prefix) :] if isinstance(ref, str) and ref.startswith(prefix) else None
        if name is None or name not in self.global_responses:
            raise SpecParseError(f"unresolvable response reference '{ref}'")
        return self.global_responses[name]

    def _path_item(self, path: str, item: Any) -> dict[str, Any]:
        if item is None:
            return {}
        if not isinstance(item, dict):
            raise SpecParseError(f"path item '{path}' must be a mapping")

        shared = [self._resolve_parameter(p) for p in item.get("parameters") or []]
        converted: dict[str, Any] = {}
        for method in HTTP_METHODS:
            operation = item.get(method)
            if operation is None:
                continue
            if not isinstance(operation, dict):
                raise SpecParseError(f"operation {method.upper()} {path} must be a mapping")
            converted[method] = self._operation(operation, shared)
        return converted

    def _operation(
        self, operation: dict[str, Any], shared: list[dict[str, Any]]
    ) -> dict[str, Any]:
        converted = {
            key: deepcopy(operation[key]) for key in _OPERATION_PASSTHROUGH_KEYS if key in operation
        }

        # Operation-level parameters override path-level ones with the same (in, name)
        merged: dict[tuple[Any, Any], dict[str, Any]] = {}
        own = [self._resolve_parameter(p) for p in operation.get("parameters") or []]
        for param in shared + own:
            merged[(param.get("in"), param.get("name"))] = param

        consumes = operation.get("consumes") or self.consumes
        produces = operation.get("produces") or self.produces

        parameters: list[dict[str, Any]] = []
        form_fields: list[dict[str, Any]] = []
        request_body: dict[str, Any] | None = None

        for param in merged.values():
            location = param.get("in")
            if location == "body":
                request_body = {
                    "required": bool(param.get("required", False)),
                    "content": {
                        media: {"schema": convert_schema(deepcopy(param.get("schema") or {}))}
                        for media in consumes
                    },
                }
                if param.get("description"):
                    request_body["description"] = param["description"]
            elif location == "formData":
                form_fields.append(param)
            else:
                parameters.append(self._parameter(param))

        if form_fields and request_body is None:
            request_body = self._form_body(form_fields, consumes)

        if parameters:
            converted["parameters"] = parameters
        if request_body is not None:
            converted["requestBody"] = request_body

        responses = operation.get("responses") or {}
        converted["responses"] = {
            str(status): self._response(self._resolve_response(response), produces)
            for status, response in responses.items()
        }
        return converted

    @staticmethod
    def _parameter(param: dict[str, Any]) -> dict[str, Any]:
        location = param.get("in")
        converted: dict[str, Any] = {
            "name": param.get("name"),
            "in": location,
            "required": True if location == "path" else bool(param.get("required", False)),
            "schema": _parameter_schema(param),
        }
        for key in ("description", "deprecated"):
            if key in param:
                converted[key] = deepcopy(param[key])
        return converted

    @staticmethod
    def _form_body(fields: list[dict[str, Any]], consumes: list[str]) -> dict[str, Any]:
        has_file = any(f.get("type") == "file" for f in fields)
        media = (
            "multipart/form-data"
            if has_file or "multipart/form-data" in consumes
            else "application/x-www-form-urlencoded"
        )
        schema: dict[str, Any] = {
            "type": "object",
            "properties": {f.get("name"): _parameter_schema(f) for f in fields},
        }
        required = [f.get("name") for f in fields if f.get("required")]
        if required:
            schema["required"] = required
        return {"required": bool(required), "content": {media: {"schema": schema}}}

    @staticmethod
    def _response(response: dict[str, Any], produces: list[str]) -> dict[str, Any]:
        converted: dict[str, Any] = {"description": response.get("description", "")}
        if "schema" in response:
            converted["content"] = {
                media: {"schema": convert_schema(deepcopy(response["schema"]))}
                for media in produces
            }
        headers = response.get("headers") or {}
        if headers:
            converted["headers"] = {
                name: {"schema": _parameter_schema(header)} for name, header in headers.items()
            }
        return converted

    @staticmethod
    def _security_scheme(scheme: dict[str, Any]) -> dict[str, Any]:
        kind = scheme.get("type")
        if kind == "basic":
            return {"type": "http", "scheme": "basic"}
        if kind == "apiKey":
            return {"type": "apiKey", "name": scheme.get("name"), "in": scheme.get("in")}
        if kind == "oauth2":
            flow_name = _OAUTH2_FLOWS.get(scheme.get("flow", ""), "implicit")
            flow: dict[str, Any] = {"scopes": deepcopy(scheme.get("scopes") or {})}
            if "authorizationUrl" in scheme:
                flow["authorizationUrl"] = scheme["authorizationUrl"]
            if "tokenUrl" in scheme:
                flow["tokenUrl"] = scheme["tokenUrl"]
            return {"type": "oauth2", "flows": {flow_name: flow}}
        return deepcopy(scheme)


def convert_v2_to_v3(swagger: dict[str, Any]) -> dict[str, Any]:
    """Convert a Swagger 2.0 tree into an OpenAPI 3 tree."""
    return _SwaggerConverter(swagger).convert()

"""Tests for Swagger 2.0 to OpenAPI 3 conversion."""

import pytest
from cosmos.core.errors import SpecParseError
from cosmos.openapi import convert_v2_to_v3


def swagger(**overrides):
    doc = {"swagger": "2.0", "info": {"title": "Files", "version": "2"}, "paths": {}}
    doc.update(overrides)
    return doc


def test_servers_from_host_base_path_and_schemes():
    converted = convert_v2_to_v3(
        swagger(host="files.acme.io", basePath="/api", schemes=["http", "https"])
    )

    assert converted["openapi"] == "3.0.3"
    assert converted["servers"] == [
        {"url": "http://files.acme.io/api"},
        {"url": "https://files.acme.io/api"},
    ]


def test_definitions_become_component_schemas():
    converted = convert_v2_to_v3(
        swagger(
            definitions={
                "File": {
                    "type": "object",
                    "properties": {
                        "owner": {"$ref": "#/definitions/User"},
                        "blob": {"type": "file"},
                        "label": {"type": "string", "x-nullable": True},
                    },
                },
                "User": {"type": "object"},
            }
        )
    )

    file_schema = converted["components"]["schemas"]["File"]
    assert file_schema["properties"]["owner"] == {"$ref": "#/components/schemas/User"}
    assert file_schema["properties"]["blob"] == {"type": "string", "format": "binary"}
    assert file_schema["properties"]["label"] == {"type": "string", "nullable": True}


def test_form_data_becomes_multipart_body_when_a_file_is_uploaded():
    converted = convert_v2_to_v3(
        swagger(
            paths={
                "/files": {
                    "post": {
                        "parameters": [
                            {"name": "upload", "in": "formData", "type": "file", "required": True},
                            {"name": "comment", "in": "formData", "type": "string"},
                        ],
                        "responses": {"201": {"description": "created"}},
                    }
                }
            }
        )
    )

    body = converted["paths"]["/files"]["post"]["requestBody"]
    assert body["required"] is True
    schema = body["content"]["multipart/form-data"]["schema"]
    assert schema["required"] == ["upload"]
    assert schema["properties"]["upload"] == {"type": "string", "format": "binary"}


def test_form_data_without_files_is_url_encoded():
    converted = convert_v2_to_v3(
        swagger(
            paths={
                "/login": {
                    "post": {
                        "parameters": [{"name": "user", "in": "formData", "type": "string"}],
                        "responses": {},
                    }
                }
            }
        )
    )

    body = converted["paths"]["/login"]["post"]["requestBody"]
    assert body["required"] is False
    assert list(body["content"]) == ["application/x-www-form-urlencoded"]


def test_global_parameter_and_response_references_are_inlined():
    converted = convert_v2_to_v3(
        swagger(
            parameters={"Limit": {"name": "limit", "in": "query", "type": "integer"}},
            responses={"NotFound": {"description": "missing"}},
            paths={
                "/files": {
                    "get": {
                        "parameters": [{"$ref": "#/parameters/Limit"}],
                        "responses": {"404": {"$ref": "#/responses/NotFound"}},
                    }
                }
            },
        )
    )

    operation = converted["paths"]["/files"]["get"]
    assert operation["parameters"] == [
        {"name": "limit", "in": "query", "required": False, "schema": {"type": "integer"}}
    ]
    assert operation["responses"]["404"] == {"description": "missing"}


def test_operation_parameters_override_path_parameters():
    converted = convert_v2_to_v3(
        swagger(
            paths={
                "/files/{id}": {
                    "parameters": [
                        {"name": "id", "in": "path", "type": "string"},
                        {"name": "v", "in": "query", "type": "string", "required": True},
                    ],
                    "get": {
                        "parameters": [{"name": "v", "in": "query", "type": "string"}],
                        "responses": {},
                    },
                }
            }
        )
    )

    item = converted["paths"]["/files/{id}"]
    assert "parameters" not in item
    params = {p["name"]: p for p in item["get"]["parameters"]}
    assert params["id"]["required"] is True
    assert params["v"]["required"] is False


def test_operation_media_types_override_global_ones():
    converted = convert_v2_to_v3(
        swagger(
            produces=["application/json"],
            paths={
                "/report": {
                    "get": {
                        "produces": ["text/csv"],
                        "responses": {"200": {"description": "ok", "schema": {"type": "string"}}},
                    }
                }
            },
        )
    )

    content = converted["paths"]["/report"]["get"]["responses"]["200"]["content"]
    assert list(content) == ["text/csv"]


def test_security_definitions_become_security_schemes():
    converted = convert_v2_to_v3(
        swagger(
            securityDefinitions={
                "basic": {"type": "basic"},
                "key": {"type": "apiKey", "name": "X-Key", "in": "header"},
                "oauth": {
                    "type": "oauth2",
                    "flow": "accessCode",
                    "authorizationUrl": "https://auth/authorize",
                    "tokenUrl": "https://auth/token",
                    "scopes": {"read": "read files"},
                },
            }
        )
    )

    schemes = converted["components"]["securitySchemes"]
    assert schemes["basic"] == {"type": "http", "scheme": "basic"}
    assert schemes["key"] == {"type": "apiKey", "name": "X-Key", "in": "header"}
    assert schemes["oauth"]["flows"]["authorizationCode"]["tokenUrl"] == "https://auth/token"


@pytest.mark.parametrize(
    "paths",
    [
        {"/a": "not a path item"},
        {"/a": {"get": {"parameters": [{"$ref": "#/parameters/Missing"}]}}},
        {"/a": {"get": {"responses": {"200": {"$ref": "#/responses/Missing"}}}}},
    ],
)
def test_malformed_swagger(paths):
    with pytest.raises(SpecParseError):
        convert_v2_to_v3(swagger(paths=paths))

"""Tests for openclient manifest parsing and validation."""

import json

import pytest
from cosmos.core.errors import ManifestParseError, ManifestValidationError
from cosmos.manifest import (
    is_valid_http_method,
    is_valid_path,
    parse_manifest,
    validate_manifest,
)

CHECKOUT_MANIFEST = {
    "dependencies": {
        "inventory": {
            "reasons": ["stock checks"],
            "endpoints": {"/items/{id}": {"GET": {"reasons": ["price lookup"]}}},
        }
    }
}


class TestParseManifest:
    def test_parses_json(self):
        manifest = parse_manifest(json.dumps(CHECKOUT_MANIFEST))

        assert manifest.provider_names == ["inventory"]
        dependency = manifest.dependencies["inventory"]
        assert dependency.reasons == ["stock checks"]
        assert dependency.endpoints["/items/{id}"]["GET"].reasons == ["price lookup"]

    def test_parses_yaml(self):
        manifest = parse_manifest(
            """
dependencies:
  inventory:
    endpoints:
      /items:
        post: {}
"""
        )

        assert manifest.dependencies["inventory"].endpoints["/items"]["post"].reasons == []

    def test_accepts_bytes(self):
        manifest = parse_manifest(json.dumps(CHECKOUT_MANIFEST).encode())
        assert manifest.provider_names == ["inventory"]

    def test_empty_dependencies_are_allowed(self):
        assert parse_manifest('{"dependencies": {}}').dependencies == {}
        assert parse_manifest("{}").dependencies == {}

    def test_yaml_keys_without_values_are_empty(self):
        manifest = parse_manifest(
            """
dependencies:
  inventory:
    reasons:
    endpoints:
      /items:
        GET:
  shipping:
"""
        )

        assert manifest.provider_names == ["inventory", "shipping"]
        assert manifest.dependencies["inventory"].reasons == []
        assert manifest.dependencies["inventory"].endpoints["/items"]["GET"].reasons == []
        assert manifest.dependencies["shipping"].endpoints == {}
        assert parse_manifest("dependencies:\n").dependencies == {}

    def test_empty_document_is_a_parse_error(self):
        with pytest.raises(ManifestParseError, match="empty"):
            parse_manifest("")

    def test_non_mapping_root_is_a_parse_error(self):
        with pytest.raises(ManifestParseError, match="mapping"):
            parse_manifest("[1, 2, 3]")

    def test_broken_text_is_a_parse_error(self):
        with pytest.raises(ManifestParseError):
            parse_manifest("dependencies: [unclosed")

    def test_unknown_keys_are_rejected(self):
        with pytest.raises(ManifestParseError) as exc_info:
            parse_manifest('{"dependencies": {}, "extra": true}')

        assert exc_info.value.details["problems"]

    def test_wrong_shape_is_a_parse_error(self):
        with pytest.raises(ManifestParseError):
            parse_manifest('{"dependencies": {"inventory": {"endpoints": ["/items"]}}}')

    def test_invalid_utf8_is_a_parse_error(self):
        with pytest.raises(ManifestParseError, match="UTF-8"):
            parse_manifest(b"\xff\xfe\x00")


class TestPathRules:
    @pytest.mark.parametrize(
        "path",
        ["/", "/users", "/users/{id}", "/api/v1/users/{userId}/orders/{orderId}", "/a-b_c.d~e"],
    )
    def test_valid_paths(self, path):
        assert is_valid_path(path)

    @pytest.mark.parametrize(
        "path",
        ["users", "/users/{id}x", "/users/{}", "/users/{a}{b}", "/with space", "/über"],
    )
    def test_invalid_paths(self, path):
        assert not is_valid_path(path)

    def test_methods_are_case_insensitive(self):
        assert is_valid_http_method("get")
        assert is_valid_http_method("Patch")
        assert not is_valid_http_method("FETCH")


class TestValidateManifest:
    def test_valid_manifest(self):
        result = validate_manifest(parse_manifest(json.dumps(CHECKOUT_MANIFEST)))

        assert result.valid
        assert result.errors == []
        assert result.dependency_count == 1
        assert result.endpoint_count == 1
        result.raise_for_errors()

    def test_empty_manifest_is_valid(self):
        result = validate_manifest(parse_manifest("{}"))
        assert result.valid
        assert "0 dependencies" in str(result)

    def test_reports_every_violation(self):
        manifest = parse_manifest(
            json.dumps(
                {
                    "dependencies": {
                        "  ": {},
                        "inventory": {
                            "endpoints": {
                                "items": {"GET": {}},
                                "": {"GET": {}},
                                "/items/{id}": {"FETCH": {}, "": {}},
                            }
                        },
                    }
                }
            )
        )

        result = validate_manifest(manifest)

        assert not result.valid
        assert len(result.errors) == 5
        assert "dependency name cannot be empty" in result.errors
        assert any("invalid path 'items'" in e for e in result.errors)
        assert any("endpoint path cannot be empty" in e for e in result.errors)
        assert any("invalid HTTP method 'FETCH'" in e for e in result.errors)
        assert any("endpoint method cannot be empty" in e for e in result.errors)

    def test_self_dependency_is_reported_with_other_violations(self):
        manifest = parse_manifest(
            '{"dependencies": {"checkout": {"endpoints": {"bad path": {"FETCH": {}}}}}}'
        )

        result = validate_manifest(manifest, consumer="checkout")

        assert result.errors[0] == "application 'checkout' cannot declare a dependency on itself"
        assert any("invalid path 'bad path'" in e for e in result.errors)
        assert any("invalid HTTP method 'FETCH'" in e for e in result.errors)
        assert len(result.errors) == 3

    def test_self_dependency_needs_a_consumer(self):
        manifest = parse_manifest('{"dependencies": {"checkout": {}}}')

        assert validate_manifest(manifest).valid
        assert not validate_manifest(manifest, consumer="checkout").valid

    def test_raise_for_errors_carries_all_messages(self):
        manifest = parse_manifest(
            '{"dependencies": {"inventory": {"endpoints": {"x": {"GET": {}}}}}}'
        )

        with pytest.raises(ManifestValidationError) as exc_info:
            validate_manifest(manifest).raise_for_errors()

        assert len(exc_info.value.messages) == 1

    def test_validation_does_not_modify_manifest(self):
        manifest = parse_manifest(json.dumps(CHECKOUT_MANIFEST))
        before = manifest.model_dump()

        validate_manifest(manifest)

        assert manifest.model_dump() == before

"""
OpenClient manifest models.

A manifest lives in the consumer's repository (``docs/openclient.json`` by
default) and declares which provider applications the consumer calls, why,
and through which endpoints::

    {
      "dependencies": {
        "inventory": {
          "reasons": ["stock checks"],
          "endpoints": {
            "/items/{id}": {"GET": {"reasons": ["price lookup"]}}
          }
        }
      }
    }

The models only describe the shape. Path and method rules are enforced by
``cosmos.manifest.validator`` so that every violation can be reported at once.
A key with no value (``dependencies:`` in YAML) reads as an empty container.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _empty_if_none(value: Any, empty: type) -> Any:
    return empty() if value is None else value


def _values_empty_if_none(value: Any) -> Any:
    if isinstance(value, dict):
        return {key: {} if item is None else item for key, item in value.items()}
    return value


class EndpointSpec(BaseModel):
    model_config = ConfigDict(extra="forbid")

    reasons: list[str] = Field(default_factory=list)

    @field_validator("reasons", mode="before")
    @classmethod
    def _reasons(cls, value: Any) -> Any:
        return _empty_if_none(value, list)


class DependencySpec(BaseModel):
    model_config = ConfigDict(extra="forbid")

    reasons: list[str] = Field(default_factory=list)
    # path -> method -> endpoint
    endpoints: dict[str, dict[str, EndpointSpec]] = Field(default_factory=dict)

    @field_validator("reasons", mode="before")
    @classmethod
    def _reasons(cls, value: Any) -> Any:
        return _empty_if_none(value, list)

    @field_validator("endpoints", mode="before")
    @classmethod
    def _endpoints(cls, value: Any) -> Any:
        value = _values_empty_if_none(_empty_if_none(value, dict))
        if isinstance(value, dict):
            return {path: _values_empty_if_none(methods) for path, methods in value.items()}
        return value


class OpenClientManifest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    # provider application name -> dependency
    dependencies: dict[str, DependencySpec] = Field(default_factory=dict)

    @field_validator("dependencies", mode="before")
    @classmethod
    def _dependencies(cls, value: Any) -> Any:
        return _values_empty_if_none(_empty_if_none(value, dict))

    @property
    def provider_names(self) -> list[str]:
        return sorted(self.dependencies)

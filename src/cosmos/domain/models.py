from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class RepositoryCoordinates(BaseModel):
    provider: str = "github"
    owner: str
    repository: str
    branch: str = "main"


class MonitoringSettings(BaseModel):
    openclient_enabled: bool = True
    openclient_path: str = "docs/openclient.json"
    openapi_enabled: bool = True
    openapi_path: str = "docs/openapi.json"


class Application(BaseModel):
    name: str
    description: str = ""
    team: str | None = None
    repository: RepositoryCoordinates | None = None
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)


class EndpointDetails(BaseModel):
    reasons: list[str] = Field(default_factory=list)


# path -> method -> details
Endpoints = dict[str, dict[str, EndpointDetails]]


class DependencyDetails(BaseModel):
    """What a consumer declares about one provider."""

    reasons: list[str] = Field(default_factory=list)
    endpoints: Endpoints = Field(default_factory=dict)


class ApplicationDependency(BaseModel):
    consumer: Application
    provider: Application
    reasons: list[str] = Field(default_factory=list)
    endpoints: Endpoints = Field(default_factory=dict)

    @property
    def key(self) -> tuple[str, str]:
        return (self.consumer.name, self.provider.name)


class ApplicationsInteractions(BaseModel):
    """One-hop neighbourhood of an application, or the whole organization graph."""

    application: str | None = None
    applications: dict[str, Application] = Field(default_factory=dict)
    interactions: list[ApplicationDependency] = Field(default_factory=list)
    consumers: list[str] = Field(default_factory=list)
    providers: list[str] = Field(default_factory=list)


class FileMetadata(BaseModel):
    name: str
    path: str
    size: int = 0
    content_hash: str
    branch: str
    repository: str
    owner: str


class FileContent(BaseModel):
    metadata: FileMetadata
    content: bytes

    @property
    def text(self) -> str:
        return self.content.decode("utf-8")


class SpecSnapshot(BaseModel):
    application: str
    content_hash: str
    document: dict[str, Any]

"""Domain models shared by every Cosmos component."""

from cosmos.domain.models import (
    Application,
    ApplicationDependency,
    ApplicationsInteractions,
    DependencyDetails,
    EndpointDetails,
    Endpoints,
    FileContent,
    FileMetadata,
    MonitoringSettings,
    RepositoryCoordinates,
    SpecSnapshot,
)

__all__ = [
    "Application",
    "ApplicationDependency",
    "ApplicationsInteractions",
    "DependencyDetails",
    "EndpointDetails",
    "Endpoints",
    "FileContent",
    "FileMetadata",
    "MonitoringSettings",
    "RepositoryCoordinates",
    "SpecSnapshot",
]

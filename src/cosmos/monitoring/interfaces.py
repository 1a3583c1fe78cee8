"""
Collaborators of the monitoring orchestrator.

The orchestrator only talks to these abstractions:
- RepositoryReader: reads files from the application's git host
- ApplicationDirectory: resolves application names
- DependencyGraphStore: persists edges and OpenAPI snapshots

Implementations raise ``cosmos.core.errors`` exceptions; they never return
sentinel values for failures.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Iterable, Mapping

from cosmos.domain.models import (
    Application,
    ApplicationDependency,
    DependencyDetails,
    FileContent,
    FileMetadata,
    SpecSnapshot,
)


class RepositoryReader(ABC):
    """Reads files from a git hosting provider."""

    @abstractmethod
    async def get_file_metadata(
        self,
        owner: str,
        repo: str,
        branch: str,
        path: str,
        *,
        token: str | None = None,
    ) -> FileMetadata:
        """
        Look up a file without downloading it.

        Raises:
            RepositoryFileNotFoundError: no such file at owner/repo/branch/path
            RepositoryError: transport or authorization failure
        """

    @abstractmethod
    async def get_file_with_content(
        self,
        owner: str,
        repo: str,
        branch: str,
        path: str,
        *,
        token: str | None = None,
    ) -> FileContent:
        """
        Download a file together with its metadata.

        Raises:
            RepositoryFileNotFoundError: no such file at owner/repo/branch/path
            RepositoryError: transport or authorization failure
        """


class ApplicationDirectory(ABC):
    """Registry of known applications."""

    @abstractmethod
    async def find_by_name(self, name: str) -> Application:
        """Raises ApplicationNotFoundError for unknown names."""

    @abstractmethod
    async def list_applications(self) -> list[Application]:
        """Every registered application, ordered by name."""


class DependencyGraphStore(ABC):
    """
    Persistence for the consumer -> provider graph and OpenAPI snapshots.

    Edges are keyed by (consumer, provider); upserting an edge replaces its
    reasons and endpoints. Each consumer also keeps the hash of the manifest
    its edges were built from. Failures raise StoreError.
    """

    @abstractmethod
    async def upsert_edge(
        self, consumer: Application, provider: Application, details: DependencyDetails
    ) -> ApplicationDependency:
        """Create or replace one edge atomically."""

    @abstractmethod
    async def upsert_edges(
        self,
        consumer: Application,
        edges: Mapping[str, tuple[Application, DependencyDetails]],
    ) -> list[ApplicationDependency]:
        """Create or replace several edges of one consumer as a single unit."""

    @abstractmethod
    async def get_edges_by_consumer(self, consumer: str) -> list[ApplicationDependency]:
        """Edges whose consumer is ``consumer``, ordered by provider."""

    @abstractmethod
    async def get_edges_by_provider(self, provider: str) -> list[ApplicationDependency]:
        """Edges whose provider is ``provider``, ordered by consumer."""

    @abstractmethod
    async def get_edges_involving(self, application: str) -> list[ApplicationDependency]:
        """Edges with ``application`` at either end."""

    @abstractmethod
    async def get_all_edges(self) -> list[ApplicationDependency]:
        """Every stored edge."""

    @abstractmethod
    async def delete_edges(self, consumer: str, providers: Iterable[str]) -> int:
        """Remove the given edges of a consumer; returns how many existed."""

    @abstractmethod
    async def get_manifest_hash(self, consumer: str) -> str | None:
        """Content hash of the consumer's last ingested manifest, or None."""

    @abstractmethod
    async def put_manifest_hash(self, consumer: str, content_hash: str) -> None:
        """Record the manifest the consumer's edges were last built from."""

    @abstractmethod
    async def get_spec_snapshot(self, application: str) -> SpecSnapshot | None:
        """Latest stored OpenAPI snapshot, or None."""

    @abstractmethod
    async def put_spec_snapshot(
        self, application: str, content_hash: str, document: dict[str, Any]
    ) -> SpecSnapshot:
        """Replace the stored snapshot of an application."""

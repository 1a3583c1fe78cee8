from __future__ import annotations

import asyncio
from copy import deepcopy
from typing import Any, Iterable, Mapping

from cosmos.core.errors import ApplicationNotFoundError
from cosmos.domain.mapping import sort_edges
from cosmos.domain.models import (
    Application,
    ApplicationDependency,
    DependencyDetails,
    SpecSnapshot,
)
from cosmos.monitoring.interfaces import ApplicationDirectory, DependencyGraphStore


class InMemoryApplicationDirectory(ApplicationDirectory):
    """Dictionary-backed directory for local development and tests."""

    def __init__(self, applications: Iterable[Application] = ()) -> None:
        self._applications: dict[str, Application] = {app.name: app for app in applications}

    def register(self, application: Application) -> None:
        self._applications[application.name] = application

    async def find_by_name(self, name: str) -> Application:
        try:
            return self._applications[name]
        except KeyError:
            raise ApplicationNotFoundError(name) from None

    async def list_applications(self) -> list[Application]:
        return [self._applications[name] for name in sorted(self._applications)]


class InMemoryGraphStore(DependencyGraphStore):
    """
    Graph store kept in process memory.

    A single asyncio lock serialises mutations so every edge write is atomic
    with respect to concurrent runs; no I/O happens while it is held.
    """

    def __init__(self) -> None:
        self._edges: dict[tuple[str, str], ApplicationDependency] = {}
        self._snapshots: dict[str, SpecSnapshot] = {}
        self._manifest_hashes: dict[str, str] = {}
        self._lock = asyncio.Lock()

    @staticmethod
    def _edge(
        consumer: Application, provider: Application, details: DependencyDetails
    ) -> ApplicationDependency:
        return ApplicationDependency(
            consumer=consumer,
            provider=provider,
            reasons=list(details.reasons),
            endpoints=deepcopy(details.endpoints),
        )

    async def upsert_edge(
        self, consumer: Application, provider: Application, details: DependencyDetails
    ) -> ApplicationDependency:
        edge = self._edge(consumer, provider, details)
        async with self._lock:
            self._edges[edge.key] = edge
        return edge

    async def upsert_edges(
        self,
        consumer: Application,
        edges: Mapping[str, tuple[Application, DependencyDetails]],
    ) -> list[ApplicationDependency]:
        # Build everything first so a bad edge leaves the store untouched
        built = [self._edge(consumer, provider, details) for provider, details in edges.values()]
        async with self._lock:
            for edge in built:
                self._edges[edge.key] = edge
        return sort_edges(built)

    async def get_edges_by_consumer(self, consumer: str) -> list[ApplicationDependency]:
        return sort_edges(e for e in self._edges.values() if e.consumer.name == consumer)

    async def get_edges_by_provider(self, provider: str) -> list[ApplicationDependency]:
        return sort_edges(e for e in self._edges.values() if e.provider.name == provider)

    async def get_edges_involving(self, application: str) -> list[ApplicationDependency]:
        return sort_edges(
            e
            for e in self._edges.values()
            if application in (e.consumer.name, e.provider.name)
        )

    async def get_all_edges(self) -> list[ApplicationDependency]:
        return sort_edges(self._edges.values())

    async def delete_edges(self, consumer: str, providers: Iterable[str]) -> int:
        deleted = 0
        async with self._lock:
            for provider in providers:
                if self._edges.pop((consumer, provider), None) is not None:
                    deleted += 1
        return deleted

    async def get_manifest_hash(self, consumer: str) -> str | None:
        return self._manifest_hashes.get(consumer)

    async def put_manifest_hash(self, consumer: str, content_hash: str) -> None:
        async with self._lock:
            self._manifest_hashes[consumer] = content_hash

    async def get_spec_snapshot(self, application: str) -> SpecSnapshot | None:
        return self._snapshots.get(application)

    async def put_spec_snapshot(
        self, application: str, content_hash: str, document: dict[str, Any]
    ) -> SpecSnapshot:
        snapshot = SpecSnapshot(
            application=application, content_hash=content_hash, document=deepcopy(document)
        )
        async with self._lock:
            self._snapshots[application] = snapshot
        return snapshot

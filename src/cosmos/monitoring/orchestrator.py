"""
Monitoring orchestrator.

One run per application walks these steps, stopping at the first error:

    resolve git coordinates -> fetch manifest metadata -> fetch manifest
    -> validate -> resolve providers -> upsert edges -> record manifest hash
    -> fetch OpenAPI metadata -> fetch OpenAPI spec -> detect and normalize
    -> load previous snapshot -> diff -> persist snapshot

Either half stops early, without writing, when the file is missing or its
content hash matches the one stored by the previous run.

The graph is only written after the manifest has been validated and every
provider resolved in memory, so a failing run leaves no partial update.
Nothing here retries; transient failures are the caller's to retry.
"""

from __future__ import annotations

from typing import Iterable

from cosmos.core.errors import (
    ApplicationNotFoundError,
    DiffError,
    RepositoryError,
    RepositoryFileNotFoundError,
    SpecParseError,
    SpecSnapshotNotFoundError,
)
from cosmos.domain.mapping import (
    filter_edges_by_teams,
    interactions_from_edges,
    manifest_to_details,
)
from cosmos.domain.models import Application, ApplicationsInteractions, SpecSnapshot
from cosmos.logging import application_logger
from cosmos.manifest import parse_manifest, validate_manifest
from cosmos.monitoring.impact import find_impacted_consumers
from cosmos.monitoring.interfaces import (
    ApplicationDirectory,
    DependencyGraphStore,
    RepositoryReader,
)
from cosmos.monitoring.results import DependencyUpdate, MonitoringReport, SpecUpdate
from cosmos.openapi import CompatibilityDiffer, detect_version, document_from_tree, normalize


class MonitoringOrchestrator:
    """
    Keeps the dependency graph and OpenAPI snapshots in sync with repositories.

    Args:
        directory: Resolves application names
        store: Edge and snapshot persistence
        reader: Repository file access
        differ: Compatibility differ (defaults to reporting every severity)
        prune_stale_edges: Delete edges to providers a manifest no longer declares
        token: Credential passed to the repository reader
    """

    def __init__(
        self,
        directory: ApplicationDirectory,
        store: DependencyGraphStore,
        reader: RepositoryReader,
        *,
        differ: CompatibilityDiffer | None = None,
        prune_stale_edges: bool = False,
        token: str | None = None,
    ) -> None:
        self.directory = directory
        self.store = store
        self.reader = reader
        self.differ = differ or CompatibilityDiffer()
        self.prune_stale_edges = prune_stale_edges
        self.token = token

    # Updates

    async def update_application_monitoring(self, name: str) -> MonitoringReport:
        """Refresh both the declared dependencies and the OpenAPI snapshot."""
        application = await self.directory.find_by_name(name)
        log = application_logger(application.name)

        if application.repository is None:
            log.info("monitoring_skipped", reason="no_repository")
            return MonitoringReport(application=application.name, skipped=True)

        dependencies = await self._update_dependencies(application, log)
        openapi = await self._update_openapi(application, log)

        log.info(
            "monitoring_completed",
            providers=len(dependencies.providers),
            changes=len(openapi.changes),
            impacted=len(openapi.impacted),
        )
        return MonitoringReport(
            application=application.name, dependencies=dependencies, openapi=openapi
        )

    async def update_application_dependencies(self, name: str) -> DependencyUpdate:
        application = await self.directory.find_by_name(name)
        log = application_logger(application.name)
        if application.repository is None:
            log.info("monitoring_skipped", reason="no_repository")
            return DependencyUpdate(application=application.name, skipped=True)
        return await self._update_dependencies(application, log)

    async def update_application_openapi(self, name: str) -> SpecUpdate:
        application = await self.directory.find_by_name(name)
        log = application_logger(application.name)
        if application.repository is None:
            log.info("monitoring_skipped", reason="no_repository")
            return SpecUpdate(application=application.name, skipped=True)
        return await self._update_openapi(application, log)

    async def _resolve_providers(
        self, consumer: Application, names: Iterable[str]
    ) -> dict[str, Application]:
        resolved: dict[str, Application] = {}
        missing: list[str] = []
        for name in names:
            try:
                resolved[name] = await self.directory.find_by_name(name)
            except ApplicationNotFoundError:
                missing.append(name)

        if missing:
            raise ApplicationNotFoundError(missing, {"consumer": consumer.name})
        return resolved

    async def _update_dependencies(self, application: Application, log) -> DependencyUpdate:
        if not application.monitoring.openclient_enabled:
            log.info("openclient_monitoring_disabled")
            return DependencyUpdate(application=application.name, skipped=True)

        repo = application.repository
        assert repo is not None
        path = application.monitoring.openclient_path

        try:
            metadata = await self.reader.get_file_metadata(
                repo.owner, repo.repository, repo.branch, path, token=self.token
            )
        except RepositoryFileNotFoundError:
            log.info("manifest_not_found", path=path, branch=repo.branch)
            return DependencyUpdate(application=application.name, manifest_found=False)

        if await self.store.get_manifest_hash(application.name) == metadata.content_hash:
            log.info("manifest_unchanged", content_hash=metadata.content_hash)
            return DependencyUpdate(
                application=application.name,
                manifest_found=True,
                unchanged=True,
                content_hash=metadata.content_hash,
            )

        file = await self.reader.get_file_with_content(
            repo.owner, repo.repository, repo.branch, path, token=self.token
        )
        if file.metadata.content_hash != metadata.content_hash:
            raise RepositoryError(
                "manifest changed between metadata and content fetch",
                {"expected": metadata.content_hash, "actual": file.metadata.content_hash},
            )

        manifest = parse_manifest(file.content)
        validate_manifest(manifest, consumer=application.name).raise_for_errors()

        providers = await self._resolve_providers(application, manifest.provider_names)
        details = manifest_to_details(manifest)
        edges = {name: (providers[name], details[name]) for name in manifest.provider_names}

        if edges:
            await self.store.upsert_edges(application, edges)

        pruned: list[str] = []
        if self.prune_stale_edges:
            current = await self.store.get_edges_by_consumer(application.name)
            pruned = [e.provider.name for e in current if e.provider.name not in edges]
            if pruned:
                await self.store.delete_edges(application.name, pruned)
                log.info("stale_edges_pruned", providers=pruned)

        await self.store.put_manifest_hash(application.name, metadata.content_hash)

        log.info(
            "dependencies_updated",
            providers=manifest.provider_names,
            content_hash=metadata.content_hash,
        )
        return DependencyUpdate(
            application=application.name,
            manifest_found=True,
            content_hash=metadata.content_hash,
            providers=manifest.provider_names,
            pruned=pruned,
        )

    async def _update_openapi(self, application: Application, log) -> SpecUpdate:
        if not application.monitoring.openapi_enabled:
            log.info("openapi_monitoring_disabled")
            return SpecUpdate(application=application.name, skipped=True)

        repo = application.repository
        assert repo is not None
        path = application.monitoring.openapi_path

        try:
            metadata = await self.reader.get_file_metadata(
                repo.owner, repo.repository, repo.branch, path, token=self.token
            )
        except RepositoryFileNotFoundError:
            log.info("openapi_not_found", path=path, branch=repo.branch)
            return SpecUpdate(application=application.name, spec_found=False)

        previous = await self.store.get_spec_snapshot(application.name)
        if previous is not None and previous.content_hash == metadata.content_hash:
            log.info("openapi_unchanged", content_hash=metadata.content_hash)
            return SpecUpdate(
                application=application.name,
                spec_found=True,
                unchanged=True,
                content_hash=metadata.content_hash,
            )

        file = await self.reader.get_file_with_content(
            repo.owner, repo.repository, repo.branch, path, token=self.token
        )
        if file.metadata.content_hash != metadata.content_hash:
            raise RepositoryError(
                "OpenAPI file changed between metadata and content fetch",
                {"expected": metadata.content_hash, "actual": file.metadata.content_hash},
            )

        version = detect_version(file.content)
        document = normalize(file.content, version)

        changes = []
        if previous is not None:
            try:
                old_document = document_from_tree(previous.document)
            except SpecParseError as e:
                raise DiffError(
                    f"stored OpenAPI snapshot for '{application.name}' cannot be loaded: {e}"
                ) from e
            changes = self.differ.compare(old_document, document)

        await self.store.put_spec_snapshot(application.name, metadata.content_hash, document.tree)

        impacted = []
        if changes:
            consumers = await self.store.get_edges_by_provider(application.name)
            impacted = find_impacted_consumers(changes, consumers)
            for item in impacted:
                log.warning(
                    "consumer_impacted",
                    consumer=item.consumer,
                    path=item.path,
                    method=item.method,
                    kind=item.change.kind,
                    severity=item.change.severity.value,
                )

        log.info(
            "openapi_updated",
            content_hash=metadata.content_hash,
            source_version=version,
            first_snapshot=previous is None,
            changes=len(changes),
        )
        return SpecUpdate(
            application=application.name,
            spec_found=True,
            first_snapshot=previous is None,
            content_hash=metadata.content_hash,
            source_version=version,
            changes=changes,
            impacted=impacted,
        )

    # Queries

    async def get_application_interactions(self, name: str) -> ApplicationsInteractions:
        """One-hop neighbourhood of an application."""
        application = await self.directory.find_by_name(name)
        edges = await self.store.get_edges_involving(application.name)
        return interactions_from_edges(edges, anchor=application)

    async def get_applications_interactions(
        self,
        teams: Iterable[str] | None = None,
        include_neighbors: bool = False,
    ) -> ApplicationsInteractions:
        """Organization-wide graph, optionally restricted to some teams."""
        edges = await self.store.get_all_edges()
        if teams:
            edges = filter_edges_by_teams(edges, teams, include_neighbors)
        return interactions_from_edges(edges)

    async def get_application_openapi(self, name: str) -> SpecSnapshot:
        application = await self.directory.find_by_name(name)
        snapshot = await self.store.get_spec_snapshot(application.name)
        if snapshot is None:
            raise SpecSnapshotNotFoundError(
                f"no OpenAPI snapshot stored for application '{application.name}'"
            )
        return snapshot

    async def list_monitored_applications(self) -> list[Application]:
        """Applications with repository coordinates."""
        return [app for app in await self.directory.list_applications() if app.repository]

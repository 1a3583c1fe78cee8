from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, Iterable, Mapping

import structlog
from sqlalchemy import delete, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cosmos.core.errors import ApplicationNotFoundError, StoreError
from cosmos.db import models as db_models
from cosmos.domain.mapping import (
    application_from_row,
    application_to_row_values,
    dependency_from_row,
    endpoints_to_json,
    sort_edges,
)
from cosmos.domain.models import (
    Application,
    ApplicationDependency,
    DependencyDetails,
    SpecSnapshot,
)
from cosmos.monitoring.interfaces import ApplicationDirectory, DependencyGraphStore

logger = structlog.get_logger()


@asynccontextmanager
async def _store_errors(session: AsyncSession, operation: str) -> AsyncIterator[None]:
    """Roll back and surface database failures as StoreError."""
    try:
        yield
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error("store_operation_failed", operation=operation, error=str(e))
        raise StoreError(f"{operation} failed: {e}", {"operation": operation}) from e


def _application_id(name: str):
    return (
        select(db_models.ApplicationModel.id)
        .where(db_models.ApplicationModel.name == name)
        .scalar_subquery()
    )


@dataclass(slots=True)
class ApplicationRepository(ApplicationDirectory):
    """Application directory stored in the ``applications`` table."""

    session: AsyncSession

    async def find_by_name(self, name: str) -> Application:
        async with _store_errors(self.session, "find_application"):
            row = await self._get(name)
        if row is None:
            raise ApplicationNotFoundError(name)
        return application_from_row(row)

    async def list_applications(self) -> list[Application]:
        stmt = select(db_models.ApplicationModel).order_by(db_models.ApplicationModel.name)
        async with _store_errors(self.session, "list_applications"):
            result = await self.session.execute(stmt)
            return [application_from_row(row) for row in result.scalars().all()]

    async def save(self, application: Application) -> Application:
        """Insert or update an application by name."""
        values = application_to_row_values(application)
        async with _store_errors(self.session, "save_application"):
            row = await self._get(application.name)
            if row is None:
                self.session.add(db_models.ApplicationModel(**values))
            else:
                for key, value in values.items():
                    setattr(row, key, value)
            await self.session.commit()
        return application

    async def _get(self, name: str) -> db_models.ApplicationModel | None:
        stmt = select(db_models.ApplicationModel).where(db_models.ApplicationModel.name == name)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()


@dataclass(slots=True)
class DependencyGraphRepository(DependencyGraphStore):
    """Dependency graph and OpenAPI snapshots stored in SQL."""

    session: AsyncSession

    async def _application_ids(self, names: Iterable[str]) -> dict[str, int]:
        wanted = set(names)
        stmt = select(db_models.ApplicationModel.name, db_models.ApplicationModel.id).where(
            db_models.ApplicationModel.name.in_(wanted)
        )
        result = await self.session.execute(stmt)
        ids = {name: app_id for name, app_id in result.all()}
        missing = wanted - ids.keys()
        if missing:
            raise ApplicationNotFoundError(sorted(missing))
        return ids

    async def upsert_edge(
        self, consumer: Application, provider: Application, details: DependencyDetails
    ) -> ApplicationDependency:
        edges = await self.upsert_edges(consumer, {provider.name: (provider, details)})
        return edges[0]

    async def upsert_edges(
        self,
        consumer: Application,
        edges: Mapping[str, tuple[Application, DependencyDetails]],
    ) -> list[ApplicationDependency]:
        if not edges:
            return []

        dep = db_models.ApplicationDependencyModel
        async with _store_errors(self.session, "upsert_edges"):
            ids = await self._application_ids([consumer.name, *edges])
            consumer_id = ids[consumer.name]
            stmt = select(dep).where(
                dep.consumer_id == consumer_id,
                dep.provider_id.in_([ids[name] for name in edges]),
            )
            result = await self.session.execute(stmt)
            existing = {row.provider_id: row for row in result.scalars().all()}

            for name, (_, details) in edges.items():
                reasons = list(details.reasons)
                endpoints = endpoints_to_json(details.endpoints)
                row = existing.get(ids[name])
                if row is None:
                    self.session.add(
                        dep(
                            consumer_id=consumer_id,
                            provider_id=ids[name],
                            reasons=reasons,
                            endpoints=endpoints,
                        )
                    )
                else:
                    row.reasons = reasons
                    row.endpoints = endpoints
            await self.session.commit()

        logger.debug("edges_upserted", consumer=consumer.name, providers=sorted(edges))
        return sort_edges(
            ApplicationDependency(
                consumer=consumer,
                provider=provider,
                reasons=list(details.reasons),
                endpoints=details.endpoints,
            )
            for provider, details in edges.values()
        )

    async def _select_edges(self, *conditions: Any) -> list[ApplicationDependency]:
        stmt = (
            select(db_models.ApplicationDependencyModel)
            .where(*conditions)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return sort_edges(dependency_from_row(row) for row in result.scalars().all())

    async def get_edges_by_consumer(self, consumer: str) -> list[ApplicationDependency]:
        dep = db_models.ApplicationDependencyModel
        async with _store_errors(self.session, "get_edges_by_consumer"):
            return await self._select_edges(dep.consumer_id == _application_id(consumer))

    async def get_edges_by_provider(self, provider: str) -> list[ApplicationDependency]:
        dep = db_models.ApplicationDependencyModel
        async with _store_errors(self.session, "get_edges_by_provider"):
            return await self._select_edges(dep.provider_id == _application_id(provider))

    async def get_edges_involving(self, application: str) -> list[ApplicationDependency]:
        dep = db_models.ApplicationDependencyModel
        app_id = _application_id(application)
        async with _store_errors(self.session, "get_edges_involving"):
            return await self._select_edges(
                or_(dep.consumer_id == app_id, dep.provider_id == app_id)
            )

    async def get_all_edges(self) -> list[ApplicationDependency]:
        async with _store_errors(self.session, "get_all_edges"):
            return await self._select_edges()

    async def delete_edges(self, consumer: str, providers: Iterable[str]) -> int:
        names = list(providers)
        if not names:
            return 0

        dep = db_models.ApplicationDependencyModel
        provider_ids = select(db_models.ApplicationModel.id).where(
            db_models.ApplicationModel.name.in_(names)
        )
        stmt = delete(dep).where(
            dep.consumer_id == _application_id(consumer),
            dep.provider_id.in_(provider_ids),
        )
        async with _store_errors(self.session, "delete_edges"):
            result = await self.session.execute(stmt)
            await self.session.commit()

        deleted = result.rowcount or 0  # type: ignore[attr-defined]
        logger.debug("edges_deleted", consumer=consumer, providers=names, deleted=deleted)
        return deleted

    async def get_manifest_hash(self, consumer: str) -> str | None:
        app = db_models.ApplicationModel
        stmt = select(app.manifest_hash).where(app.name == consumer)
        async with _store_errors(self.session, "get_manifest_hash"):
            result = await self.session.execute(stmt)
            return result.scalar_one_or_none()

    async def put_manifest_hash(self, consumer: str, content_hash: str) -> None:
        app = db_models.ApplicationModel
        stmt = update(app).where(app.name == consumer).values(manifest_hash=content_hash)
        async with _store_errors(self.session, "put_manifest_hash"):
            result = await self.session.execute(stmt)
            await self.session.commit()

        if not result.rowcount:  # type: ignore[attr-defined]
            raise ApplicationNotFoundError(consumer)
        logger.debug("manifest_hash_stored", consumer=consumer, content_hash=content_hash)

    async def _get_snapshot_row(self, application: str) -> db_models.SpecSnapshotModel | None:
        spec = db_models.SpecSnapshotModel
        stmt = select(spec).where(spec.application_id == _application_id(application))
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_spec_snapshot(self, application: str) -> SpecSnapshot | None:
        async with _store_errors(self.session, "get_spec_snapshot"):
            row = await self._get_snapshot_row(application)
        if row is None:
            return None
        return SpecSnapshot(
            application=application, content_hash=row.content_hash, document=row.document
        )

    async def put_spec_snapshot(
        self, application: str, content_hash: str, document: dict[str, Any]
    ) -> SpecSnapshot:
        async with _store_errors(self.session, "put_spec_snapshot"):
            row = await self._get_snapshot_row(application)
            if row is None:
                ids = await self._application_ids([application])
                self.session.add(
                    db_models.SpecSnapshotModel(
                        application_id=ids[application],
                        content_hash=content_hash,
                        document=document,
                    )
                )
            else:
                row.content_hash = content_hash
                row.document = document
            await self.session.commit()

        logger.debug("spec_snapshot_stored", application=application, content_hash=content_hash)
        return SpecSnapshot(application=application, content_hash=content_hash, document=document)

from __future__ import annotations

from collections.abc import AsyncIterator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from cosmos.clients.github import GitHubRepositoryReader
from cosmos.config import Settings, get_settings
from cosmos.db.repositories import ApplicationRepository, DependencyGraphRepository
from cosmos.db.session import get_session
from cosmos.monitoring import MonitoringOrchestrator, RepositoryReader
from cosmos.openapi import CompatibilityDiffer


async def session_dependency() -> AsyncIterator[AsyncSession]:
    async for session in get_session():
        yield session


_repository_reader: GitHubRepositoryReader | None = None


def get_repository_reader(
    settings: Settings = Depends(get_settings),  # noqa: B008
) -> RepositoryReader:
    """Process-wide reader so its per-token client cache is shared across requests."""
    global _repository_reader

    if _repository_reader is None:
        _repository_reader = GitHubRepositoryReader.from_settings(settings)
    return _repository_reader


def get_orchestrator(
    session: AsyncSession = Depends(session_dependency),  # noqa: B008
    reader: RepositoryReader = Depends(get_repository_reader),  # noqa: B008
    settings: Settings = Depends(get_settings),  # noqa: B008
) -> MonitoringOrchestrator:
    return MonitoringOrchestrator(
        ApplicationRepository(session),
        DependencyGraphRepository(session),
        reader,
        differ=CompatibilityDiffer(settings.diff_min_severity),
        prune_stale_edges=settings.prune_stale_edges,
    )

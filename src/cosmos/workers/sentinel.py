"""
Sentinel: periodic re-monitoring of every application with repository coordinates.

Each sweep fans the applications out to a fixed number of asyncio workers.
Every run gets a fresh orchestrator (and so its own database session) and a
deadline. Transient repository and store failures are retried here, with
exponential backoff; the orchestrator itself never retries.
"""

from __future__ import annotations

import asyncio
import contextlib
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Callable

import structlog
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from cosmos.config import Settings
from cosmos.core.errors import CosmosError, RepositoryError, StoreError
from cosmos.db.repositories import ApplicationRepository, DependencyGraphRepository
from cosmos.db.session import get_session_factory
from cosmos.monitoring import MonitoringOrchestrator, MonitoringReport, RepositoryReader
from cosmos.openapi import CompatibilityDiffer

logger = structlog.get_logger()

OrchestratorFactory = Callable[[], AbstractAsyncContextManager[MonitoringOrchestrator]]

TRANSIENT_ERRORS = (RepositoryError, StoreError)


@dataclass
class SweepSummary:
    """Outcome of one sweep over all monitored applications."""

    succeeded: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return len(self.succeeded) + len(self.skipped) + len(self.failed)

    @property
    def ok(self) -> bool:
        return not self.failed

    def to_dict(self) -> dict[str, Any]:
        return {
            "succeeded": sorted(self.succeeded),
            "skipped": sorted(self.skipped),
            "failed": dict(sorted(self.failed.items())),
        }


class Sentinel:
    def __init__(
        self,
        orchestrator_factory: OrchestratorFactory,
        *,
        interval: float = 300,
        worker_count: int = 4,
        max_attempts: int = 3,
        run_timeout: float = 120.0,
        retry_wait: float = 1.0,
    ) -> None:
        self.orchestrator_factory = orchestrator_factory
        self.interval = interval
        self.worker_count = max(1, worker_count)
        self.max_attempts = max(1, max_attempts)
        self.run_timeout = run_timeout
        self.retry_wait = retry_wait

    @classmethod
    def from_settings(
        cls, settings: Settings, orchestrator_factory: OrchestratorFactory
    ) -> Sentinel:
        return cls(
            orchestrator_factory,
            interval=settings.sentinel_interval,
            worker_count=settings.sentinel_workers,
            max_attempts=settings.sentinel_max_attempts,
            run_timeout=settings.monitoring_run_timeout,
            retry_wait=settings.sentinel_retry_wait,
        )

    async def _run(self, name: str) -> MonitoringReport:
        async with self.orchestrator_factory() as orchestrator:
            return await asyncio.wait_for(
                orchestrator.update_application_monitoring(name), timeout=self.run_timeout
            )

    async def monitor(self, name: str) -> MonitoringReport:
        """Monitor one application, retrying transient failures."""
        retrying = AsyncRetrying(
            retry=retry_if_exception_type(TRANSIENT_ERRORS),
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.retry_wait, max=30),
            before_sleep=lambda state: logger.warning(
                "monitoring_retry",
                application=name,
                attempt=state.attempt_number,
                error=str(state.outcome.exception()) if state.outcome else None,
            ),
            reraise=True,
        )
        return await retrying(self._run, name)

    async def run_once(self) -> SweepSummary:
        """Sweep every monitored application once."""
        async with self.orchestrator_factory() as orchestrator:
            applications = await orchestrator.list_monitored_applications()

        queue: asyncio.Queue[str] = asyncio.Queue()
        for application in applications:
            queue.put_nowait(application.name)

        summary = SweepSummary()
        logger.info("sweep_started", applications=len(applications), workers=self.worker_count)

        async def worker() -> None:
            while True:
                try:
                    name = queue.get_nowait()
                except asyncio.QueueEmpty:
                    return
                try:
                    report = await self.monitor(name)
                except CosmosError as e:
                    logger.error(
                        "monitoring_failed",
                        application=name,
                        error_type=type(e).__name__,
                        kind=e.kind.value,
                        error=e.message,
                    )
                    summary.failed[name] = e.message
                except TimeoutError:
                    logger.error("monitoring_timed_out", application=name, timeout=self.run_timeout)
                    summary.failed[name] = f"timed out after {self.run_timeout}s"
                except Exception as e:
                    logger.exception("monitoring_crashed", application=name)
                    summary.failed[name] = str(e) or type(e).__name__
                else:
                    (summary.skipped if report.skipped else summary.succeeded).append(name)
                finally:
                    queue.task_done()

        await asyncio.gather(*(worker() for _ in range(self.worker_count)))

        summary.succeeded.sort()
        summary.skipped.sort()
        logger.info(
            "sweep_completed",
            succeeded=len(summary.succeeded),
            skipped=len(summary.skipped),
            failed=len(summary.failed),
        )
        return summary

    async def run_forever(self, stop_event: asyncio.Event) -> None:
        """Sweep every ``interval`` seconds until ``stop_event`` is set."""
        while not stop_event.is_set():
            await self.run_once()
            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(stop_event.wait(), timeout=self.interval)
        logger.info("sentinel_stopped")


def database_orchestrator_factory(
    settings: Settings, reader: RepositoryReader
) -> OrchestratorFactory:
    """Factory giving every run its own session-backed orchestrator."""

    @asynccontextmanager
    async def factory() -> AsyncIterator[MonitoringOrchestrator]:
        async with get_session_factory()() as session:
            yield MonitoringOrchestrator(
                ApplicationRepository(session),
                DependencyGraphRepository(session),
                reader,
                differ=CompatibilityDiffer(settings.diff_min_severity),
                prune_stale_edges=settings.prune_stale_edges,
            )

    return factory

"""
CLI command running the sentinel against the configured database and GitHub.
"""

from __future__ import annotations

import asyncio
import signal

from cosmos.cli.ux import error, header, print_table, success
from cosmos.clients.github import GitHubRepositoryReader
from cosmos.config import get_settings
from cosmos.core.errors import ConfigurationError, ExitCode
from cosmos.db.session import dispose_engine, init_engine
from cosmos.workers.sentinel import Sentinel, SweepSummary, database_orchestrator_factory


def _print_summary(summary: SweepSummary) -> None:
    rows = [[name, "ok"] for name in summary.succeeded]
    rows += [[name, "skipped"] for name in summary.skipped]
    rows += [[name, f"failed: {message}"] for name, message in sorted(summary.failed.items())]
    print_table("Sweep", ["Application", "Result"], rows)


async def _run(once: bool) -> SweepSummary | None:
    settings = get_settings()
    init_engine(settings)
    reader = GitHubRepositoryReader.from_settings(settings)
    sentinel = Sentinel.from_settings(settings, database_orchestrator_factory(settings, reader))

    try:
        if once:
            return await sentinel.run_once()

        stop_event = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, stop_event.set)
        await sentinel.run_forever(stop_event)
        return None
    finally:
        await dispose_engine()


def sentinel_command(once: bool = False) -> int:
    """Run one sweep (``once``) or sweep until interrupted."""
    if not get_settings().sentinel_enabled:
        raise ConfigurationError("sentinel is disabled (COSMOS_SENTINEL_ENABLED=false)")

    if not once:
        header("Cosmos Sentinel")

    summary = asyncio.run(_run(once))
    if summary is None:
        return ExitCode.SUCCESS

    _print_summary(summary)
    if not summary.ok:
        error(f"{len(summary.failed)} of {summary.total} application(s) failed")
        return ExitCode.PROVIDER_ERROR
    success(f"{summary.total} application(s) swept")
    return ExitCode.SUCCESS

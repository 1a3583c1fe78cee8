"""
Application monitoring: dependency ingestion, OpenAPI snapshots and queries.
"""

from cosmos.monitoring.impact import find_impacted_consumers
from cosmos.monitoring.interfaces import (
    ApplicationDirectory,
    DependencyGraphStore,
    RepositoryReader,
)
from cosmos.monitoring.memory import InMemoryApplicationDirectory, InMemoryGraphStore
from cosmos.monitoring.orchestrator import MonitoringOrchestrator
from cosmos.monitoring.results import (
    DependencyUpdate,
    ImpactedConsumer,
    MonitoringReport,
    SpecUpdate,
)

__all__ = [
    "ApplicationDirectory",
    "DependencyGraphStore",
    "DependencyUpdate",
    "ImpactedConsumer",
    "InMemoryApplicationDirectory",
    "InMemoryGraphStore",
    "MonitoringOrchestrator",
    "MonitoringReport",
    "RepositoryReader",
    "SpecUpdate",
    "find_impacted_consumers",
]

"""Outcomes of monitoring runs."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from cosmos.openapi.changes import CompatibilityChange, Severity, count_by_severity


@dataclass
class DependencyUpdate:
    """Outcome of ingesting one consumer's manifest."""

    application: str
    skipped: bool = False
    manifest_found: bool = False
    unchanged: bool = False
    content_hash: str | None = None
    providers: list[str] = field(default_factory=list)
    pruned: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "application": self.application,
            "skipped": self.skipped,
            "manifest_found": self.manifest_found,
            "unchanged": self.unchanged,
            "content_hash": self.content_hash,
            "providers": list(self.providers),
            "pruned": list(self.pruned),
        }


@dataclass
class ImpactedConsumer:
    """A consumer that declared an endpoint touched by a change."""

    consumer: str
    provider: str
    path: str
    method: str
    change: CompatibilityChange

    def to_dict(self) -> dict[str, Any]:
        return {
            "consumer": self.consumer,
            "provider": self.provider,
            "path": self.path,
            "method": self.method,
            "change": self.change.to_dict(),
        }


@dataclass
class SpecUpdate:
    """Outcome of refreshing one provider's OpenAPI snapshot."""

    application: str
    skipped: bool = False
    spec_found: bool = False
    unchanged: bool = False
    first_snapshot: bool = False
    content_hash: str | None = None
    source_version: int | None = None
    changes: list[CompatibilityChange] = field(default_factory=list)
    impacted: list[ImpactedConsumer] = field(default_factory=list)

    @property
    def breaking_changes(self) -> list[CompatibilityChange]:
        return [c for c in self.changes if c.severity == Severity.BREAKING]

    @property
    def has_breaking_changes(self) -> bool:
        return bool(self.breaking_changes)

    def to_dict(self) -> dict[str, Any]:
        return {
            "application": self.application,
            "skipped": self.skipped,
            "spec_found": self.spec_found,
            "unchanged": self.unchanged,
            "first_snapshot": self.first_snapshot,
            "content_hash": self.content_hash,
            "source_version": self.source_version,
            "summary": count_by_severity(self.changes),
            "changes": [c.to_dict() for c in self.changes],
            "impacted": [i.to_dict() for i in self.impacted],
        }


@dataclass
class MonitoringReport:
    """Combined outcome of one ``update_application_monitoring`` run."""

    application: str
    skipped: bool = False
    dependencies: DependencyUpdate | None = None
    openapi: SpecUpdate | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "application": self.application,
            "skipped": self.skipped,
            "dependencies": self.dependencies.to_dict() if self.dependencies else None,
            "openapi": self.openapi.to_dict() if self.openapi else None,
        }

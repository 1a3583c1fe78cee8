"""
Compatibility change records produced by the differ.

Severities:
- info: additive or relaxing changes, safe for every consumer
- warning: changes that may affect some consumers (lost optional data)
- breaking: changes that break existing consumers
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any


class Severity(StrEnum):
    """Change severity levels, ordered from least to most severe."""

    INFO = "info"
    WARNING = "warning"
    BREAKING = "breaking"

    @property
    def rank(self) -> int:
        return SEVERITY_ORDER.index(self)

    def at_least(self, other: Severity | str) -> bool:
        return self.rank >= Severity(other).rank


SEVERITY_ORDER: tuple[Severity, ...] = (Severity.INFO, Severity.WARNING, Severity.BREAKING)


@dataclass(frozen=True)
class CompatibilityChange:
    """One categorized difference between two versions of an API."""

    kind: str
    severity: Severity
    path: str
    method: str
    description: str
    location: str = ""

    @property
    def sort_key(self) -> tuple[str, str, str, str, str]:
        return (self.path, self.method, self.kind, self.location, self.description)

    def to_dict(self) -> dict[str, Any]:
        return {
            "severity": self.severity.value,
            "path": self.path,
            "method": self.method,
            "description": self.description,
            "kind": self.kind,
            "location": self.location,
        }


def count_by_severity(changes: list[CompatibilityChange]) -> dict[str, int]:
    counts = {severity.value: 0 for severity in SEVERITY_ORDER}
    for change in changes:
        counts[change.severity.value] += 1
    return counts

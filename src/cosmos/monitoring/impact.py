"""
Impact analysis: which consumers are affected by a provider's API changes.

A consumer is affected when its manifest declares the endpoint a change
touches. Paths are compared as templates (parameter names erased) and
methods case-insensitively.
"""

from __future__ import annotations

from typing import Iterable

from cosmos.domain.mapping import path_template
from cosmos.domain.models import ApplicationDependency
from cosmos.monitoring.results import ImpactedConsumer
from cosmos.openapi.changes import CompatibilityChange, Severity


def find_impacted_consumers(
    changes: Iterable[CompatibilityChange],
    edges: Iterable[ApplicationDependency],
    min_severity: Severity = Severity.WARNING,
) -> list[ImpactedConsumer]:
    """
    Pair changes at or above ``min_severity`` with the consumers that use them.

    Args:
        changes: Changes of one provider's API
        edges: Edges whose provider is that API's application

    Returns:
        Impacted consumers ordered by consumer, then change
    """
    # (template, METHOD) -> [(edge, declared path, declared method)]
    declared: dict[tuple[str, str], list[tuple[ApplicationDependency, str, str]]] = {}
    for edge in edges:
        for path, methods in edge.endpoints.items():
            for method in methods:
                key = (path_template(path), method.upper())
                declared.setdefault(key, []).append((edge, path, method))

    impacted = []
    for change in changes:
        if not change.severity.at_least(min_severity):
            continue
        for edge, path, method in declared.get((path_template(change.path), change.method), []):
            impacted.append(
                ImpactedConsumer(
                    consumer=edge.consumer.name,
                    provider=edge.provider.name,
                    path=path,
                    method=method,
                    change=change,
                )
            )

    return sorted(impacted, key=lambda item: (item.consumer, item.change.sort_key))

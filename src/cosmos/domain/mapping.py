"""
Mapping between representations of the same entity.

Manifest entries, domain models, persisted rows and JSON trees are converted
here and nowhere else. Everything in this module is a pure function.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any, Iterable, Mapping

from cosmos.domain.models import (
    Application,
    ApplicationDependency,
    ApplicationsInteractions,
    DependencyDetails,
    EndpointDetails,
    Endpoints,
    MonitoringSettings,
    RepositoryCoordinates,
)
from cosmos.manifest.models import DependencySpec, OpenClientManifest

if TYPE_CHECKING:
    from cosmos.db import models as db_models

_PATH_PARAM_RE = re.compile(r"\{[^/{}]*\}")


def unique_reasons(reasons: Iterable[str]) -> list[str]:
    """Collapse duplicated reasons, keeping first-seen order."""
    seen: dict[str, None] = {}
    for reason in reasons:
        seen.setdefault(reason, None)
    return list(seen)


def path_template(path: str) -> str:
    """Erase path parameter names so /users/{id} and /users/{userId} compare equal."""
    return _PATH_PARAM_RE.sub("{}", path)


def path_parameter_names(path: str) -> list[str]:
    """Parameter names of a path template in order of appearance."""
    return [match[1:-1] for match in _PATH_PARAM_RE.findall(path)]


# Manifest -> domain


def dependency_details_from_spec(spec: DependencySpec) -> DependencyDetails:
    endpoints: Endpoints = {}
    for path, methods in spec.endpoints.items():
        endpoints[path] = {
            method: EndpointDetails(reasons=unique_reasons(endpoint.reasons))
            for method, endpoint in methods.items()
        }
    return DependencyDetails(reasons=unique_reasons(spec.reasons), endpoints=endpoints)


def manifest_to_details(manifest: OpenClientManifest) -> dict[str, DependencyDetails]:
    """Per-provider edge payloads declared by a manifest."""
    return {
        provider: dependency_details_from_spec(spec)
        for provider, spec in manifest.dependencies.items()
    }


# Endpoints <-> JSON


def endpoints_to_json(endpoints: Endpoints) -> dict[str, dict[str, dict[str, list[str]]]]:
    return {
        path: {method: {"reasons": list(details.reasons)} for method, details in methods.items()}
        for path, methods in endpoints.items()
    }


def endpoints_from_json(data: Mapping[str, Any] | None) -> Endpoints:
    endpoints: Endpoints = {}
    for path, methods in (data or {}).items():
        endpoints[path] = {
            method: EndpointDetails(reasons=list((details or {}).get("reasons") or []))
            for method, details in (methods or {}).items()
        }
    return endpoints


# Rows -> domain


def application_from_row(row: db_models.ApplicationModel) -> Application:
    repository = None
    if row.git_owner or row.git_repository:
        repository = RepositoryCoordinates(
            provider=row.git_provider or "github",
            owner=row.git_owner or "",
            repository=row.git_repository or "",
            branch=row.git_branch or "main",
        )

    monitoring = MonitoringSettings(
        openclient_enabled=row.openclient_enabled,
        openapi_enabled=row.openapi_enabled,
    )
    if row.openclient_path:
        monitoring.openclient_path = row.openclient_path
    if row.openapi_path:
        monitoring.openapi_path = row.openapi_path

    return Application(
        name=row.name,
        description=row.description or "",
        team=row.team,
        repository=repository,
        monitoring=monitoring,
    )


def application_to_row_values(application: Application) -> dict[str, Any]:
    repo = application.repository
    return {
        "name": application.name,
        "description": application.description,
        "team": application.team,
        "git_provider": repo.provider if repo else None,
        "git_owner": repo.owner if repo else None,
        "git_repository": repo.repository if repo else None,
        "git_branch": repo.branch if repo else None,
        "openclient_enabled": application.monitoring.openclient_enabled,
        "openclient_path": application.monitoring.openclient_path,
        "openapi_enabled": application.monitoring.openapi_enabled,
        "openapi_path": application.monitoring.openapi_path,
    }


def dependency_from_row(row: db_models.ApplicationDependencyModel) -> ApplicationDependency:
    return ApplicationDependency(
        consumer=application_from_row(row.consumer),
        provider=application_from_row(row.provider),
        reasons=list(row.reasons or []),
        endpoints=endpoints_from_json(row.endpoints),
    )


# Edges -> interactions


def sort_edges(edges: Iterable[ApplicationDependency]) -> list[ApplicationDependency]:
    return sorted(edges, key=lambda edge: edge.key)


def interactions_from_edges(
    edges: Iterable[ApplicationDependency],
    anchor: Application | None = None,
) -> ApplicationsInteractions:
    """
    Build the interactions view from a set of edges.

    With an anchor the result also lists who consumes the anchor and whom the
    anchor consumes; the anchor itself is always part of ``applications``.
    """
    interactions = sort_edges(edges)
    applications: dict[str, Application] = {}
    consumers: set[str] = set()
    providers: set[str] = set()

    if anchor is not None:
        applications[anchor.name] = anchor

    for edge in interactions:
        applications.setdefault(edge.consumer.name, edge.consumer)
        applications.setdefault(edge.provider.name, edge.provider)
        if anchor is not None:
            if edge.provider.name == anchor.name:
                consumers.add(edge.consumer.name)
            if edge.consumer.name == anchor.name:
                providers.add(edge.provider.name)

    return ApplicationsInteractions(
        application=anchor.name if anchor else None,
        applications=dict(sorted(applications.items())),
        interactions=interactions,
        consumers=sorted(consumers),
        providers=sorted(providers),
    )


def filter_edges_by_teams(
    edges: Iterable[ApplicationDependency],
    teams: Iterable[str],
    include_neighbors: bool = False,
) -> list[ApplicationDependency]:
    """
    Restrict edges to applications owned by the given teams.

    Both ends must belong to the teams, or either end when ``include_neighbors``.
    """
    wanted = {team for team in teams if team}
    if not wanted:
        return list(edges)

    selected = []
    for edge in edges:
        consumer_in = edge.consumer.team in wanted
        provider_in = edge.provider.team in wanted
        if (consumer_in or provider_in) if include_neighbors else (consumer_in and provider_in):
            selected.append(edge)
    return selected

"""Tests for the monitoring orchestrator against in-memory collaborators."""

import json

import pytest
from cosmos.core.errors import (
    ApplicationNotFoundError,
    DiffError,
    ManifestParseError,
    ManifestValidationError,
    RepositoryError,
    SpecSnapshotNotFoundError,
    UnsupportedFormatError,
)
from cosmos.monitoring import MonitoringOrchestrator
from cosmos.openapi import Severity

MANIFEST_PATH = "docs/openclient.json"
OPENAPI_PATH = "docs/openapi.json"


def manifest(**providers):
    return json.dumps({"dependencies": providers})


def checkout_manifest(path="/items/{id}", method="GET"):
    return manifest(
        inventory={
            "reasons": ["stock checks"],
            "endpoints": {path: {method: {"reasons": ["price lookup"]}}},
        }
    )


def inventory_spec(*, with_delete=True, with_note=True):
    properties = {"id": {"type": "string"}}
    if with_note:
        properties["note"] = {"type": "string"}
    item = {
        "get": {
            "parameters": [{"name": "id", "in": "path", "required": True}],
            "responses": {
                "200": {
                    "description": "ok",
                    "content": {
                        "application/json": {
                            "schema": {
                                "type": "object",
                                "required": ["id"],
                                "properties": properties,
                            }
                        }
                    },
                }
            },
        }
    }
    if with_delete:
        item["delete"] = {"responses": {"204": {"description": "deleted"}}}
    return json.dumps(
        {
            "openapi": "3.0.3",
            "info": {"title": "Inventory", "version": "1"},
            "paths": {"/items/{id}": item},
        }
    )


@pytest.fixture
def checkout(make_app):
    return make_app("checkout", "payments")


@pytest.fixture
def inventory(make_app):
    return make_app("inventory", "logistics")


class TestDependencies:
    @pytest.mark.asyncio
    async def test_manifest_becomes_edge(self, orchestrator, store, reader, checkout):
        reader.put(checkout, MANIFEST_PATH, checkout_manifest())

        report = await orchestrator.update_application_monitoring("checkout")

        assert not report.skipped
        assert report.dependencies.manifest_found
        assert report.dependencies.providers == ["inventory"]
        edges = await store.get_edges_by_consumer("checkout")
        assert [e.key for e in edges] == [("checkout", "inventory")]
        assert edges[0].reasons == ["stock checks"]
        assert edges[0].endpoints["/items/{id}"]["GET"].reasons == ["price lookup"]
        assert report.openapi.spec_found is False

    @pytest.mark.asyncio
    async def test_repeated_runs_are_idempotent(self, orchestrator, store, reader, checkout):
        reader.put(checkout, MANIFEST_PATH, checkout_manifest())

        await orchestrator.update_application_dependencies("checkout")
        first = await store.get_all_edges()
        await orchestrator.update_application_dependencies("checkout")

        assert await store.get_all_edges() == first

    @pytest.mark.asyncio
    async def test_manifest_hash_is_recorded(self, orchestrator, store, reader, checkout):
        reader.put(checkout, MANIFEST_PATH, checkout_manifest(), sha="m1")

        update = await orchestrator.update_application_dependencies("checkout")

        assert update.content_hash == "m1"
        assert not update.unchanged
        assert await store.get_manifest_hash("checkout") == "m1"
        assert reader.calls == [("metadata", MANIFEST_PATH), ("content", MANIFEST_PATH)]

    @pytest.mark.asyncio
    async def test_unchanged_manifest_skips_content_fetch(
        self, orchestrator, store, reader, checkout
    ):
        reader.put(checkout, MANIFEST_PATH, checkout_manifest(), sha="m1")
        await orchestrator.update_application_dependencies("checkout")
        await store.delete_edges("checkout", ["inventory"])
        reader.calls.clear()

        update = await orchestrator.update_application_dependencies("checkout")

        assert update.unchanged
        assert update.manifest_found
        assert update.content_hash == "m1"
        assert update.providers == []
        assert reader.calls == [("metadata", MANIFEST_PATH)]
        # nothing was rewritten
        assert await store.get_all_edges() == []

    @pytest.mark.asyncio
    async def test_manifest_hash_mismatch_between_fetches(
        self, orchestrator, store, reader, checkout
    ):
        reader.put(checkout, MANIFEST_PATH, checkout_manifest(), sha="m1")
        original = reader.get_file_metadata

        async def stale_metadata(*args, **kwargs):
            metadata = await original(*args, **kwargs)
            return metadata.model_copy(update={"content_hash": "m0"})

        reader.get_file_metadata = stale_metadata

        with pytest.raises(RepositoryError, match="changed") as exc_info:
            await orchestrator.update_application_dependencies("checkout")

        assert exc_info.value.details == {"expected": "m0", "actual": "m1"}
        assert await store.get_all_edges() == []
        assert await store.get_manifest_hash("checkout") is None

    @pytest.mark.asyncio
    async def test_rejected_manifest_is_fetched_again(self, orchestrator, store, reader, checkout):
        reader.put(checkout, MANIFEST_PATH, manifest(ghost={}), sha="m1")
        with pytest.raises(ApplicationNotFoundError):
            await orchestrator.update_application_dependencies("checkout")
        assert await store.get_manifest_hash("checkout") is None
        reader.calls.clear()

        with pytest.raises(ApplicationNotFoundError):
            await orchestrator.update_application_dependencies("checkout")

        assert ("content", MANIFEST_PATH) in reader.calls

    @pytest.mark.asyncio
    async def test_edge_is_overwritten_not_merged(self, orchestrator, store, reader, checkout):
        reader.put(checkout, MANIFEST_PATH, checkout_manifest("/items/{id}", "GET"))
        await orchestrator.update_application_dependencies("checkout")

        reader.put(checkout, MANIFEST_PATH, checkout_manifest("/items", "POST"))
        await orchestrator.update_application_dependencies("checkout")

        (edge,) = await store.get_all_edges()
        assert list(edge.endpoints) == ["/items"]
        assert list(edge.endpoints["/items"]) == ["POST"]

    @pytest.mark.asyncio
    async def test_unknown_provider_writes_nothing(self, orchestrator, store, reader, checkout):
        reader.put(checkout, MANIFEST_PATH, manifest(inventory={}, ghost={}, phantom={}))

        with pytest.raises(ApplicationNotFoundError) as exc_info:
            await orchestrator.update_application_dependencies("checkout")

        assert exc_info.value.names == ["ghost", "phantom"]
        assert exc_info.value.details["consumer"] == "checkout"
        assert await store.get_all_edges() == []

    @pytest.mark.asyncio
    async def test_application_without_repository_is_skipped(self, orchestrator, store, reader):
        report = await orchestrator.update_application_monitoring("legacy")

        assert report.skipped
        assert report.to_dict()["dependencies"] is None
        assert reader.calls == []
        assert await store.get_all_edges() == []

    @pytest.mark.asyncio
    async def test_unknown_application(self, orchestrator):
        with pytest.raises(ApplicationNotFoundError):
            await orchestrator.update_application_monitoring("nobody")

    @pytest.mark.asyncio
    async def test_missing_manifest_is_tolerated(self, orchestrator, store):
        update = await orchestrator.update_application_dependencies("checkout")

        assert not update.manifest_found
        assert await store.get_all_edges() == []

    @pytest.mark.asyncio
    async def test_fetch_failure_leaves_graph_untouched(
        self, orchestrator, store, reader, checkout, transient_error
    ):
        reader.put(checkout, MANIFEST_PATH, checkout_manifest())
        await orchestrator.update_application_dependencies("checkout")
        before = await store.get_all_edges()

        reader.fail(checkout, MANIFEST_PATH, transient_error)
        with pytest.raises(RepositoryError):
            await orchestrator.update_application_dependencies("checkout")

        assert await store.get_all_edges() == before

    @pytest.mark.asyncio
    async def test_invalid_manifest_leaves_graph_untouched(
        self, orchestrator, store, reader, checkout
    ):
        reader.put(checkout, MANIFEST_PATH, checkout_manifest())
        await orchestrator.update_application_dependencies("checkout")
        before = await store.get_all_edges()

        reader.put(checkout, MANIFEST_PATH, checkout_manifest("items", "FETCH"))
        with pytest.raises(ManifestValidationError) as exc_info:
            await orchestrator.update_application_dependencies("checkout")

        assert len(exc_info.value.messages) == 2
        assert await store.get_all_edges() == before

    @pytest.mark.asyncio
    async def test_unparseable_manifest(self, orchestrator, reader, checkout):
        reader.put(checkout, MANIFEST_PATH, "dependencies: [unclosed")

        with pytest.raises(ManifestParseError):
            await orchestrator.update_application_dependencies("checkout")

    @pytest.mark.asyncio
    async def test_self_dependency_is_rejected(self, orchestrator, store, reader, checkout):
        reader.put(checkout, MANIFEST_PATH, manifest(checkout={}))

        with pytest.raises(ManifestValidationError, match="itself"):
            await orchestrator.update_application_dependencies("checkout")

        assert await store.get_all_edges() == []

    @pytest.mark.asyncio
    async def test_disabled_manifest_monitoring(self, directory, store, reader, make_app):
        directory.register(make_app("checkout", "payments", openclient_enabled=False))
        orchestrator = MonitoringOrchestrator(directory, store, reader)

        update = await orchestrator.update_application_dependencies("checkout")

        assert update.skipped
        assert reader.calls == []

    @pytest.mark.asyncio
    async def test_custom_manifest_path(self, directory, store, reader, make_app):
        app = make_app("checkout", "payments", openclient_path="api/clients.yaml")
        directory.register(app)
        reader.put(app, "api/clients.yaml", "dependencies:\n  inventory: {}\n")
        orchestrator = MonitoringOrchestrator(directory, store, reader)

        update = await orchestrator.update_application_dependencies("checkout")

        assert update.providers == ["inventory"]


class TestPruning:
    @pytest.mark.asyncio
    async def test_stale_edges_are_kept_by_default(self, orchestrator, store, reader, checkout):
        reader.put(checkout, MANIFEST_PATH, manifest(inventory={}, shipping={}))
        await orchestrator.update_application_dependencies("checkout")

        reader.put(checkout, MANIFEST_PATH, manifest(inventory={}))
        update = await orchestrator.update_application_dependencies("checkout")

        assert update.pruned == []
        assert [e.provider.name for e in await store.get_all_edges()] == [
            "inventory",
            "shipping",
        ]

    @pytest.mark.asyncio
    async def test_stale_edges_are_pruned_when_enabled(self, directory, store, reader, checkout):
        orchestrator = MonitoringOrchestrator(directory, store, reader, prune_stale_edges=True)
        reader.put(checkout, MANIFEST_PATH, manifest(inventory={}, shipping={}))
        await orchestrator.update_application_dependencies("checkout")

        reader.put(checkout, MANIFEST_PATH, manifest(inventory={}))
        update = await orchestrator.update_application_dependencies("checkout")

        assert update.pruned == ["shipping"]
        assert [e.provider.name for e in await store.get_all_edges()] == ["inventory"]

    @pytest.mark.asyncio
    async def test_empty_manifest_prunes_everything(self, directory, store, reader, checkout):
        orchestrator = MonitoringOrchestrator(directory, store, reader, prune_stale_edges=True)
        reader.put(checkout, MANIFEST_PATH, manifest(inventory={}))
        await orchestrator.update_application_dependencies("checkout")

        reader.put(checkout, MANIFEST_PATH, manifest())
        update = await orchestrator.update_application_dependencies("checkout")

        assert update.pruned == ["inventory"]
        assert await store.get_all_edges() == []


class TestOpenAPI:
    @pytest.mark.asyncio
    async def test_first_snapshot_has_no_diff(self, orchestrator, store, reader, inventory):
        reader.put(inventory, OPENAPI_PATH, inventory_spec(), sha="v1")

        update = await orchestrator.update_application_openapi("inventory")

        assert update.spec_found
        assert update.first_snapshot
        assert update.source_version == 3
        assert update.changes == []
        snapshot = await store.get_spec_snapshot("inventory")
        assert snapshot.content_hash == "v1"
        assert "/items/{id}" in snapshot.document["paths"]

    @pytest.mark.asyncio
    async def test_unchanged_hash_skips_content_fetch(self, orchestrator, reader, inventory):
        reader.put(inventory, OPENAPI_PATH, inventory_spec(), sha="v1")
        await orchestrator.update_application_openapi("inventory")
        reader.calls.clear()

        update = await orchestrator.update_application_openapi("inventory")

        assert update.unchanged
        assert reader.calls == [("metadata", OPENAPI_PATH)]

    @pytest.mark.asyncio
    async def test_changes_are_reported_with_impacted_consumers(
        self, orchestrator, reader, checkout, inventory
    ):
        reader.put(checkout, MANIFEST_PATH, checkout_manifest("/items/{itemId}", "get"))
        await orchestrator.update_application_dependencies("checkout")
        reader.put(inventory, OPENAPI_PATH, inventory_spec(), sha="v1")
        await orchestrator.update_application_openapi("inventory")

        reader.put(
            inventory, OPENAPI_PATH, inventory_spec(with_delete=False, with_note=False), sha="v2"
        )
        update = await orchestrator.update_application_openapi("inventory")

        assert not update.first_snapshot
        assert [(c.kind, c.severity) for c in update.changes] == [
            ("operation-removed", Severity.BREAKING),
            ("response-optional-property-removed", Severity.WARNING),
        ]
        assert update.has_breaking_changes
        # checkout only calls GET, so only the GET change reaches it
        assert [(i.consumer, i.method, i.change.kind) for i in update.impacted] == [
            ("checkout", "get", "response-optional-property-removed")
        ]
        assert update.to_dict()["summary"] == {"info": 0, "warning": 1, "breaking": 1}

    @pytest.mark.asyncio
    async def test_swagger_spec_is_stored_as_v3(self, orchestrator, store, reader, inventory):
        reader.put(
            inventory,
            OPENAPI_PATH,
            "swagger: 2.0\npaths:\n  /items:\n    get:\n      responses: {}\n",
        )

        update = await orchestrator.update_application_openapi("inventory")

        assert update.source_version == 2
        snapshot = await store.get_spec_snapshot("inventory")
        assert snapshot.document["openapi"].startswith("3.")

    @pytest.mark.asyncio
    async def test_hash_mismatch_between_fetches(self, orchestrator, store, reader, inventory):
        reader.put(inventory, OPENAPI_PATH, inventory_spec(), sha="v1")
        original = reader.get_file_metadata

        async def stale_metadata(*args, **kwargs):
            metadata = await original(*args, **kwargs)
            return metadata.model_copy(update={"content_hash": "v0"})

        reader.get_file_metadata = stale_metadata

        with pytest.raises(RepositoryError, match="changed"):
            await orchestrator.update_application_openapi("inventory")

        assert await store.get_spec_snapshot("inventory") is None

    @pytest.mark.asyncio
    async def test_unsupported_spec_keeps_previous_snapshot(
        self, orchestrator, store, reader, inventory
    ):
        reader.put(inventory, OPENAPI_PATH, inventory_spec(), sha="v1")
        await orchestrator.update_application_openapi("inventory")

        reader.put(inventory, OPENAPI_PATH, '{"info": {}}', sha="v2")
        with pytest.raises(UnsupportedFormatError):
            await orchestrator.update_application_openapi("inventory")

        assert (await store.get_spec_snapshot("inventory")).content_hash == "v1"

    @pytest.mark.asyncio
    async def test_corrupt_stored_snapshot(self, orchestrator, store, reader, inventory):
        await store.put_spec_snapshot("inventory", "v0", {"openapi": "3.0.0", "paths": []})
        reader.put(inventory, OPENAPI_PATH, inventory_spec(), sha="v1")

        with pytest.raises(DiffError):
            await orchestrator.update_application_openapi("inventory")

        assert (await store.get_spec_snapshot("inventory")).content_hash == "v0"

    @pytest.mark.asyncio
    async def test_min_severity_applies_to_reported_changes(
        self, directory, store, reader, inventory
    ):
        from cosmos.openapi import CompatibilityDiffer

        orchestrator = MonitoringOrchestrator(
            directory, store, reader, differ=CompatibilityDiffer("breaking")
        )
        reader.put(inventory, OPENAPI_PATH, inventory_spec(), sha="v1")
        await orchestrator.update_application_openapi("inventory")
        reader.put(inventory, OPENAPI_PATH, inventory_spec(with_note=False), sha="v2")

        update = await orchestrator.update_application_openapi("inventory")

        assert update.changes == []
        assert (await store.get_spec_snapshot("inventory")).content_hash == "v2"


async def build_graph(orchestrator, reader, directory):
    checkout = await directory.find_by_name("checkout")
    inventory = await directory.find_by_name("inventory")
    reader.put(checkout, MANIFEST_PATH, manifest(inventory={}, shipping={}))
    reader.put(inventory, MANIFEST_PATH, manifest(shipping={}))
    await orchestrator.update_application_dependencies("checkout")
    await orchestrator.update_application_dependencies("inventory")
    return orchestrator


class TestQueries:
    @pytest.mark.asyncio
    async def test_application_interactions(self, orchestrator, reader, directory):
        graph = await build_graph(orchestrator, reader, directory)

        view = await graph.get_application_interactions("inventory")

        assert view.consumers == ["checkout"]
        assert view.providers == ["shipping"]
        assert len(view.interactions) == 2

    @pytest.mark.asyncio
    async def test_application_interactions_unknown(self, orchestrator, reader, directory):
        graph = await build_graph(orchestrator, reader, directory)

        with pytest.raises(ApplicationNotFoundError):
            await graph.get_application_interactions("nobody")

    @pytest.mark.asyncio
    async def test_organization_interactions(self, orchestrator, reader, directory):
        graph = await build_graph(orchestrator, reader, directory)

        view = await graph.get_applications_interactions()

        assert [e.key for e in view.interactions] == [
            ("checkout", "inventory"),
            ("checkout", "shipping"),
            ("inventory", "shipping"),
        ]

    @pytest.mark.asyncio
    async def test_team_filter(self, orchestrator, reader, directory):
        graph = await build_graph(orchestrator, reader, directory)

        only = await graph.get_applications_interactions(["logistics"])
        neighbours = await graph.get_applications_interactions(
            ["logistics"], include_neighbors=True
        )

        assert [e.key for e in only.interactions] == [("inventory", "shipping")]
        assert len(neighbours.interactions) == 3

    @pytest.mark.asyncio
    async def test_openapi_snapshot_query(self, orchestrator, reader, inventory):
        with pytest.raises(SpecSnapshotNotFoundError):
            await orchestrator.get_application_openapi("inventory")

        reader.put(inventory, OPENAPI_PATH, inventory_spec(), sha="v1")
        await orchestrator.update_application_openapi("inventory")

        snapshot = await orchestrator.get_application_openapi("inventory")
        assert snapshot.content_hash == "v1"

    @pytest.mark.asyncio
    async def test_monitored_applications_need_a_repository(self, orchestrator):
        names = [app.name for app in await orchestrator.list_monitored_applications()]
        assert names == ["checkout", "inventory", "shipping"]

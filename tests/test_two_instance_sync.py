"""End-to-end replication between in-process instances."""

import httpx
import pytest

from claimsync.child_records import get_collection
from claimsync.main import create_app
from claimsync.repositories.child_record_repository import ChildRecordRepository
from claimsync.repositories.claim_repository import ClaimRepository
from claimsync.repositories.linked_claim_repository import LinkedClaimRepository
from claimsync.repositories.linked_workspace_repository import LinkedWorkspaceRepository
from claimsync.repositories.partner_assignment_repository import PartnerAssignmentRepository

SERVICE_AUTH = {"Authorization": "Bearer service-key"}


class InstanceNetwork(httpx.AsyncBaseTransport):
    """Routes requests to in-process instances by host name."""

    def __init__(self):
        self.transports = {}

    def add(self, host: str, app) -> None:
        self.transports[host] = httpx.ASGITransport(app=app)

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        transport = self.transports.get(request.url.host)
        if transport is None:
            raise httpx.ConnectError(f"No route to {request.url.host}", request=request)
        return await transport.handle_async_request(request)


@pytest.fixture
def network():
    return InstanceNetwork()


@pytest.fixture
def instance(make_settings, network):
    """
    Factory starting an instance reachable at http://<name>.test.
    """
    def _start(name: str, **overrides):
        settings = make_settings(name=name, public_url=f"http://{name}.test", **overrides)
        app = create_app(settings, peer_transport=network)
        network.add(f"{name}.test", app)
        return app

    return _start


async def call(network, host: str, path: str, body: dict, headers=None) -> httpx.Response:
    async with httpx.AsyncClient(transport=network, base_url=f"http://{host}") as client:
        return await client.post(path, json=body, headers=headers or {})


async def register_link(network, target_host: str, secret: str = "shared-secret", workspace_id: str = "ws-source") -> str:
    response = await call(network, "source.test", "/functions/v1/workspace-sync", {
        "action": "register_link",
        "workspace_id": workspace_id,
        "external_instance_url": f"http://{target_host}",
        "instance_name": target_host,
        "sync_secret": secret,
        "target_workspace_id": "ws-target",
    }, SERVICE_AUTH)
    assert response.status_code == 200
    return response.json()["link_id"]


async def sync_claims(network, target_host: str, secret: str = "shared-secret") -> dict:
    response = await call(network, "source.test", "/functions/v1/claim-sync-webhook", {
        "action": "sync_claims",
        "workspace_id": "ws-source",
        "target_instance_url": f"http://{target_host}",
        "sync_secret": secret,
    })
    assert response.status_code == 200
    return response.json()


def seed_source_claim(app) -> str:
    """Create a claim with children and a stored photo on the source instance."""
    db_path = app.state.settings.database_path
    claim_id = ClaimRepository(db_path).create_claim("ws-source", {
        "claim_number": "CLM-77", "policyholder_name": "Dana Reyes", "status": "open",
    })
    children = ChildRecordRepository(db_path)
    children.insert(get_collection("tasks"), claim_id, {"title": "Inspect roof", "status": "open"})
    children.insert(get_collection("inspections"), claim_id, {"inspection_date": "2024-06-01", "inspector_name": "Ira"})
    children.insert(get_collection("settlements"), claim_id, {"deductible": 1000.0, "total_settlement": 18000.0})
    children.insert(get_collection("payments"), claim_id, {"amount": 5000.0, "direction": "released", "notes": "Draw 1"})

    photo_path = f"{claim_id}/photos/roof.jpg"
    app.state.storage.save_object(photo_path, b"roof-photo-bytes")
    children.insert(get_collection("photos"), claim_id, {"file_name": "roof.jpg", "file_path": photo_path})
    return claim_id


def mirrored_claim_id(app, source_claim_id: str) -> str:
    link = LinkedClaimRepository(app.state.settings.database_path).get_by_external("http://source.test", source_claim_id)
    assert link is not None
    return link.claim_id


class TestReplication:
    """Test a full source-to-target pass."""

    @pytest.mark.asyncio
    async def test_claim_and_children_arrive(self, instance, network):
        source = instance("source")
        target = instance("target")
        source_claim_id = seed_source_claim(source)
        await register_link(network, "target.test")

        result = await sync_claims(network, "target.test")

        [outcome] = result["synced_claims"]
        assert outcome["success"] is True
        assert outcome["result"]["message"] == "Claim created"

        target_db = target.state.settings.database_path
        claim_id = mirrored_claim_id(target, source_claim_id)
        claim = ClaimRepository(target_db).get_by_id(claim_id)
        assert claim["workspace_id"] == "ws-target"
        assert claim["claim_number"] == "CLM-77"

        children = ChildRecordRepository(target_db)
        assert children.count_for_claim(get_collection("tasks"), claim_id) == 1
        assert children.count_for_claim(get_collection("inspections"), claim_id) == 1
        assert children.find_singleton(get_collection("settlements"), claim_id)["total_settlement"] == 18000.0
        payment = children.find_by_natural_key(
            get_collection("payments"), claim_id,
            {"amount": 5000.0, "payment_date": None, "direction": "received"},
        )
        assert payment["notes"] == "[Synced] Draw 1"

        [photo] = children.list_for_claim(get_collection("photos"), claim_id)
        assert photo["file_path"].startswith(f"{claim_id}/photos/")
        assert target.state.storage.read_object(photo["file_path"]) == b"roof-photo-bytes"

    @pytest.mark.asyncio
    async def test_repeated_sync_is_idempotent(self, instance, network):
        source = instance("source")
        target = instance("target")
        source_claim_id = seed_source_claim(source)
        await register_link(network, "target.test")

        await sync_claims(network, "target.test")
        second = await sync_claims(network, "target.test")

        assert second["synced_claims"][0]["result"]["message"] == "Claim updated"
        target_db = target.state.settings.database_path
        claim_id = mirrored_claim_id(target, source_claim_id)
        children = ChildRecordRepository(target_db)
        assert ClaimRepository(target_db).count() == 1
        assert children.count_for_claim(get_collection("tasks"), claim_id) == 1
        assert children.count_for_claim(get_collection("photos"), claim_id) == 1
        assert children.count_for_claim(get_collection("settlements"), claim_id) == 1
        assert children.count_for_claim(get_collection("payments"), claim_id) == 1

    @pytest.mark.asyncio
    async def test_source_updates_flow_through(self, instance, network):
        source = instance("source")
        target = instance("target")
        source_claim_id = seed_source_claim(source)
        await register_link(network, "target.test")
        await sync_claims(network, "target.test")

        source_db = source.state.settings.database_path
        ClaimRepository(source_db).update_claim(source_claim_id, "ws-source", {
            "claim_number": "CLM-77", "policyholder_name": "Dana Reyes", "status": "settled",
        })
        tasks = get_collection("tasks")
        [task] = ChildRecordRepository(source_db).list_for_claim(tasks, source_claim_id)
        ChildRecordRepository(source_db).update(tasks, task["id"], {"title": "Inspect roof", "status": "done"})
        await sync_claims(network, "target.test")

        target_db = target.state.settings.database_path
        claim_id = mirrored_claim_id(target, source_claim_id)
        assert ClaimRepository(target_db).get_by_id(claim_id)["status"] == "settled"
        [mirrored_task] = ChildRecordRepository(target_db).list_for_claim(tasks, claim_id)
        assert mirrored_task["status"] == "done"
        assert mirrored_task["external_id"] == task["id"]


class TestPartnerScoping:
    """Test that each peer sees only its own partner assignment."""

    @pytest.mark.asyncio
    async def test_two_links_receive_different_assignments(self, instance, network):
        source = instance("source")
        alpha = instance("alpha")
        beta = instance("beta")
        source_claim_id = seed_source_claim(source)
        alpha_link = await register_link(network, "alpha.test")
        beta_link = await register_link(network, "beta.test")
        assignments = PartnerAssignmentRepository(source.state.settings.database_path)
        assignments.assign_for_linked_workspace(source_claim_id, alpha_link, {
            "sales_rep_id": "rep-a", "sales_rep_email": "avery@alpha.test", "sales_rep_name": "Avery",
        })
        assignments.assign_for_linked_workspace(source_claim_id, beta_link, {
            "sales_rep_id": "rep-b", "sales_rep_email": "blake@beta.test", "sales_rep_name": "Blake",
        })

        await sync_claims(network, "alpha.test")
        await sync_claims(network, "beta.test")

        for app, expected in ((alpha, "Avery"), (beta, "Blake")):
            claim_id = mirrored_claim_id(app, source_claim_id)
            stored = PartnerAssignmentRepository(app.state.settings.database_path).get_for_source(
                claim_id, "http://source.test"
            )
            assert stored["sales_rep_name"] == expected


class TestFailures:
    """Test per-claim failure recording across instances."""

    @pytest.mark.asyncio
    async def test_secret_rejected_by_peer_is_recorded(self, instance, network):
        source = instance("source")
        target = instance("target", claim_sync_secret="different-secret")
        seed_source_claim(source)
        await register_link(network, "target.test")

        result = await sync_claims(network, "target.test")

        [outcome] = result["synced_claims"]
        assert outcome["success"] is False
        assert "Unauthorized" in outcome["error"]
        assert ClaimRepository(target.state.settings.database_path).count() == 0

    @pytest.mark.asyncio
    async def test_unreachable_peer_is_recorded(self, instance, network):
        source = instance("source")
        seed_source_claim(source)
        await register_link(network, "offline.test")

        result = await sync_claims(network, "offline.test")

        [outcome] = result["synced_claims"]
        assert outcome["success"] is False
        assert "offline.test" in outcome["error"]
        link = LinkedWorkspaceRepository(source.state.settings.database_path).get_by_workspace_and_url(
            "ws-source", "http://offline.test"
        )
        assert link.last_synced_at is not None


class TestExternalSync:
    """Test the single-claim push to an instance without a workspace link."""

    @pytest.mark.asyncio
    async def test_claim_and_accounting_arrive_without_a_link(self, instance, network):
        source = instance("source")
        target = instance("target")
        source_claim_id = seed_source_claim(source)

        response = await call(network, "source.test", "/functions/v1/sync-claim-to-external", {
            "claim_id": source_claim_id,
            "target_instance_url": "http://target.test",
            "instance_name": "Target CRM",
            "include_accounting": True,
            "target_workspace_id": "ws-target",
        }, SERVICE_AUTH)

        assert response.status_code == 200
        external_claim_id = response.json()["external_claim_id"]
        assert mirrored_claim_id(target, source_claim_id) == external_claim_id

        target_db = target.state.settings.database_path
        assert ClaimRepository(target_db).get_by_id(external_claim_id)["claim_number"] == "CLM-77"
        target_children = ChildRecordRepository(target_db)
        assert target_children.find_singleton(get_collection("settlements"), external_claim_id)["deductible"] == 1000.0
        assert target_children.count_for_claim(get_collection("tasks"), external_claim_id) == 0
        assert target_children.count_for_claim(get_collection("payments"), external_claim_id) == 0

        source_link = LinkedClaimRepository(source.state.settings.database_path).get_by_claim_and_instance(
            source_claim_id, "http://target.test"
        )
        assert source_link.external_claim_id == external_claim_id
        assert LinkedWorkspaceRepository(source.state.settings.database_path).count() == 0

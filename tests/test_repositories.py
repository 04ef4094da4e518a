"""Integration tests for database repositories."""

import json
import sqlite3

import pytest

from claimsync.child_records import get_collection
from claimsync.database import get_db_connection, init_database, row_to_dict
from claimsync.repositories.child_record_repository import ChildRecordRepository
from claimsync.repositories.claim_repository import ClaimRepository
from claimsync.repositories.linked_claim_repository import LinkedClaimRepository
from claimsync.repositories.linked_workspace_repository import LinkedWorkspaceRepository
from claimsync.repositories.partner_assignment_repository import PartnerAssignmentRepository
from claimsync.repositories.user_repository import UserRepository


class TestDatabaseHelpers:
    """Test database helper functions."""

    def test_init_database_is_idempotent(self, db_path):
        init_database(db_path)
        with get_db_connection(db_path) as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
            tables = {row["name"] for row in cursor.fetchall()}

        assert {"claims", "linked_workspaces", "linked_claims", "claim_partner_assignments"} <= tables
        assert {"tasks", "claim_settlements", "claim_payments", "claim_photos", "emails"} <= tables

    def test_row_to_dict_with_none(self):
        assert row_to_dict(None) is None


class TestClaimRepository:
    """Test claim persistence."""

    def test_create_defaults_status_to_open(self, db_path):
        repo = ClaimRepository(db_path)
        claim_id = repo.create_claim("ws-1", {"claim_number": "CLM-9"})

        claim = repo.get_by_id(claim_id)
        assert claim["workspace_id"] == "ws-1"
        assert claim["claim_number"] == "CLM-9"
        assert claim["status"] == "open"

    def test_update_keeps_status_when_not_sent(self, db_path):
        repo = ClaimRepository(db_path)
        claim_id = repo.create_claim("ws-1", {"claim_number": "CLM-9", "status": "in_review"})

        repo.update_claim(claim_id, "ws-2", {"claim_number": "CLM-10"})

        claim = repo.get_by_id(claim_id)
        assert claim["claim_number"] == "CLM-10"
        assert claim["status"] == "in_review"
        assert claim["workspace_id"] == "ws-2"

    def test_update_keeps_fields_not_sent(self, db_path):
        repo = ClaimRepository(db_path)
        claim_id = repo.create_claim("ws-1", {
            "claim_number": "CLM-9", "policyholder_name": "Dana Reyes", "loss_type": "hail",
        })

        repo.update_claim(claim_id, "ws-1", {"claim_number": "CLM-9", "loss_type": None, "status": "settled"})

        claim = repo.get_by_id(claim_id)
        assert claim["policyholder_name"] == "Dana Reyes"
        assert claim["loss_type"] == "hail"
        assert claim["status"] == "settled"

    def test_create_commits_on_its_own_connection(self, db_path):
        repo = ClaimRepository(db_path)
        claim_id = repo.create_claim("ws-1", {"claim_number": "A"})

        with get_db_connection(db_path) as conn:
            row = conn.execute("SELECT workspace_id FROM claims WHERE id = ?", (claim_id,)).fetchone()
        assert row["workspace_id"] == "ws-1"

    def test_list_by_workspace_only_returns_that_workspace(self, db_path):
        repo = ClaimRepository(db_path)
        first = repo.create_claim("ws-1", {"claim_number": "A"})
        second = repo.create_claim("ws-1", {"claim_number": "B"})
        repo.create_claim("ws-2", {"claim_number": "C"})

        ids = [claim["id"] for claim in repo.list_by_workspace("ws-1")]
        assert sorted(ids) == sorted([first, second])
        assert repo.count() == 3

    def test_caller_owned_connection_is_not_committed(self, db_path):
        repo = ClaimRepository(db_path)
        with get_db_connection(db_path) as conn:
            repo.create_claim("ws-1", {"claim_number": "A"}, conn=conn)
            conn.rollback()

        assert repo.count() == 0


class TestChildRecordRepository:
    """Test the generic child table access."""

    def test_insert_and_find_by_external_id(self, db_path, seed_claim):
        claim_id = seed_claim()
        repo = ChildRecordRepository(db_path)
        tasks = get_collection("tasks")

        repo.insert(tasks, claim_id, {"title": "Call carrier", "status": "open"}, external_id="remote-1")

        found = repo.find_by_external_id(tasks, claim_id, "remote-1")
        assert found["title"] == "Call carrier"
        assert repo.find_by_external_id(tasks, claim_id, "remote-2") is None

    def test_update_overwrites_columns(self, db_path, seed_claim):
        claim_id = seed_claim()
        repo = ChildRecordRepository(db_path)
        tasks = get_collection("tasks")
        record_id = repo.insert(tasks, claim_id, {"title": "Call carrier", "status": "open"})

        repo.update(tasks, record_id, {"title": "Call carrier", "status": "done"}, external_id="remote-1")

        found = repo.find_by_external_id(tasks, claim_id, "remote-1")
        assert found["id"] == record_id
        assert found["status"] == "done"

    def test_lists_are_stored_as_json(self, db_path, seed_claim):
        claim_id = seed_claim()
        repo = ChildRecordRepository(db_path)
        updates = get_collection("updates")

        repo.insert(updates, claim_id, {"content": "Sent estimate", "recipients": ["adjuster@example.com"]})

        row = repo.list_for_claim(updates, claim_id)[0]
        assert json.loads(row["recipients"]) == ["adjuster@example.com"]

    def test_payments_listing_only_returns_released(self, db_path, seed_claim):
        claim_id = seed_claim()
        repo = ChildRecordRepository(db_path)
        payments = get_collection("payments")
        repo.insert(payments, claim_id, {"amount": 100.0, "direction": "released"})
        repo.insert(payments, claim_id, {"amount": 50.0, "direction": "received"})

        rows = repo.list_for_claim(payments, claim_id)
        assert [row["amount"] for row in rows] == [100.0]
        assert repo.count_for_claim(payments, claim_id) == 2

    def test_natural_key_matches_null_columns(self, db_path, seed_claim):
        claim_id = seed_claim()
        repo = ChildRecordRepository(db_path)
        expenses = get_collection("expenses")
        repo.insert(expenses, claim_id, {"description": "Tarp", "amount": 80.0})

        found = repo.find_by_natural_key(expenses, claim_id, {"description": "Tarp", "expense_date": None})
        assert found is not None
        assert found["amount"] == 80.0

    def test_singleton_lookup(self, db_path, seed_claim):
        claim_id = seed_claim()
        repo = ChildRecordRepository(db_path)
        settlements = get_collection("settlements")
        assert repo.find_singleton(settlements, claim_id) is None

        repo.insert(settlements, claim_id, {"deductible": 1000.0})

        assert repo.find_singleton(settlements, claim_id)["deductible"] == 1000.0
        with pytest.raises(sqlite3.IntegrityError):
            repo.insert(settlements, claim_id, {"deductible": 2000.0})


class TestLinkedWorkspaceRepository:
    """Test linked workspace persistence."""

    def test_create_and_lookup(self, db_path):
        repo = LinkedWorkspaceRepository(db_path)
        link = repo.create("ws-1", "http://target.test", "Target CRM", "secret-1", target_workspace_id="ws-9")

        found = repo.get_by_workspace_and_url("ws-1", "http://target.test")
        assert found.id == link.id
        assert found.sync_status == "active"
        assert found.target_workspace_id == "ws-9"

    def test_duplicate_pair_is_rejected(self, db_path):
        repo = LinkedWorkspaceRepository(db_path)
        repo.create("ws-1", "http://target.test", "Target CRM", "secret-1")

        with pytest.raises(sqlite3.IntegrityError):
            repo.create("ws-1", "http://target.test", "Target CRM", "secret-2")

    def test_revoked_links_leave_the_active_list(self, db_path):
        repo = LinkedWorkspaceRepository(db_path)
        kept = repo.create("ws-1", "http://a.test", "A", "s1")
        revoked = repo.create("ws-1", "http://b.test", "B", "s2")

        repo.set_status(revoked.id, "revoked", revoked_at="2024-05-01T00:00:00+00:00")

        assert [link.id for link in repo.list_by_status("active")] == [kept.id]
        assert repo.get_by_id(revoked.id).revoked_at == "2024-05-01T00:00:00+00:00"

    def test_touch_last_synced(self, db_path):
        repo = LinkedWorkspaceRepository(db_path)
        link = repo.create("ws-1", "http://a.test", "A", "s1")
        assert link.last_synced_at is None

        synced_at = repo.touch_last_synced(link.id)

        assert repo.get_by_id(link.id).last_synced_at == synced_at


class TestLinkedClaimRepository:
    """Test receiver-side claim links."""

    def test_duplicate_remote_claim_is_rejected(self, db_path, seed_claim):
        claim_id = seed_claim()
        repo = LinkedClaimRepository(db_path)
        repo.create(claim_id, "http://source.test", "remote-claim", "Source CRM")

        with pytest.raises(sqlite3.IntegrityError):
            repo.create(claim_id, "http://source.test", "remote-claim", "Source CRM")

        assert repo.get_by_external("http://source.test", "remote-claim").claim_id == claim_id
        assert repo.count() == 1

    def test_create_on_caller_connection_commits_with_claim(self, db_path):
        claims = ClaimRepository(db_path)
        repo = LinkedClaimRepository(db_path)
        with get_db_connection(db_path) as conn:
            claim_id = claims.create_claim("ws-1", {"claim_number": "A"}, conn=conn)
            repo.create(claim_id, "http://source.test", "remote-claim", "Source CRM", conn=conn)
            conn.commit()

        assert repo.get_by_external("http://source.test", "remote-claim").claim_id == claim_id


class TestPartnerAssignmentRepository:
    """Test partner assignment scoping."""

    def test_assignments_are_scoped_per_linked_workspace(self, db_path, seed_claim):
        claim_id = seed_claim()
        links = LinkedWorkspaceRepository(db_path)
        first = links.create("ws-source", "http://a.test", "A", "s1")
        second = links.create("ws-source", "http://b.test", "B", "s2")
        repo = PartnerAssignmentRepository(db_path)

        repo.assign_for_linked_workspace(claim_id, first.id, {"sales_rep_id": "rep-a", "sales_rep_name": "Avery"})
        repo.assign_for_linked_workspace(claim_id, second.id, {"sales_rep_id": "rep-b", "sales_rep_name": "Blake"})

        assert repo.get_for_linked_workspace(claim_id, first.id)["sales_rep_id"] == "rep-a"
        assert repo.get_for_linked_workspace(claim_id, second.id)["sales_rep_id"] == "rep-b"

    def test_upsert_for_source_updates_in_place(self, db_path, seed_claim):
        claim_id = seed_claim()
        repo = PartnerAssignmentRepository(db_path)

        first_id = repo.upsert_for_source(claim_id, "http://source.test", {"sales_rep_name": "Avery"})
        second_id = repo.upsert_for_source(claim_id, "http://source.test", {"sales_rep_name": "Blake"})

        assert first_id == second_id
        assert repo.get_for_source(claim_id, "http://source.test")["sales_rep_name"] == "Blake"


class TestUserRepository:
    """Test the user directory."""

    def test_get_all_users_sorted_by_email(self, db_path):
        repo = UserRepository(db_path)
        repo.create_user("zoe@example.com", "Zoe", role="admin")
        repo.create_user("abe@example.com", "Abe")

        users = repo.get_all_users()
        assert [user.email for user in users] == ["abe@example.com", "zoe@example.com"]
        assert users[0].role == "staff"

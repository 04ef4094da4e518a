"""Sync receiver: applies claim payloads pushed by trusted peers."""

import sqlite3
import time
from typing import Any, Dict, Optional, Tuple

import httpx

from common.logging_config import get_logger
from claimsync.child_records import CHILD_COLLECTIONS, ChildCollection, extract_child_data, get_collection
from claimsync.database import get_db_connection
from claimsync.exceptions import InvalidRequestError, PeerSyncError, StorageError
from claimsync.peer_client import PeerClient
from claimsync.repositories.child_record_repository import ChildRecordRepository
from claimsync.repositories.claim_repository import ClaimRepository
from claimsync.repositories.linked_claim_repository import LinkedClaimRepository
from claimsync.repositories.partner_assignment_repository import PartnerAssignmentRepository
from claimsync.repositories.user_repository import UserRepository
from claimsync.storage import StorageService
from claimsync.utils import normalize_instance_url

logger = get_logger(__name__)

DEFAULT_SOURCE_NAME = "External Instance"
SYNCED_NOTE_PREFIX = "[Synced]"
SYNCED_NOTE_DEFAULT = "[Synced from workspace]"


class SyncReceiver:
    """
    Upserts claims and their child records sent by peers.

    Claims are matched by (source instance, remote claim id). Child rows are
    matched by the sender's row id kept in ``external_id``; per-claim
    singletons are matched on the claim. Nothing is ever deleted.
    """

    def __init__(self, db_path: str, storage: StorageService, peer_client: PeerClient):
        self.db_path = db_path
        self.claim_repo = ClaimRepository(db_path)
        self.child_repo = ChildRecordRepository(db_path)
        self.linked_claim_repo = LinkedClaimRepository(db_path)
        self.partner_repo = PartnerAssignmentRepository(db_path)
        self.user_repo = UserRepository(db_path)
        self.storage = storage
        self.peer_client = peer_client

    async def create_or_update(
        self,
        claim_data: Dict[str, Any],
        external_claim_id: str,
        source_instance_url: str,
        target_workspace_id: Optional[str] = None,
        child_payload: Optional[Dict[str, Any]] = None,
        partner_assignment: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Create or update the local mirror of a remote claim.

        Args:
            claim_data: Remote claim row
            external_claim_id: Claim id on the sending instance
            source_instance_url: Base URL of the sending instance
            target_workspace_id: Local workspace to own a newly created claim
            child_payload: Body fields holding child arrays (``tasks_data``, ``accounting_data``, ...)
            partner_assignment: Assignment scoped to this receiver, or None

        Returns:
            Summary with the local claim id and per-collection counts

        Raises:
            InvalidRequestError: If a new claim has no workspace to belong to
        """
        source_url = normalize_instance_url(source_instance_url)
        source_name = claim_data.get("instance_name") or DEFAULT_SOURCE_NAME
        logger.info(
            f"Received sync request: external_claim_id={external_claim_id}, "
            f"source={source_url}, target_workspace_id={target_workspace_id}"
        )

        claim_id, created = self._upsert_claim(
            claim_data, external_claim_id, source_url, source_name, target_workspace_id
        )

        records = extract_child_data(child_payload or {})
        for collection in CHILD_COLLECTIONS:
            rows = records[collection.name]
            if rows:
                logger.info(f"Syncing {len(rows)} {collection.name} for claim {claim_id}")
            for row in rows:
                await self._upsert_child(collection, claim_id, row)

        if partner_assignment:
            self.partner_repo.upsert_for_source(claim_id, source_url, partner_assignment)

        counts = {name: len(rows) for name, rows in records.items()}
        self.child_repo.insert(get_collection("updates"), claim_id, {
            "content": (
                f"Claim fully synced from {claim_data.get('instance_name') or source_url} "
                f"(tasks: {counts['tasks']}, updates: {counts['updates']}, "
                f"inspections: {counts['inspections']})"
            ),
            "update_type": "sync",
        })

        logger.info(f"Successfully synced claim {claim_id} with all related data")
        return {
            "success": True,
            "claim_id": claim_id,
            "message": "Claim created" if created else "Claim updated",
            "synced": counts,
        }

    def get_users(self) -> Dict[str, Any]:
        users = self.user_repo.get_all_users()
        return {
            "success": True,
            "users": [
                {"id": user.id, "email": user.email, "full_name": user.full_name, "role": user.role}
                for user in users
            ],
        }

    def receive_workspace_invite(
        self,
        source_workspace_id: Optional[str],
        source_instance_url: Optional[str],
        source_instance_name: Optional[str],
        workspace_name: Optional[str],
    ) -> Dict[str, Any]:
        logger.info(
            f"Received workspace invite from: {source_instance_name} ({source_instance_url}) "
            f"workspace: {workspace_name} [source_workspace_id={source_workspace_id}]"
        )
        return {
            "success": True,
            "message": "Workspace invite received",
            "workspace_name": workspace_name,
            "source_instance_name": source_instance_name,
        }

    def _upsert_claim(
        self,
        claim_data: Dict[str, Any],
        external_claim_id: str,
        source_url: str,
        source_name: str,
        target_workspace_id: Optional[str],
    ) -> Tuple[str, bool]:
        existing = self.linked_claim_repo.get_by_external(source_url, external_claim_id)
        if existing is None:
            workspace_id = target_workspace_id or claim_data.get("workspace_id")
            if not workspace_id:
                raise InvalidRequestError("target_workspace_id is required to create a claim")

            logger.info("Creating new claim from external sync")
            with get_db_connection(self.db_path) as conn:
                try:
                    claim_id = self.claim_repo.create_claim(workspace_id, claim_data, conn=conn)
                    self.linked_claim_repo.create(
                        claim_id, source_url, external_claim_id, source_name, conn=conn
                    )
                    conn.commit()
                    return claim_id, True
                except sqlite3.IntegrityError as e:
                    conn.rollback()
                    existing = self.linked_claim_repo.get_by_external(source_url, external_claim_id)
                    if existing is None:
                        raise
                    logger.info(f"Claim {external_claim_id} was linked concurrently, updating instead: {e}")

        claim = self.claim_repo.get_by_id(existing.claim_id)
        workspace_id = target_workspace_id or claim["workspace_id"]
        logger.info(f"Updating existing linked claim: {existing.claim_id}")
        self.claim_repo.update_claim(existing.claim_id, workspace_id, claim_data)
        self.linked_claim_repo.mark_synced(source_url, external_claim_id)
        return existing.claim_id, False

    async def _upsert_child(self, collection: ChildCollection, claim_id: str, row: Dict[str, Any]) -> None:
        data = dict(row)
        external_id = row.get("id")

        if collection.name == "payments":
            data["direction"] = "received"
            data["notes"] = f"{SYNCED_NOTE_PREFIX} {row['notes']}" if row.get("notes") else SYNCED_NOTE_DEFAULT

        if collection.singleton:
            existing = self.child_repo.find_singleton(collection, claim_id)
        elif external_id:
            existing = self.child_repo.find_by_external_id(collection, claim_id, external_id)
        else:
            existing = self.child_repo.find_by_natural_key(collection, claim_id, data)

        if existing:
            if collection.attachment:
                data["file_path"] = existing["file_path"]
            self.child_repo.update(collection, existing["id"], data, external_id=external_id)
            return

        if collection.attachment:
            data["file_path"] = await self._fetch_attachment(collection, claim_id, row)
        self.child_repo.insert(collection, claim_id, data, external_id=external_id)

    async def _fetch_attachment(self, collection: ChildCollection, claim_id: str, row: Dict[str, Any]) -> str:
        """
        Copy a remote attachment into local storage.

        Returns:
            The local object path, or the sender's path when the copy fails
        """
        source_path = row.get("file_path") or ""
        signed_url = row.get("signed_url")
        if not signed_url:
            return source_path

        prefix = f"{claim_id}/photos" if collection.name == "photos" else claim_id
        local_path = f"{prefix}/{int(time.time() * 1000)}-{row.get('file_name')}"
        try:
            content = await self.peer_client.download(signed_url)
            self.storage.save_object(local_path, content)
            logger.info(f"Uploaded {collection.name[:-1]}: {row.get('file_name')} to {local_path}")
            return local_path
        except (httpx.HTTPError, PeerSyncError, StorageError, OSError) as e:
            logger.error(f"Error downloading {collection.name[:-1]} {row.get('file_name')}: {e}")
            return source_path


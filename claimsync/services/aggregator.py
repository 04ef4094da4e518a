"""Record aggregator: assembles a claim and its child records into a sync payload."""

import asyncio
from typing import Any, Dict, List, Optional

from common.constants import SIGNED_URL_EXPIRY_SECONDS
from common.logging_config import get_logger
from claimsync.child_records import CHILD_COLLECTIONS, build_child_payload, get_collection
from claimsync.exceptions import ClaimNotFoundError, StorageError
from claimsync.repositories.child_record_repository import ChildRecordRepository
from claimsync.repositories.claim_repository import CLAIM_FIELDS, ClaimRepository
from claimsync.repositories.partner_assignment_repository import (
    ASSIGNMENT_FIELDS,
    PartnerAssignmentRepository,
)
from claimsync.storage import StorageService

logger = get_logger(__name__)

EXTERNAL_ACCOUNTING = ("settlements", "checks", "expenses", "fees")


class RecordAggregator:
    """
    Gathers everything a peer needs to rebuild one claim.

    Child collections are read concurrently; attachments travel as signed
    URLs instead of bytes.
    """

    def __init__(
        self,
        db_path: str,
        storage: StorageService,
        source_instance_url: str,
        instance_name: str,
    ):
        self.claim_repo = ClaimRepository(db_path)
        self.child_repo = ChildRecordRepository(db_path)
        self.partner_repo = PartnerAssignmentRepository(db_path)
        self.storage = storage
        self.source_instance_url = source_instance_url
        self.instance_name = instance_name

    async def aggregate(
        self,
        claim_id: str,
        linked_workspace_id: Optional[str],
        target_workspace_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Build the create_or_update body for a claim.

        Args:
            claim_id: Local claim id
            linked_workspace_id: Link whose partner assignment should travel with the claim
            target_workspace_id: Workspace on the peer that should own the claim

        Returns:
            JSON-ready payload

        Raises:
            ClaimNotFoundError: If the claim does not exist
        """
        loop = asyncio.get_running_loop()

        claim = await loop.run_in_executor(None, self.claim_repo.get_by_id, claim_id)
        if claim is None:
            raise ClaimNotFoundError(f"Claim not found: {claim_id}")

        reads = [
            loop.run_in_executor(None, self.child_repo.list_for_claim, collection, claim_id)
            for collection in CHILD_COLLECTIONS
        ]
        if linked_workspace_id:
            reads.append(loop.run_in_executor(
                None, self.partner_repo.get_for_linked_workspace, claim_id, linked_workspace_id
            ))

        results = await asyncio.gather(*reads)
        records = {
            collection.name: rows
            for collection, rows in zip(CHILD_COLLECTIONS, results)
        }
        assignment = results[len(CHILD_COLLECTIONS)] if linked_workspace_id else None

        for collection in CHILD_COLLECTIONS:
            if collection.attachment:
                records[collection.name] = self._with_signed_urls(records[collection.name])

        logger.info(
            f"Aggregated claim {claim_id}: "
            + ", ".join(f"{name}={len(rows)}" for name, rows in records.items())
            + f", partner assignment: {assignment['sales_rep_name'] if assignment else 'none'}"
        )

        payload: Dict[str, Any] = {
            "action": "create_or_update",
            "claim_data": {**claim, "instance_name": self.instance_name},
            "external_claim_id": claim["id"],
            "source_instance_url": self.source_instance_url,
            "target_workspace_id": target_workspace_id,
        }
        payload.update(build_child_payload(records))
        payload["partner_assignment"] = (
            {name: assignment.get(name) for name in ASSIGNMENT_FIELDS} if assignment else None
        )
        return payload

    async def aggregate_for_external(
        self,
        claim_id: str,
        include_accounting: bool = False,
        target_workspace_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Build the reduced create_or_update body sent to an unlinked peer.

        Only the claim's own fields travel, plus settlements, checks, expenses
        and fees when ``include_accounting`` is set.

        Raises:
            ClaimNotFoundError: If the claim does not exist
        """
        loop = asyncio.get_running_loop()

        claim = await loop.run_in_executor(None, self.claim_repo.get_by_id, claim_id)
        if claim is None:
            raise ClaimNotFoundError(f"Claim not found: {claim_id}")

        payload: Dict[str, Any] = {
            "action": "create_or_update",
            "claim_data": {
                **{name: claim.get(name) for name in CLAIM_FIELDS},
                "instance_name": self.instance_name,
            },
            "external_claim_id": claim["id"],
            "source_instance_url": self.source_instance_url,
            "target_workspace_id": target_workspace_id,
        }

        if include_accounting:
            collections = [get_collection(name) for name in EXTERNAL_ACCOUNTING]
            rows = await asyncio.gather(*(
                loop.run_in_executor(None, self.child_repo.list_for_claim, collection, claim_id)
                for collection in collections
            ))
            payload["accounting_data"] = {
                collection.payload_key: collection_rows
                for collection, collection_rows in zip(collections, rows)
            }

        return payload

    def _with_signed_urls(self, rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """
        Attach a one-hour signed URL to each attachment row.

        A row whose URL cannot be issued is kept without ``signed_url``.
        """
        signed = []
        for row in rows:
            try:
                url = self.storage.create_signed_url(row.get("file_path"), SIGNED_URL_EXPIRY_SECONDS)
                signed.append({**row, "signed_url": url})
            except (StorageError, OSError) as e:
                logger.warning(f"Failed to get signed URL for {row.get('file_name')}: {e}")
                signed.append(dict(row))
        return signed

"""Sync initiator: pushes a workspace's claims to linked peer instances."""

import asyncio
from typing import Any, Dict, List, Optional

from common.constants import LINK_STATUS_ACTIVE, LINK_STATUS_REVOKED
from common.logging_config import get_logger
from claimsync.auth import secrets_match
from claimsync.child_records import get_collection
from claimsync.exceptions import (
    ClaimNotFoundError,
    ClaimSyncException,
    InvalidRequestError,
    InvalidSyncCredentialsError,
    LinkedWorkspaceNotFoundError,
)
from claimsync.peer_client import PeerClient
from claimsync.repositories.child_record_repository import ChildRecordRepository
from claimsync.repositories.claim_repository import ClaimRepository
from claimsync.repositories.linked_claim_repository import LinkedClaimRepository
from claimsync.repositories.linked_workspace_repository import LinkedWorkspaceRepository
from claimsync.services.aggregator import RecordAggregator
from claimsync.types import ClaimSyncResult, LinkedWorkspace, WorkspaceSyncResult
from claimsync.utils import get_current_timestamp, normalize_instance_url

logger = get_logger(__name__)


class SyncInitiator:
    """
    Replicates claims from this instance to registered peers.

    Claims are pushed one after another unless ``sync_concurrency`` allows a
    bounded number in flight. A failure on one claim is recorded and the
    pass continues; nothing is retried.
    """

    def __init__(
        self,
        db_path: str,
        aggregator: RecordAggregator,
        peer_client: PeerClient,
        sync_concurrency: int = 1,
        claim_sync_secret: Optional[str] = None,
    ):
        self.claim_repo = ClaimRepository(db_path)
        self.child_repo = ChildRecordRepository(db_path)
        self.link_repo = LinkedWorkspaceRepository(db_path)
        self.linked_claim_repo = LinkedClaimRepository(db_path)
        self.aggregator = aggregator
        self.peer_client = peer_client
        self.sync_concurrency = max(1, sync_concurrency)
        self.claim_sync_secret = claim_sync_secret

    def register_link(
        self,
        workspace_id: str,
        external_instance_url: str,
        instance_name: str,
        sync_secret: str,
        target_workspace_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Register a peer for a workspace. Registering the same pair twice returns the first link;
        registering a revoked pair reactivates it with the new secret.

        Raises:
            InvalidRequestError: If a required field is empty
        """
        if not workspace_id or not external_instance_url or not instance_name or not sync_secret:
            raise InvalidRequestError("Missing required fields for link registration")

        url = normalize_instance_url(external_instance_url)
        existing = self.link_repo.get_by_workspace_and_url(workspace_id, url)
        if existing and existing.sync_status == LINK_STATUS_REVOKED:
            self.link_repo.reactivate(existing.id, instance_name, sync_secret, target_workspace_id)
            logger.info(f"Reactivated revoked link {existing.id} for workspace {workspace_id} -> {url}")
            return {"success": True, "message": "Link reactivated", "link_id": existing.id}
        if existing:
            logger.info(f"Workspace {workspace_id} already linked to {url} [link_id={existing.id}]")
            return {"success": True, "message": "Already linked", "link_id": existing.id}

        link = self.link_repo.create(
            workspace_id=workspace_id,
            external_instance_url=url,
            instance_name=instance_name,
            sync_secret=sync_secret,
            target_workspace_id=target_workspace_id,
        )
        return {"success": True, "link_id": link.id}

    def revoke_link(self, link_id: str) -> Dict[str, Any]:
        """
        Revoke a link's secret. Revoked links are excluded from every sync.

        Raises:
            LinkedWorkspaceNotFoundError: If the link does not exist
        """
        link = self.link_repo.get_by_id(link_id)
        if link is None:
            raise LinkedWorkspaceNotFoundError(f"Linked workspace not found: {link_id}")

        revoked_at = get_current_timestamp()
        self.link_repo.set_status(link_id, LINK_STATUS_REVOKED, revoked_at=revoked_at)
        return {"success": True, "link_id": link_id, "revoked_at": revoked_at}

    async def sync_claims(
        self,
        workspace_id: str,
        target_instance_url: str,
        sync_secret: str,
        target_workspace_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Push every claim of a workspace to one linked peer.

        Raises:
            InvalidSyncCredentialsError: If no unrevoked link matches workspace, target and secret
        """
        url = normalize_instance_url(target_instance_url or "")
        link = self.link_repo.get_by_workspace_and_url(workspace_id, url)

        if (
            link is None
            or link.sync_status == LINK_STATUS_REVOKED
            or not secrets_match(sync_secret, link.sync_secret)
        ):
            logger.warning(f"Rejected sync of workspace {workspace_id} to {url}: invalid credentials")
            raise InvalidSyncCredentialsError("Invalid sync credentials")

        results = await self._sync_link(link, target_workspace_id or link.target_workspace_id)
        self.link_repo.touch_last_synced(link.id)

        failed = sum(1 for result in results if not result.success)
        logger.info(f"Synced workspace {workspace_id} to {url}: {len(results) - failed} ok, {failed} failed")

        return {"success": True, "synced_claims": [result.to_dict() for result in results]}

    async def sync_all_workspaces(self) -> Dict[str, Any]:
        """
        Push every active link's workspace to its peer. Callers authorize before invoking.
        """
        links = self.link_repo.list_by_status(LINK_STATUS_ACTIVE)
        logger.info(f"Starting automatic workspace sync for {len(links)} linked workspaces")

        workspace_results: List[WorkspaceSyncResult] = []
        for link in links:
            try:
                logger.info(f"Auto-syncing workspace {link.workspace_id} to {link.instance_name}")
                results = await self._sync_link(link, link.target_workspace_id)
                self.link_repo.touch_last_synced(link.id)
                workspace_results.append(WorkspaceSyncResult(
                    workspace_id=link.workspace_id,
                    instance_name=link.instance_name,
                    results=results,
                ))
            except Exception as e:
                logger.error(f"Error syncing workspace {link.workspace_id}: {e}", exc_info=True)
                workspace_results.append(WorkspaceSyncResult(
                    workspace_id=link.workspace_id,
                    instance_name=link.instance_name,
                    error=str(e),
                ))

        logger.info(f"Automatic workspace sync completed for {len(workspace_results)} workspaces")
        return {
            "success": True,
            "synced_workspaces": len(workspace_results),
            "results": [result.to_dict() for result in workspace_results],
        }

    async def sync_claim_to_partner(
        self,
        claim_id: str,
        linked_workspace_id: str,
        partner_assignment: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Push a single claim to one linked peer.

        A caller-supplied partner assignment replaces the stored one in the payload.

        Raises:
            LinkedWorkspaceNotFoundError: If the link does not exist or is revoked
            ClaimNotFoundError: If the claim does not exist
            PeerSyncError: If the peer rejects the claim
        """
        link = self.link_repo.get_by_id(linked_workspace_id)
        if link is None or link.sync_status == LINK_STATUS_REVOKED:
            raise LinkedWorkspaceNotFoundError("Linked workspace not found")

        claim = self.claim_repo.get_by_id(claim_id)
        if claim is None:
            raise ClaimNotFoundError("Claim not found")

        payload = await self.aggregator.aggregate(claim_id, link.id, link.target_workspace_id)
        if partner_assignment is not None:
            payload["partner_assignment"] = partner_assignment

        logger.info(f"Sending claim {claim_id} to {link.external_instance_url}")
        result = await self.peer_client.post_claim(link.external_instance_url, link.sync_secret, payload)

        self.link_repo.touch_last_synced(link.id)
        self.child_repo.insert(get_collection("updates"), claim_id, {
            "content": f"Claim synced to partner: {link.instance_name}",
            "update_type": "partner_sync",
        })

        return {"success": True, "message": "Claim synced to partner", "result": result}

    async def sync_claim_to_external(
        self,
        claim_id: str,
        target_instance_url: str,
        instance_name: Optional[str] = None,
        include_accounting: bool = False,
        target_workspace_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Push a single claim to an instance without a workspace link.

        The instance-wide shared secret authenticates the push. The remote
        claim id is remembered in linked_claims so later pushes can be traced.

        Raises:
            ClaimSyncException: If no shared secret is configured
            InvalidRequestError: If the target URL is empty
            ClaimNotFoundError: If the claim does not exist
            PeerSyncError: If the peer rejects the claim
        """
        if not self.claim_sync_secret:
            raise ClaimSyncException("CLAIM_SYNC_SECRET not configured")

        url = normalize_instance_url(target_instance_url or "")
        if not url:
            raise InvalidRequestError("target_instance_url is required")

        payload = await self.aggregator.aggregate_for_external(
            claim_id, include_accounting=include_accounting, target_workspace_id=target_workspace_id
        )

        logger.info(f"Sending claim {claim_id} to external instance {url} (accounting={include_accounting})")
        result = await self.peer_client.post_claim(url, self.claim_sync_secret, payload)
        external_claim_id = result.get("claim_id") if isinstance(result, dict) else None

        display_name = instance_name or "External Instance"
        if external_claim_id:
            existing = self.linked_claim_repo.get_by_claim_and_instance(claim_id, url)
            if existing:
                self.linked_claim_repo.update_external_claim(existing.id, external_claim_id, display_name)
            else:
                self.linked_claim_repo.create(claim_id, url, external_claim_id, display_name)
        else:
            logger.warning(f"External instance {url} did not report a claim id for {claim_id}")

        self.child_repo.insert(get_collection("updates"), claim_id, {
            "content": f"Claim synced to {instance_name or url}",
            "update_type": "sync",
        })

        return {
            "success": True,
            "external_claim_id": external_claim_id,
            "message": "Claim synced successfully",
        }

    async def _sync_link(self, link: LinkedWorkspace, target_workspace_id: Optional[str]) -> List[ClaimSyncResult]:
        claims = self.claim_repo.list_by_workspace(link.workspace_id)

        if self.sync_concurrency == 1:
            return [
                await self._sync_claim(claim["id"], link, target_workspace_id)
                for claim in claims
            ]

        semaphore = asyncio.Semaphore(self.sync_concurrency)

        async def bounded(claim_id: str) -> ClaimSyncResult:
            async with semaphore:
                return await self._sync_claim(claim_id, link, target_workspace_id)

        return list(await asyncio.gather(*(bounded(claim["id"]) for claim in claims)))

    async def _sync_claim(
        self,
        claim_id: str,
        link: LinkedWorkspace,
        target_workspace_id: Optional[str],
    ) -> ClaimSyncResult:
        try:
            payload = await self.aggregator.aggregate(claim_id, link.id, target_workspace_id)
            result = await self.peer_client.post_claim(link.external_instance_url, link.sync_secret, payload)
            logger.debug(f"Sync result for claim {claim_id}: {result}")
            return ClaimSyncResult(claim_id=claim_id, success=True, result=result)
        except Exception as e:
            error = str(e) or type(e).__name__
            logger.error(f"Error syncing claim {claim_id} to {link.external_instance_url}: {error}")
            return ClaimSyncResult(claim_id=claim_id, success=False, error=error)

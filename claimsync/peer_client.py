"""HTTP client for talking to peer ClaimSync instances."""

import json
from typing import Any, Dict, Optional

import httpx

from common.constants import CLAIM_SYNC_SECRET_HEADER, CLAIM_SYNC_WEBHOOK_PATH, DEFAULT_PEER_TIMEOUT_SECONDS
from common.logging_config import get_logger
from claimsync.exceptions import PeerSyncError
from claimsync.utils import normalize_instance_url

logger = get_logger(__name__)


class PeerClient:
    """
    Async HTTP client for peer webhooks and signed attachment downloads.

    No retries: a failed call surfaces to the caller, which records it.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_PEER_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize peer client.

        Args:
            timeout: Per-request timeout in seconds
            transport: Optional transport override (mock or in-process app)
        """
        self.session = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def close(self) -> None:
        await self.session.aclose()

    async def post_claim(self, instance_url: str, sync_secret: str, body: Dict[str, Any]) -> Any:
        """
        POST a create_or_update body to a peer's claim sync webhook.

        Args:
            instance_url: Base URL of the peer instance
            sync_secret: Shared secret sent in the x-claim-sync-secret header
            body: JSON body

        Returns:
            Parsed JSON response, or ``{"raw": text}`` if the body is not JSON

        Raises:
            PeerSyncError: If the peer answers with a non-2xx status
            httpx.HTTPError: On transport failures and timeouts
        """
        url = f"{normalize_instance_url(instance_url)}{CLAIM_SYNC_WEBHOOK_PATH}"
        response = await self.session.post(
            url,
            json=body,
            headers={CLAIM_SYNC_SECRET_HEADER: sync_secret},
        )
        text = response.text
        logger.info(f"Response from {instance_url}: status={response.status_code}")

        if not response.is_success:
            logger.warning(f"Peer {instance_url} rejected sync: status={response.status_code} body={text}")
            raise PeerSyncError(text or f"HTTP {response.status_code}")

        try:
            return json.loads(text)
        except ValueError:
            return {"raw": text}

    async def download(self, url: str) -> bytes:
        """
        Fetch attachment bytes from a signed URL.

        Raises:
            PeerSyncError: If the download answers with a non-2xx status
            httpx.HTTPError: On transport failures and timeouts
        """
        response = await self.session.get(url)
        if not response.is_success:
            raise PeerSyncError(f"Download failed with status {response.status_code}")
        return response.content

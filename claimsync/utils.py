"""Utility helper functions for a ClaimSync instance."""

import uuid
from datetime import datetime, timezone

from common.constants import CLAIM_SYNC_WEBHOOK_PATH


def generate_uuid() -> str:
    """
    Generate a new UUID4 string.

    Returns:
        UUID4 string
    """
    return str(uuid.uuid4())


def get_current_timestamp() -> str:
    """
    Get current UTC timestamp in ISO format.

    Returns:
        Current timestamp as ISO format string
    """
    return datetime.now(timezone.utc).isoformat()


def normalize_instance_url(url: str) -> str:
    """
    Reduce a peer URL to its base: no trailing slashes and no webhook path.

    Args:
        url: Instance URL as typed by an operator (e.g. "https://peer.example/functions/v1/claim-sync-webhook/")

    Returns:
        Base URL of the instance
    """
    base_url = url.strip().rstrip("/")
    if base_url.endswith(CLAIM_SYNC_WEBHOOK_PATH):
        base_url = base_url[: -len(CLAIM_SYNC_WEBHOOK_PATH)]
    return base_url.rstrip("/")

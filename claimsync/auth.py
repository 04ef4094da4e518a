"""Shared-secret and service-credential checks for peer-facing actions."""

import hmac
from typing import Optional

from claimsync.config import Settings
from claimsync.exceptions import (
    CronAuthorizationError,
    ServiceAuthorizationError,
    SyncSecretMismatchError,
)


def secrets_match(provided: Optional[str], expected: Optional[str]) -> bool:
    """
    Compare two secrets in constant time.

    An unset expected secret never matches, so an unconfigured instance
    rejects every peer.
    """
    if not provided or not expected:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


def require_shared_secret(provided: Optional[str], settings: Settings) -> None:
    """
    Check a header-carried peer secret against the configured claim sync secret.

    Raises:
        SyncSecretMismatchError: If the secret is missing or wrong
    """
    if not secrets_match(provided, settings.claim_sync_secret):
        raise SyncSecretMismatchError("Unauthorized")


def has_service_credential(authorization: Optional[str], settings: Settings) -> bool:
    """
    Check an ``Authorization: Bearer <service role key>`` header.
    """
    if not authorization or not authorization.startswith("Bearer "):
        return False
    return secrets_match(authorization[len("Bearer "):], settings.service_role_key)


def require_service_credential(authorization: Optional[str], settings: Settings) -> None:
    """
    Raises:
        ServiceAuthorizationError: If the service bearer credential is missing or wrong
    """
    if not has_service_credential(authorization, settings):
        raise ServiceAuthorizationError("Unauthorized")


def require_cron_or_service(
    cron_secret: Optional[str],
    authorization: Optional[str],
    settings: Settings,
) -> None:
    """
    Authorize a scheduled bulk sync: a matching cron secret or the service credential.

    Raises:
        CronAuthorizationError: If neither credential is valid
    """
    if secrets_match(cron_secret, settings.cron_secret):
        return
    if has_service_credential(authorization, settings):
        return
    raise CronAuthorizationError("Unauthorized")

"""HTTP client for operating a ClaimSync instance."""

import uuid
from typing import Any, Dict, Optional

import httpx

from common.constants import (
    CLAIM_SYNC_SECRET_HEADER,
    CLAIM_SYNC_WEBHOOK_PATH,
    CRON_SECRET_HEADER,
    EXTERNAL_SYNC_PATH,
    PARTNER_SYNC_PATH,
    WORKSPACE_SYNC_PATH,
)
from common.logging_config import get_logger
from cli.config import Config

logger = get_logger(__name__)


class SyncClientError(Exception):
    """Raised when the instance answers a CLI request with an error."""

    def __init__(self, message: str, status_code: int, code: str = "UNKNOWN"):
        super().__init__(message)
        self.status_code = status_code
        self.code = code


class SyncClient:
    """HTTP client for the sync webhook endpoints. Requests are sent once, never retried."""

    def __init__(self, config: Config, transport: Optional[httpx.BaseTransport] = None):
        """
        Initialize sync client.

        Args:
            config: Configuration instance
            transport: Optional transport override
        """
        self.config = config
        self.session = httpx.Client(
            base_url=config.get_base_url(),
            timeout=config.get_timeout(),
            transport=transport
        )
        self.request_id = None
        logger.info(f"Initialized SyncClient [base_url={config.get_base_url()}]")

    def close(self) -> None:
        self.session.close()

    def _post(self, endpoint: str, body: Dict[str, Any], headers: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        """
        POST a JSON body and return the decoded response.

        Raises:
            ConnectionError: If the instance cannot be reached or times out
            SyncClientError: If the instance answers with a non-2xx status
        """
        self.request_id = str(uuid.uuid4())
        headers = dict(headers or {})
        headers['X-Request-ID'] = self.request_id

        logger.debug(f"Making request: POST {endpoint} action={body.get('action')} [request_id={self.request_id}]")

        try:
            response = self.session.post(endpoint, json=body, headers=headers)
        except httpx.ConnectError as e:
            logger.error(f"Network error: POST {endpoint} error={e} [request_id={self.request_id}]")
            raise ConnectionError("Cannot connect to ClaimSync instance. Is it running?")
        except httpx.TimeoutException:
            logger.error(f"Timeout: POST {endpoint} [request_id={self.request_id}]")
            raise ConnectionError("Request timed out. The sync may still be running on the instance.")

        logger.debug(
            f"Response received: POST {endpoint} status={response.status_code} [request_id={self.request_id}]"
        )

        if not response.is_success:
            logger.warning(
                f"Request failed: POST {endpoint} status={response.status_code} [request_id={self.request_id}]"
            )
            raise self._error_from(response)

        return response.json()

    def _error_from(self, response: httpx.Response) -> SyncClientError:
        """
        Map an error response to a user-friendly exception.
        """
        try:
            error_data = response.json()
            detail = error_data.get('error') or error_data.get('detail') or 'Unknown error'
            code = error_data.get('code', 'UNKNOWN')
        except ValueError:
            detail = response.text or 'Unknown error'
            code = 'UNKNOWN'

        error_messages = {
            'UNAUTHORIZED': 'Not authorized. Check the service role key, cron secret or claim sync secret.',
            'INVALID_SYNC_CREDENTIALS': 'Invalid sync credentials for this workspace and target instance.',
            'CLAIM_NOT_FOUND': 'Claim not found.',
            'LINKED_WORKSPACE_NOT_FOUND': 'Linked workspace not found or revoked.',
        }
        message = error_messages.get(code, detail)
        return SyncClientError(message, response.status_code, code)

    def _service_headers(self) -> Dict[str, str]:
        """
        Raises:
            ValueError: If no service role key is configured
        """
        key = self.config.get_service_role_key()
        if not key:
            raise ValueError("No service role key configured. Set SERVICE_ROLE_KEY or service_role_key in the config file.")
        return {'Authorization': f'Bearer {key}'}

    def register_link(
        self,
        workspace_id: str,
        external_instance_url: str,
        instance_name: str,
        sync_secret: str,
        target_workspace_id: Optional[str] = None
    ) -> Dict[str, Any]:
        body = {
            'action': 'register_link',
            'workspace_id': workspace_id,
            'external_instance_url': external_instance_url,
            'instance_name': instance_name,
            'sync_secret': sync_secret,
            'target_workspace_id': target_workspace_id,
        }
        return self._post(WORKSPACE_SYNC_PATH, body, self._service_headers())

    def sync_claims(
        self,
        workspace_id: str,
        target_instance_url: str,
        sync_secret: str,
        target_workspace_id: Optional[str] = None
    ) -> Dict[str, Any]:
        body = {
            'action': 'sync_claims',
            'workspace_id': workspace_id,
            'target_instance_url': target_instance_url,
            'sync_secret': sync_secret,
            'target_workspace_id': target_workspace_id,
        }
        return self._post(CLAIM_SYNC_WEBHOOK_PATH, body)

    def sync_all_workspaces(self) -> Dict[str, Any]:
        """
        Trigger the bulk pass with the cron secret, falling back to the service key.
        """
        cron_secret = self.config.get_cron_secret()
        headers = {CRON_SECRET_HEADER: cron_secret} if cron_secret else self._service_headers()
        return self._post(CLAIM_SYNC_WEBHOOK_PATH, {'action': 'sync_all_workspaces'}, headers)

    def sync_claim_to_partner(
        self,
        claim_id: str,
        linked_workspace_id: str,
        partner_assignment: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        body: Dict[str, Any] = {'claim_id': claim_id, 'linked_workspace_id': linked_workspace_id}
        if partner_assignment:
            body['partner_assignment'] = partner_assignment
        return self._post(PARTNER_SYNC_PATH, body, self._service_headers())

    def sync_claim_to_external(
        self,
        claim_id: str,
        target_instance_url: str,
        instance_name: Optional[str] = None,
        include_accounting: bool = False,
        target_workspace_id: Optional[str] = None
    ) -> Dict[str, Any]:
        body = {
            'claim_id': claim_id,
            'target_instance_url': target_instance_url,
            'instance_name': instance_name,
            'include_accounting': include_accounting,
            'target_workspace_id': target_workspace_id,
        }
        return self._post(EXTERNAL_SYNC_PATH, body, self._service_headers())

    def revoke_link(self, link_id: str) -> Dict[str, Any]:
        return self._post(
            WORKSPACE_SYNC_PATH,
            {'action': 'revoke_link', 'link_id': link_id},
            self._service_headers()
        )

    def get_users(self) -> Dict[str, Any]:
        """
        List users of the configured instance using the claim sync secret.

        Raises:
            ValueError: If no claim sync secret is configured
        """
        secret = self.config.get_claim_sync_secret()
        if not secret:
            raise ValueError("No claim sync secret configured. Set CLAIM_SYNC_SECRET or claim_sync_secret.")
        return self._post(CLAIM_SYNC_WEBHOOK_PATH, {'action': 'get_users'}, {CLAIM_SYNC_SECRET_HEADER: secret})

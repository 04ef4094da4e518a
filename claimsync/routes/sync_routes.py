"""Peer-facing sync webhook routes."""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Header, Request, Response, status
from fastapi.responses import JSONResponse

from common.constants import CORS_HEADERS, FUNCTIONS_PREFIX
from common.logging_config import get_logger
from claimsync.auth import require_cron_or_service, require_service_credential, require_shared_secret
from claimsync.config import Settings
from claimsync.dependencies import get_initiator, get_receiver, get_settings
from claimsync.exceptions import InvalidRequestError, UnknownActionError
from claimsync.schemas.sync import (
    ActionRequest,
    CreateOrUpdateRequest,
    ExternalSyncRequest,
    PartnerSyncRequest,
    RegisterLinkRequest,
    RevokeLinkRequest,
    SyncClaimsRequest,
    WorkspaceInviteRequest
)
from claimsync.services.sync_initiator import SyncInitiator
from claimsync.services.sync_receiver import SyncReceiver

logger = get_logger(__name__)

router = APIRouter(prefix=FUNCTIONS_PREFIX, tags=["Sync"])


async def _read_body(request: Request) -> Dict[str, Any]:
    try:
        body = await request.json()
    except ValueError:
        raise InvalidRequestError("Request body must be valid JSON")
    if not isinstance(body, dict):
        raise InvalidRequestError("Request body must be a JSON object")
    return body


def _json(content: Dict[str, Any]) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_200_OK, content=content, headers=CORS_HEADERS)


def _preflight() -> Response:
    return Response(status_code=status.HTTP_200_OK, headers=CORS_HEADERS)


@router.options("/claim-sync-webhook")
async def claim_sync_webhook_preflight():
    return _preflight()


@router.options("/workspace-sync")
async def workspace_sync_preflight():
    return _preflight()


@router.options("/sync-claim-to-partner")
async def partner_sync_preflight():
    return _preflight()


@router.options("/sync-claim-to-external")
async def external_sync_preflight():
    return _preflight()


@router.post("/claim-sync-webhook")
@router.post("/workspace-sync")
async def sync_webhook(
    request: Request,
    x_claim_sync_secret: Optional[str] = Header(None),
    x_workspace_sync_secret: Optional[str] = Header(None),
    x_cron_secret: Optional[str] = Header(None),
    authorization: Optional[str] = Header(None),
    settings: Settings = Depends(get_settings),
    initiator: SyncInitiator = Depends(get_initiator),
    receiver: SyncReceiver = Depends(get_receiver)
):
    """
    Dispatch a sync action named in the JSON body.

    Only ``action`` is read before authentication. Header credentials are
    checked before the rest of the body is validated; sync_claims carries its
    secret in the body, so its body is validated first.

    Actions:
        - create_or_update, get_users: x-claim-sync-secret header
        - receive_workspace_invite: x-workspace-sync-secret header
        - sync_claims: sync_secret in the body, matched against the stored link
        - sync_all_workspaces: x-cron-secret header or service bearer token
        - register_link, revoke_link: service bearer token

    Raises:
        - 400: Malformed body, unknown action or invalid sync credentials
        - 401: Missing or mismatched secret
        - 404: Referenced claim or link not found
        - 500: Internal server error
    """
    body = await _read_body(request)
    action = ActionRequest.model_validate(body).action
    logger.info(f"Sync action requested: {action} path={request.url.path}")

    if action == "create_or_update":
        require_shared_secret(x_claim_sync_secret, settings)
        payload = CreateOrUpdateRequest.model_validate(body)
        result = await receiver.create_or_update(
            claim_data=payload.claim_data,
            external_claim_id=payload.external_claim_id,
            source_instance_url=payload.source_instance_url,
            target_workspace_id=payload.target_workspace_id,
            child_payload=payload.model_dump(),
            partner_assignment=payload.partner_assignment.model_dump() if payload.partner_assignment else None,
        )
        return _json(result)

    if action == "get_users":
        require_shared_secret(x_claim_sync_secret, settings)
        return _json(receiver.get_users())

    if action == "receive_workspace_invite":
        require_shared_secret(x_workspace_sync_secret, settings)
        payload = WorkspaceInviteRequest.model_validate(body)
        return _json(receiver.receive_workspace_invite(
            source_workspace_id=payload.source_workspace_id,
            source_instance_url=payload.source_instance_url,
            source_instance_name=payload.source_instance_name,
            workspace_name=payload.workspace_name,
        ))

    if action == "sync_claims":
        payload = SyncClaimsRequest.model_validate(body)
        result = await initiator.sync_claims(
            workspace_id=payload.workspace_id,
            target_instance_url=payload.target_instance_url,
            sync_secret=payload.sync_secret,
            target_workspace_id=payload.target_workspace_id,
        )
        return _json(result)

    if action == "sync_all_workspaces":
        require_cron_or_service(x_cron_secret, authorization, settings)
        return _json(await initiator.sync_all_workspaces())

    if action == "register_link":
        require_service_credential(authorization, settings)
        payload = RegisterLinkRequest.model_validate(body)
        return _json(initiator.register_link(
            workspace_id=payload.workspace_id,
            external_instance_url=payload.external_instance_url,
            instance_name=payload.instance_name,
            sync_secret=payload.sync_secret,
            target_workspace_id=payload.target_workspace_id,
        ))

    if action == "revoke_link":
        require_service_credential(authorization, settings)
        payload = RevokeLinkRequest.model_validate(body)
        return _json(initiator.revoke_link(payload.link_id))

    raise UnknownActionError(f"Unknown action: {action}")


@router.post("/sync-claim-to-partner")
async def sync_claim_to_partner(
    request: Request,
    authorization: Optional[str] = Header(None),
    settings: Settings = Depends(get_settings),
    initiator: SyncInitiator = Depends(get_initiator)
):
    """
    Push one claim to one linked workspace.

    Parameters:
        - claim_id: Local claim id
        - linked_workspace_id: Link to push through
        - partner_assignment: Optional assignment overriding the stored one
        - Authorization header: Bearer <service role key> (required)

    Raises:
        - 401: Missing or wrong service credential
        - 404: Claim or link not found
        - 500: Peer rejected the claim
    """
    require_service_credential(authorization, settings)
    payload = PartnerSyncRequest.model_validate(await _read_body(request))
    result = await initiator.sync_claim_to_partner(
        claim_id=payload.claim_id,
        linked_workspace_id=payload.linked_workspace_id,
        partner_assignment=payload.partner_assignment.model_dump() if payload.partner_assignment else None,
    )
    return _json(result)


@router.post("/sync-claim-to-external")
async def sync_claim_to_external(
    request: Request,
    authorization: Optional[str] = Header(None),
    settings: Settings = Depends(get_settings),
    initiator: SyncInitiator = Depends(get_initiator)
):
    """
    Push one claim to an instance this workspace has no link with.

    Parameters:
        - claim_id: Local claim id
        - target_instance_url: Base or webhook URL of the receiving instance
        - instance_name: Optional display name of the receiver
        - include_accounting: Send settlements, checks, expenses and fees (default false)
        - Authorization header: Bearer <service role key> (required)

    Raises:
        - 401: Missing or wrong service credential
        - 404: Claim not found
        - 500: Shared secret not configured, or the receiver rejected the claim
    """
    require_service_credential(authorization, settings)
    payload = ExternalSyncRequest.model_validate(await _read_body(request))
    result = await initiator.sync_claim_to_external(
        claim_id=payload.claim_id,
        target_instance_url=payload.target_instance_url,
        instance_name=payload.instance_name,
        include_accounting=payload.include_accounting,
        target_workspace_id=payload.target_workspace_id,
    )
    return _json(result)

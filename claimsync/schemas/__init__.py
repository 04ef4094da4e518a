"""Pydantic schemas for API requests and responses."""

from claimsync.schemas.sync import (
    ActionRequest,
    PartnerAssignment,
    AccountingData,
    CreateOrUpdateRequest,
    RegisterLinkRequest,
    SyncClaimsRequest,
    WorkspaceInviteRequest,
    RevokeLinkRequest,
    PartnerSyncRequest,
    ExternalSyncRequest
)
from claimsync.schemas.common import ErrorResponse

__all__ = [
    "ActionRequest",
    "PartnerAssignment",
    "AccountingData",
    "CreateOrUpdateRequest",
    "RegisterLinkRequest",
    "SyncClaimsRequest",
    "WorkspaceInviteRequest",
    "RevokeLinkRequest",
    "PartnerSyncRequest",
    "ExternalSyncRequest",
    "ErrorResponse"
]

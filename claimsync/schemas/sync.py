"""Pydantic schemas for the sync webhook actions."""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class ActionRequest(BaseModel):
    """Envelope shared by every webhook body; only ``action`` is read here."""
    model_config = ConfigDict(extra="allow")

    action: str


class PartnerAssignment(BaseModel):
    """Partner assignment as it travels between instances."""
    sales_rep_id: Optional[str] = None
    sales_rep_email: Optional[str] = None
    sales_rep_name: Optional[str] = None


class AccountingData(BaseModel):
    """Accounting child arrays of a claim."""
    model_config = ConfigDict(extra="ignore")

    settlements: List[Dict[str, Any]] = Field(default_factory=list)
    checks: List[Dict[str, Any]] = Field(default_factory=list)
    expenses: List[Dict[str, Any]] = Field(default_factory=list)
    fees: List[Dict[str, Any]] = Field(default_factory=list)
    payments: List[Dict[str, Any]] = Field(default_factory=list)


class CreateOrUpdateRequest(BaseModel):
    """Request model for the create_or_update action."""
    model_config = ConfigDict(extra="ignore")

    action: Literal["create_or_update"] = "create_or_update"
    claim_data: Dict[str, Any]
    external_claim_id: str
    source_instance_url: str
    target_workspace_id: Optional[str] = None
    tasks_data: List[Dict[str, Any]] = Field(default_factory=list)
    updates_data: List[Dict[str, Any]] = Field(default_factory=list)
    inspections_data: List[Dict[str, Any]] = Field(default_factory=list)
    adjusters_data: List[Dict[str, Any]] = Field(default_factory=list)
    accounting_data: Optional[AccountingData] = Field(default_factory=AccountingData)
    files_data: List[Dict[str, Any]] = Field(default_factory=list)
    photos_data: List[Dict[str, Any]] = Field(default_factory=list)
    emails_data: List[Dict[str, Any]] = Field(default_factory=list)
    partner_assignment: Optional[PartnerAssignment] = None


class RegisterLinkRequest(BaseModel):
    """Request model for the register_link action."""
    workspace_id: str = ""
    external_instance_url: str = ""
    instance_name: str = ""
    sync_secret: str = ""
    target_workspace_id: Optional[str] = None


class SyncClaimsRequest(BaseModel):
    """Request model for the sync_claims action."""
    workspace_id: str
    target_instance_url: str
    sync_secret: str
    target_workspace_id: Optional[str] = None


class WorkspaceInviteRequest(BaseModel):
    """Request model for the receive_workspace_invite action."""
    source_workspace_id: Optional[str] = None
    source_instance_url: Optional[str] = None
    source_instance_name: Optional[str] = None
    workspace_name: Optional[str] = None


class RevokeLinkRequest(BaseModel):
    """Request model for the revoke_link action."""
    link_id: str


class PartnerSyncRequest(BaseModel):
    """Request model for the single-claim partner push."""
    claim_id: str
    linked_workspace_id: str
    partner_assignment: Optional[PartnerAssignment] = None


class ExternalSyncRequest(BaseModel):
    """Request model for pushing one claim to an unlinked instance."""
    claim_id: str
    target_instance_url: str
    instance_name: Optional[str] = None
    include_accounting: bool = False
    target_workspace_id: Optional[str] = None

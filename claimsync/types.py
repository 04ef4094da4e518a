"""Instance-specific data type definitions."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class LinkedWorkspace:
    """
    Trust relationship between a local workspace and an external instance.
    """
    id: str
    workspace_id: str
    external_instance_url: str
    instance_name: str
    sync_secret: str
    sync_status: str
    created_at: str
    target_workspace_id: Optional[str] = None
    last_synced_at: Optional[str] = None
    revoked_at: Optional[str] = None


@dataclass
class LinkedClaim:
    """
    Receiver-side mapping from a remote claim id to the local claim row.
    """
    id: str
    claim_id: str
    external_instance_url: str
    external_claim_id: str
    instance_name: str
    sync_status: str
    linked_at: str
    last_synced_at: Optional[str] = None


@dataclass
class ClaimSyncResult:
    """
    Outcome of pushing one claim to a peer.
    """
    claim_id: str
    success: bool
    result: Optional[Any] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"claim_id": self.claim_id, "success": self.success}
        if self.success:
            data["result"] = self.result
        else:
            data["error"] = self.error
        return data


@dataclass
class WorkspaceSyncResult:
    """
    Outcome of one linked workspace during a bulk pass.
    """
    workspace_id: str
    instance_name: str
    results: List[ClaimSyncResult] = field(default_factory=list)
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "workspace_id": self.workspace_id,
            "instance_name": self.instance_name,
        }
        if self.error is not None:
            data["success"] = False
            data["error"] = self.error
        else:
            data["claims_synced"] = len(self.results)
            data["results"] = [result.to_dict() for result in self.results]
        return data

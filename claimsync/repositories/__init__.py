"""Repository layer for data access."""

from claimsync.repositories.claim_repository import ClaimRepository
from claimsync.repositories.child_record_repository import ChildRecordRepository
from claimsync.repositories.linked_workspace_repository import LinkedWorkspaceRepository
from claimsync.repositories.linked_claim_repository import LinkedClaimRepository
from claimsync.repositories.partner_assignment_repository import PartnerAssignmentRepository
from claimsync.repositories.user_repository import UserRepository

__all__ = [
    "ClaimRepository",
    "ChildRecordRepository",
    "LinkedWorkspaceRepository",
    "LinkedClaimRepository",
    "PartnerAssignmentRepository",
    "UserRepository",
]

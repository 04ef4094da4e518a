"""Partner assignment repository.

On the sending instance an assignment is scoped to a linked workspace; on the
receiving instance it is scoped to the instance it came from.
"""

from typing import Any, Dict, Optional

from common.logging_config import get_logger
from claimsync.database import get_db_connection, row_to_dict
from claimsync.utils import generate_uuid, get_current_timestamp

logger = get_logger(__name__)

ASSIGNMENT_FIELDS = ("sales_rep_id", "sales_rep_email", "sales_rep_name")


class PartnerAssignmentRepository:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def assign_for_linked_workspace(
        self,
        claim_id: str,
        linked_workspace_id: str,
        assignment: Dict[str, Any],
    ) -> str:
        existing = self.get_for_linked_workspace(claim_id, linked_workspace_id)
        return self._save(existing, claim_id, assignment, linked_workspace_id=linked_workspace_id)

    def get_for_linked_workspace(self, claim_id: str, linked_workspace_id: str) -> Optional[Dict[str, Any]]:
        with get_db_connection(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(
                """SELECT * FROM claim_partner_assignments
                   WHERE claim_id = ? AND linked_workspace_id = ?
                   ORDER BY updated_at DESC LIMIT 1""",
                (claim_id, linked_workspace_id)
            )
            return row_to_dict(cursor.fetchone())

    def upsert_for_source(self, claim_id: str, source_instance_url: str, assignment: Dict[str, Any]) -> str:
        existing = self.get_for_source(claim_id, source_instance_url)
        return self._save(existing, claim_id, assignment, source_instance_url=source_instance_url)

    def get_for_source(self, claim_id: str, source_instance_url: str) -> Optional[Dict[str, Any]]:
        with get_db_connection(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(
                """SELECT * FROM claim_partner_assignments
                   WHERE claim_id = ? AND source_instance_url = ?""",
                (claim_id, source_instance_url)
            )
            return row_to_dict(cursor.fetchone())

    def _save(
        self,
        existing: Optional[Dict[str, Any]],
        claim_id: str,
        assignment: Dict[str, Any],
        linked_workspace_id: Optional[str] = None,
        source_instance_url: Optional[str] = None,
    ) -> str:
        values = tuple(assignment.get(name) for name in ASSIGNMENT_FIELDS)
        now = get_current_timestamp()

        with get_db_connection(self.db_path) as conn:
            cursor = conn.cursor()
            if existing:
                assignment_id = existing["id"]
                cursor.execute(
                    """UPDATE claim_partner_assignments
                       SET sales_rep_id = ?, sales_rep_email = ?, sales_rep_name = ?, updated_at = ?
                       WHERE id = ?""",
                    values + (now, assignment_id)
                )
            else:
                assignment_id = generate_uuid()
                cursor.execute(
                    """INSERT INTO claim_partner_assignments
                       (id, claim_id, linked_workspace_id, source_instance_url,
                        sales_rep_id, sales_rep_email, sales_rep_name, updated_at)
                       VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
                    (assignment_id, claim_id, linked_workspace_id, source_instance_url) + values + (now,)
                )
            conn.commit()

        logger.debug(f"Partner assignment saved [claim_id={claim_id}] [assignment_id={assignment_id}]")
        return assignment_id

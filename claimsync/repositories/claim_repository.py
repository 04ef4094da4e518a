"""Claim repository for database operations."""

from typing import Any, Dict, List, Optional

from common.logging_config import get_logger
from claimsync.database import get_db_connection, row_to_dict
from claimsync.utils import generate_uuid, get_current_timestamp

logger = get_logger(__name__)

CLAIM_FIELDS = (
    "claim_number",
    "policyholder_name",
    "policyholder_email",
    "policyholder_phone",
    "policyholder_address",
    "insurance_company",
    "insurance_phone",
    "insurance_email",
    "loss_type",
    "loss_date",
    "loss_description",
    "policy_number",
    "status",
    "claim_amount",
)


class ClaimRepository:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def create_claim(
        self,
        workspace_id: str,
        data: Dict[str, Any],
        claim_id: Optional[str] = None,
        conn=None,
    ) -> str:
        """
        Insert a claim. When ``conn`` is given the caller owns the transaction.

        Returns:
            The new claim id
        """
        claim_id = claim_id or generate_uuid()
        now = get_current_timestamp()
        values = {name: data.get(name) for name in CLAIM_FIELDS}
        values["status"] = values["status"] or "open"

        logger.debug(f"Creating claim in workspace {workspace_id} [claim_id={claim_id}]")

        columns = ("id", "workspace_id") + CLAIM_FIELDS + ("created_at", "updated_at")
        params = (claim_id, workspace_id) + tuple(values[name] for name in CLAIM_FIELDS) + (now, now)

        if conn is not None:
            self._insert(conn, columns, params)
        else:
            with get_db_connection(self.db_path) as own_conn:
                self._insert(own_conn, columns, params)
                own_conn.commit()

        logger.info(f"Claim created [claim_id={claim_id}] [workspace_id={workspace_id}]")
        return claim_id

    def _insert(self, conn, columns: tuple, params: tuple) -> None:
        try:
            cursor = conn.cursor()
            cursor.execute(
                f"INSERT INTO claims ({', '.join(columns)}) VALUES ({', '.join('?' for _ in columns)})",
                params
            )
        except Exception as e:
            logger.error(f"Failed to create claim {params[0]}: {e}", exc_info=True)
            raise

    def update_claim(self, claim_id: str, workspace_id: str, data: Dict[str, Any]) -> None:
        """
        Update a claim in place. Fields absent from ``data`` keep their stored values.
        """
        logger.debug(f"Updating claim [claim_id={claim_id}]")
        present = [name for name in CLAIM_FIELDS if data.get(name) is not None]
        assignments = "".join(f"{name} = ?, " for name in present)
        params = tuple(data[name] for name in present) + (workspace_id, get_current_timestamp(), claim_id)

        with get_db_connection(self.db_path) as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(
                    f"UPDATE claims SET {assignments}workspace_id = ?, updated_at = ? WHERE id = ?",
                    params
                )
                conn.commit()
                logger.info(f"Claim updated [claim_id={claim_id}]")
            except Exception as e:
                logger.error(f"Failed to update claim {claim_id}: {e}", exc_info=True)
                raise

    def get_by_id(self, claim_id: str) -> Optional[Dict[str, Any]]:
        with get_db_connection(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM claims WHERE id = ?", (claim_id,))
            return row_to_dict(cursor.fetchone())

    def list_by_workspace(self, workspace_id: str) -> List[Dict[str, Any]]:
        logger.debug(f"Fetching claims for workspace {workspace_id}")
        with get_db_connection(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT * FROM claims WHERE workspace_id = ? ORDER BY created_at, id",
                (workspace_id,)
            )
            claims = [row_to_dict(row) for row in cursor.fetchall()]

        logger.debug(f"Fetched {len(claims)} claims for workspace {workspace_id}")
        return claims

    def count(self) -> int:
        with get_db_connection(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT COUNT(*) AS total FROM claims")
            return cursor.fetchone()["total"]

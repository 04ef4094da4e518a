"""Linked claim repository: references between local claims and claims on other instances."""

import sqlite3
from typing import Optional

from common.logging_config import get_logger
from claimsync.database import get_db_connection
from claimsync.types import LinkedClaim
from claimsync.utils import generate_uuid, get_current_timestamp

logger = get_logger(__name__)


def _row_to_linked_claim(row: sqlite3.Row) -> LinkedClaim:
    return LinkedClaim(
        id=row["id"],
        claim_id=row["claim_id"],
        external_instance_url=row["external_instance_url"],
        external_claim_id=row["external_claim_id"],
        instance_name=row["instance_name"],
        sync_status=row["sync_status"],
        linked_at=row["linked_at"],
        last_synced_at=row["last_synced_at"],
    )


class LinkedClaimRepository:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def get_by_external(self, external_instance_url: str, external_claim_id: str) -> Optional[LinkedClaim]:
        with get_db_connection(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(
                """SELECT * FROM linked_claims
                   WHERE external_instance_url = ? AND external_claim_id = ?""",
                (external_instance_url, external_claim_id)
            )
            row = cursor.fetchone()
            return _row_to_linked_claim(row) if row else None

    def create(
        self,
        claim_id: str,
        external_instance_url: str,
        external_claim_id: str,
        instance_name: str,
        conn=None,
    ) -> LinkedClaim:
        """
        Record that a local claim mirrors a remote one.

        Raises:
            sqlite3.IntegrityError: If the remote claim is already linked
        """
        link_id = generate_uuid()
        now = get_current_timestamp()

        params = (link_id, claim_id, external_instance_url, external_claim_id, instance_name, now, now)
        if conn is not None:
            self._insert(conn, params)
        else:
            with get_db_connection(self.db_path) as own_conn:
                self._insert(own_conn, params)
                own_conn.commit()

        logger.info(f"Linked claim recorded: {external_instance_url}/{external_claim_id} -> {claim_id}")
        return LinkedClaim(
            id=link_id,
            claim_id=claim_id,
            external_instance_url=external_instance_url,
            external_claim_id=external_claim_id,
            instance_name=instance_name,
            sync_status="synced",
            linked_at=now,
            last_synced_at=now,
        )

    def _insert(self, conn, params: tuple) -> None:
        try:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO linked_claims (id, claim_id, external_instance_url, external_claim_id,
                                           instance_name, sync_status, last_synced_at, linked_at)
                VALUES (?, ?, ?, ?, ?, 'synced', ?, ?)
                """,
                params
            )
        except sqlite3.IntegrityError:
            logger.warning(f"Remote claim already linked: {params[2]}/{params[3]}")
            raise
        except Exception as e:
            logger.error(f"Failed to record linked claim for {params[3]}: {e}", exc_info=True)
            raise

    def mark_synced(self, external_instance_url: str, external_claim_id: str) -> None:
        with get_db_connection(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(
                """UPDATE linked_claims SET sync_status = 'synced', last_synced_at = ?
                   WHERE external_instance_url = ? AND external_claim_id = ?""",
                (get_current_timestamp(), external_instance_url, external_claim_id)
            )
            conn.commit()

    def get_by_claim_and_instance(self, claim_id: str, external_instance_url: str) -> Optional[LinkedClaim]:
        with get_db_connection(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(
                """SELECT * FROM linked_claims
                   WHERE claim_id = ? AND external_instance_url = ?""",
                (claim_id, external_instance_url)
            )
            row = cursor.fetchone()
            return _row_to_linked_claim(row) if row else None

    def update_external_claim(self, link_id: str, external_claim_id: str, instance_name: str) -> None:
        """Point an existing link at the remote claim id the peer last reported."""
        with get_db_connection(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(
                """UPDATE linked_claims
                   SET external_claim_id = ?, instance_name = ?, sync_status = 'synced', last_synced_at = ?
                   WHERE id = ?""",
                (external_claim_id, instance_name, get_current_timestamp(), link_id)
            )
            conn.commit()

    def count(self) -> int:
        with get_db_connection(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT COUNT(*) AS total FROM linked_claims")
            return cursor.fetchone()["total"]

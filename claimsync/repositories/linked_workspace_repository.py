"""Linked workspace repository for database operations."""

import sqlite3
from typing import List, Optional

from common.constants import LINK_STATUS_ACTIVE
from common.logging_config import get_logger
from claimsync.database import get_db_connection
from claimsync.types import LinkedWorkspace
from claimsync.utils import generate_uuid, get_current_timestamp

logger = get_logger(__name__)


def _row_to_link(row: sqlite3.Row) -> LinkedWorkspace:
    return LinkedWorkspace(
        id=row["id"],
        workspace_id=row["workspace_id"],
        external_instance_url=row["external_instance_url"],
        instance_name=row["instance_name"],
        sync_secret=row["sync_secret"],
        sync_status=row["sync_status"],
        created_at=row["created_at"],
        target_workspace_id=row["target_workspace_id"],
        last_synced_at=row["last_synced_at"],
        revoked_at=row["revoked_at"],
    )


class LinkedWorkspaceRepository:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def create(
        self,
        workspace_id: str,
        external_instance_url: str,
        instance_name: str,
        sync_secret: str,
        target_workspace_id: Optional[str] = None,
        sync_status: str = LINK_STATUS_ACTIVE,
    ) -> LinkedWorkspace:
        link_id = generate_uuid()
        created_at = get_current_timestamp()
        logger.debug(f"Creating linked workspace {workspace_id} -> {external_instance_url}")

        with get_db_connection(self.db_path) as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(
                    """
                    INSERT INTO linked_workspaces (id, workspace_id, external_instance_url, instance_name,
                                                   sync_secret, target_workspace_id, sync_status, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (link_id, workspace_id, external_instance_url, instance_name,
                     sync_secret, target_workspace_id, sync_status, created_at)
                )
                conn.commit()
                logger.info(f"Linked workspace created [link_id={link_id}] [workspace_id={workspace_id}]")
            except Exception as e:
                logger.error(f"Failed to create linked workspace for {workspace_id}: {e}", exc_info=True)
                raise

        return LinkedWorkspace(
            id=link_id,
            workspace_id=workspace_id,
            external_instance_url=external_instance_url,
            instance_name=instance_name,
            sync_secret=sync_secret,
            sync_status=sync_status,
            created_at=created_at,
            target_workspace_id=target_workspace_id,
        )

    def get_by_id(self, link_id: str) -> Optional[LinkedWorkspace]:
        with get_db_connection(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM linked_workspaces WHERE id = ?", (link_id,))
            row = cursor.fetchone()
            return _row_to_link(row) if row else None

    def get_by_workspace_and_url(self, workspace_id: str, external_instance_url: str) -> Optional[LinkedWorkspace]:
        with get_db_connection(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT * FROM linked_workspaces WHERE workspace_id = ? AND external_instance_url = ?",
                (workspace_id, external_instance_url)
            )
            row = cursor.fetchone()
            return _row_to_link(row) if row else None

    def list_by_status(self, sync_status: str) -> List[LinkedWorkspace]:
        with get_db_connection(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT * FROM linked_workspaces WHERE sync_status = ? ORDER BY created_at, id",
                (sync_status,)
            )
            return [_row_to_link(row) for row in cursor.fetchall()]

    def count(self) -> int:
        with get_db_connection(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT COUNT(*) AS total FROM linked_workspaces")
            return cursor.fetchone()["total"]

    def touch_last_synced(self, link_id: str, synced_at: Optional[str] = None) -> str:
        synced_at = synced_at or get_current_timestamp()
        with get_db_connection(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(
                "UPDATE linked_workspaces SET last_synced_at = ? WHERE id = ?",
                (synced_at, link_id)
            )
            conn.commit()
        logger.debug(f"Linked workspace {link_id} last synced at {synced_at}")
        return synced_at

    def set_status(self, link_id: str, sync_status: str, revoked_at: Optional[str] = None) -> None:
        with get_db_connection(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(
                "UPDATE linked_workspaces SET sync_status = ?, revoked_at = COALESCE(?, revoked_at) WHERE id = ?",
                (sync_status, revoked_at, link_id)
            )
            conn.commit()
        logger.info(f"Linked workspace {link_id} status set to {sync_status}")

    def reactivate(
        self,
        link_id: str,
        instance_name: str,
        sync_secret: str,
        target_workspace_id: Optional[str] = None,
    ) -> None:
        """
        Bring a revoked link back with a freshly issued secret.
        """
        with get_db_connection(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(
                """UPDATE linked_workspaces
                   SET sync_status = ?, sync_secret = ?, instance_name = ?,
                       target_workspace_id = COALESCE(?, target_workspace_id), revoked_at = NULL
                   WHERE id = ?""",
                (LINK_STATUS_ACTIVE, sync_secret, instance_name, target_workspace_id, link_id)
            )
            conn.commit()
        logger.info(f"Linked workspace {link_id} reactivated with a new secret")

"""Repository for the per-claim child tables described in claimsync.child_records."""

import json
from typing import Any, Dict, List, Optional

from common.logging_config import get_logger
from claimsync.child_records import ChildCollection
from claimsync.database import get_db_connection, row_to_dict
from claimsync.utils import generate_uuid, get_current_timestamp

logger = get_logger(__name__)


def _to_column_value(value: Any) -> Any:
    if isinstance(value, (list, dict)):
        return json.dumps(value)
    if isinstance(value, bool):
        return int(value)
    return value


class ChildRecordRepository:
    """
    Generic access to child tables. Every statement is built from the
    collection's declared columns, never from incoming keys.
    """

    def __init__(self, db_path: str):
        self.db_path = db_path

    def list_for_claim(self, collection: ChildCollection, claim_id: str) -> List[Dict[str, Any]]:
        query = f"SELECT * FROM {collection.table} WHERE claim_id = ?"
        params: tuple = (claim_id,)
        if collection.source_filter:
            column, value = collection.source_filter
            query += f" AND {column} = ?"
            params += (value,)
        query += " ORDER BY created_at, id"

        with get_db_connection(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return [row_to_dict(row) for row in cursor.fetchall()]

    def insert(
        self,
        collection: ChildCollection,
        claim_id: str,
        data: Dict[str, Any],
        external_id: Optional[str] = None,
    ) -> str:
        record_id = generate_uuid()
        columns = ("id", "claim_id", "external_id") + collection.columns + ("created_at",)
        params = (
            (record_id, claim_id, external_id)
            + tuple(_to_column_value(data.get(name)) for name in collection.columns)
            + (data.get("created_at") or get_current_timestamp(),)
        )

        with get_db_connection(self.db_path) as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(
                    f"INSERT INTO {collection.table} ({', '.join(columns)}) "
                    f"VALUES ({', '.join('?' for _ in columns)})",
                    params
                )
                conn.commit()
            except Exception as e:
                logger.error(f"Failed to insert into {collection.table} [claim_id={claim_id}]: {e}", exc_info=True)
                raise

        logger.debug(f"Inserted {collection.name} record {record_id} [claim_id={claim_id}]")
        return record_id

    def update(
        self,
        collection: ChildCollection,
        record_id: str,
        data: Dict[str, Any],
        external_id: Optional[str] = None,
    ) -> None:
        assignments = ", ".join(f"{name} = ?" for name in collection.columns)
        params = tuple(_to_column_value(data.get(name)) for name in collection.columns)

        with get_db_connection(self.db_path) as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(
                    f"UPDATE {collection.table} SET {assignments}, "
                    f"external_id = COALESCE(?, external_id) WHERE id = ?",
                    params + (external_id, record_id)
                )
                conn.commit()
            except Exception as e:
                logger.error(f"Failed to update {collection.table} record {record_id}: {e}", exc_info=True)
                raise

        logger.debug(f"Updated {collection.name} record {record_id}")

    def find_by_external_id(
        self,
        collection: ChildCollection,
        claim_id: str,
        external_id: str,
    ) -> Optional[Dict[str, Any]]:
        with get_db_connection(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"SELECT * FROM {collection.table} WHERE claim_id = ? AND external_id = ?",
                (claim_id, external_id)
            )
            return row_to_dict(cursor.fetchone())

    def find_by_natural_key(
        self,
        collection: ChildCollection,
        claim_id: str,
        data: Dict[str, Any],
    ) -> Optional[Dict[str, Any]]:
        if not collection.natural_key:
            return None

        conditions = " AND ".join(f"{name} IS ?" for name in collection.natural_key)
        params = (claim_id,) + tuple(_to_column_value(data.get(name)) for name in collection.natural_key)

        with get_db_connection(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"SELECT * FROM {collection.table} WHERE claim_id = ? AND {conditions}",
                params
            )
            return row_to_dict(cursor.fetchone())

    def find_singleton(self, collection: ChildCollection, claim_id: str) -> Optional[Dict[str, Any]]:
        with get_db_connection(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(f"SELECT * FROM {collection.table} WHERE claim_id = ?", (claim_id,))
            return row_to_dict(cursor.fetchone())

    def count_for_claim(self, collection: ChildCollection, claim_id: str) -> int:
        with get_db_connection(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"SELECT COUNT(*) AS total FROM {collection.table} WHERE claim_id = ?",
                (claim_id,)
            )
            return cursor.fetchone()["total"]

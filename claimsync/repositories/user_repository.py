"""User repository: the instance's user directory."""

import sqlite3
from dataclasses import dataclass
from typing import List, Optional

from common.logging_config import get_logger
from claimsync.database import get_db_connection
from claimsync.utils import generate_uuid, get_current_timestamp

logger = get_logger(__name__)


@dataclass
class User:
    id: str
    email: str
    full_name: Optional[str]
    role: str
    created_at: str


def _row_to_user(row: sqlite3.Row) -> User:
    return User(
        id=row["id"],
        email=row["email"],
        full_name=row["full_name"],
        role=row["role"],
        created_at=row["created_at"],
    )


class UserRepository:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def create_user(self, email: str, full_name: Optional[str] = None, role: str = "staff") -> User:
        user_id = generate_uuid()
        created_at = get_current_timestamp()
        logger.debug(f"Creating user: {email} [user_id={user_id}]")

        with get_db_connection(self.db_path) as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(
                    "INSERT INTO users (id, email, full_name, role, created_at) VALUES (?, ?, ?, ?, ?)",
                    (user_id, email, full_name, role, created_at)
                )
                conn.commit()
                logger.info(f"User created successfully: {email} [user_id={user_id}]")
            except Exception as e:
                logger.error(f"Failed to create user {email}: {e}", exc_info=True)
                raise

        return User(id=user_id, email=email, full_name=full_name, role=role, created_at=created_at)

    def get_all_users(self) -> List[User]:
        logger.debug("Fetching all users")
        with get_db_connection(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM users ORDER BY email")
            users = [_row_to_user(row) for row in cursor.fetchall()]

        logger.debug(f"Fetched {len(users)} users")
        return users

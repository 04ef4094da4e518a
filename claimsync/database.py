"""Database schema and connection management for SQLite."""

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Generator, Optional


def init_database(db_path: str) -> None:
    """
    Initialize database and create tables if they don't exist.
    """
    path = Path(db_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with get_db_connection(db_path) as conn:
        cursor = conn.cursor()

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS users (
                id TEXT PRIMARY KEY,
                email TEXT UNIQUE NOT NULL,
                full_name TEXT,
                role TEXT NOT NULL DEFAULT 'staff',
                created_at TEXT NOT NULL
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS claims (
                id TEXT PRIMARY KEY,
                workspace_id TEXT NOT NULL,
                claim_number TEXT,
                policyholder_name TEXT,
                policyholder_email TEXT,
                policyholder_phone TEXT,
                policyholder_address TEXT,
                insurance_company TEXT,
                insurance_phone TEXT,
                insurance_email TEXT,
                loss_type TEXT,
                loss_date TEXT,
                loss_description TEXT,
                policy_number TEXT,
                status TEXT NOT NULL DEFAULT 'open',
                claim_amount REAL,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS linked_workspaces (
                id TEXT PRIMARY KEY,
                workspace_id TEXT NOT NULL,
                external_instance_url TEXT NOT NULL,
                instance_name TEXT NOT NULL,
                sync_secret TEXT NOT NULL,
                target_workspace_id TEXT,
                sync_status TEXT NOT NULL DEFAULT 'active',
                last_synced_at TEXT,
                created_at TEXT NOT NULL,
                revoked_at TEXT,
                UNIQUE(workspace_id, external_instance_url)
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS linked_claims (
                id TEXT PRIMARY KEY,
                claim_id TEXT NOT NULL,
                external_instance_url TEXT NOT NULL,
                external_claim_id TEXT NOT NULL,
                instance_name TEXT NOT NULL,
                sync_status TEXT NOT NULL DEFAULT 'pending',
                last_synced_at TEXT,
                linked_at TEXT NOT NULL,
                UNIQUE(external_instance_url, external_claim_id),
                FOREIGN KEY(claim_id) REFERENCES claims(id) ON DELETE CASCADE
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS claim_partner_assignments (
                id TEXT PRIMARY KEY,
                claim_id TEXT NOT NULL,
                linked_workspace_id TEXT,
                source_instance_url TEXT,
                sales_rep_id TEXT,
                sales_rep_email TEXT,
                sales_rep_name TEXT,
                updated_at TEXT NOT NULL,
                FOREIGN KEY(claim_id) REFERENCES claims(id) ON DELETE CASCADE,
                FOREIGN KEY(linked_workspace_id) REFERENCES linked_workspaces(id) ON DELETE CASCADE
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS tasks (
                id TEXT PRIMARY KEY,
                claim_id TEXT NOT NULL,
                external_id TEXT,
                title TEXT NOT NULL,
                description TEXT,
                status TEXT,
                priority TEXT,
                due_date TEXT,
                completed_at TEXT,
                created_at TEXT NOT NULL,
                FOREIGN KEY(claim_id) REFERENCES claims(id) ON DELETE CASCADE
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS claim_updates (
                id TEXT PRIMARY KEY,
                claim_id TEXT NOT NULL,
                external_id TEXT,
                content TEXT NOT NULL,
                update_type TEXT,
                recipients TEXT,
                created_at TEXT NOT NULL,
                FOREIGN KEY(claim_id) REFERENCES claims(id) ON DELETE CASCADE
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS inspections (
                id TEXT PRIMARY KEY,
                claim_id TEXT NOT NULL,
                external_id TEXT,
                inspection_date TEXT,
                inspection_time TEXT,
                inspection_type TEXT,
                inspector_name TEXT,
                status TEXT,
                notes TEXT,
                created_at TEXT NOT NULL,
                FOREIGN KEY(claim_id) REFERENCES claims(id) ON DELETE CASCADE
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS claim_adjusters (
                id TEXT PRIMARY KEY,
                claim_id TEXT NOT NULL,
                external_id TEXT,
                adjuster_name TEXT NOT NULL,
                adjuster_email TEXT,
                adjuster_phone TEXT,
                company TEXT,
                is_primary INTEGER,
                notes TEXT,
                created_at TEXT NOT NULL,
                FOREIGN KEY(claim_id) REFERENCES claims(id) ON DELETE CASCADE
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS claim_settlements (
                id TEXT PRIMARY KEY,
                claim_id TEXT NOT NULL UNIQUE,
                external_id TEXT,
                replacement_cost_value REAL,
                recoverable_depreciation REAL,
                non_recoverable_depreciation REAL,
                deductible REAL,
                estimate_amount REAL,
                total_settlement REAL,
                other_structures_rcv REAL,
                other_structures_recoverable_depreciation REAL,
                other_structures_non_recoverable_depreciation REAL,
                other_structures_deductible REAL,
                pwi_rcv REAL,
                pwi_recoverable_depreciation REAL,
                pwi_non_recoverable_depreciation REAL,
                pwi_deductible REAL,
                prior_offer REAL,
                notes TEXT,
                created_at TEXT NOT NULL,
                FOREIGN KEY(claim_id) REFERENCES claims(id) ON DELETE CASCADE
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS claim_checks (
                id TEXT PRIMARY KEY,
                claim_id TEXT NOT NULL,
                external_id TEXT,
                check_number TEXT,
                check_type TEXT,
                amount REAL,
                check_date TEXT,
                received_date TEXT,
                notes TEXT,
                created_at TEXT NOT NULL,
                FOREIGN KEY(claim_id) REFERENCES claims(id) ON DELETE CASCADE
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS claim_expenses (
                id TEXT PRIMARY KEY,
                claim_id TEXT NOT NULL,
                external_id TEXT,
                description TEXT,
                amount REAL,
                expense_date TEXT,
                category TEXT,
                paid_to TEXT,
                payment_method TEXT,
                notes TEXT,
                created_at TEXT NOT NULL,
                FOREIGN KEY(claim_id) REFERENCES claims(id) ON DELETE CASCADE
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS claim_fees (
                id TEXT PRIMARY KEY,
                claim_id TEXT NOT NULL UNIQUE,
                external_id TEXT,
                company_fee_percentage REAL,
                company_fee_amount REAL,
                adjuster_fee_percentage REAL,
                adjuster_fee_amount REAL,
                contractor_fee_percentage REAL,
                contractor_fee_amount REAL,
                referrer_fee_percentage REAL,
                referrer_fee_amount REAL,
                notes TEXT,
                created_at TEXT NOT NULL,
                FOREIGN KEY(claim_id) REFERENCES claims(id) ON DELETE CASCADE
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS claim_payments (
                id TEXT PRIMARY KEY,
                claim_id TEXT NOT NULL,
                external_id TEXT,
                amount REAL,
                payment_date TEXT,
                payment_method TEXT,
                check_number TEXT,
                recipient_type TEXT,
                notes TEXT,
                direction TEXT NOT NULL DEFAULT 'released',
                created_at TEXT NOT NULL,
                FOREIGN KEY(claim_id) REFERENCES claims(id) ON DELETE CASCADE
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS claim_files (
                id TEXT PRIMARY KEY,
                claim_id TEXT NOT NULL,
                external_id TEXT,
                file_name TEXT NOT NULL,
                file_path TEXT NOT NULL,
                file_type TEXT,
                file_size INTEGER,
                created_at TEXT NOT NULL,
                FOREIGN KEY(claim_id) REFERENCES claims(id) ON DELETE CASCADE
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS claim_photos (
                id TEXT PRIMARY KEY,
                claim_id TEXT NOT NULL,
                external_id TEXT,
                file_name TEXT NOT NULL,
                file_path TEXT NOT NULL,
                description TEXT,
                category TEXT,
                file_size INTEGER,
                created_at TEXT NOT NULL,
                FOREIGN KEY(claim_id) REFERENCES claims(id) ON DELETE CASCADE
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS emails (
                id TEXT PRIMARY KEY,
                claim_id TEXT NOT NULL,
                external_id TEXT,
                subject TEXT,
                body TEXT,
                recipient_email TEXT,
                recipient_name TEXT,
                recipient_type TEXT,
                sent_at TEXT,
                created_at TEXT NOT NULL,
                FOREIGN KEY(claim_id) REFERENCES claims(id) ON DELETE CASCADE
            )
        """)

        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_claims_workspace ON claims(workspace_id)
        """)

        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_linked_workspaces_status ON linked_workspaces(sync_status)
        """)

        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_partner_assignments_claim ON claim_partner_assignments(claim_id)
        """)

        for table in (
            "tasks", "claim_updates", "inspections", "claim_adjusters", "claim_checks",
            "claim_expenses", "claim_payments", "claim_files", "claim_photos", "emails",
        ):
            cursor.execute(
                f"CREATE INDEX IF NOT EXISTS idx_{table}_claim_external ON {table}(claim_id, external_id)"
            )

        conn.commit()


@contextmanager
def get_db_connection(db_path: str) -> Generator[sqlite3.Connection, None, None]:
    """
    Context manager for database connections.
    """
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    try:
        yield conn
    finally:
        conn.close()


def row_to_dict(row: Optional[sqlite3.Row]) -> Optional[Dict[str, Any]]:
    """
    Convert a sqlite3.Row into a plain dict, passing None through.
    """
    if row is None:
        return None
    return {key: row[key] for key in row.keys()}

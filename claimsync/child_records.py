"""Registry of the claim child collections carried by a sync payload."""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

ACCOUNTING_KEY = "accounting_data"


@dataclass(frozen=True)
class ChildCollection:
    """
    Describes one child table and how it travels inside a create_or_update payload.

    ``singleton`` collections hold at most one row per claim and are upserted
    on ``claim_id``. ``natural_key`` identifies a row when the sender did not
    include its id. ``source_filter`` restricts which rows leave the source.
    """
    name: str
    table: str
    payload_key: str
    columns: Tuple[str, ...]
    natural_key: Tuple[str, ...] = ()
    accounting: bool = False
    singleton: bool = False
    attachment: bool = False
    source_filter: Optional[Tuple[str, str]] = None


CHILD_COLLECTIONS: Tuple[ChildCollection, ...] = (
    ChildCollection(
        name="tasks",
        table="tasks",
        payload_key="tasks_data",
        columns=("title", "description", "status", "priority", "due_date", "completed_at"),
        natural_key=("title",),
    ),
    ChildCollection(
        name="updates",
        table="claim_updates",
        payload_key="updates_data",
        columns=("content", "update_type", "recipients"),
        natural_key=("content",),
    ),
    ChildCollection(
        name="inspections",
        table="inspections",
        payload_key="inspections_data",
        columns=("inspection_date", "inspection_time", "inspection_type", "inspector_name", "status", "notes"),
        natural_key=("inspection_date",),
    ),
    ChildCollection(
        name="adjusters",
        table="claim_adjusters",
        payload_key="adjusters_data",
        columns=("adjuster_name", "adjuster_email", "adjuster_phone", "company", "is_primary", "notes"),
        natural_key=("adjuster_name",),
    ),
    ChildCollection(
        name="settlements",
        table="claim_settlements",
        payload_key="settlements",
        columns=(
            "replacement_cost_value", "recoverable_depreciation", "non_recoverable_depreciation",
            "deductible", "estimate_amount", "total_settlement",
            "other_structures_rcv", "other_structures_recoverable_depreciation",
            "other_structures_non_recoverable_depreciation", "other_structures_deductible",
            "pwi_rcv", "pwi_recoverable_depreciation", "pwi_non_recoverable_depreciation",
            "pwi_deductible", "prior_offer", "notes",
        ),
        accounting=True,
        singleton=True,
    ),
    ChildCollection(
        name="checks",
        table="claim_checks",
        payload_key="checks",
        columns=("check_number", "check_type", "amount", "check_date", "received_date", "notes"),
        natural_key=("check_number",),
        accounting=True,
    ),
    ChildCollection(
        name="expenses",
        table="claim_expenses",
        payload_key="expenses",
        columns=("description", "amount", "expense_date", "category", "paid_to", "payment_method", "notes"),
        natural_key=("description", "expense_date"),
        accounting=True,
    ),
    ChildCollection(
        name="fees",
        table="claim_fees",
        payload_key="fees",
        columns=(
            "company_fee_percentage", "company_fee_amount",
            "adjuster_fee_percentage", "adjuster_fee_amount",
            "contractor_fee_percentage", "contractor_fee_amount",
            "referrer_fee_percentage", "referrer_fee_amount", "notes",
        ),
        accounting=True,
        singleton=True,
    ),
    ChildCollection(
        name="payments",
        table="claim_payments",
        payload_key="payments",
        columns=("amount", "payment_date", "payment_method", "check_number", "recipient_type", "notes", "direction"),
        natural_key=("amount", "payment_date", "direction"),
        accounting=True,
        source_filter=("direction", "released"),
    ),
    ChildCollection(
        name="files",
        table="claim_files",
        payload_key="files_data",
        columns=("file_name", "file_path", "file_type", "file_size"),
        natural_key=("file_name",),
        attachment=True,
    ),
    ChildCollection(
        name="photos",
        table="claim_photos",
        payload_key="photos_data",
        columns=("file_name", "file_path", "description", "category", "file_size"),
        natural_key=("file_name",),
        attachment=True,
    ),
    ChildCollection(
        name="emails",
        table="emails",
        payload_key="emails_data",
        columns=("subject", "body", "recipient_email", "recipient_name", "recipient_type", "sent_at"),
        natural_key=("subject", "recipient_email"),
    ),
)

_BY_NAME = {collection.name: collection for collection in CHILD_COLLECTIONS}


def get_collection(name: str) -> ChildCollection:
    """Look up a child collection by its short name (e.g. 'tasks')."""
    return _BY_NAME[name]


def build_child_payload(records: Dict[str, List[Dict[str, Any]]]) -> Dict[str, Any]:
    """
    Lay out child records the way a create_or_update body carries them.

    Args:
        records: Mapping of collection name to rows

    Returns:
        Dict with ``*_data`` arrays and a nested ``accounting_data`` object
    """
    payload: Dict[str, Any] = {ACCOUNTING_KEY: {}}
    for collection in CHILD_COLLECTIONS:
        rows = records.get(collection.name) or []
        if collection.accounting:
            payload[ACCOUNTING_KEY][collection.payload_key] = rows
        else:
            payload[collection.payload_key] = rows
    return payload


def extract_child_data(payload: Dict[str, Any]) -> Dict[str, List[Dict[str, Any]]]:
    """
    Pull child record arrays out of a create_or_update body.

    Missing arrays and a missing or null ``accounting_data`` are read as empty.
    """
    accounting = payload.get(ACCOUNTING_KEY) or {}
    records: Dict[str, List[Dict[str, Any]]] = {}
    for collection in CHILD_COLLECTIONS:
        source = accounting if collection.accounting else payload
        records[collection.name] = list(source.get(collection.payload_key) or [])
    return records

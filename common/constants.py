"""Project-wide constants shared by the instance server and the CLI."""

STORAGE_BUCKET: str = "claim-files"
SIGNED_URL_EXPIRY_SECONDS: int = 3600  # one hour

FUNCTIONS_PREFIX: str = "/functions/v1"
CLAIM_SYNC_WEBHOOK_PATH: str = f"{FUNCTIONS_PREFIX}/claim-sync-webhook"
WORKSPACE_SYNC_PATH: str = f"{FUNCTIONS_PREFIX}/workspace-sync"
PARTNER_SYNC_PATH: str = f"{FUNCTIONS_PREFIX}/sync-claim-to-partner"
EXTERNAL_SYNC_PATH: str = f"{FUNCTIONS_PREFIX}/sync-claim-to-external"

CLAIM_SYNC_SECRET_HEADER: str = "x-claim-sync-secret"
WORKSPACE_SYNC_SECRET_HEADER: str = "x-workspace-sync-secret"
CRON_SECRET_HEADER: str = "x-cron-secret"

CORS_HEADERS: dict = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": (
        "authorization, x-client-info, apikey, content-type, "
        f"{CLAIM_SYNC_SECRET_HEADER}, {WORKSPACE_SYNC_SECRET_HEADER}, {CRON_SECRET_HEADER}"
    ),
    "Access-Control-Allow-Methods": "POST, OPTIONS",
}

LINK_STATUS_ACTIVE: str = "active"
LINK_STATUS_INACTIVE: str = "inactive"
LINK_STATUS_REVOKED: str = "revoked"

DEFAULT_PEER_TIMEOUT_SECONDS: float = 30.0
DEFAULT_INSTANCE_PORT: int = 8000

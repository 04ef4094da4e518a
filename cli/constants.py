"""CLI constants and configuration."""

from pathlib import Path

DEFAULT_CONFIG_PATH = Path.home() / ".claimsync" / "config.json"

PROG = "claimsync"
DESCRIPTION = "Operate claim replication between ClaimSync instances"

EPILOG = """Examples:
  claimsync register-link ws-1 https://partner.example.com "Partner CRM" --target-workspace ws-9
  claimsync sync ws-1 https://partner.example.com --secret <sync-secret>
  claimsync sync-all
  claimsync sync-partner <claim-id> <link-id>
  claimsync sync-external <claim-id> https://other.example.com --include-accounting --target-workspace ws-3
  claimsync revoke-link <link-id>
  claimsync users --url https://partner.example.com

Results are printed as JSON; claims with "success": false can be re-synced
by running the same command again."""

ENV_OVERRIDES = {
    "CLAIMSYNC_INSTANCE_URL": "instance_url",
    "SERVICE_ROLE_KEY": "service_role_key",
    "CRON_SECRET": "cron_secret",
    "CLAIM_SYNC_SECRET": "claim_sync_secret",
    "CLAIMSYNC_CLI_TIMEOUT": "timeout",
}

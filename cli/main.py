"""CLI entry point."""

import argparse
import json
import os
import secrets
import sys
from pathlib import Path
from typing import List, Optional

from common.logging_config import setup_logging
from cli.config import Config
from cli.constants import DEFAULT_CONFIG_PATH, DESCRIPTION, EPILOG, PROG
from cli.sync_client import SyncClient, SyncClientError


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=PROG,
        description=DESCRIPTION,
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument('--config', type=Path, default=DEFAULT_CONFIG_PATH, help='Path to the CLI config file')
    parser.add_argument('--url', help='Instance base URL (overrides config)')
    parser.add_argument('--debug', action='store_true', help='Enable debug logging')

    subparsers = parser.add_subparsers(dest='command', required=True)

    register = subparsers.add_parser('register-link', help='Link a local workspace to a peer instance')
    register.add_argument('workspace_id')
    register.add_argument('external_instance_url')
    register.add_argument('instance_name')
    register.add_argument('--secret', help='Shared sync secret (generated when omitted)')
    register.add_argument('--target-workspace', dest='target_workspace_id', help='Workspace on the peer that receives claims')

    sync = subparsers.add_parser('sync', help="Push a workspace's claims to one linked peer")
    sync.add_argument('workspace_id')
    sync.add_argument('target_instance_url')
    sync.add_argument('--secret', required=True, help='Shared sync secret of the link')
    sync.add_argument('--target-workspace', dest='target_workspace_id')

    subparsers.add_parser('sync-all', help='Push every active linked workspace')

    partner = subparsers.add_parser('sync-partner', help='Push one claim to one linked workspace')
    partner.add_argument('claim_id')
    partner.add_argument('linked_workspace_id')
    partner.add_argument('--sales-rep-id')
    partner.add_argument('--sales-rep-email')
    partner.add_argument('--sales-rep-name')

    external = subparsers.add_parser('sync-external', help='Push one claim to an unlinked instance')
    external.add_argument('claim_id')
    external.add_argument('target_instance_url')
    external.add_argument('--instance-name')
    external.add_argument('--include-accounting', action='store_true', help='Send settlements, checks, expenses and fees')
    external.add_argument('--target-workspace', dest='target_workspace_id', help='Workspace on the receiver that owns a new claim')

    revoke = subparsers.add_parser('revoke-link', help='Revoke a linked workspace')
    revoke.add_argument('link_id')

    subparsers.add_parser('users', help="List the instance's users (claim sync secret required)")

    return parser


def run_command(args: argparse.Namespace, client: SyncClient) -> dict:
    """Dispatch a parsed command to the client."""
    if args.command == 'register-link':
        secret = args.secret or secrets.token_urlsafe(32)
        result = client.register_link(
            args.workspace_id,
            args.external_instance_url,
            args.instance_name,
            secret,
            args.target_workspace_id
        )
        if not args.secret:
            result['sync_secret'] = secret
        return result

    if args.command == 'sync':
        return client.sync_claims(args.workspace_id, args.target_instance_url, args.secret, args.target_workspace_id)

    if args.command == 'sync-all':
        return client.sync_all_workspaces()

    if args.command == 'sync-partner':
        assignment = {
            'sales_rep_id': args.sales_rep_id,
            'sales_rep_email': args.sales_rep_email,
            'sales_rep_name': args.sales_rep_name,
        }
        if not any(assignment.values()):
            assignment = None
        return client.sync_claim_to_partner(args.claim_id, args.linked_workspace_id, assignment)

    if args.command == 'sync-external':
        return client.sync_claim_to_external(
            args.claim_id,
            args.target_instance_url,
            args.instance_name,
            args.include_accounting,
            args.target_workspace_id
        )

    if args.command == 'revoke-link':
        return client.revoke_link(args.link_id)

    if args.command == 'users':
        return client.get_users()

    raise ValueError(f"Unknown command: {args.command}")


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    log_level = 'DEBUG' if args.debug else os.getenv('LOG_LEVEL', 'WARNING')
    logger = setup_logging('cli', log_level=log_level)

    config = Config(args.config)
    if args.url:
        config.overrides['instance_url'] = args.url

    client = SyncClient(config)
    try:
        result = run_command(args, client)
    except SyncClientError as e:
        print(json.dumps({"success": False, "error": str(e), "code": e.code, "status": e.status_code}, indent=2))
        return 1
    except (ConnectionError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        logger.error(f"CLI error: {e}", exc_info=True)
        raise
    finally:
        client.close()

    print(json.dumps(result, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())

#!/usr/bin/env python
"""Run aggregator syncs from the command line.

Stands in for the periodic scheduler: syncs one connection, or every
active connection in turn. Exits non-zero if any sync failed.

Usage:
    python -m scripts.run_sync <connection_id>
    python -m scripts.run_sync --all
"""

import argparse
import logging
import sys

from database import get_session_local
from integrations.exceptions import ProviderError
from logging_config import setup_logging
from services.connection_service import ConnectionService
from services.exceptions import ConnectionNotFoundError
from services.sync_orchestrator import SyncOrchestrator, create_orchestrator

logger = logging.getLogger(__name__)


def sync_one(db, orchestrator: SyncOrchestrator, connection_id: str) -> bool:
    """Sync a single connection, printing the outcome. Returns success."""
    try:
        run = orchestrator.run_sync(db, connection_id)
    except ConnectionNotFoundError as e:
        print(f"Error: {e}")
        return False
    except ProviderError as e:
        print(f"✗ {connection_id}: provider error: {e}")
        return False
    except Exception as e:
        logger.error("Sync failed for connection %s", connection_id, exc_info=True)
        print(f"✗ {connection_id}: unexpected error: {type(e).__name__}")
        db.rollback()
        return False

    if run is None:
        print(f"- {connection_id}: already syncing, skipped")
        return True
    print(
        f"✓ {connection_id}: {run.accounts_imported} accounts, "
        f"{run.transactions_imported} new transactions "
        f"(window {run.window_start} to {run.window_end})"
    )
    return True


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Sync aggregator connections")
    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument("connection_id", nargs="?", help="Connection to sync")
    target.add_argument("--all", action="store_true", help="Sync every active connection")
    args = parser.parse_args(argv)

    setup_logging()
    orchestrator = create_orchestrator()
    SessionLocal = get_session_local()
    db = SessionLocal()

    try:
        if args.all:
            connection_ids = [c.id for c in ConnectionService.list_active(db)]
            print(f"Syncing {len(connection_ids)} active connections")
        else:
            connection_ids = [args.connection_id]

        failures = 0
        for connection_id in connection_ids:
            if not sync_one(db, orchestrator, connection_id):
                failures += 1

        print(f"\nDone: {len(connection_ids) - failures} succeeded, {failures} failed")
        return 1 if failures else 0
    finally:
        db.close()
        orchestrator.close()


if __name__ == "__main__":
    sys.exit(main())

"""Connection sync API endpoints."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from database import get_db
from integrations.exceptions import ProviderAuthError, ProviderError
from schemas import SyncRunResponse
from services.connection_service import ConnectionService
from services.exceptions import ConnectionNotFoundError
from services.sync_orchestrator import SyncOrchestrator, create_orchestrator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/connections", tags=["sync"])

# Dependency injection for testing
_orchestrator_override: Optional[SyncOrchestrator] = None


def get_sync_orchestrator() -> SyncOrchestrator:
    """Get a SyncOrchestrator instance, allowing for test overrides."""
    if _orchestrator_override is not None:
        return _orchestrator_override
    return create_orchestrator()


def set_sync_orchestrator_override(orchestrator: Optional[SyncOrchestrator]) -> None:
    """Set a SyncOrchestrator override for testing."""
    global _orchestrator_override
    _orchestrator_override = orchestrator


@router.post("/{connection_id}/sync", response_model=SyncRunResponse)
def trigger_sync(
    connection_id: str,
    db: Session = Depends(get_db),
    orchestrator: SyncOrchestrator = Depends(get_sync_orchestrator),
):
    """Run a sync for one connection and return the finished run.

    Raises:
        HTTPException:
            - 404 Not Found: Unknown connection
            - 409 Conflict: The connection is already syncing
            - 500 Internal Server Error: Unexpected sync error
            - 502 Bad Gateway: Provider error (the run is recorded as failed)
    """
    try:
        sync_run = orchestrator.run_sync(db, connection_id)
    except ConnectionNotFoundError:
        raise HTTPException(status_code=404, detail="Connection not found")
    except ProviderAuthError as e:
        logger.warning("Provider auth error during sync of %s: %s", connection_id, e)
        raise HTTPException(
            status_code=502,
            detail=(
                f"Provider authentication failed for {e.provider_name}. "
                "The connection needs to be updated."
            ),
        )
    except ProviderError as e:
        logger.warning("Provider error during sync of %s: %s", connection_id, e)
        raise HTTPException(
            status_code=502,
            detail="A provider error occurred during sync. Check the logs for details.",
        )
    except Exception:
        # Never expose str(e)
        logger.error("Unexpected error during sync of %s", connection_id, exc_info=True)
        raise HTTPException(
            status_code=500,
            detail="An unexpected error occurred during sync.",
        )

    if sync_run is None:
        raise HTTPException(
            status_code=409,
            detail="Sync already in progress for this connection.",
        )
    return sync_run


@router.get("/{connection_id}/sync-runs", response_model=list[SyncRunResponse])
def list_sync_runs(
    connection_id: str,
    limit: int = 20,
    db: Session = Depends(get_db),
):
    """List recent sync runs for a connection, newest first."""
    try:
        return ConnectionService.list_sync_runs(db, connection_id, limit=limit)
    except ConnectionNotFoundError:
        raise HTTPException(status_code=404, detail="Connection not found")

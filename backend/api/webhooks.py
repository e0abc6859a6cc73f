"""Aggregator webhook endpoints."""

import json
import logging
from typing import Any

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from api.sync import get_sync_orchestrator
from database import get_db, get_session_local
from schemas import WebhookAcceptedResponse
from services.sync_orchestrator import SyncOrchestrator
from services.webhook_service import connections_for_webhook

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/webhooks", tags=["webhooks"])


async def webhook_payload(request: Request) -> Any:
    """Parse the raw request body as JSON, rejecting malformed bodies with 400."""
    try:
        return json.loads(await request.body())
    except (ValueError, UnicodeDecodeError):
        raise HTTPException(status_code=400, detail="Invalid JSON payload")


def sync_connections(connection_ids: list[str], orchestrator: SyncOrchestrator) -> None:
    """Sync each connection in turn with its own session.

    Runs after the response is sent, so failures are logged rather than
    raised; the failed run and connection status are already recorded.
    """
    SessionLocal = get_session_local()
    for connection_id in connection_ids:
        db = SessionLocal()
        try:
            orchestrator.run_sync(db, connection_id)
        except Exception:
            logger.error("Webhook sync failed for connection %s", connection_id, exc_info=True)
        finally:
            db.close()


@router.post("/yodlee", response_model=WebhookAcceptedResponse, status_code=202)
def yodlee_webhook(
    background_tasks: BackgroundTasks,
    payload: Any = Depends(webhook_payload),
    db: Session = Depends(get_db),
    orchestrator: SyncOrchestrator = Depends(get_sync_orchestrator),
):
    """Accept a Yodlee event and schedule syncs for the connections it names."""
    connection_ids = [connection.id for connection in connections_for_webhook(db, payload)]
    logger.info("Yodlee webhook scheduled %d connection syncs", len(connection_ids))
    if connection_ids:
        background_tasks.add_task(sync_connections, connection_ids, orchestrator)
    return WebhookAcceptedResponse(scheduled_connection_ids=connection_ids)

"""Webhook targeting - decides which connections an aggregator event syncs."""

import logging
from datetime import datetime
from typing import Any

from sqlalchemy import or_
from sqlalchemy.orm import Session

from config import settings
from models import Connection, ExternalAccountSnapshot
from models.utils import utc_now
from services.sync_orchestrator import claimable_filter

logger = logging.getLogger(__name__)

FALLBACK_SYNC_ALL = "sync_all"
FALLBACK_NONE = "none"


def _as_id_list(value: Any) -> list[str]:
    if value is None or value == "":
        return []
    if isinstance(value, (list, tuple)):
        return [str(item) for item in value if item is not None and item != ""]
    return [str(value)]


def extract_target_ids(payload: Any) -> tuple[list[str], list[str]]:
    """Pull provider-account ids and account ids out of a webhook payload.

    Yodlee puts them under ``event.data``; either may be a scalar or a list.
    Anything malformed yields empty lists.
    """
    if not isinstance(payload, dict):
        return [], []
    event = payload.get("event")
    data = event.get("data") if isinstance(event, dict) else None
    if not isinstance(data, dict):
        return [], []
    return _as_id_list(data.get("providerAccountId")), _as_id_list(data.get("accountIds"))


def connections_for_webhook(
    db: Session,
    payload: Any,
    fallback_policy: str | None = None,
    now: datetime | None = None,
) -> list[Connection]:
    """Resolve the connections a webhook should sync.

    Targets are active connections whose ``external_id`` matches a
    provider-account id, or that own a snapshot with a matching account
    id. Connections held by a live (non-stale) sync are left out.

    When the payload identifies nothing, ``fallback_policy`` decides:
    ``sync_all`` returns every active idle connection and ``none`` returns
    an empty list.
    """
    policy = fallback_policy or settings.WEBHOOK_FALLBACK_POLICY
    provider_account_ids, account_ids = extract_target_ids(payload)

    query = db.query(Connection).filter(
        Connection.scheduled_for_deletion.is_(False),
        claimable_filter(now or utc_now()),
    )

    if not provider_account_ids and not account_ids:
        if policy == FALLBACK_SYNC_ALL:
            connections = query.order_by(Connection.created_at, Connection.id).all()
            logger.info(
                "Webhook without a target; syncing all %d active connections",
                len(connections),
            )
            return connections
        logger.info("Webhook without a target; fallback policy %r syncs nothing", policy)
        return []

    conditions = []
    if provider_account_ids:
        conditions.append(Connection.external_id.in_(provider_account_ids))
    if account_ids:
        conditions.append(
            Connection.external_accounts.any(
                ExternalAccountSnapshot.external_account_id.in_(account_ids)
            )
        )

    connections = query.filter(or_(*conditions)).order_by(Connection.created_at, Connection.id).all()
    if not connections:
        logger.warning(
            "Webhook matched no idle connection (providerAccountId=%s, accountIds=%s)",
            provider_account_ids, account_ids,
        )
    return connections

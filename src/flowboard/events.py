"""Structured audit events for the admin auth flow.

The auth service calls an emitter for every login, challenge and 2FA
change. ``async_emit`` writes to the ``auth_events`` table; a failure to
record an event is logged and never fails the auth operation itself.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable
from typing import Any, Protocol
from uuid import UUID

from flowboard.db import execute

logger = logging.getLogger(__name__)


class EventEmitter(Protocol):
    def __call__(
        self,
        category: str,
        severity: str,
        event_type: str,
        message: str,
        *,
        account_id: UUID | str | None = None,
        context: dict[str, Any] | None = None,
    ) -> Awaitable[int | None]: ...


async def async_emit(
    category: str,
    severity: str,
    event_type: str,
    message: str,
    *,
    account_id: UUID | str | None = None,
    context: dict[str, Any] | None = None,
) -> int | None:
    """Insert a structured event into auth_events.

    Returns the event ID if successful, None on failure.
    """
    try:
        rows = await execute(
            """INSERT INTO auth_events
               (category, severity, event_type, message, account_id, context)
               VALUES (%s, %s, %s, %s, %s, %s)
               RETURNING id""",
            (
                category,
                severity,
                event_type,
                message,
                str(account_id) if account_id else None,
                json.dumps(context or {}),
            ),
        )
        logger.info("[event] %s/%s: %s", category, event_type, message)
        return rows[0]["id"] if rows else None
    except Exception:
        logger.warning("Failed to emit event: %s/%s: %s", category, event_type, message, exc_info=True)
        return None


async def log_only_emit(
    category: str,
    severity: str,
    event_type: str,
    message: str,
    *,
    account_id: UUID | str | None = None,
    context: dict[str, Any] | None = None,
) -> int | None:
    """Emitter for deployments without an events table (in-memory store)."""
    level = logging.WARNING if severity in ("warning", "error") else logging.INFO
    logger.log(level, "[event] %s/%s: %s account=%s", category, event_type, message, account_id)
    return None


async def async_get_events(
    account_id: str | None = None,
    event_type: str | None = None,
    limit: int = 100,
) -> list[dict[str, Any]]:
    """Recent events, newest first."""
    conditions: list[str] = []
    params: list[Any] = []

    if account_id:
        conditions.append("account_id = %s")
        params.append(account_id)
    if event_type:
        conditions.append("event_type = %s")
        params.append(event_type)

    where = ("WHERE " + " AND ".join(conditions)) if conditions else ""
    params.append(limit)

    return await execute(
        f"""SELECT id, timestamp, category, severity, event_type,
                   account_id, message, context
            FROM auth_events
            {where}
            ORDER BY id DESC
            LIMIT %s""",
        tuple(params),
    )

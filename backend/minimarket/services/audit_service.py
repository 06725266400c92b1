# Overview: Append-only audit log of user actions (products, sales, cash, sessions).

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import AuditEvent
from ..validation import ValidationError

logger = logging.getLogger(__name__)

"""
Audit log invariants (authoritative)

- Append-only: rows are never updated or deleted.
- occurred_at is business time (the container clock), not insert time.
- Each event is its own commit. An audit write never rides along with a
  Product Store transaction, and a failed audit write does not undo the
  action it describes.
"""

ENTITIES = ("product", "sale", "user", "cash")
DATE_FILTERS = ("all", "today", "week", "month")
DEFAULT_LIMIT = 200


def append_audit_event(
    *,
    occurred_at: datetime,
    action: str,
    entity: str,
    entity_id: Optional[str] = None,
    user_id: Optional[str] = None,
    username: Optional[str] = None,
    details: str = "",
    old_value: Optional[str] = None,
    new_value: Optional[str] = None,
) -> AuditEvent:
    if entity not in ENTITIES:
        raise ValueError(f"Unknown audit entity: {entity}")

    ev = AuditEvent(
        occurred_at=occurred_at,
        user_id=user_id,
        username=username,
        action=action,
        entity=entity,
        entity_id=entity_id,
        details=details,
        old_value=old_value,
        new_value=new_value,
    )
    try:
        db.session.add(ev)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Failed to write audit event %s %s %s", action, entity, entity_id)
        raise
    return ev


def list_audit_events(
    *,
    search: str = "",
    entity: str = "all",
    date_filter: str = "all",
    now: datetime,
    limit: int = DEFAULT_LIMIT,
) -> list[AuditEvent]:
    """
    Newest first.

    - search matches details or username (case-insensitive)
    - date_filter: today = same calendar day, week = last 7 days,
      month = last 30 days
    """
    if entity != "all" and entity not in ENTITIES:
        raise ValidationError(f"entity must be one of: all, {', '.join(ENTITIES)}")
    if date_filter not in DATE_FILTERS:
        raise ValidationError(f"date_filter must be one of: {', '.join(DATE_FILTERS)}")

    query = db.session.query(AuditEvent)

    term = (search or "").strip().lower()
    if term:
        like = f"%{term}%"
        query = query.filter(or_(
            db.func.lower(AuditEvent.details).like(like),
            db.func.lower(AuditEvent.username).like(like),
        ))

    if entity != "all":
        query = query.filter(AuditEvent.entity == entity)

    if date_filter == "today":
        midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
        query = query.filter(AuditEvent.occurred_at >= midnight, AuditEvent.occurred_at < midnight + timedelta(days=1))
    elif date_filter == "week":
        query = query.filter(AuditEvent.occurred_at >= now - timedelta(days=7))
    elif date_filter == "month":
        query = query.filter(AuditEvent.occurred_at >= now - timedelta(days=30))

    return query.order_by(AuditEvent.occurred_at.desc(), AuditEvent.id.desc()).limit(limit).all()

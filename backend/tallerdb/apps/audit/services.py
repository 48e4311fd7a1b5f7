from __future__ import annotations

from datetime import datetime
import logging
from typing import Optional, Sequence

from sqlalchemy.orm import Session

from . import models, schemas

logger = logging.getLogger(__name__)


def create_audit_event(
    db: Session,
    *,
    data: schemas.AuditEventCreate,
) -> models.AuditEvent:
    event = models.AuditEvent(
        actor_id=data.actor_id,
        action=data.action,
        description=data.description or "",
        table_name=data.table_name,
        entity_id=data.entity_id,
        metadata_json=data.metadata,
    )
    if data.occurred_at is not None:
        event.occurred_at = data.occurred_at
    db.add(event)
    db.flush()
    return event


class AuditLogger:
    """
    Append-only event sink injected into the lifecycle services.

    Events are written after the identity transaction committed, on their
    own commit. A failing audit write is logged as a warning and never
    reaches the caller or undoes the committed state.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def record(
        self,
        *,
        actor_id: Optional[str],
        action: str,
        description: str,
        table: str,
        entity_id: Optional[str] = None,
        metadata: Optional[dict] = None,
    ) -> Optional[models.AuditEvent]:
        try:
            event = create_audit_event(
                self.db,
                data=schemas.AuditEventCreate(
                    actor_id=actor_id,
                    action=action,
                    description=description,
                    table_name=table,
                    entity_id=entity_id,
                    metadata=metadata,
                ),
            )
            self.db.commit()
            return event
        except Exception:
            self.db.rollback()
            logger.warning(
                "Failed to log audit event",
                exc_info=True,
                extra={
                    "actor_id": actor_id,
                    "action": action,
                    "table": table,
                    "entity_id": entity_id,
                },
            )
            return None


def log_event(
    db: Session,
    *,
    actor_id: Optional[str],
    action: str,
    description: str,
    table: str,
    entity_id: Optional[str] = None,
    metadata: Optional[dict] = None,
) -> Optional[models.AuditEvent]:
    """Best-effort audit write for callers without an injected AuditLogger."""
    return AuditLogger(db).record(
        actor_id=actor_id,
        action=action,
        description=description,
        table=table,
        entity_id=entity_id,
        metadata=metadata,
    )


def list_audit_events(
    db: Session,
    *,
    table_name: Optional[str] = None,
    entity_id: Optional[str] = None,
    action: Optional[str] = None,
    actor_id: Optional[str] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    limit: int = 200,
) -> Sequence[models.AuditEvent]:
    query = db.query(models.AuditEvent)
    if table_name:
        query = query.filter(models.AuditEvent.table_name == table_name)
    if entity_id:
        query = query.filter(models.AuditEvent.entity_id == entity_id)
    if action:
        query = query.filter(models.AuditEvent.action == action)
    if actor_id:
        query = query.filter(models.AuditEvent.actor_id == actor_id)
    if start:
        query = query.filter(models.AuditEvent.occurred_at >= start)
    if end:
        query = query.filter(models.AuditEvent.occurred_at <= end)
    return (
        query.order_by(models.AuditEvent.occurred_at.desc())
        .limit(max(1, min(limit, 1000)))
        .all()
    )

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Index, JSON, String, Text

from ...database import Base
from ...utils.identifiers import generate_uuid7


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEvent(Base):
    """
    Append-only audit trail (bitácora) for staff and credential actions.
    """

    __tablename__ = "audit_events"
    __table_args__ = (
        Index("ix_audit_events_table_entity", "table_name", "entity_id"),
        Index("ix_audit_events_action_time", "action", "occurred_at"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid7, index=True)
    actor_id = Column(String(36), nullable=True, index=True)
    action = Column(String(64), nullable=False, index=True)
    description = Column(Text, nullable=False, default="")
    table_name = Column(String(64), nullable=False, index=True)
    entity_id = Column(String(64), nullable=True)
    occurred_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, index=True)
    metadata_json = Column("metadata", JSON, nullable=True)

    def __repr__(self) -> str:
        return f"<AuditEvent id={self.id} table={self.table_name} action={self.action}>"

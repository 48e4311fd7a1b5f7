from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class AuditEventCreate(BaseModel):
    actor_id: Optional[str] = None
    action: str
    description: str = ""
    table_name: str
    entity_id: Optional[str] = None
    occurred_at: Optional[datetime] = None
    metadata: Optional[dict] = None


class AuditEventRead(BaseModel):
    id: str
    actor_id: Optional[str] = None
    action: str
    description: str
    table_name: str
    entity_id: Optional[str] = None
    occurred_at: datetime
    metadata: Optional[dict] = Field(default=None, alias="metadata_json")

    class Config:
        from_attributes = True
        populate_by_name = True

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from tallerdb.database import get_read_db
from tallerdb.security import get_current_active_account
from tallerdb.apps.accounts.models import Account

from . import schemas, services


router = APIRouter(prefix="/audit", tags=["audit"])


@router.get("/events", response_model=List[schemas.AuditEventRead])
def list_audit_events(
    table_name: Optional[str] = None,
    entity_id: Optional[str] = None,
    action: Optional[str] = None,
    actor_id: Optional[str] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    limit: int = 200,
    db: Session = Depends(get_read_db),
    current_account: Account = Depends(get_current_active_account),
):
    return services.list_audit_events(
        db,
        table_name=table_name,
        entity_id=entity_id,
        action=action,
        actor_id=actor_id,
        start=start,
        end=end,
        limit=limit,
    )

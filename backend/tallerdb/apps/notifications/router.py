from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from tallerdb.security import get_current_active_account
from tallerdb.apps.accounts.models import Account
from tallerdb.database import get_read_db

from . import models, schemas


router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("/email-logs", response_model=List[schemas.EmailLogRead])
def list_email_logs(
    status: Optional[models.EmailStatus] = None,
    template_key: Optional[str] = None,
    recipient: Optional[str] = None,
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    db: Session = Depends(get_read_db),
    current_account: Account = Depends(get_current_active_account),
):
    qs = db.query(models.EmailLog)
    if status:
        qs = qs.filter(models.EmailLog.status == status)
    if template_key:
        qs = qs.filter(models.EmailLog.template_key == template_key)
    if recipient:
        qs = qs.filter(models.EmailLog.recipient.ilike(f"%{recipient}%"))
    if start:
        qs = qs.filter(models.EmailLog.created_at >= start)
    if end:
        qs = qs.filter(models.EmailLog.created_at <= end)
    return qs.order_by(models.EmailLog.created_at.desc()).all()

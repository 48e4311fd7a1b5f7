from __future__ import annotations

from datetime import datetime, timezone
import logging
from typing import Optional

from sqlalchemy.orm import Session

from tallerdb.database import WriteSessionLocal
from tallerdb.errors import DeliveryError

from . import models, providers

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def send_email(
    template_key: str,
    recipient: str,
    subject: str,
    html: str,
    context: Optional[dict],
    correlation_id: Optional[str],
    critical: bool = False,
    *,
    db: Optional[Session] = None,
) -> models.EmailLog:
    """
    Attempt one delivery and record it in email_logs.

    Returns the log row; `critical=True` re-raises provider failures after
    the FAILED row is stored.
    """
    owns_session = db is None
    db = db or WriteSessionLocal()
    log = models.EmailLog(
        recipient=recipient,
        subject=subject,
        template_key=template_key,
        status=models.EmailStatus.QUEUED,
        context_json=context or {},
        correlation_id=correlation_id,
    )
    try:
        db.add(log)
        db.flush()

        try:
            provider, configured = providers.get_email_provider()
        except ValueError as exc:
            provider, configured = None, False
            log.error = str(exc)

        if not configured:
            log.status = models.EmailStatus.SKIPPED_NO_PROVIDER
            log.error = log.error or "No provider configured"
            db.add(log)
            _finish(db, owns_session)
            return log

        try:
            provider.send(
                recipient=recipient,
                subject=subject,
                html=html,
                correlation_id=correlation_id,
            )
            log.status = models.EmailStatus.SENT
            log.sent_at = _utcnow()
        except Exception as exc:
            log.status = models.EmailStatus.FAILED
            log.error = str(exc) or exc.__class__.__name__
            logger.warning(
                "Email delivery failed",
                extra={
                    "template_key": template_key,
                    "correlation_id": correlation_id,
                    "error": log.error,
                },
            )
            if critical:
                db.add(log)
                _finish(db, owns_session)
                raise
        db.add(log)
        _finish(db, owns_session)
        return log
    finally:
        if owns_session:
            db.close()


def _finish(db: Session, owns_session: bool) -> None:
    # A borrowed session is committed by its owner.
    if owns_session:
        db.commit()
    else:
        db.flush()


class Mailer:
    """
    Best-effort delivery channel used for credential notices.

    `send` returns the SENT log row or raises DeliveryError; it never
    retries. Re-sending is an explicit caller action.
    """

    def __init__(self, db: Optional[Session] = None) -> None:
        self.db = db

    def send(
        self,
        *,
        to: str,
        subject: str,
        html: str,
        template_key: str = "generic",
        context: Optional[dict] = None,
        correlation_id: Optional[str] = None,
    ) -> models.EmailLog:
        if not to or "@" not in to:
            raise DeliveryError("No hay un correo válido para el envío")
        try:
            log = send_email(
                template_key,
                to,
                subject,
                html,
                context,
                correlation_id,
                db=self.db,
            )
        except Exception as exc:
            raise DeliveryError(str(exc) or "No fue posible enviar el correo") from exc
        if log.status != models.EmailStatus.SENT:
            raise DeliveryError(log.error or "No fue posible enviar el correo")
        return log

"""Pending credentials re-send job.

This script is intended for cron/Task Scheduler (e.g. every 15 minutes) to
mint and email fresh temporary credentials for accounts whose last
delivery failed or never happened.

Env:
  CREDENTIALS_RESEND_LIMIT  batch size (1..200, default 25)
  SYSTEM_ACCOUNT_ID         actor recorded in the audit trail
"""

from __future__ import annotations

import logging
import os
from typing import Optional

from tallerdb.database import WriteSessionLocal
from tallerdb.apps.workers import services as worker_services

logger = logging.getLogger(__name__)


def _limit_from_env() -> Optional[int]:
    raw = os.getenv("CREDENTIALS_RESEND_LIMIT", "").strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric CREDENTIALS_RESEND_LIMIT=%r", raw)
        return None


def run(limit: Optional[int] = None) -> dict:
    """Execute the re-send job and return a summary dict."""
    db = WriteSessionLocal()
    try:
        return worker_services.process_pending_credentials(
            db,
            limit=limit if limit is not None else _limit_from_env(),
            actor_id=os.getenv("SYSTEM_ACCOUNT_ID") or None,
        )
    finally:
        db.close()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    result = run()
    print("Credentials re-send completed:", result)

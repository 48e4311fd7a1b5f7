# backend/tallerdb/migrations.py

"""
Programmatic access to the alembic migrations shipped in `tallerdb/alembic`.

The CLI route (`alembic upgrade head` from backend/) and this helper run the
same revisions; the bootstrap script uses the helper so a fresh database is
usable without a separate migration step.
"""

from __future__ import annotations

import logging
import os
from typing import Optional

from alembic import command
from alembic.config import Config
from sqlalchemy.engine import Connection

logger = logging.getLogger(__name__)

SCRIPT_LOCATION = os.path.join(os.path.dirname(os.path.abspath(__file__)), "alembic")


def alembic_config(connection: Optional[Connection] = None) -> Config:
    config = Config()
    config.set_main_option("script_location", SCRIPT_LOCATION)
    if connection is not None:
        # env.py migrates on this connection instead of the write engine.
        config.attributes["connection"] = connection
    return config


def upgrade_database(revision: str = "head", connection: Optional[Connection] = None) -> None:
    logger.info("Applying migrations", extra={"revision": revision})
    command.upgrade(alembic_config(connection), revision)

# backend/tallerdb/__init__.py
"""
Import ORM models from each app so that:

- Base.metadata.create_all() sees all tables.
- Mapper relationships between apps (Worker <-> Account) resolve.

The actual model classes are kept in tallerdb/apps/*/models.py.
"""

from .apps.accounts import models as accounts_models          # persons / roles / accounts
from .apps.workers import models as workers_models            # trabajadores
from .apps.audit import models as audit_models                # bitácora
from .apps.notifications import models as notifications_models  # email log

__all__ = [
    "accounts_models",
    "workers_models",
    "audit_models",
    "notifications_models",
]

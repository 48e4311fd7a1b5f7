# backend/tallerdb/apps/accounts/__init__.py
"""
Accounts app

Responsible for:
- Person records shared by workers and their login accounts
- The role catalog and role resolution from a worker's cargo
- Login accounts, temporary credentials and their delivery bookkeeping
- Public auth endpoints (login, password change)
- Admin endpoints for credential resets

The workers app owns the employee record; every change to the link between
a worker and its account goes through the services here or the workers
status coordinator.
"""

from . import models, schemas, services  # noqa: F401

__all__ = ["models", "schemas", "services"]

# backend/tallerdb/apps/notifications/__init__.py
"""Outbound email with a delivery log per message."""

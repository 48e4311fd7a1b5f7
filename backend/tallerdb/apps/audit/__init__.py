# backend/tallerdb/apps/audit/__init__.py
"""Append-only audit trail (bitácora) shared by every app."""

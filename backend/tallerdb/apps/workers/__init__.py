# backend/tallerdb/apps/workers/__init__.py
"""
Workers app

Responsible for:
- Employee records (trabajadores) and their sequential employee codes
- Creating / updating workers together with their person and account
- The ACTIVE / INACTIVE / DELETED status machine and its account cascades
- Re-sending temporary credentials to a worker's account
"""

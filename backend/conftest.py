from __future__ import annotations

import os
import sys
from decimal import Decimal
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

ROOT = Path(__file__).resolve().parent
sys.path.append(str(ROOT))

os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["DATABASE_WRITE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["SECRET_KEY"] = "test-secret-key"
# Cheap argon2 parameters; hashing dominates test time otherwise.
os.environ["ARGON2_TIME_COST"] = "1"
os.environ["ARGON2_MEMORY_COST"] = "8192"
os.environ["ARGON2_PARALLELISM"] = "1"
os.environ.pop("NOTIFICATIONS_EMAIL_PROVIDER", None)
os.environ.pop("EMAIL_PROVIDER", None)
os.environ.pop("ROLE_SYNONYMS_JSON", None)
os.environ.pop("ROLE_FALLBACKS", None)

import tallerdb  # noqa: E402,F401
from tallerdb.database import Base  # noqa: E402
from tallerdb.apps.accounts import services as account_services  # noqa: E402
from tallerdb.apps.notifications import providers  # noqa: E402
from tallerdb.apps.workers import schemas as worker_schemas  # noqa: E402


@pytest.fixture()
def db_session():
    engine = create_engine("sqlite+pysqlite:///:memory:")
    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(
        bind=engine,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
    )
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture()
def seeded_roles(db_session):
    roles = account_services.ensure_default_roles(db_session)
    db_session.commit()
    return {role.nombre: role for role in roles}


@pytest.fixture()
def actor_id() -> str:
    return "00000000-0000-7000-8000-000000000001"


class FakeProvider:
    """Records every message; `fail_with` makes the next sends raise."""

    def __init__(self):
        self.sent = []
        self.fail_with = None

    def send(self, *, recipient, subject, html, correlation_id=None):
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append(
            {
                "recipient": recipient,
                "subject": subject,
                "html": html,
                "correlation_id": correlation_id,
            }
        )


@pytest.fixture()
def email_outbox(monkeypatch):
    provider = FakeProvider()
    monkeypatch.setattr(providers, "get_email_provider", lambda: (provider, True))
    return provider


@pytest.fixture()
def worker_payload():
    """Builds a valid WorkerCreate; keyword arguments override fields."""

    counter = {"n": 0}

    def _build(**overrides) -> worker_schemas.WorkerCreate:
        counter["n"] += 1
        data = {
            "nombre": "Juan",
            "apellido_paterno": "Pérez",
            "apellido_materno": "Rojas",
            "tipo_documento": "DNI",
            "numero_documento": f"{40000000 + counter['n']:08d}",
            "telefono": "987654321",
            "correo": "juan.perez@tallermecanico.pe",
            "cargo": "Mecánico",
            "especialidad": "Motores",
            "nivel_experiencia": "Senior",
            "tarifa_hora": Decimal("25.50"),
        }
        data.update(overrides)
        return worker_schemas.WorkerCreate(**data)

    return _build

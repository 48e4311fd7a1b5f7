from __future__ import annotations

import uuid

import pytest
from sqlalchemy.exc import IntegrityError

from tallerdb.database import run_in_transaction
from tallerdb.errors import ConfigurationError, ConflictError, NotFoundError, ValidationError
from tallerdb.utils.http import http_error
from tallerdb.utils.identifiers import format_employee_code, generate_uuid7, parse_employee_code
from tallerdb.apps.accounts import models as account_models


def test_uuid7_has_version_7():
    assert uuid.UUID(generate_uuid7()).version == 7


def test_employee_code_formatting():
    assert format_employee_code(1) == "EMP-0001"
    assert format_employee_code(42) == "EMP-0042"
    assert format_employee_code(12345) == "EMP-12345"
    with pytest.raises(ValueError):
        format_employee_code(0)


@pytest.mark.parametrize(
    "code, expected",
    [("EMP-0007", 7), ("emp-0100", 100), ("EMP-", 0), ("legacy", 0), (None, 0)],
)
def test_employee_code_parsing(code, expected):
    assert parse_employee_code(code) == expected


def test_http_error_maps_status_and_code():
    exc = http_error(NotFoundError("Trabajador no encontrado"))
    assert exc.status_code == 404
    assert exc.detail == "Trabajador no encontrado"

    exc = http_error(ValidationError("Dato inválido", code="BAD_INPUT"))
    assert exc.status_code == 400
    assert exc.detail == {"message": "Dato inválido", "code": "BAD_INPUT"}

    assert http_error(ConfigurationError("Sin roles")).status_code == 500


def test_transaction_rolls_back_on_error(db_session):
    def _fail(session):
        session.add(account_models.Role(nombre="Temporal"))
        session.flush()
        raise ValidationError("abort")

    with pytest.raises(ValidationError):
        run_in_transaction(db_session, _fail)

    assert db_session.query(account_models.Role).count() == 0


def test_unique_violation_becomes_conflict(db_session):
    db_session.add(account_models.Role(nombre="Mecánico"))
    db_session.commit()

    def _duplicate(session):
        session.add(account_models.Role(nombre="Mecánico"))
        session.flush()

    with pytest.raises(ConflictError) as excinfo:
        run_in_transaction(db_session, _duplicate)
    assert isinstance(excinfo.value.__cause__, IntegrityError)
    assert db_session.query(account_models.Role).count() == 1

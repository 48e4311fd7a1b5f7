from __future__ import annotations

import logging
from datetime import date

import pytest

from tallerdb.errors import ConflictError, NotFoundError, StateError, ValidationError
from tallerdb.security import verify_password
from tallerdb.apps.accounts import models as account_models
from tallerdb.apps.accounts.services import verify_credentials
from tallerdb.apps.audit import models as audit_models
from tallerdb.apps.audit import services as audit_services
from tallerdb.apps.workers import models as worker_models
from tallerdb.apps.workers import schemas as worker_schemas
from tallerdb.apps.workers import services as worker_services


def _counts(db_session):
    return (
        db_session.query(account_models.Person).count(),
        db_session.query(account_models.Account).count(),
        db_session.query(worker_models.Worker).count(),
    )


def _with_account(worker_payload, **overrides):
    data = {
        "crear_usuario": True,
        "nombre_usuario": "juan.perez",
        "password": "Temporal123",
    }
    data.update(overrides)
    return worker_payload(**data)


# ---------------------------------------------------------------------------
# Employee codes
# ---------------------------------------------------------------------------


def test_employee_codes_are_sequential_and_padded(db_session, worker_payload, actor_id):
    codes = [
        worker_services.create_worker(db_session, worker_payload(), actor_id).trabajador.codigo_empleado
        for _ in range(3)
    ]

    assert codes == ["EMP-0001", "EMP-0002", "EMP-0003"]


def test_employee_code_follows_highest_suffix(db_session, worker_payload, actor_id):
    first = worker_services.create_worker(db_session, worker_payload(), actor_id).trabajador
    first.codigo_empleado = "EMP-0009"
    db_session.commit()

    second = worker_services.create_worker(db_session, worker_payload(), actor_id).trabajador

    assert second.codigo_empleado == "EMP-0010"


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------


def test_create_without_account(db_session, worker_payload, actor_id):
    result = worker_services.create_worker(db_session, worker_payload(), actor_id)

    worker = result.trabajador
    assert worker.state == worker_models.WorkerState.ACTIVE
    assert worker.usuario_id is None
    assert result.credenciales is None
    assert worker.persona.nombre_completo == "Juan Pérez Rojas"


def test_create_with_account_delivers_credentials(db_session, seeded_roles, worker_payload, actor_id, email_outbox):
    result = worker_services.create_worker(
        db_session,
        _with_account(worker_payload, nombre_usuario="Juan.Perez", cargo="mecanico"),
        actor_id,
    )

    account = result.trabajador.usuario
    assert account.nombre_usuario == "juan.perez"
    assert account.rol_id == seeded_roles["Mecánico"].id
    assert account.requiere_cambio_password is True
    assert verify_password("Temporal123", account.password_temporal_hash)
    assert result.credenciales.enviadas is True
    assert account.envio_credenciales_pendiente is False
    assert [m["recipient"] for m in email_outbox.sent] == ["juan.perez@tallermecanico.pe"]


def test_account_request_needs_password_and_email(db_session, seeded_roles, worker_payload, actor_id):
    payload = _with_account(worker_payload, password=None, correo=None)

    with pytest.raises(ValidationError):
        worker_services.create_worker(db_session, payload, actor_id)

    assert _counts(db_session) == (0, 0, 0)


def test_delivery_failure_keeps_created_worker_and_account(db_session, seeded_roles, worker_payload, actor_id):
    # No email provider is configured in tests, so delivery fails.
    result = worker_services.create_worker(db_session, _with_account(worker_payload), actor_id)

    assert result.credenciales.enviadas is False
    assert result.credenciales.error
    account = result.trabajador.usuario
    assert account is not None
    assert account.envio_credenciales_pendiente is True
    assert account.ultimo_error_envio
    assert account.ultimo_envio_credenciales is not None
    assert _counts(db_session) == (1, 1, 1)


def test_skipping_email_leaves_nothing_pending(db_session, seeded_roles, worker_payload, actor_id):
    result = worker_services.create_worker(
        db_session, _with_account(worker_payload, enviar_correo=False), actor_id
    )

    assert result.credenciales is None
    assert result.trabajador.usuario.envio_credenciales_pendiente is False


def test_duplicate_login_is_case_insensitive(db_session, seeded_roles, worker_payload, actor_id):
    worker_services.create_worker(db_session, _with_account(worker_payload), actor_id)

    with pytest.raises(ConflictError):
        worker_services.create_worker(
            db_session, _with_account(worker_payload, nombre_usuario="JUAN.PEREZ"), actor_id
        )
    assert _counts(db_session) == (1, 1, 1)


def test_duplicate_document_is_a_conflict(db_session, worker_payload, actor_id):
    worker_services.create_worker(db_session, worker_payload(numero_documento="45678912"), actor_id)

    with pytest.raises(ConflictError):
        worker_services.create_worker(db_session, worker_payload(numero_documento="45678912"), actor_id)


@pytest.mark.parametrize(
    "overrides",
    [
        {"telefono": "12345"},
        {"telefono": "98765432a"},
        {"tipo_documento": "DNI", "numero_documento": "1234567"},
        {"tipo_documento": "RUC", "numero_documento": "2012345678"},
        {"tipo_documento": "PASAPORTE", "numero_documento": "AB-12345"},
    ],
)
def test_format_validation(db_session, worker_payload, actor_id, overrides):
    with pytest.raises(ValidationError):
        worker_services.create_worker(db_session, worker_payload(**overrides), actor_id)
    assert _counts(db_session) == (0, 0, 0)


def test_ruc_and_passport_formats_are_accepted(db_session, worker_payload, actor_id):
    worker_services.create_worker(
        db_session, worker_payload(tipo_documento="RUC", numero_documento="20123456789"), actor_id
    )
    worker_services.create_worker(
        db_session, worker_payload(tipo_documento="PASAPORTE", numero_documento="XK12345"), actor_id
    )

    assert _counts(db_session) == (2, 0, 2)


def test_minors_are_rejected(db_session, worker_payload, actor_id):
    today = date.today()
    birth = date(today.year - 17, 1, 1)

    with pytest.raises(ValidationError):
        worker_services.create_worker(db_session, worker_payload(fecha_nacimiento=birth), actor_id)


def test_age_helper_counts_birthdays():
    assert worker_services.age_on(date(2000, 6, 15), date(2018, 6, 14)) == 17
    assert worker_services.age_on(date(2000, 6, 15), date(2018, 6, 15)) == 18


def test_missing_preferred_role_rolls_back_everything(db_session, seeded_roles, worker_payload, actor_id):
    payload = _with_account(worker_payload, rol_usuario="Gerente")

    with pytest.raises(NotFoundError):
        worker_services.create_worker(db_session, payload, actor_id)

    assert _counts(db_session) == (0, 0, 0)


def test_create_is_audited(db_session, worker_payload, actor_id):
    worker = worker_services.create_worker(db_session, worker_payload(), actor_id).trabajador

    event = (
        db_session.query(audit_models.AuditEvent)
        .filter(audit_models.AuditEvent.action == "CREATE_TRABAJADOR")
        .one()
    )
    assert event.actor_id == actor_id
    assert event.table_name == "trabajador"
    assert worker.codigo_empleado in event.description


def test_audit_failure_does_not_undo_creation(db_session, worker_payload, actor_id, monkeypatch, caplog):
    def _boom(*args, **kwargs):
        raise RuntimeError("audit table locked")

    monkeypatch.setattr(audit_services, "create_audit_event", _boom)

    with caplog.at_level(logging.WARNING):
        result = worker_services.create_worker(db_session, worker_payload(), actor_id)

    assert result.trabajador.id is not None
    assert _counts(db_session) == (1, 0, 1)
    assert "Failed to log audit event" in caplog.text


# ---------------------------------------------------------------------------
# Update
# ---------------------------------------------------------------------------


def test_partial_update_keeps_omitted_fields(db_session, worker_payload, actor_id):
    worker = worker_services.create_worker(db_session, worker_payload(), actor_id).trabajador

    worker_services.update_worker(
        db_session,
        worker.id,
        worker_schemas.WorkerUpdate(especialidad="Frenos", telefono="912345678"),
        actor_id,
    )

    assert worker.especialidad == "Frenos"
    assert worker.persona.telefono == "912345678"
    assert worker.cargo == "Mecánico"
    assert worker.persona.nombre == "Juan"
    assert worker.persona.correo == "juan.perez@tallermecanico.pe"


def test_update_rejects_document_of_another_person(db_session, worker_payload, actor_id):
    worker_services.create_worker(db_session, worker_payload(numero_documento="11111111"), actor_id)
    other = worker_services.create_worker(db_session, worker_payload(numero_documento="22222222"), actor_id).trabajador

    with pytest.raises(ConflictError):
        worker_services.update_worker(
            db_session, other.id, worker_schemas.WorkerUpdate(numero_documento="11111111"), actor_id
        )


def test_update_can_provision_missing_account(db_session, seeded_roles, worker_payload, actor_id, email_outbox):
    worker = worker_services.create_worker(db_session, worker_payload(cargo="Recepcionista"), actor_id).trabajador

    result = worker_services.update_worker(
        db_session,
        worker.id,
        worker_schemas.WorkerUpdate(crear_usuario=True, nombre_usuario="recepcion1", password="Temporal123"),
        actor_id,
    )

    assert worker.usuario is not None
    assert worker.usuario.rol_id == seeded_roles["Recepcionista"].id
    assert result.credenciales.enviadas is True


def test_changing_cargo_reruns_role_resolution(db_session, seeded_roles, worker_payload, actor_id):
    worker = worker_services.create_worker(
        db_session, _with_account(worker_payload, enviar_correo=False), actor_id
    ).trabajador
    assert worker.usuario.rol_id == seeded_roles["Mecánico"].id

    worker_services.update_worker(
        db_session, worker.id, worker_schemas.WorkerUpdate(cargo="Supervisor"), actor_id
    )

    assert worker.usuario.rol_id == seeded_roles["Jefe de Taller"].id


def test_new_password_triggers_delivery(db_session, seeded_roles, worker_payload, actor_id, email_outbox):
    worker = worker_services.create_worker(
        db_session, _with_account(worker_payload, enviar_correo=False), actor_id
    ).trabajador
    old_hash = worker.usuario.password_temporal_hash

    result = worker_services.update_worker(
        db_session, worker.id, worker_schemas.WorkerUpdate(password="OtraClave456"), actor_id
    )

    assert result.credenciales.enviadas is True
    assert worker.usuario.password_temporal_hash != old_hash
    assert verify_password("OtraClave456", worker.usuario.password_temporal_hash)
    assert "OtraClave456" in email_outbox.sent[-1]["html"]


def test_login_rename_issues_fresh_credential(db_session, seeded_roles, worker_payload, actor_id, email_outbox):
    worker = worker_services.create_worker(
        db_session, _with_account(worker_payload, enviar_correo=False), actor_id
    ).trabajador

    result = worker_services.update_worker(
        db_session, worker.id, worker_schemas.WorkerUpdate(nombre_usuario="J.Perez2"), actor_id
    )

    assert worker.usuario.nombre_usuario == "j.perez2"
    assert result.credenciales.enviadas is True
    assert len(email_outbox.sent) == 1


def test_silent_login_rename_returns_the_new_temporary_password(
    db_session, seeded_roles, worker_payload, actor_id, email_outbox
):
    worker = worker_services.create_worker(
        db_session, _with_account(worker_payload, enviar_correo=False), actor_id
    ).trabajador

    result = worker_services.update_worker(
        db_session,
        worker.id,
        worker_schemas.WorkerUpdate(nombre_usuario="juan.p2", enviar_correo=False),
        actor_id,
    )

    assert result.credenciales is None
    assert result.password_temporal
    assert email_outbox.sent == []
    assert worker.usuario.envio_credenciales_pendiente is False
    account = verify_credentials(db_session, "juan.p2", result.password_temporal)
    assert account.id == worker.usuario.id


def test_silent_explicit_password_is_not_echoed(db_session, seeded_roles, worker_payload, actor_id):
    worker = worker_services.create_worker(
        db_session, _with_account(worker_payload, enviar_correo=False), actor_id
    ).trabajador

    result = worker_services.update_worker(
        db_session,
        worker.id,
        worker_schemas.WorkerUpdate(password="OtraClave456", enviar_correo=False),
        actor_id,
    )

    assert result.password_temporal is None
    assert verify_credentials(db_session, "juan.perez", "OtraClave456").id == worker.usuario.id


def test_blocked_account_credentials_cannot_change(db_session, seeded_roles, worker_payload, actor_id, email_outbox):
    worker = worker_services.create_worker(
        db_session, _with_account(worker_payload, enviar_correo=False), actor_id
    ).trabajador
    worker_services.toggle_status(db_session, worker.id, actor_id=actor_id)
    old_hash = worker.usuario.password_temporal_hash

    with pytest.raises(StateError):
        worker_services.update_worker(
            db_session, worker.id, worker_schemas.WorkerUpdate(password="OtraClave456"), actor_id
        )

    assert worker.usuario.password_temporal_hash == old_hash
    assert worker.usuario.envio_credenciales_pendiente is False
    assert email_outbox.sent == []


def test_short_passwords_share_the_account_rule(db_session, seeded_roles, worker_payload, actor_id):
    with pytest.raises(ValidationError) as on_create:
        worker_services.create_worker(db_session, _with_account(worker_payload, password="corta"), actor_id)

    worker = worker_services.create_worker(
        db_session, _with_account(worker_payload, enviar_correo=False), actor_id
    ).trabajador
    with pytest.raises(ValidationError) as on_update:
        worker_services.update_worker(
            db_session, worker.id, worker_schemas.WorkerUpdate(password="corta"), actor_id
        )

    assert on_create.value.message == on_update.value.message
    assert "8" in on_update.value.message


def test_update_missing_worker(db_session, actor_id):
    with pytest.raises(NotFoundError):
        worker_services.update_worker(db_session, "missing", worker_schemas.WorkerUpdate(), actor_id)

from __future__ import annotations

import pytest

from tallerdb.errors import ConfigurationError, NotFoundError
from tallerdb.apps.accounts import models as account_models
from tallerdb.apps.accounts import services as account_services
from tallerdb.apps.accounts.services import RoleResolver


def _add_role(db_session, nombre: str) -> account_models.Role:
    role = account_models.Role(nombre=nombre, activo=True)
    db_session.add(role)
    db_session.commit()
    return role


def test_unaccented_cargo_maps_to_accented_role(db_session, seeded_roles):
    resolver = RoleResolver(db_session)

    assert resolver.resolve("mecanico") == seeded_roles["Mecánico"].id
    assert resolver.resolve("  MECÁNICO ") == seeded_roles["Mecánico"].id


def test_supervisor_maps_to_jefe_de_taller(db_session, seeded_roles):
    assert RoleResolver(db_session).resolve("Supervisor") == seeded_roles["Jefe de Taller"].id


def test_explicit_preference_must_exist(db_session, seeded_roles):
    resolver = RoleResolver(db_session)

    with pytest.raises(NotFoundError):
        resolver.resolve("mecanico", preferred="Gerente General")


def test_explicit_preference_wins_over_cargo(db_session, seeded_roles):
    resolver = RoleResolver(db_session)

    assert resolver.resolve("mecanico", preferred="Recepcionista") == seeded_roles["Recepcionista"].id


def test_blank_preference_is_ignored(db_session, seeded_roles):
    assert RoleResolver(db_session).resolve("mecanico", preferred="   ") == seeded_roles["Mecánico"].id


def test_raw_cargo_is_tried_as_role_name(db_session, seeded_roles):
    pintor = _add_role(db_session, "Pintor")

    assert RoleResolver(db_session).resolve(" Pintor ") == pintor.id


def test_unknown_cargo_uses_first_existing_fallback(db_session):
    admin = _add_role(db_session, "Administrador")
    recepcion = _add_role(db_session, "Recepcionista")

    resolved = RoleResolver(db_session).resolve("Lavador")

    # "Mecánico" is missing, so the next fallback in order is used.
    assert resolved == recepcion.id
    assert resolved != admin.id


def test_empty_catalog_is_a_configuration_error(db_session):
    with pytest.raises(ConfigurationError):
        RoleResolver(db_session).resolve("mecanico")


def test_injected_synonyms_replace_builtin_table(db_session, seeded_roles):
    resolver = RoleResolver(
        db_session,
        synonyms={"Electricista": "Jefe de Taller"},
        fallback_roles=["Administrador"],
    )

    assert resolver.resolve("electricista") == seeded_roles["Jefe de Taller"].id
    # Builtin synonyms are gone; "supervisor" now falls back.
    assert resolver.resolve("supervisor") == seeded_roles["Administrador"].id


def test_synonyms_can_come_from_env(db_session, seeded_roles, monkeypatch):
    monkeypatch.setenv("ROLE_SYNONYMS_JSON", '{"Chofer": "Recepcionista"}')

    assert RoleResolver(db_session).resolve("chofer") == seeded_roles["Recepcionista"].id


def test_invalid_synonym_env_is_a_configuration_error(monkeypatch):
    monkeypatch.setenv("ROLE_SYNONYMS_JSON", "[not json")

    with pytest.raises(ConfigurationError):
        account_services.load_role_synonyms()


def test_fallbacks_can_come_from_env(monkeypatch):
    monkeypatch.setenv("ROLE_FALLBACKS", "Administrador, Recepcionista ,")

    assert account_services.load_fallback_roles() == ["Administrador", "Recepcionista"]


def test_default_roles_are_seeded_once(db_session):
    account_services.ensure_default_roles(db_session)
    account_services.ensure_default_roles(db_session)
    db_session.commit()

    names = [r.nombre for r in db_session.query(account_models.Role).all()]
    assert sorted(names) == sorted(["Administrador", "Jefe de Taller", "Mecánico", "Recepcionista"])

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from tallerdb.errors import ValidationError
from tallerdb.security import verify_password
from tallerdb.apps.accounts import models as account_models
from tallerdb.apps.accounts.credentials import (
    DEFAULT_EXPIRY_HOURS,
    CredentialIssuer,
    PermanentCredential,
    TemporaryCredential,
    apply_credential_state,
    credential_state_of,
    generate_temporary_password,
    validate_expiry_hours,
)

FIXED_NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _issuer() -> CredentialIssuer:
    return CredentialIssuer(clock=lambda: FIXED_NOW)


def test_generated_password_is_alphanumeric_and_long_enough():
    password = generate_temporary_password()

    assert len(password) >= 12
    assert password.isalnum()


def test_issue_hashes_temporary_and_placeholder_independently():
    issued = _issuer().issue()

    assert verify_password(issued.plaintext_temporary, issued.temporary_hash)
    assert not verify_password(issued.plaintext_temporary, issued.placeholder_hash)
    assert issued.temporary_hash != issued.placeholder_hash


def test_issue_uses_explicit_password_verbatim():
    issued = _issuer().issue(explicit_password="Taller2026!")

    assert issued.plaintext_temporary == "Taller2026!"
    assert verify_password("Taller2026!", issued.temporary_hash)


def test_expiry_defaults_and_is_in_the_future():
    issued = _issuer().issue()

    assert issued.expires_at == FIXED_NOW + timedelta(hours=DEFAULT_EXPIRY_HOURS)
    assert issued.expires_at > FIXED_NOW


@pytest.mark.parametrize("hours", [0, 337, -5])
def test_expiry_outside_bounds_is_rejected(hours):
    with pytest.raises(ValidationError):
        validate_expiry_hours(hours)


def test_expiry_upper_bound_is_fourteen_days():
    issued = _issuer().issue(expiry_hours=336)

    assert issued.expires_at == FIXED_NOW + timedelta(days=14)


def test_reissue_never_reuses_either_hash():
    issuer = _issuer()
    first = issuer.issue()
    second = issuer.issue()

    assert first.temporary_hash != second.temporary_hash
    assert first.placeholder_hash != second.placeholder_hash


def test_repr_does_not_leak_plaintext():
    issued = _issuer().issue(explicit_password="SuperSecreto99")

    assert "SuperSecreto99" not in repr(issued)


def test_apply_puts_placeholder_in_permanent_slot():
    issuer = _issuer()
    issued = issuer.issue()
    account = account_models.Account(nombre_usuario="ana", password_hash="old", ultimo_error_envio="smtp down")

    issuer.apply(account, issued)

    assert account.password_hash == issued.placeholder_hash
    assert account.password_temporal_hash == issued.temporary_hash
    assert account.password_temporal_expira == issued.expires_at
    assert account.requiere_cambio_password is True
    assert account.ultimo_error_envio is None

    state = credential_state_of(account)
    assert isinstance(state, TemporaryCredential)
    assert state.hash == issued.temporary_hash


def test_permanent_state_clears_temporary_columns():
    issuer = _issuer()
    account = account_models.Account(nombre_usuario="ana", password_hash="old")
    issuer.apply(account, issuer.issue())

    apply_credential_state(account, PermanentCredential(hash="permanent-hash"))

    assert account.password_hash == "permanent-hash"
    assert account.password_temporal_hash is None
    assert account.password_temporal_expira is None
    assert credential_state_of(account) == PermanentCredential(hash="permanent-hash")


def test_temporary_state_expiry_check():
    state = TemporaryCredential(
        hash="h",
        expires_at=FIXED_NOW,
        placeholder_hash="p",
    )

    assert not state.is_expired(FIXED_NOW - timedelta(seconds=1))
    assert state.is_expired(FIXED_NOW + timedelta(seconds=1))

"""Temporary credential issuance and the account credential state.

An account has exactly one usable secret at a time:

- TemporaryCredential: a short-lived secret handed to the staff member. The
  permanent slot meanwhile holds the hash of a random placeholder nobody
  knows, so it is never empty nor guessable.
- PermanentCredential: the secret chosen by the staff member.

The state is derived from the account columns (`credential_state_of`) and
written back only through `apply_credential_state`.
"""

from __future__ import annotations

import os
import secrets
import string
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Union

from tallerdb.errors import ValidationError
from tallerdb.security import get_password_hash

from . import models

TEMP_PASSWORD_LENGTH = 12
PLACEHOLDER_PASSWORD_LENGTH = 16
MIN_EXPIRY_HOURS = 1
MAX_EXPIRY_HOURS = 24 * 14
DEFAULT_EXPIRY_HOURS = int(os.getenv("TEMP_PASSWORD_EXPIRY_HOURS", "72"))

_ALPHABET = string.ascii_letters + string.digits


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# ---------------------------------------------------------------------------
# Credential state
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PermanentCredential:
    hash: str


@dataclass(frozen=True)
class TemporaryCredential:
    hash: str
    expires_at: datetime
    placeholder_hash: str

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        now = as_utc(now) or _utcnow()
        return as_utc(self.expires_at) <= now


CredentialState = Union[TemporaryCredential, PermanentCredential]


def credential_state_of(account: models.Account) -> CredentialState:
    if account.password_temporal_hash:
        return TemporaryCredential(
            hash=account.password_temporal_hash,
            expires_at=as_utc(account.password_temporal_expira),
            placeholder_hash=account.password_hash,
        )
    return PermanentCredential(hash=account.password_hash)


def apply_credential_state(account: models.Account, state: CredentialState) -> None:
    if isinstance(state, TemporaryCredential):
        if not state.hash or not state.placeholder_hash:
            raise ValueError("Temporary credentials need both hashes.")
        if state.expires_at is None:
            raise ValueError("Temporary credentials need an expiry.")
        account.password_hash = state.placeholder_hash
        account.password_temporal_hash = state.hash
        account.password_temporal_expira = state.expires_at
        return

    if not state.hash:
        raise ValueError("The permanent password hash cannot be empty.")
    account.password_hash = state.hash
    account.password_temporal_hash = None
    account.password_temporal_expira = None


# ---------------------------------------------------------------------------
# Issuer
# ---------------------------------------------------------------------------


def generate_temporary_password(length: int = TEMP_PASSWORD_LENGTH) -> str:
    """Random alphanumeric secret from the OS CSPRNG (no symbols to escape in mail)."""
    return "".join(secrets.choice(_ALPHABET) for _ in range(length))


def validate_expiry_hours(hours: Optional[int]) -> int:
    if hours is None:
        return DEFAULT_EXPIRY_HOURS
    if isinstance(hours, bool) or not isinstance(hours, int):
        raise ValidationError("Las horas de expiración deben ser un número entero.")
    if hours < MIN_EXPIRY_HOURS or hours > MAX_EXPIRY_HOURS:
        raise ValidationError(
            f"Las horas de expiración deben estar entre {MIN_EXPIRY_HOURS} y {MAX_EXPIRY_HOURS}."
        )
    return hours


@dataclass(frozen=True)
class IssuedCredentials:
    plaintext_temporary: str
    temporary_hash: str
    placeholder_hash: str
    expires_at: datetime

    @property
    def state(self) -> TemporaryCredential:
        return TemporaryCredential(
            hash=self.temporary_hash,
            expires_at=self.expires_at,
            placeholder_hash=self.placeholder_hash,
        )

    def __repr__(self) -> str:
        # Keep the plaintext out of logs and tracebacks.
        return f"<IssuedCredentials expires_at={self.expires_at.isoformat()}>"


class CredentialIssuer:
    """Mints temporary secrets and their placeholder counterpart."""

    def __init__(
        self,
        *,
        hasher: Callable[[str], str] = get_password_hash,
        clock: Callable[[], datetime] = _utcnow,
        temporary_length: int = TEMP_PASSWORD_LENGTH,
        placeholder_length: int = PLACEHOLDER_PASSWORD_LENGTH,
    ) -> None:
        self._hasher = hasher
        self._clock = clock
        self.temporary_length = max(temporary_length, TEMP_PASSWORD_LENGTH)
        self.placeholder_length = max(placeholder_length, PLACEHOLDER_PASSWORD_LENGTH)

    def issue(
        self,
        explicit_password: Optional[str] = None,
        expiry_hours: Optional[int] = None,
    ) -> IssuedCredentials:
        hours = validate_expiry_hours(expiry_hours)

        temporary = explicit_password or generate_temporary_password(self.temporary_length)
        placeholder = generate_temporary_password(self.placeholder_length)

        return IssuedCredentials(
            plaintext_temporary=temporary,
            temporary_hash=self._hasher(temporary),
            placeholder_hash=self._hasher(placeholder),
            expires_at=as_utc(self._clock()) + timedelta(hours=hours),
        )

    def apply(self, account: models.Account, issued: IssuedCredentials) -> None:
        """
        Install freshly issued credentials on an account.

        Replaces both hashes and the expiry, forces a password change and
        clears the previous delivery error.
        """
        apply_credential_state(account, issued.state)
        account.requiere_cambio_password = True
        account.ultimo_error_envio = None

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from html import escape
import json
import logging
import os
from typing import Dict, List, Mapping, Optional, Sequence

from sqlalchemy import func
from sqlalchemy.orm import Session

from tallerdb.database import run_in_transaction
from tallerdb.errors import (
    AuthenticationError,
    ConfigurationError,
    ConflictError,
    DeliveryError,
    NotFoundError,
    StateError,
    ValidationError,
)
from tallerdb.security import get_password_hash, verify_password
from tallerdb.apps.audit.services import AuditLogger
from tallerdb.apps.notifications.service import Mailer
from tallerdb.apps.workers import models as worker_models

from . import models
from .credentials import (
    CredentialIssuer,
    IssuedCredentials,
    PermanentCredential,
    TemporaryCredential,
    apply_credential_state,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

MIN_PASSWORD_LENGTH = 8
MIN_LOGIN_LENGTH = 4
DEFAULT_BLOCK_REASON = "Bloqueo manual"
CREDENTIALS_SUBJECT = "Credenciales de acceso al sistema"
CREDENTIALS_TEMPLATE_KEY = "usuarios.credenciales"

DEFAULT_ROLE_SYNONYMS: Dict[str, str] = {
    "mecánico": "Mecánico",
    "mecanico": "Mecánico",
    "recepcionista": "Recepcionista",
    "administrador": "Administrador",
    "jefe de taller": "Jefe de Taller",
    "supervisor": "Jefe de Taller",
}
DEFAULT_FALLBACK_ROLES: Sequence[str] = ("Mecánico", "Recepcionista", "Administrador")

DEFAULT_ROLE_CATALOG: Sequence[tuple] = (
    ("Administrador", "Acceso completo al back-office"),
    ("Jefe de Taller", "Supervisa órdenes y asigna tareas"),
    ("Mecánico", "Ejecuta tareas de las órdenes de trabajo"),
    ("Recepcionista", "Atiende clientes, vehículos y cotizaciones"),
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def load_role_synonyms() -> Dict[str, str]:
    """
    Synonym table for cargo -> role name.

    ROLE_SYNONYMS_JSON (a JSON object) replaces the built-in table so the
    mapping can change without a deploy.
    """
    raw = os.getenv("ROLE_SYNONYMS_JSON", "").strip()
    if not raw:
        return dict(DEFAULT_ROLE_SYNONYMS)
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"ROLE_SYNONYMS_JSON is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError("ROLE_SYNONYMS_JSON must be a JSON object.")
    return {str(k).strip().lower(): str(v).strip() for k, v in data.items()}


def load_fallback_roles() -> List[str]:
    raw = os.getenv("ROLE_FALLBACKS", "").strip()
    if not raw:
        return list(DEFAULT_FALLBACK_ROLES)
    return [name.strip() for name in raw.split(",") if name.strip()]


# ---------------------------------------------------------------------------
# Normalisation helpers
# ---------------------------------------------------------------------------


def normalise_login(value: str) -> str:
    return (value or "").strip().lower()


def _validate_new_password(password: Optional[str]) -> None:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"La contraseña debe tener al menos {MIN_PASSWORD_LENGTH} caracteres."
        )


# ---------------------------------------------------------------------------
# Fetch helpers
# ---------------------------------------------------------------------------


def get_account_or_404(db: Session, account_id: str) -> models.Account:
    account = db.query(models.Account).filter(models.Account.id == account_id).first()
    if not account:
        raise NotFoundError("Usuario no encontrado")
    return account


def get_account_by_login(db: Session, nombre_usuario: str) -> Optional[models.Account]:
    name = normalise_login(nombre_usuario)
    if not name:
        return None
    return (
        db.query(models.Account)
        .filter(func.lower(models.Account.nombre_usuario) == name)
        .first()
    )


def get_role_by_name(db: Session, nombre: str) -> Optional[models.Role]:
    return db.query(models.Role).filter(models.Role.nombre == nombre).first()


# ---------------------------------------------------------------------------
# Role resolution
# ---------------------------------------------------------------------------


class RoleResolver:
    """
    Maps a worker's cargo (and an optional explicit preference) to a role id.

    1. A non-blank preference must exist by exact name; it is never replaced.
    2. The normalised cargo goes through the synonym table, then the raw
       trimmed cargo is tried as a role name.
    3. The fallback roles are tried in order.
    4. Nothing found means the catalog was never seeded: ConfigurationError.
    """

    def __init__(
        self,
        db: Session,
        *,
        synonyms: Optional[Mapping[str, str]] = None,
        fallback_roles: Optional[Sequence[str]] = None,
    ) -> None:
        self.db = db
        self.synonyms = {
            k.strip().lower(): v
            for k, v in (synonyms if synonyms is not None else load_role_synonyms()).items()
        }
        self.fallback_roles = list(
            fallback_roles if fallback_roles is not None else load_fallback_roles()
        )

    def resolve(self, cargo: Optional[str], preferred: Optional[str] = None) -> str:
        preferred_name = (preferred or "").strip()
        if preferred_name:
            role = get_role_by_name(self.db, preferred_name)
            if not role:
                raise NotFoundError(
                    f'Rol "{preferred_name}" no existe. Configura el rol antes de asignarlo.'
                )
            return role.id

        raw_cargo = (cargo or "").strip()
        if raw_cargo:
            mapped = self.synonyms.get(raw_cargo.lower())
            for candidate in (mapped, raw_cargo):
                if not candidate:
                    continue
                role = get_role_by_name(self.db, candidate)
                if role:
                    return role.id

        for fallback in self.fallback_roles:
            role = get_role_by_name(self.db, fallback)
            if role:
                return role.id

        logger.error(
            "No fallback role exists in the catalog",
            extra={"cargo": raw_cargo, "fallback_roles": self.fallback_roles},
        )
        raise ConfigurationError(
            "No existen roles configurados para asignar credenciales. "
            "Crea al menos un rol en el catálogo de roles."
        )


def ensure_default_roles(db: Session) -> List[models.Role]:
    """Idempotently seed the role catalog; each role is inserted at most once."""
    roles: List[models.Role] = []
    for nombre, descripcion in DEFAULT_ROLE_CATALOG:
        role = get_role_by_name(db, nombre)
        if role is None:
            role = models.Role(nombre=nombre, descripcion=descripcion, activo=True)
            db.add(role)
            db.flush()
        roles.append(role)
    return roles


# ---------------------------------------------------------------------------
# Account provisioning
# ---------------------------------------------------------------------------


class AccountProvisioner:
    """
    Creates Accounts for Workers and owns the Worker -> Account link.

    Every path that gives a worker an account goes through `create`, which
    is where "at most one account per worker" is enforced.
    """

    def __init__(self, db: Session, issuer: Optional[CredentialIssuer] = None) -> None:
        self.db = db
        self.issuer = issuer or CredentialIssuer()

    def ensure_login_available(
        self,
        nombre_usuario: str,
        exclude_account_id: Optional[str] = None,
    ) -> str:
        name = normalise_login(nombre_usuario)
        if len(name) < MIN_LOGIN_LENGTH:
            raise ValidationError(
                f"El nombre de usuario debe tener al menos {MIN_LOGIN_LENGTH} caracteres."
            )
        existing = get_account_by_login(self.db, name)
        if existing and existing.id != exclude_account_id:
            raise ConflictError("Ya existe un usuario con este nombre de usuario")
        return name

    def create(
        self,
        worker: worker_models.Worker,
        nombre_usuario: str,
        rol_id: str,
        issued: IssuedCredentials,
        *,
        estado: bool = True,
        enviar_correo: bool = True,
    ) -> models.Account:
        if worker.usuario_id or worker.usuario is not None:
            raise ConflictError("El trabajador ya tiene credenciales asignadas")
        if worker.eliminado:
            raise ConflictError("El trabajador fue dado de baja")
        if not worker.activo:
            raise ConflictError(
                "El trabajador está inactivo. Actívalo antes de asignar credenciales."
            )

        name = self.ensure_login_available(nombre_usuario)

        account = models.Account(
            persona_id=worker.persona_id,
            rol_id=rol_id,
            nombre_usuario=name,
            estado=estado,
            estatus=True,
            envio_credenciales_pendiente=enviar_correo,
            ultimo_envio_credenciales=None,
            ultimo_error_envio=None,
        )
        if worker.persona is not None:
            account.persona = worker.persona
        self.issuer.apply(account, issued)
        self.db.add(account)
        self.db.flush()

        worker.usuario_id = account.id
        worker.usuario = account
        self.db.add(worker)
        self.db.flush()
        return account

    def update_login(self, account: models.Account, nombre_usuario: str) -> bool:
        """Rename an account; returns True when the stored name changed."""
        name = self.ensure_login_available(nombre_usuario, exclude_account_id=account.id)
        if name == account.nombre_usuario:
            return False
        account.nombre_usuario = name
        self.db.add(account)
        return True


# ---------------------------------------------------------------------------
# Credential delivery
# ---------------------------------------------------------------------------


@dataclass
class DeliveryOutcome:
    enviadas: bool
    error: Optional[str] = None
    correo: Optional[str] = None

    def as_dict(self) -> dict:
        return {"enviadas": self.enviadas, "error": self.error, "correo": self.correo}


def build_credentials_email(
    account: models.Account,
    plaintext: str,
    *,
    expires_at: Optional[datetime],
    extra_message: Optional[str] = None,
) -> str:
    person = account.persona
    greeting = person.nombre_completo if person else account.nombre_usuario
    if expires_at is not None:
        expiry_line = f"Esta contraseña temporal caduca el {expires_at.strftime('%d/%m/%Y %H:%M')} (UTC)."
    else:
        expiry_line = "Esta contraseña temporal caduca en las próximas horas."
    extra = f"<p>{escape(extra_message)}</p>" if extra_message else ""
    return (
        f"<p>Hola {escape(greeting)},</p>"
        "<p>Se generaron nuevas credenciales de acceso para el sistema del taller.</p>"
        "<ul>"
        f"<li><strong>Usuario:</strong> {escape(account.nombre_usuario)}</li>"
        f"<li><strong>Contraseña temporal:</strong> {escape(plaintext)}</li>"
        "</ul>"
        f"<p>Al iniciar sesión se te pedirá cambiar la contraseña. {expiry_line}</p>"
        f"{extra}"
        "<p>Saludos,<br/>Equipo del taller</p>"
    )


def record_delivery_outcome(
    db: Session,
    account: models.Account,
    *,
    success: bool,
    error: Optional[str],
    actor_id: Optional[str],
    audit: AuditLogger,
) -> models.Account:
    account.envio_credenciales_pendiente = not success
    account.ultimo_envio_credenciales = _utcnow()
    account.ultimo_error_envio = None if success else (error or "Error desconocido")
    db.add(account)
    db.commit()

    audit.record(
        actor_id=actor_id,
        action="EMAIL_USUARIO_OK" if success else "EMAIL_USUARIO_FAIL",
        description=(
            f"Correo de credenciales enviado a {account.nombre_usuario}"
            if success
            else f"Fallo al enviar credenciales a {account.nombre_usuario}: {account.ultimo_error_envio}"
        ),
        table="usuario",
        entity_id=account.id,
    )
    return account


def deliver_credentials(
    db: Session,
    account: models.Account,
    plaintext: str,
    *,
    actor_id: Optional[str],
    mailer: Mailer,
    audit: AuditLogger,
    subject: str = CREDENTIALS_SUBJECT,
    extra_message: Optional[str] = None,
) -> DeliveryOutcome:
    """
    Send a freshly issued temporary credential. Never raises DeliveryError.

    Runs after the identity transaction committed; the outcome is stored on
    the account and returned, the identity state is never touched.
    """
    correo = (account.persona.correo or "").strip() if account.persona else ""
    if not correo:
        message = "No hay un correo registrado para enviar las credenciales"
        record_delivery_outcome(
            db, account, success=False, error=message, actor_id=actor_id, audit=audit
        )
        return DeliveryOutcome(enviadas=False, error=message, correo=None)

    html = build_credentials_email(
        account,
        plaintext,
        expires_at=account.password_temporal_expira,
        extra_message=extra_message,
    )
    try:
        mailer.send(
            to=correo,
            subject=subject,
            html=html,
            template_key=CREDENTIALS_TEMPLATE_KEY,
            context={"usuario_id": account.id},
            correlation_id=f"usuario:{account.id}:credenciales",
        )
    except DeliveryError as exc:
        logger.warning(
            "Credential delivery failed",
            extra={"account_id": account.id, "error": str(exc)},
        )
        record_delivery_outcome(
            db, account, success=False, error=str(exc), actor_id=actor_id, audit=audit
        )
        return DeliveryOutcome(enviadas=False, error=str(exc), correo=correo)

    record_delivery_outcome(
        db, account, success=True, error=None, actor_id=actor_id, audit=audit
    )
    return DeliveryOutcome(enviadas=True, error=None, correo=correo)


# ---------------------------------------------------------------------------
# Reset / verify / change
# ---------------------------------------------------------------------------


@dataclass
class CredentialResetResult:
    account: models.Account
    password_temporal: str
    credenciales: Optional[DeliveryOutcome]


def reset_credentials(
    db: Session,
    account_id: str,
    *,
    send_email: bool,
    expiry_hours: Optional[int],
    actor_id: str,
    issuer: Optional[CredentialIssuer] = None,
    mailer: Optional[Mailer] = None,
    audit: Optional[AuditLogger] = None,
    subject: str = CREDENTIALS_SUBJECT,
    extra_message: Optional[str] = None,
) -> CredentialResetResult:
    """
    Replace the account's secrets with a fresh temporary credential.

    Both hashes and the expiry are replaced and the previous delivery error
    is cleared. With `send_email` the credential is delivered after commit.
    """
    issuer = issuer or CredentialIssuer()
    audit = audit or AuditLogger(db)

    account = get_account_or_404(db, account_id)
    if not account.estatus:
        raise StateError("El usuario fue dado de baja")

    issued = issuer.issue(expiry_hours=expiry_hours)

    def _apply(session: Session) -> models.Account:
        issuer.apply(account, issued)
        account.envio_credenciales_pendiente = send_email
        session.add(account)
        session.flush()
        return account

    run_in_transaction(db, _apply)

    audit.record(
        actor_id=actor_id,
        action="RESET_PASSWORD_USUARIO",
        description=f"Se generó nueva contraseña temporal para {account.nombre_usuario}",
        table="usuario",
        entity_id=account.id,
    )

    outcome = None
    if send_email:
        outcome = deliver_credentials(
            db,
            account,
            issued.plaintext_temporary,
            actor_id=actor_id,
            mailer=mailer or Mailer(db),
            audit=audit,
            subject=subject,
            extra_message=extra_message,
        )

    return CredentialResetResult(
        account=account,
        password_temporal=issued.plaintext_temporary,
        credenciales=outcome,
    )


def _log_login_failure(nombre_usuario: str, reason: str, account_id: Optional[str] = None) -> None:
    logger.warning(
        "Login failed",
        extra={"nombre_usuario": nombre_usuario, "reason": reason, "account_id": account_id},
    )


_dummy_hash: Optional[str] = None


def _burn_verify(password: str) -> None:
    # Unknown logins still pay for one hash verification.
    global _dummy_hash
    if _dummy_hash is None:
        _dummy_hash = get_password_hash("tallerdb-login-placeholder")
    verify_password(password, _dummy_hash)


def verify_credentials(
    db: Session,
    nombre_usuario: str,
    password: str,
    *,
    now: Optional[datetime] = None,
) -> models.Account:
    """
    Check a login attempt.

    A temporary credential wins until it expires; expiry is evaluated here,
    lazily, and an expired temporary secret simply stops working (the
    permanent slot holds an unknown placeholder) until the next reset.

    Unknown logins and wrong secrets share one generic error. The blocked
    and expired states are only reported once the secret matched.
    """
    account = get_account_by_login(db, nombre_usuario)
    if not account or not account.estatus:
        _burn_verify(password)
        _log_login_failure(nombre_usuario, "unknown_or_deleted")
        raise AuthenticationError("Credenciales inválidas.")

    state = account.credential_state
    if not verify_password(password, state.hash):
        _log_login_failure(nombre_usuario, "bad_password", account.id)
        raise AuthenticationError("Credenciales inválidas.")

    if not account.estado:
        _log_login_failure(nombre_usuario, "blocked", account.id)
        raise AuthenticationError("La cuenta está bloqueada.")
    if isinstance(state, TemporaryCredential) and state.is_expired(now):
        _log_login_failure(nombre_usuario, "temporary_expired", account.id)
        raise AuthenticationError(
            "La contraseña temporal expiró. Solicita una nueva.",
            code="TEMPORARY_PASSWORD_EXPIRED",
        )
    return account


def change_password(
    db: Session,
    account_id: str,
    *,
    current_password: str,
    new_password: str,
    actor_id: Optional[str] = None,
    audit: Optional[AuditLogger] = None,
    now: Optional[datetime] = None,
) -> models.Account:
    """
    Replace the account secret with one chosen by its owner.

    While a change is required the current secret is the temporary one;
    the outcome is always a permanent credential.
    """
    audit = audit or AuditLogger(db)
    account = get_account_or_404(db, account_id)
    if not account.estatus:
        raise StateError("El usuario fue dado de baja")
    if not account.estado:
        raise StateError("La cuenta está bloqueada")

    state = account.credential_state
    if isinstance(state, TemporaryCredential):
        if state.is_expired(now):
            raise StateError("La contraseña temporal expiró. Solicita una nueva.")
    elif account.requiere_cambio_password:
        raise StateError("No hay contraseña temporal disponible. Solicita un reinicio.")

    if not verify_password(current_password, state.hash):
        raise ValidationError("La contraseña actual es incorrecta")
    _validate_new_password(new_password)
    if new_password == current_password:
        raise ValidationError("La nueva contraseña debe ser distinta de la actual")

    new_hash = get_password_hash(new_password)

    def _apply(session: Session) -> models.Account:
        apply_credential_state(account, PermanentCredential(hash=new_hash))
        account.requiere_cambio_password = False
        account.ultimo_cambio_password = _utcnow()
        account.envio_credenciales_pendiente = False
        account.ultimo_error_envio = None
        session.add(account)
        session.flush()
        return account

    run_in_transaction(db, _apply)

    audit.record(
        actor_id=actor_id or account.id,
        action="CAMBIO_PASSWORD",
        description=f"El usuario {account.nombre_usuario} cambió su contraseña",
        table="usuario",
        entity_id=account.id,
    )
    return account

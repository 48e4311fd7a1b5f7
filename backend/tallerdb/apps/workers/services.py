# backend/tallerdb/apps/workers/services.py

"""
Worker lifecycle services.

- WorkerLifecycleManager creates and updates workers together with their
  person record and, when requested, their login account.
- StatusTransitionCoordinator drives ACTIVE / INACTIVE / DELETED and
  cascades each transition onto the linked account. Account-side block
  and soft delete go through it too, so the worker follows.
- send_credentials / process_pending_credentials re-issue and deliver
  temporary credentials on demand.

Every mutating command runs its writes in one `run_in_transaction` unit.
Audit events and credential emails happen after the commit and never
undo it.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
import logging
import re
from typing import Dict, List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from tallerdb.database import run_in_transaction
from tallerdb.errors import (
    ConflictError,
    NotFoundError,
    ServiceError,
    StateError,
    ValidationError,
)
from tallerdb.utils.identifiers import format_employee_code, parse_employee_code
from tallerdb.apps.accounts import models as account_models
from tallerdb.apps.accounts.credentials import (
    CredentialIssuer,
    PermanentCredential,
    apply_credential_state,
)
from tallerdb.apps.accounts.services import (
    CREDENTIALS_SUBJECT,
    DEFAULT_BLOCK_REASON,
    AccountProvisioner,
    DeliveryOutcome,
    RoleResolver,
    _validate_new_password,
    deliver_credentials,
    get_account_or_404,
    normalise_login,
    reset_credentials,
)
from tallerdb.apps.audit.services import AuditLogger
from tallerdb.apps.notifications.service import Mailer

from . import models, schemas

logger = logging.getLogger(__name__)

DocumentType = account_models.DocumentType

MIN_AGE_YEARS = 18
DEFAULT_DELETE_REASON = "Baja lógica"
PENDING_BATCH_DEFAULT = 25
PENDING_BATCH_MAX = 200

_PHONE_RE = re.compile(r"^\d{9}$")
_DOCUMENT_RULES = {
    DocumentType.DNI: (re.compile(r"^\d{8}$"), "El DNI debe tener 8 dígitos"),
    DocumentType.RUC: (re.compile(r"^\d{11}$"), "El RUC debe tener 11 dígitos"),
    DocumentType.CE: (
        re.compile(r"^[A-Za-z0-9]{5,20}$"),
        "El carné de extranjería debe tener entre 5 y 20 caracteres alfanuméricos",
    ),
    DocumentType.PASAPORTE: (
        re.compile(r"^[A-Za-z0-9]{5,20}$"),
        "El pasaporte debe tener entre 5 y 20 caracteres alfanuméricos",
    ),
}

# Person columns a worker payload may write.
_PERSON_REQUIRED = ("nombre", "apellido_paterno", "tipo_documento", "numero_documento")
_PERSON_OPTIONAL = ("apellido_materno", "telefono", "correo", "direccion", "fecha_nacimiento")
_WORKER_REQUIRED = ("cargo", "especialidad", "nivel_experiencia", "tarifa_hora")
_WORKER_OPTIONAL = ("fecha_ingreso", "sueldo_mensual")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class LifecycleResult:
    trabajador: models.Worker
    credenciales: Optional[DeliveryOutcome] = None
    # Generated secret that was not emailed; the caller must hand it over.
    password_temporal: Optional[str] = None


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _enum_value(value) -> str:
    return value.value if hasattr(value, "value") else str(value)


def validate_phone(telefono: Optional[str]) -> None:
    if telefono is not None and not _PHONE_RE.match(telefono):
        raise ValidationError("El teléfono debe tener 9 dígitos")


def validate_document(tipo_documento, numero_documento: str) -> None:
    try:
        tipo = DocumentType(_enum_value(tipo_documento))
    except ValueError:
        raise ValidationError("Tipo de documento no permitido")
    pattern, message = _DOCUMENT_RULES[tipo]
    if not pattern.match(numero_documento or ""):
        raise ValidationError(message)


def age_on(birth_date: date, today: Optional[date] = None) -> int:
    today = today or date.today()
    years = today.year - birth_date.year
    if (today.month, today.day) < (birth_date.month, birth_date.day):
        years -= 1
    return years


def validate_adult(birth_date: Optional[date], today: Optional[date] = None) -> None:
    if birth_date is None:
        return
    if age_on(birth_date, today) < MIN_AGE_YEARS:
        raise ValidationError(f"El trabajador debe ser mayor de {MIN_AGE_YEARS} años")


def get_person_by_document(db: Session, numero_documento: str) -> Optional[account_models.Person]:
    return (
        db.query(account_models.Person)
        .filter(account_models.Person.numero_documento == numero_documento)
        .first()
    )


def ensure_document_available(
    db: Session,
    numero_documento: str,
    exclude_person_id: Optional[str] = None,
) -> None:
    existing = get_person_by_document(db, numero_documento)
    if existing and existing.id != exclude_person_id:
        raise ConflictError("Ya existe una persona registrada con este documento")


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


def generate_employee_code(db: Session) -> str:
    """Next code after the highest numeric suffix in use (EMP-0001 first)."""
    highest = 0
    for (code,) in db.query(models.Worker.codigo_empleado).all():
        highest = max(highest, parse_employee_code(code))
    return format_employee_code(highest + 1)


def get_worker_or_404(db: Session, worker_id: str) -> models.Worker:
    worker = db.query(models.Worker).filter(models.Worker.id == worker_id).first()
    if not worker:
        raise NotFoundError("Trabajador no encontrado")
    return worker


def list_workers(
    db: Session,
    *,
    activo: Optional[bool] = None,
    eliminado: Optional[bool] = False,
    cargo: Optional[str] = None,
    search: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
) -> List[models.Worker]:
    """
    Workers ordered with the soft-deleted last, then active first, then by
    name. Soft-deleted workers are hidden unless `eliminado` is True or None.
    """
    Person = account_models.Person
    query = db.query(models.Worker).join(Person, models.Worker.persona_id == Person.id)

    if eliminado is not None:
        query = query.filter(models.Worker.eliminado.is_(eliminado))
    if activo is not None:
        query = query.filter(models.Worker.activo.is_(activo))
    if cargo:
        query = query.filter(models.Worker.cargo == cargo)

    term = _clean(search)
    if term:
        like = f"%{term}%"
        query = query.filter(
            or_(
                models.Worker.codigo_empleado.ilike(like),
                models.Worker.especialidad.ilike(like),
                Person.nombre.ilike(like),
                Person.apellido_paterno.ilike(like),
                Person.apellido_materno.ilike(like),
                Person.numero_documento.ilike(like),
            )
        )

    return (
        query.order_by(
            models.Worker.eliminado.asc(),
            models.Worker.activo.desc(),
            Person.nombre.asc(),
        )
        .offset(max(skip, 0))
        .limit(max(1, min(limit, 500)))
        .all()
    )


# ---------------------------------------------------------------------------
# Lifecycle manager
# ---------------------------------------------------------------------------


class WorkerLifecycleManager:
    """
    Creates and updates workers.

    Collaborators are injected so tests can swap the role table, the
    mailer or the audit sink; defaults are built on the same session.
    """

    def __init__(
        self,
        db: Session,
        *,
        resolver: Optional[RoleResolver] = None,
        issuer: Optional[CredentialIssuer] = None,
        mailer: Optional[Mailer] = None,
        audit: Optional[AuditLogger] = None,
    ) -> None:
        self.db = db
        self.resolver = resolver or RoleResolver(db)
        self.issuer = issuer or CredentialIssuer()
        self.provisioner = AccountProvisioner(db, self.issuer)
        self.mailer = mailer or Mailer(db)
        self.audit = audit or AuditLogger(db)

    # -- preconditions ------------------------------------------------------

    def _check_account_request(
        self,
        nombre_usuario: Optional[str],
        password: Optional[str],
        correo: Optional[str],
    ) -> str:
        if not _clean(nombre_usuario) or not password or not _clean(correo):
            raise ValidationError(
                "Debes proporcionar nombre de usuario, contraseña y correo para crear credenciales"
            )
        _validate_new_password(password)
        return self.provisioner.ensure_login_available(nombre_usuario)

    def _deliver(self, account, issued, actor_id: str) -> DeliveryOutcome:
        return deliver_credentials(
            self.db,
            account,
            issued.plaintext_temporary,
            actor_id=actor_id,
            mailer=self.mailer,
            audit=self.audit,
        )

    # -- commands -----------------------------------------------------------

    def create_worker(self, payload: schemas.WorkerCreate, actor_id: str) -> LifecycleResult:
        numero = payload.numero_documento.strip()
        telefono = _clean(payload.telefono)
        correo = _clean(payload.correo)

        validate_document(payload.tipo_documento, numero)
        validate_phone(telefono)
        validate_adult(payload.fecha_nacimiento)
        ensure_document_available(self.db, numero)

        login = None
        if payload.crear_usuario:
            login = self._check_account_request(payload.nombre_usuario, payload.password, correo)

        def _create(session: Session):
            person = account_models.Person(
                nombre=payload.nombre.strip(),
                apellido_paterno=payload.apellido_paterno.strip(),
                apellido_materno=_clean(payload.apellido_materno),
                tipo_documento=_enum_value(payload.tipo_documento),
                numero_documento=numero,
                telefono=telefono,
                correo=correo,
                direccion=_clean(payload.direccion),
                fecha_nacimiento=payload.fecha_nacimiento,
            )
            session.add(person)
            session.flush()

            worker = models.Worker(
                persona_id=person.id,
                codigo_empleado=generate_employee_code(session),
                cargo=payload.cargo.strip(),
                especialidad=payload.especialidad.strip(),
                nivel_experiencia=payload.nivel_experiencia.strip(),
                tarifa_hora=payload.tarifa_hora if payload.tarifa_hora is not None else 0,
                fecha_ingreso=payload.fecha_ingreso,
                sueldo_mensual=payload.sueldo_mensual,
                activo=True,
                eliminado=False,
            )
            worker.persona = person
            session.add(worker)
            session.flush()

            issued = None
            if payload.crear_usuario:
                rol_id = self.resolver.resolve(worker.cargo, payload.rol_usuario)
                issued = self.issuer.issue(explicit_password=payload.password)
                self.provisioner.create(
                    worker,
                    login,
                    rol_id,
                    issued,
                    enviar_correo=payload.enviar_correo,
                )
            return worker, issued

        worker, issued = run_in_transaction(self.db, _create)

        self.audit.record(
            actor_id=actor_id,
            action="CREATE_TRABAJADOR",
            description=(
                f"Trabajador creado: {worker.codigo_empleado} - "
                f"{payload.nombre.strip()} {payload.apellido_paterno.strip()}"
            ),
            table="trabajador",
            entity_id=worker.id,
        )

        outcome = None
        if issued is not None and payload.enviar_correo:
            outcome = self._deliver(worker.usuario, issued, actor_id)
        return LifecycleResult(trabajador=worker, credenciales=outcome)

    def update_worker(
        self,
        worker_id: str,
        payload: schemas.WorkerUpdate,
        actor_id: str,
    ) -> LifecycleResult:
        worker = get_worker_or_404(self.db, worker_id)
        person = worker.persona
        account = worker.usuario
        changes = payload.model_dump(exclude_unset=True)

        # Person preconditions on the merged values.
        tipo = changes.get("tipo_documento") or person.tipo_documento
        numero = (_clean(changes.get("numero_documento")) or person.numero_documento)
        if "tipo_documento" in changes or "numero_documento" in changes:
            validate_document(tipo, numero)
        if numero != person.numero_documento:
            ensure_document_available(self.db, numero, exclude_person_id=person.id)
        if "telefono" in changes:
            validate_phone(_clean(changes["telefono"]))
        if "fecha_nacimiento" in changes:
            validate_adult(changes["fecha_nacimiento"])
        correo = _clean(changes["correo"]) if "correo" in changes else person.correo

        # Account preconditions.
        new_login = _clean(changes.get("nombre_usuario"))
        new_password = changes.get("password") or None
        preferred_role = _clean(changes.get("rol_usuario"))
        provision = bool(changes.get("crear_usuario")) and account is None
        login = None
        if provision:
            login = self._check_account_request(new_login, new_password, correo)
        elif account is not None:
            touches_account = bool(new_login or new_password or preferred_role)
            if touches_account and (worker.eliminado or not account.estatus):
                raise StateError("El trabajador fue dado de baja. Restáuralo antes de cambiar sus credenciales.")
            if (new_login or new_password) and not account.estado:
                raise StateError(
                    "La cuenta está bloqueada. Actívala antes de cambiar sus credenciales."
                )
            if new_login and normalise_login(new_login) != account.nombre_usuario:
                login = self.provisioner.ensure_login_available(
                    new_login, exclude_account_id=account.id
                )
            if new_password:
                _validate_new_password(new_password)

        def _update(session: Session):
            for field in _PERSON_REQUIRED:
                value = changes.get(field)
                if value is None:
                    continue
                if field == "tipo_documento":
                    value = _enum_value(value)
                elif isinstance(value, str):
                    value = value.strip()
                setattr(person, field, value)
            for field in _PERSON_OPTIONAL:
                if field in changes:
                    value = changes[field]
                    setattr(person, field, _clean(value) if isinstance(value, str) else value)
            session.add(person)

            for field in _WORKER_REQUIRED:
                value = changes.get(field)
                if value is None:
                    continue
                setattr(worker, field, value.strip() if isinstance(value, str) else value)
            for field in _WORKER_OPTIONAL:
                if field in changes:
                    setattr(worker, field, changes[field])
            session.add(worker)
            session.flush()

            issued = None
            if provision:
                rol_id = self.resolver.resolve(worker.cargo, preferred_role)
                issued = self.issuer.issue(explicit_password=new_password)
                self.provisioner.create(
                    worker,
                    login,
                    rol_id,
                    issued,
                    estado=worker.activo,
                    enviar_correo=payload.enviar_correo,
                )
            elif account is not None:
                if login:
                    self.provisioner.update_login(account, login)
                if preferred_role or "cargo" in changes:
                    account.rol_id = self.resolver.resolve(worker.cargo, preferred_role)
                if login or new_password:
                    issued = self.issuer.issue(explicit_password=new_password)
                    self.issuer.apply(account, issued)
                    account.envio_credenciales_pendiente = payload.enviar_correo
                session.add(account)
                session.flush()
            return issued

        issued = run_in_transaction(self.db, _update)

        self.audit.record(
            actor_id=actor_id,
            action="UPDATE_TRABAJADOR",
            description=f"Trabajador actualizado: {worker.codigo_empleado}",
            table="trabajador",
            entity_id=worker.id,
        )

        outcome = None
        password_temporal = None
        if issued is not None and payload.enviar_correo:
            outcome = self._deliver(worker.usuario, issued, actor_id)
        elif issued is not None and not new_password:
            password_temporal = issued.plaintext_temporary
        return LifecycleResult(
            trabajador=worker,
            credenciales=outcome,
            password_temporal=password_temporal,
        )


# ---------------------------------------------------------------------------
# Status transitions
# ---------------------------------------------------------------------------


class StatusTransitionCoordinator:
    """
    ACTIVE <-> INACTIVE via toggle_status, either -> DELETED via
    mark_deleted, DELETED -> ACTIVE/INACTIVE via restore.

    The only place that cascades a worker transition onto its account,
    and an account transition back onto its worker.
    """

    def __init__(
        self,
        db: Session,
        *,
        audit: Optional[AuditLogger] = None,
        clock=_utcnow,
    ) -> None:
        self.db = db
        self.audit = audit or AuditLogger(db)
        self._clock = clock

    def _block(self, account, motivo: str) -> None:
        account.estado = False
        account.bloqueado_en = self._clock()
        account.motivo_bloqueo = motivo
        account.envio_credenciales_pendiente = False

    @staticmethod
    def _unblock(account) -> None:
        account.estado = True
        account.bloqueado_en = None
        account.motivo_bloqueo = None

    def toggle_status(
        self,
        worker_id: str,
        *,
        desired_active: Optional[bool] = None,
        reason: Optional[str] = None,
        actor_id: str,
    ) -> models.Worker:
        worker = get_worker_or_404(self.db, worker_id)
        if worker.eliminado:
            raise StateError(
                "No puedes activar o desactivar un trabajador en baja lógica. "
                "Restaura primero el registro."
            )

        activo = (not worker.activo) if desired_active is None else bool(desired_active)
        motivo = _clean(reason) or DEFAULT_BLOCK_REASON

        def _apply(session: Session) -> models.Worker:
            worker.activo = activo
            account = worker.usuario
            if account is not None:
                if activo:
                    self._unblock(account)
                else:
                    self._block(account, motivo)
                session.add(account)
            session.add(worker)
            session.flush()
            return worker

        run_in_transaction(self.db, _apply)

        description = f"Trabajador {'activado' if activo else 'desactivado'}: {worker.codigo_empleado}"
        if not activo:
            description += f" - Motivo: {motivo}"
        self.audit.record(
            actor_id=actor_id,
            action="TOGGLE_STATUS_TRABAJADOR",
            description=description,
            table="trabajador",
            entity_id=worker.id,
        )
        return worker

    def mark_deleted(
        self,
        worker_id: str,
        *,
        reason: Optional[str] = None,
        actor_id: str,
    ) -> models.Worker:
        worker = get_worker_or_404(self.db, worker_id)
        if worker.eliminado:
            raise StateError("El trabajador ya fue dado de baja.")
        account = worker.usuario
        if account is not None and not account.estatus:
            raise ConflictError("El usuario asociado ya fue dado de baja.")

        motivo = _clean(reason) or DEFAULT_DELETE_REASON

        def _apply(session: Session) -> models.Worker:
            worker.activo = False
            worker.eliminado = True
            if account is not None:
                self._block(account, motivo)
                account.estatus = False
                # Drop the temporary secret; the placeholder stays as the
                # unusable permanent hash.
                apply_credential_state(account, PermanentCredential(hash=account.password_hash))
                account.requiere_cambio_password = False
                session.add(account)
            session.add(worker)
            session.flush()
            return worker

        run_in_transaction(self.db, _apply)

        self.audit.record(
            actor_id=actor_id,
            action="DELETE_TRABAJADOR",
            description=f"Trabajador dado de baja: {worker.codigo_empleado} - Motivo: {motivo}",
            table="trabajador",
            entity_id=worker.id,
        )
        return worker

    def restore(
        self,
        worker_id: str,
        *,
        desired_active: Optional[bool] = True,
        actor_id: str,
    ) -> models.Worker:
        worker = get_worker_or_404(self.db, worker_id)
        if not worker.eliminado:
            raise StateError("El trabajador no se encuentra dado de baja.")

        activo = True if desired_active is None else bool(desired_active)

        def _apply(session: Session) -> models.Worker:
            worker.eliminado = False
            worker.activo = activo
            account = worker.usuario
            if account is not None:
                account.estatus = True
                if activo:
                    self._unblock(account)
                else:
                    self._block(account, DEFAULT_BLOCK_REASON)
                session.add(account)
            session.add(worker)
            session.flush()
            return worker

        run_in_transaction(self.db, _apply)

        self.audit.record(
            actor_id=actor_id,
            action="RESTORE_TRABAJADOR",
            description=(
                f"Trabajador restaurado: {worker.codigo_empleado}"
                f"{'' if activo else ' (inactivo)'}"
            ),
            table="trabajador",
            entity_id=worker.id,
        )
        return worker

    # -- account-side commands ----------------------------------------------

    def set_account_state(
        self,
        account_id: str,
        *,
        estado: bool,
        reason: Optional[str] = None,
        actor_id: str,
    ) -> account_models.Account:
        """Block or unblock an account; its linked worker follows."""
        account = get_account_or_404(self.db, account_id)
        if not account.estatus:
            raise StateError("El usuario fue dado de baja")
        if account.estado == estado:
            return account
        worker = account.trabajador
        if worker is not None and worker.eliminado:
            raise StateError("El trabajador asociado está en baja lógica. Restáuralo primero.")

        motivo = _clean(reason) or DEFAULT_BLOCK_REASON

        def _apply(session: Session) -> account_models.Account:
            if estado:
                self._unblock(account)
            else:
                self._block(account, motivo)
            if worker is not None:
                worker.activo = estado
                session.add(worker)
            session.add(account)
            session.flush()
            return account

        run_in_transaction(self.db, _apply)

        self.audit.record(
            actor_id=actor_id,
            action="UNBLOCK_USUARIO" if estado else "BLOCK_USUARIO",
            description=f"Usuario {account.nombre_usuario} {'desbloqueado' if estado else 'bloqueado'}",
            table="usuario",
            entity_id=account.id,
        )
        return account

    def delete_account(self, account_id: str, *, actor_id: str) -> account_models.Account:
        """
        Soft-delete an account and detach it from its worker.

        The worker stays on the roster as INACTIVE without credentials, so a
        new account can be provisioned for it later.
        """
        account = get_account_or_404(self.db, account_id)
        if not account.estatus:
            raise StateError("El usuario ya fue dado de baja")
        worker = account.trabajador

        def _apply(session: Session) -> account_models.Account:
            self._block(account, DEFAULT_DELETE_REASON)
            account.estatus = False
            apply_credential_state(account, PermanentCredential(hash=account.password_hash))
            account.requiere_cambio_password = False
            session.add(account)
            if worker is not None:
                worker.usuario = None
                worker.activo = False
                session.add(worker)
            session.flush()
            return account

        run_in_transaction(self.db, _apply)

        self.audit.record(
            actor_id=actor_id,
            action="DELETE_USUARIO",
            description=f"Usuario {account.nombre_usuario} dado de baja lógica",
            table="usuario",
            entity_id=account.id,
        )
        return account

    def handle(
        self,
        worker_id: str,
        command: schemas.StatusCommand,
        actor_id: str,
    ) -> models.Worker:
        if command.action == schemas.StatusAction.TOGGLE_STATUS:
            return self.toggle_status(
                worker_id,
                desired_active=command.activo,
                reason=command.motivo,
                actor_id=actor_id,
            )
        if command.action == schemas.StatusAction.MARK_DELETED:
            return self.mark_deleted(worker_id, reason=command.motivo, actor_id=actor_id)
        return self.restore(worker_id, desired_active=command.activo, actor_id=actor_id)


# ---------------------------------------------------------------------------
# Credential re-send
# ---------------------------------------------------------------------------


def send_credentials(
    db: Session,
    worker_id: str,
    *,
    actor_id: Optional[str],
    extra_message: Optional[str] = None,
    subject: str = CREDENTIALS_SUBJECT,
    issuer: Optional[CredentialIssuer] = None,
    mailer: Optional[Mailer] = None,
    audit: Optional[AuditLogger] = None,
) -> LifecycleResult:
    """
    Mint a fresh temporary credential for the worker's account and email it.

    Delivery failure is reported in the result, the new credential stays
    committed and the account stays flagged as pending.
    """
    worker = get_worker_or_404(db, worker_id)
    account = worker.usuario
    if account is None:
        raise StateError("El trabajador no tiene usuario asignado todavía")
    if not account.estatus:
        raise StateError("El usuario asociado al trabajador fue dado de baja")
    if not account.estado:
        raise StateError("La cuenta del trabajador está bloqueada")
    if not _clean(worker.persona.correo):
        raise ValidationError("No hay un correo registrado para enviar las credenciales")

    result = reset_credentials(
        db,
        account.id,
        send_email=True,
        expiry_hours=None,
        actor_id=actor_id,
        issuer=issuer,
        mailer=mailer,
        audit=audit,
        subject=subject,
        extra_message=_clean(extra_message),
    )
    return LifecycleResult(trabajador=worker, credenciales=result.credenciales)


def process_pending_credentials(
    db: Session,
    *,
    limit: Optional[int] = None,
    actor_id: Optional[str] = None,
    subject: Optional[str] = None,
    extra_message: Optional[str] = None,
    issuer: Optional[CredentialIssuer] = None,
    mailer: Optional[Mailer] = None,
    audit: Optional[AuditLogger] = None,
) -> Dict[str, int]:
    """Re-send credentials to accounts still flagged pending, oldest attempt first."""
    batch = max(1, min(limit or PENDING_BATCH_DEFAULT, PENDING_BATCH_MAX))
    Account = account_models.Account

    rows = (
        db.query(models.Worker.id)
        .join(Account, models.Worker.usuario_id == Account.id)
        .filter(
            Account.envio_credenciales_pendiente.is_(True),
            Account.estatus.is_(True),
            Account.estado.is_(True),
            models.Worker.eliminado.is_(False),
        )
        .order_by(
            Account.ultimo_envio_credenciales.asc().nullsfirst(),
            Account.created_at.asc(),
        )
        .limit(batch)
        .all()
    )
    worker_ids = [row[0] for row in rows]

    procesados = 0
    errores = 0
    for worker_id in worker_ids:
        try:
            result = send_credentials(
                db,
                worker_id,
                actor_id=actor_id,
                extra_message=extra_message,
                subject=subject or CREDENTIALS_SUBJECT,
                issuer=issuer,
                mailer=mailer,
                audit=audit,
            )
        except ServiceError as exc:
            errores += 1
            logger.warning(
                "Pending credential re-send rejected",
                extra={"worker_id": worker_id, "error": exc.message},
            )
            continue
        if result.credenciales is not None and result.credenciales.enviadas:
            procesados += 1
        else:
            errores += 1

    return {"encontrados": len(worker_ids), "procesados": procesados, "errores": errores}


# ---------------------------------------------------------------------------
# Command surface
# ---------------------------------------------------------------------------


def create_worker(db: Session, payload: schemas.WorkerCreate, actor_id: str, **deps) -> LifecycleResult:
    return WorkerLifecycleManager(db, **deps).create_worker(payload, actor_id)


def update_worker(
    db: Session,
    worker_id: str,
    payload: schemas.WorkerUpdate,
    actor_id: str,
    **deps,
) -> LifecycleResult:
    return WorkerLifecycleManager(db, **deps).update_worker(worker_id, payload, actor_id)


def toggle_status(
    db: Session,
    worker_id: str,
    *,
    actor_id: str,
    desired_active: Optional[bool] = None,
    reason: Optional[str] = None,
    audit: Optional[AuditLogger] = None,
) -> models.Worker:
    return StatusTransitionCoordinator(db, audit=audit).toggle_status(
        worker_id, desired_active=desired_active, reason=reason, actor_id=actor_id
    )


def mark_deleted(
    db: Session,
    worker_id: str,
    *,
    actor_id: str,
    reason: Optional[str] = None,
    audit: Optional[AuditLogger] = None,
) -> models.Worker:
    return StatusTransitionCoordinator(db, audit=audit).mark_deleted(
        worker_id, reason=reason, actor_id=actor_id
    )


def restore(
    db: Session,
    worker_id: str,
    *,
    actor_id: str,
    desired_active: Optional[bool] = True,
    audit: Optional[AuditLogger] = None,
) -> models.Worker:
    return StatusTransitionCoordinator(db, audit=audit).restore(
        worker_id, desired_active=desired_active, actor_id=actor_id
    )


def set_account_state(
    db: Session,
    account_id: str,
    *,
    estado: bool,
    actor_id: str,
    reason: Optional[str] = None,
    audit: Optional[AuditLogger] = None,
) -> account_models.Account:
    return StatusTransitionCoordinator(db, audit=audit).set_account_state(
        account_id, estado=estado, reason=reason, actor_id=actor_id
    )


def delete_account(
    db: Session,
    account_id: str,
    *,
    actor_id: str,
    audit: Optional[AuditLogger] = None,
) -> account_models.Account:
    return StatusTransitionCoordinator(db, audit=audit).delete_account(account_id, actor_id=actor_id)

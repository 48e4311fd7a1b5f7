# backend/tallerdb/apps/accounts/models.py

from __future__ import annotations

import enum
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from tallerdb.database import Base
from tallerdb.utils.identifiers import generate_uuid7


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# ENUMS
# ---------------------------------------------------------------------------


class DocumentType(str, enum.Enum):
    DNI = "DNI"
    RUC = "RUC"
    CE = "CE"
    PASAPORTE = "PASAPORTE"


# ---------------------------------------------------------------------------
# PERSON
# ---------------------------------------------------------------------------


class Person(Base):
    """
    Identity and contact data.

    Shared by a Worker and its Account (both reference the same row), so
    changing an email here is seen by the credential delivery of the account.
    """

    __tablename__ = "personas"

    id = Column(String(36), primary_key=True, default=generate_uuid7)

    nombre = Column(String(128), nullable=False)
    apellido_paterno = Column(String(128), nullable=False)
    apellido_materno = Column(String(128), nullable=True)

    tipo_documento = Column(String(16), nullable=False, default=DocumentType.DNI.value)
    numero_documento = Column(String(20), nullable=False, unique=True, index=True)

    telefono = Column(String(20), nullable=True)
    correo = Column(String(255), nullable=True, index=True)
    direccion = Column(Text, nullable=True)
    fecha_nacimiento = Column(Date, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )

    @property
    def nombre_completo(self) -> str:
        parts = [self.nombre, self.apellido_paterno, self.apellido_materno]
        return " ".join(p.strip() for p in parts if p and p.strip())

    def __repr__(self) -> str:
        return f"<Person {self.tipo_documento}:{self.numero_documento}>"


# ---------------------------------------------------------------------------
# ROLE
# ---------------------------------------------------------------------------


class Role(Base):
    """Named access tier ("Mecánico", "Recepcionista", "Administrador", ...)."""

    __tablename__ = "roles"

    id = Column(String(36), primary_key=True, default=generate_uuid7)
    nombre = Column(String(64), nullable=False, unique=True, index=True)
    descripcion = Column(Text, nullable=True)
    activo = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    accounts = relationship("Account", back_populates="rol", lazy="selectin")

    def __repr__(self) -> str:
        return f"<Role {self.nombre}>"


# ---------------------------------------------------------------------------
# ACCOUNT
# ---------------------------------------------------------------------------


class Account(Base):
    """
    Login credentials of a staff member.

    Flags:
    - estado:  currently allowed to authenticate (False = blocked).
    - estatus: not soft-deleted (False = logical deletion).

    Secrets:
    - password_hash is never empty. While a temporary credential is
      outstanding it holds the hash of an unknown placeholder secret.
    - password_temporal_hash / password_temporal_expira describe the
      outstanding temporary credential. Read and write them through
      `credential_state` / `apply_credential_state` in
      `tallerdb.apps.accounts.credentials`.

    The link to the worker lives on `trabajadores.usuario_id`; this side is
    navigational only and never cascades deletes.
    """

    __tablename__ = "usuarios"
    __table_args__ = (
        Index("idx_usuarios_estado_estatus", "estado", "estatus"),
        Index("idx_usuarios_envio_pendiente", "envio_credenciales_pendiente", "ultimo_envio_credenciales"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid7)

    persona_id = Column(
        String(36),
        ForeignKey("personas.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    rol_id = Column(
        String(36),
        ForeignKey("roles.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    nombre_usuario = Column(String(64), nullable=False, unique=True, index=True)

    password_hash = Column(String(255), nullable=False)
    password_temporal_hash = Column(String(255), nullable=True)
    password_temporal_expira = Column(DateTime(timezone=True), nullable=True)
    requiere_cambio_password = Column(Boolean, nullable=False, default=False)
    ultimo_cambio_password = Column(DateTime(timezone=True), nullable=True)

    estado = Column(Boolean, nullable=False, default=True, index=True)
    estatus = Column(Boolean, nullable=False, default=True, index=True)
    bloqueado_en = Column(DateTime(timezone=True), nullable=True)
    motivo_bloqueo = Column(Text, nullable=True)

    # Credential delivery bookkeeping
    envio_credenciales_pendiente = Column(Boolean, nullable=False, default=False)
    ultimo_envio_credenciales = Column(DateTime(timezone=True), nullable=True)
    ultimo_error_envio = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )

    persona = relationship("Person", lazy="joined")
    rol = relationship("Role", back_populates="accounts", lazy="joined")
    trabajador = relationship(
        "Worker",
        back_populates="usuario",
        uselist=False,
        passive_deletes="all",
    )

    @property
    def credential_state(self):
        from .credentials import credential_state_of

        return credential_state_of(self)

    def __repr__(self) -> str:
        return f"<Account {self.nombre_usuario} estado={self.estado} estatus={self.estatus}>"

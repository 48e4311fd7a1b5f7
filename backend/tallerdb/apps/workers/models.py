# backend/tallerdb/apps/workers/models.py

from __future__ import annotations

import enum
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
)
from sqlalchemy.orm import relationship

from tallerdb.database import Base
from tallerdb.utils.identifiers import generate_uuid7


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WorkerState(str, enum.Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    DELETED = "DELETED"


class Worker(Base):
    """
    Employee record (trabajador), distinct from its login credentials.

    - codigo_empleado is sequential and human readable (EMP-0001).
    - activo / eliminado drive the ACTIVE / INACTIVE / DELETED states;
      a soft-deleted worker is never active.
    - usuario_id is the optional one-to-one link to an Account. It is a weak
      reference: clearing it deletes nothing, and only the account
      provisioner / status coordinator may change it.
    - Rows are never physically deleted; orders and tasks keep pointing here.
    """

    __tablename__ = "trabajadores"
    __table_args__ = (
        CheckConstraint("NOT (eliminado AND activo)", name="ck_trabajadores_eliminado_inactivo"),
        Index("idx_trabajadores_estado", "activo", "eliminado"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid7)

    persona_id = Column(
        String(36),
        ForeignKey("personas.id", ondelete="RESTRICT"),
        nullable=False,
        unique=True,
        index=True,
    )
    usuario_id = Column(
        String(36),
        ForeignKey("usuarios.id", ondelete="SET NULL"),
        nullable=True,
        unique=True,
        index=True,
    )

    codigo_empleado = Column(String(16), nullable=False, unique=True, index=True)
    cargo = Column(String(128), nullable=False)
    especialidad = Column(String(128), nullable=False)
    nivel_experiencia = Column(String(64), nullable=False)
    tarifa_hora = Column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    fecha_ingreso = Column(Date, nullable=True)
    sueldo_mensual = Column(Numeric(10, 2), nullable=True)

    activo = Column(Boolean, nullable=False, default=True, index=True)
    eliminado = Column(Boolean, nullable=False, default=False, index=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )

    persona = relationship("Person", lazy="joined")
    usuario = relationship(
        "Account",
        back_populates="trabajador",
        lazy="joined",
    )

    @property
    def state(self) -> WorkerState:
        if self.eliminado:
            return WorkerState.DELETED
        return WorkerState.ACTIVE if self.activo else WorkerState.INACTIVE

    def __repr__(self) -> str:
        return f"<Worker {self.codigo_empleado} {self.state.value}>"

# backend/tallerdb/apps/workers/schemas.py

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from tallerdb.apps.accounts.models import DocumentType
from tallerdb.apps.accounts.schemas import (
    AccountRead,
    CredentialDeliveryRead,
    PersonRead,
)

from .models import WorkerState


# ---------------------------------------------------------------------------
# COMMANDS
# ---------------------------------------------------------------------------


class WorkerCreate(BaseModel):
    # Person
    nombre: str = Field(min_length=1, max_length=128)
    apellido_paterno: str = Field(min_length=1, max_length=128)
    apellido_materno: Optional[str] = Field(default=None, max_length=128)
    tipo_documento: DocumentType
    numero_documento: str = Field(min_length=5, max_length=20)
    fecha_nacimiento: Optional[date] = None
    telefono: Optional[str] = None
    correo: Optional[EmailStr] = None
    direccion: Optional[str] = None

    # Worker
    cargo: str = Field(min_length=1, max_length=128)
    especialidad: str = Field(min_length=1, max_length=128)
    nivel_experiencia: str = Field(min_length=1, max_length=64)
    tarifa_hora: Optional[Decimal] = Field(default=None, ge=0)
    fecha_ingreso: Optional[date] = None
    sueldo_mensual: Optional[Decimal] = Field(default=None, ge=0)

    # Account
    crear_usuario: bool = False
    nombre_usuario: Optional[str] = None
    password: Optional[str] = None
    rol_usuario: Optional[str] = None
    enviar_correo: bool = True


class WorkerUpdate(BaseModel):
    """
    Partial update; fields left out keep their stored value.

    activo / eliminado are not editable here, status changes go through
    PATCH /trabajadores/{id}/estado.
    """

    nombre: Optional[str] = Field(default=None, min_length=1, max_length=128)
    apellido_paterno: Optional[str] = Field(default=None, min_length=1, max_length=128)
    apellido_materno: Optional[str] = Field(default=None, max_length=128)
    tipo_documento: Optional[DocumentType] = None
    numero_documento: Optional[str] = Field(default=None, min_length=5, max_length=20)
    fecha_nacimiento: Optional[date] = None
    telefono: Optional[str] = None
    correo: Optional[EmailStr] = None
    direccion: Optional[str] = None

    cargo: Optional[str] = Field(default=None, min_length=1, max_length=128)
    especialidad: Optional[str] = Field(default=None, min_length=1, max_length=128)
    nivel_experiencia: Optional[str] = Field(default=None, min_length=1, max_length=64)
    tarifa_hora: Optional[Decimal] = Field(default=None, ge=0)
    fecha_ingreso: Optional[date] = None
    sueldo_mensual: Optional[Decimal] = Field(default=None, ge=0)

    crear_usuario: Optional[bool] = None
    nombre_usuario: Optional[str] = None
    password: Optional[str] = None
    rol_usuario: Optional[str] = None
    enviar_correo: bool = True


class StatusAction(str, Enum):
    TOGGLE_STATUS = "toggle_status"
    MARK_DELETED = "mark_deleted"
    RESTORE = "restore"


class StatusCommand(BaseModel):
    action: StatusAction
    activo: Optional[bool] = None
    motivo: Optional[str] = Field(default=None, max_length=500)


class SendCredentialsRequest(BaseModel):
    mensaje_adicional: Optional[str] = Field(default=None, max_length=500)


# ---------------------------------------------------------------------------
# READ MODELS
# ---------------------------------------------------------------------------


class WorkerRead(BaseModel):
    id: str
    codigo_empleado: str
    cargo: str
    especialidad: str
    nivel_experiencia: str
    tarifa_hora: Decimal
    fecha_ingreso: Optional[date] = None
    sueldo_mensual: Optional[Decimal] = None
    activo: bool
    eliminado: bool
    state: WorkerState
    persona: PersonRead
    usuario: Optional[AccountRead] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

    @classmethod
    def from_worker(cls, worker) -> "WorkerRead":
        data = cls.model_validate(worker)
        if worker.usuario is not None:
            data.usuario = AccountRead.from_account(worker.usuario)
        return data


class LifecycleResultRead(BaseModel):
    trabajador: WorkerRead
    credenciales: Optional[CredentialDeliveryRead] = None
    password_temporal: Optional[str] = None


class PendingCredentialsRunRead(BaseModel):
    encontrados: int
    procesados: int
    errores: int

# backend/tallerdb/apps/accounts/schemas.py

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field

from .credentials import DEFAULT_EXPIRY_HOURS, MAX_EXPIRY_HOURS, MIN_EXPIRY_HOURS
from .models import DocumentType


# ---------------------------------------------------------------------------
# PERSON / ROLE
# ---------------------------------------------------------------------------


class PersonRead(BaseModel):
    id: str
    nombre: str
    apellido_paterno: str
    apellido_materno: Optional[str] = None
    tipo_documento: DocumentType
    numero_documento: str
    telefono: Optional[str] = None
    correo: Optional[str] = None
    direccion: Optional[str] = None
    fecha_nacimiento: Optional[date] = None

    class Config:
        from_attributes = True


class RoleRead(BaseModel):
    id: str
    nombre: str
    descripcion: Optional[str] = None
    activo: bool

    class Config:
        from_attributes = True


# ---------------------------------------------------------------------------
# ACCOUNT
# ---------------------------------------------------------------------------


class AccountRead(BaseModel):
    """Account as exposed to admins. Secrets and hashes are never included."""

    id: str
    nombre_usuario: str
    rol_id: str
    rol_nombre: Optional[str] = None
    estado: bool
    estatus: bool
    requiere_cambio_password: bool
    password_temporal_expira: Optional[datetime] = None
    bloqueado_en: Optional[datetime] = None
    motivo_bloqueo: Optional[str] = None
    envio_credenciales_pendiente: bool
    ultimo_envio_credenciales: Optional[datetime] = None
    ultimo_error_envio: Optional[str] = None

    class Config:
        from_attributes = True

    @classmethod
    def from_account(cls, account) -> "AccountRead":
        data = cls.model_validate(account)
        data.rol_nombre = account.rol.nombre if account.rol else None
        return data


class CredentialDeliveryRead(BaseModel):
    enviadas: bool
    error: Optional[str] = None
    correo: Optional[str] = None


class ResetCredentialsRequest(BaseModel):
    enviar_correo: bool = True
    password_expira_en_horas: int = Field(
        default=DEFAULT_EXPIRY_HOURS,
        ge=MIN_EXPIRY_HOURS,
        le=MAX_EXPIRY_HOURS,
    )
    asunto: Optional[str] = Field(default=None, max_length=200)
    mensaje_adicional: Optional[str] = Field(default=None, max_length=500)


class AccountStateRequest(BaseModel):
    estado: bool
    motivo: Optional[str] = Field(default=None, max_length=255)


class ResetCredentialsResponse(BaseModel):
    usuario: AccountRead
    # Only returned when the credential was not emailed.
    password_temporal: Optional[str] = None
    credenciales: Optional[CredentialDeliveryRead] = None


# ---------------------------------------------------------------------------
# AUTH
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    nombre_usuario: str = Field(min_length=1, max_length=64)
    password: str = Field(min_length=1)


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    requiere_cambio_password: bool
    usuario: AccountRead


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(min_length=1)
    new_password: str = Field(min_length=8)

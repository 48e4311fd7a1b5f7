# backend/tallerdb/apps/accounts/router_admin.py

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from tallerdb.database import get_db, get_read_db
from tallerdb.errors import ServiceError
from tallerdb.security import get_current_active_account
from tallerdb.utils.http import http_error
from tallerdb.apps.workers import services as worker_services

from . import models, schemas, services

router = APIRouter(prefix="/usuarios", tags=["usuarios"])


@router.get("/roles", response_model=List[schemas.RoleRead])
def list_roles(
    db: Session = Depends(get_read_db),
    current_account: models.Account = Depends(get_current_active_account),
):
    return db.query(models.Role).order_by(models.Role.nombre.asc()).all()


@router.get("/{account_id}", response_model=schemas.AccountRead)
def get_account(
    account_id: str,
    db: Session = Depends(get_read_db),
    current_account: models.Account = Depends(get_current_active_account),
):
    try:
        account = services.get_account_or_404(db, account_id)
    except ServiceError as exc:
        raise http_error(exc)
    return schemas.AccountRead.from_account(account)


@router.post(
    "/{account_id}/reset-password",
    response_model=schemas.ResetCredentialsResponse,
    status_code=status.HTTP_200_OK,
)
def reset_password(
    account_id: str,
    payload: schemas.ResetCredentialsRequest,
    db: Session = Depends(get_db),
    current_account: models.Account = Depends(get_current_active_account),
):
    try:
        result = services.reset_credentials(
            db,
            account_id,
            send_email=payload.enviar_correo,
            expiry_hours=payload.password_expira_en_horas,
            actor_id=current_account.id,
            subject=payload.asunto or services.CREDENTIALS_SUBJECT,
            extra_message=payload.mensaje_adicional,
        )
    except ServiceError as exc:
        raise http_error(exc)

    delivered = result.credenciales is not None and result.credenciales.enviadas
    return schemas.ResetCredentialsResponse(
        usuario=schemas.AccountRead.from_account(result.account),
        password_temporal=None if delivered else result.password_temporal,
        credenciales=(
            schemas.CredentialDeliveryRead(**result.credenciales.as_dict())
            if result.credenciales is not None
            else None
        ),
    )


@router.patch("/{account_id}/estado", response_model=schemas.AccountRead)
def change_account_state(
    account_id: str,
    payload: schemas.AccountStateRequest,
    db: Session = Depends(get_db),
    current_account: models.Account = Depends(get_current_active_account),
):
    try:
        account = worker_services.set_account_state(
            db,
            account_id,
            estado=payload.estado,
            reason=payload.motivo,
            actor_id=current_account.id,
        )
    except ServiceError as exc:
        raise http_error(exc)
    return schemas.AccountRead.from_account(account)


@router.delete("/{account_id}", response_model=schemas.AccountRead)
def delete_account(
    account_id: str,
    db: Session = Depends(get_db),
    current_account: models.Account = Depends(get_current_active_account),
):
    try:
        account = worker_services.delete_account(db, account_id, actor_id=current_account.id)
    except ServiceError as exc:
        raise http_error(exc)
    return schemas.AccountRead.from_account(account)

# backend/tallerdb/apps/accounts/router_public.py

from __future__ import annotations

from datetime import timedelta

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from tallerdb.database import get_db
from tallerdb.errors import ServiceError
from tallerdb.security import (
    ACCESS_TOKEN_EXPIRE_MINUTES,
    create_access_token,
    get_current_account,
)
from tallerdb.utils.http import http_error

from . import models, schemas, services

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=schemas.Token)
def login(
    payload: schemas.LoginRequest,
    db: Session = Depends(get_db),
):
    """
    Exchange a login name and password for a bearer token.

    While a temporary credential is outstanding the token is still issued,
    with `requiere_cambio_password=True`; the client must then call
    /auth/change-password.
    """
    try:
        account = services.verify_credentials(db, payload.nombre_usuario, payload.password)
    except ServiceError as exc:
        raise http_error(exc)

    token = create_access_token(
        data={"sub": account.id, "rol": account.rol.nombre if account.rol else None},
        expires_delta=timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES),
    )
    return schemas.Token(
        access_token=token,
        expires_in=ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        requiere_cambio_password=bool(account.requiere_cambio_password),
        usuario=schemas.AccountRead.from_account(account),
    )


@router.post(
    "/change-password",
    response_model=schemas.AccountRead,
    status_code=status.HTTP_200_OK,
)
def change_password(
    payload: schemas.ChangePasswordRequest,
    db: Session = Depends(get_db),
    current_account: models.Account = Depends(get_current_account),
):
    # Blocked accounts are rejected by the service, so the plain
    # dependency is enough here.
    try:
        account = services.change_password(
            db,
            current_account.id,
            current_password=payload.current_password,
            new_password=payload.new_password,
            actor_id=current_account.id,
        )
    except ServiceError as exc:
        raise http_error(exc)
    return schemas.AccountRead.from_account(account)

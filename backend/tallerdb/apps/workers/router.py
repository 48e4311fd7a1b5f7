# backend/tallerdb/apps/workers/router.py

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from tallerdb.database import get_db, get_read_db
from tallerdb.errors import ServiceError
from tallerdb.security import get_current_active_account
from tallerdb.utils.http import http_error
from tallerdb.apps.accounts.models import Account
from tallerdb.apps.accounts.schemas import CredentialDeliveryRead

from . import schemas, services

router = APIRouter(prefix="/trabajadores", tags=["trabajadores"])


def _lifecycle_response(result: services.LifecycleResult) -> schemas.LifecycleResultRead:
    return schemas.LifecycleResultRead(
        trabajador=schemas.WorkerRead.from_worker(result.trabajador),
        credenciales=(
            CredentialDeliveryRead(**result.credenciales.as_dict())
            if result.credenciales is not None
            else None
        ),
        password_temporal=result.password_temporal,
    )


@router.get("/", response_model=List[schemas.WorkerRead])
def list_workers(
    activo: Optional[bool] = None,
    eliminado: Optional[bool] = False,
    cargo: Optional[str] = None,
    search: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_read_db),
    current_account: Account = Depends(get_current_active_account),
):
    workers = services.list_workers(
        db,
        activo=activo,
        eliminado=eliminado,
        cargo=cargo,
        search=search,
        skip=skip,
        limit=limit,
    )
    return [schemas.WorkerRead.from_worker(w) for w in workers]


@router.get("/{worker_id}", response_model=schemas.WorkerRead)
def get_worker(
    worker_id: str,
    db: Session = Depends(get_read_db),
    current_account: Account = Depends(get_current_active_account),
):
    try:
        worker = services.get_worker_or_404(db, worker_id)
    except ServiceError as exc:
        raise http_error(exc)
    return schemas.WorkerRead.from_worker(worker)


@router.post(
    "/",
    response_model=schemas.LifecycleResultRead,
    status_code=status.HTTP_201_CREATED,
)
def create_worker(
    payload: schemas.WorkerCreate,
    db: Session = Depends(get_db),
    current_account: Account = Depends(get_current_active_account),
):
    try:
        result = services.create_worker(db, payload, current_account.id)
    except ServiceError as exc:
        raise http_error(exc)
    return _lifecycle_response(result)


@router.put("/{worker_id}", response_model=schemas.LifecycleResultRead)
def update_worker(
    worker_id: str,
    payload: schemas.WorkerUpdate,
    db: Session = Depends(get_db),
    current_account: Account = Depends(get_current_active_account),
):
    try:
        result = services.update_worker(db, worker_id, payload, current_account.id)
    except ServiceError as exc:
        raise http_error(exc)
    return _lifecycle_response(result)


@router.patch("/{worker_id}/estado", response_model=schemas.WorkerRead)
def change_worker_status(
    worker_id: str,
    payload: schemas.StatusCommand,
    db: Session = Depends(get_db),
    current_account: Account = Depends(get_current_active_account),
):
    try:
        worker = services.StatusTransitionCoordinator(db).handle(
            worker_id, payload, current_account.id
        )
    except ServiceError as exc:
        raise http_error(exc)
    return schemas.WorkerRead.from_worker(worker)


@router.post("/{worker_id}/credenciales", response_model=schemas.LifecycleResultRead)
def send_worker_credentials(
    worker_id: str,
    payload: Optional[schemas.SendCredentialsRequest] = None,
    db: Session = Depends(get_db),
    current_account: Account = Depends(get_current_active_account),
):
    payload = payload or schemas.SendCredentialsRequest()
    try:
        result = services.send_credentials(
            db,
            worker_id,
            actor_id=current_account.id,
            extra_message=payload.mensaje_adicional,
        )
    except ServiceError as exc:
        raise http_error(exc)
    return _lifecycle_response(result)

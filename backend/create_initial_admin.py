# backend/create_initial_admin.py

import os

from tallerdb.database import SessionLocal
from tallerdb.migrations import upgrade_database
from tallerdb.apps.accounts import services as account_services
from tallerdb.apps.workers import schemas as worker_schemas
from tallerdb.apps.workers import services as worker_services


def main() -> None:
    upgrade_database()
    print("[OK] Database schema at head")

    db = SessionLocal()
    try:
        roles = account_services.ensure_default_roles(db)
        db.commit()
        print(f"[OK] Role catalog: {', '.join(r.nombre for r in roles)}")

        login = os.getenv("ADMIN_USERNAME", "admin")
        password = os.getenv("ADMIN_PASSWORD", "ChangeMe123!")

        existing = account_services.get_account_by_login(db, login)
        if existing:
            print(f"[INFO] Account already exists: id={existing.id}, login={existing.nombre_usuario}")
            return

        payload = worker_schemas.WorkerCreate(
            nombre=os.getenv("ADMIN_NOMBRE", "Administrador"),
            apellido_paterno=os.getenv("ADMIN_APELLIDO", "General"),
            tipo_documento="DNI",
            numero_documento=os.getenv("ADMIN_DNI", "00000001"),
            correo=os.getenv("ADMIN_EMAIL", "admin@tallermecanico.pe"),
            cargo="Administrador",
            especialidad="Gestión",
            nivel_experiencia="Senior",
            crear_usuario=True,
            nombre_usuario=login,
            password=password,
            rol_usuario="Administrador",
            enviar_correo=os.getenv("ADMIN_SEND_EMAIL", "false").lower() in {"1", "true", "yes"},
        )
        # No actor exists yet; the audit events carry a null actor.
        result = worker_services.create_worker(db, payload, actor_id=None)
        worker = result.trabajador
        account = worker.usuario

        print("[OK] Created admin worker and account:")
        print(f"  worker:  {worker.codigo_empleado}")
        print(f"  account: {account.id}")
        print(f"  login:   {account.nombre_usuario}")
        print(f"  temporary password: {password} (change required on first login)")
    finally:
        db.close()


if __name__ == "__main__":
    main()

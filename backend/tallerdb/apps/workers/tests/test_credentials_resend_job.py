from __future__ import annotations

from tallerdb.jobs import credentials_resend
from tallerdb.apps.workers import services as worker_services


def test_job_runs_on_its_own_session(db_session, seeded_roles, worker_payload, actor_id, monkeypatch):
    worker_services.create_worker(
        db_session,
        worker_payload(crear_usuario=True, nombre_usuario="job.user", password="Temporal123"),
        actor_id,
    )
    monkeypatch.setattr(credentials_resend, "WriteSessionLocal", lambda: db_session)
    monkeypatch.setenv("CREDENTIALS_RESEND_LIMIT", "not-a-number")
    monkeypatch.setenv("SYSTEM_ACCOUNT_ID", "system")

    summary = credentials_resend.run()

    # No provider is configured, so the retry is counted as an error.
    assert summary == {"encontrados": 1, "procesados": 0, "errores": 1}

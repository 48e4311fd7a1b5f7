from __future__ import annotations

from sqlalchemy import create_engine, inspect
from sqlalchemy.orm import Session

from tallerdb.database import Base
from tallerdb.migrations import upgrade_database
from tallerdb.apps.accounts import services as account_services


def _migrated_engine():
    engine = create_engine("sqlite+pysqlite:///:memory:")
    with engine.connect() as connection:
        upgrade_database(connection=connection)
    return engine


def test_initial_revision_matches_models():
    engine = _migrated_engine()
    inspector = inspect(engine)

    expected = {name for name in Base.metadata.tables}
    assert expected <= set(inspector.get_table_names())
    for name, table in Base.metadata.tables.items():
        columns = {col["name"] for col in inspector.get_columns(name)}
        assert columns == {col.name for col in table.columns}, name

    unique_logins = [
        ix for ix in inspector.get_indexes("usuarios") if ix["column_names"] == ["nombre_usuario"]
    ]
    assert unique_logins and unique_logins[0]["unique"]
    engine.dispose()


def test_migrated_schema_accepts_role_seeding():
    engine = _migrated_engine()
    with Session(engine) as session:
        roles = account_services.ensure_default_roles(session)
        session.commit()
        assert roles
    engine.dispose()

"""initial staff identity tables

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-17 09:00:00.000000
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001_initial"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


EMAIL_STATUSES = ("QUEUED", "SENT", "FAILED", "SKIPPED_NO_PROVIDER")


def upgrade() -> None:
    op.create_table(
        "personas",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("nombre", sa.String(length=128), nullable=False),
        sa.Column("apellido_paterno", sa.String(length=128), nullable=False),
        sa.Column("apellido_materno", sa.String(length=128), nullable=True),
        sa.Column("tipo_documento", sa.String(length=16), nullable=False),
        sa.Column("numero_documento", sa.String(length=20), nullable=False),
        sa.Column("telefono", sa.String(length=20), nullable=True),
        sa.Column("correo", sa.String(length=255), nullable=True),
        sa.Column("direccion", sa.Text(), nullable=True),
        sa.Column("fecha_nacimiento", sa.Date(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_personas_numero_documento", "personas", ["numero_documento"], unique=True)
    op.create_index("ix_personas_correo", "personas", ["correo"])

    op.create_table(
        "roles",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("nombre", sa.String(length=64), nullable=False),
        sa.Column("descripcion", sa.Text(), nullable=True),
        sa.Column("activo", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_roles_nombre", "roles", ["nombre"], unique=True)

    op.create_table(
        "usuarios",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "persona_id",
            sa.String(length=36),
            sa.ForeignKey("personas.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column(
            "rol_id",
            sa.String(length=36),
            sa.ForeignKey("roles.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("nombre_usuario", sa.String(length=64), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("password_temporal_hash", sa.String(length=255), nullable=True),
        sa.Column("password_temporal_expira", sa.DateTime(timezone=True), nullable=True),
        sa.Column("requiere_cambio_password", sa.Boolean(), nullable=False),
        sa.Column("ultimo_cambio_password", sa.DateTime(timezone=True), nullable=True),
        sa.Column("estado", sa.Boolean(), nullable=False),
        sa.Column("estatus", sa.Boolean(), nullable=False),
        sa.Column("bloqueado_en", sa.DateTime(timezone=True), nullable=True),
        sa.Column("motivo_bloqueo", sa.Text(), nullable=True),
        sa.Column("envio_credenciales_pendiente", sa.Boolean(), nullable=False),
        sa.Column("ultimo_envio_credenciales", sa.DateTime(timezone=True), nullable=True),
        sa.Column("ultimo_error_envio", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_usuarios_persona_id", "usuarios", ["persona_id"])
    op.create_index("ix_usuarios_rol_id", "usuarios", ["rol_id"])
    op.create_index("ix_usuarios_nombre_usuario", "usuarios", ["nombre_usuario"], unique=True)
    op.create_index("ix_usuarios_estado", "usuarios", ["estado"])
    op.create_index("ix_usuarios_estatus", "usuarios", ["estatus"])
    op.create_index("idx_usuarios_estado_estatus", "usuarios", ["estado", "estatus"])
    op.create_index(
        "idx_usuarios_envio_pendiente",
        "usuarios",
        ["envio_credenciales_pendiente", "ultimo_envio_credenciales"],
    )

    op.create_table(
        "trabajadores",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "persona_id",
            sa.String(length=36),
            sa.ForeignKey("personas.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column(
            "usuario_id",
            sa.String(length=36),
            sa.ForeignKey("usuarios.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("codigo_empleado", sa.String(length=16), nullable=False),
        sa.Column("cargo", sa.String(length=128), nullable=False),
        sa.Column("especialidad", sa.String(length=128), nullable=False),
        sa.Column("nivel_experiencia", sa.String(length=64), nullable=False),
        sa.Column("tarifa_hora", sa.Numeric(10, 2), nullable=False),
        sa.Column("fecha_ingreso", sa.Date(), nullable=True),
        sa.Column("sueldo_mensual", sa.Numeric(10, 2), nullable=True),
        sa.Column("activo", sa.Boolean(), nullable=False),
        sa.Column("eliminado", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("NOT (eliminado AND activo)", name="ck_trabajadores_eliminado_inactivo"),
    )
    op.create_index("ix_trabajadores_persona_id", "trabajadores", ["persona_id"], unique=True)
    op.create_index("ix_trabajadores_usuario_id", "trabajadores", ["usuario_id"], unique=True)
    op.create_index("ix_trabajadores_codigo_empleado", "trabajadores", ["codigo_empleado"], unique=True)
    op.create_index("ix_trabajadores_activo", "trabajadores", ["activo"])
    op.create_index("ix_trabajadores_eliminado", "trabajadores", ["eliminado"])
    op.create_index("idx_trabajadores_estado", "trabajadores", ["activo", "eliminado"])

    op.create_table(
        "audit_events",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("actor_id", sa.String(length=36), nullable=True),
        sa.Column("action", sa.String(length=64), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("table_name", sa.String(length=64), nullable=False),
        sa.Column("entity_id", sa.String(length=64), nullable=True),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("metadata", sa.JSON(), nullable=True),
    )
    op.create_index("ix_audit_events_id", "audit_events", ["id"])
    op.create_index("ix_audit_events_actor_id", "audit_events", ["actor_id"])
    op.create_index("ix_audit_events_action", "audit_events", ["action"])
    op.create_index("ix_audit_events_table_name", "audit_events", ["table_name"])
    op.create_index("ix_audit_events_occurred_at", "audit_events", ["occurred_at"])
    op.create_index("ix_audit_events_table_entity", "audit_events", ["table_name", "entity_id"])
    op.create_index("ix_audit_events_action_time", "audit_events", ["action", "occurred_at"])

    op.create_table(
        "email_logs",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("recipient", sa.String(length=255), nullable=False),
        sa.Column("subject", sa.String(length=255), nullable=False),
        sa.Column("template_key", sa.String(length=128), nullable=False),
        sa.Column(
            "status",
            sa.Enum(*EMAIL_STATUSES, name="email_status_enum", native_enum=False),
            nullable=False,
        ),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("context_json", sa.JSON(), nullable=True),
        sa.Column("correlation_id", sa.String(length=64), nullable=True),
    )
    op.create_index("ix_email_logs_id", "email_logs", ["id"])
    op.create_index("ix_email_logs_template_key", "email_logs", ["template_key"])
    op.create_index("ix_email_logs_correlation_id", "email_logs", ["correlation_id"])
    op.create_index("ix_email_logs_created", "email_logs", ["created_at"])
    op.create_index("ix_email_logs_status", "email_logs", ["status"])
    op.create_index("ix_email_logs_recipient", "email_logs", ["recipient"])


def downgrade() -> None:
    op.drop_table("email_logs")
    op.drop_table("audit_events")
    op.drop_table("trabajadores")
    op.drop_table("usuarios")
    op.drop_table("roles")
    op.drop_table("personas")

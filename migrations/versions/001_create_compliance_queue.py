"""Create compliance queue tables

Revision ID: 001_create_compliance_queue
Revises:
Create Date: 2026-10-19

Creates the review queue table and the audit_log that keeps the last
snapshot of artifacts after they are scraped or disapproved.
"""
from __future__ import annotations

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "001_create_compliance_queue"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "queued_compliance_artifacts",
        sa.Column("compliance_id", sa.String(length=36), primary_key=True),
        sa.Column("compliance_name_origin", sa.Text, nullable=False),
        sa.Column("compliance_name_translated", sa.Text, nullable=True),
        sa.Column("url", sa.Text, nullable=True),
        sa.Column(
            "status",
            sa.Enum(
                "pending", "approved", "in_progress", "disapproved",
                name="compliance_artifact_status",
                create_constraint=True,
            ),
            nullable=False,
            server_default="pending",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "status_changed_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index(
        "ix_queued_compliance_artifacts_status",
        "queued_compliance_artifacts",
        ["status"],
    )
    op.create_index(
        "ix_compliance_artifacts_status_created",
        "queued_compliance_artifacts",
        ["status", "created_at"],
    )

    op.create_table(
        "audit_log",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "ts",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "actor_kind",
            sa.Enum("human", "system", name="audit_actor_kind", create_constraint=True),
            nullable=False,
        ),
        sa.Column("actor_id", sa.String(length=128), nullable=False),
        sa.Column(
            "action",
            sa.Enum(
                "created", "updated", "status_changed", "deleted",
                name="audit_action",
                create_constraint=True,
            ),
            nullable=False,
        ),
        sa.Column("artifact_id", sa.String(length=36), nullable=False),
        sa.Column("before", sa.JSON, nullable=True),
        sa.Column("after", sa.JSON, nullable=True),
        sa.Column("note", sa.Text, nullable=True),
        sa.Column("run_id", sa.String(length=36), nullable=True),
    )
    op.create_index("ix_audit_log_ts", "audit_log", ["ts"])
    op.create_index("ix_audit_log_actor_id", "audit_log", ["actor_id"])
    op.create_index("ix_audit_log_action", "audit_log", ["action"])
    op.create_index("ix_audit_log_artifact_id", "audit_log", ["artifact_id"])
    op.create_index("ix_audit_log_run_id", "audit_log", ["run_id"])
    op.create_index("ix_audit_log_artifact_ts", "audit_log", ["artifact_id", "ts"])


def downgrade() -> None:
    op.drop_index("ix_audit_log_artifact_ts", table_name="audit_log")
    op.drop_index("ix_audit_log_run_id", table_name="audit_log")
    op.drop_index("ix_audit_log_artifact_id", table_name="audit_log")
    op.drop_index("ix_audit_log_action", table_name="audit_log")
    op.drop_index("ix_audit_log_actor_id", table_name="audit_log")
    op.drop_index("ix_audit_log_ts", table_name="audit_log")
    op.drop_table("audit_log")

    op.drop_index(
        "ix_compliance_artifacts_status_created",
        table_name="queued_compliance_artifacts",
    )
    op.drop_index(
        "ix_queued_compliance_artifacts_status",
        table_name="queued_compliance_artifacts",
    )
    op.drop_table("queued_compliance_artifacts")

    # Drop PostgreSQL enum types (no-op for SQLite)
    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        op.execute("DROP TYPE IF EXISTS audit_action")
        op.execute("DROP TYPE IF EXISTS audit_actor_kind")
        op.execute("DROP TYPE IF EXISTS compliance_artifact_status")

"""initial schema: departments, users, categories, incidents, risks, tasks, comments, audit_logs

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19 09:00:00
"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def _ts():
    return [
        sa.Column("created_at", sa.DateTime, nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column("updated_at", sa.DateTime, nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
    ]


def upgrade():
    op.create_table(
        "departments",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("description", sa.String(length=500), nullable=True),
        *_ts(),
        sa.UniqueConstraint("name", name="uq_departments_name"),
    )
    op.create_index("ix_departments_name", "departments", ["name"])

    op.create_table(
        "users",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("role", sa.String(length=20), nullable=False, server_default="EMPLOYEE"),
        sa.Column("department_id", sa.Integer, nullable=True),
        sa.Column("last_login_at", sa.DateTime, nullable=True),
        *_ts(),
        sa.CheckConstraint("role IN ('ADMIN', 'MANAGER', 'EMPLOYEE')", name="ck_users_role_allowed"),
        sa.ForeignKeyConstraint(["department_id"], ["departments.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_role", "users", ["role"])
    op.create_index("ix_users_department_id", "users", ["department_id"])

    op.create_table(
        "incident_categories",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("description", sa.String(length=500), nullable=True),
        *_ts(),
        sa.UniqueConstraint("name", name="uq_incident_categories_name"),
    )
    op.create_index("ix_incident_categories_name", "incident_categories", ["name"])

    op.create_table(
        "incidents",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text, nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="NEW"),
        sa.Column("severity", sa.String(length=20), nullable=False, server_default="MEDIUM"),
        sa.Column("category_id", sa.Integer, nullable=True),
        sa.Column("department_id", sa.Integer, nullable=False),
        sa.Column("reported_by_id", sa.Integer, nullable=False),
        sa.Column("assigned_to_id", sa.Integer, nullable=True),
        sa.Column("occurred_at", sa.DateTime, nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column("resolved_at", sa.DateTime, nullable=True),
        sa.Column("ai_summary", sa.Text, nullable=True),
        sa.Column("ai_severity_suggestion", sa.String(length=20), nullable=True),
        sa.Column("ai_recommended_actions", sa.Text, nullable=True),
        *_ts(),
        sa.CheckConstraint(
            "status IN ('NEW', 'IN_REVIEW', 'IN_PROGRESS', 'RESOLVED', 'CLOSED')",
            name="ck_incidents_status_allowed",
        ),
        sa.CheckConstraint(
            "severity IN ('LOW', 'MEDIUM', 'HIGH', 'CRITICAL')",
            name="ck_incidents_severity_allowed",
        ),
        sa.ForeignKeyConstraint(["category_id"], ["incident_categories.id"]),
        sa.ForeignKeyConstraint(["department_id"], ["departments.id"]),
        sa.ForeignKeyConstraint(["reported_by_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["assigned_to_id"], ["users.id"]),
    )
    for col in ("status", "severity", "category_id", "department_id", "reported_by_id",
                "assigned_to_id", "occurred_at"):
        op.create_index(f"ix_incidents_{col}", "incidents", [col])
    op.create_index("ix_incidents_department_status", "incidents", ["department_id", "status"])

    op.create_table(
        "risks",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text, nullable=False),
        sa.Column("category", sa.String(length=100), nullable=False),
        sa.Column("likelihood", sa.String(length=10), nullable=False, server_default="MEDIUM"),
        sa.Column("impact", sa.String(length=10), nullable=False, server_default="MEDIUM"),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="OPEN"),
        sa.Column("department_id", sa.Integer, nullable=False),
        sa.Column("owner_id", sa.Integer, nullable=False),
        sa.Column("mitigation_plan", sa.Text, nullable=True),
        sa.Column("ai_mitigation_suggestions", sa.Text, nullable=True),
        sa.Column("resolved_at", sa.DateTime, nullable=True),
        *_ts(),
        sa.CheckConstraint(
            "status IN ('OPEN', 'MONITORING', 'MITIGATED', 'CLOSED')", name="ck_risks_status_allowed"
        ),
        sa.CheckConstraint(
            "likelihood IN ('LOW', 'MEDIUM', 'HIGH')", name="ck_risks_likelihood_allowed"
        ),
        sa.CheckConstraint("impact IN ('LOW', 'MEDIUM', 'HIGH')", name="ck_risks_impact_allowed"),
        sa.ForeignKeyConstraint(["department_id"], ["departments.id"]),
        sa.ForeignKeyConstraint(["owner_id"], ["users.id"]),
    )
    for col in ("category", "status", "department_id", "owner_id"):
        op.create_index(f"ix_risks_{col}", "risks", [col])
    op.create_index("ix_risks_department_status", "risks", ["department_id", "status"])

    op.create_table(
        "tasks",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="TODO"),
        sa.Column("assigned_to_id", sa.Integer, nullable=False),
        sa.Column("created_by_id", sa.Integer, nullable=True),
        sa.Column("related_incident_id", sa.Integer, nullable=True),
        sa.Column("related_risk_id", sa.Integer, nullable=True),
        sa.Column("due_date", sa.DateTime, nullable=True),
        *_ts(),
        sa.CheckConstraint("status IN ('TODO', 'IN_PROGRESS', 'DONE')", name="ck_tasks_status_allowed"),
        sa.CheckConstraint(
            "related_incident_id IS NULL OR related_risk_id IS NULL", name="ck_tasks_single_link"
        ),
        sa.ForeignKeyConstraint(["assigned_to_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["created_by_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["related_incident_id"], ["incidents.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["related_risk_id"], ["risks.id"], ondelete="SET NULL"),
    )
    for col in ("id", "title", "status", "assigned_to_id", "related_incident_id",
                "related_risk_id", "due_date"):
        op.create_index(f"ix_tasks_{col}", "tasks", [col])
    op.create_index("ix_tasks_assignee_status", "tasks", ["assigned_to_id", "status"])

    op.create_table(
        "comments",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("body", sa.Text, nullable=False),
        sa.Column("author_id", sa.Integer, nullable=False),
        sa.Column("incident_id", sa.Integer, nullable=True),
        sa.Column("risk_id", sa.Integer, nullable=True),
        sa.Column("created_at", sa.DateTime, nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.CheckConstraint(
            "(incident_id IS NULL) <> (risk_id IS NULL)", name="ck_comments_single_parent"
        ),
        sa.ForeignKeyConstraint(["author_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["incident_id"], ["incidents.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["risk_id"], ["risks.id"], ondelete="CASCADE"),
    )
    for col in ("author_id", "incident_id", "risk_id"):
        op.create_index(f"ix_comments_{col}", "comments", [col])

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("entity_type", sa.String(length=20), nullable=False),
        sa.Column("entity_id", sa.Integer, nullable=True),
        sa.Column("action", sa.String(length=30), nullable=False),
        sa.Column("actor_id", sa.Integer, nullable=True),
        sa.Column("metadata", sa.JSON, nullable=True),
        sa.Column("ip_address", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime, nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
    )
    for col in ("entity_type", "entity_id", "action", "actor_id", "created_at"):
        op.create_index(f"ix_audit_logs_{col}", "audit_logs", [col])
    op.create_index("ix_audit_logs_entity", "audit_logs", ["entity_type", "entity_id"])


def downgrade():
    for table in (
        "audit_logs",
        "comments",
        "tasks",
        "risks",
        "incidents",
        "incident_categories",
        "users",
        "departments",
    ):
        op.drop_table(table)

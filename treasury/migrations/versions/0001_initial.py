"""Initial schema for the dues and cash ledger.

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18

"""

from alembic import op
import sqlalchemy as sa


revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def _has_table(inspector, name: str) -> bool:
    return inspector.has_table(name)


def upgrade() -> None:
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    if not _has_table(inspector, "organizations"):
        op.create_table(
            "organizations",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("name", sa.String(), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=False),
        )
        op.create_index(op.f("ix_organizations_id"), "organizations", ["id"], unique=False)

    if not _has_table(inspector, "users"):
        op.create_table(
            "users",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("email", sa.String(), nullable=False),
            sa.Column("name", sa.String(), nullable=True),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("created_at", sa.DateTime(), nullable=False),
        )
        op.create_index(op.f("ix_users_id"), "users", ["id"], unique=False)
        op.create_index(op.f("ix_users_email"), "users", ["email"], unique=True)

    if not _has_table(inspector, "memberships"):
        op.create_table(
            "memberships",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
            sa.Column(
                "organization_id",
                sa.Integer(),
                sa.ForeignKey("organizations.id", ondelete="CASCADE"),
                nullable=False,
            ),
            sa.Column("role", sa.String(), nullable=False, server_default="VIEWER"),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.UniqueConstraint("user_id", "organization_id", name="uq_memberships_user_org"),
        )
        op.create_index(op.f("ix_memberships_id"), "memberships", ["id"], unique=False)
        op.create_index(op.f("ix_memberships_user_id"), "memberships", ["user_id"], unique=False)
        op.create_index(op.f("ix_memberships_organization_id"), "memberships", ["organization_id"], unique=False)

    if not _has_table(inspector, "members"):
        op.create_table(
            "members",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column(
                "organization_id",
                sa.Integer(),
                sa.ForeignKey("organizations.id", ondelete="CASCADE"),
                nullable=False,
            ),
            sa.Column("full_name", sa.String(), nullable=False),
            sa.Column("email", sa.String(), nullable=True),
            sa.Column("phone", sa.String(), nullable=True),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("joined_at", sa.DateTime(), nullable=False),
        )
        op.create_index(op.f("ix_members_id"), "members", ["id"], unique=False)
        op.create_index(op.f("ix_members_organization_id"), "members", ["organization_id"], unique=False)
        op.create_index(op.f("ix_members_full_name"), "members", ["full_name"], unique=False)

    if not _has_table(inspector, "dues"):
        op.create_table(
            "dues",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column(
                "organization_id",
                sa.Integer(),
                sa.ForeignKey("organizations.id", ondelete="CASCADE"),
                nullable=False,
            ),
            sa.Column("member_id", sa.Integer(), sa.ForeignKey("members.id", ondelete="CASCADE"), nullable=False),
            sa.Column("month", sa.Integer(), nullable=False),
            sa.Column("year", sa.Integer(), nullable=False),
            sa.Column("amount", sa.Integer(), nullable=False),
            sa.Column("status", sa.String(), nullable=False, server_default="PENDING"),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.Column("updated_at", sa.DateTime(), nullable=False),
            sa.UniqueConstraint("member_id", "month", "year", name="uq_dues_member_month_year"),
            sa.CheckConstraint("month >= 1 AND month <= 12", name="ck_dues_month_range"),
            sa.CheckConstraint("year >= 1970 AND year <= 9999", name="ck_dues_year_range"),
            sa.CheckConstraint("amount > 0", name="ck_dues_amount_positive"),
            sa.CheckConstraint("status IN ('PENDING', 'PARTIAL', 'PAID')", name="ck_dues_status"),
        )
        op.create_index(op.f("ix_dues_id"), "dues", ["id"], unique=False)
        op.create_index(op.f("ix_dues_organization_id"), "dues", ["organization_id"], unique=False)
        op.create_index(op.f("ix_dues_member_id"), "dues", ["member_id"], unique=False)
        op.create_index(op.f("ix_dues_year"), "dues", ["year"], unique=False)
        op.create_index(op.f("ix_dues_status"), "dues", ["status"], unique=False)

    if not _has_table(inspector, "payments"):
        op.create_table(
            "payments",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("dues_id", sa.Integer(), sa.ForeignKey("dues.id", ondelete="CASCADE"), nullable=False),
            sa.Column("member_id", sa.Integer(), sa.ForeignKey("members.id", ondelete="CASCADE"), nullable=False),
            sa.Column("amount", sa.Integer(), nullable=False),
            sa.Column("method", sa.String(), nullable=True),
            sa.Column("note", sa.Text(), nullable=True),
            sa.Column("created_by_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
            sa.Column("paid_at", sa.DateTime(), nullable=False),
            sa.CheckConstraint("amount > 0", name="ck_payments_amount_positive"),
        )
        op.create_index(op.f("ix_payments_id"), "payments", ["id"], unique=False)
        op.create_index(op.f("ix_payments_dues_id"), "payments", ["dues_id"], unique=False)
        op.create_index(op.f("ix_payments_member_id"), "payments", ["member_id"], unique=False)
        op.create_index(op.f("ix_payments_paid_at"), "payments", ["paid_at"], unique=False)

    if not _has_table(inspector, "transactions"):
        op.create_table(
            "transactions",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column(
                "organization_id",
                sa.Integer(),
                sa.ForeignKey("organizations.id", ondelete="CASCADE"),
                nullable=False,
            ),
            sa.Column("type", sa.String(), nullable=False),
            sa.Column("amount", sa.Integer(), nullable=False),
            sa.Column("category", sa.String(), nullable=True),
            sa.Column("occurred_at", sa.DateTime(), nullable=False),
            sa.Column("note", sa.Text(), nullable=True),
            sa.Column("created_by_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
            sa.CheckConstraint("amount > 0", name="ck_transactions_amount_positive"),
        )
        op.create_index(op.f("ix_transactions_id"), "transactions", ["id"], unique=False)
        op.create_index(op.f("ix_transactions_organization_id"), "transactions", ["organization_id"], unique=False)
        op.create_index(op.f("ix_transactions_occurred_at"), "transactions", ["occurred_at"], unique=False)

    if not _has_table(inspector, "dues_configs"):
        op.create_table(
            "dues_configs",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column(
                "organization_id",
                sa.Integer(),
                sa.ForeignKey("organizations.id", ondelete="CASCADE"),
                nullable=False,
                unique=True,
            ),
            sa.Column("amount", sa.Integer(), nullable=False),
            sa.Column("currency", sa.String(), nullable=False, server_default="IDR"),
            sa.Column("updated_at", sa.DateTime(), nullable=False),
        )
        op.create_index(op.f("ix_dues_configs_id"), "dues_configs", ["id"], unique=False)


def downgrade() -> None:
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    for table in ("dues_configs", "transactions", "payments", "dues", "members", "memberships", "users", "organizations"):
        if _has_table(inspector, table):
            op.drop_table(table)

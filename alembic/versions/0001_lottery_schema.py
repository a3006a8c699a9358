"""lottery schema

Revision ID: 0001_lottery_schema
Revises:
Create Date: 2025-06-01 00:00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "0001_lottery_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("external_id", sa.String(length=64), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("full_name", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_users")),
        sa.UniqueConstraint("email", name=op.f("uq_users_email")),
        sa.UniqueConstraint("external_id", name=op.f("uq_users_external_id")),
    )

    op.create_table(
        "lottery_draws",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("draw_date", sa.Date(), nullable=False),
        sa.Column("winning_numbers", sa.JSON(), nullable=False),
        sa.Column("jackpot_amount", sa.Float(), nullable=False),
        sa.Column("lucky_dip_amount", sa.Float(), nullable=False),
        sa.Column("random_signature", sa.Text(), nullable=True),
        sa.Column("random_payload", sa.JSON(), nullable=True),
        sa.Column("is_test_draw", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_lottery_draws")),
    )
    op.create_index(
        op.f("ix_lottery_draws_draw_date"), "lottery_draws", ["draw_date"], unique=False
    )
    op.create_index(
        "uq_lottery_draws_live_date",
        "lottery_draws",
        ["draw_date"],
        unique=True,
        sqlite_where=sa.text("NOT is_test_draw"),
        postgresql_where=sa.text("NOT is_test_draw"),
    )

    op.create_table(
        "lottery_entries",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("numbers", sa.JSON(), nullable=False),
        sa.Column("line_number", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("subscription_id", sa.String(length=255), nullable=True),
        sa.Column("payment_reference", sa.String(length=255), nullable=True),
        sa.Column("draw_date", sa.Date(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["user_id"],
            ["users.id"],
            name=op.f("fk_lottery_entries_user_id_users"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_lottery_entries")),
        sa.UniqueConstraint(
            "payment_reference",
            "draw_date",
            "line_number",
            name="uq_lottery_entries_payment_line",
        ),
        sa.UniqueConstraint(
            "subscription_id",
            "draw_date",
            "line_number",
            name="uq_lottery_entries_subscription_line",
        ),
    )
    op.create_index(
        op.f("ix_lottery_entries_user_id"), "lottery_entries", ["user_id"], unique=False
    )
    op.create_index(
        "ix_lottery_entries_draw_date_active",
        "lottery_entries",
        ["draw_date", "is_active"],
        unique=False,
    )

    op.create_table(
        "lottery_results",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("draw_id", sa.Integer(), nullable=False),
        sa.Column("entry_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("matches", sa.Integer(), nullable=False),
        sa.Column("prize_amount", sa.Float(), nullable=False),
        sa.Column("is_winner", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["draw_id"],
            ["lottery_draws.id"],
            name=op.f("fk_lottery_results_draw_id_lottery_draws"),
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["entry_id"],
            ["lottery_entries.id"],
            name=op.f("fk_lottery_results_entry_id_lottery_entries"),
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["user_id"],
            ["users.id"],
            name=op.f("fk_lottery_results_user_id_users"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_lottery_results")),
        sa.UniqueConstraint("draw_id", "entry_id", name="uq_lottery_results_draw_entry"),
    )
    for column in ("draw_id", "entry_id", "user_id"):
        op.create_index(
            op.f(f"ix_lottery_results_{column}"), "lottery_results", [column], unique=False
        )

    op.create_table(
        "lottery_settings",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("setting_key", sa.String(length=100), nullable=False),
        sa.Column("setting_value", sa.Text(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_lottery_settings")),
        sa.UniqueConstraint("setting_key", name=op.f("uq_lottery_settings_setting_key")),
    )

    op.create_table(
        "lottery_subscriptions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("lines_count", sa.Integer(), nullable=False),
        sa.Column("stripe_customer_id", sa.String(length=255), nullable=True),
        sa.Column("stripe_subscription_id", sa.String(length=255), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("next_draw_date", sa.Date(), nullable=True),
        sa.Column("canceled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["user_id"],
            ["users.id"],
            name=op.f("fk_lottery_subscriptions_user_id_users"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_lottery_subscriptions")),
        sa.UniqueConstraint(
            "stripe_subscription_id",
            name=op.f("uq_lottery_subscriptions_stripe_subscription_id"),
        ),
        sa.UniqueConstraint("user_id", name=op.f("uq_lottery_subscriptions_user_id")),
    )


def downgrade() -> None:
    op.drop_table("lottery_subscriptions")
    op.drop_table("lottery_settings")
    for column in ("user_id", "entry_id", "draw_id"):
        op.drop_index(op.f(f"ix_lottery_results_{column}"), table_name="lottery_results")
    op.drop_table("lottery_results")
    op.drop_index("ix_lottery_entries_draw_date_active", table_name="lottery_entries")
    op.drop_index(op.f("ix_lottery_entries_user_id"), table_name="lottery_entries")
    op.drop_table("lottery_entries")
    op.drop_index("uq_lottery_draws_live_date", table_name="lottery_draws")
    op.drop_index(op.f("ix_lottery_draws_draw_date"), table_name="lottery_draws")
    op.drop_table("lottery_draws")
    op.drop_table("users")

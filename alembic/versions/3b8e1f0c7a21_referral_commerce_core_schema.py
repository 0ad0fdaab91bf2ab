"""referral_commerce_core_schema

Revision ID: 3b8e1f0c7a21
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "3b8e1f0c7a21"
down_revision: str | None = None
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("external_id", sa.String(128), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("referral_code", sa.String(16), nullable=False),
        sa.Column("referred_by_user_id", sa.BigInteger(), nullable=True),
        sa.Column("credit_balance", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("total_credits_earned", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("total_referred_users", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint("credit_balance >= 0", name="ck_users_credit_balance_non_negative"),
        sa.CheckConstraint("total_credits_earned >= 0", name="ck_users_total_credits_earned_non_negative"),
        sa.CheckConstraint("total_referred_users >= 0", name="ck_users_total_referred_users_non_negative"),
        sa.CheckConstraint(
            "referred_by_user_id IS NULL OR referred_by_user_id <> id",
            name="ck_users_no_self_referral",
        ),
        sa.ForeignKeyConstraint(
            ["referred_by_user_id"],
            ["users.id"],
            name="fk_users_referred_by_user_id_users",
        ),
        sa.UniqueConstraint("external_id", name="uq_users_external_id"),
        sa.UniqueConstraint("referral_code", name="uq_users_referral_code"),
    )
    op.create_index("idx_users_referred_by", "users", ["referred_by_user_id"])
    op.create_index("idx_users_created_at", "users", ["created_at"])

    op.create_table(
        "products",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("author", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        sa.Column("category", sa.String(16), nullable=False),
        sa.Column("image_url", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint("price >= 0", name="ck_products_price_non_negative"),
        sa.CheckConstraint(
            "category IN ('ebook','course','template','software','other')",
            name="ck_products_category",
        ),
        sa.UniqueConstraint("title", name="uq_products_title"),
    )
    op.create_index("idx_products_category", "products", ["category"])

    op.create_table(
        "referrals",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("referrer_user_id", sa.BigInteger(), nullable=False),
        sa.Column("referred_user_id", sa.BigInteger(), nullable=False),
        sa.Column("referral_code", sa.String(16), nullable=False),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("credits_awarded", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("converted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("status IN ('PENDING','CONVERTED')", name="ck_referrals_status"),
        sa.CheckConstraint("referrer_user_id <> referred_user_id", name="ck_referrals_no_self_referral"),
        sa.CheckConstraint(
            "(status = 'CONVERTED') = credits_awarded",
            name="ck_referrals_awarded_iff_converted",
        ),
        sa.CheckConstraint(
            "(status = 'CONVERTED') = (converted_at IS NOT NULL)",
            name="ck_referrals_converted_at_iff_converted",
        ),
        sa.ForeignKeyConstraint(
            ["referrer_user_id"],
            ["users.id"],
            name="fk_referrals_referrer_user_id_users",
        ),
        sa.ForeignKeyConstraint(
            ["referred_user_id"],
            ["users.id"],
            name="fk_referrals_referred_user_id_users",
        ),
        sa.UniqueConstraint("referred_user_id", name="uq_referrals_referred_user_id"),
    )
    op.create_index("idx_referrals_referrer", "referrals", ["referrer_user_id"])
    op.create_index("idx_referrals_referrer_status", "referrals", ["referrer_user_id", "status"])

    op.create_table(
        "purchases",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("product_id", sa.BigInteger(), nullable=False),
        sa.Column("product_name", sa.Text(), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("credits_used", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("credit_amount", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("cash_amount", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("is_first_purchase", sa.Boolean(), nullable=False),
        sa.Column("referral_credit_awarded", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("idempotency_key", sa.String(64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("amount > 0", name="ck_purchases_amount_positive"),
        sa.CheckConstraint("credits_used >= 0", name="ck_purchases_credits_used_non_negative"),
        sa.CheckConstraint("credit_amount >= 0", name="ck_purchases_credit_amount_non_negative"),
        sa.CheckConstraint("cash_amount >= 0", name="ck_purchases_cash_amount_non_negative"),
        sa.CheckConstraint("credit_amount + cash_amount = amount", name="ck_purchases_split_sums_to_amount"),
        sa.CheckConstraint(
            "credit_amount = credits_used * 10",
            name="ck_purchases_credit_amount_matches_credits",
        ),
        sa.CheckConstraint(
            "NOT referral_credit_awarded OR is_first_purchase",
            name="ck_purchases_award_only_on_first_purchase",
        ),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], name="fk_purchases_user_id_users"),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"], name="fk_purchases_product_id_products"),
        sa.UniqueConstraint("idempotency_key", name="uq_purchases_idempotency_key"),
    )
    op.create_index("idx_purchases_user_created", "purchases", ["user_id", "created_at"])
    op.create_index("idx_purchases_product", "purchases", ["product_id"])


def downgrade() -> None:
    op.drop_index("idx_purchases_product", table_name="purchases")
    op.drop_index("idx_purchases_user_created", table_name="purchases")
    op.drop_table("purchases")

    op.drop_index("idx_referrals_referrer_status", table_name="referrals")
    op.drop_index("idx_referrals_referrer", table_name="referrals")
    op.drop_table("referrals")

    op.drop_index("idx_products_category", table_name="products")
    op.drop_table("products")

    op.drop_index("idx_users_created_at", table_name="users")
    op.drop_index("idx_users_referred_by", table_name="users")
    op.drop_table("users")

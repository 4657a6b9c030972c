"""promo_redemption_core_schema

Revision ID: 5b1e7c2a9d40
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "5b1e7c2a9d40"
down_revision: str | None = None
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None

APPEND_ONLY_TABLES = ("redemption_history", "points_history", "campaign_points_history")


def _money() -> sa.Numeric:
    return sa.Numeric(18, 2)


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("business_name", sa.String(255), nullable=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("role", sa.String(16), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default=sa.text("'ACTIVE'")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint(
            "role IN ('manufacturer','reseller','shopkeeper','customer')",
            name="ck_users_role",
        ),
        sa.CheckConstraint("status IN ('ACTIVE','BLOCKED','DELETED')", name="ck_users_status"),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )
    op.create_index("idx_users_role", "users", ["role"])

    op.create_table(
        "products",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.String(1000), nullable=True),
        sa.Column("category", sa.String(100), nullable=False),
        sa.Column("sku", sa.String(50), nullable=True),
        sa.Column("brand", sa.String(100), nullable=True),
        sa.Column("base_price", _money(), nullable=False, server_default=sa.text("0")),
        sa.Column("reseller_price", _money(), nullable=False, server_default=sa.text("0")),
        sa.Column("retail_price", _money(), nullable=False, server_default=sa.text("0")),
        sa.Column("points_per_unit", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("manufacturer_id", sa.BigInteger(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("retail_price >= 0", name="ck_products_retail_price_non_negative"),
        sa.CheckConstraint("points_per_unit >= 0", name="ck_products_points_per_unit_non_negative"),
        sa.ForeignKeyConstraint(["manufacturer_id"], ["users.id"]),
    )
    op.create_index("idx_products_manufacturer", "products", ["manufacturer_id"])
    op.create_index("idx_products_active", "products", ["is_active"])

    op.create_table(
        "campaigns",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.String(1000), nullable=False, server_default=sa.text("''")),
        sa.Column("product_type", sa.String(100), nullable=False, server_default=sa.text("''")),
        sa.Column("reward_type", sa.String(20), nullable=False, server_default=sa.text("'voucher'")),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("manufacturer_id", sa.BigInteger(), nullable=False),
        sa.Column("points_per_scan", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("voucher_generation_threshold", sa.Integer(), nullable=True),
        sa.Column("voucher_value", _money(), nullable=True),
        sa.Column("voucher_validity_days", sa.Integer(), nullable=True, server_default=sa.text("90")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "reward_type IN ('voucher','voucher_restricted','free_product')",
            name="ck_campaigns_reward_type",
        ),
        sa.CheckConstraint("start_date <= end_date", name="ck_campaigns_window"),
        sa.CheckConstraint("points_per_scan >= 0", name="ck_campaigns_points_per_scan_non_negative"),
        sa.CheckConstraint(
            "voucher_generation_threshold IS NULL OR voucher_generation_threshold > 0",
            name="ck_campaigns_voucher_threshold_positive",
        ),
        sa.ForeignKeyConstraint(["manufacturer_id"], ["users.id"]),
    )
    op.create_index("idx_campaigns_manufacturer", "campaigns", ["manufacturer_id"])
    op.create_index(
        "idx_campaigns_active_window",
        "campaigns",
        ["is_active", "start_date", "end_date"],
    )

    op.create_table(
        "campaign_eligible_products",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("campaign_id", sa.BigInteger(), nullable=False),
        sa.Column("product_id", sa.BigInteger(), nullable=False),
        sa.Column("point_cost", sa.Integer(), nullable=False),
        sa.Column("redemption_limit", sa.Integer(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.CheckConstraint("point_cost > 0", name="ck_campaign_eligible_products_point_cost_positive"),
        sa.CheckConstraint(
            "redemption_limit IS NULL OR redemption_limit > 0",
            name="ck_campaign_eligible_products_redemption_limit_positive",
        ),
        sa.ForeignKeyConstraint(["campaign_id"], ["campaigns.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"]),
        sa.UniqueConstraint("campaign_id", "product_id", name="uq_campaign_eligible_products_pair"),
    )
    op.create_index(
        "idx_campaign_eligible_products_product",
        "campaign_eligible_products",
        ["product_id"],
    )

    op.create_table(
        "campaign_free_product_rewards",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("campaign_id", sa.BigInteger(), nullable=False),
        sa.Column("product_id", sa.BigInteger(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint("quantity > 0", name="ck_campaign_free_product_rewards_quantity_positive"),
        sa.ForeignKeyConstraint(["campaign_id"], ["campaigns.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"]),
        sa.UniqueConstraint("campaign_id", "product_id", name="uq_campaign_free_product_rewards_pair"),
    )

    op.create_table(
        "vouchers",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("voucher_code", sa.String(50), nullable=False),
        sa.Column("qr_code", sa.String(255), nullable=False),
        sa.Column("reseller_id", sa.BigInteger(), nullable=False),
        sa.Column("campaign_id", sa.BigInteger(), nullable=False),
        sa.Column("value", _money(), nullable=False),
        sa.Column("points_required", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("legacy_eligible_products", sa.Text(), nullable=True),
        sa.Column("is_redeemed", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("redeemed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("redeemed_by_shopkeeper_id", sa.BigInteger(), nullable=True),
        sa.Column("expiry_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("value >= 0", name="ck_vouchers_value_non_negative"),
        sa.CheckConstraint("points_required >= 0", name="ck_vouchers_points_required_non_negative"),
        sa.CheckConstraint(
            "(is_redeemed = false AND redeemed_at IS NULL AND redeemed_by_shopkeeper_id IS NULL) "
            "OR (is_redeemed = true AND redeemed_at IS NOT NULL AND redeemed_by_shopkeeper_id IS NOT NULL)",
            name="ck_vouchers_redeemed_consistency",
        ),
        sa.ForeignKeyConstraint(["reseller_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["campaign_id"], ["campaigns.id"]),
        sa.ForeignKeyConstraint(["redeemed_by_shopkeeper_id"], ["users.id"]),
        sa.UniqueConstraint("voucher_code", name="uq_vouchers_voucher_code"),
        sa.UniqueConstraint("qr_code", name="uq_vouchers_qr_code"),
    )
    op.create_index("idx_vouchers_reseller_created", "vouchers", ["reseller_id", "created_at"])
    op.create_index("idx_vouchers_campaign", "vouchers", ["campaign_id"])
    op.create_index("idx_vouchers_expiry", "vouchers", ["expiry_date"])

    op.create_table(
        "voucher_eligible_products",
        sa.Column("voucher_id", sa.BigInteger(), nullable=False),
        sa.Column("product_id", sa.BigInteger(), nullable=False),
        sa.ForeignKeyConstraint(["voucher_id"], ["vouchers.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"]),
        sa.PrimaryKeyConstraint("voucher_id", "product_id"),
    )
    op.create_index(
        "idx_voucher_eligible_products_product",
        "voucher_eligible_products",
        ["product_id"],
    )

    op.create_table(
        "qr_codes",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("code", sa.String(255), nullable=False),
        sa.Column("campaign_id", sa.BigInteger(), nullable=False),
        sa.Column("reseller_id", sa.BigInteger(), nullable=True),
        sa.Column("points", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("is_redeemed", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("redeemed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("redeemed_by_user_id", sa.BigInteger(), nullable=True),
        sa.Column("expiry_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("points >= 0", name="ck_qr_codes_points_non_negative"),
        sa.CheckConstraint(
            "(is_redeemed = false AND redeemed_at IS NULL AND redeemed_by_user_id IS NULL) "
            "OR (is_redeemed = true AND redeemed_at IS NOT NULL AND redeemed_by_user_id IS NOT NULL)",
            name="ck_qr_codes_redeemed_consistency",
        ),
        sa.ForeignKeyConstraint(["campaign_id"], ["campaigns.id"]),
        sa.ForeignKeyConstraint(["reseller_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["redeemed_by_user_id"], ["users.id"]),
        sa.UniqueConstraint("code", name="uq_qr_codes_code"),
    )
    op.create_index("idx_qr_codes_campaign", "qr_codes", ["campaign_id"])
    op.create_index("idx_qr_codes_reseller_created", "qr_codes", ["reseller_id", "created_at"])

    op.create_table(
        "redemption_history",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("reseller_id", sa.BigInteger(), nullable=True),
        sa.Column("shopkeeper_id", sa.BigInteger(), nullable=True),
        sa.Column("campaign_id", sa.BigInteger(), nullable=True),
        sa.Column("voucher_id", sa.BigInteger(), nullable=True),
        sa.Column("qr_code_id", sa.BigInteger(), nullable=True),
        sa.Column("code", sa.String(255), nullable=False),
        sa.Column("points", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column(
            "redeemed_products",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column("redemption_value", _money(), nullable=True),
        sa.Column("redemption_type", sa.String(32), nullable=False),
        sa.Column("notes", sa.String(500), nullable=True),
        sa.Column("redeemed_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "redemption_type IN ('voucher','voucher_restricted','free_product','qr_points')",
            name="ck_redemption_history_type",
        ),
        sa.CheckConstraint("points >= 0", name="ck_redemption_history_points_non_negative"),
        sa.CheckConstraint(
            "redemption_value IS NULL OR redemption_value >= 0",
            name="ck_redemption_history_value_non_negative",
        ),
        sa.CheckConstraint(
            "(voucher_id IS NOT NULL) <> (qr_code_id IS NOT NULL)",
            name="ck_redemption_history_single_source",
        ),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["reseller_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["shopkeeper_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["campaign_id"], ["campaigns.id"]),
        sa.ForeignKeyConstraint(["voucher_id"], ["vouchers.id"]),
        sa.ForeignKeyConstraint(["qr_code_id"], ["qr_codes.id"]),
        sa.UniqueConstraint("voucher_id", name="uq_redemption_history_voucher_id"),
        sa.UniqueConstraint("qr_code_id", name="uq_redemption_history_qr_code_id"),
    )
    op.create_index(
        "idx_redemption_history_user_redeemed",
        "redemption_history",
        ["user_id", "redeemed_at"],
    )
    op.create_index(
        "idx_redemption_history_shopkeeper_redeemed",
        "redemption_history",
        ["shopkeeper_id", "redeemed_at"],
    )
    op.create_index(
        "idx_redemption_history_reseller_redeemed",
        "redemption_history",
        ["reseller_id", "redeemed_at"],
    )
    op.create_index("idx_redemption_history_campaign", "redemption_history", ["campaign_id"])

    op.create_table(
        "points_balances",
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("balance", sa.Integer(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("balance >= 0", name="ck_points_balances_balance_non_negative"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("user_id"),
    )

    op.create_table(
        "points_history",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("delta", sa.Integer(), nullable=False),
        sa.Column("balance_after", sa.Integer(), nullable=False),
        sa.Column("entry_type", sa.String(16), nullable=False),
        sa.Column("reason", sa.String(255), nullable=False),
        sa.Column("campaign_id", sa.BigInteger(), nullable=True),
        sa.Column("idempotency_key", sa.String(96), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("delta <> 0", name="ck_points_history_delta_non_zero"),
        sa.CheckConstraint("balance_after >= 0", name="ck_points_history_balance_after_non_negative"),
        sa.CheckConstraint("entry_type IN ('EARNED','REDEEMED')", name="ck_points_history_entry_type"),
        sa.CheckConstraint(
            "(entry_type = 'EARNED' AND delta > 0) OR (entry_type = 'REDEEMED' AND delta < 0)",
            name="ck_points_history_direction",
        ),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["campaign_id"], ["campaigns.id"]),
        sa.UniqueConstraint("idempotency_key", name="uq_points_history_idempotency_key"),
    )
    op.create_index("idx_points_history_user_created", "points_history", ["user_id", "created_at"])
    op.create_index("idx_points_history_campaign", "points_history", ["campaign_id"])

    op.create_table(
        "campaign_points",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("campaign_id", sa.BigInteger(), nullable=False),
        sa.Column("reseller_id", sa.BigInteger(), nullable=False),
        sa.Column("total_points_earned", sa.Integer(), nullable=False),
        sa.Column("points_used_for_vouchers", sa.Integer(), nullable=False),
        sa.Column("available_points", sa.Integer(), nullable=False),
        sa.Column("total_order_value", _money(), nullable=False, server_default=sa.text("0")),
        sa.Column("total_orders", sa.Integer(), nullable=False),
        sa.Column("total_vouchers_generated", sa.Integer(), nullable=False),
        sa.Column(
            "total_voucher_value_generated",
            _money(),
            nullable=False,
            server_default=sa.text("0"),
        ),
        sa.Column("last_voucher_generated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("available_points >= 0", name="ck_campaign_points_available_non_negative"),
        sa.CheckConstraint(
            "available_points = total_points_earned - points_used_for_vouchers",
            name="ck_campaign_points_available_consistency",
        ),
        sa.ForeignKeyConstraint(["campaign_id"], ["campaigns.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["reseller_id"], ["users.id"]),
        sa.UniqueConstraint("campaign_id", "reseller_id", name="uq_campaign_points_campaign_reseller"),
    )
    op.create_index("idx_campaign_points_reseller", "campaign_points", ["reseller_id"])

    op.create_table(
        "campaign_points_history",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("campaign_id", sa.BigInteger(), nullable=False),
        sa.Column("reseller_id", sa.BigInteger(), nullable=False),
        sa.Column("delta", sa.Integer(), nullable=False),
        sa.Column("available_after", sa.Integer(), nullable=False),
        sa.Column("reason", sa.String(255), nullable=False),
        sa.Column("idempotency_key", sa.String(96), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("delta <> 0", name="ck_campaign_points_history_delta_non_zero"),
        sa.CheckConstraint(
            "available_after >= 0",
            name="ck_campaign_points_history_available_after_non_negative",
        ),
        sa.ForeignKeyConstraint(["campaign_id"], ["campaigns.id"]),
        sa.ForeignKeyConstraint(["reseller_id"], ["users.id"]),
        sa.UniqueConstraint("idempotency_key", name="uq_campaign_points_history_idempotency_key"),
    )
    op.create_index(
        "idx_campaign_points_history_pair_created",
        "campaign_points_history",
        ["campaign_id", "reseller_id", "created_at"],
    )

    for table_name in APPEND_ONLY_TABLES:
        op.execute(
            f"""
            CREATE OR REPLACE FUNCTION fn_{table_name}_append_only()
            RETURNS trigger
            LANGUAGE plpgsql
            AS $$
            BEGIN
                RAISE EXCEPTION '{table_name} is append-only';
            END;
            $$;
            """
        )
        op.execute(
            f"""
            CREATE TRIGGER trg_{table_name}_append_only
            BEFORE UPDATE OR DELETE ON {table_name}
            FOR EACH ROW
            EXECUTE FUNCTION fn_{table_name}_append_only();
            """
        )


def downgrade() -> None:
    for table_name in APPEND_ONLY_TABLES:
        op.execute(f"DROP TRIGGER IF EXISTS trg_{table_name}_append_only ON {table_name};")
        op.execute(f"DROP FUNCTION IF EXISTS fn_{table_name}_append_only();")

    op.drop_table("campaign_points_history")
    op.drop_table("campaign_points")
    op.drop_table("points_history")
    op.drop_table("points_balances")
    op.drop_table("redemption_history")
    op.drop_table("qr_codes")
    op.drop_table("voucher_eligible_products")
    op.drop_table("vouchers")
    op.drop_table("campaign_free_product_rewards")
    op.drop_table("campaign_eligible_products")
    op.drop_table("campaigns")
    op.drop_table("products")
    op.drop_table("users")

"""Initial schema for the cash-flow forecasting service.

Revision ID: 20261017_0001
Revises:
Create Date: 2026-10-17 09:00:00
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = "20261017_0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    transaction_status = postgresql.ENUM(
        "draft", "pending", "paid", "void", name="transaction_status", create_type=False
    )
    transaction_status.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("full_name", sa.String(length=255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("last_active_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "invoices",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("amount", sa.Numeric(24, 2), nullable=False),
        sa.Column("tx_date", sa.Date(), nullable=True),
        sa.Column("status", transaction_status, nullable=False, server_default="pending"),
        sa.Column("customer", sa.String(length=255), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_invoices_id", "invoices", ["id"])
    op.create_index("ix_invoices_user_id", "invoices", ["user_id"])
    op.create_index("ix_invoices_tx_date", "invoices", ["tx_date"])

    op.create_table(
        "expenses",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("amount", sa.Numeric(24, 2), nullable=False),
        sa.Column("tx_date", sa.Date(), nullable=True),
        sa.Column("status", transaction_status, nullable=False, server_default="pending"),
        sa.Column("vendor", sa.String(length=255), nullable=True),
        sa.Column("category", sa.String(length=100), nullable=False, server_default="general"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_expenses_id", "expenses", ["id"])
    op.create_index("ix_expenses_user_id", "expenses", ["user_id"])
    op.create_index("ix_expenses_tx_date", "expenses", ["tx_date"])

    op.create_table(
        "wallet_balances",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("amount", sa.Numeric(24, 2), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_wallet_balances_id", "wallet_balances", ["id"])
    op.create_index("ix_wallet_balances_user_id", "wallet_balances", ["user_id"], unique=True)

    op.create_table(
        "cashflow_forecasts",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("generated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("horizon_days", sa.Integer(), nullable=False),
        sa.Column("lookback_days", sa.Integer(), nullable=False),
        sa.Column("dates", sa.JSON(), nullable=False),
        sa.Column("daily_net_forecast", sa.JSON(), nullable=False),
        sa.Column("cumulative_balance", sa.JSON(), nullable=False),
        sa.Column("confidence_band", sa.JSON(), nullable=False),
        sa.Column("current_balance", sa.Numeric(24, 2), nullable=False),
        sa.Column("runway_days", sa.Integer(), nullable=True),
        sa.Column("confidence_std", sa.Numeric(24, 2), nullable=False),
        sa.Column("annotations", sa.JSON(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_cashflow_forecasts_id", "cashflow_forecasts", ["id"])
    op.create_index("ix_cashflow_forecasts_user_id", "cashflow_forecasts", ["user_id"], unique=True)

    op.create_table(
        "forecast_batch_runs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("finished_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("eligible", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("skipped", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("succeeded", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("failed", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("failures", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_forecast_batch_runs_id", "forecast_batch_runs", ["id"])


def downgrade() -> None:
    op.drop_index("ix_forecast_batch_runs_id", table_name="forecast_batch_runs")
    op.drop_table("forecast_batch_runs")
    op.drop_index("ix_cashflow_forecasts_user_id", table_name="cashflow_forecasts")
    op.drop_index("ix_cashflow_forecasts_id", table_name="cashflow_forecasts")
    op.drop_table("cashflow_forecasts")
    op.drop_index("ix_wallet_balances_user_id", table_name="wallet_balances")
    op.drop_index("ix_wallet_balances_id", table_name="wallet_balances")
    op.drop_table("wallet_balances")
    op.drop_index("ix_expenses_tx_date", table_name="expenses")
    op.drop_index("ix_expenses_user_id", table_name="expenses")
    op.drop_index("ix_expenses_id", table_name="expenses")
    op.drop_table("expenses")
    op.drop_index("ix_invoices_tx_date", table_name="invoices")
    op.drop_index("ix_invoices_user_id", table_name="invoices")
    op.drop_index("ix_invoices_id", table_name="invoices")
    op.drop_table("invoices")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_index("ix_users_id", table_name="users")
    op.drop_table("users")

    transaction_status = postgresql.ENUM(
        "draft", "pending", "paid", "void", name="transaction_status", create_type=False
    )
    transaction_status.drop(op.get_bind(), checkfirst=True)

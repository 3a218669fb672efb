"""create deposit ledger and token tables

Revision ID: 20261019_000001
Revises:
Create Date: 2026-10-19 00:00:01.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

from accrual.models.types import TokenAmount

# revision identifiers, used by Alembic.
revision: str = "20261019_000001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

FORTY_FIVE_DAYS = 45 * 24 * 60 * 60
ONE_HUNDRED_EIGHTY_DAYS = 180 * 24 * 60 * 60


def upgrade() -> None:
    # Deposit ledger
    op.create_table(
        "deposit_records",
        sa.Column("id", sa.Integer(), nullable=False, autoincrement=True),
        sa.Column("record_id", sa.String(length=66), nullable=False),
        sa.Column("account", sa.String(length=42), nullable=False),
        sa.Column("sequence", sa.Integer(), nullable=False),
        sa.Column("principal", TokenAmount(), nullable=False),
        sa.Column("deposited_at", sa.BigInteger(), nullable=False),
        sa.Column("withdrawable_at", sa.BigInteger(), nullable=False),
        sa.Column("lock_up_duration", sa.BigInteger(), nullable=False),
        sa.Column("boosted", sa.Boolean(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("withdrawn_at", sa.BigInteger(), nullable=True),
        sa.Column("paid_amount", TokenAmount(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "account", "sequence", name="uq_deposit_records_account_sequence"
        ),
        sa.CheckConstraint(
            "principal >= 0", name="check_deposit_record_principal_non_negative"
        ),
        sa.CheckConstraint(
            f"lock_up_duration IN ({FORTY_FIVE_DAYS}, {ONE_HUNDRED_EIGHTY_DAYS})",
            name="check_deposit_record_lock_up_duration",
        ),
        sa.CheckConstraint(
            "withdrawable_at = deposited_at + lock_up_duration",
            name="check_deposit_record_withdrawable_at",
        ),
    )
    op.create_index(
        "ix_deposit_records_record_id", "deposit_records", ["record_id"], unique=True
    )
    op.create_index("ix_deposit_records_account", "deposit_records", ["account"])
    op.create_index("ix_deposit_records_status", "deposit_records", ["status"])
    op.create_index(
        "idx_deposit_records_status_withdrawable",
        "deposit_records",
        ["status", "withdrawable_at"],
    )

    # Token ledger
    op.create_table(
        "token_balances",
        sa.Column("id", sa.Integer(), nullable=False, autoincrement=True),
        sa.Column("asset", sa.String(length=16), nullable=False),
        sa.Column("account", sa.String(length=42), nullable=False),
        sa.Column("balance", TokenAmount(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "asset", "account", name="uq_token_balances_asset_account"
        ),
        sa.CheckConstraint("balance >= 0", name="check_token_balance_non_negative"),
    )
    op.create_index("ix_token_balances_asset", "token_balances", ["asset"])
    op.create_index("ix_token_balances_account", "token_balances", ["account"])

    op.create_table(
        "token_allowances",
        sa.Column("id", sa.Integer(), nullable=False, autoincrement=True),
        sa.Column("asset", sa.String(length=16), nullable=False),
        sa.Column("owner", sa.String(length=42), nullable=False),
        sa.Column("spender", sa.String(length=42), nullable=False),
        sa.Column("amount", TokenAmount(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "asset", "owner", "spender",
            name="uq_token_allowances_asset_owner_spender",
        ),
        sa.CheckConstraint("amount >= 0", name="check_token_allowance_non_negative"),
    )
    op.create_index("ix_token_allowances_owner", "token_allowances", ["owner"])

    op.create_table(
        "transfers",
        sa.Column("id", sa.Integer(), nullable=False, autoincrement=True),
        sa.Column("asset", sa.String(length=16), nullable=False),
        sa.Column("type", sa.String(length=20), nullable=False),
        sa.Column("payer", sa.String(length=42), nullable=True),
        sa.Column("payee", sa.String(length=42), nullable=False),
        sa.Column("amount", TokenAmount(), nullable=False),
        sa.Column("reference_id", sa.String(length=66), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("amount > 0", name="check_transfer_amount_positive"),
    )
    op.create_index("ix_transfers_asset", "transfers", ["asset"])
    op.create_index("ix_transfers_type", "transfers", ["type"])
    op.create_index("ix_transfers_payer", "transfers", ["payer"])
    op.create_index("ix_transfers_payee", "transfers", ["payee"])
    op.create_index("ix_transfers_reference_id", "transfers", ["reference_id"])
    op.create_index("ix_transfers_created_at", "transfers", ["created_at"])


def downgrade() -> None:
    op.drop_table("transfers")
    op.drop_table("token_allowances")
    op.drop_table("token_balances")
    op.drop_table("deposit_records")

"""initial schema: cards, accounts, atm sessions, transactions

Revision ID: 0001
Revises:
Create Date: 2026-10-19 09:00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


account_type_enum = sa.Enum(
    "CHECKING", "SAVINGS", name="account_type_enum", create_constraint=True
)
session_status_enum = sa.Enum(
    "CARD_INSERTED", "PIN_VERIFIED", "ACCOUNT_SELECTED", "CARD_BLOCKED", "CLOSED",
    name="session_status_enum",
    create_constraint=True,
)
transaction_type_enum = sa.Enum(
    "DEPOSIT", "WITHDRAWAL", "BALANCE_INQUIRY",
    name="transaction_type_enum",
    create_constraint=True,
)


def upgrade() -> None:
    op.create_table(
        "cards",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("card_number", sa.String(16), nullable=False),
        sa.Column("pin", sa.String(6), nullable=False),
        sa.Column("holder_name", sa.String(100), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_cards_card_number", "cards", ["card_number"], unique=True)

    op.create_table(
        "accounts",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("account_number", sa.String(20), nullable=False),
        sa.Column("account_type", account_type_enum, nullable=False),
        sa.Column("balance", sa.Integer(), nullable=False),
        sa.Column("card_id", sa.Integer(), sa.ForeignKey("cards.id"), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("balance >= 0", name="ck_accounts_balance_non_negative"),
    )
    op.create_index(
        "ix_accounts_account_number", "accounts", ["account_number"], unique=True
    )
    op.create_index("ix_accounts_card_id", "accounts", ["card_id"])

    op.create_table(
        "atm_sessions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("session_id", sa.String(36), nullable=False),
        sa.Column("card_id", sa.Integer(), sa.ForeignKey("cards.id"), nullable=True),
        sa.Column(
            "selected_account_id",
            sa.Integer(),
            sa.ForeignKey("accounts.id"),
            nullable=True,
        ),
        sa.Column("status", session_status_enum, nullable=False),
        sa.Column("pin_attempts", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("closed_at", sa.DateTime(), nullable=True),
    )
    op.create_index(
        "ix_atm_sessions_session_id", "atm_sessions", ["session_id"], unique=True
    )
    op.create_index("ix_atm_sessions_card_id", "atm_sessions", ["card_id"])

    op.create_table(
        "transactions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "account_id", sa.Integer(), sa.ForeignKey("accounts.id"), nullable=False
        ),
        sa.Column("transaction_type", transaction_type_enum, nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("balance_after", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_transactions_account_id", "transactions", ["account_id"])
    op.create_index("ix_transactions_created_at", "transactions", ["created_at"])


def downgrade() -> None:
    op.drop_table("transactions")
    op.drop_table("atm_sessions")
    op.drop_table("accounts")
    op.drop_table("cards")

    # Named enum types outlive their tables on PostgreSQL
    bind = op.get_bind()
    transaction_type_enum.drop(bind, checkfirst=True)
    session_status_enum.drop(bind, checkfirst=True)
    account_type_enum.drop(bind, checkfirst=True)

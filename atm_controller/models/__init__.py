"""
Database models package.

All models must be imported here so that Alembic can discover
them through Base.metadata when generating migrations.
"""

from atm_controller.models.base import Base
from atm_controller.models.enums import (
    AccountType,
    SessionStatus,
    TransactionType,
    ATMOperation,
)
from atm_controller.models.card import Card
from atm_controller.models.account import Account
from atm_controller.models.atm_session import ATMSession, MAX_PIN_ATTEMPTS
from atm_controller.models.transaction import Transaction

__all__ = [
    "Base",
    "AccountType",
    "SessionStatus",
    "TransactionType",
    "ATMOperation",
    "Card",
    "Account",
    "ATMSession",
    "MAX_PIN_ATTEMPTS",
    "Transaction",
]

"""
Shared enumerations for database models.

Enums are mapped to database enums so that only valid values
can be stored.
"""

import enum


class AccountType(str, enum.Enum):
    """Kinds of account a card can be linked to."""
    CHECKING = "CHECKING"
    SAVINGS = "SAVINGS"


class SessionStatus(str, enum.Enum):
    """Lifecycle of a single ATM session."""
    CARD_INSERTED = "CARD_INSERTED"
    PIN_VERIFIED = "PIN_VERIFIED"
    ACCOUNT_SELECTED = "ACCOUNT_SELECTED"
    CARD_BLOCKED = "CARD_BLOCKED"
    CLOSED = "CLOSED"


class TransactionType(str, enum.Enum):
    """Kind of a recorded ledger transaction."""
    DEPOSIT = "DEPOSIT"
    WITHDRAWAL = "WITHDRAWAL"
    BALANCE_INQUIRY = "BALANCE_INQUIRY"


class ATMOperation(str, enum.Enum):
    """Operation requested by the customer at the machine."""
    CHECK_BALANCE = "CHECK_BALANCE"
    DEPOSIT = "DEPOSIT"
    WITHDRAW = "WITHDRAW"

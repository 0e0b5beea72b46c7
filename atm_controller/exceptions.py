"""
Failures raised by the bank and session services.

Every failure is an ATMError tagged with one ErrorKind from a closed
set, plus a details dict with the context needed to explain it
(account number, limits, shortfall...). The transaction orchestrator
dispatches on the kind; nothing else inspects the concrete class.

A wrong PIN is not a failure: it is a normal verification result.
"""

import enum

from atm_controller.models.card import mask_card_number


class ErrorKind(str, enum.Enum):
    CARD_NOT_FOUND = "CARD_NOT_FOUND"
    CARD_BLOCKED = "CARD_BLOCKED"
    SESSION_NOT_FOUND = "SESSION_NOT_FOUND"
    ACCOUNT_NOT_FOUND = "ACCOUNT_NOT_FOUND"
    INVALID_STATE = "INVALID_STATE"
    INVALID_AMOUNT = "INVALID_AMOUNT"
    DAILY_LIMIT_EXCEEDED = "DAILY_LIMIT_EXCEEDED"
    INSUFFICIENT_FUNDS = "INSUFFICIENT_FUNDS"
    SYSTEM_ERROR = "SYSTEM_ERROR"


class ATMError(Exception):
    """Base class for every expected failure in the ATM core."""

    kind: ErrorKind = ErrorKind.SYSTEM_ERROR

    def __init__(self, message: str, **details):
        super().__init__(message)
        self.message = message
        self.details = details


class CardNotFound(ATMError):
    kind = ErrorKind.CARD_NOT_FOUND

    def __init__(self, card_number: str):
        super().__init__(
            f"Card not found: {mask_card_number(card_number)}",
            card_number=mask_card_number(card_number),
        )


class CardBlocked(ATMError):
    kind = ErrorKind.CARD_BLOCKED

    def __init__(self, card_number: str):
        super().__init__(
            "Card is inactive or has been blocked",
            card_number=mask_card_number(card_number),
        )


class SessionNotFound(ATMError):
    kind = ErrorKind.SESSION_NOT_FOUND

    def __init__(self, session_id: str):
        super().__init__(
            f"Session {session_id} not found or already closed",
            session_id=session_id,
        )


class AccountNotFound(ATMError):
    kind = ErrorKind.ACCOUNT_NOT_FOUND

    def __init__(self, account_number: str, reason: str | None = None):
        super().__init__(
            reason or f"Account not found with number: {account_number}",
            account_number=account_number,
        )


class InvalidAccount(AccountNotFound):
    """The account exists, but not under the card used in this session."""

    def __init__(self, account_number: str):
        super().__init__(
            account_number,
            reason=f"Account {account_number} is not linked to this card",
        )


class InvalidState(ATMError):
    kind = ErrorKind.INVALID_STATE

    def __init__(self, message: str, current_status=None):
        details = {}
        if current_status is not None:
            details["current_status"] = getattr(
                current_status, "value", current_status
            )
        super().__init__(message, **details)


class InvalidAmount(ATMError):
    kind = ErrorKind.INVALID_AMOUNT

    def __init__(
        self,
        amount: int,
        reason: str | None = None,
        minimum: int | None = None,
        maximum: int | None = None,
    ):
        details = {"amount": amount}
        if minimum is not None:
            details["minimum"] = minimum
        if maximum is not None:
            details["maximum"] = maximum
        super().__init__(reason or f"Invalid transaction amount: {amount}", **details)


class DailyLimitExceeded(ATMError):
    kind = ErrorKind.DAILY_LIMIT_EXCEEDED

    def __init__(self, account_number: str, daily_limit: int, current_total: int):
        super().__init__(
            f"Daily transaction limit exceeded for account {account_number}",
            account_number=account_number,
            daily_limit=daily_limit,
            current_total=current_total,
            available_amount=max(daily_limit - current_total, 0),
        )


class InsufficientFunds(ATMError):
    kind = ErrorKind.INSUFFICIENT_FUNDS

    def __init__(self, account_number: str, requested: int, available: int):
        super().__init__(
            f"Insufficient funds in account. "
            f"Requested: {requested}, Available: {available}",
            account_number=account_number,
            requested_amount=requested,
            available_balance=available,
            shortfall=requested - available,
        )


class BankSystemError(ATMError):
    kind = ErrorKind.SYSTEM_ERROR

    def __init__(self, message: str):
        super().__init__(f"Bank system error: {message}")

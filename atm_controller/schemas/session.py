"""
Result objects returned by the session service.
"""

from pydantic import BaseModel

from atm_controller.models.enums import AccountType


class AccountSummary(BaseModel):
    account_number: str
    account_type: AccountType

    model_config = {"from_attributes": True}


class CardInsertionResult(BaseModel):
    session_id: str


class PinVerificationResult(BaseModel):
    """
    Outcome of a PIN check.

    A wrong PIN is a normal result, not an error, because the
    customer may retry within the same session until the card
    is blocked.
    """
    verified: bool
    remaining_attempts: int | None = None
    card_blocked: bool = False
    accounts: list[AccountSummary] = []


class AccountSelectionResult(BaseModel):
    account: AccountSummary


class BalanceResult(BaseModel):
    account_number: str
    balance: int


class DepositResult(BaseModel):
    previous_balance: int
    deposited_amount: int
    new_balance: int


class WithdrawalResult(BaseModel):
    previous_balance: int
    withdrawn_amount: int
    new_balance: int

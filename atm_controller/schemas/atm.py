"""
Pydantic schemas for the ATM transaction endpoint.

Field names are snake_case in Python and camelCase on the wire.
"""

from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel

from atm_controller.models.enums import ATMOperation


class ATMRequest(BaseModel):
    """One complete ATM interaction: card, PIN, account and operation."""
    card_number: str = Field(pattern=r"^[0-9]{16}$")
    pin: str = Field(pattern=r"^[0-9]{4,6}$")
    account_number: str = Field(min_length=1, max_length=20)
    transaction_type: ATMOperation
    # Required for DEPOSIT/WITHDRAW; non-positive values are rejected
    # by the transaction service with INVALID_AMOUNT.
    amount: int | None = None

    model_config = {"alias_generator": to_camel, "populate_by_name": True}

    @field_validator("amount", mode="before")
    @classmethod
    def amount_must_be_an_integer(cls, v):
        # Lax mode would turn true into 1 and "500" into 500
        if v is not None and (isinstance(v, bool) or not isinstance(v, int)):
            raise ValueError("amount must be an integer")
        return v


class ATMResponse(BaseModel):
    success: bool
    message: str
    transaction_type: str

    account_number: str | None = None
    account_type: str | None = None

    # Balance information
    balance: int | None = None
    previous_balance: int | None = None
    transaction_amount: int | None = None
    new_balance: int | None = None

    # Error information
    error_code: str | None = None
    error_details: str | None = None

    model_config = {"alias_generator": to_camel, "populate_by_name": True}

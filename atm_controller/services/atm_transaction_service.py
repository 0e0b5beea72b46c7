"""
ATM transaction service — one customer request, start to finish.

Each request runs, strictly in this order:
1. Insert the card (opens a session)
2. Verify the PIN
3. Check the requested account is one of the card's accounts
4. Select the account
5. Check balance, deposit or withdraw
6. Close the session

The first failure stops the flow. Every outcome, success or not,
comes back as an ATMResponse with a stable error code; nothing is
raised to the caller. After a failure the session is closed on a
best-effort basis, and a failure to close never hides the original
error.
"""

import logging

from sqlalchemy.orm import Session

from atm_controller.config import Settings
from atm_controller.exceptions import ATMError, ErrorKind
from atm_controller.models.enums import ATMOperation
from atm_controller.schemas.atm import ATMRequest, ATMResponse
from atm_controller.schemas.session import AccountSummary, PinVerificationResult
from atm_controller.services.session_service import SessionService

logger = logging.getLogger(__name__)


# Error codes exposed to callers
INVALID_PIN = "INVALID_PIN"
CARD_BLOCKED = "CARD_BLOCKED"
ACCOUNT_NOT_FOUND = "ACCOUNT_NOT_FOUND"
INVALID_AMOUNT = "INVALID_AMOUNT"
BAD_REQUEST = "BAD_REQUEST"
INVALID_STATE = "INVALID_STATE"
INTERNAL_ERROR = "INTERNAL_ERROR"

# Maps each failure kind to the error code the caller sees.
# Insufficient funds is a state failure of the account, not a bad amount.
ERROR_KIND_TO_CODE = {
    ErrorKind.CARD_NOT_FOUND: BAD_REQUEST,
    ErrorKind.SESSION_NOT_FOUND: BAD_REQUEST,
    ErrorKind.ACCOUNT_NOT_FOUND: ACCOUNT_NOT_FOUND,
    ErrorKind.INVALID_STATE: INVALID_STATE,
    ErrorKind.INSUFFICIENT_FUNDS: INVALID_STATE,
    ErrorKind.INVALID_AMOUNT: INVALID_AMOUNT,
    ErrorKind.DAILY_LIMIT_EXCEEDED: INVALID_AMOUNT,
    ErrorKind.CARD_BLOCKED: CARD_BLOCKED,
    ErrorKind.SYSTEM_ERROR: INTERNAL_ERROR,
}


class ATMTransactionService:

    def __init__(self, db: Session, settings: Settings | None = None):
        self.db = db
        self.sessions = SessionService(db, settings)

    def process_transaction(self, request: ATMRequest) -> ATMResponse:
        """Run one complete ATM interaction and describe the outcome."""
        session_id = None

        try:
            # Step 1: Insert card
            session_id = self.sessions.insert_card(request.card_number).session_id

            # Step 2: Verify PIN. A failed PIN leaves the session as it
            # is: retryable while CARD_INSERTED, terminal once blocked.
            pin_result = self.sessions.verify_pin(session_id, request.pin)
            if not pin_result.verified:
                return self._pin_error_response(request, pin_result)

            # Step 3: Validate the requested account
            target = next(
                (
                    a for a in pin_result.accounts
                    if a.account_number == request.account_number
                ),
                None,
            )
            if target is None:
                self.sessions.end_session(session_id)
                return self._account_not_found_response(
                    request, [a.account_number for a in pin_result.accounts]
                )

            # Step 4: Select account
            self.sessions.select_account(session_id, request.account_number)

            # Step 5: Perform the operation
            if request.transaction_type == ATMOperation.CHECK_BALANCE:
                response = self._process_balance_inquiry(session_id, target)
            elif request.transaction_type == ATMOperation.DEPOSIT:
                if request.amount is None or request.amount <= 0:
                    self.sessions.end_session(session_id)
                    return self._invalid_amount_response(request, "Deposit")
                response = self._process_deposit(session_id, request.amount, target)
            else:
                if request.amount is None or request.amount <= 0:
                    self.sessions.end_session(session_id)
                    return self._invalid_amount_response(request, "Withdrawal")
                response = self._process_withdrawal(
                    session_id, request.amount, target
                )

            # Step 6: End session
            self.sessions.end_session(session_id)
            return response

        except ATMError as e:
            logger.info(f"Transaction failed ({e.kind.value}): {e.message}")
            self._cleanup_session(session_id)
            code = ERROR_KIND_TO_CODE.get(e.kind, INTERNAL_ERROR)
            message = e.message
            if code == INTERNAL_ERROR:
                message = f"Transaction failed: {e.message}"
            return self._error_response(request, code, message)

        except Exception as e:
            logger.exception("Unexpected error while processing ATM transaction")
            self._cleanup_session(session_id)
            return self._error_response(
                request, INTERNAL_ERROR, f"Transaction failed: {e}"
            )

    # --- Operations ---

    def _process_balance_inquiry(
        self, session_id: str, account: AccountSummary
    ) -> ATMResponse:
        result = self.sessions.check_balance(session_id)
        return ATMResponse(
            success=True,
            message="Balance inquiry successful",
            transaction_type=ATMOperation.CHECK_BALANCE.value,
            account_number=account.account_number,
            account_type=account.account_type.value,
            balance=result.balance,
        )

    def _process_deposit(
        self, session_id: str, amount: int, account: AccountSummary
    ) -> ATMResponse:
        result = self.sessions.deposit(session_id, amount)
        return ATMResponse(
            success=True,
            message="Deposit successful",
            transaction_type=ATMOperation.DEPOSIT.value,
            account_number=account.account_number,
            account_type=account.account_type.value,
            previous_balance=result.previous_balance,
            transaction_amount=result.deposited_amount,
            new_balance=result.new_balance,
        )

    def _process_withdrawal(
        self, session_id: str, amount: int, account: AccountSummary
    ) -> ATMResponse:
        result = self.sessions.withdraw(session_id, amount)
        return ATMResponse(
            success=True,
            message="Withdrawal successful. Please take your cash.",
            transaction_type=ATMOperation.WITHDRAW.value,
            account_number=account.account_number,
            account_type=account.account_type.value,
            previous_balance=result.previous_balance,
            transaction_amount=result.withdrawn_amount,
            new_balance=result.new_balance,
        )

    # --- Failure results ---

    def _pin_error_response(
        self, request: ATMRequest, result: PinVerificationResult
    ) -> ATMResponse:
        if result.card_blocked:
            message = "Card has been blocked"
        else:
            message = f"Invalid PIN. {result.remaining_attempts} attempts remaining"
        return ATMResponse(
            success=False,
            message=message,
            transaction_type=request.transaction_type.value,
            error_code=CARD_BLOCKED if result.card_blocked else INVALID_PIN,
            error_details="PIN verification failed",
        )

    def _account_not_found_response(
        self, request: ATMRequest, available: list[str]
    ) -> ATMResponse:
        return ATMResponse(
            success=False,
            message=(
                f"Account {request.account_number} not found. "
                f"Available accounts: {', '.join(available)}"
            ),
            transaction_type=request.transaction_type.value,
            error_code=ACCOUNT_NOT_FOUND,
            error_details="The specified account does not exist for this card",
        )

    def _invalid_amount_response(
        self, request: ATMRequest, operation: str
    ) -> ATMResponse:
        return ATMResponse(
            success=False,
            message=f"{operation} amount is required and must be positive",
            transaction_type=request.transaction_type.value,
            error_code=INVALID_AMOUNT,
            error_details="Amount must be greater than 0",
        )

    def _error_response(
        self, request: ATMRequest, error_code: str, message: str
    ) -> ATMResponse:
        return ATMResponse(
            success=False,
            message=message,
            transaction_type=request.transaction_type.value,
            error_code=error_code,
            error_details=message,
        )

    def _cleanup_session(self, session_id: str | None) -> None:
        if session_id is None:
            return
        try:
            self.sessions.end_session(session_id)
        except Exception:
            logger.warning(
                f"Could not close session {session_id} after failure",
                exc_info=True,
            )

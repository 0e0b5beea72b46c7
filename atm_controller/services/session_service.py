"""
Session service — the ATM session state machine.

A session moves CARD_INSERTED -> PIN_VERIFIED -> ACCOUNT_SELECTED
and is then closed. Three wrong PINs in one session move it to
CARD_BLOCKED instead and deactivate the card at the bank. Every
operation checks the session state first and raises InvalidState
when called out of order.

Session-scoped balance operations (check_balance, deposit,
withdraw) also live here, because each one must append a
transaction record for the account selected in the session.
"""

import logging
import uuid
from datetime import datetime

from sqlalchemy.orm import Session

from atm_controller.config import Settings
from atm_controller.exceptions import (
    CardBlocked,
    CardNotFound,
    InvalidAccount,
    InvalidState,
    SessionNotFound,
)
from atm_controller.models.atm_session import ATMSession, MAX_PIN_ATTEMPTS
from atm_controller.models.account import Account
from atm_controller.models.enums import SessionStatus, TransactionType
from atm_controller.models.transaction import Transaction
from atm_controller.schemas.session import (
    AccountSelectionResult,
    AccountSummary,
    BalanceResult,
    CardInsertionResult,
    DepositResult,
    PinVerificationResult,
    WithdrawalResult,
)
from atm_controller.services.bank_service import BankService, bank_system_errors
from atm_controller.services.ledger_store import LedgerStore

logger = logging.getLogger(__name__)


class SessionService:

    def __init__(self, db: Session, settings: Settings | None = None):
        self.db = db
        self.store = LedgerStore(db)
        self.bank = BankService(db, settings)

    def insert_card(self, card_number: str) -> CardInsertionResult:
        """Open a new session for a card. The PIN counter starts at zero."""
        card = self.bank.get_card_info(card_number)
        if not card:
            raise CardNotFound(card_number)
        if not card.is_active:
            raise CardBlocked(card_number)

        session = ATMSession(
            session_id=str(uuid.uuid4()),
            card_id=card.id,
            status=SessionStatus.CARD_INSERTED,
            pin_attempts=0,
        )
        with bank_system_errors("open session"):
            self.store.save_session(session)

        logger.info(f"Session {session.session_id} opened")
        return CardInsertionResult(session_id=session.session_id)

    def verify_pin(self, session_id: str, pin: str) -> PinVerificationResult:
        """
        Check the PIN for the card in this session.

        A wrong PIN is reported in the result, not raised. The third
        wrong PIN blocks both the session and the card.
        """
        session = self._get_active_session(session_id)
        self._require_status(
            session, SessionStatus.CARD_INSERTED, "Invalid session state"
        )

        card_number = session.card.card_number

        if not self.bank.validate_pin(card_number, pin):
            session.pin_attempts += 1

            if session.pin_attempts >= MAX_PIN_ATTEMPTS:
                self._transition(session, SessionStatus.CARD_BLOCKED)
                self._save(session)
                self.bank.block_card(card_number)
                logger.warning(
                    f"Session {session_id} blocked after "
                    f"{session.pin_attempts} failed PIN attempts"
                )
                return PinVerificationResult(
                    verified=False,
                    remaining_attempts=0,
                    card_blocked=True,
                )

            self._save(session)
            return PinVerificationResult(
                verified=False,
                remaining_attempts=session.remaining_pin_attempts,
            )

        self._transition(session, SessionStatus.PIN_VERIFIED)
        self._save(session)

        accounts = self.bank.get_accounts(card_number)
        return PinVerificationResult(
            verified=True,
            accounts=[AccountSummary.model_validate(a) for a in accounts],
        )

    def select_account(
        self, session_id: str, account_number: str
    ) -> AccountSelectionResult:
        """
        Choose which of the card's accounts this session operates on.

        The account must belong to the session's card; an account
        that exists under a different card is rejected.
        """
        session = self._get_active_session(session_id)
        self._require_status(session, SessionStatus.PIN_VERIFIED, "PIN not verified")

        accounts = self.bank.get_accounts(session.card.card_number)
        selected = next(
            (a for a in accounts if a.account_number == account_number), None
        )
        if selected is None:
            raise InvalidAccount(account_number)

        self._transition(session, SessionStatus.ACCOUNT_SELECTED)
        session.selected_account = selected
        self._save(session)

        return AccountSelectionResult(account=AccountSummary.model_validate(selected))

    def check_balance(self, session_id: str) -> BalanceResult:
        account = self._get_selected_account(session_id)
        balance = self.bank.get_balance(account.account_number)

        self._record(account, TransactionType.BALANCE_INQUIRY, 0, balance)
        return BalanceResult(account_number=account.account_number, balance=balance)

    def deposit(self, session_id: str, amount: int) -> DepositResult:
        account = self._get_selected_account(session_id)
        previous_balance = self.bank.get_balance(account.account_number)

        new_balance = self.bank.deposit(account.account_number, amount)

        self._record(account, TransactionType.DEPOSIT, amount, new_balance)
        return DepositResult(
            previous_balance=previous_balance,
            deposited_amount=amount,
            new_balance=new_balance,
        )

    def withdraw(self, session_id: str, amount: int) -> WithdrawalResult:
        account = self._get_selected_account(session_id)
        previous_balance = self.bank.get_balance(account.account_number)

        new_balance = self.bank.withdraw(account.account_number, amount)

        self._record(account, TransactionType.WITHDRAWAL, amount, new_balance)
        return WithdrawalResult(
            previous_balance=previous_balance,
            withdrawn_amount=amount,
            new_balance=new_balance,
        )

    def end_session(self, session_id: str) -> bool:
        """
        Close a session.

        Returns False, without error, if the session is already
        closed or was blocked (both are terminal). Raises
        SessionNotFound for an unknown session id.
        """
        with bank_system_errors("look up session"):
            session = self.store.find_session_by_id(session_id)
        if not session:
            raise SessionNotFound(session_id)

        if not session.can_transition_to(SessionStatus.CLOSED):
            return False

        session.status = SessionStatus.CLOSED
        session.closed_at = datetime.utcnow()
        session.selected_account = None
        self._save(session)

        logger.info(f"Session {session_id} closed")
        return True

    def _get_active_session(self, session_id: str) -> ATMSession:
        with bank_system_errors("look up session"):
            session = self.store.find_active_session_by_id(session_id)
        if not session:
            raise SessionNotFound(session_id)
        if session.card is None:
            raise InvalidState("No card in session")
        return session

    def _get_selected_account(self, session_id: str) -> Account:
        session = self._get_active_session(session_id)
        self._require_status(
            session, SessionStatus.ACCOUNT_SELECTED, "No account selected"
        )
        if session.selected_account is None:
            raise InvalidState("No account in session")
        return session.selected_account

    def _require_status(
        self, session: ATMSession, expected: SessionStatus, message: str
    ) -> None:
        if session.status != expected:
            raise InvalidState(message, current_status=session.status)

    def _transition(self, session: ATMSession, new_status: SessionStatus) -> None:
        if not session.can_transition_to(new_status):
            raise InvalidState(
                f"Cannot transition from {session.status.value} "
                f"to {new_status.value}",
                current_status=session.status,
            )
        session.status = new_status

    def _save(self, session: ATMSession) -> None:
        with bank_system_errors("save session"):
            self.store.save_session(session)

    def _record(
        self,
        account: Account,
        transaction_type: TransactionType,
        amount: int,
        balance_after: int,
    ) -> None:
        with bank_system_errors("record transaction"):
            self.store.save_transaction(Transaction(
                account_id=account.id,
                transaction_type=transaction_type,
                amount=amount,
                balance_after=balance_after,
            ))

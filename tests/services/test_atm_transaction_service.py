"""
End-to-end tests for the ATMTransactionService.
"""

import pytest
from sqlalchemy import select

from atm_controller.exceptions import BankSystemError
from atm_controller.models import (
    ATMOperation,
    ATMSession,
    SessionStatus,
    TransactionType,
)
from atm_controller.schemas.atm import ATMRequest
from atm_controller.services.atm_transaction_service import ATMTransactionService
from atm_controller.services.ledger_store import LedgerStore
from atm_controller.services.session_service import SessionService

from conftest import (
    BLOCKED_CARD_NUMBER,
    CARD_NUMBER,
    CARD_PIN,
    CHECKING_NUMBER,
    OTHER_CHECKING_NUMBER,
    SAVINGS_NUMBER,
)


def make_request(operation, amount=None, pin=CARD_PIN,
                 account_number=CHECKING_NUMBER, card_number=CARD_NUMBER):
    return ATMRequest(
        card_number=card_number,
        pin=pin,
        account_number=account_number,
        transaction_type=operation,
        amount=amount,
    )


def all_sessions(db_session):
    return db_session.execute(select(ATMSession)).scalars().all()


def transactions_of(db_session, account_number):
    store = LedgerStore(db_session)
    account = store.find_account_by_number(account_number)
    return store.find_transactions_by_account(account.id)


def balance_of(db_session, account_number):
    return LedgerStore(db_session).find_account_by_number(account_number).balance


# --- Happy Paths ---

class TestSuccessfulTransactions:

    def test_check_balance(self, db_session, bank_data, settings):
        service = ATMTransactionService(db_session, settings)

        response = service.process_transaction(make_request(ATMOperation.CHECK_BALANCE))

        assert response.success is True
        assert response.message == "Balance inquiry successful"
        assert response.transaction_type == "CHECK_BALANCE"
        assert response.account_number == CHECKING_NUMBER
        assert response.account_type == "CHECKING"
        assert response.balance == 1000
        assert response.error_code is None

        records = transactions_of(db_session, CHECKING_NUMBER)
        assert len(records) == 1
        assert records[0].transaction_type == TransactionType.BALANCE_INQUIRY
        assert records[0].amount == 0

        [session] = all_sessions(db_session)
        assert session.status == SessionStatus.CLOSED

    def test_deposit(self, db_session, bank_data, settings):
        service = ATMTransactionService(db_session, settings)

        response = service.process_transaction(
            make_request(ATMOperation.DEPOSIT, amount=500)
        )

        assert response.success is True
        assert response.previous_balance == 1000
        assert response.transaction_amount == 500
        assert response.new_balance == 1500
        assert response.balance is None
        assert balance_of(db_session, CHECKING_NUMBER) == 1500

        [record] = transactions_of(db_session, CHECKING_NUMBER)
        assert record.transaction_type == TransactionType.DEPOSIT
        assert record.balance_after == 1500

    def test_withdraw(self, db_session, bank_data, settings):
        service = ATMTransactionService(db_session, settings)

        response = service.process_transaction(
            make_request(ATMOperation.WITHDRAW, amount=300, account_number=SAVINGS_NUMBER)
        )

        assert response.success is True
        assert response.message == "Withdrawal successful. Please take your cash."
        assert response.account_type == "SAVINGS"
        assert response.previous_balance == 5000
        assert response.new_balance == 4700
        assert balance_of(db_session, SAVINGS_NUMBER) == 4700

        [record] = transactions_of(db_session, SAVINGS_NUMBER)
        assert record.transaction_type == TransactionType.WITHDRAWAL
        assert record.amount == 300


# --- PIN Failures ---

class TestPinFailures:

    def test_wrong_pin(self, db_session, bank_data, settings):
        service = ATMTransactionService(db_session, settings)

        response = service.process_transaction(
            make_request(ATMOperation.CHECK_BALANCE, pin="0000")
        )

        assert response.success is False
        assert response.error_code == "INVALID_PIN"
        assert response.message == "Invalid PIN. 2 attempts remaining"
        assert response.error_details == "PIN verification failed"

        # Not closed: the customer may retry in the same session
        [session] = all_sessions(db_session)
        assert session.status == SessionStatus.CARD_INSERTED
        assert transactions_of(db_session, CHECKING_NUMBER) == []

    def test_each_request_starts_a_fresh_pin_count(
        self, db_session, bank_data, settings
    ):
        service = ATMTransactionService(db_session, settings)
        request = make_request(ATMOperation.CHECK_BALANCE, pin="0000")

        responses = [service.process_transaction(request) for _ in range(3)]

        assert {r.message for r in responses} == {"Invalid PIN. 2 attempts remaining"}
        assert bank_data.is_active is True

    def test_blocked_card(self, db_session, bank_data, settings):
        service = ATMTransactionService(db_session, settings)

        response = service.process_transaction(
            make_request(ATMOperation.CHECK_BALANCE, card_number=BLOCKED_CARD_NUMBER, pin="0000")
        )

        assert response.success is False
        assert response.error_code == "CARD_BLOCKED"
        assert all_sessions(db_session) == []

    def test_card_blocked_in_session_is_rejected_afterwards(
        self, db_session, bank_data, settings
    ):
        sessions = SessionService(db_session, settings)
        session_id = sessions.insert_card(CARD_NUMBER).session_id
        for _ in range(3):
            sessions.verify_pin(session_id, "0000")

        service = ATMTransactionService(db_session, settings)
        response = service.process_transaction(make_request(ATMOperation.CHECK_BALANCE))

        assert response.error_code == "CARD_BLOCKED"
        assert response.message == "Card is inactive or has been blocked"


# --- Request Failures ---

class TestRequestFailures:

    def test_unknown_card(self, db_session, bank_data, settings):
        service = ATMTransactionService(db_session, settings)

        response = service.process_transaction(
            make_request(ATMOperation.CHECK_BALANCE, card_number="9999999999999999")
        )

        assert response.success is False
        assert response.error_code == "BAD_REQUEST"
        assert "9999****9999" in response.message

    def test_account_of_another_card(self, db_session, bank_data, settings):
        service = ATMTransactionService(db_session, settings)

        response = service.process_transaction(
            make_request(ATMOperation.CHECK_BALANCE, account_number=OTHER_CHECKING_NUMBER)
        )

        assert response.success is False
        assert response.error_code == "ACCOUNT_NOT_FOUND"
        assert response.message == (
            f"Account {OTHER_CHECKING_NUMBER} not found. "
            f"Available accounts: {CHECKING_NUMBER}, {SAVINGS_NUMBER}"
        )
        [session] = all_sessions(db_session)
        assert session.status == SessionStatus.CLOSED

    @pytest.mark.parametrize("operation", [ATMOperation.DEPOSIT, ATMOperation.WITHDRAW])
    @pytest.mark.parametrize("amount", [None, 0, -100])
    def test_missing_or_non_positive_amount(
        self, db_session, bank_data, settings, operation, amount
    ):
        service = ATMTransactionService(db_session, settings)

        response = service.process_transaction(make_request(operation, amount=amount))

        assert response.success is False
        assert response.error_code == "INVALID_AMOUNT"
        assert response.message.endswith("amount is required and must be positive")
        assert balance_of(db_session, CHECKING_NUMBER) == 1000
        assert transactions_of(db_session, CHECKING_NUMBER) == []
        [session] = all_sessions(db_session)
        assert session.status == SessionStatus.CLOSED

    def test_amount_above_limit(self, db_session, bank_data, settings):
        service = ATMTransactionService(db_session, settings)

        response = service.process_transaction(
            make_request(ATMOperation.DEPOSIT, amount=20000)
        )

        assert response.error_code == "INVALID_AMOUNT"
        assert response.message == "Deposit amount exceeds maximum limit of 10000"
        assert balance_of(db_session, CHECKING_NUMBER) == 1000
        [session] = all_sessions(db_session)
        assert session.status == SessionStatus.CLOSED

    def test_insufficient_funds(self, db_session, bank_data, settings):
        service = ATMTransactionService(db_session, settings)

        response = service.process_transaction(
            make_request(ATMOperation.WITHDRAW, amount=1500)
        )

        assert response.success is False
        assert response.error_code == "INVALID_STATE"
        assert "Requested: 1500, Available: 1000" in response.message
        assert balance_of(db_session, CHECKING_NUMBER) == 1000
        assert transactions_of(db_session, CHECKING_NUMBER) == []
        [session] = all_sessions(db_session)
        assert session.status == SessionStatus.CLOSED

    def test_daily_withdrawal_limit(self, db_session, bank_data, settings):
        settings.MAX_DAILY_WITHDRAWAL = 1000
        service = ATMTransactionService(db_session, settings)

        first = service.process_transaction(
            make_request(ATMOperation.WITHDRAW, amount=800, account_number=SAVINGS_NUMBER)
        )
        second = service.process_transaction(
            make_request(ATMOperation.WITHDRAW, amount=300, account_number=SAVINGS_NUMBER)
        )

        assert first.success is True
        assert second.success is False
        assert second.error_code == "INVALID_AMOUNT"
        assert balance_of(db_session, SAVINGS_NUMBER) == 4200


# --- Unexpected Failures ---

class TestSystemFailures:

    def test_unexpected_error_becomes_internal_error(
        self, db_session, bank_data, settings, monkeypatch
    ):
        def explode(self, session_id, amount):
            raise RuntimeError("cash dispenser jammed")

        monkeypatch.setattr(SessionService, "withdraw", explode)
        service = ATMTransactionService(db_session, settings)

        response = service.process_transaction(
            make_request(ATMOperation.WITHDRAW, amount=100)
        )

        assert response.success is False
        assert response.error_code == "INTERNAL_ERROR"
        assert response.message == "Transaction failed: cash dispenser jammed"
        [session] = all_sessions(db_session)
        assert session.status == SessionStatus.CLOSED

    def test_bank_system_error(self, db_session, bank_data, settings, monkeypatch):
        def unavailable(self, account_number):
            raise BankSystemError("Unable to retrieve balance")

        monkeypatch.setattr(
            "atm_controller.services.bank_service.BankService.get_balance",
            unavailable,
        )
        service = ATMTransactionService(db_session, settings)

        response = service.process_transaction(make_request(ATMOperation.CHECK_BALANCE))

        assert response.error_code == "INTERNAL_ERROR"
        assert "Bank system error" in response.message

    def test_cleanup_failure_does_not_mask_original_error(
        self, db_session, bank_data, settings, monkeypatch
    ):
        def explode(self, session_id, amount):
            raise RuntimeError("original failure")

        def cannot_close(self, session_id):
            raise RuntimeError("cleanup failure")

        monkeypatch.setattr(SessionService, "deposit", explode)
        service = ATMTransactionService(db_session, settings)
        monkeypatch.setattr(SessionService, "end_session", cannot_close)

        response = service.process_transaction(
            make_request(ATMOperation.DEPOSIT, amount=100)
        )

        assert response.error_code == "INTERNAL_ERROR"
        assert "original failure" in response.message

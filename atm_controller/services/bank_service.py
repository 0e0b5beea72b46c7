"""
Bank service — the bank-side rules the ATM relies on.

This service owns:
1. PIN validation against the card on file
2. Amount validation (minimum, per-transaction and daily maxima)
3. Balance changes for deposits and withdrawals
4. Blocking cards after repeated PIN failures

All amount checks run before the balance is touched, so an
invalid operation is never partially applied. Database failures
surface as BankSystemError.
"""

import logging
from contextlib import contextmanager
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from atm_controller.config import Settings, get_settings
from atm_controller.exceptions import (
    AccountNotFound,
    BankSystemError,
    CardBlocked,
    CardNotFound,
    DailyLimitExceeded,
    InsufficientFunds,
    InvalidAmount,
)
from atm_controller.models.account import Account
from atm_controller.models.card import Card, mask_card_number
from atm_controller.models.enums import TransactionType
from atm_controller.services.ledger_store import LedgerStore

logger = logging.getLogger(__name__)


@contextmanager
def bank_system_errors(action: str):
    """Re-raise database failures as BankSystemError."""
    try:
        yield
    except SQLAlchemyError as e:
        logger.error(f"Database error while trying to {action}", exc_info=True)
        raise BankSystemError(f"Unable to {action}") from e


class BankService:

    def __init__(self, db: Session, settings: Settings | None = None):
        self.db = db
        self.store = LedgerStore(db)
        self.settings = settings or get_settings()

    def validate_pin(self, card_number: str, pin: str) -> bool:
        """
        Check a PIN against the card on file.

        Raises CardNotFound for an unknown card and CardBlocked for
        an inactive one. The comparison is an exact string match.
        """
        with bank_system_errors("validate PIN"):
            card = self.store.find_card_by_number(card_number)

        if not card:
            raise CardNotFound(card_number)
        if not card.is_active:
            raise CardBlocked(card_number)

        is_valid = card.pin == pin
        if not is_valid:
            logger.warning(
                f"Invalid PIN attempt for card {mask_card_number(card_number)}"
            )
        return is_valid

    def get_card_info(self, card_number: str) -> Card | None:
        with bank_system_errors("retrieve card information"):
            card = self.store.find_card_by_number(card_number)
        if card and not card.is_active:
            logger.warning(
                f"Card info requested for inactive card "
                f"{mask_card_number(card_number)}"
            )
        return card

    def get_accounts(self, card_number: str) -> list[Account]:
        """
        Return all accounts linked to a card.

        An unknown or inactive card has no usable accounts, so an
        empty list is returned instead of an error.
        """
        with bank_system_errors("retrieve accounts"):
            card = self.store.find_card_by_number(card_number)
            if not card:
                logger.error(f"Card not found: {mask_card_number(card_number)}")
                return []
            if not card.is_active:
                logger.warning(f"Inactive card: {mask_card_number(card_number)}")
                return []
            accounts = self.store.find_accounts_by_card(card)

        logger.debug(
            f"Retrieved {len(accounts)} accounts for card "
            f"{mask_card_number(card_number)}"
        )
        return accounts

    def get_balance(self, account_number: str) -> int:
        with bank_system_errors("retrieve balance"):
            account = self.store.find_account_by_number(account_number)
        if not account:
            raise AccountNotFound(account_number)
        return account.balance

    def deposit(self, account_number: str, amount: int) -> int:
        """
        Add cash to an account and return the new balance.

        Checks, in order: positive amount, configured minimum,
        single-deposit maximum, account existence, daily deposit
        total. Only then is the balance changed.
        """
        self._validate_amount(amount, self.settings.MAX_SINGLE_DEPOSIT, "Deposit")

        with bank_system_errors("process deposit"):
            account = self.store.find_account_by_number(account_number)
            if not account:
                raise AccountNotFound(account_number)

            self._check_daily_limit(
                account,
                amount,
                TransactionType.DEPOSIT,
                self.settings.MAX_DAILY_DEPOSIT,
            )

            new_balance = self.store.apply_balance_change(account_number, amount)

        logger.info(
            f"Deposit successful: {amount} to account {account_number}. "
            f"New balance: {new_balance}"
        )
        return new_balance

    def withdraw(self, account_number: str, amount: int) -> int:
        """
        Take cash out of an account and return the new balance.

        Same checks as deposit, plus sufficient funds. The balance
        update itself is guarded in the database as well, so a
        concurrent withdrawal cannot overdraw the account.
        """
        self._validate_amount(
            amount, self.settings.MAX_SINGLE_WITHDRAWAL, "Withdrawal"
        )

        with bank_system_errors("process withdrawal"):
            account = self.store.find_account_by_number(account_number)
            if not account:
                raise AccountNotFound(account_number)

            if account.balance < amount:
                raise InsufficientFunds(account_number, amount, account.balance)

            self._check_daily_limit(
                account,
                amount,
                TransactionType.WITHDRAWAL,
                self.settings.MAX_DAILY_WITHDRAWAL,
            )

            new_balance = self.store.apply_balance_change(account_number, -amount)
            if new_balance is None:
                # Balance changed underneath us since it was read
                self.db.refresh(account)
                raise InsufficientFunds(account_number, amount, account.balance)

        logger.info(
            f"Withdrawal successful: {amount} from account {account_number}. "
            f"New balance: {new_balance}"
        )
        return new_balance

    def block_card(self, card_number: str) -> bool:
        """
        Deactivate a card. Blocking an already blocked card succeeds.

        Returns False only when the card does not exist.
        """
        with bank_system_errors("block card"):
            card = self.store.find_card_by_number(card_number)
            if not card:
                logger.error(
                    f"Cannot block non-existent card "
                    f"{mask_card_number(card_number)}"
                )
                return False

            if not card.is_active:
                logger.info(
                    f"Card {mask_card_number(card_number)} is already blocked"
                )
                return True

            card.is_active = False
            self.store.save_card(card)

        logger.warning(f"Card blocked: {mask_card_number(card_number)}")
        return True

    def _validate_amount(self, amount: int, maximum: int, operation: str) -> None:
        minimum = self.settings.MIN_TRANSACTION_AMOUNT

        if amount <= 0:
            raise InvalidAmount(amount, reason="amount must be positive")
        if amount < minimum:
            raise InvalidAmount(
                amount,
                reason=f"Amount must be at least {minimum}",
                minimum=minimum,
            )
        if amount > maximum:
            raise InvalidAmount(
                amount,
                reason=f"{operation} amount exceeds maximum limit of {maximum}",
                minimum=minimum,
                maximum=maximum,
            )

    def _check_daily_limit(
        self,
        account: Account,
        amount: int,
        transaction_type: TransactionType,
        daily_limit: int,
    ) -> None:
        today = datetime.utcnow().date()
        spent_today = self.store.sum_transactions_for_day(
            account.id, transaction_type, today
        )
        if spent_today + amount > daily_limit:
            raise DailyLimitExceeded(
                account.account_number, daily_limit, spent_today
            )

"""
Ledger store — persistence for cards, accounts, sessions and
transaction records.

The store takes a database session as a constructor argument, so
the caller controls the transaction boundary. Every save flushes
immediately so that later queries in the same request see it.

Balances are never changed with a read-then-write from Python:
apply_balance_change issues one UPDATE that adds the delta in the
database, guarded so the balance cannot go negative.
"""

from datetime import date, datetime, time, timedelta

from sqlalchemy import select, update, func
from sqlalchemy.orm import Session

from atm_controller.models.account import Account
from atm_controller.models.atm_session import ATMSession
from atm_controller.models.card import Card
from atm_controller.models.enums import SessionStatus, TransactionType
from atm_controller.models.transaction import Transaction


class LedgerStore:

    def __init__(self, db: Session):
        self.db = db

    # --- Cards ---

    def find_card_by_number(self, card_number: str) -> Card | None:
        return self.db.execute(
            select(Card).where(Card.card_number == card_number)
        ).scalar_one_or_none()

    def save_card(self, card: Card) -> Card:
        self.db.add(card)
        self.db.flush()
        return card

    # --- Accounts ---

    def find_account_by_number(self, account_number: str) -> Account | None:
        return self.db.execute(
            select(Account).where(Account.account_number == account_number)
        ).scalar_one_or_none()

    def find_accounts_by_card(self, card: Card) -> list[Account]:
        accounts = self.db.execute(
            select(Account)
            .where(Account.card_id == card.id)
            .order_by(Account.id)
        ).scalars().all()
        return list(accounts)

    def save_account(self, account: Account) -> Account:
        self.db.add(account)
        self.db.flush()
        return account

    def apply_balance_change(self, account_number: str, delta: int) -> int | None:
        """
        Atomically add delta to an account balance.

        Returns the new balance, or None when no row was updated
        (unknown account, or a withdrawal that would overdraw).
        """
        return self.db.execute(
            update(Account)
            .where(
                Account.account_number == account_number,
                Account.balance + delta >= 0,
            )
            .values(balance=Account.balance + delta)
            .returning(Account.balance)
            .execution_options(synchronize_session="fetch")
        ).scalar_one_or_none()

    # --- Transactions ---

    def save_transaction(self, transaction: Transaction) -> Transaction:
        self.db.add(transaction)
        self.db.flush()
        return transaction

    def find_transactions_by_account(self, account_id: int) -> list[Transaction]:
        """Return all transaction records for an account, oldest first."""
        transactions = self.db.execute(
            select(Transaction)
            .where(Transaction.account_id == account_id)
            .order_by(Transaction.created_at, Transaction.id)
        ).scalars().all()
        return list(transactions)

    def sum_transactions_for_day(
        self,
        account_id: int,
        transaction_type: TransactionType,
        day: date,
    ) -> int:
        """Total amount of one transaction type on an account for a UTC day."""
        start = datetime.combine(day, time.min)
        end = start + timedelta(days=1)
        total = self.db.execute(
            select(func.coalesce(func.sum(Transaction.amount), 0)).where(
                Transaction.account_id == account_id,
                Transaction.transaction_type == transaction_type,
                Transaction.created_at >= start,
                Transaction.created_at < end,
            )
        ).scalar()
        return int(total)

    # --- Sessions ---

    def save_session(self, session: ATMSession) -> ATMSession:
        self.db.add(session)
        self.db.flush()
        return session

    def find_session_by_id(self, session_id: str) -> ATMSession | None:
        return self.db.execute(
            select(ATMSession).where(ATMSession.session_id == session_id)
        ).scalar_one_or_none()

    def find_active_session_by_id(self, session_id: str) -> ATMSession | None:
        """Look up a session, ignoring it once it has been closed."""
        return self.db.execute(
            select(ATMSession).where(
                ATMSession.session_id == session_id,
                ATMSession.status != SessionStatus.CLOSED,
            )
        ).scalar_one_or_none()

"""Business logic services."""

from atm_controller.services.ledger_store import LedgerStore
from atm_controller.services.bank_service import BankService
from atm_controller.services.session_service import SessionService
from atm_controller.services.atm_transaction_service import ATMTransactionService

__all__ = ["LedgerStore", "BankService", "SessionService", "ATMTransactionService"]

"""
Transaction model.

Every balance inquiry, deposit and withdrawal performed at the
machine leaves one record. Records are append-only: they are never
updated or deleted.
"""

from datetime import datetime

from sqlalchemy import (
    Integer, DateTime, ForeignKey,
    Enum as SAEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from atm_controller.models.base import Base
from atm_controller.models.enums import TransactionType


class Transaction(Base):
    __tablename__ = "transactions"

    id: Mapped[int] = mapped_column(primary_key=True)
    account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id"), nullable=False, index=True
    )
    transaction_type: Mapped[TransactionType] = mapped_column(
        SAEnum(
            TransactionType,
            name="transaction_type_enum",
            create_constraint=True,
        ),
        nullable=False,
    )
    # Zero for balance inquiries
    amount: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    balance_after: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, index=True
    )

    account: Mapped["Account"] = relationship()

    def __repr__(self) -> str:
        return (
            f"<Transaction {self.transaction_type.value} "
            f"{self.amount} -> {self.balance_after}>"
        )

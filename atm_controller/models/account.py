"""
Customer account model.

The balance is an integer amount in minor currency units and is
never allowed to go negative. It is only changed through the
validated deposit and withdrawal paths of the bank service.
"""

from datetime import datetime

from sqlalchemy import (
    String, Integer, DateTime, ForeignKey, CheckConstraint,
    Enum as SAEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from atm_controller.models.base import Base
from atm_controller.models.enums import AccountType


class Account(Base):
    __tablename__ = "accounts"
    __table_args__ = (
        CheckConstraint("balance >= 0", name="ck_accounts_balance_non_negative"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    account_number: Mapped[str] = mapped_column(
        String(20), unique=True, nullable=False, index=True
    )
    account_type: Mapped[AccountType] = mapped_column(
        SAEnum(
            AccountType,
            name="account_type_enum",
            create_constraint=True,
        ),
        nullable=False,
    )
    balance: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    card_id: Mapped[int] = mapped_column(
        ForeignKey("cards.id"), nullable=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    # Relationships
    card: Mapped["Card"] = relationship(back_populates="accounts")

    def __repr__(self) -> str:
        return (
            f"<Account {self.account_number} "
            f"{self.account_type.value} balance={self.balance}>"
        )

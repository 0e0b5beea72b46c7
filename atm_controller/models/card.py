"""
Card model.

A card authenticates a customer at the machine and owns one or
more accounts. Once deactivated by the PIN lockout policy a card
is never reactivated by the ATM.
"""

from datetime import datetime

from sqlalchemy import String, Boolean, DateTime
from sqlalchemy.orm import Mapped, mapped_column, relationship

from atm_controller.models.base import Base


def mask_card_number(card_number: str) -> str:
    """Return the card number with everything but the edges hidden."""
    if len(card_number) > 8:
        return f"{card_number[:4]}****{card_number[-4:]}"
    return "****"


class Card(Base):
    __tablename__ = "cards"

    id: Mapped[int] = mapped_column(primary_key=True)
    card_number: Mapped[str] = mapped_column(
        String(16), unique=True, nullable=False, index=True
    )
    pin: Mapped[str] = mapped_column(String(6), nullable=False)
    holder_name: Mapped[str] = mapped_column(String(100), nullable=False)
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    # A card can be linked to many accounts
    accounts: Mapped[list["Account"]] = relationship(back_populates="card")

    def __repr__(self) -> str:
        state = "active" if self.is_active else "blocked"
        return f"<Card {mask_card_number(self.card_number)} ({state})>"

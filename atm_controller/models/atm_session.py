"""
ATM session model.

A session tracks one card's progress through PIN verification and
account selection. It has a state machine governing its lifecycle;
invalid state transitions are rejected by the session service.

CARD_BLOCKED and CLOSED are both terminal, and they are distinct:
a blocked session is never closed afterwards.
"""

from datetime import datetime

from sqlalchemy import (
    String, Integer, DateTime, ForeignKey,
    Enum as SAEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from atm_controller.models.base import Base
from atm_controller.models.enums import SessionStatus


MAX_PIN_ATTEMPTS = 3

# Valid state transitions, the source of truth for the state machine
VALID_TRANSITIONS: dict[SessionStatus, set[SessionStatus]] = {
    SessionStatus.CARD_INSERTED: {
        SessionStatus.PIN_VERIFIED,
        SessionStatus.CARD_BLOCKED,
        SessionStatus.CLOSED,
    },
    SessionStatus.PIN_VERIFIED: {
        SessionStatus.ACCOUNT_SELECTED,
        SessionStatus.CLOSED,
    },
    SessionStatus.ACCOUNT_SELECTED: {SessionStatus.CLOSED},
    SessionStatus.CARD_BLOCKED: set(),
    SessionStatus.CLOSED: set(),
}


class ATMSession(Base):
    __tablename__ = "atm_sessions"

    id: Mapped[int] = mapped_column(primary_key=True)
    session_id: Mapped[str] = mapped_column(
        String(36), unique=True, nullable=False, index=True
    )
    card_id: Mapped[int | None] = mapped_column(
        ForeignKey("cards.id"), nullable=True, index=True
    )
    selected_account_id: Mapped[int | None] = mapped_column(
        ForeignKey("accounts.id"), nullable=True
    )
    status: Mapped[SessionStatus] = mapped_column(
        SAEnum(
            SessionStatus,
            name="session_status_enum",
            create_constraint=True,
        ),
        nullable=False,
        default=SessionStatus.CARD_INSERTED,
    )
    pin_attempts: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )
    closed_at: Mapped[datetime | None] = mapped_column(
        DateTime, nullable=True, default=None
    )

    # Lookups, not ownership: the card and account live independently
    card: Mapped["Card | None"] = relationship()
    selected_account: Mapped["Account | None"] = relationship()

    def can_transition_to(self, new_status: SessionStatus) -> bool:
        """Check if a state transition is valid."""
        return new_status in VALID_TRANSITIONS.get(self.status, set())

    @property
    def remaining_pin_attempts(self) -> int:
        return max(MAX_PIN_ATTEMPTS - self.pin_attempts, 0)

    def __repr__(self) -> str:
        return f"<ATMSession {self.session_id} ({self.status.value})>"

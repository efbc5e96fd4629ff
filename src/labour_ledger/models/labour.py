"""Labour (worker) master record."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import Boolean, DateTime, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from labour_ledger.models.base import Base, TimestampMixin, utcnow

if TYPE_CHECKING:
    from labour_ledger.models.ledger import Payment, WorkEntry


class Labour(Base, TimestampMixin):
    """A worker whose wages and payments are tracked.

    `balance` is a denormalized mirror of the running balance after the
    chronologically last ledger event, or `opening_balance` when the
    ledger is empty.
    """

    __tablename__ = "labour"

    labour_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    full_name: Mapped[str] = mapped_column(String, nullable=False)
    phone: Mapped[str | None] = mapped_column(String, nullable=True)
    address: Mapped[str | None] = mapped_column(String, nullable=True)
    emergency_contact: Mapped[str | None] = mapped_column(String, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    opening_balance: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, default=Decimal("0.00")
    )
    balance: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, default=Decimal("0.00")
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )

    # Relationships
    work_entries: Mapped[list[WorkEntry]] = relationship(
        back_populates="labour",
        cascade="all, delete-orphan",
    )
    payments: Mapped[list[Payment]] = relationship(
        back_populates="labour",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Labour {self.full_name!r} balance={self.balance}>"

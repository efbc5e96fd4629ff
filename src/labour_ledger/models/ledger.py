"""Ledger event models: wage entries and payments."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from labour_ledger.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from labour_ledger.models.labour import Labour


class AttendanceStatus(str, Enum):
    """Attendance recorded on a work entry."""

    PRESENT = "present"
    ABSENT = "absent"
    HALF_DAY = "half-day"


class WorkEntry(Base, TimestampMixin):
    """Daily wage entry, credited to the labour's balance.

    At most one entry exists per labour per date.
    """

    __tablename__ = "work_entry"

    work_entry_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    labour_id: Mapped[UUID] = mapped_column(
        ForeignKey("labour.labour_id", ondelete="CASCADE"),
        nullable=False,
    )
    entry_date: Mapped[date] = mapped_column(Date, nullable=False)
    attendance_status: Mapped[str] = mapped_column(
        String, nullable=False, default=AttendanceStatus.PRESENT.value
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    previous_balance: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    new_balance: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    work_type: Mapped[str | None] = mapped_column(String, nullable=True)
    category: Mapped[str | None] = mapped_column(String, nullable=True)
    subcategory: Mapped[str | None] = mapped_column(String, nullable=True)
    notes: Mapped[str | None] = mapped_column(String, nullable=True)

    __table_args__ = (
        UniqueConstraint("labour_id", "entry_date", name="work_entry_labour_date_unique"),
        CheckConstraint("amount >= 0", name="work_entry_amount_check"),
        CheckConstraint(
            "attendance_status IN ('present', 'absent', 'half-day')",
            name="work_entry_attendance_check",
        ),
    )

    labour: Mapped[Labour] = relationship(back_populates="work_entries")

    @property
    def event_id(self) -> UUID:
        return self.work_entry_id

    @property
    def event_date(self) -> date:
        return self.entry_date


class Payment(Base, TimestampMixin):
    """Cash paid to a labour, debited from the balance.

    Payments carry no stored balances; the running value flows through
    to the next work entry.
    """

    __tablename__ = "payment"

    payment_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    labour_id: Mapped[UUID] = mapped_column(
        ForeignKey("labour.labour_id", ondelete="CASCADE"),
        nullable=False,
    )
    payment_date: Mapped[date] = mapped_column(Date, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    mode: Mapped[str | None] = mapped_column(String, nullable=True)
    narration: Mapped[str | None] = mapped_column(String, nullable=True)

    __table_args__ = (
        CheckConstraint("amount >= 0", name="payment_amount_check"),
        Index("payment_labour_date_idx", "labour_id", "payment_date"),
    )

    labour: Mapped[Labour] = relationship(back_populates="payments")

    @property
    def event_id(self) -> UUID:
        return self.payment_id

    @property
    def event_date(self) -> date:
        return self.payment_date

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def new_record_id() -> str:
    return uuid.uuid4().hex


class Base(DeclarativeBase):
    pass


class LocalUserRecord(Base):
    __tablename__ = "local_users"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_record_id)
    external_id: Mapped[str] = mapped_column(String(128), nullable=False, unique=True, index=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    display_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def __repr__(self) -> str:
        return f"<LocalUserRecord {self.id} external_id={self.external_id}>"


class BookingRecord(Base):
    __tablename__ = "bookings"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_record_id)
    user_id: Mapped[str] = mapped_column(
        String(32),
        ForeignKey("local_users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    service_name: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="ACTIVE")
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        CheckConstraint("status IN ('ACTIVE', 'CANCELLED')", name="ck_bookings_status"),
        CheckConstraint(
            "(status = 'CANCELLED' AND cancelled_at IS NOT NULL) "
            "OR (status = 'ACTIVE' AND cancelled_at IS NULL)",
            name="ck_bookings_cancelled_at",
        ),
        Index("ix_bookings_user_status_cancelled_at", "user_id", "status", "cancelled_at"),
        Index("ix_bookings_user_date", "user_id", "date"),
    )

    def __repr__(self) -> str:
        return f"<BookingRecord {self.id} user={self.user_id} status={self.status}>"

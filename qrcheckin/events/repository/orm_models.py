from datetime import datetime
from uuid import UUID

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from qrcheckin.config.table_names import TableNames
from qrcheckin.events.dtos import EmailStatus
from qrcheckin.models.base import Base, TimeStamp


class CheckInEvent(Base, TimeStamp):
    __tablename__ = TableNames.EVENTS.value

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    location: Mapped[str] = mapped_column(String(500), nullable=False)

    def __repr__(self) -> str:
        return f"<CheckInEvent {self.title} on {self.date}>"


class Attendee(Base, TimeStamp):
    __tablename__ = TableNames.ATTENDEES.value
    __table_args__ = (UniqueConstraint("event_id", "user_id", name="uq_attendee_event_user"),)

    event_id: Mapped[UUID] = mapped_column(
        ForeignKey(f"{TableNames.EVENTS.value}.uuid", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[UUID] = mapped_column(
        ForeignKey(f"{TableNames.USERS.value}.uuid", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # Head counts, used for reporting and food coupons only
    adults: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    kids: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    adult_veg_meals: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    adult_non_veg_meals: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    kid_meals: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Dispatch state, written only by the dispatch queue
    email_status: Mapped[EmailStatus] = mapped_column(
        Enum(EmailStatus, name="email_status_enum"),
        default=EmailStatus.PENDING,
        nullable=False,
        index=True,
    )
    email_sent_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, default=None
    )
    email_retry_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Check-in state, written only by the check-in reconciler
    is_checked_in: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    checked_in_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, default=None
    )
    checked_in_by: Mapped[str | None] = mapped_column(String(255), nullable=True)

    credential_token: Mapped[str | None] = mapped_column(
        String(255), nullable=True, unique=True, index=True
    )
    # PNG data URL of the rendered QR code
    credential_image: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<Attendee {self.email} - {self.email_status.value}>"

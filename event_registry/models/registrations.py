import enum
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from event_registry.database.db import Base


class RegistrationStatus(str, enum.Enum):
    CONFIRMED = "CONFIRMED"
    # Reserved, nothing produces it yet.
    WAITLISTED = "WAITLISTED"
    CANCELLED = "CANCELLED"


class Registration(Base):
    __tablename__ = "registrations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    event_id: Mapped[int] = mapped_column(ForeignKey("events.id"), nullable=False, index=True)
    registration_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=RegistrationStatus.CONFIRMED.value
    )

    user: Mapped["User"] = relationship(back_populates="registrations")
    event: Mapped["Event"] = relationship(back_populates="registrations")

    __table_args__ = (UniqueConstraint("user_id", "event_id", name="uq_registration_user_event"),)

    @property
    def username(self) -> str:
        return self.user.username

    @property
    def event_name(self) -> str:
        return self.event.name

    @property
    def is_active(self) -> bool:
        return self.status == RegistrationStatus.CONFIRMED.value

    def __repr__(self) -> str:
        return f"<Registration(id={self.id}, user={self.user_id}, event={self.event_id}, status={self.status})>"

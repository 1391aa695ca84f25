from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from event_registry.database.db import Base


class Event(Base):
    __tablename__ = "events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(String(1000))
    start_time: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    end_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    location: Mapped[str | None] = mapped_column(String(255))
    category: Mapped[str | None] = mapped_column(String(100), index=True)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False)
    published: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    # Confirmed registrations only; cancelled ones give their seat back.
    registered_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    organizer_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    organizer: Mapped["User"] = relationship(back_populates="events")
    registrations: Mapped[list["Registration"]] = relationship(
        back_populates="event", cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint("capacity >= 1", name="check_event_capacity_positive"),
        CheckConstraint("registered_count >= 0", name="check_event_registered_non_negative"),
        CheckConstraint("registered_count <= capacity", name="check_event_not_overbooked"),
    )
    __mapper_args__ = {"version_id_col": version}

    @property
    def available_spots(self) -> int:
        return self.capacity - self.registered_count

    def has_available_spots(self) -> bool:
        return self.available_spots > 0

    @property
    def registration_count(self) -> int:
        return self.registered_count

    @property
    def organizer_name(self) -> str | None:
        return self.organizer.full_name if self.organizer else None

    def __repr__(self) -> str:
        return f"<Event(id={self.id}, name={self.name}, spots={self.available_spots}/{self.capacity})>"

import enum
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database.db import Base

if TYPE_CHECKING:
    from app.models.requests import ParticipationRequest


class EventState(str, enum.Enum):
    PENDING = "PENDING"
    PUBLISHED = "PUBLISHED"
    CANCELED = "CANCELED"


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(250), nullable=False)
    email: Mapped[str] = mapped_column(String(254), nullable=False, unique=True)


class Category(Base):
    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)


class Location(Base):
    __tablename__ = "locations"
    __table_args__ = (UniqueConstraint("lat", "lon", name="uq_location_lat_lon"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    lat: Mapped[float] = mapped_column(Float, nullable=False)
    lon: Mapped[float] = mapped_column(Float, nullable=False)


class Event(Base):
    __tablename__ = "events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str] = mapped_column(String(120), nullable=False)
    annotation: Mapped[str] = mapped_column(String(2000), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category_id: Mapped[int] = mapped_column(ForeignKey("categories.id"), nullable=False)
    location_id: Mapped[int] = mapped_column(ForeignKey("locations.id"), nullable=False)
    initiator_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    event_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    created_on: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    published_on: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    paid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    participant_limit: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    request_moderation: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    confirmed_requests: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    state: Mapped[str] = mapped_column(String(16), nullable=False, default=EventState.PENDING.value)
    views: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    category: Mapped["Category"] = relationship()
    location: Mapped["Location"] = relationship()
    initiator: Mapped["User"] = relationship()
    requests: Mapped[list["ParticipationRequest"]] = relationship(back_populates="event")

    @property
    def needs_moderation(self) -> bool:
        return self.request_moderation and self.participant_limit > 0

    @property
    def limit_reached(self) -> bool:
        return 0 < self.participant_limit <= self.confirmed_requests

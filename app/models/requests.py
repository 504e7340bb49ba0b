import enum
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database.db import Base, utcnow

if TYPE_CHECKING:
    from app.models.events import Event


class RequestStatus(str, enum.Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    REJECTED = "REJECTED"
    CANCELED = "CANCELED"


class ParticipationRequest(Base):
    __tablename__ = "participation_requests"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    event_id: Mapped[int] = mapped_column(ForeignKey("events.id"), nullable=False, index=True)
    requester_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=RequestStatus.PENDING.value)
    created: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    event: Mapped["Event"] = relationship(back_populates="requests")

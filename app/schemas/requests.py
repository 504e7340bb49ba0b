from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


class ParticipationRequestOut(BaseModel):
    id: int
    event_id: int
    requester_id: int
    status: str
    created: datetime

    class Config:
        from_attributes = True


class RequestStatusUpdate(BaseModel):
    request_ids: list[int] = Field(min_length=1)
    status: Literal["CONFIRMED", "REJECTED"]


class RequestStatusUpdateResult(BaseModel):
    confirmed_requests: list[ParticipationRequestOut] = Field(default_factory=list)
    rejected_requests: list[ParticipationRequestOut] = Field(default_factory=list)

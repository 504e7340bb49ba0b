import enum
from datetime import datetime

from pydantic import BaseModel, Field


class OwnerStateAction(str, enum.Enum):
    SEND_TO_REVIEW = "SEND_TO_REVIEW"
    CANCEL_REVIEW = "CANCEL_REVIEW"


class AdminStateAction(str, enum.Enum):
    PUBLISH_EVENT = "PUBLISH_EVENT"
    REJECT_EVENT = "REJECT_EVENT"


# ---------- Directory ----------
class UserCreate(BaseModel):
    name: str = Field(min_length=2, max_length=250)
    email: str = Field(min_length=6, max_length=254, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class UserOut(BaseModel):
    id: int
    name: str
    email: str

    class Config:
        from_attributes = True


class CategoryCreate(BaseModel):
    name: str = Field(min_length=1, max_length=50)


class CategoryOut(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True


class LocationIn(BaseModel):
    lat: float = Field(ge=-90, le=90)
    lon: float = Field(ge=-180, le=180)


class LocationOut(BaseModel):
    lat: float
    lon: float

    class Config:
        from_attributes = True


# ---------- Event ----------
class EventCreate(BaseModel):
    title: str = Field(min_length=3, max_length=120)
    annotation: str = Field(min_length=20, max_length=2000)
    description: str = Field(min_length=20, max_length=7000)
    category: int = Field(ge=1)
    location: LocationIn
    event_date: datetime
    paid: bool = False
    participant_limit: int = Field(default=0, ge=0)
    request_moderation: bool = True


class EventUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=3, max_length=120)
    annotation: str | None = Field(default=None, min_length=20, max_length=2000)
    description: str | None = Field(default=None, min_length=20, max_length=7000)
    category: int | None = Field(default=None, ge=1)
    location: LocationIn | None = None
    event_date: datetime | None = None
    paid: bool | None = None
    participant_limit: int | None = Field(default=None, ge=0)
    request_moderation: bool | None = None


class OwnerEventUpdate(EventUpdate):
    state_action: OwnerStateAction | None = None


class AdminEventUpdate(EventUpdate):
    state_action: AdminStateAction | None = None


class EventShortOut(BaseModel):
    id: int
    title: str
    annotation: str
    category: CategoryOut
    event_date: datetime
    paid: bool
    confirmed_requests: int
    views: int
    initiator: UserOut

    class Config:
        from_attributes = True


class EventOut(EventShortOut):
    description: str
    location: LocationOut
    created_on: datetime
    published_on: datetime | None
    participant_limit: int
    request_moderation: bool
    state: str

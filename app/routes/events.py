from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.database.db import get_db
from app.schemas.events import EventCreate, EventOut, EventShortOut, OwnerEventUpdate
from app.schemas.requests import ParticipationRequestOut, RequestStatusUpdate, RequestStatusUpdateResult
from app.services import events as event_service
from app.services import requests as request_service

router = APIRouter(prefix="/users/{user_id}/events", tags=["events"])


@router.post("", response_model=EventOut, status_code=201)
def create_event(user_id: int, payload: EventCreate, db: Session = Depends(get_db)):
    return event_service.create_event(db, payload, user_id)


@router.get("", response_model=list[EventShortOut])
def list_events(
    user_id: int,
    offset: int = Query(0, ge=0),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
):
    return event_service.list_by_owner(db, user_id, offset=offset, limit=limit)


@router.get("/{event_id}", response_model=EventOut)
def get_event(user_id: int, event_id: int, db: Session = Depends(get_db)):
    return event_service.get_by_owner(db, event_id, user_id)


@router.patch("/{event_id}", response_model=EventOut)
def update_event(user_id: int, event_id: int, payload: OwnerEventUpdate, db: Session = Depends(get_db)):
    return event_service.update_by_owner(db, event_id, user_id, payload)


@router.get("/{event_id}/requests", response_model=list[ParticipationRequestOut])
def list_event_requests(user_id: int, event_id: int, db: Session = Depends(get_db)):
    return request_service.get_by_owner(db, event_id=event_id, owner_id=user_id)


@router.patch("/{event_id}/requests", response_model=RequestStatusUpdateResult)
def decide_requests(user_id: int, event_id: int, payload: RequestStatusUpdate, db: Session = Depends(get_db)):
    return request_service.batch_decide(
        db,
        event_id=event_id,
        owner_id=user_id,
        request_ids=payload.request_ids,
        target_status=payload.status,
    )

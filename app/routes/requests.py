from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.database.db import get_db
from app.schemas.requests import ParticipationRequestOut
from app.services import requests as request_service

router = APIRouter(prefix="/users/{user_id}/requests", tags=["requests"])


@router.post("", response_model=ParticipationRequestOut, status_code=201)
def submit_request(user_id: int, event_id: int = Query(ge=1), db: Session = Depends(get_db)):
    return request_service.submit_request(db, event_id=event_id, requester_id=user_id)


@router.get("", response_model=list[ParticipationRequestOut])
def list_own_requests(user_id: int, db: Session = Depends(get_db)):
    return request_service.get_by_requester(db, requester_id=user_id)


@router.patch("/{request_id}/cancel", response_model=ParticipationRequestOut)
def cancel_request(user_id: int, request_id: int, db: Session = Depends(get_db)):
    return request_service.cancel(db, requester_id=user_id, request_id=request_id)

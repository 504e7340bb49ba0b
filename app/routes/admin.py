from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database.db import get_db
from app.schemas.events import AdminEventUpdate, CategoryCreate, CategoryOut, EventOut, UserCreate, UserOut
from app.services import directory
from app.services import events as event_service

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post("/users", response_model=UserOut, status_code=201)
def create_user(payload: UserCreate, db: Session = Depends(get_db)):
    return directory.create_user(db, name=payload.name, email=payload.email)


@router.get("/users/{user_id}", response_model=UserOut)
def get_user(user_id: int, db: Session = Depends(get_db)):
    return directory.get_user(db, user_id)


@router.post("/categories", response_model=CategoryOut, status_code=201)
def create_category(payload: CategoryCreate, db: Session = Depends(get_db)):
    return directory.create_category(db, name=payload.name)


@router.patch("/events/{event_id}", response_model=EventOut)
def update_event(event_id: int, payload: AdminEventUpdate, db: Session = Depends(get_db)):
    """Edit an event and drive its publication (PUBLISH_EVENT / REJECT_EVENT)."""
    return event_service.update_by_admin(db, event_id, payload)

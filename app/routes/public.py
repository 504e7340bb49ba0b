import contextlib

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.database.db import get_db
from app.schemas.events import CategoryOut, EventOut
from app.services import directory
from app.services import events as event_service
from app.services.events import utcnow
from app.tasks import record_hit_task

router = APIRouter(tags=["public"])


@router.get("/events/{event_id}", response_model=EventOut)
def get_event(event_id: int, request: Request, db: Session = Depends(get_db)):
    event = event_service.get_published(db, event_id)

    # best-effort hit recording, never blocks the response
    ip = request.client.host if request.client else "unknown"
    with contextlib.suppress(Exception):
        record_hit_task.delay(request.url.path, ip, utcnow().isoformat())

    return event


@router.get("/categories/{category_id}", response_model=CategoryOut)
def get_category(category_id: int, db: Session = Depends(get_db)):
    return directory.get_category(db, category_id)

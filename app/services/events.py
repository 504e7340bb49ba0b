"""
Event lifecycle: creation, owner and admin edits, publication.

State machine::

    PENDING --PUBLISH_EVENT--> PUBLISHED
    PENDING --REJECT_EVENT / CANCEL_REVIEW--> CANCELED
    PENDING --SEND_TO_REVIEW--> PENDING

PUBLISHED and CANCELED are terminal.
"""
import logging
from datetime import UTC, datetime, timedelta

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from app.core import config
from app.database.db import utcnow
from app.models.events import Event, EventState
from app.schemas.events import (
    AdminEventUpdate,
    AdminStateAction,
    EventCreate,
    EventUpdate,
    OwnerEventUpdate,
    OwnerStateAction,
)
from app.services.concurrency import run_in_transaction, run_locked
from app.services.directory import ensure_user, find_or_create_location, get_category
from app.services.errors import ConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def to_utc_naive(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)


def validate_event_date(event_date: datetime, lead_hours: int) -> datetime:
    event_date = to_utc_naive(event_date)
    if event_date <= utcnow() + timedelta(hours=lead_hours):
        raise ValidationError(
            f"Event date must be at least {lead_hours} hour(s) after the current moment."
        )
    return event_date


def next_state_for_admin(state: EventState | str, action: AdminStateAction) -> EventState:
    state = EventState(state)
    if action == AdminStateAction.PUBLISH_EVENT:
        if state == EventState.PUBLISHED:
            raise ConflictError("Event is already published.")
        if state != EventState.PENDING:
            raise ConflictError(f"Cannot publish the event because it is in state {state.value}.")
        return EventState.PUBLISHED
    if state == EventState.PUBLISHED:
        raise ConflictError("Cannot reject the event because it is already published.")
    return EventState.CANCELED


def next_state_for_owner(state: EventState | str, action: OwnerStateAction) -> EventState:
    state = EventState(state)
    if state != EventState.PENDING:
        raise ConflictError(f"Only pending events can be changed, current state is {state.value}.")
    if action == OwnerStateAction.SEND_TO_REVIEW:
        return EventState.PENDING
    return EventState.CANCELED


def _load_event(db: Session, event_id: int) -> Event:
    event = db.get(Event, event_id, with_for_update=True, populate_existing=True)
    if not event:
        raise NotFoundError(f"Event with id={event_id} was not found.")
    return event


def _apply_patch(db: Session, event: Event, patch: EventUpdate, lead_hours: int) -> None:
    """Copy every non-null field of the patch onto the event."""
    if patch.title is not None:
        event.title = patch.title
    if patch.annotation is not None:
        event.annotation = patch.annotation
    if patch.description is not None:
        event.description = patch.description
    if patch.paid is not None:
        event.paid = patch.paid
    if patch.request_moderation is not None:
        event.request_moderation = patch.request_moderation
    if patch.participant_limit is not None:
        if 0 < patch.participant_limit < event.confirmed_requests:
            raise ConflictError(
                f"Participant limit {patch.participant_limit} is below "
                f"{event.confirmed_requests} already confirmed requests."
            )
        event.participant_limit = patch.participant_limit
    if patch.event_date is not None:
        event.event_date = validate_event_date(patch.event_date, lead_hours)
    if patch.category is not None:
        event.category = get_category(db, patch.category)
    if patch.location is not None:
        event.location = find_or_create_location(db, lat=patch.location.lat, lon=patch.location.lon)


def create_event(db: Session, draft: EventCreate, owner_id: int) -> Event:
    def work() -> Event:
        ensure_user(db, owner_id)
        event_date = validate_event_date(draft.event_date, config.OWNER_EVENT_LEAD_HOURS)
        category = get_category(db, draft.category)
        location = find_or_create_location(db, lat=draft.location.lat, lon=draft.location.lon)
        event = Event(
            title=draft.title,
            annotation=draft.annotation,
            description=draft.description,
            category=category,
            location=location,
            initiator_id=owner_id,
            event_date=event_date,
            created_on=utcnow(),
            paid=draft.paid,
            participant_limit=draft.participant_limit,
            request_moderation=draft.request_moderation,
            confirmed_requests=0,
            state=EventState.PENDING.value,
            views=0,
        )
        db.add(event)
        db.flush()
        return event

    event = run_in_transaction(db, work)
    logger.info("User %s created event %s", owner_id, event.id)
    return event


def update_by_owner(db: Session, event_id: int, owner_id: int, patch: OwnerEventUpdate) -> Event:
    ensure_user(db, owner_id)

    def work() -> Event:
        event = _load_event(db, event_id)
        if event.initiator_id != owner_id:
            raise NotFoundError(f"Event with id={event_id} was not found.")
        if event.state == EventState.PUBLISHED.value:
            raise ConflictError("Published events cannot be changed.")
        if event.state != EventState.PENDING.value:
            raise ConflictError(f"Only pending events can be changed, current state is {event.state}.")
        new_state = None
        if patch.state_action is not None:
            new_state = next_state_for_owner(event.state, patch.state_action)
        _apply_patch(db, event, patch, config.OWNER_EVENT_LEAD_HOURS)
        if new_state is not None:
            event.state = new_state.value
        db.flush()
        return event

    event = run_locked(db, event_id, work)
    logger.info("User %s updated event %s", owner_id, event_id)
    return event


def update_by_admin(db: Session, event_id: int, patch: AdminEventUpdate) -> Event:
    def work() -> Event:
        event = _load_event(db, event_id)
        new_state = None
        if patch.state_action is not None:
            new_state = next_state_for_admin(event.state, patch.state_action)
        _apply_patch(db, event, patch, config.ADMIN_EVENT_LEAD_HOURS)
        if new_state == EventState.PUBLISHED:
            event.state = new_state.value
            event.published_on = utcnow()
        elif new_state is not None:
            event.state = new_state.value
        db.flush()
        return event

    event = run_locked(db, event_id, work)
    if patch.state_action is not None:
        logger.info("Admin applied %s to event %s", patch.state_action.value, event_id)
    return event


def get_published(db: Session, event_id: int) -> Event:
    """Return a published event and count the view."""
    def work() -> Event:
        res = db.execute(
            update(Event)
            .where(Event.id == event_id)
            .where(Event.state == EventState.PUBLISHED.value)
            .values(views=Event.views + 1)
        )
        if res.rowcount != 1:  # type: ignore
            raise NotFoundError(f"Event with id={event_id} was not found.")
        return db.get(Event, event_id, populate_existing=True)

    return run_in_transaction(db, work)


def get_by_owner(db: Session, event_id: int, owner_id: int) -> Event:
    ensure_user(db, owner_id)
    event = db.scalar(select(Event).where(Event.id == event_id, Event.initiator_id == owner_id))
    if not event:
        raise NotFoundError(f"Event with id={event_id} was not found.")
    return event


def list_by_owner(db: Session, owner_id: int, *, offset: int = 0, limit: int = 10) -> list[Event]:
    ensure_user(db, owner_id)
    stmt = (
        select(Event)
        .where(Event.initiator_id == owner_id)
        .order_by(Event.id)
        .offset(offset)
        .limit(limit)
    )
    return list(db.scalars(stmt))

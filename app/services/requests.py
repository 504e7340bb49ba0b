import logging

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from app.core import config
from app.models.events import Event, EventState
from app.models.requests import ParticipationRequest, RequestStatus
from app.schemas.requests import ParticipationRequestOut, RequestStatusUpdateResult
from app.services.admission import decide, initial_status, transition
from app.services.concurrency import run_locked
from app.services.directory import ensure_user
from app.services.errors import CapacityChangedError, ConflictError, NotFoundError

logger = logging.getLogger(__name__)


def _load_event(db: Session, event_id: int) -> Event:
    event = db.get(Event, event_id, with_for_update=True, populate_existing=True)
    if not event:
        raise NotFoundError(f"Event with id={event_id} was not found.")
    return event


def _store_confirmed_count(db: Session, event: Event, *, seen: int, new: int) -> None:
    """Compare-and-set the cached confirmed counter of an event."""
    if seen == new:
        return
    stmt = (
        update(Event)
        .where(Event.id == event.id)
        .where(Event.confirmed_requests == seen)
        .values(confirmed_requests=new)
    )
    res = db.execute(stmt)
    if res.rowcount != 1:  # type: ignore
        raise CapacityChangedError("Capacity changed, retry.")


def _to_out(requests: list[ParticipationRequest]) -> list[ParticipationRequestOut]:
    return [ParticipationRequestOut.model_validate(r) for r in requests]


def count_by_status(db: Session, event_id: int, status: RequestStatus) -> int:
    """
    Count the event's requests in ``status`` straight from the table.
    Admission itself reads the cached counter; this query is kept for callers
    outside it, such as reports and checks of the counter against the rows.
    """
    return int(
        db.scalar(
            select(func.count(ParticipationRequest.id)).where(
                ParticipationRequest.event_id == event_id,
                ParticipationRequest.status == status.value,
            )
        )
        or 0
    )


def submit_request(db: Session, *, event_id: int, requester_id: int) -> ParticipationRequest:
    """
    Create a participation request for a published event.
    Without moderation (or without a limit) the request is confirmed at once
    and the event counter moves in the same transaction.
    """
    ensure_user(db, requester_id)

    def work() -> ParticipationRequest:
        event = _load_event(db, event_id)
        if event.state != EventState.PUBLISHED.value:
            raise ConflictError(f"Cannot request participation in an unpublished event, current state is {event.state}.")
        if event.initiator_id == requester_id:
            raise ConflictError("The initiator cannot request participation in their own event.")

        duplicate = db.scalar(
            select(ParticipationRequest.id).where(
                ParticipationRequest.event_id == event_id,
                ParticipationRequest.requester_id == requester_id,
                ParticipationRequest.status != RequestStatus.CANCELED.value,
            )
        )
        if duplicate is not None:
            raise ConflictError(f"Request from user {requester_id} to event {event_id} already exists.")

        if event.limit_reached:
            raise ConflictError(f"The participant limit of event {event_id} has been reached.")

        status = initial_status(event.request_moderation, event.participant_limit)
        if status == RequestStatus.CONFIRMED:
            seen = event.confirmed_requests
            _store_confirmed_count(db, event, seen=seen, new=seen + 1)

        request = ParticipationRequest(event_id=event_id, requester_id=requester_id, status=status.value)
        db.add(request)
        db.flush()  # gets request.id
        db.refresh(request)
        return request

    request = run_locked(db, event_id, work)
    logger.info("Created request %s for event %s with status %s", request.id, event_id, request.status)
    return request


def batch_decide(
    db: Session,
    *,
    event_id: int,
    owner_id: int,
    request_ids: list[int],
    target_status: RequestStatus | str,
) -> RequestStatusUpdateResult:
    """
    Confirm or reject a batch of pending requests of one event.

    Requests are confirmed in the given order while places remain; the rest
    of the batch is rejected. When a confirmation fills the last place every
    other pending request of the event is rejected too; a rejection only
    touches the requests it names.
    """
    def work() -> RequestStatusUpdateResult:
        event = _load_event(db, event_id)
        if event.initiator_id != owner_id:
            raise ConflictError("Only the event initiator can change request statuses.")
        if not event.needs_moderation:
            logger.warning("Event %s does not moderate requests, nothing to decide", event_id)
            return RequestStatusUpdateResult()

        ids = list(dict.fromkeys(request_ids))
        stmt = (
            select(ParticipationRequest)
            .where(ParticipationRequest.id.in_(ids))
            .execution_options(populate_existing=True)
        )
        by_id = {r.id: r for r in db.scalars(stmt)}
        missing = [i for i in ids if i not in by_id]
        if missing:
            raise NotFoundError(f"Requests {missing} were not found.")
        batch = [by_id[i] for i in ids]
        for request in batch:
            if request.event_id != event_id:
                raise ConflictError(f"Request {request.id} does not belong to event {event_id}.")
            if request.status != RequestStatus.PENDING.value:
                raise ConflictError(f"Request {request.id} must have status PENDING, got {request.status}.")

        seen = event.confirmed_requests
        decision = decide(batch, target_status, event.participant_limit, seen)

        for request in decision.confirmed:
            request.status = transition(request.status, RequestStatus.CONFIRMED).value
        rejected = list(decision.rejected)
        if decision.limit_reached:
            others = db.scalars(
                select(ParticipationRequest)
                .where(
                    ParticipationRequest.event_id == event_id,
                    ParticipationRequest.status == RequestStatus.PENDING.value,
                    ParticipationRequest.id.not_in(ids),
                )
                .order_by(ParticipationRequest.id)
                .execution_options(populate_existing=True)
            ).all()
            rejected.extend(others)
            logger.info("Participant limit of event %s reached, rejecting %s other pending requests", event_id, len(others))
        for request in rejected:
            request.status = transition(request.status, RequestStatus.REJECTED).value

        _store_confirmed_count(db, event, seen=seen, new=decision.confirmed_count)
        db.flush()
        return RequestStatusUpdateResult(
            confirmed_requests=_to_out(decision.confirmed),
            rejected_requests=_to_out(rejected),
        )

    result = run_locked(db, event_id, work)
    logger.info(
        "Owner %s decided requests of event %s: %s confirmed, %s rejected",
        owner_id, event_id, len(result.confirmed_requests), len(result.rejected_requests),
    )
    return result


def get_by_owner(db: Session, *, event_id: int, owner_id: int) -> list[ParticipationRequest]:
    event = db.get(Event, event_id)
    if not event:
        raise NotFoundError(f"Event with id={event_id} was not found.")
    if event.initiator_id != owner_id:
        raise ConflictError(f"User {owner_id} is not the initiator of event {event_id}.")
    stmt = (
        select(ParticipationRequest)
        .where(ParticipationRequest.event_id == event_id)
        .order_by(ParticipationRequest.id)
    )
    return list(db.scalars(stmt))


def get_by_requester(db: Session, *, requester_id: int) -> list[ParticipationRequest]:
    ensure_user(db, requester_id)
    stmt = (
        select(ParticipationRequest)
        .where(ParticipationRequest.requester_id == requester_id)
        .order_by(ParticipationRequest.id)
    )
    return list(db.scalars(stmt))


def cancel(db: Session, *, requester_id: int, request_id: int) -> ParticipationRequest:
    """
    Cancel the requester's own request.
    A confirmed request may only be canceled when ALLOW_CANCEL_CONFIRMED is
    set; the event counter is released in the same transaction.
    """
    def _load_own() -> ParticipationRequest:
        request = db.scalar(
            select(ParticipationRequest)
            .where(ParticipationRequest.id == request_id, ParticipationRequest.requester_id == requester_id)
            .execution_options(populate_existing=True)
        )
        if not request:
            raise NotFoundError(f"Request with id={request_id} from user {requester_id} was not found.")
        return request

    event_id = _load_own().event_id

    def work() -> ParticipationRequest:
        request = _load_own()
        was_confirmed = request.status == RequestStatus.CONFIRMED.value
        request.status = transition(
            request.status,
            RequestStatus.CANCELED,
            allow_cancel_confirmed=config.ALLOW_CANCEL_CONFIRMED,
        ).value
        if was_confirmed:
            event = _load_event(db, request.event_id)
            seen = event.confirmed_requests
            _store_confirmed_count(db, event, seen=seen, new=max(seen - 1, 0))
        db.flush()
        return request

    request = run_locked(db, event_id, work)
    logger.info("User %s canceled request %s", requester_id, request_id)
    return request

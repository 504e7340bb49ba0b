"""
Admission algorithm for participation requests.

Everything here is free of storage: statuses go in, statuses come out.
The request service wraps these functions with the event lock and the
transaction that persists their result.
"""
from dataclasses import dataclass, field
from typing import Generic, Sequence, TypeVar

from app.models.requests import RequestStatus
from app.services.errors import ConflictError, ValidationError

T = TypeVar("T")

_TRANSITIONS = {
    RequestStatus.PENDING: {RequestStatus.CONFIRMED, RequestStatus.REJECTED, RequestStatus.CANCELED},
}


@dataclass(frozen=True)
class Decision(Generic[T]):
    confirmed: list[T] = field(default_factory=list)
    rejected: list[T] = field(default_factory=list)
    confirmed_count: int = 0
    limit_reached: bool = False


def transition(current: RequestStatus | str, target: RequestStatus | str, *, allow_cancel_confirmed: bool = False) -> RequestStatus:
    """Return the status a request moves to, or raise ConflictError if the move is not allowed."""
    current = RequestStatus(current)
    target = RequestStatus(target)
    if current == RequestStatus.CONFIRMED and target == RequestStatus.CANCELED and allow_cancel_confirmed:
        return target
    if target not in _TRANSITIONS.get(current, set()):
        raise ConflictError(f"Request with status {current.value} cannot be changed to {target.value}.")
    return target


def initial_status(request_moderation: bool, participant_limit: int) -> RequestStatus:
    if not request_moderation or participant_limit == 0:
        return RequestStatus.CONFIRMED
    return RequestStatus.PENDING


def is_limit_reached(limit: int, confirmed: int) -> bool:
    return 0 < limit <= confirmed


def decide(pending: Sequence[T], target_status: RequestStatus | str, limit: int, current_confirmed: int) -> Decision[T]:
    """
    Split a batch of pending requests into confirmed and rejected.

    Requests are confirmed in input order while free places remain; the
    excess of the same batch is rejected. ``limit == 0`` means unlimited.
    ``limit_reached`` is only set when this batch confirmed the last place;
    a rejection never touches requests outside the batch.
    """
    try:
        target = RequestStatus(target_status)
    except ValueError:
        raise ValidationError(f"Unknown request status: {target_status}.")

    if target == RequestStatus.REJECTED:
        return Decision(rejected=list(pending), confirmed_count=current_confirmed)

    if target != RequestStatus.CONFIRMED:
        raise ValidationError("Requests can only be CONFIRMED or REJECTED.")

    if limit == 0:
        return Decision(confirmed=list(pending), confirmed_count=current_confirmed + len(pending))

    remaining = limit - current_confirmed
    if remaining <= 0:
        raise ConflictError("The participant limit has been reached.")

    confirmed = list(pending[:remaining])
    rejected = list(pending[remaining:])
    confirmed_count = current_confirmed + len(confirmed)
    return Decision(
        confirmed=confirmed,
        rejected=rejected,
        confirmed_count=confirmed_count,
        limit_reached=is_limit_reached(limit, confirmed_count),
    )

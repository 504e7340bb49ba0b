import logging
from contextlib import contextmanager
from typing import Callable, TypeVar

import redis
from sqlalchemy.orm import Session

from app.core import config
from app.core.config import get_redis_url
from app.services.errors import CapacityChangedError, ConflictError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def get_redis_client():
    """Get Redis client for locking."""
    return redis.from_url(get_redis_url(), decode_responses=True)


@contextmanager
def event_lock(event_id: int):
    """
    Hold the per-event Redis lock.
    Every read-check-write on an event and its requests runs inside it.
    """
    redis_client = get_redis_client()
    lock = redis_client.lock(
        f"event_lock:{event_id}",
        timeout=config.EVENT_LOCK_TIMEOUT,
        blocking_timeout=config.EVENT_LOCK_BLOCKING_TIMEOUT,
    )
    try:
        acquired = lock.acquire(blocking=True, blocking_timeout=config.EVENT_LOCK_BLOCKING_TIMEOUT)
    except redis.exceptions.LockError:  # type: ignore
        acquired = False
    if not acquired:
        logger.warning("Could not acquire lock for event %s", event_id)
        raise ConflictError("Could not acquire lock, please try again.")

    try:
        yield
    finally:
        try:
            lock.release()
        except redis.exceptions.LockError:  # type: ignore
            logger.warning("Lock for event %s expired before release", event_id)


def run_in_transaction(db: Session, work: Callable[[], T]) -> T:
    """Run work as one transaction: everything commits or nothing does."""
    if db.in_transaction():
        # Use the existing transaction and commit it
        try:
            result = work()
            db.commit()
        except Exception:
            db.rollback()
            raise
        return result
    with db.begin():
        return work()


def run_locked(db: Session, event_id: int, work: Callable[[], T]) -> T:
    """
    Run work under the event lock in a single transaction.
    A lost compare-and-set on the confirmed counter is retried; the caller
    only sees a conflict once every attempt has lost.
    """
    with event_lock(event_id):
        for attempt in range(1, config.ADMISSION_RETRIES + 1):
            try:
                return run_in_transaction(db, work)
            except CapacityChangedError:
                logger.warning(
                    "Confirmed counter of event %s changed concurrently (attempt %s/%s)",
                    event_id, attempt, config.ADMISSION_RETRIES,
                )
    raise ConflictError("Capacity changed, retry.")

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.events import Category, Location, User
from app.services.concurrency import run_in_transaction
from app.services.errors import ConflictError, NotFoundError

logger = logging.getLogger(__name__)


def get_user(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if not user:
        raise NotFoundError(f"User with id={user_id} was not found.")
    return user


def ensure_user(db: Session, user_id: int) -> None:
    if db.scalar(select(User.id).where(User.id == user_id)) is None:
        raise NotFoundError(f"User with id={user_id} was not found.")


def get_category(db: Session, category_id: int) -> Category:
    category = db.get(Category, category_id)
    if not category:
        raise NotFoundError(f"Category with id={category_id} was not found.")
    return category


def find_or_create_location(db: Session, *, lat: float, lon: float) -> Location:
    """Reuse a stored location with the same coordinates, or add a new one."""
    location = db.scalar(select(Location).where(Location.lat == lat, Location.lon == lon))
    if location is None:
        location = Location(lat=lat, lon=lon)
        db.add(location)
        db.flush()
    return location


def create_user(db: Session, *, name: str, email: str) -> User:
    def work() -> User:
        if db.scalar(select(User.id).where(User.email == email)) is not None:
            raise ConflictError(f"User with email {email} already exists.")
        user = User(name=name, email=email)
        db.add(user)
        db.flush()
        return user

    user = run_in_transaction(db, work)
    logger.info("Created user id=%s", user.id)
    return user


def create_category(db: Session, *, name: str) -> Category:
    def work() -> Category:
        if db.scalar(select(Category.id).where(Category.name == name)) is not None:
            raise ConflictError(f"Category {name} already exists.")
        category = Category(name=name)
        db.add(category)
        db.flush()
        return category

    category = run_in_transaction(db, work)
    logger.info("Created category id=%s", category.id)
    return category

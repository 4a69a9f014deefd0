import logging
from typing import Optional, Type, TypeVar
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from catalog_options.core.exceptions import ConflictError, NotFoundError
from catalog_options.db.session import Base

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=Base)


def get_or_raise(db: Session, model: Type[ModelT], object_id: int, entity: Optional[str] = None) -> ModelT:
    """Fetch a row by primary key or raise NotFoundError."""
    instance = db.get(model, object_id)
    if instance is None:
        raise NotFoundError(entity or model.__name__, object_id)
    return instance


def commit_or_conflict(db: Session, message: str) -> None:
    """Commit the session, turning unique-constraint violations into ConflictError.

    Concurrent writers race on the database constraints; the loser ends up here.
    """
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        logger.info("integrity conflict: %s (%s)", message, exc.orig)
        raise ConflictError(message) from exc

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from exam_portal.core.errors import PersistenceError

logger = logging.getLogger(__name__)


def save_record(db: Session, record, *, orphan_url: str | None = None):
    """Insert ``record`` as the last step of a two-phase write.

    If the commit fails after the media was stored, the blob at ``orphan_url``
    is left unreferenced and the failure is reported as ``PersistenceError``.
    """
    db.add(record)
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(
            "Metadata write for %s failed, orphaned blob: %s (%s)",
            type(record).__name__, orphan_url, e,
        )
        raise PersistenceError(
            f"Failed to save {type(record).__name__.lower()} record",
            orphan_url=orphan_url,
            error=type(e).__name__,
        ) from e
    db.refresh(record)
    return record

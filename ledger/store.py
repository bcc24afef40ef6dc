import structlog
from sqlalchemy.exc import SQLAlchemyError

from ledger.errors import StoreError
from models import db

logger = structlog.get_logger(__name__)


def commit():
    """Commit the request's unit of work, rolling back and raising StoreError on failure."""
    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.error('store_commit_failed', error=str(exc))
        raise StoreError('Could not save changes') from exc

"""Unit-of-work helper shared by the multi-write services.

    with transaction("approve_request"):
        ...validate...
        ...write...
    # committed here; rolled back if anything above raised

Business-rule errors (AssetVerseError) pass through unchanged after the
rollback; unique-constraint races become a CONCURRENT_UPDATE conflict;
any other store failure is logged and surfaced as InfrastructureError.
"""

import logging
from contextlib import contextmanager

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from assetverse.core.exceptions import AssetVerseError, ConflictError, InfrastructureError
from assetverse.models import db

logger = logging.getLogger(__name__)

CONCURRENT_UPDATE = "CONCURRENT_UPDATE"


@contextmanager
def transaction(operation: str):
    try:
        yield
        db.session.commit()
    except AssetVerseError:
        db.session.rollback()
        raise
    except IntegrityError as exc:
        db.session.rollback()
        logger.warning("%s hit a constraint race: %s", operation, exc.orig)
        raise ConflictError(CONCURRENT_UPDATE, "The record changed concurrently, please retry") from exc
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("%s failed; transaction rolled back", operation)
        raise InfrastructureError(f"{operation} failed") from exc

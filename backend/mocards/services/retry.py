"""Retry transient store failures and translate store errors into domain errors."""
import functools
import logging
import random
import time

from sqlalchemy import inspect
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from mocards.config import get_settings
from mocards.errors import ConflictError, TransientStoreError

logger = logging.getLogger(__name__)


def backoff_delay(attempt: int, backoff_base: float) -> float:
    """Exponential backoff with up to 10% jitter: base * 2**attempt."""
    delay = backoff_base * (2 ** attempt)
    return delay + random.uniform(0, delay / 10)


def run_with_retry(db: Session, func, *, attempts: int | None = None, backoff_base: float | None = None):
    """Execute a unit of work, retrying on transient store failures.

    The session is rolled back before every retry, so ``func`` must do all
    of its writes and its commit itself. ``IntegrityError`` is not retried
    and surfaces as ``ConflictError``.
    """
    settings = get_settings()
    if attempts is None:
        attempts = settings.retry_attempts
    if backoff_base is None:
        backoff_base = settings.retry_backoff_base

    name = getattr(func, "__name__", "operation")
    for attempt in range(attempts):
        try:
            return func()
        except IntegrityError as exc:
            db.rollback()
            logger.warning(f"Integrity conflict in {name}: {exc.orig}")
            raise ConflictError("Record conflicts with existing data") from exc
        except (OperationalError, StaleDataError) as exc:
            db.rollback()
            if attempt >= attempts - 1:
                logger.error(f"All {attempts} attempts failed for {name}: {exc}")
                raise TransientStoreError("Record store unavailable, try again later") from exc
            delay = backoff_delay(attempt, backoff_base)
            logger.warning(f"Retry {attempt + 1}/{attempts - 1} for {name} in {delay:.2f}s: {exc}")
            time.sleep(delay)
        except Exception:
            db.rollback()
            raise


def _reload_expired(db: Session, result):
    """Refresh the ORM instances in ``result`` that a commit expired.

    Only the result itself or the members of a result tuple are reloaded;
    lists load lazily on access.
    """
    items = result if isinstance(result, tuple) else (result,)
    for item in items:
        if item is None:
            continue
        state = inspect(item, raiseerr=False)
        if state is not None and state.persistent and state.expired_attributes:
            db.refresh(item)
    return result


def with_store_retry(func):
    """Decorator for service functions taking the session as first argument.

    The operation itself is retried only until its commit succeeds. Reloading
    what it returned is a separate read, retried on its own, so a failure
    after the commit never replays committed work.
    """

    @functools.wraps(func)
    def wrapper(db: Session, *args, **kwargs):
        def unit_of_work():
            return func(db, *args, **kwargs)

        def reload():
            return _reload_expired(db, result)

        unit_of_work.__name__ = func.__name__
        reload.__name__ = f"{func.__name__}_reload"
        result = run_with_retry(db, unit_of_work)
        return run_with_retry(db, reload)

    return wrapper

"""
Per-event unit of work.

Guest and collaborator mutations are read-check-write sequences against the
derived quota ledger, so two of them on the same event must never interleave.
``event_transaction`` serializes them with a process-local lock keyed by event
id, takes a row lock on the event where the database supports it, and relies on
the event's ``version`` column to refuse a commit based on a stale read.
"""

import logging
import threading
import weakref
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.core.errors import ConcurrentModification
from app.models import Event
from app.services.quota_ledger import QuotaLedger
from app.services.repositories import EventRepo

logger = logging.getLogger(__name__)

# Entries disappear once no transaction holds a reference to the lock
_locks: "weakref.WeakValueDictionary[int, threading.Lock]" = weakref.WeakValueDictionary()
_registry_lock = threading.Lock()


def lock_for(event_id: int) -> threading.Lock:
    with _registry_lock:
        lock = _locks.get(event_id)
        if lock is None:
            lock = threading.Lock()
            _locks[event_id] = lock
        return lock


@contextmanager
def event_transaction(db: Session, event_id: int) -> Iterator[Event]:
    """Load an event for update and commit the caller's changes atomically.

    Any exception raised inside the block rolls the session back and is
    re-raised unchanged, so a failed mutation leaves no trace.
    """
    lock = lock_for(event_id)
    with lock:
        # Drop anything this session cached before the lock was taken
        db.expire_all()
        try:
            event = EventRepo.get_for_update(db, event_id)
            yield event
            QuotaLedger.assert_consistent(event)
            event.updated_at = datetime.utcnow()
            db.commit()
        except StaleDataError as exc:
            db.rollback()
            logger.warning(f"Stale write rejected for event {event_id}")
            raise ConcurrentModification(
                "The event was modified by another request, please retry"
            ) from exc
        except Exception:
            db.rollback()
            raise

"""
Concurrent guest additions on one event must never overshoot the quota
"""

import gc
from concurrent.futures import ThreadPoolExecutor

import pytest

from app.core.errors import QuotaExceeded
from app.models import Event, Guest, PackageType
from app.services import event_lock
from app.services.collaborator_service import CollaboratorService
from app.services.guest_roster import GuestPatch, GuestRoster
from app.services.quota_ledger import QuotaLedger

OWNER = "owner-1"

def phone(n: int) -> str:
    return f"+96650123{n:04d}"

def _add_in_own_session(session_factory, actor_id, event_id, n, count=1):
    db = session_factory()
    try:
        GuestRoster.add_guest(db, actor_id, event_id, f"Guest {n}", phone(n), count)
        return "added"
    except QuotaExceeded:
        return "refused"
    finally:
        db.close()

def test_parallel_owner_adds_stop_at_quota(session_factory, make_event):
    event = make_event(package_type=PackageType.classic, total_invite_quota=10)
    event_id = event.id

    with ThreadPoolExecutor(max_workers=8) as pool:
        outcomes = list(pool.map(
            lambda n: _add_in_own_session(session_factory, OWNER, event_id, n), range(25)
        ))

    assert outcomes.count("added") == 10
    assert outcomes.count("refused") == 15

    db = session_factory()
    try:
        assert db.query(Guest).filter(Guest.event_id == event_id).count() == 10
        assert QuotaLedger.owner_remaining(db.get(Event, event_id)) == 0
    finally:
        db.close()

def test_parallel_owner_and_collaborators(db_session, session_factory, make_event):
    event = make_event(package_type=PackageType.vip, total_invite_quota=30)
    CollaboratorService.add_collaborator(db_session, OWNER, event.id, "collab-1", 10)
    CollaboratorService.add_collaborator(db_session, OWNER, event.id, "collab-2", 5)
    event_id = event.id
    actors = [OWNER, "collab-1", "collab-2"]

    with ThreadPoolExecutor(max_workers=9) as pool:
        outcomes = list(pool.map(
            lambda n: (actors[n % 3], _add_in_own_session(session_factory, actors[n % 3], event_id, n, 2)),
            range(45)
        ))

    added = {actor: sum(1 for a, o in outcomes if a == actor and o == "added") for actor in actors}
    # owner keeps 15 (7 parties of 2), collab-1 has 10 (5 parties), collab-2 has 5 (2 parties)
    assert added == {OWNER: 7, "collab-1": 5, "collab-2": 2}

    db = session_factory()
    try:
        snapshot = QuotaLedger.snapshot(db.get(Event, event_id))
        assert snapshot.owner_remaining >= 0
        assert all(c.remaining >= 0 for c in snapshot.collaborators)
        assert snapshot.used_total + snapshot.owner_remaining + sum(c.remaining for c in snapshot.collaborators) == 30
    finally:
        db.close()

@pytest.mark.parametrize("workers", [2, 6])
def test_parallel_updates_respect_quota(db_session, session_factory, make_event, workers):
    event = make_event(package_type=PackageType.classic, total_invite_quota=12)
    guest_ids = [
        GuestRoster.add_guest(db_session, OWNER, event.id, f"Guest {n}", phone(n), 1)[0].id
        for n in range(6)
    ]
    event_id = event.id

    def grow(guest_id):
        db = session_factory()
        try:
            GuestRoster.update_guest(db, OWNER, event_id, guest_id, GuestPatch(accompanying_count=3))
            return "added"
        except QuotaExceeded:
            return "refused"
        finally:
            db.close()

    with ThreadPoolExecutor(max_workers=workers) as pool:
        outcomes = list(pool.map(grow, guest_ids))

    # 6 used, 6 free: each growth from 1 to 3 needs 2, so exactly 3 succeed
    assert outcomes.count("added") == 3

    db = session_factory()
    try:
        assert QuotaLedger.owner_remaining(db.get(Event, event_id)) == 0
    finally:
        db.close()

def test_event_lock_is_dropped_after_the_transaction(db_session, make_event):
    event = make_event()
    event_id = event.id

    with event_lock.event_transaction(db_session, event_id):
        assert event_id in event_lock._locks
        assert event_lock.lock_for(event_id) is event_lock._locks[event_id]

    gc.collect()
    assert event_id not in event_lock._locks

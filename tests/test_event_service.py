"""
Tests for event creation, cancellation and completion
"""

from datetime import datetime, timedelta

import pytest

from app.core.errors import Unauthorized, ValidationError, WorkflowStateError
from app.models import ApprovalStatus, Event, EventStatus, PackageType
from app.services.collaborator_service import CollaboratorService
from app.services.dispatch_tracker import DispatchTracker
from app.services.event_service import EventService
from app.services.guest_roster import GuestRoster

OWNER = "owner-1"

def test_create_event_starts_pending(db_session, session_factory):
    event = EventService.create_event(db_session, OWNER, "vip", 120, host_name="Al Saud Family")

    assert event.approval_status == ApprovalStatus.pending
    assert event.status == EventStatus.upcoming
    assert event.package_type == PackageType.vip
    assert event.payment_completed_at is not None
    assert event.guest_list_confirmed_at is None

@pytest.mark.parametrize("owner_id, package_type, quota", [
    ("", "vip", 10),
    (OWNER, "platinum", 10),
    (OWNER, "classic", -1),
    (OWNER, "classic", 2.5),
])
def test_create_event_validation(db_session, session_factory, owner_id, package_type, quota):
    with pytest.raises(ValidationError):
        EventService.create_event(db_session, owner_id, package_type, quota)

def test_cancel_event(db_session, make_event):
    event = make_event()

    with pytest.raises(Unauthorized):
        EventService.cancel_event(db_session, "someone-else", event.id)

    cancelled = EventService.cancel_event(db_session, OWNER, event.id)
    assert cancelled.status == EventStatus.cancelled

    with pytest.raises(WorkflowStateError):
        EventService.cancel_event(db_session, OWNER, event.id)

def test_complete_past_events(db_session, make_event):
    now = datetime(2026, 5, 1, 12, 0)
    past = make_event(event_date=now - timedelta(days=1))
    future = make_event(event_date=now + timedelta(days=1))
    undated = make_event()
    cancelled = make_event(event_date=now - timedelta(days=3), status=EventStatus.cancelled)

    assert EventService.complete_past_events(db_session, now=now) == 1

    db_session.expire_all()
    assert db_session.get(Event, past.id).status == EventStatus.done
    assert db_session.get(Event, future.id).status == EventStatus.upcoming
    assert db_session.get(Event, undated.id).status == EventStatus.upcoming
    assert db_session.get(Event, cancelled.id).status == EventStatus.cancelled

def test_overview_depends_on_role(db_session, make_event):
    event = make_event(package_type=PackageType.premium, total_invite_quota=40)
    CollaboratorService.add_collaborator(db_session, OWNER, event.id, "collab-1", 10)
    GuestRoster.add_guest(db_session, "collab-1", event.id, "Guest", "+966501230001", 3)

    owner_view = EventService.event_overview(db_session, OWNER, event.id)
    assert owner_view["ledger"]["owner_remaining"] == 30
    assert owner_view["ledger"]["used_total"] == 3

    collab_view = EventService.event_overview(db_session, "collab-1", event.id)
    assert collab_view["ledger"] == {"allocated_quota": 10, "used_quota": 3, "remaining": 7}

def test_list_events_for_user(db_session, make_event):
    owned = make_event(package_type=PackageType.vip)
    make_event(owner_id="other-owner")
    CollaboratorService.add_collaborator(db_session, OWNER, owned.id, "collab-1", 1)

    mine = EventService.list_events_for_user(db_session, OWNER)
    assert [e["id"] for e in mine["owned_events"]] == [owned.id]
    assert mine["collaborated_events"] == []

    theirs = EventService.list_events_for_user(db_session, "collab-1")
    assert [e["id"] for e in theirs["collaborated_events"]] == [owned.id]

def test_list_events_by_status(db_session, make_event):
    make_event()
    make_event(approval_status=ApprovalStatus.approved)

    events, total = EventService.list_events(db_session, "approved")
    assert total == 1
    assert events[0].approval_status == ApprovalStatus.approved

    with pytest.raises(ValidationError):
        EventService.list_events(db_session, "maybe")

    assert EventService.approval_stats(db_session) == {"pending": 1, "approved": 1, "rejected": 0, "total": 2}

def test_admin_guest_roster(db_session, make_event):
    event = make_event(package_type=PackageType.premium, total_invite_quota=40,
                       approval_status=ApprovalStatus.approved)
    CollaboratorService.add_collaborator(db_session, OWNER, event.id, "collab-1", 10,
                                         contact_email="c1@eventhost.sa")
    mine, _ = GuestRoster.add_guest(db_session, OWNER, event.id, "Owner Guest", "+966501230001", 4)
    GuestRoster.add_guest(db_session, "collab-1", event.id, "Collab Guest", "+966501230002", 3)
    GuestRoster.add_guest(db_session, "collab-1", event.id, "Collab Guest 2", "+966501230003", 2)
    DispatchTracker.mark_dispatched(db_session, OWNER, event.id, mine.id)

    roster = EventService.admin_guest_roster(db_session, event.id)

    assert roster["guests_hidden"] is False
    assert [g.name for g in roster["guests"]] == ["Owner Guest", "Collab Guest", "Collab Guest 2"]
    assert roster["ledger"]["owner_remaining"] == 26
    assert roster["collaborators"][0]["used_quota"] == 5
    stats = roster["guest_stats"]
    assert stats["total_guests"] == 3
    assert stats["total_invited"] == 9
    assert stats["whatsapp_messages_sent"] == 1
    assert stats["remaining_invites"] == 31
    assert stats["guests_added_by_owner"] == 1
    assert stats["guests_added_by_collaborators"] == 2
    assert stats["guests_by_collaborator"][0]["contact_email"] == "c1@eventhost.sa"
    assert stats["guests_by_collaborator"][0]["guests_added"] == 2

def test_admin_guest_roster_hides_unconfirmed_vip_list(db_session, make_event):
    event = make_event(package_type=PackageType.vip, total_invite_quota=20)
    GuestRoster.add_guest(db_session, OWNER, event.id, "Guest", "+966501230001", 2)

    roster = EventService.admin_guest_roster(db_session, event.id)
    assert roster["guests_hidden"] is True
    assert roster["guests"] == []
    assert roster["guest_stats"]["actual_guest_count"] == 1
    assert roster["guest_stats"]["remaining_invites"] == 18

    GuestRoster.confirm_guest_list(db_session, OWNER, event.id)

    roster = EventService.admin_guest_roster(db_session, event.id)
    assert roster["guests_hidden"] is False
    assert [g.name for g in roster["guests"]] == ["Guest"]

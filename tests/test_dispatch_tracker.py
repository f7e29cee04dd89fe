"""
Tests for invitation dispatch bookkeeping
"""

import pytest

from app.core.errors import NotFound, Unauthorized, WorkflowStateError
from app.models import ApprovalStatus, EventStatus, PackageType
from app.services.collaborator_service import CollaboratorService
from app.services.dispatch_tracker import DispatchTracker
from app.services.guest_roster import GuestRoster

OWNER = "owner-1"

def phone(n: int) -> str:
    return f"+96650123{n:04d}"

@pytest.fixture
def approved_event(make_event):
    return make_event(package_type=PackageType.premium, total_invite_quota=40, approval_status=ApprovalStatus.approved)

def test_mark_dispatched_is_idempotent(db_session, approved_event):
    guest, _ = GuestRoster.add_guest(db_session, OWNER, approved_event.id, "Guest", phone(1), 2)

    first = DispatchTracker.mark_dispatched(db_session, OWNER, approved_event.id, guest.id)
    second = DispatchTracker.mark_dispatched(db_session, OWNER, approved_event.id, guest.id)

    assert first.already_dispatched is False
    assert second.already_dispatched is True
    assert second.sent_at == first.sent_at

    db_session.refresh(guest)
    assert guest.whatsapp_message_sent is True
    assert guest.whatsapp_message_sent_at == first.sent_at

def test_dispatch_not_ready_while_pending(db_session, make_event):
    event = make_event(approval_status=ApprovalStatus.pending)
    guest, _ = GuestRoster.add_guest(db_session, OWNER, event.id, "Guest", phone(1), 1)

    with pytest.raises(WorkflowStateError, match="not been approved"):
        DispatchTracker.mark_dispatched(db_session, OWNER, event.id, guest.id)

    db_session.refresh(guest)
    assert guest.whatsapp_message_sent is False

def test_dispatch_refused_after_event(db_session, make_event):
    event = make_event(approval_status=ApprovalStatus.approved, status=EventStatus.done)

    with pytest.raises(WorkflowStateError):
        DispatchTracker.mark_dispatched(db_session, OWNER, event.id, 1)

def test_collaborator_dispatches_only_own_guests(db_session, approved_event):
    CollaboratorService.add_collaborator(db_session, OWNER, approved_event.id, "collab-1", 10)
    owner_guest, _ = GuestRoster.add_guest(db_session, OWNER, approved_event.id, "Owner Guest", phone(1), 1)
    collab_guest, _ = GuestRoster.add_guest(db_session, "collab-1", approved_event.id, "Collab Guest", phone(2), 1)

    with pytest.raises(Unauthorized):
        DispatchTracker.mark_dispatched(db_session, "collab-1", approved_event.id, owner_guest.id)

    result = DispatchTracker.mark_dispatched(db_session, "collab-1", approved_event.id, collab_guest.id)
    assert result.already_dispatched is False

    # The owner may record dispatch for any guest of the event
    result = DispatchTracker.mark_dispatched(db_session, OWNER, approved_event.id, collab_guest.id)
    assert result.already_dispatched is True

def test_unknown_guest(db_session, approved_event):
    with pytest.raises(NotFound):
        DispatchTracker.mark_dispatched(db_session, OWNER, approved_event.id, 12345)

def test_dispatch_summary(db_session, approved_event):
    CollaboratorService.add_collaborator(db_session, OWNER, approved_event.id, "collab-1", 10)
    sent, _ = GuestRoster.add_guest(db_session, OWNER, approved_event.id, "Sent", phone(1), 3)
    GuestRoster.add_guest(db_session, OWNER, approved_event.id, "Waiting", phone(2), 2)
    GuestRoster.add_guest(db_session, "collab-1", approved_event.id, "Collab Guest", phone(3), 4)
    DispatchTracker.mark_dispatched(db_session, OWNER, approved_event.id, sent.id)

    summary = DispatchTracker.dispatch_summary(db_session, OWNER, approved_event.id)
    assert summary["ready"] is True
    assert summary["total_guests"] == 3
    assert summary["sent_count"] == 1
    assert summary["sent_invitations"] == 3
    assert summary["unsent_invitations"] == 6
    assert {g["name"] for g in summary["pending_outreach"]} == {"Waiting", "Collab Guest"}

    collab_summary = DispatchTracker.dispatch_summary(db_session, "collab-1", approved_event.id)
    assert collab_summary["total_guests"] == 1
    assert collab_summary["unsent_invitations"] == 4

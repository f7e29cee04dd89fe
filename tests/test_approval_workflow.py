"""
Tests for admin approval, rejection and bulk approval
"""

import io
import os
import struct
import zlib

import pytest
from PIL import Image

from app.core.config import settings
from app.core.errors import NotFound, ValidationError, WorkflowStateError
from app.models import ApprovalStatus, Event
from app.services.approval_workflow import ApprovalWorkflow
from app.services.asset_store import InvitationCardAsset

ADMIN = "admin-1"

def image_bytes(fmt: str = "PNG") -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (40, 60), color=(200, 180, 120)).save(buffer, format=fmt)
    return buffer.getvalue()

def png_card() -> InvitationCardAsset:
    return InvitationCardAsset(filename="card.png", content_type="image/png", data=image_bytes())

def png_chunk(kind: bytes, payload: bytes) -> bytes:
    return struct.pack(">I", len(payload)) + kind + payload + struct.pack(">I", zlib.crc32(kind + payload))

def oversized_png(width: int = 30000, height: int = 30000) -> bytes:
    """A tiny file whose header claims a huge canvas"""
    header = struct.pack(">IIBBBBB", width, height, 8, 2, 0, 0, 0)
    return (b"\x89PNG\r\n\x1a\n" + png_chunk(b"IHDR", header)
            + png_chunk(b"IDAT", zlib.compress(b"")) + png_chunk(b"IEND", b""))

def test_approve_requires_card(db_session, make_event):
    event = make_event()

    with pytest.raises(ValidationError, match="invitation card image is required"):
        ApprovalWorkflow.approve(db_session, ADMIN, event.id, None)
    with pytest.raises(ValidationError):
        ApprovalWorkflow.approve(
            db_session, ADMIN, event.id,
            InvitationCardAsset(filename="card.png", content_type="image/png", data=b"")
        )

    db_session.refresh(event)
    assert event.approval_status == ApprovalStatus.pending
    assert event.invitation_card_asset_ref is None

def test_approve_stores_card(db_session, make_event, upload_dir):
    event = make_event()

    approved = ApprovalWorkflow.approve(db_session, ADMIN, event.id, png_card(), notes="  Looks good ")

    assert approved.approval_status == ApprovalStatus.approved
    assert approved.reviewed_by == ADMIN
    assert approved.approved_at is not None
    assert approved.admin_notes == "Looks good"
    assert approved.invitation_card_asset_ref.startswith(str(upload_dir))
    assert approved.invitation_card_asset_ref.endswith(".png")
    assert os.path.exists(approved.invitation_card_asset_ref)

def test_approve_rejects_bad_images(db_session, make_event, monkeypatch):
    event = make_event()

    with pytest.raises(ValidationError, match="Invalid file type"):
        ApprovalWorkflow.approve(
            db_session, ADMIN, event.id,
            InvitationCardAsset(filename="card.gif", content_type="image/gif", data=image_bytes("GIF"))
        )
    with pytest.raises(ValidationError, match="not a readable image"):
        ApprovalWorkflow.approve(
            db_session, ADMIN, event.id,
            InvitationCardAsset(filename="card.png", content_type="image/png", data=b"definitely not a png")
        )
    with pytest.raises(ValidationError):
        ApprovalWorkflow.approve(
            db_session, ADMIN, event.id,
            InvitationCardAsset(filename="card.png", content_type="image/png", data=image_bytes("JPEG"))
        )

    monkeypatch.setattr(settings, "MAX_UPLOAD_SIZE", 10)
    with pytest.raises(ValidationError, match="too large"):
        ApprovalWorkflow.approve(db_session, ADMIN, event.id, png_card())

def test_oversized_card_is_a_validation_error(db_session, make_event):
    event = make_event()
    card = InvitationCardAsset(filename="card.png", content_type="image/png", data=oversized_png())

    with pytest.raises(ValidationError, match="dimensions are too large"):
        ApprovalWorkflow.approve(db_session, ADMIN, event.id, card)
    with pytest.raises(ValidationError, match="dimensions are too large"):
        ApprovalWorkflow.stage_invitation_card(db_session, ADMIN, event.id, card)

    db_session.refresh(event)
    assert event.approval_status == ApprovalStatus.pending
    assert event.staged_card_asset_ref is None

def test_reject_requires_reason(db_session, make_event):
    event = make_event()

    for reason in (None, "", "   "):
        with pytest.raises(ValidationError, match="reason is required"):
            ApprovalWorkflow.reject(db_session, ADMIN, event.id, reason)

    rejected = ApprovalWorkflow.reject(db_session, ADMIN, event.id, "Payment was reversed")
    assert rejected.approval_status == ApprovalStatus.rejected
    assert rejected.admin_notes == "Payment was reversed"
    assert rejected.rejected_at is not None

def test_decisions_are_terminal(db_session, make_event, upload_dir):
    approved = make_event()
    rejected = make_event()
    ApprovalWorkflow.approve(db_session, ADMIN, approved.id, png_card())
    ApprovalWorkflow.reject(db_session, ADMIN, rejected.id, "Not eligible")

    with pytest.raises(WorkflowStateError):
        ApprovalWorkflow.approve(db_session, ADMIN, approved.id, png_card())
    with pytest.raises(WorkflowStateError):
        ApprovalWorkflow.reject(db_session, ADMIN, approved.id, "Changed my mind")
    with pytest.raises(WorkflowStateError):
        ApprovalWorkflow.approve(db_session, ADMIN, rejected.id, png_card())

    # The refused approval must not leave its card on disk
    stored = [name for _, _, files in os.walk(upload_dir) for name in files]
    assert len(stored) == 1

def test_approve_unknown_event(db_session, session_factory):
    with pytest.raises(NotFound):
        ApprovalWorkflow.approve(db_session, ADMIN, 4242, png_card())

def test_bulk_approve_partial_failure(db_session, make_event):
    staged = make_event()
    unstaged = make_event()
    already = make_event(approval_status=ApprovalStatus.approved)
    ApprovalWorkflow.stage_invitation_card(db_session, ADMIN, staged.id, png_card())

    results = ApprovalWorkflow.bulk_approve(
        db_session, ADMIN, [staged.id, unstaged.id, already.id, 9999, staged.id], notes="Batch"
    )

    by_id = {r.event_id: r for r in results}
    assert len(results) == 4
    assert by_id[staged.id].success is True
    assert by_id[unstaged.id].error_code == "validation_error"
    assert by_id[already.id].error_code == "invalid_state"
    assert by_id[9999].error_code == "not_found"

    db_session.expire_all()
    event = db_session.get(Event, staged.id)
    assert event.approval_status == ApprovalStatus.approved
    assert event.invitation_card_asset_ref is not None
    assert event.staged_card_asset_ref is None
    assert event.admin_notes == "Batch"
    assert db_session.get(Event, unstaged.id).approval_status == ApprovalStatus.pending

def test_bulk_approve_needs_ids(db_session, session_factory):
    with pytest.raises(ValidationError):
        ApprovalWorkflow.bulk_approve(db_session, ADMIN, [])

def test_staging_replaces_previous_card(db_session, make_event):
    event = make_event()

    first = ApprovalWorkflow.stage_invitation_card(db_session, ADMIN, event.id, png_card()).staged_card_asset_ref
    second = ApprovalWorkflow.stage_invitation_card(db_session, ADMIN, event.id, png_card()).staged_card_asset_ref

    assert first != second
    assert not os.path.exists(first)
    assert os.path.exists(second)

def test_reopen_requires_confirmed_list(db_session, make_event):
    event = make_event()

    with pytest.raises(WorkflowStateError):
        ApprovalWorkflow.reopen_guest_list(db_session, ADMIN, event.id)

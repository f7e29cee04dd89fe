"""
Shared fixtures: a throwaway SQLite database and event/guest builders
"""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.core.config import settings
from app.core.db import Base
from app.models import ApprovalStatus, Event, EventStatus, PackageType

# Test database setup
SQLALCHEMY_DATABASE_URL = "sqlite:///./test_invitations.db"
engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

OWNER_ID = "owner-1"

@pytest.fixture
def session_factory():
    """Create the schema and hand out sessions bound to it"""
    Base.metadata.create_all(bind=engine)
    try:
        yield TestingSessionLocal
    finally:
        Base.metadata.drop_all(bind=engine)

@pytest.fixture
def db_session(session_factory):
    """Create test database session"""
    db = session_factory()
    try:
        yield db
    finally:
        db.close()

@pytest.fixture(autouse=True)
def upload_dir(tmp_path, monkeypatch):
    """Keep invitation card files out of the working tree"""
    path = tmp_path / "uploads"
    monkeypatch.setattr(settings, "UPLOAD_DIR", str(path))
    return path

@pytest.fixture
def make_event(db_session):
    """Build a paid event straight in the database"""
    def _make(
        package_type=PackageType.premium,
        total_invite_quota=100,
        approval_status=ApprovalStatus.pending,
        status=EventStatus.upcoming,
        owner_id=OWNER_ID,
        event_date=None,
    ):
        event = Event(
            owner_id=owner_id,
            package_type=package_type,
            total_invite_quota=total_invite_quota,
            approval_status=approval_status,
            status=status,
            event_date=event_date,
            guest_list_reopen_count=0,
        )
        db_session.add(event)
        db_session.commit()
        db_session.refresh(event)
        return event
    return _make

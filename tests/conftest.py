import os

# Must be set before gatekeeper.config is imported.
os.environ["DB_URL"] = "sqlite://"
os.environ["DB_AUTO_CREATE"] = "false"
os.environ["SMTP_HOST"] = ""

from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import insert

from gatekeeper.database import db_manager
from gatekeeper.models.tables import (
    societies, buildings, flats, users, residents, domestic_helps, flat_domestic_helps,
)
from gatekeeper.services.gatekeeper_service import GatekeeperService
from gatekeeper.utils import clock


class RecordingNotifier:
    """Stands in for the notification worker and remembers every alert."""

    def __init__(self):
        self.calls = []

    def notify(self, to_email, recipient_name, subject_name, context):
        self.calls.append((to_email, recipient_name, subject_name, context))


class FrozenClock:
    def __init__(self, start: datetime):
        self.current = start

    def now(self) -> datetime:
        return self.current

    def advance(self, **delta) -> datetime:
        self.current += timedelta(**delta)
        return self.current


SEED = SimpleNamespace(
    society_id=1,
    other_society_id=2,
    flat_id=1,            # flat "101": two active residents, one inactive
    quiet_flat_id=2,      # flat "102": one active resident
    other_flat_id=3,      # flat "201" in the other society
    guard_email="guard@example.com",
    guard_user_id=1,
    resident_ids=(1, 2),
    inactive_resident_id=3,
    resident_user_id=2,
    resident_name="Asha Rao",
    staff_id=1,
    staff_pass_code="123456",
    inactive_staff_id=2,
    inactive_staff_pass_code="654321",
)


@pytest.fixture(autouse=True)
def database():
    db_manager.drop_schema()
    db_manager.create_schema()
    with db_manager.get_connection() as conn:
        conn.execute(insert(societies), [
            {"id": 1, "name": "Green Meadows"},
            {"id": 2, "name": "Blue Ridge"},
        ])
        conn.execute(insert(buildings), [
            {"id": 1, "society_id": 1, "name": "Tower A"},
            {"id": 2, "society_id": 2, "name": "Tower B"},
        ])
        conn.execute(insert(flats), [
            {"id": 1, "building_id": 1, "flat_number": "101"},
            {"id": 2, "building_id": 1, "flat_number": "102"},
            {"id": 3, "building_id": 2, "flat_number": "201"},
        ])
        conn.execute(insert(users), [
            {"id": 1, "full_name": "Gate Guard", "email": "guard@example.com", "society_id": 1},
            {"id": 2, "full_name": "Asha Rao", "email": "asha@example.com", "society_id": 1},
            {"id": 3, "full_name": "Ravi Rao", "email": "ravi@example.com", "society_id": 1},
            {"id": 4, "full_name": "Old Tenant", "email": "old@example.com", "society_id": 1},
            {"id": 5, "full_name": "Meera Iyer", "email": "meera@example.com", "society_id": 1},
        ])
        conn.execute(insert(residents), [
            {"id": 1, "user_id": 2, "flat_id": 1, "is_active": True},
            {"id": 2, "user_id": 3, "flat_id": 1, "is_active": True},
            {"id": 3, "user_id": 4, "flat_id": 1, "is_active": False},
            {"id": 4, "user_id": 5, "flat_id": 2, "is_active": True},
        ])
        conn.execute(insert(domestic_helps), [
            {"id": 1, "name": "Sunita", "phone": "9800000001", "help_type": "MAID", "is_active": True,
             "pass_code": "123456", "created_at": datetime(2025, 1, 1, 9, 0), "society_id": 1},
            {"id": 2, "name": "Raju", "phone": "9800000002", "help_type": "DRIVER", "is_active": False,
             "pass_code": "654321", "created_at": datetime(2025, 1, 1, 9, 0), "society_id": 1},
        ])
        conn.execute(insert(flat_domestic_helps), [{"help_id": 1, "flat_id": 1}])
    yield
    db_manager.drop_schema()


@pytest.fixture
def seed():
    return SEED


@pytest.fixture
def conn():
    with db_manager.get_connection() as connection:
        yield connection


@pytest.fixture
def frozen_clock(monkeypatch):
    frozen = FrozenClock(datetime(2025, 3, 14, 10, 0, 0))
    monkeypatch.setattr(clock, "now", frozen.now)
    return frozen


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def gatekeeper(notifier):
    return GatekeeperService(notifier=notifier)


@pytest.fixture
def client(monkeypatch, notifier):
    from gatekeeper.api.routes import visitors
    from gatekeeper.main import app

    monkeypatch.setattr(visitors.gatekeeper_service, "notifier", notifier)
    with TestClient(app) as test_client:
        yield test_client

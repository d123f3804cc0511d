from datetime import date, datetime, timedelta, timezone

import pytest
from sqlalchemy import insert

from gatekeeper.config import config
from gatekeeper.models.schemas import PreApprovalCreateRequest, FrequentVisitorCreateRequest
from gatekeeper.models.tables import pre_approvals
from gatekeeper.services.grant_service import GrantService
from gatekeeper.services.identity_service import IdentityService
from gatekeeper.utils import codes
from gatekeeper.utils.exceptions import NotFoundError, ConflictError, BadRequestError


def pre_approval_request(**overrides):
    values = {
        "visitor_name": "Parcel Courier",
        "visitor_phone": "9000000009",
        "category": "DELIVERY",
        "resident_id": 1,
        "flat_id": 1,
    }
    values.update(overrides)
    return PreApprovalCreateRequest(**values)


def frequent_request(visitor_id, **overrides):
    values = {
        "visitor_id": visitor_id,
        "flat_id": 1,
        "category": "MAID",
        "purpose": "Domestic Help",
        "valid_from": date(2025, 3, 1),
        "valid_until": date(2025, 3, 31),
        "resident_id": 1,
    }
    values.update(overrides)
    return FrequentVisitorCreateRequest(**values)


def code_sequence(monkeypatch, *values):
    drawn = iter(values)
    monkeypatch.setattr(codes, "generate_code", lambda length=None: next(drawn))


@pytest.fixture
def visitor(conn):
    return IdentityService().resolve_visitor(conn, "Lakshmi", "9000000003")


# ---------------------------------------------------------------------------
# Pre-approvals
# ---------------------------------------------------------------------------

def test_pre_approval_defaults_to_a_day_from_now(conn, frozen_clock):
    grant = GrantService().create_pre_approval(conn, pre_approval_request())

    assert grant.valid_from == frozen_clock.now()
    assert grant.valid_until == frozen_clock.now() + timedelta(hours=config.PRE_APPROVAL_DEFAULT_HOURS)
    assert len(grant.code) == 6 and grant.code.isdigit()
    assert grant.is_used is False


def test_pre_approval_window_must_move_forward(conn, frozen_clock):
    now = frozen_clock.now()
    service = GrantService()

    with pytest.raises(BadRequestError):
        service.create_pre_approval(conn, pre_approval_request(valid_from=now, valid_until=now))
    with pytest.raises(BadRequestError):
        service.create_pre_approval(conn, pre_approval_request(valid_from=now, valid_until=now - timedelta(hours=1)))


def test_pre_approval_requires_resident_and_flat(conn):
    service = GrantService()
    with pytest.raises(NotFoundError, match="Resident"):
        service.create_pre_approval(conn, pre_approval_request(resident_id=999))
    with pytest.raises(NotFoundError, match="Flat"):
        service.create_pre_approval(conn, pre_approval_request(flat_id=999))


def test_taken_codes_are_skipped(conn, monkeypatch):
    service = GrantService()
    code_sequence(monkeypatch, "111111", "111111", "222222")

    first = service.create_pre_approval(conn, pre_approval_request())
    second = service.create_pre_approval(conn, pre_approval_request())

    assert (first.code, second.code) == ("111111", "222222")


def test_redeemed_code_can_be_issued_again(conn, monkeypatch):
    service = GrantService()
    code_sequence(monkeypatch, "111111", "111111")

    first = service.create_pre_approval(conn, pre_approval_request())
    assert service.consume_pre_approval(conn, first.id)
    second = service.create_pre_approval(conn, pre_approval_request(visitor_phone="9000000008"))

    assert (first.code, second.code) == ("111111", "111111")
    assert service.get_unused_by_code(conn, "111111")["id"] == second.id


def test_aware_window_is_stored_as_local_time():
    aware = datetime(2099, 3, 15, 10, 0, tzinfo=timezone(timedelta(hours=5, minutes=30)))
    request = pre_approval_request(valid_from=aware.isoformat(), valid_until="2099-03-16T10:00:00Z")

    assert request.valid_from == aware.astimezone().replace(tzinfo=None)
    assert request.valid_until.tzinfo is None
    assert request.valid_until - request.valid_from == timedelta(hours=29, minutes=30)


def test_insert_collision_retries_with_a_new_code(conn, frozen_clock, monkeypatch):
    now = frozen_clock.now()
    row = {
        "visitor_name": "Courier", "visitor_phone": "9000000009", "category": "DELIVERY",
        "valid_from": now, "valid_until": now + timedelta(hours=1), "is_used": False,
        "created_at": now, "resident_id": 1, "flat_id": 1,
    }
    conn.execute(insert(pre_approvals).values(code="111111", active_code="111111", **row))
    code_sequence(monkeypatch, "111111", "333333")

    code, _ = codes.insert_with_unique_code(
        conn,
        lambda candidate: False,
        lambda candidate: conn.execute(insert(pre_approvals).values(code=candidate, active_code=candidate, **row)),
        "test",
    )

    assert code == "333333"


def test_code_allocation_gives_up_after_bounded_attempts(conn, monkeypatch):
    monkeypatch.setattr(config, "CODE_GENERATION_ATTEMPTS", 3)
    monkeypatch.setattr(codes, "generate_code", lambda length=None: "111111")
    GrantService().create_pre_approval(conn, pre_approval_request())

    with pytest.raises(ConflictError):
        GrantService().create_pre_approval(conn, pre_approval_request())


def test_generate_code_is_zero_padded(monkeypatch):
    monkeypatch.setattr(codes.secrets, "randbelow", lambda upper: 42)
    assert codes.generate_code() == "000042"


def test_list_pre_approvals_for_flat(conn, seed):
    service = GrantService()
    service.create_pre_approval(conn, pre_approval_request())
    service.create_pre_approval(conn, pre_approval_request(flat_id=seed.quiet_flat_id))

    assert len(service.list_pre_approvals_for_flat(conn, seed.flat_id)) == 1


# ---------------------------------------------------------------------------
# Frequent visitors
# ---------------------------------------------------------------------------

def test_create_frequent_visitor(conn, visitor):
    created = GrantService().create_frequent_visitor(conn, frequent_request(visitor["id"]))

    assert created.is_active is True
    assert created.visitor_name == "Lakshmi"
    assert created.created_by_resident_id == 1


def test_one_frequent_pass_per_visitor_and_flat(conn, visitor, seed):
    service = GrantService()
    service.create_frequent_visitor(conn, frequent_request(visitor["id"]))

    with pytest.raises(ConflictError):
        service.create_frequent_visitor(conn, frequent_request(visitor["id"]))

    # a different flat is fine
    other = service.create_frequent_visitor(
        conn, frequent_request(visitor["id"], flat_id=seed.quiet_flat_id, resident_id=4)
    )
    assert other.flat_id == seed.quiet_flat_id


def test_frequent_pass_date_order(conn, visitor):
    service = GrantService()
    with pytest.raises(BadRequestError):
        service.create_frequent_visitor(
            conn, frequent_request(visitor["id"], valid_from=date(2025, 3, 2), valid_until=date(2025, 3, 1))
        )

    single_day = service.create_frequent_visitor(
        conn, frequent_request(visitor["id"], valid_from=date(2025, 3, 2), valid_until=date(2025, 3, 2))
    )
    assert single_day.valid_from == single_day.valid_until


def test_frequent_pass_requires_known_references(conn, visitor):
    service = GrantService()
    with pytest.raises(NotFoundError, match="Visitor"):
        service.create_frequent_visitor(conn, frequent_request(999))
    with pytest.raises(NotFoundError, match="Flat"):
        service.create_frequent_visitor(conn, frequent_request(visitor["id"], flat_id=999))
    with pytest.raises(NotFoundError, match="Resident"):
        service.create_frequent_visitor(conn, frequent_request(visitor["id"], resident_id=999))


def test_frequent_pass_covers_both_end_days(conn, visitor):
    service = GrantService()
    service.create_frequent_visitor(conn, frequent_request(visitor["id"]))

    assert service.find_active_frequent_visitor(conn, visitor["id"], 1, date(2025, 3, 1)) is not None
    assert service.find_active_frequent_visitor(conn, visitor["id"], 1, date(2025, 3, 31)) is not None
    assert service.find_active_frequent_visitor(conn, visitor["id"], 1, date(2025, 4, 1)) is None
    assert service.find_active_frequent_visitor(conn, visitor["id"], 1, date(2025, 2, 28)) is None


def test_deactivated_pass_no_longer_matches(conn, visitor, frozen_clock):
    service = GrantService()
    created = service.create_frequent_visitor(conn, frequent_request(visitor["id"]))

    deactivated = service.deactivate_frequent_visitor(conn, created.id)

    assert deactivated.is_active is False
    assert service.find_active_frequent_visitor(conn, visitor["id"], 1, date(2025, 3, 14)) is None
    assert service.frequent_visitors_for_flat(conn, 1) == []
    # the resident's own history still shows it
    assert [p.id for p in service.frequent_visitors_by_resident(conn, 1)] == [created.id]

    with pytest.raises(NotFoundError):
        service.deactivate_frequent_visitor(conn, 999)


def test_flat_listing_hides_expired_passes(conn, visitor, frozen_clock):
    service = GrantService()
    other = IdentityService().resolve_visitor(conn, "Mohan", "9000000004")
    service.create_frequent_visitor(conn, frequent_request(visitor["id"]))
    service.create_frequent_visitor(
        conn, frequent_request(other["id"], valid_from=date(2025, 2, 1), valid_until=date(2025, 3, 13))
    )

    listed = service.frequent_visitors_for_flat(conn, 1)

    assert [p.visitor_id for p in listed] == [visitor["id"]]


def test_society_listing_is_scoped(conn, visitor, seed):
    service = GrantService()
    service.create_frequent_visitor(conn, frequent_request(visitor["id"]))

    assert len(service.frequent_visitors_for_society(conn, seed.society_id)) == 1
    assert service.frequent_visitors_for_society(conn, seed.other_society_id) == []

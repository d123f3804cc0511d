import pytest
from sqlalchemy import select

from gatekeeper.models.schemas import StaffCreateRequest
from gatekeeper.models.tables import daily_help_logs, flat_domestic_helps, domestic_helps
from gatekeeper.services.access_control import AccessControlService
from gatekeeper.models.enums import SubjectType
from gatekeeper.services.staff_service import StaffService
from gatekeeper.utils.exceptions import NotFoundError, ConflictError


def staff_request(**overrides):
    values = {"name": "Geeta", "phone": "9800000010", "help_type": "COOK", "flat_ids": [1, 2]}
    values.update(overrides)
    return StaffCreateRequest(**values)


def test_passcode_scan_opens_then_closes_attendance(conn, frozen_clock, seed):
    service = StaffService()

    entry = service.record_access(conn, seed.staff_pass_code, scanned_by=seed.guard_email)
    entered_at = frozen_clock.now()
    frozen_clock.advance(hours=8)
    exit_ = service.record_access(conn, seed.staff_pass_code, scanned_by=seed.guard_email)

    assert entry == {"name": "Sunita", "role": "MAID", "type": "ENTRY", "timestamp": entered_at, "status": "SUCCESS"}
    assert exit_["type"] == "EXIT"
    assert exit_["timestamp"] == frozen_clock.now()

    log = conn.execute(select(daily_help_logs)).mappings().one()
    assert log["entry_time"] == entered_at
    assert log["exit_time"] == frozen_clock.now()
    assert log["guard_id"] == seed.guard_user_id


def test_third_scan_starts_a_new_day(conn, frozen_clock, seed):
    service = StaffService()
    service.record_access(conn, seed.staff_pass_code)
    service.record_access(conn, seed.staff_pass_code)
    frozen_clock.advance(days=1)

    again = service.record_access(conn, seed.staff_pass_code)

    assert again["type"] == "ENTRY"
    assert len(service.attendance_for_staff(conn, seed.staff_id)) == 2
    assert service.attendance_for_staff(conn, seed.staff_id)[0].exit_time is None


def test_unknown_passcode(conn):
    with pytest.raises(NotFoundError, match="Invalid Pass Code"):
        StaffService().record_access(conn, "000000")


def test_inactive_staff_cannot_scan(conn, seed):
    with pytest.raises(ConflictError):
        StaffService().record_access(conn, seed.inactive_staff_pass_code)


def test_add_staff_generates_passcode_and_links_flats(conn, frozen_clock, seed):
    service = StaffService()

    staff = service.add_staff(conn, seed.society_id, staff_request())

    assert len(staff.pass_code) == 6 and staff.pass_code.isdigit()
    assert staff.is_active is True
    assert staff.created_at == frozen_clock.now()
    assert [s.id for s in service.staff_for_flat(conn, 2)] == [staff.id]
    assert {s.id for s in service.staff_for_flat(conn, 1)} == {seed.staff_id, staff.id}


def test_add_staff_with_taken_passcode(conn, seed):
    with pytest.raises(ConflictError):
        StaffService().add_staff(conn, seed.society_id, staff_request(pass_code=seed.staff_pass_code))
    count = conn.execute(select(domestic_helps.c.id)).all()
    assert len(count) == 2


def test_add_staff_with_chosen_passcode(conn, seed):
    staff = StaffService().add_staff(conn, seed.society_id, staff_request(pass_code="777777", flat_ids=[]))
    assert staff.pass_code == "777777"


def test_add_staff_to_unknown_society(conn):
    with pytest.raises(NotFoundError, match="Society"):
        StaffService().add_staff(conn, 999, staff_request())


def test_roster_listing_and_flat_links(conn, seed):
    service = StaffService()

    assert [s.name for s in service.list_staff(conn, seed.society_id)] == ["Raju", "Sunita"]
    assert service.list_staff(conn, seed.other_society_id) == []

    service.link_flat(conn, seed.staff_id, seed.quiet_flat_id)
    service.link_flat(conn, seed.staff_id, seed.quiet_flat_id)
    assert [s.id for s in service.staff_for_flat(conn, seed.quiet_flat_id)] == [seed.staff_id]

    service.unlink_flat(conn, seed.staff_id, seed.quiet_flat_id)
    assert service.staff_for_flat(conn, seed.quiet_flat_id) == []

    with pytest.raises(NotFoundError):
        service.link_flat(conn, seed.staff_id, 999)


def test_deactivated_staff_is_refused(conn, seed):
    service = StaffService()

    updated = service.set_active(conn, seed.staff_id, False)

    assert updated.is_active is False
    with pytest.raises(ConflictError):
        service.record_access(conn, seed.staff_pass_code)


def test_delete_staff_removes_links_and_logs(conn, seed):
    service = StaffService()
    service.record_access(conn, seed.staff_pass_code)
    AccessControlService().toggle_access(conn, SubjectType.HELP, seed.staff_id)

    service.delete_staff(conn, seed.staff_id)

    assert conn.execute(select(flat_domestic_helps)).first() is None
    assert conn.execute(select(daily_help_logs)).first() is None
    with pytest.raises(NotFoundError):
        service.get_staff(conn, seed.staff_id)
    with pytest.raises(NotFoundError, match="Invalid Pass Code"):
        service.record_access(conn, seed.staff_pass_code)

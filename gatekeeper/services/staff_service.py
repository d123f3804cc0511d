# =======================================================================================
# gatekeeper/services/staff_service.py - Domestic Help Roster and Attendance
# =======================================================================================
from typing import Optional, List, Dict, Any
from loguru import logger
from sqlalchemy import select, insert, update, delete
from sqlalchemy.engine import Connection
from sqlalchemy.exc import IntegrityError
from ..models.enums import AccessResult
from ..models.schemas import StaffCreateRequest, StaffResponse, DailyHelpLogItem
from ..models.tables import domestic_helps, flat_domestic_helps, daily_help_logs, access_logs
from ..utils import clock
from ..utils.codes import insert_with_unique_code
from ..utils.exceptions import NotFoundError, ConflictError
from .catalog_service import CatalogService


class StaffService:
    """Domestic help staff: passcode issuance and entry/exit attendance."""

    def __init__(self):
        self.catalog = CatalogService()

    # ------------------------------------------------------------------
    # Attendance
    # ------------------------------------------------------------------
    def record_access(self, conn: Connection, pass_code: str, scanned_by: Optional[str] = None) -> Dict[str, Any]:
        """
        Toggle attendance for the staff member owning ``pass_code``.
        An open log (no exit time) is closed as EXIT; otherwise a new log is
        opened as ENTRY.
        """
        staff = conn.execute(
            select(domestic_helps).where(domestic_helps.c.pass_code == pass_code).with_for_update()
        ).mappings().first()
        if not staff:
            raise NotFoundError("Invalid Pass Code")
        if not staff["is_active"]:
            raise ConflictError("Staff member is inactive")

        now = clock.now()
        open_log_id = conn.execute(
            select(daily_help_logs.c.id)
            .where(daily_help_logs.c.help_id == staff["id"], daily_help_logs.c.exit_time.is_(None))
            .order_by(daily_help_logs.c.entry_time.desc(), daily_help_logs.c.id.desc())
            .limit(1)
        ).scalar_one_or_none()

        if open_log_id is not None:
            conn.execute(
                update(daily_help_logs)
                .where(daily_help_logs.c.id == open_log_id, daily_help_logs.c.exit_time.is_(None))
                .values(exit_time=now)
            )
            access_type = "EXIT"
        else:
            conn.execute(
                insert(daily_help_logs).values(
                    help_id=staff["id"],
                    entry_time=now,
                    guard_id=self.catalog.user_id_for_email(conn, scanned_by),
                )
            )
            access_type = "ENTRY"

        logger.info("[staff] {} ({}) -> {}", staff["name"], staff["id"], access_type)
        return {
            "name": staff["name"],
            "role": staff["help_type"],
            "type": access_type,
            "timestamp": now,
            "status": AccessResult.SUCCESS.value,
        }

    def attendance_for_staff(self, conn: Connection, staff_id: int) -> List[DailyHelpLogItem]:
        self._require_staff(conn, staff_id)
        rows = conn.execute(
            select(daily_help_logs)
            .where(daily_help_logs.c.help_id == staff_id)
            .order_by(daily_help_logs.c.entry_time.desc(), daily_help_logs.c.id.desc())
        ).mappings().all()
        return [DailyHelpLogItem(**dict(r)) for r in rows]

    # ------------------------------------------------------------------
    # Roster
    # ------------------------------------------------------------------
    def add_staff(self, conn: Connection, society_id: int, request: StaffCreateRequest) -> StaffResponse:
        self.catalog.require_society(conn, society_id)
        for flat_id in request.flat_ids:
            self.catalog.require_flat(conn, flat_id)

        values = {
            "name": request.name,
            "phone": request.phone,
            "help_type": request.help_type,
            "is_active": True,
            "photo_url": request.photo_url,
            "created_at": clock.now(),
            "society_id": society_id,
        }

        def do_insert(code: str):
            return conn.execute(
                insert(domestic_helps).values(pass_code=code, **values)
            ).inserted_primary_key[0]

        if request.pass_code:
            try:
                with conn.begin_nested():
                    staff_id = do_insert(request.pass_code)
            except IntegrityError:
                raise ConflictError("Pass code already assigned to another staff member") from None
        else:
            _, staff_id = insert_with_unique_code(conn, self._pass_code_taken(conn), do_insert, "passcode")

        for flat_id in request.flat_ids:
            conn.execute(insert(flat_domestic_helps).values(help_id=staff_id, flat_id=flat_id))

        logger.info("[staff] added {} ({}) to society {}", request.name, staff_id, society_id)
        return self.get_staff(conn, staff_id)

    @staticmethod
    def _pass_code_taken(conn: Connection):
        def is_taken(code: str) -> bool:
            return conn.execute(
                select(domestic_helps.c.id).where(domestic_helps.c.pass_code == code)
            ).first() is not None
        return is_taken

    def get_staff(self, conn: Connection, staff_id: int) -> StaffResponse:
        return self._to_response(self._require_staff(conn, staff_id))

    def list_staff(self, conn: Connection, society_id: int) -> List[StaffResponse]:
        rows = conn.execute(
            select(domestic_helps)
            .where(domestic_helps.c.society_id == society_id)
            .order_by(domestic_helps.c.name, domestic_helps.c.id)
        ).mappings().all()
        return [self._to_response(r) for r in rows]

    def staff_for_flat(self, conn: Connection, flat_id: int) -> List[StaffResponse]:
        rows = conn.execute(
            select(domestic_helps)
            .select_from(domestic_helps.join(flat_domestic_helps, flat_domestic_helps.c.help_id == domestic_helps.c.id))
            .where(flat_domestic_helps.c.flat_id == flat_id)
            .order_by(domestic_helps.c.name, domestic_helps.c.id)
        ).mappings().all()
        return [self._to_response(r) for r in rows]

    def link_flat(self, conn: Connection, staff_id: int, flat_id: int) -> None:
        self._require_staff(conn, staff_id)
        self.catalog.require_flat(conn, flat_id)
        linked = conn.execute(
            select(flat_domestic_helps.c.help_id).where(
                flat_domestic_helps.c.help_id == staff_id, flat_domestic_helps.c.flat_id == flat_id
            )
        ).first()
        if not linked:
            conn.execute(insert(flat_domestic_helps).values(help_id=staff_id, flat_id=flat_id))

    def unlink_flat(self, conn: Connection, staff_id: int, flat_id: int) -> None:
        self._require_staff(conn, staff_id)
        self.catalog.require_flat(conn, flat_id)
        conn.execute(
            delete(flat_domestic_helps).where(
                flat_domestic_helps.c.help_id == staff_id, flat_domestic_helps.c.flat_id == flat_id
            )
        )

    def set_active(self, conn: Connection, staff_id: int, is_active: bool) -> StaffResponse:
        self._require_staff(conn, staff_id)
        conn.execute(update(domestic_helps).where(domestic_helps.c.id == staff_id).values(is_active=is_active))
        logger.info("[staff] {} is_active={}", staff_id, is_active)
        return self.get_staff(conn, staff_id)

    def delete_staff(self, conn: Connection, staff_id: int) -> None:
        """Remove a staff member together with their flat links and attendance history."""
        self._require_staff(conn, staff_id)
        conn.execute(delete(flat_domestic_helps).where(flat_domestic_helps.c.help_id == staff_id))
        conn.execute(delete(daily_help_logs).where(daily_help_logs.c.help_id == staff_id))
        conn.execute(delete(access_logs).where(access_logs.c.domestic_help_id == staff_id))
        conn.execute(delete(domestic_helps).where(domestic_helps.c.id == staff_id))
        logger.info("[staff] deleted {}", staff_id)

    def _require_staff(self, conn: Connection, staff_id: int) -> Dict[str, Any]:
        row = conn.execute(select(domestic_helps).where(domestic_helps.c.id == staff_id)).mappings().first()
        if not row:
            raise NotFoundError("Staff not found")
        return dict(row)

    @staticmethod
    def _to_response(row) -> StaffResponse:
        return StaffResponse(
            id=row["id"],
            name=row["name"],
            phone=row["phone"],
            help_type=row["help_type"],
            is_active=bool(row["is_active"]),
            photo_url=row["photo_url"],
            pass_code=row["pass_code"],
            created_at=row["created_at"],
            society_id=row["society_id"],
        )

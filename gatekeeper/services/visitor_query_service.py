# =======================================================================================
# gatekeeper/services/visitor_query_service.py - Visit Listings and Overstay Monitor
# =======================================================================================
from datetime import datetime
from typing import Optional, List
from sqlalchemy import select, func
from sqlalchemy.engine import Connection
from sqlalchemy.sql import Select
from ..models.enums import VisitorCategory
from ..models.schemas import VisitorResponse
from ..models.tables import visitor_logs, visitors, flats, buildings, users
from ..utils import clock
from ..utils.exceptions import NotFoundError


class VisitorQueryService:
    """Read-only views over visitor logs for gate and resident dashboards."""

    # ---------- helper mapping ----------

    @staticmethod
    def display_status(status: str, out_time: Optional[datetime]) -> str:
        """CHECKED_OUT once out, CHECKED_IN while approved and inside, else the raw approval status."""
        if out_time is not None:
            return "CHECKED_OUT"
        if status == "APPROVED":
            return "CHECKED_IN"
        return status

    def base_query(self) -> Select:
        return (
            select(
                visitor_logs,
                visitors.c.full_name.label("visitor_name"),
                visitors.c.phone.label("visitor_phone"),
                visitors.c.photo_url.label("visitor_photo_url"),
                flats.c.flat_number,
                users.c.email.label("checked_in_by_email"),
            )
            .select_from(
                visitor_logs
                .join(visitors, visitor_logs.c.visitor_id == visitors.c.id)
                .join(flats, visitor_logs.c.flat_id == flats.c.id)
                .join(buildings, flats.c.building_id == buildings.c.id)
                .outerjoin(users, visitor_logs.c.checked_in_by_user_id == users.c.id)
            )
        )

    def to_response(self, row) -> VisitorResponse:
        return VisitorResponse(
            log_id=row["id"],
            visitor_id=row["visitor_id"],
            name=row["visitor_name"],
            phone=row["visitor_phone"],
            category=row["category"],
            purpose=row["purpose"],
            image_url=row["visitor_photo_url"],
            vehicle_number=row["vehicle_number"],
            in_time=row["in_time"],
            out_time=row["out_time"],
            expected_out_time=row["expected_out_time"],
            flat_id=row["flat_id"],
            flat_number=row["flat_number"],
            gate_entry=row["gate_entry"],
            checked_in_by=row["checked_in_by_email"],
            status=self.display_status(row["status"], row["out_time"]),
        )

    def _list(self, conn: Connection, *conditions) -> List[VisitorResponse]:
        query = self.base_query().where(*conditions).order_by(
            visitor_logs.c.in_time.desc(), visitor_logs.c.id.desc()
        )
        return [self.to_response(r) for r in conn.execute(query).mappings().all()]

    # ---------- single log ----------

    def get_log(self, conn: Connection, log_id: int) -> VisitorResponse:
        row = conn.execute(self.base_query().where(visitor_logs.c.id == log_id)).mappings().first()
        if not row:
            raise NotFoundError("Visitor log not found")
        return self.to_response(row)

    # ---------- overstay ----------

    def overstaying(self, conn: Connection, society_id: int) -> List[VisitorResponse]:
        """Visitors still inside whose expected checkout time has passed."""
        return self._list(
            conn,
            buildings.c.society_id == society_id,
            visitor_logs.c.out_time.is_(None),
            visitor_logs.c.expected_out_time.is_not(None),
            visitor_logs.c.expected_out_time < clock.now(),
        )

    # ---------- listings ----------

    def active_visitors(self, conn: Connection, society_id: Optional[int] = None) -> List[VisitorResponse]:
        conditions = [visitor_logs.c.out_time.is_(None)]
        if society_id is not None:
            conditions.append(buildings.c.society_id == society_id)
        return self._list(conn, *conditions)

    def history(self, conn: Connection, society_id: Optional[int] = None) -> List[VisitorResponse]:
        conditions = []
        if society_id is not None:
            conditions.append(buildings.c.society_id == society_id)
        return self._list(conn, *conditions)

    def visitors_for_flat(self, conn: Connection, flat_id: int) -> List[VisitorResponse]:
        return self._list(conn, visitor_logs.c.flat_id == flat_id)

    def search(
        self, conn: Connection, society_id: int, name: Optional[str] = None, phone: Optional[str] = None
    ) -> List[VisitorResponse]:
        """Name match is case-insensitive; name wins when both are given."""
        conditions = [buildings.c.society_id == society_id]
        if name:
            conditions.append(func.lower(visitors.c.full_name).contains(name.lower(), autoescape=True))
        elif phone:
            conditions.append(visitors.c.phone.contains(phone, autoescape=True))
        return self._list(conn, *conditions)

    def filter(
        self,
        conn: Connection,
        society_id: int,
        category: Optional[VisitorCategory] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[VisitorResponse]:
        """Category wins over the date range; a range needs both ends."""
        conditions = [buildings.c.society_id == society_id]
        if category:
            conditions.append(visitor_logs.c.category == category)
        elif start is not None and end is not None:
            conditions.append(visitor_logs.c.in_time.between(start, end))
        return self._list(conn, *conditions)

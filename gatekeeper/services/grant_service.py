# =======================================================================================
# gatekeeper/services/grant_service.py - Pre-Approvals and Frequent-Visitor Passes
# =======================================================================================
from datetime import date, datetime, timedelta
from typing import Optional, List, Dict, Any
from loguru import logger
from sqlalchemy import select, insert, update, and_
from sqlalchemy.engine import Connection
from sqlalchemy.exc import IntegrityError
from ..config import config
from ..models.tables import pre_approvals, frequent_visitors, visitors, flats, buildings
from ..models.schemas import (
    PreApprovalCreateRequest, PreApprovalResponse,
    FrequentVisitorCreateRequest, FrequentVisitorResponse,
)
from ..utils import clock
from ..utils.codes import insert_with_unique_code
from ..utils.exceptions import NotFoundError, ConflictError
from ..utils.validators import WindowValidator
from .catalog_service import CatalogService
from .identity_service import IdentityService


class GrantService:
    """Owns the two grant kinds that let a visitor skip resident approval."""

    def __init__(self):
        self.catalog = CatalogService()
        self.identity = IdentityService()

    # ------------------------------------------------------------------
    # Pre-approvals (single use, time boxed, 6 digit code)
    # ------------------------------------------------------------------
    def create_pre_approval(self, conn: Connection, request: PreApprovalCreateRequest) -> PreApprovalResponse:
        resident = self.catalog.require_resident(conn, request.resident_id)
        flat = self.catalog.require_flat(conn, request.flat_id)

        now = clock.now()
        valid_from = request.valid_from or now
        valid_until = request.valid_until or valid_from + timedelta(hours=config.PRE_APPROVAL_DEFAULT_HOURS)
        WindowValidator.validate_order(valid_from, valid_until)

        def is_taken(code: str) -> bool:
            return conn.execute(
                select(pre_approvals.c.id).where(pre_approvals.c.active_code == code)
            ).first() is not None

        def do_insert(code: str):
            return conn.execute(
                insert(pre_approvals).values(
                    visitor_name=request.visitor_name,
                    visitor_phone=request.visitor_phone,
                    category=request.category,
                    valid_from=valid_from,
                    valid_until=valid_until,
                    code=code,
                    active_code=code,
                    is_used=False,
                    created_at=now,
                    resident_id=resident["id"],
                    flat_id=flat["id"],
                )
            ).inserted_primary_key[0]

        code, pre_approval_id = insert_with_unique_code(conn, is_taken, do_insert, "pre-approval")
        logger.info(
            "[grants] pre-approval {} for {} at flat {} valid {} -> {}",
            pre_approval_id, request.visitor_phone, flat["id"], valid_from, valid_until,
        )
        return self._to_pre_approval_response(self._get_pre_approval(conn, pre_approval_id))

    def get_unused_by_code(self, conn: Connection, code: str) -> Optional[Dict[str, Any]]:
        """Used codes are invisible to lookups, so a redeemed code reads as unknown."""
        row = conn.execute(
            select(pre_approvals).where(
                pre_approvals.c.active_code == code,
                pre_approvals.c.is_used.is_(False),
            )
        ).mappings().first()
        return dict(row) if row else None

    def matching_pre_approvals(
        self, conn: Connection, phone: str, flat_id: int, at: datetime
    ) -> List[Dict[str, Any]]:
        """Unused pre-approvals for (phone, flat) whose window contains ``at``."""
        rows = conn.execute(
            select(pre_approvals)
            .where(
                pre_approvals.c.visitor_phone == phone,
                pre_approvals.c.flat_id == flat_id,
                pre_approvals.c.is_used.is_(False),
                pre_approvals.c.valid_from <= at,
                pre_approvals.c.valid_until > at,
            )
            .order_by(pre_approvals.c.valid_until, pre_approvals.c.id)
        ).mappings().all()
        return [dict(r) for r in rows]

    def consume_pre_approval(self, conn: Connection, pre_approval_id: int) -> bool:
        """Flip is_used false -> true; False when someone else already consumed it."""
        result = conn.execute(
            update(pre_approvals)
            .where(pre_approvals.c.id == pre_approval_id, pre_approvals.c.is_used.is_(False))
            .values(is_used=True, active_code=None)
        )
        return result.rowcount == 1

    def list_pre_approvals_for_flat(self, conn: Connection, flat_id: int) -> List[PreApprovalResponse]:
        rows = conn.execute(
            select(pre_approvals)
            .where(pre_approvals.c.flat_id == flat_id)
            .order_by(pre_approvals.c.created_at.desc(), pre_approvals.c.id.desc())
        ).mappings().all()
        return [self._to_pre_approval_response(r) for r in rows]

    def _get_pre_approval(self, conn: Connection, pre_approval_id: int) -> Dict[str, Any]:
        return conn.execute(
            select(pre_approvals).where(pre_approvals.c.id == pre_approval_id)
        ).mappings().one()

    @staticmethod
    def _to_pre_approval_response(row) -> PreApprovalResponse:
        return PreApprovalResponse(
            id=row["id"],
            visitor_name=row["visitor_name"],
            visitor_phone=row["visitor_phone"],
            category=row["category"],
            valid_from=row["valid_from"],
            valid_until=row["valid_until"],
            code=row["code"],
            is_used=bool(row["is_used"]),
            created_at=row["created_at"],
            resident_id=row["resident_id"],
            flat_id=row["flat_id"],
        )

    # ------------------------------------------------------------------
    # Frequent visitors (recurring, date ranged, never consumed)
    # ------------------------------------------------------------------
    def create_frequent_visitor(
        self, conn: Connection, request: FrequentVisitorCreateRequest
    ) -> FrequentVisitorResponse:
        self.identity.get_visitor(conn, request.visitor_id)
        flat = self.catalog.require_flat(conn, request.flat_id)
        resident = self.catalog.require_resident(conn, request.resident_id)
        WindowValidator.validate_order(request.valid_from, request.valid_until, allow_equal=True)

        try:
            with conn.begin_nested():
                result = conn.execute(
                    insert(frequent_visitors).values(
                        visitor_id=request.visitor_id,
                        flat_id=flat["id"],
                        category=request.category,
                        purpose=request.purpose,
                        valid_from=request.valid_from,
                        valid_until=request.valid_until,
                        is_active=True,
                        created_at=clock.now(),
                        created_by_resident_id=resident["id"],
                    )
                )
        except IntegrityError:
            raise ConflictError("Visitor already has a frequent pass for this flat") from None

        pass_id = result.inserted_primary_key[0]
        logger.info("[grants] frequent pass {} for visitor {} at flat {}", pass_id, request.visitor_id, flat["id"])
        return self._frequent_visitor_responses(conn, frequent_visitors.c.id == pass_id)[0]

    def find_active_frequent_visitor(
        self, conn: Connection, visitor_id: int, flat_id: int, day: date
    ) -> Optional[Dict[str, Any]]:
        """Active pass for (visitor, flat) covering ``day`` (both ends inclusive)."""
        row = conn.execute(
            select(frequent_visitors).where(
                frequent_visitors.c.visitor_id == visitor_id,
                frequent_visitors.c.flat_id == flat_id,
                frequent_visitors.c.is_active.is_(True),
                frequent_visitors.c.valid_from <= day,
                frequent_visitors.c.valid_until >= day,
            )
        ).mappings().first()
        return dict(row) if row else None

    def frequent_visitors_for_flat(self, conn: Connection, flat_id: int) -> List[FrequentVisitorResponse]:
        return self._frequent_visitor_responses(
            conn,
            and_(
                frequent_visitors.c.flat_id == flat_id,
                frequent_visitors.c.is_active.is_(True),
                frequent_visitors.c.valid_until >= clock.today(),
            ),
        )

    def frequent_visitors_by_resident(self, conn: Connection, resident_id: int) -> List[FrequentVisitorResponse]:
        return self._frequent_visitor_responses(
            conn, frequent_visitors.c.created_by_resident_id == resident_id
        )

    def frequent_visitors_for_society(self, conn: Connection, society_id: int) -> List[FrequentVisitorResponse]:
        return self._frequent_visitor_responses(
            conn,
            and_(buildings.c.society_id == society_id, frequent_visitors.c.is_active.is_(True)),
        )

    def deactivate_frequent_visitor(self, conn: Connection, pass_id: int) -> FrequentVisitorResponse:
        result = conn.execute(
            update(frequent_visitors).where(frequent_visitors.c.id == pass_id).values(is_active=False)
        )
        if result.rowcount == 0:
            raise NotFoundError("Frequent visitor pass not found")
        logger.info("[grants] frequent pass {} deactivated", pass_id)
        return self._frequent_visitor_responses(conn, frequent_visitors.c.id == pass_id)[0]

    def _frequent_visitor_responses(self, conn: Connection, condition) -> List[FrequentVisitorResponse]:
        rows = conn.execute(
            select(
                frequent_visitors,
                visitors.c.full_name.label("visitor_name"),
                visitors.c.phone.label("visitor_phone"),
            )
            .select_from(
                frequent_visitors
                .join(visitors, frequent_visitors.c.visitor_id == visitors.c.id)
                .join(flats, frequent_visitors.c.flat_id == flats.c.id)
                .join(buildings, flats.c.building_id == buildings.c.id)
            )
            .where(condition)
            .order_by(frequent_visitors.c.created_at.desc(), frequent_visitors.c.id.desc())
        ).mappings().all()

        return [
            FrequentVisitorResponse(
                id=r["id"],
                visitor_id=r["visitor_id"],
                visitor_name=r["visitor_name"],
                visitor_phone=r["visitor_phone"],
                flat_id=r["flat_id"],
                category=r["category"],
                purpose=r["purpose"],
                valid_from=r["valid_from"],
                valid_until=r["valid_until"],
                is_active=bool(r["is_active"]),
                created_at=r["created_at"],
                created_by_resident_id=r["created_by_resident_id"],
            )
            for r in rows
        ]

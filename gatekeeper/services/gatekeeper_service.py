# =======================================================================================
# gatekeeper/services/gatekeeper_service.py - Visitor Check-in / Approval State Machine
# =======================================================================================
from datetime import datetime, timedelta
from typing import Optional, List, Dict, Any, Tuple, Callable
from loguru import logger
from sqlalchemy import event, select, insert, update
from sqlalchemy.engine import Connection
from ..config import config
from ..models.enums import ApprovalStatus, PRE_APPROVED_PURPOSE
from ..models.schemas import VisitorCheckInRequest, VisitorResponse, ApprovalItem
from ..models.tables import visitor_logs, visitor_approvals
from ..utils import clock
from ..utils.exceptions import NotFoundError, ConflictError, BadRequestError
from ..utils.validators import WindowValidator
from .catalog_service import CatalogService
from .grant_service import GrantService
from .identity_service import IdentityService
from .visitor_query_service import VisitorQueryService

# A rule inspects the visit and, when it applies, performs its own side effect
# and returns True. Rules are evaluated in order and the first match wins.
GrantRule = Callable[[Connection, Dict[str, Any], Dict[str, Any], datetime], bool]


class GatekeeperService:
    """
    Central visitor state machine.

    A visitor log starts PENDING unless a grant auto-approves it, and is
    resolved exactly once to APPROVED or REJECTED. Independently, the log is
    OPEN until an out-time is recorded, after which it never changes again.
    """

    def __init__(self, notifier=None):
        self.notifier = notifier
        self.catalog = CatalogService()
        self.identity = IdentityService()
        self.grants = GrantService()
        self.queries = VisitorQueryService()

        # Priority order: frequent visitor pass, then pre-approval code.
        self.grant_rules: List[Tuple[str, GrantRule]] = [
            ("frequent-visitor", self._frequent_visitor_rule),
            ("pre-approval", self._pre_approval_rule),
        ]

    # ------------------------------------------------------------------
    # Grant rules
    # ------------------------------------------------------------------
    def _frequent_visitor_rule(self, conn: Connection, visitor: Dict[str, Any],
                               flat: Dict[str, Any], now: datetime) -> bool:
        return self.grants.find_active_frequent_visitor(conn, visitor["id"], flat["id"], now.date()) is not None

    def _pre_approval_rule(self, conn: Connection, visitor: Dict[str, Any],
                           flat: Dict[str, Any], now: datetime) -> bool:
        # Consume exactly one matching grant; a candidate lost to a concurrent
        # scan is skipped in favour of the next one.
        for candidate in self.grants.matching_pre_approvals(conn, visitor["phone"], flat["id"], now):
            if self.grants.consume_pre_approval(conn, candidate["id"]):
                logger.debug("[gate] consumed pre-approval {} for {}", candidate["id"], visitor["phone"])
                return True
        return False

    def evaluate_grants(self, conn: Connection, visitor: Dict[str, Any], flat: Dict[str, Any],
                        now: datetime) -> Tuple[ApprovalStatus, Optional[str]]:
        """Return (status, name of the rule that matched)."""
        for name, rule in self.grant_rules:
            if rule(conn, visitor, flat, now):
                return "APPROVED", name
        return "PENDING", None

    # ------------------------------------------------------------------
    # Check-in
    # ------------------------------------------------------------------
    def check_in(self, conn: Connection, request: VisitorCheckInRequest,
                 actor_email: Optional[str] = None) -> VisitorResponse:
        visitor = self.identity.resolve_visitor(
            conn,
            request.name,
            request.phone,
            photo_url=request.image_url,
            id_proof_type=request.id_proof_type,
            id_proof_number=request.id_proof_number,
        )
        flat = self.catalog.require_flat(conn, request.flat_id)
        actor_id = self.catalog.user_id_for_email(conn, actor_email)

        now = clock.now()
        expected_out_time = None
        if request.expected_duration_minutes and request.expected_duration_minutes > 0:
            expected_out_time = now + timedelta(minutes=request.expected_duration_minutes)

        status, matched_rule = self.evaluate_grants(conn, visitor, flat, now)

        log_id = conn.execute(
            insert(visitor_logs).values(
                visitor_id=visitor["id"],
                flat_id=flat["id"],
                category=request.category,
                purpose=request.purpose,
                vehicle_number=request.vehicle_number,
                in_time=now,
                expected_out_time=expected_out_time,
                status=status,
                gate_entry=config.DEFAULT_GATE,
                checked_in_by_user_id=actor_id,
            )
        ).inserted_primary_key[0]

        residents = self.catalog.active_residents_for_flat(conn, flat["id"])
        if status == "PENDING" and residents:
            conn.execute(
                insert(visitor_approvals),
                [
                    {
                        "visitor_log_id": log_id,
                        "resident_id": r["resident_id"],
                        "status": "PENDING",
                        "requested_at": now,
                        "requested_by_user_id": actor_id,
                    }
                    for r in residents
                ],
            )

        logger.info(
            "[gate] check-in log={} visitor={} flat={} status={} rule={} residents={}",
            log_id, visitor["phone"], flat["id"], status, matched_rule or "-", len(residents),
        )

        self._notify_after_commit(conn, residents, visitor["full_name"], request.purpose)
        return self.queries.get_log(conn, log_id)

    def _notify_after_commit(self, conn: Connection, residents: List[Dict[str, Any]], visitor_name: str,
                             purpose: Optional[str]) -> None:
        """Alerts go out only once the check-in transaction commits; a rollback sends nothing."""
        if self.notifier is None or not residents:
            return

        def on_commit(connection):
            self._notify_residents(residents, visitor_name, purpose)

        event.listen(conn, "commit", on_commit, once=True)

    def _notify_residents(self, residents: List[Dict[str, Any]], visitor_name: str,
                          purpose: Optional[str]) -> None:
        if self.notifier is None:
            return
        for resident in residents:
            if not resident.get("email"):
                logger.debug("[gate] resident {} has no email, alert skipped", resident["resident_id"])
                continue
            try:
                self.notifier.notify(resident["email"], resident["full_name"], visitor_name, purpose)
            except Exception as e:
                logger.warning("[gate] alert for resident {} not queued: {}", resident["resident_id"], e)

    # ------------------------------------------------------------------
    # Check-out and decisions
    # ------------------------------------------------------------------
    def check_out(self, conn: Connection, log_id: int) -> VisitorResponse:
        result = conn.execute(
            update(visitor_logs)
            .where(visitor_logs.c.id == log_id, visitor_logs.c.out_time.is_(None))
            .values(out_time=clock.now())
        )
        if result.rowcount == 0:
            self._require_log(conn, log_id)
            raise ConflictError("Visitor already checked out")

        logger.info("[gate] check-out log={}", log_id)
        return self.queries.get_log(conn, log_id)

    def decide(self, conn: Connection, log_id: int, approved: bool) -> VisitorResponse:
        """
        Resolve a pending visit. The first resident to answer decides for the
        whole flat: every pending approval of the log takes the same outcome,
        and later answers are rejected as already processed.
        """
        decision: ApprovalStatus = "APPROVED" if approved else "REJECTED"
        now = clock.now()

        result = conn.execute(
            update(visitor_logs)
            .where(visitor_logs.c.id == log_id, visitor_logs.c.status == "PENDING")
            .values(status=decision)
        )
        if result.rowcount == 0:
            self._require_log(conn, log_id)
            raise ConflictError("Visitor request is already processed")

        if not approved:
            # A rejected visitor is treated as having left immediately.
            conn.execute(
                update(visitor_logs)
                .where(visitor_logs.c.id == log_id, visitor_logs.c.out_time.is_(None))
                .values(out_time=now)
            )

        closed = conn.execute(
            update(visitor_approvals)
            .where(visitor_approvals.c.visitor_log_id == log_id, visitor_approvals.c.status == "PENDING")
            .values(status=decision, responded_at=now)
        ).rowcount

        logger.info("[gate] decision log={} -> {} ({} approvals closed)", log_id, decision, closed)
        return self.queries.get_log(conn, log_id)

    # ------------------------------------------------------------------
    # Pre-approval code redemption
    # ------------------------------------------------------------------
    def redeem_pre_approval_code(self, conn: Connection, code: str,
                                 scanned_by: Optional[str] = None) -> Dict[str, Any]:
        grant = self.grants.get_unused_by_code(conn, code)
        if not grant:
            raise NotFoundError("Invalid or Used Pass Code")

        now = clock.now()
        if not WindowValidator.contains(grant["valid_from"], grant["valid_until"], now):
            raise BadRequestError("Pass Code is expired or not yet active")

        if not self.grants.consume_pre_approval(conn, grant["id"]):
            raise ConflictError("Pass Code was just used at another gate")

        visitor = self.identity.resolve_visitor(conn, grant["visitor_name"], grant["visitor_phone"])
        guard_id = self.catalog.user_id_for_email(conn, scanned_by)

        log_id = conn.execute(
            insert(visitor_logs).values(
                visitor_id=visitor["id"],
                flat_id=grant["flat_id"],
                category=grant["category"],
                purpose=PRE_APPROVED_PURPOSE,
                in_time=now,
                status="APPROVED",
                gate_entry=config.DEFAULT_GATE,
                checked_in_by_user_id=guard_id,
            )
        ).inserted_primary_key[0]

        logger.info("[gate] pre-approval {} redeemed, log={} scanned_by={}", grant["id"], log_id, scanned_by)
        return {
            "name": grant["visitor_name"],
            "type": "VISITOR",
            "accessType": "ENTRY",
            "status": "GRANTED",
        }

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------
    def get_log(self, conn: Connection, log_id: int) -> VisitorResponse:
        return self.queries.get_log(conn, log_id)

    def list_approvals(self, conn: Connection, log_id: int) -> List[ApprovalItem]:
        self._require_log(conn, log_id)
        rows = conn.execute(
            select(visitor_approvals)
            .where(visitor_approvals.c.visitor_log_id == log_id)
            .order_by(visitor_approvals.c.id)
        ).mappings().all()
        return [ApprovalItem(**dict(r)) for r in rows]

    def pending_approvals_for_resident(self, conn: Connection, resident_id: int) -> List[VisitorResponse]:
        pending_logs = select(visitor_approvals.c.visitor_log_id).where(
            visitor_approvals.c.resident_id == resident_id,
            visitor_approvals.c.status == "PENDING",
        )
        query = (
            self.queries.base_query()
            .where(visitor_logs.c.id.in_(pending_logs))
            .order_by(visitor_logs.c.in_time.desc(), visitor_logs.c.id.desc())
        )
        return [self.queries.to_response(r) for r in conn.execute(query).mappings().all()]

    def _require_log(self, conn: Connection, log_id: int) -> None:
        exists = conn.execute(
            select(visitor_logs.c.id).where(visitor_logs.c.id == log_id)
        ).first()
        if not exists:
            raise NotFoundError("Visitor log not found")

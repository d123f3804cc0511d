# =======================================================================================
# gatekeeper/api/routes/visitors.py - Visitor Gate Endpoints
# =======================================================================================
from datetime import datetime
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.engine import Connection
from ...models.enums import VisitorCategory
from ...models.schemas import (
    VisitorCheckInRequest,
    VisitorResponse,
    ApprovalItem,
    PreApprovalCreateRequest,
    PreApprovalResponse,
)
from ...services.gatekeeper_service import GatekeeperService
from ...workers.notification_worker import notification_worker
from ..dependencies import get_db_connection, get_actor_email

router = APIRouter()
gatekeeper_service = GatekeeperService(notifier=notification_worker)


# ---- gate actions ----

@router.post("/visitors/check-in", response_model=VisitorResponse, status_code=status.HTTP_201_CREATED)
def check_in_visitor(
    request: VisitorCheckInRequest,
    conn: Connection = Depends(get_db_connection),
    actor_email: Optional[str] = Depends(get_actor_email),
):
    return gatekeeper_service.check_in(conn, request, actor_email)


@router.post("/visitors/check-out/{log_id}", response_model=VisitorResponse)
def check_out_visitor(log_id: int, conn: Connection = Depends(get_db_connection)):
    return gatekeeper_service.check_out(conn, log_id)


# ---- resident decisions ----

@router.post("/visitors/{log_id}/approve", response_model=VisitorResponse)
def approve_visitor(log_id: int, conn: Connection = Depends(get_db_connection)):
    return gatekeeper_service.decide(conn, log_id, approved=True)


@router.post("/visitors/{log_id}/reject", response_model=VisitorResponse)
def reject_visitor(log_id: int, conn: Connection = Depends(get_db_connection)):
    return gatekeeper_service.decide(conn, log_id, approved=False)


@router.get("/visitors/pending-approvals/{resident_id}", response_model=List[VisitorResponse])
def pending_approvals(resident_id: int, conn: Connection = Depends(get_db_connection)):
    return gatekeeper_service.pending_approvals_for_resident(conn, resident_id)


# ---- pre-approvals ----

@router.post("/visitors/pre-approve", response_model=PreApprovalResponse, status_code=status.HTTP_201_CREATED)
def pre_approve_visitor(request: PreApprovalCreateRequest, conn: Connection = Depends(get_db_connection)):
    return gatekeeper_service.grants.create_pre_approval(conn, request)


@router.get("/visitors/pre-approvals/flat/{flat_id}", response_model=List[PreApprovalResponse])
def pre_approvals_for_flat(flat_id: int, conn: Connection = Depends(get_db_connection)):
    return gatekeeper_service.grants.list_pre_approvals_for_flat(conn, flat_id)


# ---- listings (declared before /visitors/{log_id}) ----

@router.get("/visitors/active", response_model=List[VisitorResponse])
def active_visitors(society_id: Optional[int] = Query(None), conn: Connection = Depends(get_db_connection)):
    return gatekeeper_service.queries.active_visitors(conn, society_id)


@router.get("/visitors/history", response_model=List[VisitorResponse])
def visitor_history(society_id: Optional[int] = Query(None), conn: Connection = Depends(get_db_connection)):
    return gatekeeper_service.queries.history(conn, society_id)


@router.get("/visitors/search", response_model=List[VisitorResponse])
def search_visitors(
    society_id: int = Query(...),
    name: Optional[str] = Query(None, description="Case-insensitive name fragment"),
    phone: Optional[str] = Query(None, description="Phone fragment, ignored when name is given"),
    conn: Connection = Depends(get_db_connection),
):
    return gatekeeper_service.queries.search(conn, society_id, name=name, phone=phone)


@router.get("/visitors/filter", response_model=List[VisitorResponse])
def filter_visitors(
    society_id: int = Query(...),
    category: Optional[VisitorCategory] = Query(None),
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    conn: Connection = Depends(get_db_connection),
):
    return gatekeeper_service.queries.filter(conn, society_id, category=category, start=start, end=end)


@router.get("/visitors/overstaying", response_model=List[VisitorResponse])
def overstaying_visitors(society_id: int = Query(...), conn: Connection = Depends(get_db_connection)):
    return gatekeeper_service.queries.overstaying(conn, society_id)


@router.get("/visitors/flat/{flat_id}", response_model=List[VisitorResponse])
def visitors_for_flat(flat_id: int, conn: Connection = Depends(get_db_connection)):
    return gatekeeper_service.queries.visitors_for_flat(conn, flat_id)


# ---- single visit ----

@router.get("/visitors/{log_id}", response_model=VisitorResponse)
def get_visitor_log(log_id: int, conn: Connection = Depends(get_db_connection)):
    return gatekeeper_service.get_log(conn, log_id)


@router.get("/visitors/{log_id}/approvals", response_model=List[ApprovalItem])
def visitor_approvals(log_id: int, conn: Connection = Depends(get_db_connection)):
    return gatekeeper_service.list_approvals(conn, log_id)

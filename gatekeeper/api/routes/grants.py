# =======================================================================================
# gatekeeper/api/routes/grants.py - Frequent Visitor Pass Endpoints
# =======================================================================================
from typing import List
from fastapi import APIRouter, Depends, status
from sqlalchemy.engine import Connection
from ...models.schemas import FrequentVisitorCreateRequest, FrequentVisitorResponse
from ...services.grant_service import GrantService
from ..dependencies import get_db_connection

router = APIRouter()
grant_service = GrantService()


@router.post("/frequent-visitors", response_model=FrequentVisitorResponse, status_code=status.HTTP_201_CREATED)
def create_frequent_visitor(request: FrequentVisitorCreateRequest, conn: Connection = Depends(get_db_connection)):
    return grant_service.create_frequent_visitor(conn, request)


@router.get("/frequent-visitors/flat/{flat_id}", response_model=List[FrequentVisitorResponse])
def frequent_visitors_for_flat(flat_id: int, conn: Connection = Depends(get_db_connection)):
    return grant_service.frequent_visitors_for_flat(conn, flat_id)


@router.get("/frequent-visitors/resident/{resident_id}", response_model=List[FrequentVisitorResponse])
def frequent_visitors_by_resident(resident_id: int, conn: Connection = Depends(get_db_connection)):
    return grant_service.frequent_visitors_by_resident(conn, resident_id)


@router.get("/frequent-visitors/society/{society_id}", response_model=List[FrequentVisitorResponse])
def frequent_visitors_for_society(society_id: int, conn: Connection = Depends(get_db_connection)):
    return grant_service.frequent_visitors_for_society(conn, society_id)


@router.delete("/frequent-visitors/{pass_id}", response_model=FrequentVisitorResponse)
def deactivate_frequent_visitor(pass_id: int, conn: Connection = Depends(get_db_connection)):
    """Passes are deactivated, never deleted, so past approvals stay explainable."""
    return grant_service.deactivate_frequent_visitor(conn, pass_id)

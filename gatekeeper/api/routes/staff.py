# =======================================================================================
# gatekeeper/api/routes/staff.py - Domestic Help Endpoints
# =======================================================================================
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.engine import Connection
from ...models.schemas import (
    StaffCreateRequest,
    StaffResponse,
    StaffActiveUpdate,
    StaffAccessResponse,
    DailyHelpLogItem,
    CODE_PATTERN,
)
from ...services.staff_service import StaffService
from ..dependencies import get_db_connection, get_actor_email

router = APIRouter()
staff_service = StaffService()


# ---- attendance ----

@router.post("/staff/scan", response_model=StaffAccessResponse)
def scan_staff_passcode(
    pass_code: str = Query(..., pattern=CODE_PATTERN),
    conn: Connection = Depends(get_db_connection),
    actor_email: Optional[str] = Depends(get_actor_email),
):
    return staff_service.record_access(conn, pass_code, actor_email)


@router.get("/staff/{staff_id}/attendance", response_model=List[DailyHelpLogItem])
def staff_attendance(staff_id: int, conn: Connection = Depends(get_db_connection)):
    return staff_service.attendance_for_staff(conn, staff_id)


# ---- roster ----

@router.post("/staff/society/{society_id}", response_model=StaffResponse, status_code=status.HTTP_201_CREATED)
def add_staff(society_id: int, request: StaffCreateRequest, conn: Connection = Depends(get_db_connection)):
    return staff_service.add_staff(conn, society_id, request)


@router.get("/staff/society/{society_id}", response_model=List[StaffResponse])
def list_staff(society_id: int, conn: Connection = Depends(get_db_connection)):
    return staff_service.list_staff(conn, society_id)


@router.get("/staff/flat/{flat_id}", response_model=List[StaffResponse])
def staff_for_flat(flat_id: int, conn: Connection = Depends(get_db_connection)):
    return staff_service.staff_for_flat(conn, flat_id)


@router.get("/staff/{staff_id}", response_model=StaffResponse)
def get_staff(staff_id: int, conn: Connection = Depends(get_db_connection)):
    return staff_service.get_staff(conn, staff_id)


@router.post("/staff/{staff_id}/flats/{flat_id}", status_code=status.HTTP_204_NO_CONTENT)
def link_staff_to_flat(staff_id: int, flat_id: int, conn: Connection = Depends(get_db_connection)):
    staff_service.link_flat(conn, staff_id, flat_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/staff/{staff_id}/flats/{flat_id}", status_code=status.HTTP_204_NO_CONTENT)
def unlink_staff_from_flat(staff_id: int, flat_id: int, conn: Connection = Depends(get_db_connection)):
    staff_service.unlink_flat(conn, staff_id, flat_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/staff/{staff_id}/active", response_model=StaffResponse)
def set_staff_active(staff_id: int, request: StaffActiveUpdate, conn: Connection = Depends(get_db_connection)):
    return staff_service.set_active(conn, staff_id, request.is_active)


@router.delete("/staff/{staff_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_staff(staff_id: int, conn: Connection = Depends(get_db_connection)):
    staff_service.delete_staff(conn, staff_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

# =======================================================================================
# gatekeeper/api/routes/access.py - Gate Scanner and Presence Endpoints
# =======================================================================================
from typing import Optional
from fastapi import APIRouter, Depends
from sqlalchemy.engine import Connection
from ...models.enums import SubjectType
from ...models.schemas import QrValidateRequest, ScanResponse, PresenceResponse
from ...services.scan_service import ScanService
from ..dependencies import get_db_connection, get_actor_email
from .visitors import gatekeeper_service

router = APIRouter()
scan_service = ScanService(gatekeeper=gatekeeper_service)
access_service = scan_service.access


@router.post("/access/validate-qr", response_model=ScanResponse)
def validate_qr(
    request: QrValidateRequest,
    conn: Connection = Depends(get_db_connection),
    actor_email: Optional[str] = Depends(get_actor_email),
):
    """Process a token read at the gate (pre-approval code or resident/staff QR)."""
    return ScanResponse(**scan_service.dispatch(conn, request.token, actor_email))


@router.get("/access/presence/{subject_type}/{subject_id}", response_model=PresenceResponse)
def get_presence(subject_type: SubjectType, subject_id: int, conn: Connection = Depends(get_db_connection)):
    """Whether a resident or staff member is currently inside the premises."""
    return PresenceResponse(**access_service.presence(conn, subject_type, subject_id))

# =======================================================================================
# gatekeeper/models/schemas.py - Pydantic Models
# =======================================================================================
from datetime import date, datetime
from typing import Optional, List
from pydantic import BaseModel, Field, field_validator
from .enums import VisitorCategory, ApprovalStatus, AccessType, HelpType, DisplayStatus

PHONE_PATTERN = r"^[0-9]{10}$"
CODE_PATTERN = r"^[0-9]{6}$"
MAX_VISIT_MINUTES = 7 * 24 * 60

# ========== Visitor check-in / check-out ==========
class VisitorCheckInRequest(BaseModel):
    """Gate check-in request model."""
    name: str = Field(..., min_length=1, max_length=100, description="Visitor's full name")
    phone: str = Field(..., pattern=PHONE_PATTERN, description="10 digit phone, natural visitor key")
    category: VisitorCategory = Field("GUEST", description="Visitor category")
    flat_id: int = Field(..., description="Flat being visited")
    purpose: Optional[str] = Field(None, max_length=200)
    image_url: Optional[str] = Field(None, max_length=255, description="Reference to an already stored photo")
    vehicle_number: Optional[str] = Field(None, max_length=20)
    id_proof_type: Optional[str] = Field(None, max_length=50, description="AADHAAR, PAN, DL, PASSPORT ...")
    id_proof_number: Optional[str] = Field(None, max_length=50)
    expected_duration_minutes: Optional[int] = Field(
        None, ge=0, le=MAX_VISIT_MINUTES, description="Used for overstay tracking, at most a week"
    )

class VisitorResponse(BaseModel):
    """One visit as shown to gate and resident dashboards."""
    log_id: int
    visitor_id: int
    name: str
    phone: str
    category: VisitorCategory
    purpose: Optional[str] = None
    image_url: Optional[str] = None
    vehicle_number: Optional[str] = None
    in_time: datetime
    out_time: Optional[datetime] = None
    expected_out_time: Optional[datetime] = None
    flat_id: int
    flat_number: Optional[str] = None
    gate_entry: Optional[str] = None
    checked_in_by: Optional[str] = None
    status: DisplayStatus

class ApprovalItem(BaseModel):
    id: int
    visitor_log_id: int
    resident_id: int
    status: ApprovalStatus
    requested_at: datetime
    responded_at: Optional[datetime] = None
    requested_by_user_id: Optional[int] = None

# ========== Grants ==========
class PreApprovalCreateRequest(BaseModel):
    """Resident books a single-use entry code for an expected visitor."""
    visitor_name: str = Field(..., min_length=1, max_length=100)
    visitor_phone: str = Field(..., pattern=PHONE_PATTERN)
    category: VisitorCategory
    valid_from: Optional[datetime] = None
    valid_until: Optional[datetime] = None
    resident_id: int
    flat_id: int

    @field_validator("valid_from", "valid_until")
    @classmethod
    def to_local_time(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Windows are stored and compared as naive local wall-clock time."""
        if v is not None and v.tzinfo is not None:
            return v.astimezone().replace(tzinfo=None)
        return v

class PreApprovalResponse(BaseModel):
    id: int
    visitor_name: str
    visitor_phone: str
    category: VisitorCategory
    valid_from: datetime
    valid_until: datetime
    code: str
    is_used: bool
    created_at: datetime
    resident_id: int
    flat_id: int

class FrequentVisitorCreateRequest(BaseModel):
    """Recurring pass for a known visitor (maid, regular delivery ...)."""
    visitor_id: int
    flat_id: int
    category: VisitorCategory
    purpose: Optional[str] = Field(None, max_length=100, description='e.g. "Domestic Help"')
    valid_from: date
    valid_until: date
    resident_id: int

class FrequentVisitorResponse(BaseModel):
    id: int
    visitor_id: int
    visitor_name: Optional[str] = None
    visitor_phone: Optional[str] = None
    flat_id: int
    category: VisitorCategory
    purpose: Optional[str] = None
    valid_from: date
    valid_until: date
    is_active: bool
    created_at: datetime
    created_by_resident_id: int

# ========== Scanning ==========
class QrValidateRequest(BaseModel):
    """Token presented at the gate: 6 digit code or TYPE:ID:NAME."""
    token: str = Field(..., min_length=1, max_length=200)

class ScanResponse(BaseModel):
    """Scan result sent back to the gate device."""
    name: str
    type: str
    accessType: AccessType
    status: str

class PresenceResponse(BaseModel):
    """Whether a resident or staff member is currently inside."""
    name: str
    type: str
    inside: bool
    lastAction: Optional[AccessType] = None

class StaffAccessResponse(BaseModel):
    name: str
    role: HelpType
    type: AccessType
    timestamp: datetime
    status: str

# ========== Staff roster ==========
class StaffCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    phone: str = Field(..., pattern=PHONE_PATTERN)
    help_type: HelpType
    photo_url: Optional[str] = Field(None, max_length=255)
    pass_code: Optional[str] = Field(None, pattern=CODE_PATTERN, description="Generated when omitted")
    flat_ids: List[int] = Field(default_factory=list)

class StaffResponse(BaseModel):
    id: int
    name: str
    phone: str
    help_type: HelpType
    is_active: bool
    photo_url: Optional[str] = None
    pass_code: str
    created_at: datetime
    society_id: int

class StaffActiveUpdate(BaseModel):
    is_active: bool

class DailyHelpLogItem(BaseModel):
    id: int
    help_id: int
    entry_time: datetime
    exit_time: Optional[datetime] = None
    guard_id: Optional[int] = None

# ========== Health ==========
class HealthResponse(BaseModel):
    status: str                 # "ok" | "error"
    dataAvailable: bool
    message: Optional[str] = None

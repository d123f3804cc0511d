# =======================================================================================
# gatekeeper/models/__init__.py - Models Package
# =======================================================================================
from .schemas import *
from .enums import *

__all__ = [
    "VisitorCheckInRequest", "VisitorResponse", "ApprovalItem",
    "PreApprovalCreateRequest", "PreApprovalResponse",
    "FrequentVisitorCreateRequest", "FrequentVisitorResponse",
    "QrValidateRequest", "ScanResponse", "StaffAccessResponse",
    "StaffCreateRequest", "StaffResponse", "StaffActiveUpdate", "DailyHelpLogItem",
    "HealthResponse", "VisitorCategory", "ApprovalStatus", "AccessType", "HelpType",
    "DisplayStatus", "SubjectType", "AccessResult", "PRE_APPROVED_PURPOSE",
]

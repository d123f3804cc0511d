# =======================================================================================
# gatekeeper/models/enums.py - Enums and Constants
# =======================================================================================
from enum import Enum
from typing import Literal

# Type aliases for better type hints
VisitorCategory = Literal["GUEST", "DELIVERY", "CAB", "MAID", "VENDOR", "SERVICE", "OTHER"]
ApprovalStatus = Literal["PENDING", "APPROVED", "REJECTED"]
AccessType = Literal["ENTRY", "EXIT"]
HelpType = Literal["MAID", "DRIVER", "COOK", "NANNY", "OTHER"]
DisplayStatus = Literal["PENDING", "APPROVED", "REJECTED", "CHECKED_IN", "CHECKED_OUT"]

PRE_APPROVED_PURPOSE = "Digital Pre-Approved Entry"

class SubjectType(Enum):
    """Subjects that can be toggled in/out with a structured QR token."""
    RESIDENT = "RESIDENT"
    HELP = "HELP"

class AccessResult(Enum):
    """Outcome reported back to the gate scanner."""
    GRANTED = "GRANTED"
    SUCCESS = "SUCCESS"

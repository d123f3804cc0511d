# =======================================================================================
# gatekeeper/services/scan_service.py - Gate Token Dispatch
# =======================================================================================
from typing import Optional, Dict, Any
from loguru import logger
from sqlalchemy.engine import Connection
from ..utils.validators import TokenValidator
from .access_control import AccessControlService
from .gatekeeper_service import GatekeeperService


class ScanService:
    """Single entry point for tokens read by the gate scanner."""

    def __init__(self, gatekeeper: GatekeeperService = None, access: AccessControlService = None):
        self.gatekeeper = gatekeeper or GatekeeperService()
        self.access = access or AccessControlService()

    def dispatch(self, conn: Connection, token: str, scanned_by: Optional[str] = None) -> Dict[str, Any]:
        """
        6 digit tokens are pre-approval codes; anything else must be a
        TYPE:ID:NAME token for a resident or staff member.
        """
        token = (token or "").strip()
        if TokenValidator.is_numeric_code(token):
            logger.debug("[scan] numeric code presented by {}", scanned_by)
            return self.gatekeeper.redeem_pre_approval_code(conn, token, scanned_by)

        subject_type, subject_id, _ = TokenValidator.parse_subject_token(token)
        return self.access.toggle_access(conn, subject_type, subject_id, scanned_by)

# =======================================================================================
# gatekeeper/utils/validators.py - Token and Window Validation Helpers
# =======================================================================================
import re
from datetime import date, datetime
from typing import Tuple, Union
from .exceptions import BadRequestError
from ..models.enums import SubjectType

_NUMERIC_CODE = re.compile(r"[0-9]{6}")
_NUMERIC_ID = re.compile(r"[0-9]+")


class TokenValidator:
    """Classifies and parses tokens presented at the gate scanner."""

    @staticmethod
    def is_numeric_code(token: str) -> bool:
        """Bare 6 digit string: a pre-approval code or a staff passcode."""
        return bool(token) and _NUMERIC_CODE.fullmatch(token) is not None

    @staticmethod
    def parse_subject_token(token: str) -> Tuple[SubjectType, int, str]:
        """
        Parse a structured QR token of the form TYPE:ID:NAME
        (e.g. RESIDENT:101:JohnDoe or HELP:5:Sunita).
        The NAME part is informational only; the name shown at the gate
        always comes from the database.
        """
        parts = (token or "").strip().split(":", 2)
        if len(parts) < 3:
            raise BadRequestError("Invalid QR Code")

        raw_type, raw_id, name = parts
        try:
            subject_type = SubjectType(raw_type.strip().upper())
        except ValueError:
            raise BadRequestError("Unknown User Type") from None

        if not _NUMERIC_ID.fullmatch(raw_id.strip()):
            raise BadRequestError("Invalid QR Code")

        return subject_type, int(raw_id), name


class WindowValidator:
    """Validity window checks for grants."""

    @staticmethod
    def contains(valid_from: datetime, valid_until: datetime, at: datetime) -> bool:
        """Half-open window [valid_from, valid_until)."""
        return valid_from <= at < valid_until

    @staticmethod
    def validate_order(valid_from: Union[date, datetime], valid_until: Union[date, datetime],
                       allow_equal: bool = False) -> bool:
        """Reject windows that end before they start."""
        if valid_until < valid_from or (valid_until == valid_from and not allow_equal):
            raise BadRequestError("validUntil must be after validFrom")
        return True

# =======================================================================================
# gatekeeper/utils/exceptions.py - Custom Exceptions
# =======================================================================================
class GatekeepingError(Exception):
    """Base exception for the gatekeeping service."""
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

class NotFoundError(GatekeepingError):
    """Raised when a referenced visitor, flat, resident, staff, log or grant is absent."""
    status_code = 404

class ConflictError(GatekeepingError):
    """Raised when the record is in a state that forbids the operation."""
    status_code = 409

class BadRequestError(GatekeepingError):
    """Raised for malformed tokens and grants used outside their window."""
    status_code = 400

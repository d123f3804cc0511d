# =======================================================================================
# gatekeeper/utils/__init__.py - Utils Package
# =======================================================================================
from .exceptions import *
from .validators import *

__all__ = [
    "GatekeepingError", "NotFoundError", "ConflictError", "BadRequestError",
    "TokenValidator", "WindowValidator",
]

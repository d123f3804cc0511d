# =======================================================================================
# gatekeeper/utils/codes.py - Numeric Code Allocation
# =======================================================================================
import secrets
from typing import Any, Callable, Tuple
from loguru import logger
from sqlalchemy.engine import Connection
from sqlalchemy.exc import IntegrityError
from ..config import config
from .exceptions import ConflictError


def generate_code(length: int = None) -> str:
    """Random zero-padded numeric code, e.g. '048213'."""
    length = length or config.CODE_LENGTH
    return f"{secrets.randbelow(10 ** length):0{length}d}"


def insert_with_unique_code(
    conn: Connection,
    is_taken: Callable[[str], bool],
    insert: Callable[[str], Any],
    label: str,
) -> Tuple[str, Any]:
    """
    Draw random codes until one can be inserted.

    ``is_taken`` is a cheap pre-check; the unique constraint on the column is
    what actually guarantees uniqueness, so the insert runs inside a savepoint
    and a collision with a concurrent issuer just moves on to the next draw.
    Returns (code, result of ``insert``).
    """
    for attempt in range(1, config.CODE_GENERATION_ATTEMPTS + 1):
        code = generate_code()
        if is_taken(code):
            logger.debug("[codes] {} code {} already taken (attempt {})", label, code, attempt)
            continue
        try:
            with conn.begin_nested():
                result = insert(code)
            return code, result
        except IntegrityError:
            logger.warning("[codes] {} code {} collided on insert (attempt {})", label, code, attempt)

    raise ConflictError(f"Could not allocate a free {label} code, try again")

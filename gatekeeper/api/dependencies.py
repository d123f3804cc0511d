# =======================================================================================
# gatekeeper/api/dependencies.py - FastAPI Dependencies
# =======================================================================================
from typing import Optional
from fastapi import Header
from sqlalchemy.engine import Connection
from ..database import db_manager

def get_db_connection() -> Connection:
    """One transaction per request; domain errors propagate to the app's handler."""
    with db_manager.get_connection() as conn:
        yield conn

def get_actor_email(x_user_email: Optional[str] = Header(None)) -> Optional[str]:
    """Acting guard/resident, as forwarded by the auth gateway."""
    return x_user_email.strip() if x_user_email else None

# =======================================================================================
# gatekeeper/services/access_control.py - Resident / Staff Entry-Exit Toggle
# =======================================================================================
from typing import Optional, Dict, Any
from loguru import logger
from sqlalchemy import select, insert
from sqlalchemy.engine import Connection
from ..models.enums import AccessType, SubjectType, AccessResult
from ..models.tables import access_logs, domestic_helps
from ..utils import clock
from ..utils.exceptions import NotFoundError
from .catalog_service import CatalogService


class AccessControlService:
    """
    Toggle logger for residents and staff carrying a QR token.

    There is no stored "currently inside" flag: the next action is always the
    opposite of the subject's most recent log, and a subject with no history
    is outside. The subject row is locked for the duration of the scan so two
    gates scanning the same person serialize instead of both logging ENTRY.
    """

    def __init__(self):
        self.catalog = CatalogService()

    @staticmethod
    def determine_event(last_action: Optional[AccessType]) -> AccessType:
        """Determine the next action from the last recorded one."""
        if last_action == "ENTRY":
            return "EXIT"
        return "ENTRY"

    @staticmethod
    def _subject_column(subject_type: SubjectType):
        if subject_type is SubjectType.RESIDENT:
            return access_logs.c.user_id
        return access_logs.c.domestic_help_id

    def last_action(self, conn: Connection, subject_type: SubjectType, subject_id: int) -> Optional[AccessType]:
        column = self._subject_column(subject_type)
        return conn.execute(
            select(access_logs.c.access_type)
            .where(column == subject_id)
            .order_by(access_logs.c.timestamp.desc(), access_logs.c.id.desc())
            .limit(1)
        ).scalar_one_or_none()

    def presence(self, conn: Connection, subject_type: SubjectType, subject_id: int) -> Dict[str, Any]:
        """Whether the subject is inside, derived from their most recent access log."""
        subject = self._load_subject(conn, subject_type, subject_id)
        last = self.last_action(conn, subject_type, subject_id)
        return {
            "name": subject["name"],
            "type": subject_type.value,
            "inside": last == "ENTRY",
            "lastAction": last,
        }

    def _load_subject(self, conn: Connection, subject_type: SubjectType, subject_id: int,
                      for_update: bool = False) -> Dict[str, Any]:
        """Load the subject row (FOR UPDATE when asked); raises NotFoundError when absent."""
        if subject_type is SubjectType.RESIDENT:
            user = self.catalog.get_user(conn, subject_id, for_update=for_update)
            if not user:
                raise NotFoundError("Resident not found")
            return {"name": user["full_name"]}

        query = select(domestic_helps.c.id, domestic_helps.c.name).where(domestic_helps.c.id == subject_id)
        if for_update:
            query = query.with_for_update()
        help_row = conn.execute(query).mappings().first()
        if not help_row:
            raise NotFoundError("Staff not found")
        return {"name": help_row["name"]}

    def toggle_access(self, conn: Connection, subject_type: SubjectType, subject_id: int,
                      scanned_by: Optional[str] = None) -> Dict[str, Any]:
        """Append the opposite of the subject's last action and report it."""
        subject = self._load_subject(conn, subject_type, subject_id, for_update=True)

        event = self.determine_event(self.last_action(conn, subject_type, subject_id))
        column = self._subject_column(subject_type)
        conn.execute(
            insert(access_logs).values(
                {
                    column.name: subject_id,
                    "access_type": event,
                    "timestamp": clock.now(),
                    "scanned_by": scanned_by,
                }
            )
        )

        logger.info("[access] {} {} -> {} (scanned by {})", subject_type.value, subject_id, event, scanned_by)
        return {
            "name": subject["name"],
            "type": subject_type.value,
            "accessType": event,
            "status": AccessResult.GRANTED.value,
        }

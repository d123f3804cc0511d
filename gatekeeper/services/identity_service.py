# =======================================================================================
# gatekeeper/services/identity_service.py - Visitor Identity Resolution
# =======================================================================================
from typing import Optional, Dict, Any
from loguru import logger
from sqlalchemy import select, insert, update
from sqlalchemy.engine import Connection
from sqlalchemy.exc import IntegrityError
from ..models.tables import visitors
from ..utils import clock
from ..utils.exceptions import NotFoundError


class IdentityService:
    """Find-or-create visitors keyed by phone number."""

    def get_visitor(self, conn: Connection, visitor_id: int) -> Dict[str, Any]:
        row = conn.execute(select(visitors).where(visitors.c.id == visitor_id)).mappings().first()
        if not row:
            raise NotFoundError("Visitor not found")
        return dict(row)

    def find_by_phone(self, conn: Connection, phone: str) -> Optional[Dict[str, Any]]:
        row = conn.execute(select(visitors).where(visitors.c.phone == phone)).mappings().first()
        return dict(row) if row else None

    def resolve_visitor(
        self,
        conn: Connection,
        name: str,
        phone: str,
        photo_url: Optional[str] = None,
        id_proof_type: Optional[str] = None,
        id_proof_number: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Return the visitor for ``phone``, creating it on first visit.

        Repeat visits refresh the stored details with what the gate just
        captured: the name always, the photo when one was supplied, and the
        ID proof when a proof type was supplied.
        """
        existing = self.find_by_phone(conn, phone)
        if existing:
            return self._refresh(conn, existing, name, photo_url, id_proof_type, id_proof_number)

        try:
            with conn.begin_nested():
                result = conn.execute(
                    insert(visitors).values(
                        full_name=name,
                        phone=phone,
                        photo_url=photo_url,
                        id_proof_type=id_proof_type,
                        id_proof_number=id_proof_number,
                        created_at=clock.now(),
                    )
                )
        except IntegrityError:
            # Another gate registered the same phone first.
            logger.info("[identity] phone {} registered concurrently, reusing record", phone)
            existing = self.find_by_phone(conn, phone)
            return self._refresh(conn, existing, name, photo_url, id_proof_type, id_proof_number)

        visitor_id = result.inserted_primary_key[0]
        logger.debug("[identity] new visitor {} for phone {}", visitor_id, phone)
        return self.get_visitor(conn, visitor_id)

    def _refresh(
        self,
        conn: Connection,
        visitor: Dict[str, Any],
        name: str,
        photo_url: Optional[str],
        id_proof_type: Optional[str],
        id_proof_number: Optional[str],
    ) -> Dict[str, Any]:
        changes: Dict[str, Any] = {"full_name": name}
        if photo_url:
            changes["photo_url"] = photo_url
        if id_proof_type is not None:
            changes["id_proof_type"] = id_proof_type
            changes["id_proof_number"] = id_proof_number

        conn.execute(update(visitors).where(visitors.c.id == visitor["id"]).values(**changes))
        visitor.update(changes)
        return visitor

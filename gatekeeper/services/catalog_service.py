# =======================================================================================
# gatekeeper/services/catalog_service.py - Read-only Catalog Lookups
# =======================================================================================
from typing import Optional, List, Dict, Any
from sqlalchemy import select
from sqlalchemy.engine import Connection
from ..models.tables import societies, buildings, flats, users, residents
from ..utils.exceptions import NotFoundError


class CatalogService:
    """Lookups against the society/flat/resident catalog owned by another subsystem."""

    def get_flat(self, conn: Connection, flat_id: int) -> Optional[Dict[str, Any]]:
        row = conn.execute(
            select(flats.c.id, flats.c.flat_number, flats.c.building_id, buildings.c.society_id)
            .select_from(flats.join(buildings, flats.c.building_id == buildings.c.id))
            .where(flats.c.id == flat_id)
        ).mappings().first()
        return dict(row) if row else None

    def require_flat(self, conn: Connection, flat_id: int) -> Dict[str, Any]:
        flat = self.get_flat(conn, flat_id)
        if not flat:
            raise NotFoundError("Flat not found")
        return flat

    def require_society(self, conn: Connection, society_id: int) -> Dict[str, Any]:
        row = conn.execute(
            select(societies).where(societies.c.id == society_id)
        ).mappings().first()
        if not row:
            raise NotFoundError("Society not found")
        return dict(row)

    def require_resident(self, conn: Connection, resident_id: int) -> Dict[str, Any]:
        row = conn.execute(
            select(residents).where(residents.c.id == resident_id)
        ).mappings().first()
        if not row:
            raise NotFoundError("Resident not found")
        return dict(row)

    def active_residents_for_flat(self, conn: Connection, flat_id: int) -> List[Dict[str, Any]]:
        """Active residents of a flat with the contact details of their user account."""
        rows = conn.execute(
            select(
                residents.c.id.label("resident_id"),
                residents.c.user_id,
                users.c.full_name,
                users.c.email,
            )
            .select_from(residents.outerjoin(users, residents.c.user_id == users.c.id))
            .where(residents.c.flat_id == flat_id, residents.c.is_active.is_(True))
            .order_by(residents.c.id)
        ).mappings().all()
        return [dict(r) for r in rows]

    def get_user(self, conn: Connection, user_id: int, for_update: bool = False) -> Optional[Dict[str, Any]]:
        query = select(users).where(users.c.id == user_id)
        if for_update:
            query = query.with_for_update()
        row = conn.execute(query).mappings().first()
        return dict(row) if row else None

    def user_id_for_email(self, conn: Connection, email: Optional[str]) -> Optional[int]:
        """Resolve the acting guard/operator; unknown or missing actors map to None."""
        if not email:
            return None
        return conn.execute(
            select(users.c.id).where(users.c.email == email)
        ).scalar_one_or_none()

# =======================================================================================
# gatekeeper/services/__init__.py - Services Package
# =======================================================================================
from .catalog_service import CatalogService
from .identity_service import IdentityService
from .grant_service import GrantService
from .visitor_query_service import VisitorQueryService
from .gatekeeper_service import GatekeeperService
from .access_control import AccessControlService
from .staff_service import StaffService
from .scan_service import ScanService
from .notification_service import EmailNotifier

__all__ = [
    "CatalogService", "IdentityService", "GrantService", "VisitorQueryService",
    "GatekeeperService", "AccessControlService", "StaffService", "ScanService", "EmailNotifier",
]

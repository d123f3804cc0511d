# =======================================================================================
# gatekeeper/__init__.py - Package Initialization
# =======================================================================================
"""
Gatekeeper - Visitor and Access Gatekeeping for Gated Communities

Visitor check-in with resident approval, pre-approval codes, frequent visitor
passes, resident/staff QR toggling, domestic help attendance and overstay
monitoring behind a FastAPI service.
"""

__version__ = "1.0.0"
__author__ = "Gatekeeper Team"

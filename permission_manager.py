# permission_manager.py
"""
Permission Manager for FPMS
Controls role-based access to pages and actions
"""

from typing import Dict, List, Optional

# Page keys as used in the sidebar of fuel_app_ui.py
DEALER_PAGES = ["Home", "Summary", "Outlet Setup", "Staff", "Reports"]
MANAGER_PAGES = ["Home", "Shift & Rates", "Readings", "Stock", "Summary"]


def _normalize_role(role: Optional[str]) -> str:
    """Map legacy aliases to current role keys."""
    if not role:
        return "guest"
    role = role.lower()
    if role in ("owner", "dealer"):
        return "dealer"
    return role


class PermissionManager:
    """Role-based permissions for dealers and outlet managers"""

    @staticmethod
    def can_configure_outlet(user: Dict) -> bool:
        """
        Outlet setup (products, tanks, units, nozzles, staff).

        DEALER: full access
        MANAGER: no access
        """
        return _normalize_role(user.get("role")) == "dealer"

    @staticmethod
    def can_make_entries(user: Dict) -> bool:
        """
        Rates, nozzle readings and stock entries.

        MANAGER: enters shift data for their own outlet
        DEALER: read-only on shift data
        """
        return _normalize_role(user.get("role")) == "manager"

    @staticmethod
    def can_delete_entries(user: Dict) -> bool:
        # Deleting a reading is a manager correction; setup deletes are dealer-only
        return _normalize_role(user.get("role")) == "manager"

    @staticmethod
    def can_view_reports(user: Dict) -> bool:
        return _normalize_role(user.get("role")) == "dealer"

    @staticmethod
    def can_view_summary(user: Dict) -> bool:
        return _normalize_role(user.get("role")) in ("dealer", "manager")

    @staticmethod
    def allowed_pages(user: Optional[Dict]) -> List[str]:
        """Sidebar pages for the logged-in user (Home only when logged out)"""
        if not user:
            return ["Home"]
        role = _normalize_role(user.get("role"))
        if role == "dealer":
            return list(DEALER_PAGES)
        if role == "manager":
            return list(MANAGER_PAGES)
        return ["Home"]

    @staticmethod
    def can_access_page(user: Optional[Dict], page: str) -> bool:
        return page in PermissionManager.allowed_pages(user)

    @staticmethod
    def get_user_permissions_summary(user: Dict) -> Dict:
        """Flags for the sidebar badge / debug panel"""
        return {
            "role": _normalize_role(user.get("role")),
            "can_configure_outlet": PermissionManager.can_configure_outlet(user),
            "can_make_entries": PermissionManager.can_make_entries(user),
            "can_delete_entries": PermissionManager.can_delete_entries(user),
            "can_view_reports": PermissionManager.can_view_reports(user),
            "pages": PermissionManager.allowed_pages(user),
        }

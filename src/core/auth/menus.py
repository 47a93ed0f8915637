"""
Menu Authorization

Decides which navigation menus a user may see. Every menu route needs an
affirmative grant; the permissive fallbacks exist only behind the
development flag.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from .permissions import can_perform_action
from .privileges import PrivilegeSet

logger = logging.getLogger(__name__)


@dataclass
class Menu:
    """Navigation entry served by the backend."""

    id: str
    route: str
    caption: str
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Menu":
        extra = {k: v for k, v in data.items() if k not in ("id", "route", "caption")}
        return cls(
            id=str(data["id"]),
            route=str(data.get("route") or ""),
            caption=str(data.get("caption") or ""),
            extra=extra,
        )

    def to_dict(self) -> dict:
        return {**self.extra, "id": self.id, "route": self.route, "caption": self.caption}


# Route -> (UI module, action) required to see the menu
MENU_PRIVILEGES: Dict[str, Tuple[str, str]] = {
    "/dashboard": ("Academic Sessions", "read"),
    "/academic-sessions": ("Academic Sessions", "read"),
    "/brands": ("Brands", "read"),
    "/categories": ("Categories", "read"),
    "/sub-categories": ("Sub Categories", "read"),
    "/unit-of-measurements": ("UOM", "read"),
    "/inventory-items": ("Inventory", "read"),
    "/entitlements": ("Entitlements", "read"),
    "/suppliers": ("Suppliers", "read"),
    "/classes": ("Classes", "read"),
    "/teachers": ("Teachers", "read"),
    "/students": ("Students", "read"),
    "/supplier-transactions": ("Supplier Transactions", "read"),
    "/student-collections": ("Student Inventory Collection", "read"),
    "/distributions": ("Distributions", "read"),
    "/collection-summary": ("Collection Summary", "read"),
    "/collection-report": ("Collection Report", "read"),
    "/users": ("Users", "read"),
    "/roles": ("Roles", "read"),
    "/privileges": ("Privileges", "read"),
    "/menus": ("Menus", "read"),
    "/settings": ("Settings", "read"),
}

# Full navigation catalogue, shown to super admins
MENU_CATALOGUE: List[Menu] = [
    Menu(id=f"catalogue-{i}", route=route, caption=caption)
    for i, (caption, route) in enumerate([
        ("Academic Session", "/dashboard"),
        ("Brands", "/brands"),
        ("Categories", "/categories"),
        ("Sub Categories", "/sub-categories"),
        ("Units of Measure", "/unit-of-measurements"),
        ("Inventory Items", "/inventory-items"),
        ("Inventory Entitlement", "/entitlements"),
        ("Suppliers", "/suppliers"),
        ("Users", "/users"),
        ("Classes", "/classes"),
        ("Class Teachers", "/teachers"),
        ("Students", "/students"),
        ("Student Collection", "/student-collections"),
        ("Inventory Distributions", "/distributions"),
        ("Inventory Summary", "/collection-summary"),
        ("Students Report", "/collection-report"),
        ("Supplier Transaction", "/supplier-transactions"),
        ("Roles", "/roles"),
        ("Role Privileges", "/privileges"),
        ("Menus", "/menus"),
    ], start=1)
]


def parse_role_menus(payload: Any) -> List[Menu]:
    """Parse a role menus response body: [{"menu": {...}}, ...]."""
    if not isinstance(payload, list):
        raise ValueError("Role menus payload must be a list")

    menus = []
    for item in payload:
        menu = item.get("menu") if isinstance(item, Mapping) else None
        if isinstance(menu, Mapping) and menu.get("id") is not None:
            menus.append(Menu.from_dict(menu))
    return menus


def unique_menus(menu_lists: Iterable[Iterable[Menu]]) -> List[Menu]:
    """Flatten per-role menus, de-duplicate by id and sort by caption."""
    by_id: Dict[str, Menu] = {}
    for menus in menu_lists:
        for menu in menus:
            by_id[menu.id] = menu
    return sorted(by_id.values(), key=lambda m: m.caption.lower())


def filter_authorized_menus(
    menus: List[Menu],
    privileges: Optional[PrivilegeSet],
    is_super_admin: bool = False,
    fallback_enabled: bool = False,
) -> List[Menu]:
    """
    Filter menus down to those the privilege set grants.

    Args:
        menus: Menus served for the user's roles
        privileges: Consolidated privilege set
        is_super_admin: Super admins see every menu
        fallback_enabled: Development flag re-enabling permissive fallbacks
    """
    if is_super_admin:
        return list(menus) if menus else list(MENU_CATALOGUE)

    if not menus:
        if fallback_enabled:
            logger.warning("Menu fallback: no menus from server, showing catalogue")
            return list(MENU_CATALOGUE)
        return []

    authorized = []
    for menu in menus:
        requirement = MENU_PRIVILEGES.get(menu.route)

        if requirement is None:
            if fallback_enabled:
                logger.warning(f"Menu fallback: no privilege mapping for route {menu.route} ({menu.caption})")
                authorized.append(menu)
            else:
                logger.info(f"Menu hidden, no privilege mapping for route {menu.route} ({menu.caption})")
            continue

        module, action = requirement
        if can_perform_action(privileges, module, action):
            authorized.append(menu)

    logger.info(f"Authorized menus: {len(authorized)}/{len(menus)}")

    if not authorized and fallback_enabled:
        logger.warning("Menu fallback: no menus authorized, showing all menus")
        return list(menus)

    return authorized

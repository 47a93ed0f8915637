"""
Authorization Module

Session cookies, role codes, privilege consolidation and the decision
engine that gates dashboard screens.

Usage:
    from src.core.auth import can_perform_action, load_user_context

Configuration:
    SUPER_ADMIN_EMAILS - server-side super admin allow-list
    PUBLIC_SUPER_ADMIN_EMAILS - client-exposed allow-list (UI affordances only)
    MENU_FALLBACK_ENABLED=true/false - development-only permissive menus
"""

from .session import (
    SessionTokens,
    set_auth_cookies,
    clear_auth_cookies,
    TOKEN_COOKIE_NAME,
    REFRESH_COOKIE_NAME,
    TOKEN_MAX_AGE,
    REFRESH_MAX_AGE,
)
from .roles import (
    map_role_to_backend_code,
    map_roles,
    is_super_admin,
    is_super_admin_by_email,
    SUPER_ADMIN_ROLES,
)
from .privileges import (
    Privilege,
    PrivilegeSet,
    normalize_privileges,
    merge_privileges,
    consolidate_privileges,
    wildcard_privileges,
    is_wildcard,
    WILDCARD_MODULE,
)
from .resources import (
    get_resource_key,
    get_action_patterns,
    find_privilege_module,
    MODULE_TO_RESOURCE,
    ACTION_PATTERNS,
)
from .permissions import (
    can_perform_action,
    has_privilege,
    get_module_privileges,
    has_any_privilege_in_module,
    get_accessible_modules,
)
from .menus import (
    Menu,
    filter_authorized_menus,
    MENU_PRIVILEGES,
)
from .context import (
    SessionUser,
    UserContext,
    load_user_context,
    fetch_user_privileges_for_roles,
)

__all__ = [
    # Session
    "SessionTokens",
    "set_auth_cookies",
    "clear_auth_cookies",
    "TOKEN_COOKIE_NAME",
    "REFRESH_COOKIE_NAME",
    "TOKEN_MAX_AGE",
    "REFRESH_MAX_AGE",
    # Roles
    "map_role_to_backend_code",
    "map_roles",
    "is_super_admin",
    "is_super_admin_by_email",
    "SUPER_ADMIN_ROLES",
    # Privileges
    "Privilege",
    "PrivilegeSet",
    "normalize_privileges",
    "merge_privileges",
    "consolidate_privileges",
    "wildcard_privileges",
    "is_wildcard",
    "WILDCARD_MODULE",
    # Resources
    "get_resource_key",
    "get_action_patterns",
    "find_privilege_module",
    "MODULE_TO_RESOURCE",
    "ACTION_PATTERNS",
    # Permissions
    "can_perform_action",
    "has_privilege",
    "get_module_privileges",
    "has_any_privilege_in_module",
    "get_accessible_modules",
    # Menus
    "Menu",
    "filter_authorized_menus",
    "MENU_PRIVILEGES",
    # Context
    "SessionUser",
    "UserContext",
    "load_user_context",
    "fetch_user_privileges_for_roles",
]

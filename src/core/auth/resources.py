"""
Resource and Action Resolution

Translates UI module labels into backend resource keys and CRUD actions
into the description prefixes that grant them.

The backend describes privileges as free-text sentences ("Create a new
Brand", "Get all Categories"). ACTION_PATTERNS is the contract with that
privilege source: renaming a description upstream revokes the action here.
"""

from typing import List, Mapping, Optional, Sequence, TypeVar

T = TypeVar("T")


MODULE_TO_RESOURCE = {
    "Dashboard": "dashboard",
    "Brands": "brands",
    "Categories": "categories",
    "Sub Categories": "sub_categories",
    "UOM": "uoms",
    "Unit of Measurements": "uoms",
    "Academic Sessions": "academic_session_terms",
    "Classes": "school_classes",
    "Students": "students",
    "Teachers": "class_teachers",
    "Inventory": "inventory_items",
    "Inventory Transactions": "inventory_transactions",
    "Inventory Summary": "inventory_summary",
    "Suppliers": "suppliers",
    "Supplier Transactions": "supplier_transactions",
    "Entitlements": "class_inventory_entitlements",
    "StudentInventoryCollection": "student_inventory_collection",
    "Student Inventory Collection": "student_inventory_collection",
    "Distributions": "inventory_transactions",
    "Collection Summary": "inventory_summary",
    "Collection Report": "inventory_summary",
    "Users": "users",
    "Roles": "roles",
    "RoleMenus": "role_menus",
    "Role Menus": "role_menus",
    "Student Inventory Report": "student_inventory_report",
    "Privileges": "role_privileges",
    "RolePrivileges": "role_privileges",
    "Menus": "menus",
    "Settings": "settings",
}

_READ_PATTERNS = ("Get all", "Get a", "Get an")

ACTION_PATTERNS = {
    "read": _READ_PATTERNS,
    "get": _READ_PATTERNS,
    "create": ("Create a new", "Create an"),
    "update": ("Update a", "Update an"),
    "delete": ("Delete a", "Delete an"),
}

ACTIONS = tuple(ACTION_PATTERNS)


def get_resource_key(module_name: str) -> str:
    """Resolve a UI module label; unmapped labels are snake-cased."""
    return MODULE_TO_RESOURCE.get(module_name) or module_name.lower().replace(" ", "_")


def get_action_patterns(action: str) -> Optional[Sequence[str]]:
    """Description prefixes granting an action, or None if unknown."""
    if not isinstance(action, str):
        return None
    return ACTION_PATTERNS.get(action.lower())


def find_privilege_module(privileges: Mapping[str, List[T]], resource_key: str) -> Optional[List[T]]:
    """
    Locate a module's privileges regardless of key casing.

    Backend module keys are usually upper-case (BRANDS) while resource
    keys are lower-case (brands).
    """
    if resource_key in privileges:
        return privileges[resource_key]

    upper_key = resource_key.upper()
    if upper_key in privileges:
        return privileges[upper_key]

    lower_key = resource_key.lower()
    for key, records in privileges.items():
        if key.lower() == lower_key:
            return records

    return None


def matches_action(description: str, patterns: Sequence[str]) -> bool:
    """True if the trimmed description starts with any pattern."""
    trimmed = description.strip()
    return any(trimmed.startswith(pattern) for pattern in patterns)

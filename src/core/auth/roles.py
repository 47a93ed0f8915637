"""
Role Codes

Maps loosely named identity-provider roles onto backend role codes and
recognizes super admins.
"""

import logging
from typing import AbstractSet, Iterable, List, Optional

logger = logging.getLogger(__name__)


# Lower-cased source role name -> backend role code
ROLE_CODE_MAP = {
    "admin": "ADMIN",
    "super-admin": "SUPER_ADMIN",
    "editor": "ADMIN",
    "teacher": "CLASS_TEACHER",
    "user": "STUDENTS",
    "store-keeper": "STORE_KEEPER",
    "storekeeper": "STORE_KEEPER",
    "store_keeper": "STORE_KEEPER",
}

SUPER_ADMIN_ROLES = frozenset({"SUPER_ADMIN", "ADMIN", "CHAIRMAN"})


def map_role_to_backend_code(role: str) -> str:
    """
    Map a source role name to its backend role code.

    Unknown names fall back to their upper-cased form.
    """
    mapped = ROLE_CODE_MAP.get(role.lower(), role.upper())
    logger.debug(f"Role mapping: {role!r} -> {mapped!r}")
    return mapped


def map_roles(roles: Iterable[str]) -> List[str]:
    """Map every role, keeping order and dropping duplicates."""
    codes: List[str] = []
    for role in roles:
        code = map_role_to_backend_code(role)
        if code not in codes:
            codes.append(code)
    return codes


def is_super_admin(role_codes: Iterable[str]) -> bool:
    """True if any role code is a super admin role."""
    return any(code.upper() in SUPER_ADMIN_ROLES for code in role_codes)


def is_super_admin_by_email(email: Optional[str], allow_list: AbstractSet[str]) -> bool:
    """Case-insensitive membership test against a normalized allow-list."""
    if not email:
        return False
    return email.strip().lower() in allow_list

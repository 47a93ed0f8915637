"""
Permissions System

Answers "can this user do X in module Y" over a consolidated privilege
set. Decisions are pure: they never raise and never reach the network.
"""

import logging
from typing import List, Mapping, Optional

from ..observability.metrics import record_counter
from .privileges import (
    ACTIVE,
    ALL_PRIVILEGES,
    Privilege,
    PrivilegeSet,
    WILDCARD_MODULE,
    is_active_status,
    is_wildcard,
)
from .resources import (
    find_privilege_module,
    get_action_patterns,
    get_resource_key,
    matches_action,
)

logger = logging.getLogger(__name__)


def _record_decision(module: str, action: str, allowed: bool, reason: str) -> bool:
    record_counter("authorization_decisions_total", 1, {
        "action": action,
        "allowed": str(allowed).lower(),
        "reason": reason,
    })
    return allowed


def can_perform_action(privileges: Optional[PrivilegeSet], module_name: str, action: str) -> bool:
    """
    Check whether a privilege set grants a CRUD action on a UI module.

    Args:
        privileges: Consolidated privilege set
        module_name: UI module label (e.g. "Sub Categories")
        action: create, read, update, delete or get

    Returns:
        True if an active privilege of the module starts with one of the
        action's description patterns
    """
    if not privileges:
        logger.warning(f"No privileges provided for {module_name} -> {action}")
        return _record_decision(module_name, str(action), False, "no_privileges")

    if is_wildcard(privileges):
        return _record_decision(module_name, str(action), True, "super_admin")

    resource_key = get_resource_key(module_name)
    module_privileges = find_privilege_module(privileges, resource_key)

    if module_privileges is None:
        logger.info(
            f"No privileges found for module: {module_name} (resource: {resource_key})",
            extra={"available_modules": sorted(privileges.keys())},
        )
        return _record_decision(module_name, str(action), False, "unknown_module")

    patterns = get_action_patterns(action)
    if patterns is None:
        logger.warning(f"Unknown action: {action}")
        return _record_decision(module_name, str(action), False, "unknown_action")

    logger.debug(
        f"Checking {module_name} -> {action}",
        extra={
            "resource_key": resource_key,
            "patterns": list(patterns),
            "privilege_count": len(module_privileges),
        },
    )

    for privilege in module_privileges:
        if privilege.is_active and matches_action(privilege.description, patterns):
            logger.debug(
                f"Permission granted: {module_name} -> {action}",
                extra={"matched": privilege.description},
            )
            return _record_decision(module_name, action.lower(), True, "granted")

    logger.info(f"Permission denied: {module_name} -> {action}")
    return _record_decision(module_name, action.lower(), False, "denied")


def _description_matches(privilege: Privilege, needle: str) -> bool:
    return is_active_status(privilege.status) and needle in privilege.description.lower()


def has_privilege(
    privileges: Optional[PrivilegeSet],
    privilege_description: str,
    module: Optional[str] = None,
) -> bool:
    """
    Advisory capability check by case-insensitive substring.

    Scoped to one module when given, otherwise scans every module.
    """
    if not privileges:
        return False

    if is_wildcard(privileges):
        return True

    needle = privilege_description.lower()

    if module:
        resource_key = get_resource_key(module)
        module_privileges = find_privilege_module(privileges, resource_key)

        if module_privileges is None:
            logger.info(f"No privileges found for module: {module} (resource: {resource_key})")
            return False

        return any(_description_matches(p, needle) for p in module_privileges)

    return any(
        _description_matches(p, needle)
        for records in privileges.values()
        for p in records
    )


def get_module_privileges(privileges: PrivilegeSet, module_name: str) -> List[Privilege]:
    """Active privileges of a module."""
    if is_wildcard(privileges):
        return [Privilege(description=ALL_PRIVILEGES, status=ACTIVE)]

    module_privileges = find_privilege_module(privileges, get_resource_key(module_name))
    if not module_privileges:
        return []

    return [
        Privilege(description=p.description, status=ACTIVE)
        for p in module_privileges
        if p.is_active
    ]


def has_any_privilege_in_module(privileges: PrivilegeSet, module_name: str) -> bool:
    if is_wildcard(privileges):
        return True

    module_privileges = find_privilege_module(privileges, get_resource_key(module_name))
    if not module_privileges:
        return False

    return any(p.is_active for p in module_privileges)


def get_accessible_modules(privileges: Mapping[str, List[Privilege]]) -> List[str]:
    """Module keys holding at least one active privilege."""
    if is_wildcard(privileges):
        return [WILDCARD_MODULE]

    return [
        module for module, records in privileges.items()
        if any(p.is_active for p in records)
    ]

"""
Privilege Normalization

Consolidates the privilege grants of every role a user holds into one
per-module privilege set.

Merging is a union keyed by description: an active grant from any role
wins over an inactive one from another, so the result does not depend
on the order in which roles are merged.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping

logger = logging.getLogger(__name__)

ACTIVE = "active"
INACTIVE = "inactive"

WILDCARD_MODULE = "*"
ALL_PRIVILEGES = "ALL_PRIVILEGES"


@dataclass
class Privilege:
    """One named permission grant."""

    description: str
    status: str = INACTIVE

    @property
    def is_active(self) -> bool:
        return is_active_status(self.status)

    def to_dict(self) -> dict:
        return {"description": self.description, "status": self.status}


# Module key -> ordered privilege records
PrivilegeSet = Dict[str, List[Privilege]]


def is_active_status(status: Any) -> bool:
    """Boolean True and the string "active" both count as active."""
    return status is True or status == ACTIVE


def normalize_status(status: Any) -> str:
    return ACTIVE if is_active_status(status) else INACTIVE


def wildcard_privileges() -> PrivilegeSet:
    """The super admin privilege set."""
    return {WILDCARD_MODULE: [Privilege(description=ALL_PRIVILEGES, status=ACTIVE)]}


def is_wildcard(privileges: Mapping[str, Any]) -> bool:
    return bool(privileges) and WILDCARD_MODULE in privileges


def _coerce_record(record: Any) -> Privilege:
    if isinstance(record, Privilege):
        return Privilege(description=record.description, status=normalize_status(record.status))
    if isinstance(record, Mapping):
        return Privilege(
            description=str(record.get("description") or ""),
            status=normalize_status(record.get("status")),
        )
    raise ValueError(f"Unsupported privilege record: {record!r}")


def normalize_privileges(raw: Mapping[str, Iterable[Any]]) -> PrivilegeSet:
    """
    Normalize a raw module -> records mapping.

    Records may be Privilege objects or dicts with description/status.
    Normalizing an already normalized set yields an equal set.
    """
    normalized: PrivilegeSet = {}
    for module, records in raw.items():
        if records is None:
            records = []
        if isinstance(records, (str, bytes, Mapping)) or not isinstance(records, Iterable):
            raise ValueError(f"Privileges of module {module!r} must be a list")
        normalized[module] = [_coerce_record(record) for record in records]
    return normalized


def _without_wildcard(privileges: PrivilegeSet) -> PrivilegeSet:
    if WILDCARD_MODULE in privileges:
        logger.warning("Ignoring \"*\" module in role privileges")
        privileges = {k: v for k, v in privileges.items() if k != WILDCARD_MODULE}
    return privileges


def parse_role_privileges(payload: Any) -> PrivilegeSet:
    """
    Parse a role privileges response body.

    Shape: {"role_code": "...", "privileges": {module: [{description, status}]}}
    A "*" module is dropped; only wildcard_privileges() grants everything.
    """
    if not isinstance(payload, Mapping):
        raise ValueError("Role privileges payload must be an object")

    privileges = payload.get("privileges") or {}
    if not isinstance(privileges, Mapping):
        raise ValueError("Role privileges 'privileges' must be an object")

    return _without_wildcard(normalize_privileges(privileges))


def merge_privileges(existing: List[Privilege], incoming: Iterable[Privilege]) -> List[Privilege]:
    """
    Merge two privilege lists for the same module.

    Known descriptions are escalated to active when the incoming record is
    active and never downgraded; unknown descriptions are appended.
    """
    merged = [Privilege(p.description, normalize_status(p.status)) for p in existing]
    index: Dict[str, int] = {}
    for i, p in enumerate(merged):
        index.setdefault(p.description, i)

    for privilege in incoming:
        status = normalize_status(privilege.status)
        position = index.get(privilege.description)

        if position is None:
            index[privilege.description] = len(merged)
            merged.append(Privilege(privilege.description, status))
        elif status == ACTIVE and merged[position].status != ACTIVE:
            logger.debug(
                f"Privilege escalated to active: {privilege.description}",
                extra={"privilege": privilege.description},
            )
            merged[position].status = ACTIVE

    return merged


def consolidate_privileges(role_privileges: Iterable[Mapping[str, Iterable[Any]]]) -> PrivilegeSet:
    """
    Merge per-role privilege maps into one privilege set.

    The first role to mention a module contributes its list verbatim
    (after status normalization); later roles are merged into it.
    A "*" module is never carried over.
    """
    consolidated: PrivilegeSet = {}

    for role_set in role_privileges:
        for module, records in _without_wildcard(normalize_privileges(role_set)).items():
            if module in consolidated:
                consolidated[module] = merge_privileges(consolidated[module], records)
            else:
                consolidated[module] = records

    logger.info(
        "Merged privileges",
        extra={
            "modules": sorted(consolidated.keys()),
            "privilege_total": sum(len(p) for p in consolidated.values()),
        },
    )
    return consolidated


def privileges_to_dict(privileges: PrivilegeSet) -> Dict[str, List[dict]]:
    """Serialize a privilege set for JSON responses."""
    return {
        module: [p.to_dict() for p in records]
        for module, records in privileges.items()
    }

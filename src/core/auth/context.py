"""
User Context

Loads everything the dashboard needs to gate its screens for one
session: the signed-in user, their backend role codes, the consolidated
privilege set and the authorized menus.

Per-role privilege and menu fetches are issued concurrently. A role whose
fetch fails contributes nothing rather than failing the whole load.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional

import httpx

from ..backend.retry import BackendTimeoutError
from ..config import GatewaySettings
from .menus import MENU_CATALOGUE, Menu, filter_authorized_menus, parse_role_menus, unique_menus
from .privileges import (
    PrivilegeSet,
    consolidate_privileges,
    parse_role_privileges,
    privileges_to_dict,
    wildcard_privileges,
)
from .roles import is_super_admin, is_super_admin_by_email, map_roles

if TYPE_CHECKING:
    from ..backend.client import BackendClient

logger = logging.getLogger(__name__)

# Failures that cost a single role its contribution
ROLE_FETCH_ERRORS = (httpx.HTTPError, ValueError, BackendTimeoutError)


@dataclass
class SessionUser:
    """User as reported by the backend "who am I" endpoint."""

    id: str
    email: str
    name: str = ""
    roles: List[str] = field(default_factory=list)
    teacher_id: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Any) -> "SessionUser":
        """
        Build a user from {"user": {...}}.

        Raises:
            ValueError: payload has no user object
        """
        user = payload.get("user") if isinstance(payload, Mapping) else None
        if not isinstance(user, Mapping):
            raise ValueError("Verification payload has no user")

        roles = user.get("roles") or []
        if isinstance(roles, str):
            roles = [roles]

        known = ("id", "email", "name", "roles", "teacher_id")
        return cls(
            id=str(user.get("id", "")),
            email=str(user.get("email") or ""),
            name=str(user.get("name") or ""),
            roles=[str(r) for r in roles],
            teacher_id=user.get("teacher_id"),
            extra={k: v for k, v in user.items() if k not in known},
        )

    def to_dict(self) -> dict:
        return {
            **self.extra,
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "roles": self.roles,
            "teacher_id": self.teacher_id,
        }


@dataclass
class UserContext:
    """Authorization state for one signed-in user."""

    user: SessionUser
    role_codes: List[str]
    privileges: PrivilegeSet
    menus: List[Menu]
    is_super_admin: bool = False
    ui_super_admin: bool = False

    def to_dict(self) -> dict:
        return {
            "user": self.user.to_dict(),
            "roles": self.role_codes,
            "isSuperAdmin": self.is_super_admin,
            "uiSuperAdmin": self.ui_super_admin,
            "privileges": privileges_to_dict(self.privileges),
            "menus": [menu.to_dict() for menu in self.menus],
        }


async def fetch_role_privileges(backend: "BackendClient", token: str, role_code: str) -> PrivilegeSet:
    """Privileges granted to one role; empty on any fetch or parse failure."""
    try:
        payload = await backend.get_json("role_privileges", token, {"role_code": role_code})
        return parse_role_privileges(payload)
    except ROLE_FETCH_ERRORS as e:
        logger.warning(f"No privileges loaded for role {role_code}: {e}", extra={"role_code": role_code})
        return {}


async def fetch_role_menus(backend: "BackendClient", token: str, role_code: str) -> List[Menu]:
    """Menus assigned to one role; empty on any fetch or parse failure."""
    try:
        payload = await backend.get_json(f"role_menus/role/{role_code}", token)
        return parse_role_menus(payload)
    except ROLE_FETCH_ERRORS as e:
        logger.warning(f"No menus loaded for role {role_code}: {e}", extra={"role_code": role_code})
        return []


async def fetch_user_privileges_for_roles(
    backend: "BackendClient",
    token: str,
    role_codes: List[str],
    email: Optional[str],
    settings: GatewaySettings,
) -> PrivilegeSet:
    """
    Consolidated privileges for a set of role codes.

    Super admins (by email allow-list or role code) get the wildcard set
    without any per-role fetch.
    """
    if is_super_admin_by_email(email, settings.super_admin_emails):
        logger.info("Super admin email detected - granting full access", extra={"user_email": email})
        return wildcard_privileges()

    if is_super_admin(role_codes):
        logger.info("Super admin role detected - granting full access", extra={"role_codes": role_codes})
        return wildcard_privileges()

    role_privileges = await asyncio.gather(
        *(fetch_role_privileges(backend, token, code) for code in role_codes)
    )
    return consolidate_privileges(role_privileges)


async def load_user_context(
    backend: "BackendClient",
    token: str,
    settings: GatewaySettings,
) -> UserContext:
    """
    Build the authorization context of the session owning ``token``.

    Raises:
        httpx.HTTPStatusError: the backend rejected the token
        httpx.HTTPError: the backend could not be reached
        BackendTimeoutError: the backend did not wake up in time
        ValueError: the verification payload is malformed
    """
    user = SessionUser.from_payload(await backend.current_user(token))
    role_codes = map_roles(user.roles)
    ui_super_admin = is_super_admin_by_email(user.email, settings.public_super_admin_emails)

    super_admin = (
        is_super_admin_by_email(user.email, settings.super_admin_emails)
        or is_super_admin(role_codes)
    )
    if super_admin:
        logger.info("Super admin session", extra={"user_email": user.email, "role_codes": role_codes})
        return UserContext(
            user=user,
            role_codes=role_codes,
            privileges=wildcard_privileges(),
            menus=list(MENU_CATALOGUE),
            is_super_admin=True,
            ui_super_admin=ui_super_admin,
        )

    if not role_codes:
        logger.warning("No roles found for user", extra={"user_email": user.email})
        return UserContext(
            user=user,
            role_codes=[],
            privileges={},
            menus=[],
            ui_super_admin=ui_super_admin,
        )

    privileges_task = fetch_user_privileges_for_roles(backend, token, role_codes, user.email, settings)
    menus_task = asyncio.gather(*(fetch_role_menus(backend, token, code) for code in role_codes))
    privileges, menu_lists = await asyncio.gather(privileges_task, menus_task)

    menus = filter_authorized_menus(
        unique_menus(menu_lists),
        privileges,
        is_super_admin=False,
        fallback_enabled=settings.menu_fallback_enabled,
    )

    logger.info(
        f"Loaded {sum(len(p) for p in privileges.values())} privileges across {len(privileges)} modules",
        extra={"user_email": user.email, "role_codes": role_codes, "menu_count": len(menus)},
    )

    return UserContext(
        user=user,
        role_codes=role_codes,
        privileges=privileges,
        menus=menus,
        ui_super_admin=ui_super_admin,
    )

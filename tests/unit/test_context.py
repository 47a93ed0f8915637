"""
Tests for loading a session's authorization context from the backend.
"""

import httpx
import pytest

from src.core.auth.context import (
    SessionUser,
    fetch_user_privileges_for_roles,
    load_user_context,
)
from src.core.auth.menus import MENU_CATALOGUE
from src.core.auth.permissions import can_perform_action
from src.core.auth.privileges import ACTIVE, wildcard_privileges
from src.core.backend.client import BackendClient
from src.core.config import GatewaySettings, RetryPolicy


BASE = "http://backend.test"


async def no_sleep(seconds):
    return None


def make_settings(**overrides):
    values = dict(
        backend_base_url=BASE,
        verify_url=f"{BASE}/auth/me",
        super_admin_emails=frozenset({"head@school.org"}),
        public_super_admin_emails=frozenset({"head@school.org"}),
        retry_policy=RetryPolicy(max_attempts=2),
    )
    values.update(overrides)
    return GatewaySettings(**values)


def make_backend(handler, settings=None):
    return BackendClient(
        settings or make_settings(),
        transport=httpx.MockTransport(handler),
        sleep=no_sleep,
    )


ROLE_PRIVILEGES = {
    "CLASS_TEACHER": {
        "STUDENTS": [
            {"description": "Get all Students", "status": True},
            {"description": "Create a new Student", "status": False},
        ],
    },
    "STORE_KEEPER": {
        "STUDENTS": [{"description": "Create a new Student", "status": "active"}],
        "BRANDS": [{"description": "Get all Brands", "status": "active"}],
    },
}

ROLE_MENUS = {
    "CLASS_TEACHER": [
        {"menu": {"id": 1, "route": "/students", "caption": "Students"}},
        {"menu": {"id": 9, "route": "/reports", "caption": "Reports"}},
    ],
    "STORE_KEEPER": [
        {"menu": {"id": 2, "route": "/brands", "caption": "Brands"}},
        {"menu": {"id": 3, "route": "/suppliers", "caption": "Suppliers"}},
        {"menu": {"id": 1, "route": "/students", "caption": "Students"}},
    ],
}


def backend_handler(user, seen=None, failing_roles=(), role_privileges=None):
    role_privileges = ROLE_PRIVILEGES if role_privileges is None else role_privileges

    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if seen is not None:
            seen.append(path)

        assert request.headers["authorization"] == "Bearer tok"

        if path == "/auth/me":
            return httpx.Response(200, json={"user": user})

        if path == "/role_privileges":
            code = request.url.params["role_code"]
            if code in failing_roles:
                return httpx.Response(500, json={"message": "boom"})
            return httpx.Response(200, json={"role_code": code, "privileges": role_privileges.get(code, {})})

        if path.startswith("/role_menus/role/"):
            code = path.rsplit("/", 1)[-1]
            if code in failing_roles:
                raise httpx.ConnectError("refused", request=request)
            return httpx.Response(200, json=ROLE_MENUS.get(code, []))

        return httpx.Response(404, json={"message": "not found"})

    return handler


class TestSessionUser:

    def test_from_payload(self):
        user = SessionUser.from_payload({
            "user": {"id": 4, "email": "t@school.org", "name": "T", "roles": "teacher", "avatar": "x.png"}
        })

        assert user.id == "4"
        assert user.roles == ["teacher"]
        assert user.to_dict()["avatar"] == "x.png"

    def test_missing_user(self):
        with pytest.raises(ValueError):
            SessionUser.from_payload({"email": "t@school.org"})


class TestLoadUserContext:

    @pytest.mark.asyncio
    async def test_merges_roles(self):
        user = {"id": "1", "email": "t@school.org", "roles": ["teacher", "store-keeper"]}
        backend = make_backend(backend_handler(user))

        context = await load_user_context(backend, "tok", make_settings())

        assert context.role_codes == ["CLASS_TEACHER", "STORE_KEEPER"]
        assert context.is_super_admin is False
        assert [p.status for p in context.privileges["STUDENTS"]] == [ACTIVE, ACTIVE]
        # /suppliers has no grant, /reports has no mapping
        assert [m.caption for m in context.menus] == ["Brands", "Students"]

    @pytest.mark.asyncio
    async def test_failing_role_contributes_nothing(self):
        user = {"id": "1", "email": "t@school.org", "roles": ["teacher", "store-keeper"]}
        backend = make_backend(backend_handler(user, failing_roles=("STORE_KEEPER",)))

        context = await load_user_context(backend, "tok", make_settings())

        assert list(context.privileges) == ["STUDENTS"]
        assert [m.caption for m in context.menus] == ["Students"]

    @pytest.mark.asyncio
    async def test_malformed_role_privileges_contribute_nothing(self):
        user = {"id": "1", "email": "t@school.org", "roles": ["teacher", "store-keeper"]}
        role_privileges = {
            "CLASS_TEACHER": {"STUDENTS": ["garbage"]},
            "STORE_KEEPER": {"BRANDS": [{"description": "Get all Brands", "status": "active"}]},
        }
        backend = make_backend(backend_handler(user, role_privileges=role_privileges))

        context = await load_user_context(backend, "tok", make_settings())

        assert list(context.privileges) == ["BRANDS"]
        assert can_perform_action(context.privileges, "Brands", "read") is True
        assert can_perform_action(context.privileges, "Students", "read") is False

    @pytest.mark.asyncio
    async def test_non_list_module_contributes_nothing(self):
        user = {"id": "1", "email": "t@school.org", "roles": ["teacher", "store-keeper"]}
        role_privileges = {
            "CLASS_TEACHER": {"STUDENTS": 5},
            "STORE_KEEPER": {"BRANDS": [{"description": "Get all Brands", "status": "active"}]},
        }
        backend = make_backend(backend_handler(user, role_privileges=role_privileges))

        context = await load_user_context(backend, "tok", make_settings())

        assert list(context.privileges) == ["BRANDS"]

    @pytest.mark.asyncio
    async def test_backend_wildcard_module_ignored(self):
        user = {"id": "1", "email": "t@school.org", "roles": ["teacher"]}
        role_privileges = {
            "CLASS_TEACHER": {
                "*": [{"description": "x", "status": "inactive"}],
                "STUDENTS": [{"description": "Get all Students", "status": "active"}],
            },
        }
        backend = make_backend(backend_handler(user, role_privileges=role_privileges))

        context = await load_user_context(backend, "tok", make_settings())

        assert list(context.privileges) == ["STUDENTS"]
        assert can_perform_action(context.privileges, "Users", "delete") is False

    @pytest.mark.asyncio
    async def test_no_roles_default_deny(self):
        seen = []
        user = {"id": "1", "email": "new@school.org", "roles": []}
        backend = make_backend(backend_handler(user, seen))

        context = await load_user_context(backend, "tok", make_settings())

        assert context.privileges == {}
        assert context.menus == []
        assert seen == ["/auth/me"]

    @pytest.mark.asyncio
    async def test_super_admin_email_without_roles(self):
        seen = []
        user = {"id": "1", "email": "HEAD@school.org", "roles": []}
        backend = make_backend(backend_handler(user, seen))

        context = await load_user_context(backend, "tok", make_settings())

        assert context.is_super_admin is True
        assert context.ui_super_admin is True
        assert context.privileges == wildcard_privileges()
        assert context.menus == MENU_CATALOGUE
        assert seen == ["/auth/me"]

    @pytest.mark.asyncio
    async def test_super_admin_role(self):
        user = {"id": "1", "email": "boss@school.org", "roles": ["admin"]}
        backend = make_backend(backend_handler(user))

        context = await load_user_context(backend, "tok", make_settings())

        assert context.is_super_admin is True
        assert context.ui_super_admin is False

    @pytest.mark.asyncio
    async def test_rejected_token_raises(self):
        backend = make_backend(lambda request: httpx.Response(401, json={"message": "expired"}))

        with pytest.raises(httpx.HTTPStatusError):
            await load_user_context(backend, "tok", make_settings())

    @pytest.mark.asyncio
    async def test_to_dict_shape(self):
        user = {"id": "1", "email": "t@school.org", "roles": ["teacher"]}
        backend = make_backend(backend_handler(user))

        context = (await load_user_context(backend, "tok", make_settings())).to_dict()

        assert set(context) == {"user", "roles", "isSuperAdmin", "uiSuperAdmin", "privileges", "menus"}
        assert context["privileges"]["STUDENTS"][0] == {"description": "Get all Students", "status": "active"}


class TestFetchUserPrivilegesForRoles:

    @pytest.mark.asyncio
    async def test_email_bypass_skips_fetch(self):
        seen = []
        backend = make_backend(backend_handler({}, seen))

        privileges = await fetch_user_privileges_for_roles(
            backend, "tok", ["STUDENTS"], "head@school.org", make_settings()
        )

        assert privileges == wildcard_privileges()
        assert seen == []

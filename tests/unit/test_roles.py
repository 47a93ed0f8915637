"""
Tests for role-code mapping and super admin detection.
"""

import pytest

from src.core.auth.roles import (
    is_super_admin,
    is_super_admin_by_email,
    map_role_to_backend_code,
    map_roles,
)
from src.core.config import parse_email_list


class TestRoleMapping:

    @pytest.mark.parametrize("role", ["store-keeper", "storekeeper", "store_keeper", "Store-Keeper"])
    def test_store_keeper_variants(self, role):
        assert map_role_to_backend_code(role) == "STORE_KEEPER"

    @pytest.mark.parametrize("role,code", [
        ("admin", "ADMIN"),
        ("editor", "ADMIN"),
        ("super-admin", "SUPER_ADMIN"),
        ("teacher", "CLASS_TEACHER"),
        ("user", "STUDENTS"),
    ])
    def test_known_roles(self, role, code):
        assert map_role_to_backend_code(role) == code

    def test_unknown_role_upper_cased(self):
        assert map_role_to_backend_code("custodian") == "CUSTODIAN"

    def test_map_roles_dedupes_in_order(self):
        assert map_roles(["teacher", "storekeeper", "store-keeper", "Teacher"]) == [
            "CLASS_TEACHER",
            "STORE_KEEPER",
        ]


class TestSuperAdmin:

    @pytest.mark.parametrize("codes", [["SUPER_ADMIN"], ["ADMIN"], ["STUDENTS", "CHAIRMAN"]])
    def test_super_admin_roles(self, codes):
        assert is_super_admin(codes) is True

    def test_regular_roles(self):
        assert is_super_admin(["CLASS_TEACHER", "STORE_KEEPER"]) is False
        assert is_super_admin([]) is False

    def test_email_case_insensitive(self):
        allow_list = parse_email_list(" Head@School.org , ,bursar@school.org")

        assert allow_list == frozenset({"head@school.org", "bursar@school.org"})
        assert is_super_admin_by_email("HEAD@school.org", allow_list) is True
        assert is_super_admin_by_email("pupil@school.org", allow_list) is False

    def test_missing_email(self):
        assert is_super_admin_by_email(None, frozenset({"head@school.org"})) is False
        assert is_super_admin_by_email("", frozenset()) is False

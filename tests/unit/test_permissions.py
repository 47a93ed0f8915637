"""
Tests for the authorization decision engine.

The backend grants actions through free-text descriptions; the exact
strings below are the ones the privilege source issues today.
"""

import pytest

from src.core.auth.permissions import (
    can_perform_action,
    get_accessible_modules,
    get_module_privileges,
    has_any_privilege_in_module,
    has_privilege,
)
from src.core.auth.privileges import (
    ACTIVE,
    ALL_PRIVILEGES,
    Privilege,
    normalize_privileges,
    wildcard_privileges,
)
from src.core.auth.resources import (
    ACTION_PATTERNS,
    find_privilege_module,
    get_action_patterns,
    get_resource_key,
)


def privileges_for(module: str, *grants):
    """Build a privilege set from (description, status) pairs."""
    return normalize_privileges({
        module: [{"description": d, "status": s} for d, s in grants]
    })


class TestResourceResolution:

    def test_mapped_labels(self):
        assert get_resource_key("Sub Categories") == "sub_categories"
        assert get_resource_key("UOM") == "uoms"
        assert get_resource_key("Academic Sessions") == "academic_session_terms"
        assert get_resource_key("Teachers") == "class_teachers"

    def test_unmapped_label_fallback(self):
        assert get_resource_key("Lost Property") == "lost_property"

    def test_read_and_get_are_synonyms(self):
        assert get_action_patterns("read") == get_action_patterns("get")
        assert get_action_patterns("READ") == ACTION_PATTERNS["read"]

    def test_unknown_action(self):
        assert get_action_patterns("archive") is None
        assert get_action_patterns(None) is None

    def test_case_insensitive_module_lookup(self):
        records = [Privilege("Get all Brands", ACTIVE)]

        assert find_privilege_module({"BRANDS": records}, "brands") is records
        assert find_privilege_module({"Brands": records}, "brands") is records
        assert find_privilege_module({"brands": records}, "brands") is records
        assert find_privilege_module({"CATEGORIES": records}, "brands") is None


class TestDescriptionContract:
    """Pin the description prefixes each action accepts."""

    @pytest.mark.parametrize("action,description", [
        ("create", "Create a new Sub Category"),
        ("create", "Create an Item"),
        ("read", "Get all Sub Categories"),
        ("read", "Get a Sub Category"),
        ("get", "Get an Entry"),
        ("update", "Update a Sub Category"),
        ("update", "Update an Item"),
        ("delete", "Delete a Sub Category"),
        ("delete", "Delete an Item"),
    ])
    def test_granting_descriptions(self, action, description):
        privileges = privileges_for("SUB_CATEGORIES", (description, "active"))

        assert can_perform_action(privileges, "Sub Categories", action) is True

    @pytest.mark.parametrize("action,description", [
        ("create", "Create new Sub Category"),
        ("read", "List Sub Categories"),
        ("update", "Edit a Sub Category"),
        ("delete", "Remove a Sub Category"),
    ])
    def test_renamed_descriptions_do_not_grant(self, action, description):
        privileges = privileges_for("SUB_CATEGORIES", (description, "active"))

        assert can_perform_action(privileges, "Sub Categories", action) is False

    def test_leading_whitespace_trimmed(self):
        privileges = privileges_for("BRANDS", ("  Create a new Brand", "active"))

        assert can_perform_action(privileges, "Brands", "create") is True


class TestCanPerformAction:

    def test_inactive_grant_denied(self):
        privileges = privileges_for("SUB_CATEGORIES", ("Create a new Sub Category", "inactive"))

        assert can_perform_action(privileges, "Sub Categories", "create") is False

    def test_empty_privileges_denied(self):
        assert can_perform_action({}, "Brands", "read") is False
        assert can_perform_action(None, "Brands", "read") is False

    def test_missing_module_denied(self):
        privileges = privileges_for("BRANDS", ("Get all Brands", "active"))

        assert can_perform_action(privileges, "Categories", "read") is False

    def test_unknown_action_denied(self):
        privileges = privileges_for("BRANDS", ("Get all Brands", "active"))

        assert can_perform_action(privileges, "Brands", "archive") is False

    def test_action_case_insensitive(self):
        privileges = privileges_for("BRANDS", ("Get all Brands", "active"))

        assert can_perform_action(privileges, "Brands", "READ") is True

    @pytest.mark.parametrize("module", ["Brands", "Sub Categories", "Not A Module"])
    @pytest.mark.parametrize("action", ["create", "read", "update", "delete", "get"])
    def test_wildcard_grants_everything(self, module, action):
        assert can_perform_action(wildcard_privileges(), module, action) is True


class TestHasPrivilege:

    def test_substring_match_case_insensitive(self):
        privileges = privileges_for("STUDENTS", ("Get all Students", "active"))

        assert has_privilege(privileges, "get ALL students") is True
        assert has_privilege(privileges, "students", "Students") is True

    def test_inactive_not_matched(self):
        privileges = privileges_for("STUDENTS", ("Get all Students", "inactive"))

        assert has_privilege(privileges, "Get all Students") is False

    def test_module_scope(self):
        privileges = privileges_for("STUDENTS", ("Get all Students", "active"))

        assert has_privilege(privileges, "Get all Students", "Brands") is False

    def test_wildcard(self):
        assert has_privilege(wildcard_privileges(), "anything") is True

    def test_empty(self):
        assert has_privilege({}, "Get all Students") is False


class TestModuleHelpers:

    def test_get_module_privileges_active_only(self):
        privileges = privileges_for(
            "BRANDS",
            ("Get all Brands", "active"),
            ("Delete a Brand", "inactive"),
        )

        assert get_module_privileges(privileges, "Brands") == [Privilege("Get all Brands", ACTIVE)]
        assert get_module_privileges(privileges, "Categories") == []

    def test_get_module_privileges_wildcard(self):
        assert get_module_privileges(wildcard_privileges(), "Brands") == [Privilege(ALL_PRIVILEGES, ACTIVE)]

    def test_has_any_privilege_in_module(self):
        privileges = normalize_privileges({
            "BRANDS": [{"description": "Get all Brands", "status": "active"}],
            "CATEGORIES": [{"description": "Get all Categories", "status": "inactive"}],
        })

        assert has_any_privilege_in_module(privileges, "Brands") is True
        assert has_any_privilege_in_module(privileges, "Categories") is False
        assert has_any_privilege_in_module(privileges, "Suppliers") is False
        assert has_any_privilege_in_module(wildcard_privileges(), "Suppliers") is True

    def test_get_accessible_modules(self):
        privileges = normalize_privileges({
            "BRANDS": [{"description": "Get all Brands", "status": "active"}],
            "CATEGORIES": [{"description": "Get all Categories", "status": "inactive"}],
        })

        assert get_accessible_modules(privileges) == ["BRANDS"]
        assert get_accessible_modules(wildcard_privileges()) == ["*"]

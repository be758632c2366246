"""
Scope assignment tests.
"""

import pytest
from pydantic import ValidationError

from fellowship_backend.api.exceptions import BadRequestException, NotFoundException, PermissionDenied
from fellowship_backend.interface.user_roles import UserRoleAssign
from fellowship_backend.model.role import UserRole
from fellowship_backend.permissions.assignments import assign_scope, get_assignment, remove_scope
from fellowship_backend.tests.fixtures import make_role, make_user


class TestUserRoleAssign:

    def test_scope_requires_its_entity(self):
        with pytest.raises(ValidationError):
            UserRoleAssign(user_id=1, scope="university")

    def test_camel_case_payload(self):
        payload = UserRoleAssign.model_validate({"userId": 1, "scope": "smallgroup", "smallGroupId": 4})

        assert payload.small_group_id == 4

    def test_unknown_scope(self):
        with pytest.raises(ValidationError):
            UserRoleAssign(user_id=1, scope="campus", university_id=1)


class TestAssignScope:

    def test_assign_stores_only_the_scope_entity(self, test_db, hierarchy):
        user = make_user(test_db, "leader@example.org")

        assignment = assign_scope(test_db, UserRoleAssign(
            user_id=user.id,
            scope="smallgroup",
            region_id=hierarchy["north"].id,
            university_id=hierarchy["uni_north"].id,
            small_group_id=hierarchy["group_a"].id,
        ))

        assert assignment.small_group_id == hierarchy["group_a"].id
        assert assignment.university_id is None
        assert assignment.region_id is None

    def test_reassign_supersedes_in_place(self, test_db, hierarchy):
        user = make_user(test_db, "leader@example.org", "region", region_id=hierarchy["north"].id)
        role = make_role(test_db, "Campus Leader")

        assignment = assign_scope(test_db, UserRoleAssign(
            user_id=user.id, scope="university", role_id=role.id, university_id=hierarchy["uni_south"].id
        ))

        assert test_db.query(UserRole).filter(UserRole.user_id == user.id).count() == 1
        assert assignment.scope == "university"
        assert assignment.region_id is None
        assert assignment.university_id == hierarchy["uni_south"].id
        assert assignment.role_id == role.id

    def test_disagreeing_ancestor(self, test_db, hierarchy):
        user = make_user(test_db, "leader@example.org")

        with pytest.raises(BadRequestException):
            assign_scope(test_db, UserRoleAssign(
                user_id=user.id,
                scope="university",
                region_id=hierarchy["south"].id,
                university_id=hierarchy["uni_north"].id,
            ))

    def test_descendant_id_is_rejected(self, test_db, hierarchy):
        user = make_user(test_db, "leader@example.org")

        with pytest.raises(BadRequestException) as e:
            assign_scope(test_db, UserRoleAssign(
                user_id=user.id,
                scope="region",
                region_id=hierarchy["north"].id,
                small_group_id=hierarchy["group_a"].id,
            ))
        assert "small_group_id" in e.value.detail

    def test_unknown_entity(self, test_db, hierarchy):
        user = make_user(test_db, "leader@example.org")

        with pytest.raises(BadRequestException) as e:
            assign_scope(test_db, UserRoleAssign(user_id=user.id, scope="region", region_id=999))
        assert e.value.detail == "Region not found"

    def test_unknown_user_and_role(self, test_db, hierarchy):
        user = make_user(test_db, "leader@example.org")

        with pytest.raises(BadRequestException):
            assign_scope(test_db, UserRoleAssign(user_id=999, scope="national"))
        with pytest.raises(BadRequestException):
            assign_scope(test_db, UserRoleAssign(user_id=user.id, scope="national", role_id=999))

    def test_superadmin_only_by_superadmin(self, test_db):
        user = make_user(test_db, "someone@example.org")

        with pytest.raises(PermissionDenied):
            assign_scope(test_db, UserRoleAssign(user_id=user.id, scope="superadmin"))

        assignment = assign_scope(test_db, UserRoleAssign(user_id=user.id, scope="superadmin"), assigned_by_superadmin=True)
        assert assignment.scope == "superadmin"

    def test_superadmin_cannot_be_demoted_by_national(self, test_db):
        user = make_user(test_db, "root@example.org", "superadmin")

        with pytest.raises(PermissionDenied):
            assign_scope(test_db, UserRoleAssign(user_id=user.id, scope="national"))
        with pytest.raises(PermissionDenied):
            remove_scope(test_db, user.id)

    def test_remove_scope(self, test_db):
        user = make_user(test_db, "national@example.org", "national")

        remove_scope(test_db, user.id)

        with pytest.raises(NotFoundException):
            get_assignment(test_db, user.id)

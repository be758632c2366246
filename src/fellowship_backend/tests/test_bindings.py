"""
Role-permission binding engine and permission catalog tests.
"""

import pytest
from sqlalchemy import exc

from fellowship_backend.api.exceptions import (
    AlreadyAssigned,
    AssignmentNotFound,
    BadRequestException,
    DuplicateName,
    ForbiddenException,
    HasActiveAssignments,
    PermissionNotFound,
    ReconcileTransactionError,
    RoleNotFound,
)
from fellowship_backend.model.role import RolePermission
from fellowship_backend.permissions import bindings, catalog
from fellowship_backend.permissions.bindings import DesiredBinding
from fellowship_backend.tests.fixtures import make_permission, make_role, make_user


def stored(db, role_id) -> set[int]:
    return {b.permission_id for b in db.query(RolePermission).filter(RolePermission.role_id == role_id).all()}


class TestAssign:

    def test_second_assign_of_same_pair_fails(self, test_db):
        role = make_role(test_db, "Editor")
        permission = make_permission(test_db, "member", "read")

        binding = bindings.assign(test_db, role.id, permission.id)

        assert binding.id is not None
        with pytest.raises(AlreadyAssigned) as e:
            bindings.assign(test_db, role.id, permission.id)
        assert e.value.status_code == 409
        assert test_db.query(RolePermission).count() == 1

    def test_unique_constraint_decides_a_race(self, test_db, monkeypatch):
        role = make_role(test_db, "Editor")
        permission = make_permission(test_db, "member", "read")
        bindings.assign(test_db, role.id, permission.id)

        # the pre-check misses the row written by a concurrent request
        monkeypatch.setattr(bindings, "_find_binding", lambda db, role_id, permission_id: None)

        with pytest.raises(AlreadyAssigned):
            bindings.assign(test_db, role.id, permission.id)
        assert test_db.query(RolePermission).count() == 1

    def test_granted_by_is_stored(self, test_db):
        admin = make_user(test_db, "admin@example.org", "superadmin")
        role = make_role(test_db, "Editor")
        permission = make_permission(test_db, "member", "read")

        binding = bindings.assign(test_db, role.id, permission.id, granted_by=admin.id)

        assert binding.granted_by == admin.id
        assert binding.granted_at is not None

    def test_unknown_role_and_permission(self, test_db):
        role = make_role(test_db, "Editor")
        permission = make_permission(test_db, "member", "read")

        with pytest.raises(RoleNotFound):
            bindings.assign(test_db, 999, permission.id)
        with pytest.raises(PermissionNotFound):
            bindings.assign(test_db, role.id, 999)

    def test_unassign(self, test_db):
        role = make_role(test_db, "Editor", grants=[("member", "read")])
        permission_id = next(iter(stored(test_db, role.id)))

        bindings.unassign(test_db, role.id, permission_id)

        assert stored(test_db, role.id) == set()
        with pytest.raises(AssignmentNotFound):
            bindings.unassign(test_db, role.id, permission_id)


class TestBulkReconcile:

    def test_second_run_changes_nothing(self, test_db):
        role = make_role(test_db, "Editor", grants=[("member", "delete"), ("event", "delete")])
        read = make_permission(test_db, "member", "read")
        create = make_permission(test_db, "member", "create")
        update = make_permission(test_db, "member", "update")
        delete_ids = sorted(stored(test_db, role.id))

        desired = [
            DesiredBinding(permission_id=read.id, is_assigned=True),
            DesiredBinding(permission_id=create.id, is_assigned=True),
            DesiredBinding(permission_id=update.id, is_assigned=True),
            DesiredBinding(permission_id=delete_ids[0], is_assigned=False),
            DesiredBinding(permission_id=delete_ids[1], is_assigned=False),
        ]

        first = bindings.bulk_reconcile(test_db, role.id, desired)
        second = bindings.bulk_reconcile(test_db, role.id, desired)

        assert (first.added, first.removed, first.unchanged) == (3, 2, 0)
        assert (second.added, second.removed, second.unchanged) == (0, 0, 5)
        assert stored(test_db, role.id) == {read.id, create.id, update.id}

    def test_unassigned_and_missing_is_unchanged(self, test_db):
        role = make_role(test_db, "Editor")
        permission = make_permission(test_db, "member", "read")

        result = bindings.bulk_reconcile(test_db, role.id, [DesiredBinding(permission_id=permission.id, is_assigned=False)])

        assert (result.added, result.removed, result.unchanged) == (0, 0, 1)

    def test_failure_rolls_back_everything(self, test_db, monkeypatch):
        role = make_role(test_db, "Editor", grants=[("member", "delete")])
        read = make_permission(test_db, "member", "read")
        before = stored(test_db, role.id)

        desired = [DesiredBinding(permission_id=read.id, is_assigned=True)] + [
            DesiredBinding(permission_id=pid, is_assigned=False) for pid in before
        ]

        def failing_commit():
            raise exc.OperationalError("COMMIT", {}, Exception("connection lost"))

        with monkeypatch.context() as m:
            m.setattr(test_db, "commit", failing_commit)
            with pytest.raises(ReconcileTransactionError) as e:
                bindings.bulk_reconcile(test_db, role.id, desired)

        assert e.value.status_code == 500
        assert stored(test_db, role.id) == before

    def test_unknown_permission_fails_before_writing(self, test_db):
        role = make_role(test_db, "Editor", grants=[("member", "delete")])
        before = stored(test_db, role.id)

        desired = [DesiredBinding(permission_id=pid, is_assigned=False) for pid in before]
        desired.append(DesiredBinding(permission_id=999, is_assigned=True))

        with pytest.raises(PermissionNotFound) as e:
            bindings.bulk_reconcile(test_db, role.id, desired)
        assert e.value.detail == "One or more permissions not found"
        assert stored(test_db, role.id) == before

    def test_unknown_role(self, test_db):
        permission = make_permission(test_db, "member", "read")

        with pytest.raises(RoleNotFound):
            bindings.bulk_reconcile(test_db, 999, [DesiredBinding(permission_id=permission.id, is_assigned=True)])

    def test_same_permission_twice_is_rejected(self, test_db):
        role = make_role(test_db, "Editor")
        permission = make_permission(test_db, "member", "read")

        with pytest.raises(BadRequestException):
            bindings.bulk_reconcile(test_db, role.id, [
                DesiredBinding(permission_id=permission.id, is_assigned=True),
                DesiredBinding(permission_id=permission.id, is_assigned=False),
            ])

    def test_bulk_assign_keeps_existing(self, test_db):
        role = make_role(test_db, "Editor", grants=[("member", "delete")])
        existing = stored(test_db, role.id)
        read = make_permission(test_db, "member", "read")

        items = bindings.bulk_assign(test_db, role.id, [read.id, *existing])

        assert {item.permission_id for item in items} == existing | {read.id}
        assert stored(test_db, role.id) == existing | {read.id}


class TestDeletionProtection:

    def test_bound_role_cannot_be_deleted_until_unassigned(self, test_db):
        role = make_role(test_db, "Editor")
        permission = make_permission(test_db, "member", "read")
        bindings.assign(test_db, role.id, permission.id)

        with pytest.raises(HasActiveAssignments) as e:
            bindings.delete_role(test_db, role.id)
        assert e.value.status_code == 409

        bindings.unassign(test_db, role.id, permission.id)
        bindings.delete_role(test_db, role.id)

        with pytest.raises(RoleNotFound):
            bindings.get_role(test_db, role.id)

    def test_role_held_by_a_user(self, test_db):
        role = make_role(test_db, "Editor")
        make_user(test_db, "editor@example.org", "national", role_id=role.id)

        with pytest.raises(HasActiveAssignments):
            bindings.delete_role(test_db, role.id)

    def test_system_role(self, test_db):
        role = make_role(test_db, "Super Administrator", level="System")
        role.is_system = True
        test_db.commit()

        with pytest.raises(ForbiddenException):
            bindings.delete_role(test_db, role.id)

    def test_bound_permission(self, test_db):
        role = make_role(test_db, "Editor")
        permission = make_permission(test_db, "member", "read")
        bindings.assign(test_db, role.id, permission.id)

        with pytest.raises(HasActiveAssignments):
            bindings.delete_permission(test_db, permission.id)

        bindings.unassign(test_db, role.id, permission.id)
        bindings.delete_permission(test_db, permission.id)

        with pytest.raises(PermissionNotFound):
            catalog.get_permission(test_db, permission.id)


class TestRoleAdministration:

    def test_duplicate_name(self, test_db):
        bindings.create_role(test_db, {"name": "Editor", "level": "Campus"})

        with pytest.raises(DuplicateName) as e:
            bindings.create_role(test_db, {"name": "Editor", "level": "Regional"})
        assert e.value.detail == "Role name already exists"

    def test_rename_onto_existing_name(self, test_db):
        bindings.create_role(test_db, {"name": "Editor", "level": "Campus"})
        viewer = bindings.create_role(test_db, {"name": "Viewer", "level": "Campus"})

        with pytest.raises(DuplicateName):
            bindings.update_role(test_db, viewer.id, {"name": "Editor"})

    def test_roles_ordered_by_level_then_name(self, test_db):
        for name, level in [("B", "Regional"), ("A", "Regional"), ("C", "Campus")]:
            bindings.create_role(test_db, {"name": name, "level": level})

        assert [r.name for r in bindings.list_roles(test_db)] == ["C", "A", "B"]
        assert [r.name for r in bindings.list_roles(test_db, level="Regional")] == ["A", "B"]

    def test_user_counts(self, test_db):
        role = make_role(test_db, "Editor")
        make_user(test_db, "a@example.org", "national", role_id=role.id)
        make_user(test_db, "b@example.org", "national", role_id=role.id)

        assert bindings.user_counts(test_db, [role.id]) == {role.id: 2}


class TestCatalog:

    def test_canonical_order(self, test_db):
        for resource, action in [("member", "update"), ("event", "read"), ("member", "create"), ("event", "create")]:
            make_permission(test_db, resource, action)

        listed = [(p.resource, p.action) for p in catalog.list_permissions(test_db)]

        assert listed == [("event", "create"), ("event", "read"), ("member", "create"), ("member", "update")]

    def test_filters(self, test_db):
        make_permission(test_db, "region", "read", scope="regional")
        make_permission(test_db, "member", "read")

        assert [p.resource for p in catalog.list_permissions(test_db, scope="regional")] == ["region"]
        assert [p.resource for p in catalog.list_permissions(test_db, action="read", resource="member")] == ["member"]

    def test_grouped_with_assignment_flags(self, test_db):
        role = make_role(test_db, "Editor", grants=[("member", "read")])
        make_permission(test_db, "member", "delete")
        make_permission(test_db, "smallgroup", "read")

        groups = catalog.grouped_permissions(test_db, role_id=role.id)

        assert [g["resource"] for g in groups] == ["member", "smallgroup"]
        assert groups[0]["display_name"] == "Member Management"
        assert groups[1]["display_name"] == "Small Group Management"
        assert [(p["action"], p["is_assigned"]) for p in groups[0]["permissions"]] == [("delete", False), ("read", True)]

    def test_category_name_fallback(self):
        assert catalog.category_name("ministry") == "Ministry Management"

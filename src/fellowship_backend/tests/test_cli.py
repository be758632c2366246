"""
Command line tests, run against the in-memory test database.
"""

import pytest
from click.testing import CliRunner

from fellowship_backend.cli import database as database_commands
from fellowship_backend.cli import users as user_commands
from fellowship_backend.cli.cli import cli
from fellowship_backend.interface.tokens import decrypt_api_key
from fellowship_backend.model.auth import User
from fellowship_backend.model.role import Permission, Role, RolePermission, UserRole
from fellowship_backend.tests.fixtures import make_role, make_user


@pytest.fixture
def runner(test_db, monkeypatch):
    def _get_db():
        yield test_db

    monkeypatch.setattr(database_commands, "get_db", _get_db)
    monkeypatch.setattr(database_commands, "get_engine", lambda: test_db.get_bind())
    monkeypatch.setattr(user_commands, "get_db", _get_db)

    return CliRunner()


class TestDatabaseCommands:

    def test_init_db(self, runner):
        result = runner.invoke(cli, ["init-db"])

        assert result.exit_code == 0
        assert "Database schema created" in result.output

    def test_seed_twice_changes_nothing(self, runner, test_db):
        first = runner.invoke(cli, ["seed"])
        counts = (
            test_db.query(Role).count(),
            test_db.query(Permission).count(),
            test_db.query(RolePermission).count(),
        )
        second = runner.invoke(cli, ["seed"])

        assert first.exit_code == 0
        assert second.exit_code == 0
        assert "Seeded 6 system roles" in second.output
        assert counts[0] == 6
        assert counts == (
            test_db.query(Role).count(),
            test_db.query(Permission).count(),
            test_db.query(RolePermission).count(),
        )
        assert test_db.query(Role).filter(Role.is_system == False).count() == 0

    def test_seed_keeps_binding_changes(self, runner, test_db):
        runner.invoke(cli, ["seed"])
        role_id = test_db.query(Role).filter(Role.name == "Campus Leader").first().id
        total = test_db.query(RolePermission).filter(RolePermission.role_id == role_id).count()
        test_db.delete(test_db.query(RolePermission).filter(RolePermission.role_id == role_id).first())
        extra_id = test_db.query(Permission).filter(Permission.resource == "role", Permission.action == "read").one().id
        test_db.add(RolePermission(role_id=role_id, permission_id=extra_id))
        test_db.commit()

        result = runner.invoke(cli, ["seed"])

        assert result.exit_code == 0
        assert test_db.query(RolePermission).filter(RolePermission.role_id == role_id).count() == total
        assert test_db.query(RolePermission).filter(RolePermission.role_id == role_id, RolePermission.permission_id == extra_id).count() == 1

    def test_seed_reset_restores_default_bindings(self, runner, test_db):
        runner.invoke(cli, ["seed"])
        role_id = test_db.query(Role).filter(Role.name == "Campus Leader").first().id
        defaults = {b.permission_id for b in test_db.query(RolePermission).filter(RolePermission.role_id == role_id)}
        test_db.delete(test_db.query(RolePermission).filter(RolePermission.role_id == role_id).first())
        extra_id = test_db.query(Permission).filter(Permission.resource == "role", Permission.action == "read").one().id
        test_db.add(RolePermission(role_id=role_id, permission_id=extra_id))
        test_db.commit()

        result = runner.invoke(cli, ["seed", "--reset"])

        assert result.exit_code == 0
        assert "Default bindings of the system roles restored" in result.output
        assert {b.permission_id for b in test_db.query(RolePermission).filter(RolePermission.role_id == role_id)} == defaults

    def test_seed_binds_new_permissions_to_system_roles(self, runner, test_db):
        runner.invoke(cli, ["seed"])
        role_id = test_db.query(Role).filter(Role.name == "Campus Leader").first().id
        permission = test_db.query(Permission).filter(Permission.resource == "member", Permission.action == "read").one()
        test_db.query(RolePermission).filter(RolePermission.permission_id == permission.id).delete()
        test_db.delete(permission)
        test_db.commit()

        runner.invoke(cli, ["seed"])

        recreated_id = test_db.query(Permission).filter(Permission.resource == "member", Permission.action == "read").one().id
        assert test_db.query(RolePermission).filter(RolePermission.role_id == role_id, RolePermission.permission_id == recreated_id).count() == 1


class TestUserCommands:

    def test_create_user(self, runner, test_db):
        result = runner.invoke(cli, ["create-user", "-n", "Grace", "-e", "grace@example.org", "-p", "secret123"])

        assert result.exit_code == 0
        user = test_db.query(User).filter(User.email == "grace@example.org").first()
        assert user.name == "Grace"
        assert user.password != "secret123"
        assert decrypt_api_key(user.password) == "secret123"

    def test_create_duplicate_user(self, runner, test_db):
        make_user(test_db, "grace@example.org")

        result = runner.invoke(cli, ["create-user", "-n", "Grace", "-e", "grace@example.org", "-p", "secret123"])

        assert result.exit_code == 1
        assert "already exists" in result.output

    def test_create_user_with_invalid_email(self, runner):
        result = runner.invoke(cli, ["create-user", "-n", "Grace", "-e", "not-an-email", "-p", "secret123"])

        assert result.exit_code == 1

    def test_assign_scope(self, runner, test_db, hierarchy):
        user_id = make_user(test_db, "leader@example.org").id
        role_id = make_role(test_db, "Campus Leader").id
        university_id = hierarchy["uni_north"].id

        result = runner.invoke(cli, [
            "assign-scope", "leader@example.org", "university",
            "--university-id", str(university_id),
            "--role", "Campus Leader",
        ])

        assert result.exit_code == 0
        assert "Assigned scope university to leader@example.org" in result.output
        assignment = test_db.query(UserRole).filter(UserRole.user_id == user_id).one()
        assert assignment.university_id == university_id
        assert assignment.role_id == role_id

    def test_assign_scope_without_entity(self, runner, test_db):
        make_user(test_db, "leader@example.org")

        result = runner.invoke(cli, ["assign-scope", "leader@example.org", "region"])

        assert result.exit_code == 1
        assert test_db.query(UserRole).count() == 0

    def test_assign_scope_unknown_user_and_role(self, runner, test_db):
        make_user(test_db, "leader@example.org")

        unknown_user = runner.invoke(cli, ["assign-scope", "nobody@example.org", "national"])
        unknown_role = runner.invoke(cli, ["assign-scope", "leader@example.org", "national", "--role", "Nope"])

        assert unknown_user.exit_code == 1
        assert "User nobody@example.org not found" in unknown_user.output
        assert unknown_role.exit_code == 1
        assert "Role Nope not found" in unknown_role.output

    def test_check_scopes_reports_unassigned_and_superadmins(self, runner, test_db):
        make_user(test_db, "root@example.org", "superadmin")
        make_user(test_db, "nobody@example.org")

        result = runner.invoke(cli, ["check-scopes"])

        assert result.exit_code == 0
        assert "Users without a scope assignment: 1" in result.output
        assert "nobody@example.org" in result.output
        assert "Superadmins: 1" in result.output
        assert "Unresolvable assignments: 0" in result.output

    def test_check_scopes_fails_on_broken_assignment(self, runner, test_db, hierarchy):
        make_user(test_db, "leader@example.org", "smallgroup", small_group_id=hierarchy["group_a"].id)
        group = hierarchy["group_a"]
        group.region_id = hierarchy["south"].id
        test_db.commit()

        result = runner.invoke(cli, ["check-scopes"])

        assert result.exit_code == 1
        assert "Unresolvable assignments: 1" in result.output
        assert "leader@example.org (smallgroup)" in result.output

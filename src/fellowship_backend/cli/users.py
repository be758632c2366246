"""
User and scope administration from the command line.
"""

from typing import Optional
import click
from fastapi import HTTPException
from pydantic import ValidationError

from fellowship_backend.database import get_db
from fellowship_backend.interface.scopes import ScopeLevel
from fellowship_backend.interface.tokens import encrypt_api_key
from fellowship_backend.interface.user_roles import UserRoleAssign
from fellowship_backend.interface.users import UserCreate
from fellowship_backend.model.auth import User
from fellowship_backend.model.role import Role, UserRole
from fellowship_backend.permissions.assignments import assign_scope
from fellowship_backend.permissions.resolver import resolve_assignment


def _fail(e: Exception):
    if isinstance(e, HTTPException):
        raise click.ClickException(str(e.detail))
    raise click.ClickException(str(e))


@click.command()
@click.option("--name", "-n", "name", prompt=True)
@click.option("--email", "-e", "email", prompt=True)
@click.option("--password", "-p", "password", prompt=True, hide_input=True, confirmation_prompt=True)
def create_user(name: str, email: str, password: str):
    """Create a login user."""
    try:
        entity = UserCreate(name=name, email=email, password=password)
    except ValidationError as e:
        _fail(e)

    with next(get_db()) as db:
        if db.query(User).filter(User.email == entity.email).first() != None:
            raise click.ClickException(f"User {entity.email} already exists")

        user = User(name=entity.name, email=entity.email, password=encrypt_api_key(entity.password))
        db.add(user)
        db.commit()
        db.refresh(user)

        click.echo(f"Created user {user.id} <{user.email}>")


@click.command()
@click.argument("email")
@click.argument("scope", type=click.Choice([level.value for level in ScopeLevel]))
@click.option("--role", "role_name", default=None, help="Name of the role to attach")
@click.option("--region-id", type=int, default=None)
@click.option("--university-id", type=int, default=None)
@click.option("--small-group-id", type=int, default=None)
@click.option("--alumni-group-id", type=int, default=None)
def assign_scope_command(email: str, scope: str, role_name: Optional[str], region_id, university_id, small_group_id, alumni_group_id):
    """
    Assign SCOPE to the user with EMAIL, replacing its current assignment.

    Examples:
        fellowship assign-scope admin@example.org superadmin
        fellowship assign-scope leader@example.org university --university-id 7 --role "Campus Leader"
    """
    with next(get_db()) as db:
        user = db.query(User).filter(User.email == email).first()
        if user == None:
            raise click.ClickException(f"User {email} not found")

        role_id = None
        if role_name != None:
            role = db.query(Role).filter(Role.name == role_name).first()
            if role == None:
                raise click.ClickException(f"Role {role_name} not found")
            role_id = role.id

        try:
            payload = UserRoleAssign(
                user_id=user.id,
                scope=scope,
                role_id=role_id,
                region_id=region_id,
                university_id=university_id,
                small_group_id=small_group_id,
                alumni_group_id=alumni_group_id,
            )
            assignment = assign_scope(db, payload, assigned_by_superadmin=True)
        except (ValidationError, HTTPException) as e:
            _fail(e)

        click.echo(f"Assigned scope {assignment.scope} to {email}")


@click.command()
def check_scopes():
    """
    Report users without a scope, superadmins and assignments that no longer resolve.
    """
    with next(get_db()) as db:
        unassigned = (
            db.query(User)
            .outerjoin(UserRole, UserRole.user_id == User.id)
            .filter(UserRole.id == None)
            .order_by(User.email)
            .all()
        )
        assignments = db.query(UserRole).order_by(UserRole.user_id).all()

        click.echo(f"Users without a scope assignment: {len(unassigned)}")
        for user in unassigned:
            click.echo(f"  {user.id:>6} {user.email}")

        superadmins = [a for a in assignments if a.scope == ScopeLevel.superadmin.value]
        click.echo(f"Superadmins: {len(superadmins)}")
        for assignment in superadmins:
            click.echo(f"  {assignment.user_id:>6} {assignment.user.email}")

        broken = []
        for assignment in assignments:
            try:
                resolve_assignment(assignment, db)
            except HTTPException as e:
                broken.append((assignment, e.detail))

        click.echo(f"Unresolvable assignments: {len(broken)}")
        for assignment, reason in broken:
            click.echo(f"  {assignment.user_id:>6} {assignment.user.email} ({assignment.scope}): {reason}")

        if broken:
            raise click.ClickException(f"{len(broken)} scope assignments cannot be resolved")

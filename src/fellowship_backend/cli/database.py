"""
Database commands: schema creation and default catalog seeding.
"""

import click
from fellowship_backend.database import get_db, get_engine
from fellowship_backend.model.base import Base
from fellowship_backend.permissions.role_setup import ensure_system_roles


@click.command()
def init_db():
    """Create all tables that do not exist yet."""
    Base.metadata.create_all(get_engine())
    click.echo("Database schema created")


@click.command()
@click.option("--reset", is_flag=True, help="Reconcile every system role to exactly its default bindings")
def seed(reset):
    """
    Create the default permission catalog and the system roles.

    Safe to run repeatedly: existing permissions and roles are kept and
    bindings are only added for new roles or new permissions. ``--reset``
    discards the binding changes made to the system roles.
    """
    with next(get_db()) as db:
        roles = ensure_system_roles(db, reset=reset)

        for role in roles:
            click.echo(f"  {role.level:<16} {role.name}")

    if reset:
        click.echo("Default bindings of the system roles restored")
    click.echo(f"Seeded {len(roles)} system roles")

import logging
import click

from fellowship_backend.settings import settings
from .database import init_db, seed
from .users import assign_scope_command, check_scopes, create_user

@click.group()
def cli():
    logging.basicConfig(level=settings.LOG_LEVEL, format="%(levelname)s %(name)s: %(message)s")

cli.add_command(init_db,"init-db")
cli.add_command(seed,"seed")
cli.add_command(create_user,"create-user")
cli.add_command(assign_scope_command,"assign-scope")
cli.add_command(check_scopes,"check-scopes")

if __name__ == '__main__':
    cli()

"""
CLI for okrtree.

Talks to the remote OKR store through OkrCore. Diagnostics go to stderr via
logging; user-facing notices are echoed by the command groups.
"""
import click

from okrtree.commands.auth import auth
from okrtree.commands.config import config
from okrtree.commands.objective import okr
from okrtree.commands.task import task
from okrtree.constants import get_log_level
from okrtree.logger import setup_logging


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Log debug output to stderr.")
def cli(verbose):
    """Browse and edit hierarchical objectives (OKRs) and their tasks."""
    setup_logging("DEBUG" if verbose else get_log_level())


cli.add_command(auth)
cli.add_command(okr)
cli.add_command(task)
cli.add_command(config)


if __name__ == '__main__':
    cli()

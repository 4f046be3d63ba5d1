"""
Auth command group.

Login state is kept in session.json inside the state directory.
"""
from typing import Optional

import click

from okrtree.commands.common import require_login, run_with_core


@click.group()
def auth():
    """Log in, log out and manage your profile."""
    pass


@auth.command()
@click.option("-e", "--emp-id", prompt="Employee ID", help="Employee ID.")
@click.option("--password", prompt=True, hide_input=True, help="Password.")
def login(emp_id: str, password: str):
    """Log in and store the session token."""
    async def action(core):
        return await core.session.login({"empId": emp_id, "password": password})

    user = run_with_core(action)
    name = user.name if user and user.name else emp_id
    click.echo(f"Logged in as {name}")


@auth.command()
def logout():
    """Forget the stored session."""
    async def action(core):
        core.session.logout()

    run_with_core(action)
    click.echo("Logged out")


@auth.command()
@click.option("-e", "--emp-id", prompt="Employee ID", help="Employee ID.")
@click.option("-n", "--name", prompt=True, help="Full name.")
@click.option("--email", prompt=True, help="Email address.")
@click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True, help="Password.")
def register(emp_id: str, name: str, email: str, password: str):
    """Create a new account."""
    async def action(core):
        return await core.session.register(
            {"empId": emp_id, "name": name, "email": email, "password": password}
        )

    run_with_core(action)
    click.echo("Registration successful. You can now log in.")


@auth.command()
def whoami():
    """Show the logged-in user."""
    async def action(core):
        require_login(core)
        return await core.session.current_user()

    user = run_with_core(action)
    if user is None:
        raise click.ClickException("Not logged in.")
    click.echo(f"Employee ID: {user.emp_id}")
    click.echo(f"Name: {user.name or '-'}")
    click.echo(f"Email: {user.email or '-'}")
    click.echo(f"Role: {user.role or '-'}")


@auth.command()
@click.option("-n", "--name", help="New display name.")
@click.option("--email", help="New email address.")
def update(name: Optional[str], email: Optional[str]):
    """Update your profile."""
    fields = {k: v for k, v in (("name", name), ("email", email)) if v is not None}
    if not fields:
        raise click.ClickException("Nothing to update. Pass --name and/or --email.")

    async def action(core):
        require_login(core)
        return await core.session.update_user(fields)

    run_with_core(action)
    click.echo("Profile updated successfully!")

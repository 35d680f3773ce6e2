#!/usr/bin/env python3
"""
IAM Policy Control CLI - Command Line Interface for the IAM Policy Engine.

Provides commands for reading and updating the IAM policies of organizations,
projects and groups, and for listing the roles that can be bound.
"""

import logging
import os

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..controller import PolicyController
from ..engine import PolicyDisplayer, load_policy_file
from ..errors import IamPolicyError

logger = logging.getLogger(__name__)

# Rich consoles for pretty output; status messages go to stderr
console = Console()
err_console = Console(stderr=True)


def _controller(ctx) -> PolicyController:
    return ctx.obj['controller']


def _fail(ctx, error: Exception):
    err_console.print(f"[red]Error: {escape(str(error))}[/red]")
    ctx.exit(1)


def _success(message: str):
    err_console.print(f"[green]✓[/green] {escape(message)}")


def display_policy(displayer: PolicyDisplayer, output_format: str):
    """Display a resolved policy as a table or as JSON."""
    if output_format == "json":
        click.echo(displayer.policy.model_dump_json(indent=2))
        return

    rows = displayer.flatten()
    if not rows:
        console.print("[yellow]No bindings found[/yellow]")
        return

    table = Table(title=f"IAM Policy (etag {escape(displayer.policy.etag)})")
    styles = ["cyan", "green", "yellow", "magenta"]
    for (heading, _), style in zip(displayer.field_templates(), styles):
        table.add_column(heading, style=style)

    for row in rows:
        table.add_row(*(escape(getattr(row, field)) for _, field in displayer.field_templates()))

    console.print(table)


def _add_policy_commands(group: click.Group, kind: str):
    """Register read-policy, set-policy, add-binding and delete-binding on a group."""

    def resource_option(f):
        if kind == "group":
            f = click.option('--group', '-g', 'group_name', required=True,
                             help='Group resource name (iam/organization/ORG_ID/group/NAME) or NAME')(f)
        return f

    @group.command('read-policy')
    @resource_option
    @click.option('--format', 'output_format', type=click.Choice(['table', 'json']),
                  default='table', help='Output format')
    @click.pass_context
    def read_policy(ctx, output_format, group_name=None):
        """Read the IAM policy."""
        try:
            displayer = _controller(ctx).displayer(kind, group_name)
        except (IamPolicyError, ValueError) as e:
            _fail(ctx, e)
            return

        display_policy(displayer, output_format)

    @group.command('set-policy')
    @resource_option
    @click.option('--policy-file', required=True, type=click.Path(),
                  help='Path to a JSON file containing an IAM policy object')
    @click.pass_context
    def set_policy(ctx, policy_file, group_name=None):
        """
        Set the IAM policy from a JSON file.

        If the file sets an etag it must match the existing policy's etag.
        If it does not, the existing policy's etag is fetched and used.
        """
        try:
            setter = _controller(ctx).setter(kind, group_name)
            setter.set_policy(load_policy_file(policy_file))
        except (IamPolicyError, ValueError) as e:
            _fail(ctx, e)
            return

        _success("IAM Policy successfully set.")

    @group.command('add-binding')
    @resource_option
    @click.option('--member', 'principal_id', required=True, help='ID of the principal to bind')
    @click.option('--role', 'role_id', required=True,
                  help='Role ID (e.g. "roles/admin", "roles/contributor", "roles/viewer")')
    @click.pass_context
    def add_binding(ctx, principal_id, role_id, group_name=None):
        """Bind a principal to a role."""
        try:
            _controller(ctx).setter(kind, group_name).add_binding(principal_id, role_id)
        except (IamPolicyError, ValueError) as e:
            _fail(ctx, e)
            return

        _success(f"Principal \"{principal_id}\" bound to role \"{role_id}\".")

    @group.command('delete-binding')
    @resource_option
    @click.option('--member', 'principal_id', required=True, help='ID of the bound principal')
    @click.option('--role', 'role_id', required=True, help='Role ID to remove the binding for')
    @click.pass_context
    def delete_binding(ctx, principal_id, role_id, group_name=None):
        """Remove a principal's role binding."""
        try:
            _controller(ctx).setter(kind, group_name).delete_binding(principal_id, role_id)
        except (IamPolicyError, ValueError) as e:
            _fail(ctx, e)
            return

        _success(f"Principal \"{principal_id}\" unbound from role \"{role_id}\".")


@click.group()
@click.option('--config', '-c', help='Path to a YAML profile')
@click.option('--mock/--real', default=False, help='Use the mock backend or real API connections (default)')
@click.option('--debug', is_flag=True, help='Enable debug logging')
@click.pass_context
def cli(ctx, config, mock, debug):
    """IAM Policy Control CLI - read and update IAM policies"""
    logging.basicConfig(level=logging.DEBUG if debug else logging.INFO,
                        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    ctx.ensure_object(dict)
    ctx.obj['controller'] = PolicyController(config, mock)


@cli.group()
def organizations():
    """Manage the organization's IAM policy."""


@cli.group()
def projects():
    """Manage the project's IAM policy."""


@cli.group()
def groups():
    """Manage a group's IAM policy."""


@cli.group()
def roles():
    """Inspect the roles that can be bound."""


_add_policy_commands(organizations, "organization")
_add_policy_commands(projects, "project")
_add_policy_commands(groups, "group")


@roles.command('list')
@click.pass_context
def list_roles_command(ctx):
    """List the roles available in the organization."""
    try:
        available = _controller(ctx).roles()
    except (IamPolicyError, ValueError) as e:
        _fail(ctx, e)
        return

    if not available:
        console.print("[yellow]No roles found[/yellow]")
        return

    table = Table(title=f"Roles ({len(available)})")
    table.add_column("Role ID", style="cyan")
    table.add_column("Name", style="green")
    table.add_column("Description", style="yellow")

    for role in available:
        table.add_row(escape(role.id), escape(role.name), escape(role.description))

    console.print(table)


@cli.command()
@click.option('--port', default=8000, help='Port to run the API server on')
@click.option('--host', default='127.0.0.1', help='Host to bind the API server to')
@click.pass_context
def serve(ctx, port, host):
    """Start the IAM Policy Engine API server."""
    from ..api.server import start_server

    # The server builds its own controller from the environment
    options = ctx.find_root().params
    if options.get("config"):
        os.environ["IAM_POLICY_CONFIG"] = options["config"]
    if options.get("mock"):
        os.environ["IAM_POLICY_MOCK"] = "1"

    console.print(f"[green]Starting IAM Policy Engine API server on {host}:{port}[/green]")
    console.print("[blue]Press Ctrl+C to stop[/blue]")

    try:
        start_server(host=host, port=port, reload=False)
    except KeyboardInterrupt:
        console.print("[yellow]Server stopped[/yellow]")


def main():
    cli()


if __name__ == "__main__":
    main()

"""Check command: verify the organization and PAT by listing projects."""

import click

from core import ado as ado_client


def run(config: ado_client.AdoConfig) -> bool:
    """Return True when the organization answers with a project list."""
    click.echo(f"  Connecting to {config.base_url} ...")
    try:
        result = ado_client.list_projects(config)
    except ado_client.AdoApiError as e:
        click.secho(f"  ✗ {e}", fg="red")
        if e.status in (401, 403):
            click.echo("    Check that the PAT is valid and has 'Project and Team: Read'.")
        return False

    projects = result.get("value", [])
    click.secho(f"  ✓ Connected: {result.get('count', len(projects))} projects visible", fg="green")
    for proj in projects:
        marker = "*" if config.project and proj.get("name") == config.project else " "
        click.echo(f"   {marker} {proj.get('name', '?')}")

    if config.project and not any(p.get("name") == config.project for p in projects):
        click.secho(f"  ⚠ Project '{config.project}' not found in this organization", fg="yellow")
    return True

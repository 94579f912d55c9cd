"""Setup command: register the server in an MCP client config (Cursor's mcp.json by default).

An existing config is backed up first, then merged: other servers are kept
and only the "azure-devops" entry is replaced.
"""

import json
import logging
import shutil
import sys
from datetime import datetime
from pathlib import Path

import click

logger = logging.getLogger(__name__)

DEFAULT_CLIENT_CONFIG = Path.home() / ".cursor" / "mcp.json"
SERVER_KEY = "azure-devops"


def run(
    client_config: Path,
    organization: str,
    pat: str,
    project: str | None = None,
) -> None:
    """Write the server entry into `client_config` and report what happened."""
    click.secho("\n  Azure DevOps MCP setup", bold=True)

    entry = build_server_entry(organization, pat, project)
    backup = write_client_config(client_config, entry)
    if backup:
        click.secho(f"  ⚠ Existing config backed up to {backup}", fg="yellow")

    click.secho(f"  ✓ MCP configuration written to {client_config}", fg="green")
    click.echo("\n  Next steps:")
    click.echo("    1. Restart your MCP client")
    click.echo("    2. Ask it to 'List my Azure DevOps projects'")
    click.secho(
        "\n  Keep your Personal Access Token out of version control.", fg="yellow",
    )


def server_command() -> list[str]:
    """Command line that starts the server, preferring the installed console script."""
    exe = shutil.which("ado-mcp")
    if exe:
        return [exe, "serve"]
    return [sys.executable, "-m", "ado_mcp.cli", "serve"]


def build_server_entry(organization: str, pat: str, project: str | None = None) -> dict:
    """Build the mcpServers entry. ADO_PROJECT is only set when a project is given."""
    command, *args = server_command()
    env = {"ADO_ORG": organization, "ADO_PAT": pat}
    if project:
        env["ADO_PROJECT"] = project
    return {"command": command, "args": args, "env": env}


def write_client_config(path: Path, entry: dict, now: datetime | None = None) -> Path | None:
    """
    Merge `entry` into the client config at `path` under mcpServers.

    Args:
        path: Client config file; created (with parents) if missing
        entry: Server entry from build_server_entry()
        now: Timestamp for the backup name (defaults to now)

    Returns:
        Path of the backup copy, or None when there was no existing file
    """
    path = Path(path)
    data: dict = {}
    backup = None

    if path.exists():
        stamp = (now or datetime.now()).strftime("%Y%m%d_%H%M%S")
        backup = path.with_name(f"{path.name}.backup.{stamp}")
        shutil.copy2(path, backup)
        try:
            loaded = json.loads(path.read_text(encoding="utf-8") or "{}")
        except json.JSONDecodeError:
            loaded = None
        if isinstance(loaded, dict):
            data = loaded
        else:
            logger.warning("%s is not a JSON object, replacing it", path)

    servers = data.get("mcpServers")
    if not isinstance(servers, dict):
        servers = {}
    servers[SERVER_KEY] = entry
    data["mcpServers"] = servers

    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)
        f.write("\n")

    return backup

"""ado-mcp command line: serve the MCP server, inspect and call tools, set up clients."""

import sys
from pathlib import Path

import click

from core.config import ConfigError, configure_logging, load_config, load_settings


def _load(ctx: click.Context):
    """Load connection config for a command, turning ConfigError into a CLI error."""
    path = ctx.obj.get("config_path")
    try:
        configure_logging(load_settings(path)["log_level"])
        return load_config(path)
    except ConfigError as e:
        raise click.ClickException(str(e))


@click.group()
@click.option(
    "--config", "config_path",
    type=click.Path(dir_okay=False),
    envvar="ADO_MCP_CONFIG",
    help="YAML file with an 'ado:' section (organization, project, pat, log_level).",
)
@click.pass_context
def cli(ctx: click.Context, config_path: str | None) -> None:
    """Azure DevOps tools over the Model Context Protocol."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


@cli.command()
@click.pass_context
def serve(ctx: click.Context) -> None:
    """Run the MCP server over stdio."""
    import anyio

    from ado_mcp.ado_server import serve as serve_stdio

    config = _load(ctx)
    anyio.run(serve_stdio, config)


@cli.command("tools")
@click.option("--json", "as_json", is_flag=True, help="Print full tool definitions.")
def tools_cmd(as_json: bool) -> None:
    """List the available tools."""
    from commands import call

    call.list_tools(as_json)


@cli.command("call")
@click.argument("name")
@click.option("--args", "args_json", default="{}", help="JSON object of tool arguments.")
@click.pass_context
def call_cmd(ctx: click.Context, name: str, args_json: str) -> None:
    """Invoke one tool and print its JSON result."""
    from commands import call

    config = _load(ctx)
    if not call.run(config, name, args_json):
        sys.exit(1)


@cli.command()
@click.pass_context
def check(ctx: click.Context) -> None:
    """Test connectivity by listing projects."""
    from commands import check as check_cmd

    config = _load(ctx)
    if not check_cmd.run(config):
        sys.exit(1)


@cli.command()
@click.option(
    "--client-config",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="MCP client config to update [default: ~/.cursor/mcp.json].",
)
@click.option("--org", "organization", prompt="Azure DevOps Organization (e.g., 'myorg')")
@click.option(
    "--project", default="", show_default=False,
    prompt="Azure DevOps Project (optional, press Enter to skip)",
)
@click.option("--pat", prompt="Azure DevOps Personal Access Token", hide_input=True)
def setup(client_config: Path | None, organization: str, project: str, pat: str) -> None:
    """Register this server in an MCP client config (Cursor by default)."""
    from commands import setup as setup_cmd

    if not organization.strip():
        raise click.BadParameter("Organization is required", param_hint="--org")
    if not pat.strip():
        raise click.BadParameter("Personal Access Token is required", param_hint="--pat")

    setup_cmd.run(
        client_config or setup_cmd.DEFAULT_CLIENT_CONFIG,
        organization.strip(),
        pat.strip(),
        project.strip() or None,
    )


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()

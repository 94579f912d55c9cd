"""Call and tools commands: inspect the tool registry and invoke a tool from the shell."""

import json

import click

from core.ado import AdoConfig
from ado_mcp.dispatch import ToolCallError, call_tool
from ado_mcp.registry import all_tools


def list_tools(as_json: bool = False) -> None:
    """Print registered tools, or their full definitions as JSON."""
    tools = all_tools()
    if as_json:
        defs = [
            {"name": t.name, "description": t.description, "inputSchema": t.input_schema}
            for t in tools.values()
        ]
        click.echo(json.dumps(defs, indent=2))
        return

    width = max(len(name) for name in tools)
    for name, tool in tools.items():
        click.echo(f"  {name.ljust(width)}  {tool.description}")


def run(config: AdoConfig, name: str, args_json: str = "{}") -> bool:
    """Invoke one tool; print the JSON result or the error. Returns success."""
    try:
        arguments = json.loads(args_json) if args_json else {}
    except json.JSONDecodeError as e:
        click.secho(f"  ✗ --args is not valid JSON: {e}", fg="red", err=True)
        return False

    try:
        text = call_tool(config, name, arguments)
    except ToolCallError as e:
        click.secho(f"  ✗ [{e.code}] {e.message}", fg="red", err=True)
        return False

    click.echo(text)
    return True

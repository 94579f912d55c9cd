"""Azure DevOps MCP server — exposes ADO operations as tools over stdio."""

import functools
import logging

import anyio
import anyio.to_thread
from mcp import types
from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server

from core.ado import AdoConfig
from core.config import configure_logging, load_config, load_settings
from ado_mcp.dispatch import ToolCallError, call_tool
from ado_mcp.registry import all_tools

logger = logging.getLogger(__name__)

SERVER_NAME = "mcp-azure-devops"
SERVER_VERSION = "0.1.0"

INSTRUCTIONS = (
    "Azure DevOps tools for projects, builds, work items, boards and sprints. "
    "Connection settings come from ADO_ORG, ADO_PROJECT and ADO_PAT."
)


def list_tool_definitions() -> list[types.Tool]:
    return [
        types.Tool(name=tool.name, description=tool.description, inputSchema=tool.input_schema)
        for tool in all_tools().values()
    ]


def create_server(config: AdoConfig) -> Server:
    """Build the MCP server with list/call handlers bound to `config`."""
    server = Server(SERVER_NAME, version=SERVER_VERSION, instructions=INSTRUCTIONS)

    @server.list_tools()
    async def handle_list_tools() -> list[types.Tool]:
        return list_tool_definitions()

    # Registered directly rather than through @server.call_tool(), which turns
    # every exception into an isError result. An McpError raised here goes
    # back to the client as a JSON-RPC error with its code and data.
    async def handle_call_tool(req: types.CallToolRequest) -> types.ServerResult:
        name = req.params.name
        try:
            text = await anyio.to_thread.run_sync(
                functools.partial(call_tool, config, name, req.params.arguments)
            )
        except ToolCallError as e:
            raise e.to_mcp_error() from e
        return types.ServerResult(
            types.CallToolResult(content=[types.TextContent(type="text", text=text)])
        )

    server.request_handlers[types.CallToolRequest] = handle_call_tool

    return server


async def serve(config: AdoConfig) -> None:
    """Run the server on stdin/stdout until the client disconnects."""
    server = create_server(config)
    logger.info(
        "Starting %s %s for organization %s (project: %s)",
        SERVER_NAME, SERVER_VERSION, config.organization, config.project or "all",
    )
    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())


def run(config_path: str | None = None) -> None:
    """Load settings, configure logging and serve over stdio."""
    configure_logging(load_settings(config_path)["log_level"])
    config = load_config(config_path)
    anyio.run(serve, config)


if __name__ == "__main__":
    run()

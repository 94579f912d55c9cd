"""Tool-call boundary: validate arguments, run the handler, map failures to MCP errors."""

import json
import logging

from mcp.shared.exceptions import McpError
from mcp.types import INTERNAL_ERROR, INVALID_PARAMS, METHOD_NOT_FOUND, ErrorData
from pydantic import ValidationError

from core.ado import AdoApiError, AdoConfig
from ado_mcp import tools  # noqa: F401  (registers the tools)
from ado_mcp.registry import get_tool

logger = logging.getLogger(__name__)


class ToolCallError(Exception):
    """A tool call failed; carries the MCP error code to report."""
    code = INTERNAL_ERROR

    def __init__(self, message: str, data: dict | None = None):
        super().__init__(message)
        self.message = message
        self.data = data

    def to_mcp_error(self) -> McpError:
        return McpError(ErrorData(code=self.code, message=self.message, data=self.data))


class InvalidParamsError(ToolCallError):
    code = INVALID_PARAMS

    def __init__(self, message: str, fields: list[str]):
        super().__init__(message, data={"fields": fields})
        self.fields = fields


class UnknownToolError(ToolCallError):
    code = METHOD_NOT_FOUND


class ToolExecutionError(ToolCallError):
    code = INTERNAL_ERROR


def validate_arguments(name: str, arguments: dict | None):
    """Parse `arguments` into the tool's argument model.

    Raises UnknownToolError for an unregistered name and InvalidParamsError,
    listing each offending field, when validation fails.
    """
    tool = get_tool(name)
    if tool is None:
        raise UnknownToolError(f"Unknown tool: {name}")

    try:
        return tool, tool.args_model.model_validate(arguments or {})
    except ValidationError as e:
        fields = []
        problems = []
        for err in e.errors():
            loc = ".".join(str(p) for p in err["loc"])
            if loc and loc not in fields:
                fields.append(loc)
            problems.append(f"{loc}: {err['msg']}" if loc else err["msg"])
        raise InvalidParamsError(
            f"Invalid parameters for tool {name}: " + "; ".join(problems),
            fields,
        ) from e


def call_tool(config: AdoConfig, name: str, arguments: dict | None) -> str:
    """
    Run one tool call and return its result as indented JSON text.

    Args:
        config: ADO connection config
        name: Registered tool name
        arguments: Raw JSON argument object from the client

    Raises:
        ToolCallError: with the MCP error code for the failure
    """
    tool, args = validate_arguments(name, arguments)

    logger.info("Calling tool %s", name)
    try:
        result = tool.handler(config, args)
    except AdoApiError as e:
        logger.error("Tool %s failed: %s", name, e)
        data = {"status": e.status, "url": e.url} if e.status is not None else {"url": e.url}
        raise ToolExecutionError(f"Error executing tool {name}: {e}", data=data) from e
    except Exception as e:
        logger.exception("Tool %s raised unexpectedly", name)
        raise ToolExecutionError(f"Error executing tool {name}: {e}") from e

    return json.dumps(result, indent=2)

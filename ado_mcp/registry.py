"""Tool registry — decorator-based tool registration and lookup."""

import logging
from dataclasses import dataclass
from typing import Any, Callable

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from core.ado import AdoConfig

logger = logging.getLogger(__name__)


class ToolArgs(BaseModel):
    """Base for tool argument models. Wire names are camelCase."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class NoArgs(ToolArgs):
    pass


@dataclass(frozen=True)
class ToolDef:
    name: str
    description: str
    args_model: type[ToolArgs]
    handler: Callable[[AdoConfig, Any], Any]

    @property
    def input_schema(self) -> dict:
        schema = self.args_model.model_json_schema(by_alias=True)
        schema.pop("title", None)
        schema.pop("description", None)
        schema.setdefault("properties", {})
        return schema


_tools: dict[str, ToolDef] = {}


def register_tool(name: str, description: str = "", args_model: type[ToolArgs] = NoArgs):
    """Decorator to register a tool handler `(config, args) -> JSON-able result`."""
    def decorator(func):
        if name in _tools:
            raise ValueError(f"Tool already registered: {name}")
        _tools[name] = ToolDef(
            name=name,
            description=description or (func.__doc__ or "").strip(),
            args_model=args_model,
            handler=func,
        )
        logger.debug("Registered tool: %s", name)
        return func
    return decorator


def get_tool(name: str) -> ToolDef | None:
    return _tools.get(name)


def all_tools() -> dict[str, ToolDef]:
    return dict(_tools)

"""Azure DevOps tools: argument models and handlers.

Each handler maps one validated tool call onto one REST call in core.ado.
"""

from typing import Literal

from pydantic import Field, model_validator

from core import ado
from ado_mcp.registry import NoArgs, ToolArgs, register_tool


# ---------------------------------------------------------------------------
# Organization & pipelines
# ---------------------------------------------------------------------------

@register_tool("list_projects", "List all projects in the Azure DevOps organization")
def list_projects(config, args: NoArgs) -> dict:
    """List the organization's projects."""
    return ado.list_projects(config)


@register_tool("list_pipelines", "List all pipelines in the Azure DevOps project")
def list_pipelines(config, args: NoArgs) -> dict:
    """List pipelines in the configured project."""
    return ado.list_pipelines(config)


class ListBuildsArgs(ToolArgs):
    definitions: list[int] | None = Field(None, description="Pipeline definition IDs to filter by")
    branch_name: str | None = Field(None, description="Branch name to filter builds")
    top: int | None = Field(None, ge=1, le=200, description="Maximum number of builds to return")
    continuation_token: str | None = Field(None, description="Token for pagination")


@register_tool("list_builds", "List builds with optional filters", ListBuildsArgs)
def list_builds(config, args: ListBuildsArgs) -> dict:
    """List builds, filtered by definition, branch and page."""
    return ado.list_builds(
        config,
        definitions=args.definitions,
        branch_name=args.branch_name,
        top=args.top,
        continuation_token=args.continuation_token,
    )


# ---------------------------------------------------------------------------
# Work items
# ---------------------------------------------------------------------------

class WiqlQueryTeamArgs(ToolArgs):
    team: str = Field(min_length=1, description="Team name")
    wiql: str = Field(min_length=5, description="WIQL query string")


@register_tool("wiql_query_team", "Run WIQL query against a team", WiqlQueryTeamArgs)
def wiql_query_team(config, args: WiqlQueryTeamArgs) -> dict:
    """Run a WIQL query in a team's context; returns work item references."""
    return ado.wiql_team(config, args.team, args.wiql)


class WorkItemGetArgs(ToolArgs):
    id: int = Field(description="Work item ID")


@register_tool("work_item_get", "Get a single work item by ID", WorkItemGetArgs)
def work_item_get(config, args: WorkItemGetArgs) -> dict:
    """Fetch one work item with all its fields."""
    return ado.get_work_item(config, args.id)


class WorkItemsGetArgs(ToolArgs):
    ids: list[int] = Field(min_length=1, description="Work item IDs")
    field_names: list[str] | None = Field(
        None, alias="fields", description="Specific fields to retrieve",
    )


@register_tool("work_items_get", "Get multiple work items by IDs", WorkItemsGetArgs)
def work_items_get(config, args: WorkItemsGetArgs) -> dict:
    """Fetch several work items in one batch call."""
    return ado.get_work_items(config, args.ids, args.field_names)


class WorkItemCreateArgs(ToolArgs):
    work_item_type: str = Field(
        alias="type", min_length=1, description="Work item type (Bug, Task, User Story, etc.)",
    )
    title: str = Field(description="Work item title")
    area_path: str | None = Field(None, description="Area path")
    iteration_path: str | None = Field(None, description="Iteration path")
    description: str | None = Field(None, description="Work item description")


@register_tool("work_item_create", "Create a new work item", WorkItemCreateArgs)
def work_item_create(config, args: WorkItemCreateArgs) -> dict:
    """Create a work item from title, area, iteration and description."""
    patches = ado.build_create_patch(
        args.title,
        area_path=args.area_path,
        iteration_path=args.iteration_path,
        description=args.description,
    )
    return ado.create_work_item(config, args.work_item_type, patches)


class WorkItemUpdateArgs(ToolArgs):
    id: int = Field(description="Work item ID")
    state: str | None = Field(None, description="New state")
    iteration_path: str | None = Field(None, description="New iteration path")
    field_values: dict[str, str] | None = Field(
        None, alias="fields", description="Additional fields to update",
    )

    @model_validator(mode="after")
    def _require_change(self):
        if not (self.state or self.iteration_path or self.field_values):
            raise ValueError("nothing to update: give state, iterationPath or fields")
        return self


@register_tool("work_item_update", "Update an existing work item", WorkItemUpdateArgs)
def work_item_update(config, args: WorkItemUpdateArgs) -> dict:
    """Patch state, iteration path and arbitrary fields on a work item."""
    patches = ado.build_update_patch(
        state=args.state,
        iteration_path=args.iteration_path,
        fields=args.field_values,
    )
    return ado.update_work_item(config, args.id, patches)


class WorkItemCommentAddArgs(ToolArgs):
    id: int = Field(description="Work item ID")
    text: str = Field(min_length=1, description="Comment text")


@register_tool("work_item_comment_add", "Add a comment to a work item", WorkItemCommentAddArgs)
def work_item_comment_add(config, args: WorkItemCommentAddArgs) -> dict:
    """Post a discussion comment on a work item."""
    return ado.add_comment(config, args.id, args.text)


# ---------------------------------------------------------------------------
# Boards & iterations
# ---------------------------------------------------------------------------

class BoardsListColumnsArgs(ToolArgs):
    team: str | None = Field(None, description="Team name (optional)")


@register_tool("boards_list_columns", "List board columns for a team", BoardsListColumnsArgs)
def boards_list_columns(config, args: BoardsListColumnsArgs) -> dict:
    """List board columns for the project or a team."""
    return ado.list_board_columns(config, args.team)


class IterationsListArgs(ToolArgs):
    team: str = Field(min_length=1, description="Team name")
    timeframe: Literal["past", "current", "future"] | None = Field(
        None, description="Timeframe filter",
    )


@register_tool("iterations_list", "List team iterations/sprints", IterationsListArgs)
def iterations_list(config, args: IterationsListArgs) -> dict:
    """List a team's sprints, optionally past/current/future only."""
    return ado.list_team_iterations(config, args.team, args.timeframe)


class IterationWorkItemsArgs(ToolArgs):
    team: str = Field(min_length=1, description="Team name")
    iteration_id: str = Field(min_length=1, description="Iteration ID")


@register_tool("iteration_work_items", "Get work items in a specific iteration", IterationWorkItemsArgs)
def iteration_work_items(config, args: IterationWorkItemsArgs) -> dict:
    """List the work items planned into one sprint."""
    return ado.get_iteration_work_items(config, args.team, args.iteration_id)


class BoardMoveArgs(ToolArgs):
    id: int = Field(description="Work item ID")
    state_name: str | None = Field(None, description="New state name")
    iteration_path: str | None = Field(None, description="New iteration path")

    @model_validator(mode="after")
    def _require_target(self):
        if not (self.state_name or self.iteration_path):
            raise ValueError("nowhere to move: give stateName or iterationPath")
        return self


@register_tool("board_move", "Move a work item to a different state/sprint", BoardMoveArgs)
def board_move(config, args: BoardMoveArgs) -> dict:
    """Move a card to another state and/or sprint."""
    patches = ado.build_move_patch(args.state_name, args.iteration_path)
    return ado.update_work_item(config, args.id, patches)

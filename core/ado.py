"""Azure DevOps REST API client for projects, builds, work items, boards and iterations."""

import json
import logging
import time
import base64
import http.client
import urllib.parse
import urllib.request
import urllib.error
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


ADO_API_VERSION = "6.0"
PIPELINES_API_VERSION = "6.0-preview.1"
COMMENTS_API_VERSION = "6.0-preview.4"

JSON_PATCH = "application/json-patch+json"

MAX_GET_ATTEMPTS = 3
RETRY_BACKOFF = 0.25  # seconds, multiplied by the attempt number
REQUEST_TIMEOUT = 30

# encodeURIComponent leaves these unescaped
_URI_COMPONENT_SAFE = "!~*'()"


class AdoApiError(RuntimeError):
    """A request to Azure DevOps returned a non-2xx status or failed to connect."""

    def __init__(self, status: int | None, method: str, url: str, detail: str = ""):
        self.status = status
        self.method = method
        self.url = url
        self.detail = detail
        super().__init__(self._message())

    def _message(self) -> str:
        if self.status is None:
            return f"{self.method} {self.url} failed: {self.detail}"
        return f"{self.status} {self.method} {self.url}"


class AdoRetriesExceeded(AdoApiError):
    """A GET kept failing with 429/5xx until the attempts ran out."""

    def _message(self) -> str:
        return f"Retries exceeded: {self.method} {self.url}"


def encode_segment(value) -> str:
    """Percent-encode a single URL path segment."""
    return urllib.parse.quote(str(value), safe=_URI_COMPONENT_SAFE)


@dataclass
class AdoConfig:
    """ADO connection configuration. `project` is optional."""
    organization: str
    project: str | None
    pat: str = field(repr=False)

    @property
    def base_url(self) -> str:
        return f"https://{encode_segment(self.organization)}.visualstudio.com"

    @property
    def project_url(self) -> str:
        if self.project:
            return f"{self.base_url}/{encode_segment(self.project)}"
        return self.base_url

    @property
    def auth_header(self) -> str:
        token = base64.b64encode(f":{self.pat}".encode()).decode()
        return f"Basic {token}"

    def team_url(self, team: str) -> str:
        return f"{self.project_url}/{encode_segment(team)}"


# ---------------------------------------------------------------------------
# Organization & projects
# ---------------------------------------------------------------------------

def list_projects(config: AdoConfig) -> dict:
    """List all projects in the organization."""
    url = f"{config.base_url}/_apis/projects?api-version={ADO_API_VERSION}"
    return _api_request(config, url, method="GET")


# ---------------------------------------------------------------------------
# Pipelines & builds
# ---------------------------------------------------------------------------

def list_pipelines(config: AdoConfig) -> dict:
    """List pipelines in the configured project."""
    url = f"{config.project_url}/_apis/pipelines?api-version={PIPELINES_API_VERSION}"
    return _api_request(config, url, method="GET")


def list_builds(
    config: AdoConfig,
    definitions: list[int] | None = None,
    branch_name: str | None = None,
    top: int | None = None,
    continuation_token: str | None = None,
) -> dict:
    """
    List builds, newest first, with optional filters.

    Args:
        config: ADO connection config
        definitions: Pipeline definition IDs to restrict to
        branch_name: Source branch, e.g. "refs/heads/main"
        top: Maximum number of builds to return
        continuation_token: Token from a previous page

    Returns:
        Raw ADO list response ({"count": ..., "value": [...]})
    """
    params = {"api-version": ADO_API_VERSION}
    if top:
        params["$top"] = str(top)
    if branch_name:
        params["branchName"] = branch_name
    if definitions:
        params["definitions"] = ",".join(str(d) for d in definitions)
    if continuation_token:
        params["continuationToken"] = continuation_token

    url = f"{config.project_url}/_apis/build/builds?{urllib.parse.urlencode(params)}"
    return _api_request(config, url, method="GET")


# ---------------------------------------------------------------------------
# Work items
# ---------------------------------------------------------------------------

def wiql_team(config: AdoConfig, team: str, wiql: str) -> dict:
    """
    Run a WIQL query in the context of a team.

    Team context resolves macros such as @CurrentIteration. The response holds
    work item references only, not field data.
    """
    url = f"{config.team_url(team)}/_apis/wit/wiql?api-version={ADO_API_VERSION}"
    return _api_request(config, url, method="POST", body={"query": wiql})


def get_work_item(config: AdoConfig, work_item_id: int) -> dict:
    """Fetch a single work item by ID."""
    url = f"{config.project_url}/_apis/wit/workitems/{work_item_id}?api-version={ADO_API_VERSION}"
    return _api_request(config, url, method="GET")


def get_work_items(
    config: AdoConfig,
    ids: list[int],
    fields: list[str] | None = None,
) -> dict:
    """
    Fetch several work items in one call via the workitemsbatch endpoint.

    Args:
        config: ADO connection config
        ids: Work item IDs
        fields: Field reference names to return; all fields when omitted
    """
    url = f"{config.project_url}/_apis/wit/workitemsbatch?api-version={ADO_API_VERSION}"
    body: dict = {"ids": list(ids)}
    if fields is not None:
        body["fields"] = list(fields)
    return _api_request(config, url, method="POST", body=body)


def create_work_item(config: AdoConfig, work_item_type: str, patches: list[dict]) -> dict:
    """
    Create a work item of the given type from a JSON Patch document.

    Args:
        config: ADO connection config
        work_item_type: "Bug", "Task", "User Story", ...
        patches: JSON Patch operations, see build_create_patch()

    Returns:
        Created work item dict from ADO API
    """
    url = (
        f"{config.project_url}/_apis/wit/workitems/${encode_segment(work_item_type)}"
        f"?api-version={ADO_API_VERSION}"
    )
    return _api_request(config, url, method="PATCH", body=patches, content_type=JSON_PATCH)


def update_work_item(config: AdoConfig, work_item_id: int, patches: list[dict]) -> dict:
    """Apply a JSON Patch document to an existing work item."""
    url = f"{config.project_url}/_apis/wit/workitems/{work_item_id}?api-version={ADO_API_VERSION}"
    return _api_request(config, url, method="PATCH", body=patches, content_type=JSON_PATCH)


def add_comment(config: AdoConfig, work_item_id: int, text: str) -> dict:
    """Add a discussion comment to a work item."""
    url = (
        f"{config.project_url}/_apis/wit/workItems/{work_item_id}/comments"
        f"?api-version={COMMENTS_API_VERSION}"
    )
    return _api_request(config, url, method="POST", body={"text": text})


# ---------------------------------------------------------------------------
# Boards & iterations
# ---------------------------------------------------------------------------

def list_board_columns(config: AdoConfig, team: str | None = None) -> dict:
    """List board columns, scoped to a team when one is given."""
    scope = config.team_url(team) if team else config.project_url
    url = f"{scope}/_apis/work/boardcolumns?api-version={ADO_API_VERSION}"
    return _api_request(config, url, method="GET")


def list_team_iterations(config: AdoConfig, team: str, timeframe: str | None = None) -> dict:
    """
    List a team's iterations (sprints).

    Args:
        config: ADO connection config
        team: Team name
        timeframe: "past", "current" or "future"; all iterations when omitted
    """
    params = {"api-version": ADO_API_VERSION}
    if timeframe:
        params["$timeframe"] = timeframe
    url = (
        f"{config.team_url(team)}/_apis/work/teamsettings/iterations"
        f"?{urllib.parse.urlencode(params)}"
    )
    return _api_request(config, url, method="GET")


def get_iteration_work_items(config: AdoConfig, team: str, iteration_id: str) -> dict:
    """Get the work item links assigned to one of a team's iterations."""
    url = (
        f"{config.team_url(team)}/_apis/work/teamsettings/iterations/"
        f"{encode_segment(iteration_id)}/workitems?api-version={ADO_API_VERSION}"
    )
    return _api_request(config, url, method="GET")


# ---------------------------------------------------------------------------
# JSON Patch documents
# ---------------------------------------------------------------------------

def build_create_patch(
    title: str,
    area_path: str | None = None,
    iteration_path: str | None = None,
    description: str | None = None,
) -> list[dict]:
    """Build the patch document for a new work item. Empty values are skipped."""
    patches = [_field_op("System.Title", title)]
    if area_path:
        patches.append(_field_op("System.AreaPath", area_path))
    if iteration_path:
        patches.append(_field_op("System.IterationPath", iteration_path))
    if description:
        patches.append(_field_op("System.Description", description))
    return patches


def build_update_patch(
    state: str | None = None,
    iteration_path: str | None = None,
    fields: dict | None = None,
) -> list[dict]:
    """
    Build the patch document for a work item update.

    State and iteration path come first, then `fields` in insertion order.
    Field keys may be bare reference names ("System.Tags") or full paths
    ("/fields/System.Tags").
    """
    patches = []
    if state:
        patches.append(_field_op("System.State", state))
    if iteration_path:
        patches.append(_field_op("System.IterationPath", iteration_path))
    for field_path, value in (fields or {}).items():
        patches.append(_field_op(field_path, value))
    return patches


def build_move_patch(state_name: str | None = None, iteration_path: str | None = None) -> list[dict]:
    """Build the patch document that moves a card to another column and/or sprint."""
    return build_update_patch(state=state_name, iteration_path=iteration_path)


# --- Internal helpers ---

def _field_op(field_path: str, value) -> dict:
    if not field_path.startswith("/fields/"):
        field_path = f"/fields/{field_path}"
    return {"op": "add", "path": field_path, "value": value}


def _is_transient(status: int) -> bool:
    return status == 429 or status >= 500


def _decode_body(raw: bytes, method: str, url: str) -> dict:
    """Parse a 2xx response body; an empty body is {}."""
    if not raw:
        return {}
    try:
        return json.loads(raw.decode("utf-8"))
    except ValueError as e:
        raise AdoApiError(None, method, url, detail=f"invalid JSON in response: {e}") from e


def _api_request(
    config: AdoConfig,
    url: str,
    method: str = "GET",
    body: dict | list | None = None,
    content_type: str = "application/json",
) -> dict:
    """Make an authenticated API request to ADO.

    Only GET is retried: on 429 or 5xx it sleeps RETRY_BACKOFF * attempt and
    tries again, up to MAX_GET_ATTEMPTS in total.
    """
    headers = {"Authorization": config.auth_header}

    data = None
    if body is not None:
        data = json.dumps(body).encode("utf-8")
        headers["Content-Type"] = content_type

    req = urllib.request.Request(url, data=data, headers=headers, method=method)

    attempts = MAX_GET_ATTEMPTS if method == "GET" else 1
    status = None
    for attempt in range(1, attempts + 1):
        logger.debug("%s %s (attempt %d)", method, url, attempt)
        try:
            with urllib.request.urlopen(req, timeout=REQUEST_TIMEOUT) as resp:
                raw = resp.read()
            return _decode_body(raw, method, url)
        except urllib.error.HTTPError as e:
            status = e.code
            body_text = ""
            try:
                body_text = e.read().decode("utf-8", errors="replace")
            except OSError:
                pass

            if method == "GET" and _is_transient(status):
                delay = RETRY_BACKOFF * attempt
                logger.warning(
                    "ADO returned %d for GET %s, retrying in %.2fs (attempt %d/%d)",
                    status, url, delay, attempt, attempts,
                )
                time.sleep(delay)
                continue
            raise AdoApiError(status, method, url, detail=body_text[:500]) from e
        except urllib.error.URLError as e:
            raise AdoApiError(None, method, url, detail=str(e.reason)) from e
        except (OSError, http.client.HTTPException) as e:
            # raised by getresponse() or read(), which urllib does not wrap
            raise AdoApiError(None, method, url, detail=str(e) or type(e).__name__) from e

    raise AdoRetriesExceeded(status, method, url)

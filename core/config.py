"""Connection settings for the Azure DevOps MCP server.

Settings come from an optional YAML file (an `ado:` section, same shape as a
project.yaml) overlaid by environment variables.
"""

import logging
import os
import sys
from pathlib import Path

import yaml

from core.ado import AdoConfig


CONFIG_PATH_ENV = "ADO_MCP_CONFIG"

# setting -> environment variables, first non-empty wins
ENV_VARS = {
    "organization": ("ADO_ORG", "ADO_ORGANIZATION"),
    "project": ("ADO_PROJECT",),
    "pat": ("ADO_PAT",),
    "log_level": ("ADO_LOG_LEVEL",),
}

DEFAULT_LOG_LEVEL = "INFO"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class ConfigError(ValueError):
    """Required connection settings are missing or the config file is unreadable."""


def load_settings(path: str | Path | None = None, environ: dict | None = None) -> dict:
    """
    Merge file and environment settings into a flat dict.

    Args:
        path: YAML file to read; falls back to $ADO_MCP_CONFIG, then no file
        environ: Environment mapping (defaults to os.environ)

    Returns:
        {"organization", "project", "pat", "log_level"}; unset values are ""
    """
    environ = os.environ if environ is None else environ
    path = path or environ.get(CONFIG_PATH_ENV)

    settings = {key: "" for key in ENV_VARS}
    if path:
        section = _load_yaml(Path(path)).get("ado") or {}
        if not isinstance(section, dict):
            raise ConfigError(f"'ado' in {path} must be a mapping")
        for key in settings:
            value = section.get(key)
            if value is not None:
                settings[key] = str(value)

    for key, names in ENV_VARS.items():
        for name in names:
            value = environ.get(name, "")
            if value:
                settings[key] = value
                break

    settings["log_level"] = (settings["log_level"] or DEFAULT_LOG_LEVEL).upper()
    return settings


def load_config(path: str | Path | None = None, environ: dict | None = None) -> AdoConfig:
    """Build AdoConfig from settings. Raises ConfigError if org or PAT is missing."""
    settings = load_settings(path, environ)

    missing = [ENV_VARS[key][0] for key in ("organization", "pat") if not settings[key]]
    if missing:
        raise ConfigError(
            f"Missing {' and '.join(missing)}. Set them in the environment "
            f"or under 'ado:' in a config file."
        )
    return AdoConfig(
        organization=settings["organization"],
        project=settings["project"] or None,
        pat=settings["pat"],
    )


def configure_logging(level: str = DEFAULT_LOG_LEVEL) -> None:
    """Send log records to stderr; stdout carries the MCP stream."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        stream=sys.stderr,
        force=True,
    )


# --- Internal helpers ---

def _load_yaml(path: Path) -> dict:
    """Load a YAML file."""
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    return data

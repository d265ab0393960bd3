"""Core shared helpers for study tool subcommands."""

from __future__ import annotations

from .config import (
    TomlConfigError,
    env_flag,
    env_value,
    load_toml,
    merge_defaults,
    pick_first,
    write_toml_template,
)
from .config_templates import (
    ConfigTemplate,
    ConfigTemplateError,
    get_template,
    iter_templates,
)
from .files import (
    iter_files,
    read_json_file,
    write_json_atomic,
)
from .logging import JsonLogFormatter, configure_logger
from .workspace import (
    WORKSPACE_ENV,
    WorkspaceError,
    WorkspaceLayout,
    ensure_workspace,
)

__all__ = [
    "TomlConfigError",
    "env_flag",
    "env_value",
    "load_toml",
    "merge_defaults",
    "pick_first",
    "write_toml_template",
    "ConfigTemplate",
    "ConfigTemplateError",
    "get_template",
    "iter_templates",
    "iter_files",
    "read_json_file",
    "write_json_atomic",
    "configure_logger",
    "JsonLogFormatter",
    "ensure_workspace",
    "WorkspaceLayout",
    "WorkspaceError",
    "WORKSPACE_ENV",
]

"""
Configuration loader — project.yml to a validated dependency graph.

The dev loop reads its module graph from a single project.yml. The file
is located by walking up from the working directory (or given with
``--config``), parsed with PyYAML, validated by the pydantic models and
turned into a ``DependencyGraph``. Every failure along the way surfaces
as ``ConfigError`` so callers can report it instead of crashing.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from src.core.engine.graph import DependencyGraph, GraphError
from src.core.models.project import Project

logger = logging.getLogger(__name__)

PROJECT_CONFIG_FILE = "project.yml"
_MAX_PARENTS = 20
_SIBLING_KEYS = ("version", "modules")


class ConfigError(Exception):
    """Raised when project configuration is invalid or missing."""


def find_project_file(start_dir: Path | None = None) -> Path | None:
    """Nearest project.yml at or above ``start_dir`` (default: cwd), or None."""
    current = (start_dir or Path.cwd()).resolve()
    for directory in [current, *current.parents][:_MAX_PARENTS]:
        candidate = directory / PROJECT_CONFIG_FILE
        if candidate.is_file():
            return candidate
    return None


def _read_mapping(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")
    return data


def _project_section(data: dict[str, Any], path: Path) -> dict[str, Any]:
    """The project fields, flat or nested under ``project:``.

    In the nested layout, ``version`` and ``modules`` may sit next to
    ``project:``; values inside the section take precedence.
    """
    if "project" not in data:
        return data

    section = data["project"]
    if not isinstance(section, dict):
        raise ConfigError(f"Expected a mapping under 'project' in {path}")

    merged = dict(section)
    for key in _SIBLING_KEYS:
        if key in data:
            merged.setdefault(key, data[key])
    return merged


def load_project(path: Path | None = None) -> Project:
    """Load and validate project.yml.

    Args:
        path: Explicit path to project.yml. If None, searches upward.

    Raises:
        ConfigError: If the file is missing, unreadable or invalid.
    """
    path = path or find_project_file()
    if path is None:
        raise ConfigError(f"No {PROJECT_CONFIG_FILE} found. Create one or specify --config.")
    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    logger.debug("Loading project config from %s", path)
    section = _project_section(_read_mapping(path), path)

    try:
        project = Project.model_validate(section)
    except Exception as e:
        raise ConfigError(f"Invalid project configuration: {e}") from e

    logger.info("Loaded project '%s' with %d modules", project.name, len(project.modules))
    return project


def build_graph(project: Project) -> DependencyGraph:
    """Dependency graph of a loaded project.

    Raises:
        ConfigError: If modules reference unknown modules or names clash.
    """
    try:
        return DependencyGraph.from_project(project)
    except GraphError as e:
        raise ConfigError(f"Invalid module graph: {e}") from e


def load_graph(path: Path | None = None) -> tuple[Project, DependencyGraph]:
    """Load project.yml and build its dependency graph in one step."""
    project = load_project(path)
    return project, build_graph(project)

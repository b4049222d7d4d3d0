"""
Project file persistence.

A project file is JSON wrapping the graph in a small envelope::

    {"ir_version": "1.0.0", "format": "immortal", "project": {...}}

Files written by an engine with a different major IR version are rejected.
"""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import BaseModel, ValidationError

from immortal.core.errors import (
    DeserializationError,
    ProjectFileNotFoundError,
    SerializationError,
)
from immortal.core.ir import IR_VERSION, ProjectGraph

logger = logging.getLogger(__name__)

PROJECT_FORMAT = "immortal"
PROJECT_EXTENSION = ".imm.json"


def _major(version: str) -> str:
    return version.split(".", 1)[0]


class ProjectFile(BaseModel):
    """Envelope around a serialized ProjectGraph."""

    ir_version: str = IR_VERSION
    format: str = PROJECT_FORMAT
    project: ProjectGraph

    @classmethod
    def wrap(cls, graph: ProjectGraph) -> ProjectFile:
        return cls(project=graph)

    def is_compatible(self) -> bool:
        """Same format and same major IR version as this engine."""
        return self.format == PROJECT_FORMAT and _major(self.ir_version) == _major(IR_VERSION)


def to_json(graph: ProjectGraph, compact: bool = False) -> str:
    """
    Serialize a graph to project-file JSON.

    Raises:
        SerializationError: If the graph holds values JSON cannot represent
    """
    try:
        return ProjectFile.wrap(graph).model_dump_json(indent=None if compact else 2)
    except (ValueError, TypeError) as e:
        raise SerializationError(f"Failed to serialize project '{graph.meta.name}': {e}") from e


def from_json(text: str) -> ProjectGraph:
    """
    Parse project-file JSON back into a graph.

    Raises:
        DeserializationError: On malformed JSON, missing keys, or an
            incompatible IR version
    """
    try:
        project_file = ProjectFile.model_validate_json(text)
    except ValidationError as e:
        raise DeserializationError(f"Invalid project file: {e}") from e

    if not project_file.is_compatible():
        raise DeserializationError(
            f"Incompatible project file: format '{project_file.format}', "
            f"IR version {project_file.ir_version} (engine supports {IR_VERSION})"
        )

    graph = project_file.project
    graph.dirty = False
    return graph


def save_project(graph: ProjectGraph, path: Path | str, compact: bool = False) -> Path:
    """
    Write a graph to ``path`` and clear its dirty flag.

    Parent directories are created as needed.
    """
    path = Path(path)
    text = to_json(graph, compact=compact)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text + "\n", encoding="utf-8")
    except OSError as e:
        raise SerializationError(f"Failed to write {path}: {e}") from e
    graph.dirty = False
    logger.debug(f"Saved project '{graph.meta.name}' to {path}")
    return path


def load_project(path: Path | str) -> ProjectGraph:
    """
    Read a graph from a project file.

    Raises:
        ProjectFileNotFoundError: If ``path`` does not exist
        DeserializationError: If the content is not a valid project file
    """
    path = Path(path)
    if not path.exists():
        raise ProjectFileNotFoundError(str(path))
    graph = from_json(path.read_text(encoding="utf-8"))
    logger.debug(f"Loaded project '{graph.meta.name}' from {path}")
    return graph

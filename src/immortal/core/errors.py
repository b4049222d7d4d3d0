"""
Error types for graph mutation, code generation and persistence.

Validation findings are not exceptions; they live in
:mod:`immortal.core.validator` and are returned as lists.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from immortal.core.validator import ValidationIssue


@dataclass
class ErrorContext:
    """
    Graph location an error refers to.

    Attributes:
        node_id: Node the error concerns, if any
        edge_id: Edge the error concerns, if any
        port_id: Port the error concerns, if any
        path: Output or project file path, if any
    """

    node_id: str | None = None
    edge_id: str | None = None
    port_id: str | None = None
    path: str | None = None

    def format(self) -> str:
        """
        Format the context as a human-readable prefix.

        Returns:
            String like: "node 1f2e.. port 'submit'"
        """
        parts: list[str] = []
        if self.node_id:
            parts.append(f"node {self.node_id}")
        if self.edge_id:
            parts.append(f"edge {self.edge_id}")
        if self.port_id:
            parts.append(f"port '{self.port_id}'")
        if self.path:
            parts.append(f"file {self.path}")
        return " ".join(parts)


class EngineError(Exception):
    """Base exception for all engine errors."""

    def __init__(self, message: str, context: ErrorContext | None = None):
        self.message = message
        self.context = context
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format error message with context if available."""
        if self.context:
            location = self.context.format()
            if location:
                return f"{location}: {self.message}"
        return self.message


# =============================================================================
# Structural / graph errors
# =============================================================================


class NodeNotFoundError(EngineError):
    """Raised when an operation names a node id that is not in the graph."""

    def __init__(self, node_id: str):
        self.node_id = node_id
        super().__init__(f"Node not found: {node_id}", ErrorContext(node_id=node_id))


class EdgeNotFoundError(EngineError):
    """Raised when an operation names an edge id that is not in the graph."""

    def __init__(self, edge_id: str):
        self.edge_id = edge_id
        super().__init__(f"Edge not found: {edge_id}", ErrorContext(edge_id=edge_id))


class PortNotFoundError(EngineError):
    """
    Raised when an edge names a port its node does not have.

    Examples:
    - DataFlow edge from a port that is not an output of the source node
    - Trigger edge into a port that is not an input of the target node
    """

    def __init__(self, node_id: str, port_id: str):
        self.node_id = node_id
        self.port_id = port_id
        super().__init__(
            f"Port '{port_id}' not found on node {node_id}",
            ErrorContext(node_id=node_id, port_id=port_id),
        )


class GraphError(EngineError):
    """
    Raised for malformed graph mutations without a more specific type.

    Examples:
    - Adding a node whose id is already present
    - Adding an edge whose id is already present
    """

    pass


class GroupNotFoundError(GraphError):
    """Raised when an operation names a group id that is not in the graph."""

    def __init__(self, group_id: str):
        self.group_id = group_id
        super().__init__(f"Group not found: {group_id}")


class InvalidComponentConfigError(EngineError):
    """
    Raised when a node's shape does not fit the operation applied to it.

    Examples:
    - Generating a migration for a node that is not an entity
    - Adding a second field with the same name to a node
    """

    pass


class ComponentNotFoundError(EngineError):
    """Raised when the component catalog has no definition for an id."""

    def __init__(self, component_id: str):
        self.component_id = component_id
        super().__init__(f"Component not found: {component_id}")


# =============================================================================
# Generation errors
# =============================================================================


class ValidationFailedError(EngineError):
    """
    Raised when pre-generation validation reports Error findings.

    The message joins every error message with "; ".
    """

    def __init__(self, issues: list[ValidationIssue]):
        self.issues = issues
        super().__init__("; ".join(str(issue) for issue in issues))


class CodeGenerationError(EngineError):
    """
    Raised when a generator fails to produce output.

    Examples:
    - Unsupported framework/backend combination
    - Template rendering errors
    """

    pass


class TemplateRenderError(CodeGenerationError):
    """Raised when a Jinja2 template fails to render."""

    def __init__(self, template: str, detail: Any):
        self.template = template
        super().__init__(f"Failed to render template '{template}': {detail}")


class GenerationIOError(EngineError):
    """Raised when a generated file cannot be written to disk."""

    def __init__(self, path: str, detail: Any):
        self.path = path
        super().__init__(f"Failed to write file: {detail}", ErrorContext(path=path))


# =============================================================================
# Persistence / configuration errors
# =============================================================================


class SerializationError(EngineError):
    """Raised when a project graph cannot be serialized."""

    pass


class DeserializationError(EngineError):
    """
    Raised when a project file cannot be turned back into a graph.

    Examples:
    - Malformed JSON
    - Missing required keys
    - Incompatible IR major version
    """

    pass


class ProjectFileNotFoundError(EngineError):
    """Raised when a project file does not exist."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Project file not found: {path}", ErrorContext(path=path))


class ConfigError(EngineError):
    """Raised when immortal.toml contains invalid values."""

    pass

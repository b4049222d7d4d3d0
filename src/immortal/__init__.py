"""
immortal - engine behind a node-and-wire application builder.

Maintains a typed project graph, validates it against structural and
semantic rules, and compiles it into a multi-file Rust project.
"""

from __future__ import annotations

from ._version import get_version

# Re-export commonly used types for convenience
from .core import ir
from .core.errors import (
    CodeGenerationError,
    EngineError,
    GraphError,
    NodeNotFoundError,
    PortNotFoundError,
    ValidationFailedError,
)

__version__ = get_version()

__all__ = [
    "__version__",
    "ir",
    "EngineError",
    "GraphError",
    "NodeNotFoundError",
    "PortNotFoundError",
    "ValidationFailedError",
    "CodeGenerationError",
]

"""
Component catalog: definitions the palette offers and nodes are created from.
"""

from .catalog import builtin_components
from .definition import ComponentDefinition
from .registry import ComponentRegistry

__all__ = [
    "ComponentDefinition",
    "ComponentRegistry",
    "builtin_components",
]

"""
Component registry: the catalog of component definitions, by id.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator

from immortal.core.errors import ComponentNotFoundError
from immortal.core.ir import ComponentCategory, Node, Position

from .definition import ComponentDefinition

logger = logging.getLogger(__name__)


class ComponentRegistry:
    """
    Definitions keyed by component id, indexed by category.

    Registration order is preserved; listing methods return definitions in
    the order they were registered.
    """

    def __init__(self) -> None:
        self._definitions: dict[str, ComponentDefinition] = {}

    @classmethod
    def with_builtins(cls) -> ComponentRegistry:
        from .catalog import builtin_components

        registry = cls()
        for definition in builtin_components():
            registry.register(definition)
        return registry

    def __len__(self) -> int:
        return len(self._definitions)

    def __contains__(self, component_id: object) -> bool:
        return component_id in self._definitions

    def __iter__(self) -> Iterator[ComponentDefinition]:
        return iter(self._definitions.values())

    def register(self, definition: ComponentDefinition) -> None:
        """Add a definition, replacing any with the same id."""
        if definition.id in self._definitions:
            logger.debug(f"Replacing component definition '{definition.id}'")
        self._definitions[definition.id] = definition

    def unregister(self, component_id: str) -> ComponentDefinition | None:
        return self._definitions.pop(component_id, None)

    def get(self, component_id: str) -> ComponentDefinition | None:
        return self._definitions.get(component_id)

    def require(self, component_id: str) -> ComponentDefinition:
        """
        Get a definition by id.

        Raises:
            ComponentNotFoundError: If no definition has that id
        """
        definition = self._definitions.get(component_id)
        if definition is None:
            raise ComponentNotFoundError(component_id)
        return definition

    def contains(self, component_id: str) -> bool:
        return component_id in self._definitions

    def all(self) -> list[ComponentDefinition]:
        return list(self._definitions.values())

    def ids(self) -> list[str]:
        return list(self._definitions)

    def by_category(self, category: ComponentCategory) -> list[ComponentDefinition]:
        return [d for d in self._definitions.values() if d.category == category]

    def categories(self) -> list[ComponentCategory]:
        """Categories with at least one definition, in first-registered order."""
        seen: list[ComponentCategory] = []
        for definition in self._definitions.values():
            if definition.category not in seen:
                seen.append(definition.category)
        return seen

    def search(self, query: str) -> list[ComponentDefinition]:
        """Definitions whose id, name, description or tags contain ``query``."""
        return [d for d in self._definitions.values() if d.matches(query)]

    def instantiate(self, component_id: str, name: str | None = None) -> Node:
        """
        Create a node from a registered definition.

        Raises:
            ComponentNotFoundError: If no definition has that id
        """
        return self.require(component_id).instantiate(name)

    def instantiate_at(self, component_id: str, x: float, y: float, name: str | None = None) -> Node:
        node = self.instantiate(component_id, name)
        node.position = Position(x=x, y=y)
        return node

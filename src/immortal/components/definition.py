"""
Component definitions: the palette entries nodes are created from.

A definition describes a component type (its default fields, ports and
config) and knows how to instantiate a Node of that type. Core types the
engine generates code for delegate to the matching ``Node.new_*`` factory,
so catalog-created nodes carry the same fields and ports the generators
expect.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from immortal.core.ir import ComponentCategory, ConfigValue, Field, Node, Port


@dataclass
class ComponentDefinition:
    """
    Definition of one component type.

    Attributes:
        id: Component type id, e.g. "data.entity"
        name: Display name
        category: Palette category
        description: One-line description for the palette
        icon: Icon name
        fields: Default fields copied onto new nodes
        inputs: Default input ports
        outputs: Default output ports
        config: Default config values
        tags: Search keywords
        factory: Builds the node instead of the generic copy when set
    """

    id: str
    name: str
    category: ComponentCategory
    description: str = ""
    icon: str | None = None
    fields: list[Field] = field(default_factory=list)
    inputs: list[Port] = field(default_factory=list)
    outputs: list[Port] = field(default_factory=list)
    config: dict[str, ConfigValue] = field(default_factory=dict)
    tags: list[str] = field(default_factory=list)
    factory: Callable[[str], Node] | None = None

    # =========================================================================
    # Builders
    # =========================================================================

    def with_field(self, f: Field) -> ComponentDefinition:
        self.fields.append(f)
        return self

    def with_input(self, port: Port) -> ComponentDefinition:
        self.inputs.append(port)
        return self

    def with_output(self, port: Port) -> ComponentDefinition:
        self.outputs.append(port)
        return self

    def with_config(self, key: str, value: Any) -> ComponentDefinition:
        self.config[key] = ConfigValue.from_native(value)
        return self

    def with_tags(self, *tags: str) -> ComponentDefinition:
        self.tags.extend(t for t in tags if t not in self.tags)
        return self

    # =========================================================================
    # Queries
    # =========================================================================

    def has_tag(self, tag: str) -> bool:
        return tag.lower() in (t.lower() for t in self.tags)

    def matches(self, query: str) -> bool:
        """Case-insensitive match against id, name, description and tags."""
        q = query.lower()
        return (
            q in self.id.lower()
            or q in self.name.lower()
            or q in self.description.lower()
            or any(q in t.lower() for t in self.tags)
        )

    # =========================================================================
    # Instantiation
    # =========================================================================

    def instantiate(self, name: str | None = None) -> Node:
        """Create a node of this type; ``name`` defaults to the display name."""
        node_name = name or self.name
        if self.factory is not None:
            node = self.factory(node_name)
        else:
            node = Node(
                component_type=self.id,
                name=node_name,
                category=self.category,
                icon=self.icon,
            )
            for f in self.fields:
                node.fields.append(f.model_copy(deep=True, update={"id": str(uuid.uuid4())}))
            for port in self.inputs:
                node.ports.add_input(port.model_copy(deep=True))
            for port in self.outputs:
                node.ports.add_output(port.model_copy(deep=True))
            node.config = {k: v.model_copy(deep=True) for k, v in self.config.items()}

        if node.description is None and self.description:
            node.description = self.description
        for tag in self.tags:
            node.with_tag(tag)
        return node

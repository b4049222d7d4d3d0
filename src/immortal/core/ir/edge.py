"""
Edge definitions for the immortal IR.

An edge connects an output port of one node to an input port of another.
Relationship and Dependency edges join whole nodes instead; their port ids
are conventional placeholders and are never resolved.
"""

from __future__ import annotations

import uuid
from typing import Any

from pydantic import BaseModel, Field

from .types import ConnectionKind, Position, RelationType

# Placeholder ports used by node-to-node edges
RELATIONSHIP_PORT = "entity"
DEPENDENCY_OUT_PORT = "out"
DEPENDENCY_IN_PORT = "in"


class EdgeStyle(BaseModel):
    """Editor drawing hints."""

    color: str | None = None
    width: float = 2.0
    dashed: bool = False
    animated: bool = False


class Edge(BaseModel):
    """A typed connection between two nodes."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), frozen=True)
    from_node: str
    from_port: str
    to_node: str
    to_port: str
    connection_type: ConnectionKind = ConnectionKind.DATA_FLOW
    relation_type: RelationType | None = None  # for relationship edges
    data_mapping: dict[str, str] = Field(default_factory=dict)
    label: str | None = None
    enabled: bool = True
    style: EdgeStyle = Field(default_factory=EdgeStyle)
    description: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    waypoints: list[Position] = Field(default_factory=list)
    z_index: int = 0

    @classmethod
    def data_flow(cls, from_node: str, from_port: str, to_node: str, to_port: str) -> Edge:
        return cls(
            from_node=from_node,
            from_port=from_port,
            to_node=to_node,
            to_port=to_port,
            connection_type=ConnectionKind.DATA_FLOW,
        )

    @classmethod
    def trigger(cls, from_node: str, from_port: str, to_node: str, to_port: str) -> Edge:
        return cls(
            from_node=from_node,
            from_port=from_port,
            to_node=to_node,
            to_port=to_port,
            connection_type=ConnectionKind.TRIGGER,
            style=EdgeStyle(dashed=True),
        )

    @classmethod
    def navigation(cls, from_node: str, from_port: str, to_node: str, to_port: str) -> Edge:
        return cls(
            from_node=from_node,
            from_port=from_port,
            to_node=to_node,
            to_port=to_port,
            connection_type=ConnectionKind.NAVIGATION,
        )

    @classmethod
    def relationship(cls, from_node: str, to_node: str, relation_type: RelationType) -> Edge:
        return cls(
            from_node=from_node,
            from_port=RELATIONSHIP_PORT,
            to_node=to_node,
            to_port=RELATIONSHIP_PORT,
            connection_type=ConnectionKind.RELATIONSHIP,
            relation_type=relation_type,
            label=relation_type.arrow_symbol,
        )

    @classmethod
    def dependency(cls, from_node: str, to_node: str) -> Edge:
        return cls(
            from_node=from_node,
            from_port=DEPENDENCY_OUT_PORT,
            to_node=to_node,
            to_port=DEPENDENCY_IN_PORT,
            connection_type=ConnectionKind.DEPENDENCY,
            style=EdgeStyle(dashed=True),
        )

    def with_label(self, label: str) -> Edge:
        self.label = label
        return self

    def with_mapping(self, source_key: str, target_key: str) -> Edge:
        self.data_mapping[source_key] = target_key
        return self

    def connects_to(self, node_id: str) -> bool:
        return self.from_node == node_id or self.to_node == node_id

    def is_between(self, a: str, b: str) -> bool:
        """Either direction."""
        return self.is_from_to(a, b) or self.is_from_to(b, a)

    def is_from_to(self, from_node: str, to_node: str) -> bool:
        return self.from_node == from_node and self.to_node == to_node

    @property
    def is_self_reference(self) -> bool:
        return self.from_node == self.to_node

    @property
    def is_data_flow(self) -> bool:
        return self.connection_type == ConnectionKind.DATA_FLOW

    @property
    def is_relationship(self) -> bool:
        return self.connection_type == ConnectionKind.RELATIONSHIP

    def relationship_type(self) -> RelationType | None:
        return self.relation_type if self.is_relationship else None

    def other_end(self, node_id: str) -> str:
        return self.to_node if self.from_node == node_id else self.from_node

    def reverse(self) -> Edge:
        """New edge with endpoints swapped; relationship cardinality flips too."""
        relation_type = self.relation_type
        if relation_type == RelationType.ONE_TO_MANY:
            relation_type = RelationType.MANY_TO_ONE
        elif relation_type == RelationType.MANY_TO_ONE:
            relation_type = RelationType.ONE_TO_MANY
        data = self.model_dump(exclude={"id"})
        data.update(
            from_node=self.to_node,
            from_port=self.to_port,
            to_node=self.from_node,
            to_port=self.from_port,
            relation_type=relation_type,
        )
        return Edge.model_validate(data)

    def duplicate(self, from_node: str | None = None, to_node: str | None = None) -> Edge:
        """Copy under a fresh id, optionally re-pointing the endpoints."""
        data = self.model_dump(exclude={"id"})
        if from_node is not None:
            data["from_node"] = from_node
        if to_node is not None:
            data["to_node"] = to_node
        return Edge.model_validate(data)

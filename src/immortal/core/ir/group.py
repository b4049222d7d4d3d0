"""
Group definitions for the immortal IR.

Groups are organisational containers holding node ids. Nesting is
expressed by ``parent_id``; the engine does not resolve parent cycles.
"""

from __future__ import annotations

import uuid
from typing import Any

from pydantic import BaseModel, Field

from .types import Position, Size


class Group(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), frozen=True)
    name: str
    description: str | None = None
    position: Position = Field(default_factory=Position)
    size: Size = Field(default_factory=lambda: Size(width=300.0, height=200.0))
    node_ids: list[str] = Field(default_factory=list)
    parent_id: str | None = None
    collapsed: bool = False
    locked: bool = False
    visible: bool = True
    color: str | None = None
    tags: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)
    z_index: int = -1  # drawn behind nodes
    padding: float = 20.0

    def add_node(self, node_id: str) -> None:
        if node_id not in self.node_ids:
            self.node_ids.append(node_id)

    def remove_node(self, node_id: str) -> bool:
        """Returns True if the node was a member."""
        if node_id in self.node_ids:
            self.node_ids.remove(node_id)
            return True
        return False

    def contains_node(self, node_id: str) -> bool:
        return node_id in self.node_ids

    def node_count(self) -> int:
        return len(self.node_ids)

    def with_parent(self, parent_id: str) -> Group:
        self.parent_id = parent_id
        return self

    def is_child_of(self, parent_id: str) -> bool:
        return self.parent_id == parent_id

    @property
    def is_root(self) -> bool:
        return self.parent_id is None

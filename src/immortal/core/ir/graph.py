"""
The project graph: owning store for nodes, edges and groups.

Nodes, edges and groups reference each other only by id through this
store. Every mutation keeps three invariants:

- every edge's endpoint nodes exist
- every group member id exists and the node points back at the group
- removing a node removes the edges touching it and its group membership

Mutations are not thread-safe; a graph instance must be confined to one
logical operation at a time.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field

from immortal.core.errors import (
    GraphError,
    GroupNotFoundError,
    NodeNotFoundError,
    PortNotFoundError,
)

from .edge import Edge
from .group import Group
from .node import ENTITY_TYPE, Node
from .project import ProjectMeta
from .types import ComponentCategory, ConnectionKind, RelationType

logger = logging.getLogger(__name__)


class ProjectGraph(BaseModel):
    """All nodes, edges and groups of one project, keyed by id."""

    meta: ProjectMeta
    nodes: dict[str, Node] = Field(default_factory=dict)
    edges: dict[str, Edge] = Field(default_factory=dict)
    groups: dict[str, Group] = Field(default_factory=dict)
    dirty: bool = Field(default=False, exclude=True)

    @classmethod
    def new(cls, name: str) -> ProjectGraph:
        return cls(meta=ProjectMeta(name=name))

    def _mark_dirty(self) -> None:
        self.dirty = True
        self.meta.touch()

    # =========================================================================
    # Nodes
    # =========================================================================

    def add_node(self, node: Node) -> str:
        """
        Insert a node and return its id.

        Raises:
            GraphError: If a node with the same id is already present
        """
        if node.id in self.nodes:
            raise GraphError(f"Node {node.id} already exists")
        if node.group_id is not None:
            group = self.groups.get(node.group_id)
            if group is None:
                node.group_id = None
            else:
                group.add_node(node.id)
        self.nodes[node.id] = node
        self._mark_dirty()
        logger.debug(f"Added node {node.id} ({node.component_type} '{node.name}')")
        return node.id

    def create_node(self, component_type: str, name: str) -> Node:
        """Create a bare node of the given type, add it, and return it."""
        node = Node(component_type=component_type, name=name)
        self.add_node(node)
        return node

    def get_node(self, node_id: str) -> Node | None:
        return self.nodes.get(node_id)

    def require_node(self, node_id: str) -> Node:
        """
        Get a node or raise.

        Raises:
            NodeNotFoundError: If the id is not in the graph
        """
        node = self.nodes.get(node_id)
        if node is None:
            raise NodeNotFoundError(node_id)
        return node

    def has_node(self, node_id: str) -> bool:
        return node_id in self.nodes

    def remove_node(self, node_id: str) -> Node | None:
        """
        Remove a node, cascading to its edges and group membership.

        Removing an id that is not present is a no-op returning None.
        """
        node = self.nodes.pop(node_id, None)
        if node is None:
            return None
        removed = self.remove_edges_for_node(node_id)
        for group in self.groups.values():
            group.remove_node(node_id)
        node.group_id = None
        self._mark_dirty()
        logger.debug(f"Removed node {node_id} and {len(removed)} edge(s)")
        return node

    def find_nodes_by_type(self, component_type: str) -> list[Node]:
        return [n for n in self.nodes.values() if n.component_type == component_type]

    def find_nodes_by_prefix(self, prefix: str) -> list[Node]:
        """Nodes whose component type starts with ``prefix`` (e.g. ``"auth."``)."""
        return [n for n in self.nodes.values() if n.component_type.startswith(prefix)]

    def find_nodes_by_name(self, query: str) -> list[Node]:
        """Case-insensitive substring match on node names."""
        needle = query.lower()
        return [n for n in self.nodes.values() if needle in n.name.lower()]

    def nodes_of_category(self, category: ComponentCategory) -> list[Node]:
        return [n for n in self.nodes.values() if n.category == category]

    def entity_nodes(self) -> list[Node]:
        return self.find_nodes_by_type(ENTITY_TYPE)

    def find_entity(self, name: str) -> Node | None:
        """First entity node with exactly this name."""
        return next((n for n in self.entity_nodes() if n.name == name), None)

    def duplicate_node(self, node_id: str) -> Node:
        """
        Copy a node under a fresh id and add it; edges are not copied.

        Raises:
            NodeNotFoundError: If the id is not in the graph
        """
        copy = self.require_node(node_id).duplicate()
        self.add_node(copy)
        return copy

    def duplicate_nodes(self, node_ids: list[str]) -> dict[str, str]:
        """
        Copy several nodes together with the edges among them.

        Only edges whose both endpoints are in ``node_ids`` are copied,
        re-pointed at the copies.

        Returns:
            Mapping of original node id to copy id

        Raises:
            NodeNotFoundError: If any id is not in the graph (nothing is copied)
        """
        for node_id in node_ids:
            self.require_node(node_id)

        id_map: dict[str, str] = {}
        for node_id in node_ids:
            if node_id in id_map:
                continue
            id_map[node_id] = self.duplicate_node(node_id).id

        internal = [
            e for e in self.edges.values() if e.from_node in id_map and e.to_node in id_map
        ]
        for edge in internal:
            copy = edge.duplicate(from_node=id_map[edge.from_node], to_node=id_map[edge.to_node])
            self.edges[copy.id] = copy
        self._mark_dirty()
        return id_map

    # =========================================================================
    # Edges
    # =========================================================================

    def add_edge(self, edge: Edge) -> str:
        """
        Insert an edge and return its id.

        Only structural existence is checked here; port type compatibility
        is reported by the validator.

        Raises:
            NodeNotFoundError: If either endpoint node is missing
            PortNotFoundError: If a port-connecting edge names a missing
                output port on the source or input port on the target
            GraphError: If an edge with the same id is already present
        """
        if edge.id in self.edges:
            raise GraphError(f"Edge {edge.id} already exists")
        source = self.require_node(edge.from_node)
        target = self.require_node(edge.to_node)

        if edge.connection_type.connects_ports:
            if source.get_output_port(edge.from_port) is None:
                raise PortNotFoundError(edge.from_node, edge.from_port)
            if target.get_input_port(edge.to_port) is None:
                raise PortNotFoundError(edge.to_node, edge.to_port)

        self.edges[edge.id] = edge
        self._mark_dirty()
        logger.debug(
            f"Added {edge.connection_type.value} edge {edge.id}: "
            f"{edge.from_node}.{edge.from_port} -> {edge.to_node}.{edge.to_port}"
        )
        return edge.id

    def connect(
        self,
        from_node: str,
        from_port: str,
        to_node: str,
        to_port: str,
        connection_type: ConnectionKind = ConnectionKind.DATA_FLOW,
    ) -> str:
        """Create a port-to-port edge and add it."""
        edge = Edge(
            from_node=from_node,
            from_port=from_port,
            to_node=to_node,
            to_port=to_port,
            connection_type=connection_type,
        )
        return self.add_edge(edge)

    def add_relationship(self, from_node: str, to_node: str, relation_type: RelationType) -> str:
        return self.add_edge(Edge.relationship(from_node, to_node, relation_type))

    def add_dependency(self, from_node: str, to_node: str) -> str:
        return self.add_edge(Edge.dependency(from_node, to_node))

    def get_edge(self, edge_id: str) -> Edge | None:
        return self.edges.get(edge_id)

    def remove_edge(self, edge_id: str) -> Edge | None:
        edge = self.edges.pop(edge_id, None)
        if edge is not None:
            self._mark_dirty()
        return edge

    def remove_edges_for_node(self, node_id: str) -> list[Edge]:
        doomed = [e for e in self.edges.values() if e.connects_to(node_id)]
        for edge in doomed:
            del self.edges[edge.id]
        if doomed:
            self._mark_dirty()
        return doomed

    # =========================================================================
    # Connectivity queries
    # =========================================================================

    def edges_for_node(self, node_id: str) -> list[Edge]:
        return [e for e in self.edges.values() if e.connects_to(node_id)]

    def incoming_edges(self, node_id: str) -> list[Edge]:
        return [e for e in self.edges.values() if e.to_node == node_id]

    def outgoing_edges(self, node_id: str) -> list[Edge]:
        return [e for e in self.edges.values() if e.from_node == node_id]

    def edges_between(self, a: str, b: str) -> list[Edge]:
        """Edges joining ``a`` and ``b`` in either direction."""
        return [e for e in self.edges.values() if e.is_between(a, b)]

    def are_connected(self, a: str, b: str) -> bool:
        return any(e.is_between(a, b) for e in self.edges.values())

    def connected_nodes(self, node_id: str) -> list[str]:
        """Neighbour ids one hop away in either direction, without repeats."""
        seen: dict[str, None] = {}
        for edge in self.edges_for_node(node_id):
            seen.setdefault(edge.other_end(node_id), None)
        return list(seen)

    def upstream_nodes(self, node_id: str) -> list[str]:
        """Ids of nodes with an edge into ``node_id``."""
        seen: dict[str, None] = {}
        for edge in self.incoming_edges(node_id):
            seen.setdefault(edge.from_node, None)
        return list(seen)

    def downstream_nodes(self, node_id: str) -> list[str]:
        """Ids of nodes ``node_id`` has an edge into."""
        seen: dict[str, None] = {}
        for edge in self.outgoing_edges(node_id):
            seen.setdefault(edge.to_node, None)
        return list(seen)

    # =========================================================================
    # Groups
    # =========================================================================

    def add_group(self, group: Group) -> str:
        if group.id in self.groups:
            raise GraphError(f"Group {group.id} already exists")
        self.groups[group.id] = group
        for node_id in list(group.node_ids):
            if node_id in self.nodes:
                self._attach(node_id, group)
            else:
                group.remove_node(node_id)
        self._mark_dirty()
        return group.id

    def create_group(self, name: str, node_ids: list[str] | None = None) -> Group:
        """
        Create a group around existing nodes.

        Raises:
            NodeNotFoundError: If any listed node is missing (nothing is created)
        """
        node_ids = node_ids or []
        for node_id in node_ids:
            self.require_node(node_id)
        group = Group(name=name)
        self.add_group(group)
        for node_id in node_ids:
            self.add_node_to_group(node_id, group.id)
        return group

    def get_group(self, group_id: str) -> Group | None:
        return self.groups.get(group_id)

    def remove_group(self, group_id: str) -> Group | None:
        """Delete a group; members stay in the graph and child groups become roots."""
        group = self.groups.pop(group_id, None)
        if group is None:
            return None
        for node_id in group.node_ids:
            node = self.nodes.get(node_id)
            if node is not None and node.group_id == group_id:
                node.group_id = None
        for other in self.groups.values():
            if other.parent_id == group_id:
                other.parent_id = None
        self._mark_dirty()
        return group

    def _attach(self, node_id: str, group: Group) -> None:
        node = self.nodes[node_id]
        if node.group_id is not None and node.group_id != group.id:
            previous = self.groups.get(node.group_id)
            if previous is not None:
                previous.remove_node(node_id)
        group.add_node(node_id)
        node.group_id = group.id

    def add_node_to_group(self, node_id: str, group_id: str) -> None:
        """
        Put a node into a group, moving it out of any other group.

        Raises:
            NodeNotFoundError: If the node is missing
            GroupNotFoundError: If the group is missing
        """
        self.require_node(node_id)
        group = self.groups.get(group_id)
        if group is None:
            raise GroupNotFoundError(group_id)
        self._attach(node_id, group)
        self._mark_dirty()

    def remove_node_from_group(self, node_id: str) -> bool:
        """
        Take a node out of its group.

        Returns:
            True if the node was in a group

        Raises:
            NodeNotFoundError: If the node is missing
        """
        node = self.require_node(node_id)
        if node.group_id is None:
            return False
        group = self.groups.get(node.group_id)
        if group is not None:
            group.remove_node(node_id)
        node.group_id = None
        self._mark_dirty()
        return True

    def ungroup(self, group_id: str) -> list[str]:
        """
        Dissolve a group and return the ids of its former members.

        Raises:
            GroupNotFoundError: If the group is missing
        """
        group = self.remove_group(group_id)
        if group is None:
            raise GroupNotFoundError(group_id)
        return list(group.node_ids)

    # =========================================================================
    # Whole-graph helpers
    # =========================================================================

    def node_count(self) -> int:
        return len(self.nodes)

    def edge_count(self) -> int:
        return len(self.edges)

    def is_empty(self) -> bool:
        return not self.nodes

    def clear(self) -> None:
        self.nodes.clear()
        self.edges.clear()
        self.groups.clear()
        self._mark_dirty()

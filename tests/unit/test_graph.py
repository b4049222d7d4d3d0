"""
Unit tests for the project graph store.

Covers node, edge and group mutations and the referential invariants they
maintain: edges never dangle, group membership stays consistent both ways,
and a node belongs to at most one group.
"""

import pytest

from immortal.core.errors import (
    GraphError,
    GroupNotFoundError,
    NodeNotFoundError,
    PortNotFoundError,
)
from immortal.core.ir import (
    ANY,
    ComponentCategory,
    ConnectionKind,
    Edge,
    Group,
    Node,
    Port,
    ProjectGraph,
    RelationType,
)

# =============================================================================
# Helper Functions
# =============================================================================


def make_pipe_node(name: str) -> Node:
    """Create a node with one Any input and one Any output."""
    return (
        Node(component_type="logic.transformer", name=name, category=ComponentCategory.LOGIC)
        .with_input(Port.data_in("in", ANY))
        .with_output(Port.data_out("out", ANY))
    )


def make_graph(*names: str) -> tuple[ProjectGraph, list[str]]:
    """Create a graph holding one pipe node per name."""
    graph = ProjectGraph.new("Test")
    ids = [graph.add_node(make_pipe_node(name)) for name in names]
    return graph, ids


def assert_invariants(graph: ProjectGraph) -> None:
    """Check edge endpoints and two-way group membership."""
    for edge in graph.edges.values():
        assert graph.has_node(edge.from_node)
        assert graph.has_node(edge.to_node)
    for group in graph.groups.values():
        for node_id in group.node_ids:
            assert graph.nodes[node_id].group_id == group.id
    for node in graph.nodes.values():
        if node.group_id is not None:
            assert graph.groups[node.group_id].contains_node(node.id)


# =============================================================================
# Nodes
# =============================================================================


class TestNodes:
    """Test node insertion, lookup and removal."""

    def test_add_and_get(self) -> None:
        graph, (a,) = make_graph("A")
        assert graph.has_node(a)
        assert graph.get_node(a).name == "A"
        assert graph.node_count() == 1
        assert not graph.is_empty()

    def test_duplicate_id_rejected(self) -> None:
        graph = ProjectGraph.new("Test")
        node = make_pipe_node("A")
        graph.add_node(node)
        with pytest.raises(GraphError):
            graph.add_node(node)

    def test_require_missing(self) -> None:
        graph = ProjectGraph.new("Test")
        with pytest.raises(NodeNotFoundError):
            graph.require_node("nope")

    def test_remove_cascades_edges(self) -> None:
        graph, (a, b, c) = make_graph("A", "B", "C")
        graph.connect(a, "out", b, "in")
        graph.connect(b, "out", c, "in")
        graph.connect(a, "out", c, "in")

        removed = graph.remove_node(b)

        assert removed is not None
        assert graph.edge_count() == 1
        assert_invariants(graph)

    def test_remove_missing_is_noop(self) -> None:
        graph, _ = make_graph("A")
        assert graph.remove_node("nope") is None
        assert graph.node_count() == 1

    def test_create_node(self) -> None:
        graph = ProjectGraph.new("Test")
        node = graph.create_node("logic.condition", "Check")
        assert graph.get_node(node.id) is node

    def test_find_nodes(self) -> None:
        graph = ProjectGraph.new("Test")
        graph.add_node(Node.new_entity("User"))
        graph.add_node(Node.new_entity("UserProfile"))
        graph.add_node(Node.new_login())
        assert len(graph.entity_nodes()) == 2
        assert len(graph.find_nodes_by_prefix("auth.")) == 1
        assert len(graph.find_nodes_by_name("user")) == 2
        assert len(graph.nodes_of_category(ComponentCategory.AUTH)) == 1
        assert graph.find_entity("User").name == "User"

    def test_insertion_order_preserved(self) -> None:
        graph, ids = make_graph("C", "A", "B")
        assert list(graph.nodes) == ids


class TestDirtyFlag:
    """Test that mutations mark the graph dirty."""

    def test_new_graph_clean(self) -> None:
        assert not ProjectGraph.new("Test").dirty

    @pytest.mark.parametrize("mutation", ["add_node", "connect", "create_group", "clear"])
    def test_mutations_set_dirty(self, mutation: str) -> None:
        graph, (a, b) = make_graph("A", "B")
        graph.dirty = False
        if mutation == "add_node":
            graph.add_node(make_pipe_node("C"))
        elif mutation == "connect":
            graph.connect(a, "out", b, "in")
        elif mutation == "create_group":
            graph.create_group("G", [a])
        else:
            graph.clear()
        assert graph.dirty


# =============================================================================
# Edges
# =============================================================================


class TestEdges:
    """Test edge insertion and connectivity queries."""

    def test_connect(self) -> None:
        graph, (a, b) = make_graph("A", "B")
        edge_id = graph.connect(a, "out", b, "in")
        edge = graph.get_edge(edge_id)
        assert edge.is_data_flow
        assert graph.are_connected(a, b)
        assert graph.are_connected(b, a)
        assert graph.downstream_nodes(a) == [b]
        assert graph.upstream_nodes(b) == [a]

    def test_missing_endpoint(self) -> None:
        graph, (a,) = make_graph("A")
        with pytest.raises(NodeNotFoundError):
            graph.connect(a, "out", "ghost", "in")
        assert graph.edge_count() == 0

    def test_missing_source_node_leaves_graph_unchanged(self) -> None:
        graph, (a, b) = make_graph("A", "B")
        graph.connect(a, "out", b, "in")
        with pytest.raises(NodeNotFoundError):
            graph.add_edge(Edge.relationship("ghost", b, RelationType.ONE_TO_ONE))
        assert graph.edge_count() == 1
        assert_invariants(graph)

    def test_missing_output_port(self) -> None:
        graph, (a, b) = make_graph("A", "B")
        with pytest.raises(PortNotFoundError) as exc_info:
            graph.connect(a, "in", b, "in")
        assert exc_info.value.port_id == "in"
        assert graph.edge_count() == 0

    def test_missing_input_port(self) -> None:
        graph, (a, b) = make_graph("A", "B")
        with pytest.raises(PortNotFoundError):
            graph.connect(a, "out", b, "nope")
        assert graph.edge_count() == 0

    def test_relationship_skips_port_check(self) -> None:
        graph, (a, b) = make_graph("A", "B")
        edge_id = graph.add_relationship(a, b, RelationType.ONE_TO_MANY)
        edge = graph.get_edge(edge_id)
        assert edge.relationship_type() == RelationType.ONE_TO_MANY
        assert edge.label == "1 ---< *"

    def test_dependency_skips_port_check(self) -> None:
        graph, (a, b) = make_graph("A", "B")
        edge_id = graph.add_dependency(a, b)
        assert graph.get_edge(edge_id).connection_type == ConnectionKind.DEPENDENCY

    def test_duplicate_edge_id_rejected(self) -> None:
        graph, (a, b) = make_graph("A", "B")
        edge = Edge.data_flow(a, "out", b, "in")
        graph.add_edge(edge)
        with pytest.raises(GraphError):
            graph.add_edge(edge)

    def test_remove_edge(self) -> None:
        graph, (a, b) = make_graph("A", "B")
        edge_id = graph.connect(a, "out", b, "in")
        assert graph.remove_edge(edge_id) is not None
        assert graph.remove_edge(edge_id) is None
        assert not graph.are_connected(a, b)

    def test_connected_nodes_without_repeats(self) -> None:
        graph, (a, b) = make_graph("A", "B")
        graph.connect(a, "out", b, "in")
        graph.connect(b, "out", a, "in")
        assert graph.connected_nodes(a) == [b]


class TestEdgeModel:
    """Test Edge helpers that do not need a graph."""

    def test_reverse_flips_cardinality(self) -> None:
        edge = Edge.relationship("a", "b", RelationType.ONE_TO_MANY)
        reversed_edge = edge.reverse()
        assert reversed_edge.id != edge.id
        assert reversed_edge.is_from_to("b", "a")
        assert reversed_edge.relation_type == RelationType.MANY_TO_ONE

    def test_queries(self) -> None:
        edge = Edge.trigger("a", "done", "b", "run")
        assert edge.connects_to("a")
        assert edge.is_between("b", "a")
        assert not edge.is_self_reference
        assert edge.style.dashed
        assert Edge.data_flow("a", "out", "a", "in").is_self_reference

    def test_duplicate_repoints(self) -> None:
        edge = Edge.data_flow("a", "out", "b", "in").with_label("x")
        copy = edge.duplicate(from_node="c")
        assert copy.id != edge.id
        assert copy.from_node == "c"
        assert copy.to_node == "b"
        assert copy.label == "x"


# =============================================================================
# Groups
# =============================================================================


class TestGroups:
    """Test group membership invariants."""

    def test_create_group(self) -> None:
        graph, (a, b) = make_graph("A", "B")
        group = graph.create_group("G", [a, b])
        assert group.node_count() == 2
        assert graph.get_node(a).group_id == group.id
        assert_invariants(graph)

    def test_create_group_with_missing_node(self) -> None:
        graph, (a,) = make_graph("A")
        with pytest.raises(NodeNotFoundError):
            graph.create_group("G", [a, "ghost"])
        assert not graph.groups

    def test_node_moves_between_groups(self) -> None:
        graph, (a,) = make_graph("A")
        first = graph.create_group("First", [a])
        second = graph.create_group("Second")
        graph.add_node_to_group(a, second.id)
        assert not first.contains_node(a)
        assert second.contains_node(a)
        assert_invariants(graph)

    def test_add_to_missing_group(self) -> None:
        graph, (a,) = make_graph("A")
        with pytest.raises(GroupNotFoundError):
            graph.add_node_to_group(a, "ghost")

    def test_remove_node_clears_membership(self) -> None:
        graph, (a, b) = make_graph("A", "B")
        group = graph.create_group("G", [a, b])
        graph.remove_node(a)
        assert group.node_ids == [b]
        assert_invariants(graph)

    def test_remove_group_clears_members_and_children(self) -> None:
        graph, (a,) = make_graph("A")
        parent = graph.create_group("Parent", [a])
        child = Group(name="Child").with_parent(parent.id)
        graph.add_group(child)

        graph.remove_group(parent.id)

        assert graph.get_node(a).group_id is None
        assert child.is_root
        assert_invariants(graph)

    def test_add_group_drops_unknown_members(self) -> None:
        graph, (a,) = make_graph("A")
        group = Group(name="G", node_ids=[a, "ghost"])
        graph.add_group(group)
        assert group.node_ids == [a]
        assert graph.get_node(a).group_id == group.id

    def test_remove_node_from_group(self) -> None:
        graph, (a,) = make_graph("A")
        graph.create_group("G", [a])
        assert graph.remove_node_from_group(a)
        assert not graph.remove_node_from_group(a)
        assert_invariants(graph)

    def test_ungroup(self) -> None:
        graph, (a, b) = make_graph("A", "B")
        group = graph.create_group("G", [a, b])
        assert graph.ungroup(group.id) == [a, b]
        with pytest.raises(GroupNotFoundError):
            graph.ungroup(group.id)


# =============================================================================
# Duplication
# =============================================================================


class TestDuplicateNodes:
    """Test bulk duplication with edge remapping."""

    def test_internal_edges_copied(self) -> None:
        graph, (a, b, c) = make_graph("A", "B", "C")
        graph.connect(a, "out", b, "in")
        graph.connect(b, "out", c, "in")

        id_map = graph.duplicate_nodes([a, b])

        assert set(id_map) == {a, b}
        assert graph.node_count() == 5
        # Only A->B is internal to the selection
        assert graph.edge_count() == 3
        assert graph.are_connected(id_map[a], id_map[b])
        assert not graph.are_connected(id_map[b], c)
        assert graph.get_node(id_map[a]).name == "A (copy)"
        assert_invariants(graph)

    def test_missing_node_copies_nothing(self) -> None:
        graph, (a,) = make_graph("A")
        with pytest.raises(NodeNotFoundError):
            graph.duplicate_nodes([a, "ghost"])
        assert graph.node_count() == 1


class TestDuplicateNode:
    """Test single-node duplication through the store."""

    def test_copy_is_added_without_edges(self) -> None:
        graph = ProjectGraph.new("Test")
        a = graph.add_node(make_pipe_node("A").with_position(100, 50))
        b = graph.add_node(make_pipe_node("B"))
        graph.connect(a, "out", b, "in")

        copy = graph.duplicate_node(a)

        assert copy.id != a
        assert graph.has_node(copy.id)
        assert copy.name == "A (copy)"
        assert (copy.position.x, copy.position.y) == (120, 70)
        assert graph.node_count() == 3
        assert graph.edge_count() == 1
        assert graph.edges_for_node(copy.id) == []

    def test_missing_node(self) -> None:
        graph, _ = make_graph("A")
        with pytest.raises(NodeNotFoundError):
            graph.duplicate_node("ghost")
        assert graph.node_count() == 1

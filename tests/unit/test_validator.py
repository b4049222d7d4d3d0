"""
Unit tests for the validation engine.

Each built-in rule is exercised on the smallest graph that triggers it,
then the engine's severity filtering, fail-fast and result helpers.
"""

import pytest

from immortal.core.errors import ValidationFailedError
from immortal.core.ir import (
    ANY,
    INT32,
    INT64,
    STRING,
    ComponentCategory,
    Edge,
    Field,
    Node,
    Port,
    ProjectGraph,
    RelationType,
)
from immortal.core.validator import (
    CyclicDependencyRule,
    DuplicateNameRule,
    EdgeValidityRule,
    EntityPrimaryKeyRule,
    NodeExistsRule,
    PortCompatibilityRule,
    RelationshipTargetRule,
    RequiredFieldsRule,
    Severity,
    ValidationErrorKind,
    ValidationIssue,
    ValidationResult,
    Validator,
    default_rules,
    get_all_issues,
    is_valid,
    validate,
)

# =============================================================================
# Helper Functions
# =============================================================================


def make_pipe_node(name: str, in_type=ANY, out_type=ANY) -> Node:
    """Create a node with one typed input and one typed output."""
    return (
        Node(component_type="logic.transformer", name=name, category=ComponentCategory.LOGIC)
        .with_input(Port.data_in("in", in_type))
        .with_output(Port.data_out("out", out_type))
    )


def make_chain(count: int) -> tuple[ProjectGraph, list[str]]:
    """Create a graph of ``count`` pipe nodes wired in a line."""
    graph = ProjectGraph.new("Chain")
    ids = [graph.add_node(make_pipe_node(f"N{i}")) for i in range(count)]
    for a, b in zip(ids, ids[1:]):
        graph.connect(a, "out", b, "in")
    return graph, ids


def kinds(issues: list[ValidationIssue]) -> list[ValidationErrorKind]:
    return [issue.kind for issue in issues]


# =============================================================================
# Rules
# =============================================================================


class TestNodeExistsRule:
    """Test dangling references."""

    def test_dangling_edge(self) -> None:
        graph, (a, b) = make_chain(2)
        # Bypass the store to simulate a corrupted file
        del graph.nodes[b]
        issues = NodeExistsRule().validate(graph)
        assert kinds(issues) == [ValidationErrorKind.DANGLING_EDGE]
        assert issues[0].edge_id is not None
        assert issues[0].is_error

    def test_group_with_missing_member(self) -> None:
        graph, (a,) = make_chain(1)
        group = graph.create_group("G", [a])
        group.node_ids.append("ghost")
        assert kinds(NodeExistsRule().validate(graph)) == [ValidationErrorKind.MISSING_NODE]

    def test_clean_graph(self) -> None:
        graph, _ = make_chain(3)
        assert NodeExistsRule().validate(graph) == []


class TestEdgeValidityRule:
    def test_missing_port(self) -> None:
        graph, (a, b) = make_chain(2)
        graph.edges[next(iter(graph.edges))].to_port = "gone"
        issues = EdgeValidityRule().validate(graph)
        assert kinds(issues) == [ValidationErrorKind.MISSING_PORT]

    def test_relationship_ignored(self) -> None:
        graph = ProjectGraph.new("Rel")
        a = graph.add_node(Node.new_entity("A"))
        b = graph.add_node(Node.new_entity("B"))
        graph.add_relationship(a, b, RelationType.ONE_TO_ONE)
        assert EdgeValidityRule().validate(graph) == []


class TestPortCompatibilityRule:
    """Test type compatibility across edges."""

    def test_widening_allowed(self) -> None:
        graph = ProjectGraph.new("Types")
        a = graph.add_node(make_pipe_node("A", out_type=INT32))
        b = graph.add_node(make_pipe_node("B", in_type=INT64))
        graph.connect(a, "out", b, "in")
        assert PortCompatibilityRule().validate(graph) == []

    def test_incompatible_types(self) -> None:
        graph = ProjectGraph.new("Types")
        a = graph.add_node(make_pipe_node("A", out_type=STRING))
        b = graph.add_node(make_pipe_node("B", in_type=INT64))
        edge_id = graph.connect(a, "out", b, "in")
        issues = PortCompatibilityRule().validate(graph)
        assert kinds(issues) == [ValidationErrorKind.INCOMPATIBLE_PORTS]
        assert issues[0].edge_id == edge_id
        assert "String" in issues[0].message

    def test_entity_ports_of_different_entities(self) -> None:
        graph = ProjectGraph.new("Entities")
        a = graph.add_node(Node.new_entity("User"))
        b = graph.add_node(Node.new_entity("Post"))
        graph.connect(a, "entity", b, "entity")
        assert kinds(PortCompatibilityRule().validate(graph)) == [
            ValidationErrorKind.INCOMPATIBLE_PORTS
        ]


class TestDuplicateNameRule:
    """Test name uniqueness scoped by component type."""

    def test_same_type_same_name(self) -> None:
        graph = ProjectGraph.new("Dupes")
        first = graph.add_node(Node.new_entity("User"))
        second = graph.add_node(Node.new_entity("User"))
        issues = DuplicateNameRule().validate(graph)
        assert len(issues) == 1
        assert issues[0].node_id == second
        assert first in issues[0].message

    def test_different_types_may_share_name(self) -> None:
        graph = ProjectGraph.new("Shared")
        graph.add_node(Node.new_entity("Users"))
        graph.add_node(Node.new_rest_endpoint("Users"))
        assert DuplicateNameRule().validate(graph) == []

    def test_every_repeat_reported(self) -> None:
        graph = ProjectGraph.new("Dupes")
        for _ in range(3):
            graph.add_node(Node.new_entity("User"))
        assert len(DuplicateNameRule().validate(graph)) == 2


class TestEntityPrimaryKeyRule:
    def test_missing_primary_key_is_warning(self) -> None:
        graph = ProjectGraph.new("Keys")
        entity = Node.new_entity("Log")
        entity.remove_field("id")
        graph.add_node(entity)
        issues = EntityPrimaryKeyRule().validate(graph)
        assert kinds(issues) == [ValidationErrorKind.MISSING_PRIMARY_KEY]
        assert issues[0].severity == Severity.WARNING

    def test_default_entity_has_key(self) -> None:
        graph = ProjectGraph.new("Keys")
        graph.add_node(Node.new_entity("User"))
        assert EntityPrimaryKeyRule().validate(graph) == []


class TestCyclicDependencyRule:
    """Test cycle detection over DataFlow edges."""

    def test_acyclic_chain(self) -> None:
        graph, _ = make_chain(4)
        assert CyclicDependencyRule().validate(graph) == []

    def test_two_node_cycle(self) -> None:
        graph, (a, b) = make_chain(2)
        graph.connect(b, "out", a, "in")
        issues = CyclicDependencyRule().validate(graph)
        assert kinds(issues) == [ValidationErrorKind.CYCLIC_DEPENDENCY]
        assert issues[0].node_id in (a, b)

    def test_three_node_cycle_is_error(self) -> None:
        graph, (a, b, c) = make_chain(3)
        graph.connect(c, "out", a, "in")
        issues = CyclicDependencyRule().validate(graph)
        assert kinds(issues) == [ValidationErrorKind.CYCLIC_DEPENDENCY]
        assert issues[0].is_error
        assert issues[0].node_id in (a, b, c)

    def test_relationship_cycle_ignored(self) -> None:
        graph = ProjectGraph.new("Relationships")
        a, b, c = (graph.add_node(make_pipe_node(name)) for name in "ABC")
        graph.add_relationship(a, b, RelationType.ONE_TO_MANY)
        graph.add_relationship(b, c, RelationType.ONE_TO_MANY)
        graph.add_relationship(c, a, RelationType.ONE_TO_MANY)
        assert CyclicDependencyRule().validate(graph) == []

    def test_self_loop(self) -> None:
        graph, (a,) = make_chain(1)
        graph.connect(a, "out", a, "in")
        assert len(CyclicDependencyRule().validate(graph)) == 1

    def test_reports_at_most_one(self) -> None:
        graph, (a, b, c, d) = make_chain(4)
        graph.connect(b, "out", a, "in")
        graph.connect(d, "out", c, "in")
        assert len(CyclicDependencyRule().validate(graph)) == 1

    def test_diamond_is_not_a_cycle(self) -> None:
        graph = ProjectGraph.new("Diamond")
        a, b, c, d = (graph.add_node(make_pipe_node(n)) for n in "ABCD")
        graph.connect(a, "out", b, "in")
        graph.connect(a, "out", c, "in")
        graph.connect(b, "out", d, "in")
        graph.connect(c, "out", d, "in")
        assert CyclicDependencyRule().validate(graph) == []

    def test_trigger_cycle_ignored(self) -> None:
        graph = ProjectGraph.new("Triggers")
        a, b = (
            graph.add_node(
                make_pipe_node(name)
                .with_output(Port.trigger_out("done"))
                .with_input(Port.trigger_in("go"))
            )
            for name in "AB"
        )
        graph.add_edge(Edge.trigger(a, "done", b, "go"))
        graph.add_edge(Edge.trigger(b, "done", a, "go"))
        assert CyclicDependencyRule().validate(graph) == []

    def test_long_chain_does_not_recurse(self) -> None:
        graph, _ = make_chain(2000)
        assert CyclicDependencyRule().validate(graph) == []


class TestRequiredFieldsRule:
    def test_unpopulatable_field_warns(self) -> None:
        graph = ProjectGraph.new("Fields")
        entity = Node.new_entity("Account")
        entity.add_field(Field.string("token").mark_required().mark_read_only())
        graph.add_node(entity)
        issues = RequiredFieldsRule().validate(graph)
        assert kinds(issues) == [ValidationErrorKind.MISSING_REQUIRED_FIELD]
        assert issues[0].severity == Severity.WARNING

    def test_default_value_satisfies(self) -> None:
        graph = ProjectGraph.new("Fields")
        entity = Node.new_entity("Account")
        entity.add_field(Field.string("status").mark_required().mark_read_only().with_default("new"))
        graph.add_node(entity)
        assert RequiredFieldsRule().validate(graph) == []

    def test_login_without_identity_is_info(self) -> None:
        graph = ProjectGraph.new("Auth")
        login = Node.new_login()
        login.remove_field("email")
        graph.add_node(login)
        issues = RequiredFieldsRule().validate(graph)
        assert len(issues) == 1
        assert issues[0].severity == Severity.INFO


class TestRelationshipTargetRule:
    def test_non_entity_end_warns(self) -> None:
        graph = ProjectGraph.new("Rel")
        a = graph.add_node(Node.new_entity("A"))
        b = graph.add_node(make_pipe_node("B"))
        graph.add_relationship(a, b, RelationType.ONE_TO_MANY)
        issues = RelationshipTargetRule().validate(graph)
        assert kinds(issues) == [ValidationErrorKind.INVALID_RELATIONSHIP]
        assert issues[0].severity == Severity.WARNING


# =============================================================================
# Engine
# =============================================================================


class TestValidator:
    """Test the engine around the rules."""

    def test_default_rule_order(self) -> None:
        names = [rule.name for rule in default_rules()]
        assert names == [
            "Node Existence",
            "Edge Validity",
            "Port Compatibility",
            "Unique Names",
            "Entity Primary Key",
            "Cyclic Dependency",
            "Required Fields",
            "Relationship Targets",
        ]

    def test_empty_graph_is_valid(self, empty_graph: ProjectGraph) -> None:
        assert validate(empty_graph).is_valid
        assert is_valid(empty_graph)

    def test_blog_graph_is_valid(self, blog_graph: ProjectGraph) -> None:
        result = validate(blog_graph)
        assert result.is_valid
        assert result.errors == []

    def test_min_severity_filters(self) -> None:
        graph = ProjectGraph.new("Auth")
        login = Node.new_login()
        login.remove_field("email")
        graph.add_node(login)
        assert validate(graph).issues == []
        assert len(get_all_issues(graph)) == 1
        assert Validator(min_severity=Severity.ERROR).validate_all(graph) == []

    def test_fail_fast_stops_after_first_error_rule(self) -> None:
        graph = ProjectGraph.new("Broken")
        a = graph.add_node(make_pipe_node("A", out_type=STRING))
        b = graph.add_node(make_pipe_node("A", in_type=INT64))
        graph.connect(a, "out", b, "in")

        all_issues = Validator().validate(graph).issues
        fast_issues = Validator(fail_fast=True).validate(graph).issues

        assert ValidationErrorKind.DUPLICATE_NODE_NAME in kinds(all_issues)
        assert kinds(fast_issues) == [ValidationErrorKind.INCOMPATIBLE_PORTS]

    def test_validate_all_ignores_fail_fast(self) -> None:
        graph = ProjectGraph.new("Broken")
        graph.add_node(Node.new_entity("User"))
        graph.add_node(Node.new_entity("User"))
        keyless = Node.new_entity("Log")
        keyless.remove_field("id")
        graph.add_node(keyless)

        validator = Validator(
            rules=[DuplicateNameRule(), EntityPrimaryKeyRule()],
            fail_fast=True,
            min_severity=Severity.INFO,
        )
        assert kinds(validator.validate_all(graph)) == [
            ValidationErrorKind.DUPLICATE_NODE_NAME,
            ValidationErrorKind.MISSING_PRIMARY_KEY,
        ]
        assert kinds(validator.validate(graph).issues) == [
            ValidationErrorKind.DUPLICATE_NODE_NAME
        ]

    def test_custom_rule(self) -> None:
        class NoLogicRule:
            name = "No Logic"

            def validate(self, graph: ProjectGraph) -> list[ValidationIssue]:
                return [
                    ValidationIssue(ValidationErrorKind.CUSTOM, "logic not allowed").for_node(n.id)
                    for n in graph.nodes_of_category(ComponentCategory.LOGIC)
                ]

        graph, _ = make_chain(2)
        validator = Validator.empty().add_rule(NoLogicRule())
        result = validator.validate(graph)
        assert len(result.errors) == 2

    def test_validation_does_not_mutate(self, blog_graph: ProjectGraph) -> None:
        before = blog_graph.model_dump()
        validate(blog_graph)
        assert blog_graph.model_dump() == before
        assert not blog_graph.dirty


class TestValidationResult:
    """Test result partitioning and opt-in raising."""

    def make_result(self) -> ValidationResult:
        return ValidationResult(
            issues=[
                ValidationIssue(ValidationErrorKind.CUSTOM, "bad"),
                ValidationIssue(ValidationErrorKind.CUSTOM, "meh").as_warning(),
                ValidationIssue(ValidationErrorKind.CUSTOM, "fyi").as_info(),
            ]
        )

    def test_partitions(self) -> None:
        result = self.make_result()
        assert len(result.errors) == 1
        assert len(result.warnings) == 1
        assert len(result.infos) == 1
        assert not result.is_valid

    def test_raise_for_errors(self) -> None:
        with pytest.raises(ValidationFailedError) as exc_info:
            self.make_result().raise_for_errors()
        assert len(exc_info.value.issues) == 1
        assert "bad" in str(exc_info.value)

    def test_warnings_only_is_valid(self) -> None:
        result = ValidationResult(
            issues=[ValidationIssue(ValidationErrorKind.CUSTOM, "meh").as_warning()]
        )
        assert result.is_valid
        result.raise_for_errors()


class TestValidationIssue:
    @pytest.mark.parametrize(
        "issue,expected",
        [
            (
                ValidationIssue(ValidationErrorKind.CUSTOM, "oops").for_node("n1"),
                "[ERROR] Node n1: oops",
            ),
            (
                ValidationIssue(ValidationErrorKind.CUSTOM, "oops").for_edge("e1").as_warning(),
                "[WARNING] Edge e1: oops",
            ),
            (ValidationIssue(ValidationErrorKind.CUSTOM, "oops").as_info(), "[INFO] oops"),
        ],
    )
    def test_str(self, issue: ValidationIssue, expected: str) -> None:
        assert str(issue) == expected

    def test_severity_order(self) -> None:
        assert Severity.ERROR.at_least(Severity.WARNING)
        assert Severity.WARNING.at_least(Severity.WARNING)
        assert not Severity.INFO.at_least(Severity.WARNING)

    @pytest.mark.parametrize(
        "kind,expected",
        [
            (ValidationErrorKind.CYCLIC_DEPENDENCY, "Cyclic Dependency"),
            (ValidationErrorKind.INVALID_API_CONFIG, "Invalid API Config"),
            (ValidationErrorKind.MULTIPLE_CONNECTIONS_ON_SINGLE_PORT, "Multiple Connections"),
        ],
    )
    def test_kind_display_name(self, kind: ValidationErrorKind, expected: str) -> None:
        assert kind.display_name == expected

"""
Validation engine for project graphs.

A Validator runs an ordered list of independent rules over a read-only
ProjectGraph and collects their findings. A rule is any object with a
``name`` and a ``validate(graph) -> list[ValidationIssue]`` method, so
custom rules plug in without touching the engine.

Findings are returned, never raised: only Error findings make a graph
invalid, and only an invalid graph blocks code generation.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol, runtime_checkable

from immortal.core.errors import ValidationFailedError
from immortal.core.ir import (
    LOGIN_TYPE,
    ConnectionKind,
    Node,
    ProjectGraph,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Findings
# =============================================================================


class Severity(str, Enum):
    """Finding severity, ordered Info < Warning < Error."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    def at_least(self, other: Severity) -> bool:
        return self.rank >= other.rank


_SEVERITY_RANK = {Severity.INFO: 0, Severity.WARNING: 1, Severity.ERROR: 2}


class ValidationErrorKind(str, Enum):
    """What a finding is about."""

    # Graph structure
    EMPTY_GRAPH = "empty_graph"
    CYCLIC_DEPENDENCY = "cyclic_dependency"
    DISCONNECTED_NODES = "disconnected_nodes"
    INVALID_CONNECTION = "invalid_connection"
    # Nodes
    MISSING_NODE = "missing_node"
    DUPLICATE_NODE_NAME = "duplicate_node_name"
    INVALID_NODE_TYPE = "invalid_node_type"
    # Fields
    MISSING_REQUIRED_FIELD = "missing_required_field"
    INVALID_FIELD_TYPE = "invalid_field_type"
    INVALID_FIELD_VALUE = "invalid_field_value"
    # Edges
    MISSING_EDGE = "missing_edge"
    DANGLING_EDGE = "dangling_edge"
    INVALID_EDGE_TYPE = "invalid_edge_type"
    # Ports
    INCOMPATIBLE_PORTS = "incompatible_ports"
    DUPLICATE_EDGE = "duplicate_edge"
    MISSING_PORT = "missing_port"
    UNCONNECTED_REQUIRED_PORT = "unconnected_required_port"
    MULTIPLE_CONNECTIONS_ON_SINGLE_PORT = "multiple_connections_on_single_port"
    # Domains
    INVALID_DATABASE_CONFIG = "invalid_database_config"
    INVALID_API_CONFIG = "invalid_api_config"
    INVALID_SCHEMA = "invalid_schema"
    MISSING_PRIMARY_KEY = "missing_primary_key"
    INVALID_RELATIONSHIP = "invalid_relationship"
    CIRCULAR_REFERENCE = "circular_reference"
    CUSTOM = "custom"

    @property
    def display_name(self) -> str:
        if self == ValidationErrorKind.MULTIPLE_CONNECTIONS_ON_SINGLE_PORT:
            return "Multiple Connections"
        if self == ValidationErrorKind.INVALID_API_CONFIG:
            return "Invalid API Config"
        return self.value.replace("_", " ").title()


@dataclass
class ValidationIssue:
    """
    One validator finding.

    Attributes:
        kind: What the finding is about
        message: Human-readable description
        severity: Error blocks generation; Warning and Info do not
        node_id: Node the finding concerns, if any
        edge_id: Edge the finding concerns, if any
    """

    kind: ValidationErrorKind
    message: str
    severity: Severity = Severity.ERROR
    node_id: str | None = None
    edge_id: str | None = None

    def for_node(self, node_id: str) -> ValidationIssue:
        self.node_id = node_id
        return self

    def for_edge(self, edge_id: str) -> ValidationIssue:
        self.edge_id = edge_id
        return self

    def as_warning(self) -> ValidationIssue:
        self.severity = Severity.WARNING
        return self

    def as_info(self) -> ValidationIssue:
        self.severity = Severity.INFO
        return self

    @property
    def is_error(self) -> bool:
        return self.severity == Severity.ERROR

    @property
    def is_warning(self) -> bool:
        return self.severity == Severity.WARNING

    def __str__(self) -> str:
        prefix = f"[{self.severity.value.upper()}]"
        if self.node_id:
            return f"{prefix} Node {self.node_id}: {self.message}"
        if self.edge_id:
            return f"{prefix} Edge {self.edge_id}: {self.message}"
        return f"{prefix} {self.message}"


@dataclass
class ValidationResult:
    """Findings of one validator run."""

    issues: list[ValidationIssue] = field(default_factory=list)

    @property
    def errors(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity == Severity.ERROR]

    @property
    def warnings(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity == Severity.WARNING]

    @property
    def infos(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity == Severity.INFO]

    @property
    def is_valid(self) -> bool:
        """Valid unless there is at least one Error finding."""
        return not self.errors

    def raise_for_errors(self) -> None:
        """
        Opt-in conversion of Error findings into an exception.

        Raises:
            ValidationFailedError: If any finding has Error severity
        """
        if self.errors:
            raise ValidationFailedError(self.errors)


# =============================================================================
# Rules
# =============================================================================


@runtime_checkable
class ValidationRule(Protocol):
    """A pure check from a graph to a list of findings."""

    name: str

    def validate(self, graph: ProjectGraph) -> list[ValidationIssue]: ...


class NodeExistsRule:
    """Edges and group memberships must reference nodes that exist."""

    name = "Node Existence"

    def validate(self, graph: ProjectGraph) -> list[ValidationIssue]:
        issues: list[ValidationIssue] = []
        for edge in graph.edges.values():
            if not graph.has_node(edge.from_node):
                issues.append(
                    ValidationIssue(
                        ValidationErrorKind.DANGLING_EDGE,
                        f"Edge references non-existent source node: {edge.from_node}",
                    ).for_edge(edge.id)
                )
            if not graph.has_node(edge.to_node):
                issues.append(
                    ValidationIssue(
                        ValidationErrorKind.DANGLING_EDGE,
                        f"Edge references non-existent target node: {edge.to_node}",
                    ).for_edge(edge.id)
                )
        for group in graph.groups.values():
            for node_id in group.node_ids:
                if not graph.has_node(node_id):
                    issues.append(
                        ValidationIssue(
                            ValidationErrorKind.MISSING_NODE,
                            f"Group '{group.name}' references non-existent node: {node_id}",
                        )
                    )
        return issues


class EdgeValidityRule:
    """
    Port-connecting edges must name ports that exist.

    Relationship and Dependency edges join whole nodes and are skipped.
    """

    name = "Edge Validity"

    def validate(self, graph: ProjectGraph) -> list[ValidationIssue]:
        issues: list[ValidationIssue] = []
        for edge in graph.edges.values():
            if not edge.connection_type.connects_ports:
                continue
            source = graph.get_node(edge.from_node)
            if source is not None and source.get_output_port(edge.from_port) is None:
                issues.append(
                    ValidationIssue(
                        ValidationErrorKind.MISSING_PORT,
                        f"Source port '{edge.from_port}' not found on node '{source.name}'",
                    ).for_edge(edge.id)
                )
            target = graph.get_node(edge.to_node)
            if target is not None and target.get_input_port(edge.to_port) is None:
                issues.append(
                    ValidationIssue(
                        ValidationErrorKind.MISSING_PORT,
                        f"Target port '{edge.to_port}' not found on node '{target.name}'",
                    ).for_edge(edge.id)
                )
        return issues


class PortCompatibilityRule:
    """
    Both ends of a non-Relationship edge must be connectable ports.

    Edges whose ports cannot be resolved are left to EdgeValidityRule.
    """

    name = "Port Compatibility"

    def validate(self, graph: ProjectGraph) -> list[ValidationIssue]:
        issues: list[ValidationIssue] = []
        for edge in graph.edges.values():
            if edge.connection_type == ConnectionKind.RELATIONSHIP:
                continue
            source = graph.get_node(edge.from_node)
            target = graph.get_node(edge.to_node)
            if source is None or target is None:
                continue
            from_port = source.get_output_port(edge.from_port)
            to_port = target.get_input_port(edge.to_port)
            if from_port is None or to_port is None:
                continue
            if not from_port.can_connect_to(to_port):
                issues.append(
                    ValidationIssue(
                        ValidationErrorKind.INCOMPATIBLE_PORTS,
                        f"Port types are incompatible: {from_port.name} "
                        f"({from_port.data_type}) -> {to_port.name} ({to_port.data_type})",
                    ).for_edge(edge.id)
                )
        return issues


class DuplicateNameRule:
    """Node names must be unique within each component type."""

    name = "Unique Names"

    def validate(self, graph: ProjectGraph) -> list[ValidationIssue]:
        issues: list[ValidationIssue] = []
        seen: dict[str, dict[str, str]] = defaultdict(dict)
        for node in graph.nodes.values():
            names = seen[node.component_type]
            existing = names.get(node.name)
            if existing is not None:
                issues.append(
                    ValidationIssue(
                        ValidationErrorKind.DUPLICATE_NODE_NAME,
                        f"Duplicate node name '{node.name}' (conflicts with node {existing})",
                    ).for_node(node.id)
                )
            else:
                names[node.name] = node.id
        return issues


class EntityPrimaryKeyRule:
    """Entities should declare a primary key (Warning)."""

    name = "Entity Primary Key"

    def validate(self, graph: ProjectGraph) -> list[ValidationIssue]:
        return [
            ValidationIssue(
                ValidationErrorKind.MISSING_PRIMARY_KEY,
                f"Entity '{node.name}' has no primary key field",
            )
            .for_node(node.id)
            .as_warning()
            for node in graph.entity_nodes()
            if not node.primary_key_fields()
        ]


class CyclicDependencyRule:
    """
    DataFlow edges must not form a cycle.

    Runs a depth-first search over the DataFlow-only adjacency list and
    stops at the first back-edge, so at most one finding is reported.
    """

    name = "Cyclic Dependency"

    def validate(self, graph: ProjectGraph) -> list[ValidationIssue]:
        adjacency: dict[str, list[str]] = {node_id: [] for node_id in graph.nodes}
        for edge in graph.edges.values():
            if edge.is_data_flow and edge.from_node in adjacency:
                adjacency[edge.from_node].append(edge.to_node)

        visited: set[str] = set()
        for start in adjacency:
            if start in visited:
                continue
            back_edge_target = _find_back_edge(start, adjacency, visited)
            if back_edge_target is not None:
                return [
                    ValidationIssue(
                        ValidationErrorKind.CYCLIC_DEPENDENCY,
                        "Cyclic dependency detected in data flow",
                    ).for_node(back_edge_target)
                ]
        return []


def _find_back_edge(start: str, adjacency: dict[str, list[str]], visited: set[str]) -> str | None:
    """Iterative DFS; returns the node a back-edge points at, if any."""
    on_stack: set[str] = {start}
    visited.add(start)
    stack: list[tuple[str, int]] = [(start, 0)]
    while stack:
        node_id, index = stack[-1]
        neighbours = adjacency.get(node_id, [])
        if index >= len(neighbours):
            stack.pop()
            on_stack.discard(node_id)
            continue
        stack[-1] = (node_id, index + 1)
        neighbour = neighbours[index]
        if neighbour in on_stack:
            return neighbour
        if neighbour not in visited:
            visited.add(neighbour)
            on_stack.add(neighbour)
            stack.append((neighbour, 0))
    return None


class RequiredFieldsRule:
    """
    Required fields nothing can ever populate.

    - Warning: an entity field that is required, read-only, not a primary
      key and has no default value
    - Info: a login node with neither an ``email`` nor a ``username``
      field (the generated handler falls back to ``email``)
    """

    name = "Required Fields"

    def validate(self, graph: ProjectGraph) -> list[ValidationIssue]:
        issues: list[ValidationIssue] = []
        for node in graph.entity_nodes():
            for f in node.fields:
                if f.required and f.read_only and not f.is_primary_key and f.default_value is None:
                    issues.append(
                        ValidationIssue(
                            ValidationErrorKind.MISSING_REQUIRED_FIELD,
                            f"Field '{f.name}' on entity '{node.name}' is required and "
                            "read-only but has no default value",
                        )
                        .for_node(node.id)
                        .as_warning()
                    )
        for node in graph.find_nodes_by_type(LOGIN_TYPE):
            if not _has_identity_field(node):
                issues.append(
                    ValidationIssue(
                        ValidationErrorKind.MISSING_REQUIRED_FIELD,
                        f"Login '{node.name}' has no email or username field; "
                        "'email' will be used",
                    )
                    .for_node(node.id)
                    .as_info()
                )
        return issues


def _has_identity_field(node: Node) -> bool:
    return node.has_field("email") or node.has_field("username")


class RelationshipTargetRule:
    """Relationship edges should join two entity nodes (Warning)."""

    name = "Relationship Targets"

    def validate(self, graph: ProjectGraph) -> list[ValidationIssue]:
        issues: list[ValidationIssue] = []
        for edge in graph.edges.values():
            if not edge.is_relationship:
                continue
            ends = [graph.get_node(edge.from_node), graph.get_node(edge.to_node)]
            if any(n is None for n in ends):
                continue  # reported by NodeExistsRule
            for node in ends:
                if not node.is_entity:  # type: ignore[union-attr]
                    issues.append(
                        ValidationIssue(
                            ValidationErrorKind.INVALID_RELATIONSHIP,
                            f"Relationship edge touches non-entity node "
                            f"'{node.name}' ({node.component_type})",  # type: ignore[union-attr]
                        )
                        .for_edge(edge.id)
                        .as_warning()
                    )
        return issues


# =============================================================================
# Engine
# =============================================================================


def default_rules() -> list[ValidationRule]:
    return [
        NodeExistsRule(),
        EdgeValidityRule(),
        PortCompatibilityRule(),
        DuplicateNameRule(),
        EntityPrimaryKeyRule(),
        CyclicDependencyRule(),
        RequiredFieldsRule(),
        RelationshipTargetRule(),
    ]


class Validator:
    """
    Ordered set of rules plus reporting policy.

    Args:
        rules: Rules to run, in order (defaults to the built-in set)
        fail_fast: Make ``validate`` stop after the first rule that
            produces an Error (``validate_all`` always runs every rule)
        min_severity: Least severe finding to report
    """

    def __init__(
        self,
        rules: list[ValidationRule] | None = None,
        fail_fast: bool = False,
        min_severity: Severity = Severity.WARNING,
    ):
        self.rules: list[ValidationRule] = list(rules) if rules is not None else default_rules()
        self.fail_fast = fail_fast
        self.min_severity = min_severity

    @classmethod
    def default(cls) -> Validator:
        return cls()

    @classmethod
    def empty(cls) -> Validator:
        return cls(rules=[])

    def add_rule(self, rule: ValidationRule) -> Validator:
        self.rules.append(rule)
        return self

    def with_fail_fast(self, fail_fast: bool = True) -> Validator:
        self.fail_fast = fail_fast
        return self

    def with_min_severity(self, severity: Severity) -> Validator:
        self.min_severity = severity
        return self

    def _run(self, graph: ProjectGraph, stop_on_error: bool) -> list[ValidationIssue]:
        issues: list[ValidationIssue] = []
        for rule in self.rules:
            found = [i for i in rule.validate(graph) if i.severity.at_least(self.min_severity)]
            issues.extend(found)
            if found:
                logger.debug(f"Rule '{rule.name}' reported {len(found)} finding(s)")
            if stop_on_error and any(i.is_error for i in found):
                logger.debug(f"Stopping after rule '{rule.name}' (fail fast)")
                break
        return issues

    def validate_all(self, graph: ProjectGraph) -> list[ValidationIssue]:
        """Run every rule and return every reported finding, ignoring ``fail_fast``."""
        return self._run(graph, stop_on_error=False)

    def validate(self, graph: ProjectGraph) -> ValidationResult:
        """
        Run the rules and wrap the findings.

        Honours ``fail_fast``. The result is invalid iff at least one
        finding has Error severity.
        """
        result = ValidationResult(issues=self._run(graph, stop_on_error=self.fail_fast))
        logger.info(
            f"Validated '{graph.meta.name}': {len(result.errors)} error(s), "
            f"{len(result.warnings)} warning(s)"
        )
        return result


def validate(graph: ProjectGraph) -> ValidationResult:
    """Validate with the built-in rules at the default severity."""
    return Validator().validate(graph)


def get_all_issues(graph: ProjectGraph) -> list[ValidationIssue]:
    """Every finding of the built-in rules, Info included."""
    return Validator(min_severity=Severity.INFO).validate_all(graph)


def is_valid(graph: ProjectGraph) -> bool:
    return validate(graph).is_valid

"""
immortal Intermediate Representation (IR) types.

This package contains the project graph and everything it holds: the
data type system, fields, ports, nodes, edges, groups and project
metadata. All types are re-exported from this package.
"""

# Edges
from .edge import (
    DEPENDENCY_IN_PORT,
    DEPENDENCY_OUT_PORT,
    RELATIONSHIP_PORT,
    Edge,
    EdgeStyle,
)

# Fields
from .fields import (
    ConstraintKind,
    Field,
    FieldConstraint,
    ForeignKeyAction,
)

# Graph
from .graph import ProjectGraph

# Groups
from .group import Group

# Nodes
from .node import (
    API_PREFIX,
    AUTH_PREFIX,
    DATABASE_TYPE,
    ENTITY_TYPE,
    LOGIN_TYPE,
    LOGOUT_TYPE,
    REGISTER_TYPE,
    REST_TYPE,
    SESSION_TYPE,
    Node,
)

# Ports
from .ports import Port, PortCollection

# Project
from .project import (
    API_DOMAIN,
    AUTH_DOMAIN,
    DATABASE_DOMAIN,
    IR_VERSION,
    DomainConfig,
    ProjectMeta,
    api_preset,
    database_preset,
)

# Types
from .types import (
    ANY,
    BOOL,
    BYTES,
    DATE,
    DATETIME,
    FLOAT32,
    FLOAT64,
    INT32,
    INT64,
    JSON,
    STRING,
    TEXT,
    TIME,
    TRIGGER,
    UUID,
    ComponentCategory,
    ConfigValue,
    ConfigValueKind,
    ConnectionKind,
    DataType,
    DataTypeKind,
    PortDirection,
    PortKind,
    Position,
    Rect,
    RelationType,
    Size,
    UiHints,
    Validation,
    ValidationKind,
    is_compatible_with,
)

__all__ = [
    # Types
    "DataType",
    "DataTypeKind",
    "is_compatible_with",
    "STRING",
    "TEXT",
    "INT32",
    "INT64",
    "FLOAT32",
    "FLOAT64",
    "BOOL",
    "UUID",
    "DATETIME",
    "DATE",
    "TIME",
    "BYTES",
    "JSON",
    "ANY",
    "TRIGGER",
    "ConfigValue",
    "ConfigValueKind",
    "ComponentCategory",
    "ConnectionKind",
    "RelationType",
    "PortDirection",
    "PortKind",
    "Validation",
    "ValidationKind",
    "UiHints",
    "Position",
    "Size",
    "Rect",
    # Fields
    "Field",
    "FieldConstraint",
    "ConstraintKind",
    "ForeignKeyAction",
    # Ports
    "Port",
    "PortCollection",
    # Nodes
    "Node",
    "ENTITY_TYPE",
    "LOGIN_TYPE",
    "REGISTER_TYPE",
    "LOGOUT_TYPE",
    "SESSION_TYPE",
    "REST_TYPE",
    "DATABASE_TYPE",
    "AUTH_PREFIX",
    "API_PREFIX",
    # Edges
    "Edge",
    "EdgeStyle",
    "RELATIONSHIP_PORT",
    "DEPENDENCY_OUT_PORT",
    "DEPENDENCY_IN_PORT",
    # Groups
    "Group",
    # Project
    "ProjectMeta",
    "DomainConfig",
    "database_preset",
    "api_preset",
    "IR_VERSION",
    "DATABASE_DOMAIN",
    "API_DOMAIN",
    "AUTH_DOMAIN",
    # Graph
    "ProjectGraph",
]

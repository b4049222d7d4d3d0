"""
Built-in component definitions.

Sixteen components across five categories. Entity, login, register,
logout, session, REST endpoint and database build their nodes through the
``Node.new_*`` factories the generators are written against; the rest are
described here field by field.
"""

from __future__ import annotations

from immortal.core.ir import (
    ANY,
    BOOL,
    BYTES,
    INT64,
    JSON,
    STRING,
    ComponentCategory,
    DataType,
    Field,
    Node,
    Port,
)

from .definition import ComponentDefinition

# =============================================================================
# Auth
# =============================================================================


def login_component() -> ComponentDefinition:
    return ComponentDefinition(
        id="auth.login",
        name="Login",
        category=ComponentCategory.AUTH,
        description="Authenticate a user with email and password",
        icon="lock",
        tags=["auth", "login", "signin"],
        factory=Node.new_login,
    )


def register_component() -> ComponentDefinition:
    return ComponentDefinition(
        id="auth.register",
        name="Register",
        category=ComponentCategory.AUTH,
        description="Create a new user account",
        icon="user-plus",
        tags=["auth", "register", "signup"],
        factory=Node.new_register,
    )


def logout_component() -> ComponentDefinition:
    return ComponentDefinition(
        id="auth.logout",
        name="Logout",
        category=ComponentCategory.AUTH,
        description="End the current user session",
        icon="log-out",
        tags=["auth", "logout", "signout"],
        factory=Node.new_logout,
    )


def session_component() -> ComponentDefinition:
    return ComponentDefinition(
        id="auth.session",
        name="Session",
        category=ComponentCategory.AUTH,
        description="Track authenticated users across requests",
        icon="clock",
        tags=["auth", "session", "cookie"],
        factory=Node.new_session,
    )


# =============================================================================
# Data
# =============================================================================


def entity_component() -> ComponentDefinition:
    return ComponentDefinition(
        id="data.entity",
        name="Entity",
        category=ComponentCategory.DATA,
        description="Define a data model with fields and relationships",
        icon="entity",
        tags=["model", "table", "struct"],
        factory=Node.new_entity,
    )


def collection_component() -> ComponentDefinition:
    return (
        ComponentDefinition(
            id="data.collection",
            name="Collection",
            category=ComponentCategory.DATA,
            description="A queryable collection of entities with filtering and pagination",
            icon="list",
            tags=["list", "query", "filter"],
        )
        .with_input(Port.data_in("entity_type", DataType.entity("Any"), name="Entity Type").mark_required())
        .with_input(Port.data_in("filter", JSON, name="Filter"))
        .with_input(Port.trigger_in("refresh", name="Refresh"))
        .with_output(Port.data_out("items", DataType.array(ANY), name="Items"))
        .with_output(Port.data_out("count", INT64, name="Count"))
        .with_output(Port.data_out("page_info", JSON, name="Page Info"))
        .with_output(Port.trigger_out("on_load", name="On Load"))
        .with_output(Port.trigger_out("on_error", name="On Error"))
        .with_config("page_size", 20)
        .with_config("default_sort", "")
        .with_config("auto_load", True)
        .with_config("cache", False)
        .with_config("cache_ttl", 300)
    )


def query_component() -> ComponentDefinition:
    return (
        ComponentDefinition(
            id="data.query",
            name="Query",
            category=ComponentCategory.DATA,
            description="Build and execute database queries with conditions and joins",
            icon="search",
            tags=["query", "sql", "select"],
        )
        .with_input(Port.data_in("source", DataType.entity("Any"), name="Source").mark_required())
        .with_input(Port.data_in("params", JSON, name="Parameters"))
        .with_input(Port.trigger_in("execute", name="Execute"))
        .with_output(Port.data_out("results", DataType.array(ANY), name="Results"))
        .with_output(Port.data_out("first", DataType.optional(ANY), name="First"))
        .with_output(Port.trigger_out("on_complete", name="On Complete"))
        .with_output(Port.trigger_out("on_error", name="On Error"))
        .with_config("query_type", "select")
        .with_config("limit", 100)
        .with_config("distinct", False)
    )


# =============================================================================
# API
# =============================================================================


def rest_endpoint_component() -> ComponentDefinition:
    return ComponentDefinition(
        id="api.rest",
        name="REST Endpoint",
        category=ComponentCategory.API,
        description="Define a RESTful API endpoint with HTTP methods",
        icon="globe",
        tags=["http", "rest", "api"],
        factory=Node.new_rest_endpoint,
    )


def graphql_component() -> ComponentDefinition:
    return (
        ComponentDefinition(
            id="api.graphql",
            name="GraphQL",
            category=ComponentCategory.API,
            description="Define a GraphQL API with queries, mutations, and subscriptions",
            icon="graphql",
            tags=["graphql", "api", "query"],
        )
        .with_field(Field.text("schema").with_label("Schema").with_description("GraphQL schema definition"))
        .with_input(Port.data_in("variables", JSON, name="Variables"))
        .with_input(Port.data_in("context", ANY, name="Context"))
        .with_input(Port.trigger_in("execute", name="Execute"))
        .with_output(Port.data_out("data", JSON, name="Data"))
        .with_output(Port.data_out("errors", DataType.array(JSON), name="Errors"))
        .with_output(Port.trigger_out("on_query", name="On Query"))
        .with_output(Port.trigger_out("on_mutation", name="On Mutation"))
        .with_config("operation_type", "query")
        .with_config("method", "POST")
        .with_config("path", "/graphql")
        .with_config("introspection", True)
        .with_config("playground", True)
        .with_config("max_depth", 10)
    )


def websocket_component() -> ComponentDefinition:
    return (
        ComponentDefinition(
            id="api.websocket",
            name="WebSocket",
            category=ComponentCategory.API,
            description="Real-time bidirectional communication over WebSocket",
            icon="radio",
            tags=["websocket", "realtime", "api"],
        )
        .with_input(Port.data_in("send", ANY, name="Send"))
        .with_input(Port.trigger_in("broadcast", name="Broadcast"))
        .with_output(Port.data_out("message", ANY, name="Message"))
        .with_output(Port.trigger_out("on_connect", name="On Connect"))
        .with_output(Port.trigger_out("on_disconnect", name="On Disconnect"))
        .with_output(Port.trigger_out("on_message", name="On Message"))
        .with_config("path", "/ws")
        .with_config("auth_required", False)
        .with_config("heartbeat_secs", 30)
    )


# =============================================================================
# Storage
# =============================================================================


def database_component() -> ComponentDefinition:
    return ComponentDefinition(
        id="storage.database",
        name="Database",
        category=ComponentCategory.STORAGE,
        description="Database connection and configuration for data persistence",
        icon="database",
        tags=["persistence", "sql", "data"],
        factory=Node.new_database,
    )


def cache_component() -> ComponentDefinition:
    return (
        ComponentDefinition(
            id="storage.cache",
            name="Cache",
            category=ComponentCategory.STORAGE,
            description="In-memory or distributed caching for performance optimization",
            icon="zap",
            tags=["performance", "memory", "redis"],
        )
        .with_input(Port.data_in("key", STRING, name="Key").mark_required())
        .with_input(Port.data_in("value", ANY, name="Value"))
        .with_input(Port.data_in("ttl", INT64, name="TTL"))
        .with_input(Port.trigger_in("get", name="Get"))
        .with_input(Port.trigger_in("set", name="Set"))
        .with_input(Port.trigger_in("delete", name="Delete"))
        .with_output(Port.data_out("value", DataType.optional(ANY), name="Value"))
        .with_output(Port.data_out("hit", BOOL, name="Cache Hit"))
        .with_output(Port.trigger_out("on_hit", name="On Hit"))
        .with_output(Port.trigger_out("on_miss", name="On Miss"))
        .with_config("backend", "memory")
        .with_config("default_ttl", 3600)
        .with_config("max_entries", 10000)
    )


def file_storage_component() -> ComponentDefinition:
    return (
        ComponentDefinition(
            id="storage.file",
            name="File Storage",
            category=ComponentCategory.STORAGE,
            description="Store and retrieve files locally or in object storage",
            icon="file",
            tags=["files", "upload", "s3"],
        )
        .with_input(Port.data_in("path", STRING, name="Path").mark_required())
        .with_input(Port.data_in("content", BYTES, name="Content"))
        .with_input(Port.trigger_in("upload", name="Upload"))
        .with_input(Port.trigger_in("download", name="Download"))
        .with_output(Port.data_out("url", STRING, name="URL"))
        .with_output(Port.data_out("content", BYTES, name="Content"))
        .with_output(Port.trigger_out("on_complete", name="On Complete"))
        .with_output(Port.trigger_out("on_error", name="On Error"))
        .with_config("backend", "local")
        .with_config("base_path", "./uploads")
        .with_config("max_size_mb", 10)
    )


# =============================================================================
# Logic
# =============================================================================


def validator_component() -> ComponentDefinition:
    return (
        ComponentDefinition(
            id="logic.validator",
            name="Validator",
            category=ComponentCategory.LOGIC,
            description="Validate data against configurable rules",
            icon="check",
            tags=["validation", "rules", "check"],
        )
        .with_field(
            Field.text("rules_json")
            .with_label("Validation Rules")
            .with_description("JSON object mapping field names to validation rules")
        )
        .with_input(Port.data_in("data", ANY, name="Data").mark_required())
        .with_input(Port.trigger_in("validate", name="Validate"))
        .with_input(Port.data_in("rules", JSON, name="Rules"))
        .with_output(Port.data_out("data", ANY, name="Valid Data"))
        .with_output(Port.data_out("is_valid", BOOL, name="Is Valid"))
        .with_output(Port.data_out("errors", DataType.array(STRING), name="Errors"))
        .with_output(Port.trigger_out("valid", name="On Valid"))
        .with_output(Port.trigger_out("invalid", name="On Invalid"))
        .with_config("fail_fast", False)
        .with_config("trim_strings", True)
        .with_config("allow_unknown_fields", False)
    )


def transformer_component() -> ComponentDefinition:
    return (
        ComponentDefinition(
            id="logic.transformer",
            name="Transformer",
            category=ComponentCategory.LOGIC,
            description="Transform and map data between formats",
            icon="shuffle",
            tags=["transform", "map", "convert"],
        )
        .with_field(
            Field.text("mapping")
            .with_label("Field Mapping")
            .with_description("JSON mapping from target fields to source fields or expressions")
        )
        .with_input(Port.data_in("input", ANY, name="Input").mark_required())
        .with_input(Port.trigger_in("transform", name="Transform"))
        .with_output(Port.data_out("output", ANY, name="Output"))
        .with_output(Port.trigger_out("success", name="On Success"))
        .with_output(Port.trigger_out("error", name="On Error"))
        .with_config("mode", "mapping")
        .with_config("preserve_unmapped", False)
        .with_config("null_on_missing", True)
    )


def condition_component() -> ComponentDefinition:
    return (
        ComponentDefinition(
            id="logic.condition",
            name="Condition",
            category=ComponentCategory.LOGIC,
            description="Conditional branching based on an expression",
            icon="git-branch",
            tags=["condition", "if", "branch"],
        )
        .with_field(Field.string("expression").mark_required().with_label("Expression"))
        .with_input(Port.data_in("value", ANY, name="Value"))
        .with_input(Port.trigger_in("evaluate", name="Evaluate"))
        .with_output(Port.data_out("result", BOOL, name="Result"))
        .with_output(Port.trigger_out("true", name="True"))
        .with_output(Port.trigger_out("false", name="False"))
        .with_config("operator", "equals")
    )


def builtin_components() -> list[ComponentDefinition]:
    """Every built-in definition, grouped by category."""
    return [
        login_component(),
        register_component(),
        logout_component(),
        session_component(),
        entity_component(),
        collection_component(),
        query_component(),
        rest_endpoint_component(),
        graphql_component(),
        websocket_component(),
        database_component(),
        cache_component(),
        file_storage_component(),
        validator_component(),
        transformer_component(),
        condition_component(),
    ]

"""
Rust code generation for immortal project graphs.

The generator validates a graph, then renders Jinja2 templates into a
GeneratedProject (relative path -> file text) that can be written to disk.
"""

from .auth import AuthConfig, AuthGenerator, AuthRoute, GeneratedAuth, generate_auth_routes
from .config import DatabaseBackend, Framework, GeneratorConfig
from .generator import CodeGenerator, Endpoint, build_dependencies, generate
from .migrations import (
    Migration,
    MigrationConfig,
    MigrationGenerator,
    config_value_to_sql,
    generate_all_migrations,
    sql_type,
)
from .naming import (
    rust_field_type,
    rust_ident,
    rust_type,
    to_camel_case,
    to_pascal_case,
    to_screaming_snake_case,
    to_snake_case,
)
from .project import GeneratedProject

__all__ = [
    # Config
    "GeneratorConfig",
    "Framework",
    "DatabaseBackend",
    # Generator
    "CodeGenerator",
    "Endpoint",
    "build_dependencies",
    "generate",
    "GeneratedProject",
    # Auth
    "AuthConfig",
    "AuthGenerator",
    "AuthRoute",
    "GeneratedAuth",
    "generate_auth_routes",
    # Migrations
    "Migration",
    "MigrationConfig",
    "MigrationGenerator",
    "config_value_to_sql",
    "generate_all_migrations",
    "sql_type",
    # Naming
    "to_snake_case",
    "to_pascal_case",
    "to_camel_case",
    "to_screaming_snake_case",
    "rust_ident",
    "rust_type",
    "rust_field_type",
]

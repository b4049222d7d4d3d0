"""
Project code generator.

Compiles a validated ProjectGraph into a complete Rust web service:
Cargo manifest, entry point, library root, config and error modules,
one model per entity, the auth module, one handler per API endpoint,
the router, SQL migrations, ``.env.example`` and a README.

Generation is deterministic: the same graph and config always produce the
same file map.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from immortal.core.errors import ValidationFailedError
from immortal.core.ir import API_PREFIX, AUTH_PREFIX, Node, ProjectGraph
from immortal.core.validator import Severity, Validator

from .auth import AuthConfig, AuthGenerator, GeneratedAuth, auth_routes
from .config import DatabaseBackend, Framework, GeneratorConfig
from .migrations import MigrationConfig, MigrationGenerator
from .naming import rust_ident, to_snake_case
from .project import GeneratedProject
from .templates import render

logger = logging.getLogger(__name__)

_HTTP_METHODS = ("GET", "POST", "PUT", "DELETE", "PATCH")
_BODY_METHODS = ("POST", "PUT", "PATCH")


@dataclass
class Endpoint:
    """Template context for one API endpoint node."""

    name: str
    module: str
    handler: str
    method: str
    path: str
    file_path: str

    @property
    def method_fn(self) -> str:
        """Routing function name, e.g. ``get`` for ``routing::get``."""
        return self.method.lower()

    @property
    def has_body(self) -> bool:
        return self.method in _BODY_METHODS


def _dep(version: str, features: list[str] | None = None) -> str:
    if not features:
        return f'"{version}"'
    joined = ", ".join(f'"{f}"' for f in features)
    return f'{{ version = "{version}", features = [{joined}] }}'


def build_dependencies(
    framework: Framework, database: DatabaseBackend, auth: AuthConfig | None
) -> list[tuple[str, str]]:
    """
    Cargo dependencies as (crate, requirement) pairs, in manifest order.

    ``auth`` is None when the project has no auth nodes.
    """
    deps = [
        ("tokio", _dep("1", ["full"])),
        ("serde", _dep("1", ["derive"])),
        ("serde_json", _dep("1")),
        ("thiserror", _dep("1")),
        ("anyhow", _dep("1")),
        ("tracing", _dep("0.1")),
        ("tracing-subscriber", _dep("0.3", ["env-filter"])),
        ("uuid", _dep("1", ["v4", "serde"])),
        ("chrono", _dep("0.4", ["serde"])),
        ("dotenv", _dep("0.15")),
    ]

    if framework == Framework.AXUM:
        deps.append(("axum", _dep("0.7", ["macros"])))
        deps.append(("tower", _dep("0.4")))
        deps.append(("tower-http", _dep("0.5", ["cors", "trace"])))
    elif framework == Framework.ACTIX:
        deps.append(("actix-web", _dep("4")))
        deps.append(("actix-rt", _dep("2")))

    deps.append(("sqlx", _dep("0.7", ["runtime-tokio", database.value, "uuid", "chrono", "migrate"])))

    if auth is not None:
        if auth.use_jwt:
            deps.append(("jsonwebtoken", _dep("9")))
        if auth.use_argon2:
            deps.append(("argon2", _dep("0.5")))
        else:
            deps.append(("bcrypt", _dep("0.15")))
        deps.append(("async-trait", _dep("0.1")))
        if framework == Framework.AXUM and not auth.use_jwt:
            deps.append(("tower-sessions", _dep("0.12")))
        if framework == Framework.ACTIX:
            if auth.use_jwt:
                deps.append(("actix-web-httpauth", _dep("0.8")))
            else:
                deps.append(("actix-session", _dep("0.9", ["cookie-session"])))

    return deps


def endpoint_for(node: Node) -> Endpoint:
    """
    Endpoint context for an ``api.*`` node.

    The method comes from the ``method`` config (GET when missing or
    unknown); the path from the ``path`` config, else a ``path`` field
    default, else "/".
    """
    method = (node.get_config_str("method", "GET") or "GET").upper()
    if method not in _HTTP_METHODS:
        method = "GET"

    path = node.get_config_str("path")
    if not path:
        path_field = node.get_field("path")
        if path_field is not None and path_field.default_value is not None:
            path = path_field.default_value.as_str()
    if not path:
        path = "/"

    snake = to_snake_case(node.name) or "endpoint"
    module = rust_ident(snake)
    return Endpoint(
        name=node.name,
        module=module,
        handler=module,
        method=method,
        path=path,
        file_path=f"src/handlers/{snake}.rs",
    )


class CodeGenerator:
    """
    Generates a Rust project from a ProjectGraph.

    Args:
        config: Generator options (framework, database, migrations ...)
        auth_config: Auth options; its framework is replaced by the
            resolved project framework
        validator: Validator run before generation; any Error aborts
    """

    def __init__(
        self,
        config: GeneratorConfig | None = None,
        auth_config: AuthConfig | None = None,
        validator: Validator | None = None,
    ):
        self.config = config or GeneratorConfig()
        self.auth_config = auth_config or AuthConfig()
        self.validator = validator or Validator(min_severity=Severity.INFO)

    def generate(self, graph: ProjectGraph) -> GeneratedProject:
        """
        Validate ``graph`` and compile it into a file map.

        Raises:
            ValidationFailedError: If validation reports any Error
            CodeGenerationError: If a template fails to render
        """
        errors = [issue for issue in self.validator.validate_all(graph) if issue.is_error]
        if errors:
            logger.warning(f"Generation aborted: {len(errors)} validation error(s)")
            raise ValidationFailedError(errors)

        meta = graph.meta
        framework = self.config.resolve_framework(meta)
        database = self.config.resolve_database(meta)
        logger.info(
            f"Generating '{meta.name}' for {framework.display_name} + {database.display_name}"
        )

        project = GeneratedProject(name=meta.name)
        entities = self._unique(graph.entity_nodes(), project, "entity")
        auth_nodes = graph.find_nodes_by_prefix(AUTH_PREFIX)
        endpoints = self._endpoints(graph.find_nodes_by_prefix(API_PREFIX), project)
        has_migrations = bool(entities) and self.config.migrations_enabled(meta)

        auth_config = self.auth_config.model_copy(update={"framework": framework})
        auth: GeneratedAuth | None = None
        if auth_nodes:
            auth = AuthGenerator(auth_config).generate_for_nodes(auth_nodes)
            for warning in auth.warnings:
                project.add_warning(warning)
        has_auth_routes = auth is not None and bool(auth.routes)

        crate_name = to_snake_case(meta.name) or "app"
        description = meta.description or f"{meta.name} - generated by Immortal Engine"
        default_port = 8080 if framework == Framework.ACTIX else 3000

        modules = ["config", "error"]
        if entities:
            modules.append("models")
        if auth is not None:
            modules.append("auth")
        if endpoints:
            modules.extend(["handlers", "routes"])

        project.add_file(
            "Cargo.toml",
            render(
                "cargo_toml.j2",
                crate_name=crate_name,
                version=meta.version,
                description=description,
                dependencies=build_dependencies(
                    framework, database, auth_config if auth is not None else None
                ),
            ),
        )
        project.add_file(
            "src/main.rs",
            render(
                "main_rs.j2",
                name=meta.name,
                description=description,
                framework=framework.value,
                crate_name=crate_name,
            ),
        )
        project.add_file(
            "src/lib.rs",
            render(
                "lib_rs.j2",
                name=meta.name,
                modules=modules,
                framework=framework.value,
                use_jwt=auth is not None and auth_config.use_jwt,
                has_api=bool(endpoints),
                has_auth_routes=has_auth_routes,
            ),
        )
        project.add_file(
            "src/config.rs",
            render(
                "config_rs.j2",
                default_port=default_port,
                database_name=database.display_name,
                pool_type=database.pool_type,
                has_migrations=has_migrations,
                jwt_secret_env=auth_config.jwt_secret_env,
                generate_tests=self.config.generate_tests,
            ),
        )
        project.add_file("src/error.rs", render("error_rs.j2", framework=framework.value))

        if entities:
            self._generate_models(entities, project)

        if auth is not None:
            project.add_file("src/auth/mod.rs", auth.to_module())
            if auth.routes:
                project.add_file("src/auth/routes.rs", auth.routes)

        if endpoints:
            self._generate_handlers(endpoints, framework, project)

        if has_migrations:
            generator = MigrationGenerator(
                MigrationConfig(backend=database),
                base_timestamp=self.config.migration_timestamp or meta.created_at,
            )
            for migration in generator.generate(entities):
                project.add_file(f"migrations/{migration.filename}", migration.to_sql())

        project.add_file(
            ".env.example",
            render(
                "env_example.j2",
                name=meta.name,
                default_port=default_port,
                database_name=database.display_name,
                database_url=database.example_url,
                has_auth=auth is not None,
                jwt_secret_env=auth_config.jwt_secret_env,
                jwt_expiry_hours=auth_config.jwt_expiry_hours,
            ),
        )

        # generate_docs only adds the model and endpoint reference sections
        project.add_file(
            "README.md",
            render(
                "readme_md.j2",
                name=meta.name,
                description=description,
                framework_name=framework.display_name,
                database_name=database.display_name,
                has_migrations=has_migrations,
                entities=entities,
                endpoints=endpoints,
                has_auth=auth is not None,
                auth_routes=auth_routes(auth_nodes) if has_auth_routes else [],
                reference=self.config.generate_docs,
            ),
        )

        logger.info(
            f"Generated {project.file_count()} files"
            + (f" with {len(project.warnings)} warning(s)" if project.warnings else "")
        )
        return project

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _unique(nodes: list[Node], project: GeneratedProject, kind: str) -> list[Node]:
        """Drop nodes whose file name collides with an earlier node's."""
        kept: list[Node] = []
        seen: set[str] = set()
        for node in nodes:
            key = to_snake_case(node.name)
            if key in seen:
                project.add_warning(f"Skipped {kind} '{node.name}': name collides with another {kind}")
                continue
            seen.add(key)
            kept.append(node)
        return kept

    def _endpoints(self, nodes: list[Node], project: GeneratedProject) -> list[Endpoint]:
        return [endpoint_for(node) for node in self._unique(nodes, project, "endpoint")]

    @staticmethod
    def _generate_models(entities: list[Node], project: GeneratedProject) -> None:
        project.add_file("src/models/mod.rs", render("models_mod_rs.j2", entities=entities))
        for entity in entities:
            project.add_file(
                f"src/models/{to_snake_case(entity.name)}.rs",
                render("model_rs.j2", entity=entity),
            )

    @staticmethod
    def _generate_handlers(
        endpoints: list[Endpoint], framework: Framework, project: GeneratedProject
    ) -> None:
        project.add_file("src/handlers/mod.rs", render("handlers_mod_rs.j2", endpoints=endpoints))
        for endpoint in endpoints:
            project.add_file(
                endpoint.file_path,
                render("handler_rs.j2", framework=framework.value, endpoint=endpoint),
            )
        project.add_file(
            "src/routes.rs",
            render("routes_rs.j2", framework=framework.value, endpoints=endpoints),
        )


def generate(graph: ProjectGraph, config: GeneratorConfig | None = None) -> GeneratedProject:
    """Generate a project with default auth options and validation."""
    return CodeGenerator(config).generate(graph)

"""
Authentication code generation.

Turns the graph's ``auth.*`` nodes into one Rust module: shared types and
utilities, framework-specific middleware, one handler per login, register
or logout node, and session management for the first session node.

Output depends only on the nodes and the AuthConfig passed in.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from pydantic import BaseModel

from immortal.core.ir import (
    AUTH_PREFIX,
    LOGIN_TYPE,
    LOGOUT_TYPE,
    REGISTER_TYPE,
    SESSION_TYPE,
    Field,
    Node,
    ProjectGraph,
)

from .config import Framework
from .naming import rust_field_type, rust_ident, rust_type, to_pascal_case, to_snake_case
from .templates import render

logger = logging.getLogger(__name__)

# Fields the storage layer owns; never part of a request body
SYSTEM_FIELDS = frozenset({"id", "created_at", "updated_at"})

# Fields the register handler consumes itself
_CREDENTIAL_FIELDS = frozenset({"email", "password", "confirm_password"})

_IDENTITY_FIELDS = ("email", "username")

_ROUTED_TYPES = (LOGIN_TYPE, REGISTER_TYPE, LOGOUT_TYPE)


class AuthConfig(BaseModel):
    """
    Options for auth code generation.

    Attributes:
        framework: Target web framework
        use_jwt: Issue JWTs; when False, auth state lives in server sessions
        jwt_secret_env: Environment variable holding the signing secret
        session_duration_secs: Token/session lifetime
        use_argon2: Hash passwords with argon2 (bcrypt otherwise)
        use_refresh_tokens: Also issue a refresh token on login
    """

    framework: Framework = Framework.AXUM
    use_jwt: bool = True
    jwt_secret_env: str = "JWT_SECRET"
    session_duration_secs: int = 86400
    use_argon2: bool = True
    use_refresh_tokens: bool = False

    @classmethod
    def axum(cls) -> AuthConfig:
        return cls(framework=Framework.AXUM)

    @classmethod
    def actix(cls) -> AuthConfig:
        return cls(framework=Framework.ACTIX)

    @property
    def jwt_expiry_hours(self) -> int:
        return max(1, self.session_duration_secs // 3600)


@dataclass
class AuthRoute:
    """One routed auth endpoint, relative to the ``/auth`` scope."""

    method: str
    path: str
    handler: str


@dataclass
class GeneratedAuth:
    """
    Pieces of the generated auth module.

    Attributes:
        imports: Framework ``use`` lines
        types: Error enum, user types and the UserStore trait
        utils: Password hashing, JWT helpers and input validators
        middleware: Extractors/middleware that resolve the current user
        handlers: Handler code, one entry per generated handler, node order
        session_code: Session types; empty without a session node
        routes: Content of ``auth/routes.rs``; empty when nothing is routed
        warnings: Nodes that were skipped and why
    """

    imports: str = ""
    types: str = ""
    utils: str = ""
    middleware: str = ""
    handlers: list[str] = field(default_factory=list)
    session_code: str = ""
    routes: str = ""
    warnings: list[str] = field(default_factory=list)

    @property
    def has_auth_code(self) -> bool:
        return bool(self.handlers or self.session_code)

    def to_module(self) -> str:
        """Assemble everything except the routes into ``auth/mod.rs``."""
        lines = ["//! Authentication module - Generated by Immortal Engine", ""]
        lines.append("use serde::{Deserialize, Serialize};")
        if self.imports.strip():
            lines.append(self.imports.rstrip("\n"))
        if self.routes:
            lines.extend(["", "pub mod routes;"])

        sections = (
            ("Auth Types", self.types),
            ("Auth Utilities", self.utils),
            ("Auth Middleware", self.middleware),
            ("Auth Handlers", "\n\n".join(h.rstrip("\n") for h in self.handlers)),
            ("Session Management", self.session_code),
        )
        for title, body in sections:
            if body.strip():
                lines.extend(["", f"// ========== {title} ==========", "", body.rstrip("\n")])
        return "\n".join(lines) + "\n"


def _request_field(field: Field, credential: bool = False) -> dict[str, str]:
    # Credentials are always plain strings, whatever the node declares
    if credential:
        type_name = rust_type(field.data_type.unwrap_optional())
    else:
        type_name = rust_field_type(field)
    return {"name": field.name, "ident": rust_ident(field.name), "rust_type": type_name}


def _body_fields(node: Node) -> list[Field]:
    return [f for f in node.fields if f.name not in SYSTEM_FIELDS]


def _with_credentials(node: Node, required: tuple[str, ...]) -> list[dict[str, str]]:
    """Request fields of ``node``, appending any of ``required`` it lacks."""
    fields = [_request_field(f, f.name in required) for f in _body_fields(node)]
    present = {f["name"] for f in fields}
    for name in required:
        if name not in present:
            fields.append(_request_field(Field.string(name), credential=True))
    return fields


def identity_field(node: Node) -> str:
    """Field a login node looks users up by: email, else username, else email."""
    for name in _IDENTITY_FIELDS:
        if node.has_field(name):
            return name
    return "email"


def auth_routes(auth_nodes: list[Node]) -> list[AuthRoute]:
    """Routes for the login/register/logout nodes, first node per handler name."""
    routes: list[AuthRoute] = []
    seen: set[str] = set()
    for node in auth_nodes:
        if node.component_type not in _ROUTED_TYPES:
            continue
        handler = rust_ident(node.name)
        if handler in seen:
            continue
        seen.add(handler)
        routes.append(AuthRoute(method="POST", path=f"/{to_snake_case(node.name)}", handler=handler))
    return routes


def generate_auth_routes(framework: Framework, auth_nodes: list[Node]) -> str:
    """
    Render ``auth/routes.rs`` for the given nodes.

    Returns an empty string for the custom framework or when no node is
    routable.
    """
    routes = auth_routes(auth_nodes)
    if framework == Framework.CUSTOM or not routes:
        return ""
    return render("auth/routes.j2", framework=framework.value, routes=routes)


class AuthGenerator:
    """Generates the auth module for a set of ``auth.*`` nodes."""

    def __init__(self, config: AuthConfig | None = None):
        self.config = config or AuthConfig()

    @property
    def framework(self) -> str:
        return self.config.framework.value

    def generate(self, graph: ProjectGraph) -> GeneratedAuth:
        return self.generate_for_nodes(graph.find_nodes_by_prefix(AUTH_PREFIX))

    def generate_for_nodes(self, nodes: list[Node]) -> GeneratedAuth:
        result = GeneratedAuth()
        auth_nodes = [n for n in nodes if n.is_auth]
        if not auth_nodes:
            return result

        result.imports = render("auth/imports.j2", framework=self.framework, config=self.config)
        create_user_fields = self._create_user_fields(auth_nodes)
        result.types = render(
            "auth/types.j2",
            framework=self.framework,
            create_user_fields=create_user_fields,
        )
        result.utils = render("auth/utils.j2", config=self.config)
        result.middleware = render("auth/middleware.j2", framework=self.framework, config=self.config)

        seen: set[str] = set()
        for node in auth_nodes:
            if node.component_type == SESSION_TYPE:
                if result.session_code:
                    result.warnings.append(
                        f"Session node '{node.name}' ignored: only the first session node is generated"
                    )
                else:
                    result.session_code = self._session(node)
                continue

            if node.component_type not in _ROUTED_TYPES:
                result.warnings.append(
                    f"No auth generator for component type '{node.component_type}' (node '{node.name}')"
                )
                continue

            handler = rust_ident(node.name)
            if handler in seen:
                result.warnings.append(
                    f"Auth node '{node.name}' skipped: handler '{handler}' already generated"
                )
                continue
            seen.add(handler)

            if node.component_type == LOGIN_TYPE:
                result.handlers.append(self._login(node, handler))
            elif node.component_type == REGISTER_TYPE:
                result.handlers.append(self._register(node, handler, create_user_fields))
            else:
                result.handlers.append(self._logout(node, handler))

        result.routes = generate_auth_routes(self.config.framework, auth_nodes)
        for warning in result.warnings:
            logger.warning(warning)
        logger.debug(f"Generated {len(result.handlers)} auth handler(s)")
        return result

    # =========================================================================
    # Per-node rendering
    # =========================================================================

    def _context(self, node: Node, handler: str) -> dict[str, object]:
        return {
            "framework": self.framework,
            "config": self.config,
            "node": node,
            "handler": handler,
            "prefix": to_pascal_case(node.name) or "Auth",
        }

    def _login(self, node: Node, handler: str) -> str:
        identity = identity_field(node)
        return render(
            "auth/login.j2",
            request_fields=_with_credentials(node, (identity, "password")),
            identity=rust_ident(identity),
            **self._context(node, handler),
        )

    def _register(self, node: Node, handler: str, create_user_fields: list[dict[str, str]]) -> str:
        request_fields = _with_credentials(node, ("email", "password"))
        has_confirm = node.has_field("confirm_password")
        if has_confirm:
            # confirm_password is compared as a plain string
            request_fields = [
                _request_field(Field.string(f["name"]), credential=True)
                if f["name"] == "confirm_password"
                else f
                for f in request_fields
            ]
        provided = {
            f["ident"]
            for f in request_fields
            if any(f["ident"] == c["ident"] and f["rust_type"] == c["rust_type"] for c in create_user_fields)
        }
        return render(
            "auth/register.j2",
            request_fields=request_fields,
            has_confirm=has_confirm,
            create_user_fields=create_user_fields,
            provided=provided,
            **self._context(node, handler),
        )

    def _logout(self, node: Node, handler: str) -> str:
        return render("auth/logout.j2", **self._context(node, handler))

    def _session(self, node: Node) -> str:
        duration = node.get_config_int("duration_secs", self.config.session_duration_secs)
        return render(
            "auth/session.j2",
            duration_secs=duration,
            cookie_name=node.get_config_str("cookie_name", "session_id"),
        )

    @staticmethod
    def _create_user_fields(auth_nodes: list[Node]) -> list[dict[str, str]]:
        """Extra CreateUser fields: every register field beyond the credentials."""
        fields: list[dict[str, str]] = []
        seen: set[str] = set()
        for node in auth_nodes:
            if node.component_type != REGISTER_TYPE:
                continue
            for f in _body_fields(node):
                if f.name in _CREDENTIAL_FIELDS or f.name in seen:
                    continue
                seen.add(f.name)
                fields.append(_request_field(f))
        return fields

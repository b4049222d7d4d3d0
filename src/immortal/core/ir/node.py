"""
Node definitions for the immortal IR.

A node is one component instance placed in the project graph: an entity,
an auth flow, an API endpoint, a storage backend. Its ``component_type``
(e.g. ``"data.entity"``) decides how validators and generators treat it.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field as PydanticField

from immortal.core.errors import InvalidComponentConfigError

from .fields import Field
from .ports import Port, PortCollection
from .types import (
    ANY,
    ComponentCategory,
    ConfigValue,
    DataType,
    Position,
    Size,
    Validation,
)

# Component type ids the engine itself gives meaning to
ENTITY_TYPE = "data.entity"
LOGIN_TYPE = "auth.login"
REGISTER_TYPE = "auth.register"
LOGOUT_TYPE = "auth.logout"
SESSION_TYPE = "auth.session"
REST_TYPE = "api.rest"
DATABASE_TYPE = "storage.database"

AUTH_PREFIX = "auth."
API_PREFIX = "api."

# Offset applied to duplicated nodes
DUPLICATE_OFFSET = 20.0


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Node(BaseModel):
    """
    An instance of a component type in the graph.

    The id is generated on creation and never changes. Names are chosen by
    the user and need not be unique; duplicate names within one component
    type are reported by the validator.
    """

    id: str = PydanticField(default_factory=lambda: str(uuid.uuid4()), frozen=True)
    component_type: str
    name: str
    position: Position = PydanticField(default_factory=Position)
    size: Size = PydanticField(default_factory=Size)
    fields: list[Field] = PydanticField(default_factory=list)
    ports: PortCollection = PydanticField(default_factory=PortCollection)
    config: dict[str, ConfigValue] = PydanticField(default_factory=dict)
    category: ComponentCategory = ComponentCategory.CUSTOM
    collapsed: bool = False
    locked: bool = False
    visible: bool = True
    description: str | None = None
    icon: str | None = None
    color: str | None = None
    tags: list[str] = PydanticField(default_factory=list)
    metadata: dict[str, Any] = PydanticField(default_factory=dict)
    z_index: int = 0
    group_id: str | None = None
    created_at: datetime = PydanticField(default_factory=_now)
    modified_at: datetime = PydanticField(default_factory=_now)

    # =========================================================================
    # Factories
    # =========================================================================

    @classmethod
    def new_entity(cls, name: str) -> Node:
        """Entity with a UUID primary key and an ``entity`` port on each side."""
        node = cls(
            component_type=ENTITY_TYPE,
            name=name,
            category=ComponentCategory.DATA,
            icon="entity",
        )
        node.fields.append(Field.uuid("id").primary_key().with_label("ID"))
        node.ports.add_input(Port.data_in("entity", DataType.entity(name), name=name))
        node.ports.add_output(Port.data_out("entity", DataType.entity(name), name=name))
        return node

    @classmethod
    def new_login(cls, name: str = "Login") -> Node:
        node = cls(component_type=LOGIN_TYPE, name=name, category=ComponentCategory.AUTH, icon="lock")
        node.fields.append(
            Field.string("email")
            .mark_required()
            .with_label("Email")
            .with_placeholder("Enter email")
            .with_validation(Validation.email())
        )
        node.fields.append(
            Field.string("password")
            .mark_required()
            .secret()
            .with_label("Password")
            .with_placeholder("Enter password")
            .with_validation(Validation.min_length(8))
        )
        node.ports.add_input(Port.trigger_in("submit", name="Submit"))
        node.ports.add_output(Port.data_out("user", DataType.entity("User"), name="User"))
        node.ports.add_output(Port.trigger_out("success", name="On Success"))
        node.ports.add_output(Port.trigger_out("failure", name="On Failure"))
        return node

    @classmethod
    def new_register(cls, name: str = "Register") -> Node:
        node = cls(
            component_type=REGISTER_TYPE, name=name, category=ComponentCategory.AUTH, icon="user-plus"
        )
        node.fields.append(
            Field.string("username")
            .mark_required()
            .with_label("Username")
            .with_placeholder("Choose a username")
            .with_validation(Validation.min_length(3))
        )
        node.fields.append(
            Field.string("email")
            .mark_required()
            .with_label("Email")
            .with_placeholder("Enter email")
            .with_validation(Validation.email())
        )
        node.fields.append(
            Field.string("password")
            .mark_required()
            .secret()
            .with_label("Password")
            .with_placeholder("Create password")
            .with_validation(Validation.min_length(8))
        )
        node.fields.append(
            Field.string("confirm_password")
            .mark_required()
            .secret()
            .with_label("Confirm Password")
            .with_placeholder("Confirm password")
        )
        node.ports.add_input(Port.trigger_in("submit", name="Submit"))
        node.ports.add_output(Port.data_out("user", DataType.entity("User"), name="User"))
        node.ports.add_output(Port.trigger_out("success", name="On Success"))
        node.ports.add_output(Port.trigger_out("failure", name="On Failure"))
        return node

    @classmethod
    def new_logout(cls, name: str = "Logout") -> Node:
        node = cls(component_type=LOGOUT_TYPE, name=name, category=ComponentCategory.AUTH, icon="log-out")
        node.ports.add_input(Port.trigger_in("submit", name="Submit"))
        node.ports.add_output(Port.trigger_out("success", name="On Success"))
        return node

    @classmethod
    def new_session(cls, name: str = "Session") -> Node:
        node = cls(component_type=SESSION_TYPE, name=name, category=ComponentCategory.AUTH, icon="clock")
        node.set_config("duration_secs", 86400)
        node.set_config("cookie_name", "session_id")
        node.ports.add_input(Port.data_in("user", DataType.entity("User"), name="User"))
        node.ports.add_output(Port.data_out("session", ANY, name="Session"))
        node.ports.add_output(Port.trigger_out("expired", name="On Expired"))
        return node

    @classmethod
    def new_rest_endpoint(cls, name: str) -> Node:
        node = cls(component_type=REST_TYPE, name=name, category=ComponentCategory.API, icon="globe")
        node.set_config("method", "GET")
        node.set_config("path", f"/{name.lower()}")
        node.set_config("auth_required", False)
        node.ports.add_input(Port.data_in("request", ANY, name="Request"))
        node.ports.add_output(Port.data_out("response", ANY, name="Response"))
        node.ports.add_output(Port.trigger_out("on_request", name="On Request"))
        return node

    @classmethod
    def new_database(cls, name: str) -> Node:
        node = cls(
            component_type=DATABASE_TYPE, name=name, category=ComponentCategory.STORAGE, icon="database"
        )
        node.set_config("backend", "postgres")
        node.set_config("connection_string", "")
        node.ports.add_input(Port.data_in("query", ANY, name="Query"))
        node.ports.add_output(Port.data_out("result", ANY, name="Result"))
        return node

    # =========================================================================
    # Builders
    # =========================================================================

    def with_position(self, x: float, y: float) -> Node:
        self.position = Position(x=x, y=y)
        return self

    def with_size(self, width: float, height: float) -> Node:
        self.size = Size(width=width, height=height)
        return self

    def with_field(self, field: Field) -> Node:
        self.add_field(field)
        return self

    def with_input(self, port: Port) -> Node:
        self.ports.add_input(port)
        return self

    def with_output(self, port: Port) -> Node:
        self.ports.add_output(port)
        return self

    def with_config(self, key: str, value: Any) -> Node:
        self.set_config(key, value)
        return self

    def with_category(self, category: ComponentCategory) -> Node:
        self.category = category
        return self

    def with_description(self, description: str) -> Node:
        self.description = description
        return self

    def with_tag(self, tag: str) -> Node:
        if tag not in self.tags:
            self.tags.append(tag)
        return self

    # =========================================================================
    # Queries
    # =========================================================================

    @property
    def is_entity(self) -> bool:
        return self.component_type == ENTITY_TYPE

    @property
    def is_auth(self) -> bool:
        return self.component_type.startswith(AUTH_PREFIX)

    @property
    def is_api(self) -> bool:
        return self.component_type.startswith(API_PREFIX)

    @property
    def domain(self) -> str:
        """Namespace part of the component type (``"data"`` for ``"data.entity"``)."""
        return self.component_type.split(".", 1)[0]

    def get_field(self, name: str) -> Field | None:
        return next((f for f in self.fields if f.name == name), None)

    def has_field(self, name: str) -> bool:
        return self.get_field(name) is not None

    def primary_key_fields(self) -> list[Field]:
        return [f for f in self.fields if f.is_primary_key]

    def get_input_port(self, port_id: str) -> Port | None:
        return self.ports.get_input(port_id)

    def get_output_port(self, port_id: str) -> Port | None:
        return self.ports.get_output(port_id)

    def get_config(self, key: str) -> ConfigValue | None:
        return self.config.get(key)

    def get_config_str(self, key: str, default: str | None = None) -> str | None:
        value = self.config.get(key)
        result = value.as_str() if value is not None else None
        return default if result is None else result

    def get_config_bool(self, key: str, default: bool = False) -> bool:
        value = self.config.get(key)
        result = value.as_bool() if value is not None else None
        return default if result is None else result

    def get_config_int(self, key: str, default: int | None = None) -> int | None:
        value = self.config.get(key)
        result = value.as_int() if value is not None else None
        return default if result is None else result

    @property
    def bounds(self) -> tuple[float, float, float, float]:
        """(x, y, width, height)"""
        return (self.position.x, self.position.y, self.size.width, self.size.height)

    # =========================================================================
    # Mutations
    # =========================================================================

    def touch(self) -> None:
        self.modified_at = _now()

    def translate(self, dx: float, dy: float) -> None:
        """Move the node; locked nodes stay put."""
        if self.locked:
            return
        self.position = self.position.offset(dx, dy)
        self.touch()

    def add_field(self, field: Field) -> None:
        if self.has_field(field.name):
            raise InvalidComponentConfigError(
                f"Node '{self.name}' already has a field named '{field.name}'"
            )
        self.fields.append(field)
        self.touch()

    def remove_field(self, name: str) -> Field | None:
        """Remove a field by name, returning it if it existed."""
        for index, field in enumerate(self.fields):
            if field.name == name:
                self.touch()
                return self.fields.pop(index)
        return None

    def set_config(self, key: str, value: Any) -> None:
        self.config[key] = ConfigValue.from_native(value)
        self.touch()

    def duplicate(self) -> Node:
        """
        Copy this node under a fresh id.

        The copy is named "<name> (copy)", offset by DUPLICATE_OFFSET on
        both axes, and leaves any group.
        """
        data = self.model_dump(exclude={"id", "created_at", "modified_at"})
        copy = Node.model_validate(data)
        copy.name = f"{self.name} (copy)"
        copy.position = self.position.offset(DUPLICATE_OFFSET, DUPLICATE_OFFSET)
        copy.group_id = None
        for field in copy.fields:
            field.id = str(uuid.uuid4())
        return copy

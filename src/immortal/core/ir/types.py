"""
Value vocabulary for the immortal IR.

This module contains the data type system, configuration values, field
validation rules, and the small enums and geometry types shared by every
other IR module.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

# =============================================================================
# Data types
# =============================================================================


class DataTypeKind(str, Enum):
    """Enumeration of data types a field or port can carry."""

    STRING = "string"
    TEXT = "text"
    INT32 = "int32"
    INT64 = "int64"
    FLOAT32 = "float32"
    FLOAT64 = "float64"
    BOOL = "bool"
    UUID = "uuid"
    DATETIME = "datetime"
    DATE = "date"
    TIME = "time"
    BYTES = "bytes"
    JSON = "json"
    # Composites
    OPTIONAL = "optional"
    ARRAY = "array"
    MAP = "map"
    REFERENCE = "reference"
    ENTITY = "entity"
    ANY = "any"
    TRIGGER = "trigger"
    CUSTOM = "custom"


_PRIMITIVE_KINDS = frozenset(
    {
        DataTypeKind.STRING,
        DataTypeKind.TEXT,
        DataTypeKind.INT32,
        DataTypeKind.INT64,
        DataTypeKind.FLOAT32,
        DataTypeKind.FLOAT64,
        DataTypeKind.BOOL,
        DataTypeKind.UUID,
        DataTypeKind.DATETIME,
        DataTypeKind.DATE,
        DataTypeKind.TIME,
        DataTypeKind.BYTES,
        DataTypeKind.JSON,
    }
)

_NUMERIC_KINDS = frozenset(
    {DataTypeKind.INT32, DataTypeKind.INT64, DataTypeKind.FLOAT32, DataTypeKind.FLOAT64}
)

# (source, target) pairs that widen without loss
_WIDENINGS = frozenset(
    {
        (DataTypeKind.INT32, DataTypeKind.INT64),
        (DataTypeKind.FLOAT32, DataTypeKind.FLOAT64),
        (DataTypeKind.INT32, DataTypeKind.FLOAT64),
        (DataTypeKind.INT64, DataTypeKind.FLOAT64),
    }
)

_DISPLAY_NAMES = {
    DataTypeKind.STRING: "String",
    DataTypeKind.TEXT: "Text",
    DataTypeKind.INT32: "Int32",
    DataTypeKind.INT64: "Int64",
    DataTypeKind.FLOAT32: "Float32",
    DataTypeKind.FLOAT64: "Float64",
    DataTypeKind.BOOL: "Bool",
    DataTypeKind.UUID: "Uuid",
    DataTypeKind.DATETIME: "DateTime",
    DataTypeKind.DATE: "Date",
    DataTypeKind.TIME: "Time",
    DataTypeKind.BYTES: "Bytes",
    DataTypeKind.JSON: "Json",
    DataTypeKind.ANY: "Any",
    DataTypeKind.TRIGGER: "Trigger",
}


class DataType(BaseModel):
    """
    A data type carried by a field or port.

    Primitive kinds need nothing but ``kind``. Composite kinds carry a
    payload:

        - Optional(T): DataType(kind=OPTIONAL, inner=T)
        - Array(T): DataType(kind=ARRAY, inner=T)
        - Map(K, V): DataType(kind=MAP, key=K, value=V)
        - Reference("User"): DataType(kind=REFERENCE, name="User")
        - Entity("User"): DataType(kind=ENTITY, name="User")
        - Custom: DataType(kind=CUSTOM, domain="geo", name="Point")

    Use the module constants (``STRING``, ``INT32`` ...) for primitives and
    the classmethods for composites.
    """

    kind: DataTypeKind
    inner: DataType | None = None  # for optional, array
    key: DataType | None = None  # for map
    value: DataType | None = None  # for map
    name: str | None = None  # for reference, entity, custom
    domain: str | None = None  # for custom

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def check_payload(self) -> DataType:
        """Ensure composite kinds carry the payload they need."""
        kind = self.kind
        if kind in (DataTypeKind.OPTIONAL, DataTypeKind.ARRAY) and self.inner is None:
            raise ValueError(f"{kind.value} type requires an inner type")
        if kind == DataTypeKind.MAP and (self.key is None or self.value is None):
            raise ValueError("map type requires key and value types")
        if kind in (DataTypeKind.REFERENCE, DataTypeKind.ENTITY) and not self.name:
            raise ValueError(f"{kind.value} type requires an entity name")
        if kind == DataTypeKind.CUSTOM and (not self.name or not self.domain):
            raise ValueError("custom type requires a domain and a name")
        return self

    # -- constructors -------------------------------------------------------

    @classmethod
    def optional(cls, inner: DataType) -> DataType:
        return cls(kind=DataTypeKind.OPTIONAL, inner=inner)

    @classmethod
    def array(cls, inner: DataType) -> DataType:
        return cls(kind=DataTypeKind.ARRAY, inner=inner)

    @classmethod
    def map(cls, key: DataType, value: DataType) -> DataType:
        return cls(kind=DataTypeKind.MAP, key=key, value=value)

    @classmethod
    def reference(cls, entity: str) -> DataType:
        return cls(kind=DataTypeKind.REFERENCE, name=entity)

    @classmethod
    def entity(cls, entity: str) -> DataType:
        return cls(kind=DataTypeKind.ENTITY, name=entity)

    @classmethod
    def custom(cls, domain: str, name: str) -> DataType:
        return cls(kind=DataTypeKind.CUSTOM, domain=domain, name=name)

    # -- queries ------------------------------------------------------------

    @property
    def is_primitive(self) -> bool:
        return self.kind in _PRIMITIVE_KINDS

    @property
    def is_numeric(self) -> bool:
        return self.kind in _NUMERIC_KINDS

    @property
    def is_optional(self) -> bool:
        return self.kind == DataTypeKind.OPTIONAL

    @property
    def is_entity_like(self) -> bool:
        """Whether this type names an entity (Reference or Entity)."""
        return self.kind in (DataTypeKind.REFERENCE, DataTypeKind.ENTITY)

    def unwrap_optional(self) -> DataType:
        """Return the inner type of an Optional, or self."""
        if self.kind == DataTypeKind.OPTIONAL and self.inner is not None:
            return self.inner
        return self

    @property
    def display_name(self) -> str:
        """Human-readable name, e.g. ``Optional<String>`` or ``Ref<User>``."""
        kind = self.kind
        if kind in _DISPLAY_NAMES:
            return _DISPLAY_NAMES[kind]
        if kind == DataTypeKind.OPTIONAL:
            return f"Optional<{self.inner.display_name}>"  # type: ignore[union-attr]
        if kind == DataTypeKind.ARRAY:
            return f"Array<{self.inner.display_name}>"  # type: ignore[union-attr]
        if kind == DataTypeKind.MAP:
            return f"Map<{self.key.display_name}, {self.value.display_name}>"  # type: ignore[union-attr]
        if kind == DataTypeKind.REFERENCE:
            return f"Ref<{self.name}>"
        if kind == DataTypeKind.ENTITY:
            return f"Entity<{self.name}>"
        return f"{self.domain}::{self.name}"

    def __str__(self) -> str:
        return self.display_name

    def is_compatible_with(self, target: DataType) -> bool:
        """Whether a value of this type may flow into ``target``."""
        return is_compatible_with(self, target)


def is_compatible_with(source: DataType, target: DataType) -> bool:
    """
    Check whether a ``source`` value can flow into a ``target`` slot.

    Rules are applied in order and the first match wins:

    1. Any on either side
    2. Structural equality
    3. Optional(inner) source into a plain target equal to ``inner``
       (a plain source does NOT flow into an Optional target)
    4. Array covariance
    5. Reference/Entity naming the same entity, either direction
    6. Numeric widening (Int32->Int64, Float32->Float64, Int32->Float64,
       Int64->Float64)
    """
    if source.kind == DataTypeKind.ANY or target.kind == DataTypeKind.ANY:
        return True
    if source == target:
        return True
    if source.kind == DataTypeKind.OPTIONAL:
        return source.inner == target
    if source.kind == DataTypeKind.ARRAY and target.kind == DataTypeKind.ARRAY:
        return is_compatible_with(source.inner, target.inner)  # type: ignore[arg-type]
    if source.is_entity_like and target.is_entity_like:
        return source.name == target.name
    return (source.kind, target.kind) in _WIDENINGS


STRING = DataType(kind=DataTypeKind.STRING)
TEXT = DataType(kind=DataTypeKind.TEXT)
INT32 = DataType(kind=DataTypeKind.INT32)
INT64 = DataType(kind=DataTypeKind.INT64)
FLOAT32 = DataType(kind=DataTypeKind.FLOAT32)
FLOAT64 = DataType(kind=DataTypeKind.FLOAT64)
BOOL = DataType(kind=DataTypeKind.BOOL)
UUID = DataType(kind=DataTypeKind.UUID)
DATETIME = DataType(kind=DataTypeKind.DATETIME)
DATE = DataType(kind=DataTypeKind.DATE)
TIME = DataType(kind=DataTypeKind.TIME)
BYTES = DataType(kind=DataTypeKind.BYTES)
JSON = DataType(kind=DataTypeKind.JSON)
ANY = DataType(kind=DataTypeKind.ANY)
TRIGGER = DataType(kind=DataTypeKind.TRIGGER)


# =============================================================================
# Configuration values
# =============================================================================


class ConfigValueKind(str, Enum):
    NULL = "null"
    BOOL = "bool"
    INT = "int"
    FLOAT = "float"
    STRING = "string"
    ARRAY = "array"
    OBJECT = "object"


class ConfigValue(BaseModel):
    """
    A tagged configuration value used for node config and field defaults.

    Construction from native Python values is total (``from_native``);
    extraction via ``as_*`` returns None when the kind does not match.
    """

    kind: ConfigValueKind = ConfigValueKind.NULL
    value: bool | int | float | str | list[ConfigValue] | dict[str, ConfigValue] | None = None

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def check_value(self) -> ConfigValue:
        """Ensure the payload matches the declared kind."""
        expected: dict[ConfigValueKind, tuple[type, ...]] = {
            ConfigValueKind.NULL: (type(None),),
            ConfigValueKind.BOOL: (bool,),
            ConfigValueKind.INT: (int,),
            ConfigValueKind.FLOAT: (float, int),
            ConfigValueKind.STRING: (str,),
            ConfigValueKind.ARRAY: (list,),
            ConfigValueKind.OBJECT: (dict,),
        }
        value = self.value
        ok = isinstance(value, expected[self.kind])
        if self.kind in (ConfigValueKind.INT, ConfigValueKind.FLOAT) and isinstance(value, bool):
            ok = False
        if not ok:
            raise ValueError(f"value {value!r} does not match kind '{self.kind.value}'")
        if self.kind == ConfigValueKind.FLOAT and isinstance(value, int):
            object.__setattr__(self, "value", float(value))
        return self

    @classmethod
    def from_native(cls, value: Any) -> ConfigValue:
        """Build a ConfigValue from a native Python value."""
        if isinstance(value, ConfigValue):
            return value
        if value is None:
            return cls()
        if isinstance(value, bool):
            return cls(kind=ConfigValueKind.BOOL, value=value)
        if isinstance(value, int):
            return cls(kind=ConfigValueKind.INT, value=value)
        if isinstance(value, float):
            return cls(kind=ConfigValueKind.FLOAT, value=value)
        if isinstance(value, str):
            return cls(kind=ConfigValueKind.STRING, value=value)
        if isinstance(value, (list, tuple)):
            return cls(kind=ConfigValueKind.ARRAY, value=[cls.from_native(v) for v in value])
        if isinstance(value, dict):
            return cls(
                kind=ConfigValueKind.OBJECT,
                value={str(k): cls.from_native(v) for k, v in value.items()},
            )
        if isinstance(value, Enum):
            return cls.from_native(value.value)
        return cls(kind=ConfigValueKind.STRING, value=str(value))

    def to_native(self) -> Any:
        """Convert back to plain Python values."""
        if self.kind == ConfigValueKind.ARRAY:
            return [v.to_native() for v in self.value]  # type: ignore[union-attr]
        if self.kind == ConfigValueKind.OBJECT:
            return {k: v.to_native() for k, v in self.value.items()}  # type: ignore[union-attr]
        return self.value

    @property
    def is_null(self) -> bool:
        return self.kind == ConfigValueKind.NULL

    def as_bool(self) -> bool | None:
        return self.value if self.kind == ConfigValueKind.BOOL else None  # type: ignore[return-value]

    def as_int(self) -> int | None:
        return self.value if self.kind == ConfigValueKind.INT else None  # type: ignore[return-value]

    def as_float(self) -> float | None:
        if self.kind == ConfigValueKind.FLOAT:
            return self.value  # type: ignore[return-value]
        if self.kind == ConfigValueKind.INT:
            return float(self.value)  # type: ignore[arg-type]
        return None

    def as_str(self) -> str | None:
        return self.value if self.kind == ConfigValueKind.STRING else None  # type: ignore[return-value]

    def as_array(self) -> list[ConfigValue] | None:
        return self.value if self.kind == ConfigValueKind.ARRAY else None  # type: ignore[return-value]

    def as_object(self) -> dict[str, ConfigValue] | None:
        return self.value if self.kind == ConfigValueKind.OBJECT else None  # type: ignore[return-value]


# =============================================================================
# Categories and connection vocabulary
# =============================================================================


class ComponentCategory(str, Enum):
    """Palette category a component belongs to."""

    AUTH = "auth"
    DATA = "data"
    API = "api"
    STORAGE = "storage"
    UI = "ui"
    LOGIC = "logic"
    EMBEDDED = "embedded"
    CUSTOM = "custom"

    @property
    def display_name(self) -> str:
        return {
            ComponentCategory.AUTH: "Authentication",
            ComponentCategory.DATA: "Data",
            ComponentCategory.API: "API",
            ComponentCategory.STORAGE: "Storage",
            ComponentCategory.UI: "UI",
            ComponentCategory.LOGIC: "Logic",
            ComponentCategory.EMBEDDED: "Embedded",
            ComponentCategory.CUSTOM: "Custom",
        }[self]


class RelationType(str, Enum):
    """Cardinality of a Relationship edge between two entities."""

    ONE_TO_ONE = "one_to_one"
    ONE_TO_MANY = "one_to_many"
    MANY_TO_ONE = "many_to_one"
    MANY_TO_MANY = "many_to_many"

    @property
    def display_name(self) -> str:
        return self.value.replace("_", " ").title()

    @property
    def arrow_symbol(self) -> str:
        return {
            RelationType.ONE_TO_ONE: "1 --- 1",
            RelationType.ONE_TO_MANY: "1 ---< *",
            RelationType.MANY_TO_ONE: "* >--- 1",
            RelationType.MANY_TO_MANY: "* >-< *",
        }[self]


class ConnectionKind(str, Enum):
    """Kind of connection an edge represents."""

    DATA_FLOW = "data_flow"
    TRIGGER = "trigger"
    NAVIGATION = "navigation"
    RELATIONSHIP = "relationship"
    DEPENDENCY = "dependency"

    @property
    def connects_ports(self) -> bool:
        """Relationship and Dependency edges join nodes, not ports."""
        return self not in (ConnectionKind.RELATIONSHIP, ConnectionKind.DEPENDENCY)


class PortDirection(str, Enum):
    INPUT = "input"
    OUTPUT = "output"

    @property
    def opposite(self) -> PortDirection:
        return PortDirection.OUTPUT if self == PortDirection.INPUT else PortDirection.INPUT


class PortKind(str, Enum):
    """Data ports carry values; trigger and flow ports carry control."""

    DATA = "data"
    TRIGGER = "trigger"
    FLOW = "flow"


# =============================================================================
# Field validation rules
# =============================================================================


class ValidationKind(str, Enum):
    REQUIRED = "required"
    MIN_LENGTH = "min_length"
    MAX_LENGTH = "max_length"
    MIN = "min"
    MAX = "max"
    PATTERN = "pattern"
    EMAIL = "email"
    URL = "url"
    UUID = "uuid"
    CUSTOM = "custom"


class Validation(BaseModel):
    """
    A value-level validation rule attached to a field.

    Examples:
        - min_length 8: Validation(kind=MIN_LENGTH, value=8)
        - pattern: Validation(kind=PATTERN, value="^[a-z]+$")
        - custom: Validation(kind=CUSTOM, name="slug", message="Must be a slug")
    """

    kind: ValidationKind
    value: int | float | str | None = None
    name: str | None = None  # for custom
    message: str | None = None  # for custom

    model_config = ConfigDict(frozen=True)

    @classmethod
    def required(cls) -> Validation:
        return cls(kind=ValidationKind.REQUIRED)

    @classmethod
    def min_length(cls, length: int) -> Validation:
        return cls(kind=ValidationKind.MIN_LENGTH, value=length)

    @classmethod
    def max_length(cls, length: int) -> Validation:
        return cls(kind=ValidationKind.MAX_LENGTH, value=length)

    @classmethod
    def minimum(cls, value: float) -> Validation:
        return cls(kind=ValidationKind.MIN, value=value)

    @classmethod
    def maximum(cls, value: float) -> Validation:
        return cls(kind=ValidationKind.MAX, value=value)

    @classmethod
    def pattern(cls, regex: str) -> Validation:
        return cls(kind=ValidationKind.PATTERN, value=regex)

    @classmethod
    def email(cls) -> Validation:
        return cls(kind=ValidationKind.EMAIL)

    @classmethod
    def url(cls) -> Validation:
        return cls(kind=ValidationKind.URL)

    @classmethod
    def uuid(cls) -> Validation:
        return cls(kind=ValidationKind.UUID)

    @classmethod
    def custom(cls, name: str, message: str) -> Validation:
        return cls(kind=ValidationKind.CUSTOM, name=name, message=message)

    def error_message(self) -> str:
        """Message shown when a value fails this rule."""
        kind = self.kind
        if kind == ValidationKind.REQUIRED:
            return "This field is required"
        if kind == ValidationKind.MIN_LENGTH:
            return f"Minimum length is {self.value}"
        if kind == ValidationKind.MAX_LENGTH:
            return f"Maximum length is {self.value}"
        if kind == ValidationKind.MIN:
            return f"Minimum value is {self.value}"
        if kind == ValidationKind.MAX:
            return f"Maximum value is {self.value}"
        if kind == ValidationKind.PATTERN:
            return f"Must match pattern: {self.value}"
        if kind == ValidationKind.EMAIL:
            return "Must be a valid email address"
        if kind == ValidationKind.URL:
            return "Must be a valid URL"
        if kind == ValidationKind.UUID:
            return "Must be a valid UUID"
        return self.message or f"Failed custom validation '{self.name}'"


class UiHints(BaseModel):
    """Editor rendering hints for a field."""

    label: str | None = None
    placeholder: str | None = None
    help: str | None = None
    secret: bool = False  # passwords, API keys
    show_in_list: bool = True
    widget: str | None = None
    order: int = 0


# =============================================================================
# Geometry
# =============================================================================


class Position(BaseModel):
    x: float = 0.0
    y: float = 0.0

    model_config = ConfigDict(frozen=True)

    def offset(self, dx: float, dy: float) -> Position:
        return Position(x=self.x + dx, y=self.y + dy)


class Size(BaseModel):
    width: float = 200.0
    height: float = 150.0

    model_config = ConfigDict(frozen=True)


class Rect(BaseModel):
    """Axis-aligned rectangle used for hit testing and layout."""

    position: Position = Field(default_factory=Position)
    size: Size = Field(default_factory=Size)

    model_config = ConfigDict(frozen=True)

    @property
    def center(self) -> Position:
        return Position(
            x=self.position.x + self.size.width / 2,
            y=self.position.y + self.size.height / 2,
        )

    def contains(self, point: Position) -> bool:
        return (
            self.position.x <= point.x <= self.position.x + self.size.width
            and self.position.y <= point.y <= self.position.y + self.size.height
        )

    def intersects(self, other: Rect) -> bool:
        return not (
            other.position.x > self.position.x + self.size.width
            or other.position.x + other.size.width < self.position.x
            or other.position.y > self.position.y + self.size.height
            or other.position.y + other.size.height < self.position.y
        )

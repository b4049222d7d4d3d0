"""
Field definitions for the immortal IR.

A field is a named, typed attribute of a node. Besides its data type it
carries value-level validations, database-style constraints and editor
hints, all of which feed the model, migration and auth generators.
"""

from __future__ import annotations

import re
import uuid
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field as PydanticField

from .types import (
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
    UUID,
    ConfigValue,
    DataType,
    UiHints,
    Validation,
    ValidationKind,
)

_EMAIL_SHAPE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class ForeignKeyAction(str, Enum):
    """Referential action applied on delete/update of the referenced row."""

    NO_ACTION = "no_action"
    RESTRICT = "restrict"
    CASCADE = "cascade"
    SET_NULL = "set_null"
    SET_DEFAULT = "set_default"

    def to_sql(self) -> str:
        return self.value.replace("_", " ").upper()


class ConstraintKind(str, Enum):
    PRIMARY_KEY = "primary_key"
    UNIQUE = "unique"
    INDEXED = "indexed"
    FOREIGN_KEY = "foreign_key"
    AUTO_INCREMENT = "auto_increment"
    CHECK = "check"
    DEFAULT_EXPRESSION = "default_expression"


class FieldConstraint(BaseModel):
    """
    A database-level constraint on a field.

    Examples:
        - primary key: FieldConstraint(kind=PRIMARY_KEY)
        - FK: FieldConstraint(kind=FOREIGN_KEY, entity="User", field="id",
              on_delete=CASCADE)
        - check: FieldConstraint(kind=CHECK, expression="age >= 0")
    """

    kind: ConstraintKind
    entity: str | None = None  # for foreign_key
    field: str | None = None  # for foreign_key
    on_delete: ForeignKeyAction = ForeignKeyAction.NO_ACTION
    on_update: ForeignKeyAction = ForeignKeyAction.NO_ACTION
    expression: str | None = None  # for check, default_expression

    @classmethod
    def primary_key(cls) -> FieldConstraint:
        return cls(kind=ConstraintKind.PRIMARY_KEY)

    @classmethod
    def unique(cls) -> FieldConstraint:
        return cls(kind=ConstraintKind.UNIQUE)

    @classmethod
    def indexed(cls) -> FieldConstraint:
        return cls(kind=ConstraintKind.INDEXED)

    @classmethod
    def auto_increment(cls) -> FieldConstraint:
        return cls(kind=ConstraintKind.AUTO_INCREMENT)

    @classmethod
    def check(cls, expression: str) -> FieldConstraint:
        return cls(kind=ConstraintKind.CHECK, expression=expression)

    @classmethod
    def default_expression(cls, expression: str) -> FieldConstraint:
        return cls(kind=ConstraintKind.DEFAULT_EXPRESSION, expression=expression)

    @classmethod
    def foreign_key(
        cls,
        entity: str,
        field: str = "id",
        on_delete: ForeignKeyAction = ForeignKeyAction.NO_ACTION,
        on_update: ForeignKeyAction = ForeignKeyAction.NO_ACTION,
    ) -> FieldConstraint:
        return cls(
            kind=ConstraintKind.FOREIGN_KEY,
            entity=entity,
            field=field,
            on_delete=on_delete,
            on_update=on_update,
        )


class Field(BaseModel):
    """
    A named, typed attribute of a node.

    Builder methods (``mark_required``, ``primary_key``, ``with_default`` ...)
    mutate the field and return it, so construction reads as a chain:

        Field.string("email").mark_required().unique()
    """

    id: str = PydanticField(default_factory=lambda: str(uuid.uuid4()))
    name: str
    label: str | None = None
    data_type: DataType = STRING
    required: bool = False
    default_value: ConfigValue | None = None
    validations: list[Validation] = PydanticField(default_factory=list)
    ui_hints: UiHints = PydanticField(default_factory=UiHints)
    constraints: list[FieldConstraint] = PydanticField(default_factory=list)
    description: str | None = None
    read_only: bool = False
    deprecated: bool = False
    deprecation_message: str | None = None
    metadata: dict[str, Any] = PydanticField(default_factory=dict)

    # -- typed constructors -------------------------------------------------

    @classmethod
    def of(cls, name: str, data_type: DataType) -> Field:
        return cls(name=name, data_type=data_type)

    @classmethod
    def string(cls, name: str) -> Field:
        return cls(name=name, data_type=STRING)

    @classmethod
    def text(cls, name: str) -> Field:
        return cls(name=name, data_type=TEXT)

    @classmethod
    def int32(cls, name: str) -> Field:
        return cls(name=name, data_type=INT32)

    @classmethod
    def int64(cls, name: str) -> Field:
        return cls(name=name, data_type=INT64)

    @classmethod
    def float32(cls, name: str) -> Field:
        return cls(name=name, data_type=FLOAT32)

    @classmethod
    def float64(cls, name: str) -> Field:
        return cls(name=name, data_type=FLOAT64)

    @classmethod
    def boolean(cls, name: str) -> Field:
        return cls(name=name, data_type=BOOL)

    @classmethod
    def uuid(cls, name: str) -> Field:
        return cls(name=name, data_type=UUID)

    @classmethod
    def datetime(cls, name: str) -> Field:
        return cls(name=name, data_type=DATETIME)

    @classmethod
    def date(cls, name: str) -> Field:
        return cls(name=name, data_type=DATE)

    @classmethod
    def time(cls, name: str) -> Field:
        return cls(name=name, data_type=TIME)

    @classmethod
    def binary(cls, name: str) -> Field:
        return cls(name=name, data_type=BYTES)

    @classmethod
    def json_value(cls, name: str) -> Field:
        return cls(name=name, data_type=JSON)

    @classmethod
    def reference(cls, name: str, entity: str) -> Field:
        return cls(name=name, data_type=DataType.reference(entity))

    @classmethod
    def array(cls, name: str, inner: DataType) -> Field:
        return cls(name=name, data_type=DataType.array(inner))

    @classmethod
    def optional(cls, name: str, inner: DataType) -> Field:
        return cls(name=name, data_type=DataType.optional(inner))

    # -- builders -----------------------------------------------------------

    def with_label(self, label: str) -> Field:
        self.label = label
        self.ui_hints.label = label
        return self

    def with_default(self, value: Any) -> Field:
        self.default_value = ConfigValue.from_native(value)
        return self

    def with_validation(self, validation: Validation) -> Field:
        self.validations.append(validation)
        return self

    def with_constraint(self, constraint: FieldConstraint) -> Field:
        self.constraints.append(constraint)
        return self

    def with_description(self, description: str) -> Field:
        self.description = description
        return self

    def with_placeholder(self, placeholder: str) -> Field:
        self.ui_hints.placeholder = placeholder
        return self

    def mark_required(self) -> Field:
        """Mark required and add the Required validation."""
        self.required = True
        if not any(v.kind == ValidationKind.REQUIRED for v in self.validations):
            self.validations.append(Validation.required())
        return self

    def primary_key(self) -> Field:
        self.constraints.append(FieldConstraint.primary_key())
        self.required = True
        return self

    def unique(self) -> Field:
        self.constraints.append(FieldConstraint.unique())
        return self

    def indexed(self) -> Field:
        self.constraints.append(FieldConstraint.indexed())
        return self

    def secret(self) -> Field:
        self.ui_hints.secret = True
        self.ui_hints.show_in_list = False
        return self

    def mark_read_only(self) -> Field:
        self.read_only = True
        return self

    def deprecate(self, message: str | None = None) -> Field:
        self.deprecated = True
        self.deprecation_message = message
        return self

    def foreign_key(
        self,
        entity: str,
        field: str = "id",
        on_delete: ForeignKeyAction = ForeignKeyAction.NO_ACTION,
        on_update: ForeignKeyAction = ForeignKeyAction.NO_ACTION,
    ) -> Field:
        self.constraints.append(FieldConstraint.foreign_key(entity, field, on_delete, on_update))
        return self

    # -- queries ------------------------------------------------------------

    def has_constraint(self, kind: ConstraintKind) -> bool:
        return any(c.kind == kind for c in self.constraints)

    @property
    def is_primary_key(self) -> bool:
        return self.has_constraint(ConstraintKind.PRIMARY_KEY)

    @property
    def is_unique(self) -> bool:
        """Unique or primary key."""
        return self.is_primary_key or self.has_constraint(ConstraintKind.UNIQUE)

    @property
    def is_indexed(self) -> bool:
        return self.has_constraint(ConstraintKind.INDEXED)

    @property
    def is_foreign_key(self) -> bool:
        return self.has_constraint(ConstraintKind.FOREIGN_KEY)

    @property
    def is_auto_increment(self) -> bool:
        return self.has_constraint(ConstraintKind.AUTO_INCREMENT)

    @property
    def is_secret(self) -> bool:
        return self.ui_hints.secret

    @property
    def is_optional_in_model(self) -> bool:
        """Whether generated models wrap this field in an optional type."""
        return not (self.required or self.is_primary_key)

    @property
    def display_label(self) -> str:
        return self.label or self.ui_hints.label or self.name

    def get_foreign_key(self) -> FieldConstraint | None:
        for constraint in self.constraints:
            if constraint.kind == ConstraintKind.FOREIGN_KEY:
                return constraint
        return None

    def referenced_entity(self) -> str | None:
        """Entity this field points at, via FK constraint or Reference type."""
        fk = self.get_foreign_key()
        if fk is not None:
            return fk.entity
        data_type = self.data_type.unwrap_optional()
        if data_type.is_entity_like:
            return data_type.name
        return None

    def validate_value(self, value: ConfigValue | Any) -> list[str]:
        """
        Check a candidate value against this field's validations.

        Returns:
            Error messages, empty when the value passes
        """
        value = ConfigValue.from_native(value)
        errors: list[str] = []
        if value.is_null:
            if self.required:
                errors.append(f"{self.display_label}: This field is required")
            return errors
        for validation in self.validations:
            if not _passes(validation, value):
                errors.append(f"{self.display_label}: {validation.error_message()}")
        return errors


def _passes(validation: Validation, value: ConfigValue) -> bool:
    kind = validation.kind
    text = value.as_str()
    number = value.as_float()
    if kind == ValidationKind.MIN_LENGTH and text is not None:
        return len(text) >= int(validation.value)  # type: ignore[arg-type]
    if kind == ValidationKind.MAX_LENGTH and text is not None:
        return len(text) <= int(validation.value)  # type: ignore[arg-type]
    if kind == ValidationKind.MIN and number is not None:
        return number >= float(validation.value)  # type: ignore[arg-type]
    if kind == ValidationKind.MAX and number is not None:
        return number <= float(validation.value)  # type: ignore[arg-type]
    if kind == ValidationKind.EMAIL and text is not None:
        return bool(_EMAIL_SHAPE.match(text))
    if kind == ValidationKind.PATTERN and text is not None:
        try:
            return re.search(str(validation.value), text) is not None
        except re.error:
            # An uncompilable pattern can never be satisfied
            return False
    if kind == ValidationKind.UUID and text is not None:
        try:
            uuid.UUID(text)
        except ValueError:
            return False
        return True
    return True

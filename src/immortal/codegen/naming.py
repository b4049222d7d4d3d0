"""
Identifier case conversion and Rust type mapping.

Used by every generator and exposed to templates as Jinja filters.
"""

from __future__ import annotations

import math
import re

from immortal.core.ir import ConfigValue, ConfigValueKind, DataType, DataTypeKind, Field

_UNDERSCORE_RUN = re.compile(r"_+")
_WORD_SPLIT = re.compile(r"[^0-9A-Za-z]+")

RUST_KEYWORDS = frozenset(
    {
        "as", "async", "await", "break", "const", "continue", "crate", "dyn", "else",
        "enum", "extern", "false", "fn", "for", "if", "impl", "in", "let", "loop",
        "match", "mod", "move", "mut", "pub", "ref", "return", "static", "struct",
        "super", "trait", "true", "type", "unsafe", "use", "where", "while",
    }
)  # fmt: skip


def to_snake_case(name: str) -> str:
    """
    Convert a display name to snake_case.

    An underscore is inserted before an uppercase letter that follows a
    non-uppercase one, so runs of capitals stay together::

        "HelloWorld" -> "hello_world"
        "MyAPIKey"   -> "my_apikey"
        "Get Users"  -> "get_users"
    """
    out: list[str] = []
    prev_upper = False
    for i, ch in enumerate(name):
        if ch.isupper():
            if i > 0 and not prev_upper:
                out.append("_")
            out.append(ch.lower())
            prev_upper = True
        elif ch.isalnum() or ch == "_":
            out.append(ch)
            prev_upper = False
        else:
            out.append("_")
            prev_upper = False
    return _UNDERSCORE_RUN.sub("_", "".join(out)).strip("_")


def to_pascal_case(name: str) -> str:
    """"user_profile" -> "UserProfile"; existing capitals are kept."""
    words = [w for w in _WORD_SPLIT.split(name) if w]
    return "".join(w[0].upper() + w[1:] for w in words)


def to_camel_case(name: str) -> str:
    pascal = to_pascal_case(name)
    return pascal[:1].lower() + pascal[1:]


def to_screaming_snake_case(name: str) -> str:
    return to_snake_case(name).upper()


def rust_ident(name: str) -> str:
    """snake_case identifier, raw-escaped when it collides with a keyword."""
    ident = to_snake_case(name)
    return f"r#{ident}" if ident in RUST_KEYWORDS else ident


# =============================================================================
# Types
# =============================================================================

_PRIMITIVE_RUST_TYPES: dict[DataTypeKind, str] = {
    DataTypeKind.STRING: "String",
    DataTypeKind.TEXT: "String",
    DataTypeKind.INT32: "i32",
    DataTypeKind.INT64: "i64",
    DataTypeKind.FLOAT32: "f32",
    DataTypeKind.FLOAT64: "f64",
    DataTypeKind.BOOL: "bool",
    DataTypeKind.UUID: "uuid::Uuid",
    DataTypeKind.DATETIME: "chrono::DateTime<chrono::Utc>",
    DataTypeKind.DATE: "chrono::NaiveDate",
    DataTypeKind.TIME: "chrono::NaiveTime",
    DataTypeKind.BYTES: "Vec<u8>",
    DataTypeKind.JSON: "serde_json::Value",
    DataTypeKind.ANY: "serde_json::Value",
    DataTypeKind.TRIGGER: "()",
}


def rust_type(data_type: DataType) -> str:
    """
    Map a DataType to Rust type syntax. Total over every variant.

    References are stored as the referenced row's id, so ``Ref<User>``
    maps to ``uuid::Uuid`` while ``Entity<User>`` maps to ``User``.
    """
    kind = data_type.kind
    if kind in _PRIMITIVE_RUST_TYPES:
        return _PRIMITIVE_RUST_TYPES[kind]
    if kind == DataTypeKind.OPTIONAL:
        return f"Option<{rust_type(data_type.inner)}>"  # type: ignore[arg-type]
    if kind == DataTypeKind.ARRAY:
        return f"Vec<{rust_type(data_type.inner)}>"  # type: ignore[arg-type]
    if kind == DataTypeKind.MAP:
        key = rust_type(data_type.key)  # type: ignore[arg-type]
        value = rust_type(data_type.value)  # type: ignore[arg-type]
        return f"std::collections::HashMap<{key}, {value}>"
    if kind == DataTypeKind.REFERENCE:
        return "uuid::Uuid"
    # entity / custom
    return to_pascal_case(data_type.name or "") or "serde_json::Value"


def rust_field_type(field: Field) -> str:
    """Rust type of a model field; non-required, non-key fields become Option."""
    base = rust_type(field.data_type)
    if field.is_optional_in_model and not field.data_type.is_optional:
        return f"Option<{base}>"
    return base


def _rust_string(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}".to_string()'


_INT_RANGES: dict[DataTypeKind, tuple[int, int]] = {
    DataTypeKind.INT32: (-(2**31), 2**31 - 1),
    DataTypeKind.INT64: (-(2**63), 2**63 - 1),
}


def _scalar_text(value: ConfigValue) -> str | None:
    if value.kind == ConfigValueKind.STRING:
        return value.as_str()
    if value.kind == ConfigValueKind.BOOL:
        return "true" if value.as_bool() else "false"
    if value.kind == ConfigValueKind.INT:
        return str(value.as_int())
    if value.kind == ConfigValueKind.FLOAT:
        return repr(value.as_float())
    return None


def rust_literal(value: ConfigValue, data_type: DataType) -> str:
    """
    Rust expression for a field default, converted to the field's type.

    Scalars become strings on String/Text fields. Numeric targets take
    ints and floats only when the conversion is exact and in range.
    Anything else becomes ``Default::default()``.
    """
    target = data_type.unwrap_optional().kind
    fallback = "Default::default()"

    if target in (DataTypeKind.STRING, DataTypeKind.TEXT):
        text = _scalar_text(value)
        return _rust_string(text) if text is not None else fallback

    if target == DataTypeKind.BOOL:
        if value.kind != ConfigValueKind.BOOL:
            return fallback
        return "true" if value.as_bool() else "false"

    if target in _INT_RANGES:
        number = value.as_float()
        if number is None or not math.isfinite(number) or not number.is_integer():
            return fallback
        whole = value.as_int() if value.kind == ConfigValueKind.INT else int(number)
        low, high = _INT_RANGES[target]
        return str(whole) if low <= whole <= high else fallback  # type: ignore[operator]

    if target in (DataTypeKind.FLOAT32, DataTypeKind.FLOAT64):
        number = value.as_float()
        if number is None or not math.isfinite(number):
            return fallback
        return repr(number)

    return fallback


_ZERO_VALUES: dict[DataTypeKind, str] = {
    DataTypeKind.STRING: "String::new()",
    DataTypeKind.TEXT: "String::new()",
    DataTypeKind.INT32: "0",
    DataTypeKind.INT64: "0",
    DataTypeKind.FLOAT32: "0.0",
    DataTypeKind.FLOAT64: "0.0",
    DataTypeKind.BOOL: "false",
    DataTypeKind.UUID: "uuid::Uuid::new_v4()",
    DataTypeKind.ARRAY: "Vec::new()",
}


def rust_default(field: Field) -> str:
    """Initializer used for ``field`` in a generated ``impl Default``."""
    optional = field.is_optional_in_model or field.data_type.is_optional
    if field.default_value is not None and not field.default_value.is_null:
        literal = rust_literal(field.default_value, field.data_type)
        return f"Some({literal})" if optional else literal
    if optional:
        return "None"
    return _ZERO_VALUES.get(field.data_type.kind, "Default::default()")

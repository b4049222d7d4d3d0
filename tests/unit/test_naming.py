"""Tests for identifier case conversion and Rust type mapping."""

import pytest

from immortal.codegen.naming import (
    rust_default,
    rust_field_type,
    rust_ident,
    rust_literal,
    rust_type,
    to_camel_case,
    to_pascal_case,
    to_screaming_snake_case,
    to_snake_case,
)
from immortal.core.ir import (
    BOOL,
    DATETIME,
    FLOAT64,
    INT32,
    INT64,
    STRING,
    UUID,
    ConfigValue,
    DataType,
    Field,
)


class TestCaseConversion:
    """Test the case conversion helpers."""

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("HelloWorld", "hello_world"),
            ("MyAPIKey", "my_apikey"),
            ("Get Users", "get_users"),
            ("user_profile", "user_profile"),
            ("already__snake", "already_snake"),
            ("Order-Item", "order_item"),
            ("User", "user"),
            ("", ""),
        ],
    )
    def test_snake(self, name: str, expected: str) -> None:
        assert to_snake_case(name) == expected

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("user_profile", "UserProfile"),
            ("get users", "GetUsers"),
            ("UserProfile", "UserProfile"),
            ("order-item", "OrderItem"),
        ],
    )
    def test_pascal(self, name: str, expected: str) -> None:
        assert to_pascal_case(name) == expected

    def test_camel(self) -> None:
        assert to_camel_case("user_profile") == "userProfile"

    def test_screaming(self) -> None:
        assert to_screaming_snake_case("HelloWorld") == "HELLO_WORLD"


class TestRustIdent:
    @pytest.mark.parametrize(
        "name,expected",
        [
            ("type", "r#type"),
            ("Match", "r#match"),
            ("Name", "name"),
            ("ListPosts", "list_posts"),
        ],
    )
    def test_rust_ident(self, name: str, expected: str) -> None:
        assert rust_ident(name) == expected


class TestRustType:
    """Test DataType to Rust syntax mapping."""

    @pytest.mark.parametrize(
        "data_type,expected",
        [
            (STRING, "String"),
            (INT32, "i32"),
            (FLOAT64, "f64"),
            (BOOL, "bool"),
            (UUID, "uuid::Uuid"),
            (DATETIME, "chrono::DateTime<chrono::Utc>"),
            (DataType.optional(STRING), "Option<String>"),
            (DataType.array(INT32), "Vec<i32>"),
            (DataType.map(STRING, BOOL), "std::collections::HashMap<String, bool>"),
            (DataType.reference("User"), "uuid::Uuid"),
            (DataType.entity("user_profile"), "UserProfile"),
            (DataType.custom("geo", "Point"), "Point"),
        ],
    )
    def test_rust_type(self, data_type: DataType, expected: str) -> None:
        assert rust_type(data_type) == expected

    def test_field_type_wraps_optional(self) -> None:
        assert rust_field_type(Field.string("nickname")) == "Option<String>"
        assert rust_field_type(Field.string("email").mark_required()) == "String"
        assert rust_field_type(Field.uuid("id").primary_key()) == "uuid::Uuid"

    def test_field_type_does_not_double_wrap(self) -> None:
        field = Field.optional("note", STRING)
        assert rust_field_type(field) == "Option<String>"


class TestDefaults:
    """Test Rust literals for field defaults."""

    def test_string_literal_escaped(self) -> None:
        value = ConfigValue.from_native('say "hi"')
        assert rust_literal(value, STRING) == '"say \\"hi\\"".to_string()'

    def test_string_for_non_string_type(self) -> None:
        assert rust_literal(ConfigValue.from_native("x"), INT32) == "Default::default()"

    def test_int_for_float_column(self) -> None:
        assert rust_literal(ConfigValue.from_native(2), FLOAT64) == "2.0"

    @pytest.mark.parametrize(
        "native,data_type,expected",
        [
            (5, STRING, '"5".to_string()'),
            (True, STRING, '"true".to_string()'),
            (1.5, DataType.optional(STRING), '"1.5".to_string()'),
            (True, INT32, "Default::default()"),
            (1.5, INT32, "Default::default()"),
            (3.0, INT32, "3"),
            (2**40, INT32, "Default::default()"),
            (2**40, INT64, str(2**40)),
            (1, BOOL, "Default::default()"),
            (False, BOOL, "false"),
            (float("inf"), FLOAT64, "Default::default()"),
            (7, UUID, "Default::default()"),
            ([1, 2], STRING, "Default::default()"),
        ],
    )
    def test_converted_to_target_type(self, native, data_type: DataType, expected: str) -> None:
        assert rust_literal(ConfigValue.from_native(native), data_type) == expected

    @pytest.mark.parametrize(
        "field,expected",
        [
            (Field.string("name").mark_required(), "String::new()"),
            (Field.string("nickname"), "None"),
            (Field.int32("count").mark_required().with_default(5), "5"),
            (Field.boolean("active").with_default(True), "Some(true)"),
            (Field.json_value("extra").mark_required(), "Default::default()"),
        ],
    )
    def test_rust_default(self, field: Field, expected: str) -> None:
        assert rust_default(field) == expected

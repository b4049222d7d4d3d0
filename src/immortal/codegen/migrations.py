"""
SQL migration generation for entity nodes.

A run produces up to three migrations, applied in order:

1. ``initial_schema``: one CREATE TABLE per entity, referenced tables first
2. ``create_indexes``: indexes for indexed and foreign-key columns
3. ``add_foreign_keys``: FK constraints (SQLite declares them inline in
   CREATE TABLE instead, since it cannot add constraints afterwards)

Every migration's down script undoes its up script statement by statement,
in reverse order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from pydantic import BaseModel

from immortal.core.errors import InvalidComponentConfigError
from immortal.core.ir import (
    DATETIME,
    ConfigValue,
    ConfigValueKind,
    ConstraintKind,
    DataType,
    DataTypeKind,
    Field,
    FieldConstraint,
    Node,
    ProjectGraph,
)

from .config import DatabaseBackend
from .naming import to_snake_case

logger = logging.getLogger(__name__)

VERSION_FORMAT = "%Y%m%d%H%M%S"

SCHEMA_MIGRATION = "initial_schema"
INDEX_MIGRATION = "create_indexes"
FOREIGN_KEY_MIGRATION = "add_foreign_keys"


def _utc_version() -> str:
    return datetime.now(timezone.utc).strftime(VERSION_FORMAT)


@dataclass
class Migration:
    """
    A paired up/down SQL script.

    Attributes:
        name: Migration name, e.g. "initial_schema"
        up: SQL applying the change
        down: SQL reverting it
        version: Sortable timestamp, ``YYYYMMDDHHMMSS``
    """

    name: str
    up: str
    down: str
    version: str = field(default_factory=_utc_version)

    def with_version(self, version: str) -> Migration:
        self.version = version
        return self

    @property
    def filename(self) -> str:
        return f"{self.version}_{to_snake_case(self.name)}.sql"

    def to_sql(self) -> str:
        return (
            f"-- Migration: {self.name}\n"
            f"-- Version: {self.version}\n\n"
            f"-- Up\n{self.up}\n\n"
            f"-- Down\n{self.down}\n"
        )


class MigrationConfig(BaseModel):
    """
    Options for migration generation.

    Attributes:
        backend: Target database
        schema_name: Optional schema; tables become ``schema.table``
        generate_indexes: Emit the ``create_indexes`` migration
        add_timestamps: Add created_at/updated_at columns entities lack
        use_auto_increment: Honor AutoIncrement constraints
    """

    backend: DatabaseBackend = DatabaseBackend.POSTGRES
    schema_name: str | None = None
    generate_indexes: bool = True
    add_timestamps: bool = True
    use_auto_increment: bool = True

    @classmethod
    def postgres(cls) -> MigrationConfig:
        return cls(backend=DatabaseBackend.POSTGRES)

    @classmethod
    def sqlite(cls) -> MigrationConfig:
        return cls(backend=DatabaseBackend.SQLITE)

    @classmethod
    def mysql(cls) -> MigrationConfig:
        return cls(backend=DatabaseBackend.MYSQL)

    def with_schema(self, schema_name: str) -> MigrationConfig:
        return self.model_copy(update={"schema_name": schema_name})


# =============================================================================
# Type tables
# =============================================================================

_POSTGRES_TYPES: dict[DataTypeKind, str] = {
    DataTypeKind.STRING: "VARCHAR(255)",
    DataTypeKind.TEXT: "TEXT",
    DataTypeKind.INT32: "INTEGER",
    DataTypeKind.INT64: "BIGINT",
    DataTypeKind.FLOAT32: "REAL",
    DataTypeKind.FLOAT64: "DOUBLE PRECISION",
    DataTypeKind.BOOL: "BOOLEAN",
    DataTypeKind.UUID: "UUID",
    DataTypeKind.DATETIME: "TIMESTAMP WITH TIME ZONE",
    DataTypeKind.DATE: "DATE",
    DataTypeKind.TIME: "TIME",
    DataTypeKind.BYTES: "BYTEA",
    DataTypeKind.JSON: "JSONB",
    DataTypeKind.REFERENCE: "UUID",
    DataTypeKind.ENTITY: "UUID",
    DataTypeKind.ANY: "JSONB",
}

_SQLITE_TYPES: dict[DataTypeKind, str] = {
    DataTypeKind.INT32: "INTEGER",
    DataTypeKind.INT64: "INTEGER",
    DataTypeKind.FLOAT32: "REAL",
    DataTypeKind.FLOAT64: "REAL",
    DataTypeKind.BOOL: "INTEGER",
    DataTypeKind.BYTES: "BLOB",
}

_MYSQL_TYPES: dict[DataTypeKind, str] = {
    DataTypeKind.STRING: "VARCHAR(255)",
    DataTypeKind.TEXT: "TEXT",
    DataTypeKind.INT32: "INT",
    DataTypeKind.INT64: "BIGINT",
    DataTypeKind.FLOAT32: "FLOAT",
    DataTypeKind.FLOAT64: "DOUBLE",
    DataTypeKind.BOOL: "TINYINT(1)",
    DataTypeKind.UUID: "CHAR(36)",
    DataTypeKind.DATETIME: "DATETIME",
    DataTypeKind.DATE: "DATE",
    DataTypeKind.TIME: "TIME",
    DataTypeKind.BYTES: "BLOB",
    DataTypeKind.JSON: "JSON",
    DataTypeKind.ARRAY: "JSON",
    DataTypeKind.REFERENCE: "CHAR(36)",
    DataTypeKind.ENTITY: "CHAR(36)",
    DataTypeKind.ANY: "JSON",
}

_CURRENT_TIMESTAMP = {
    DatabaseBackend.POSTGRES: "NOW()",
    DatabaseBackend.SQLITE: "CURRENT_TIMESTAMP",
    DatabaseBackend.MYSQL: "CURRENT_TIMESTAMP",
}

_TIMESTAMP_COLUMNS = ("created_at", "updated_at")


def sql_type(data_type: DataType, backend: DatabaseBackend) -> str:
    """Column type for ``data_type``; Optional maps to its inner type."""
    data_type = data_type.unwrap_optional()
    kind = data_type.kind
    if backend == DatabaseBackend.POSTGRES:
        if kind == DataTypeKind.ARRAY:
            return f"{sql_type(data_type.inner, backend)}[]"  # type: ignore[arg-type]
        return _POSTGRES_TYPES.get(kind, "TEXT")
    if backend == DatabaseBackend.SQLITE:
        return _SQLITE_TYPES.get(kind, "TEXT")
    return _MYSQL_TYPES.get(kind, "TEXT")


def config_value_to_sql(value: ConfigValue) -> str:
    """SQL literal for a default value; arrays and objects have none and become NULL."""
    if value.kind == ConfigValueKind.BOOL:
        return "TRUE" if value.as_bool() else "FALSE"
    if value.kind == ConfigValueKind.INT:
        return str(value.as_int())
    if value.kind == ConfigValueKind.FLOAT:
        return repr(value.as_float())
    if value.kind == ConfigValueKind.STRING:
        text = (value.as_str() or "").replace("'", "''")
        return f"'{text}'"
    return "NULL"


def order_entities(entities: list[Node]) -> list[Node]:
    """
    Order entities so every referenced entity precedes its referrers.

    Stable: among entities whose references are satisfied, insertion order
    wins. Entities caught in a reference cycle keep their insertion order
    at the end.
    """
    names = {e.name for e in entities}
    deps: dict[str, set[str]] = {}
    for entity in entities:
        refs = {f.referenced_entity() for f in entity.fields}
        deps[entity.id] = {r for r in refs if r in names and r != entity.name}

    ordered: list[Node] = []
    placed: set[str] = set()
    remaining = list(entities)
    while remaining:
        ready = next((e for e in remaining if deps[e.id] <= placed), None)
        if ready is None:
            ordered.extend(remaining)
            break
        ordered.append(ready)
        placed.add(ready.name)
        remaining.remove(ready)
    return ordered


class MigrationGenerator:
    """
    Generates SQL migrations from entity nodes.

    Versions start at ``base_timestamp`` and count up one second per
    migration, so a fixed base gives byte-identical output across runs.
    """

    def __init__(self, config: MigrationConfig | None = None, base_timestamp: datetime | None = None):
        self.config = config or MigrationConfig()
        self.base_timestamp = base_timestamp

    @property
    def backend(self) -> DatabaseBackend:
        return self.config.backend

    def generate(self, entities: list[Node]) -> list[Migration]:
        """
        Build the schema, index and foreign-key migrations.

        Non-entity nodes in ``entities`` are ignored. Returns an empty list
        when there are no entities.
        """
        ordered = order_entities([e for e in entities if e.is_entity])
        if not ordered:
            return []

        migrations = [self._schema_migration(ordered)]
        if self.config.generate_indexes:
            index_migration = self._index_migration(ordered)
            if index_migration is not None:
                migrations.append(index_migration)
        if self.backend != DatabaseBackend.SQLITE:
            fk_migration = self._foreign_key_migration(ordered)
            if fk_migration is not None:
                migrations.append(fk_migration)

        self._assign_versions(migrations)
        logger.debug(f"Generated {len(migrations)} migration(s) for {len(ordered)} entities")
        return migrations

    def generate_for_entity(self, node: Node) -> Migration:
        """
        CREATE/DROP migration for a single entity.

        Raises:
            InvalidComponentConfigError: If ``node`` is not an entity
        """
        if not node.is_entity:
            raise InvalidComponentConfigError(f"Node '{node.name}' is not an entity")
        migration = Migration(
            name=f"create_{to_snake_case(node.name)}",
            up=self.create_table(node),
            down=self.drop_table(node.name),
        )
        self._assign_versions([migration])
        return migration

    def _assign_versions(self, migrations: list[Migration]) -> None:
        if self.base_timestamp is None:
            return
        for offset, migration in enumerate(migrations):
            stamp = self.base_timestamp + timedelta(seconds=offset)
            migration.with_version(stamp.strftime(VERSION_FORMAT))

    # =========================================================================
    # Names
    # =========================================================================

    def table_name(self, entity_name: str) -> str:
        table = to_snake_case(entity_name)
        if self.config.schema_name:
            return f"{self.config.schema_name}.{table}"
        return table

    def _qualified(self, name: str) -> str:
        if self.config.schema_name:
            return f"{self.config.schema_name}.{name}"
        return name

    @staticmethod
    def index_name(entity_name: str, field_name: str) -> str:
        return f"idx_{to_snake_case(entity_name)}_{to_snake_case(field_name)}"

    @staticmethod
    def foreign_key_name(entity_name: str, field_name: str, target: str) -> str:
        return f"fk_{to_snake_case(entity_name)}_{to_snake_case(field_name)}_{to_snake_case(target)}"

    # =========================================================================
    # Schema
    # =========================================================================

    def _schema_migration(self, entities: list[Node]) -> Migration:
        up = [self.create_table(e) for e in entities]
        down = [self.drop_table(e.name) for e in reversed(entities)]
        return Migration(name=SCHEMA_MIGRATION, up="\n\n".join(up), down="\n\n".join(down))

    def create_table(self, node: Node) -> str:
        table = self.table_name(node.name)
        lines = [self.column_definition(f) for f in node.fields]

        if self.config.add_timestamps:
            datetime_type = sql_type(DATETIME, self.backend)
            now = _CURRENT_TIMESTAMP[self.backend]
            for column in _TIMESTAMP_COLUMNS:
                if not node.has_field(column):
                    lines.append(f"    {column} {datetime_type} DEFAULT {now} NOT NULL")

        if self.backend == DatabaseBackend.SQLITE:
            for f in node.fields:
                fk = f.get_foreign_key()
                if fk is not None:
                    lines.append(f"    FOREIGN KEY ({to_snake_case(f.name)}) {self._references(fk)}")

        body = ",\n".join(lines)
        return f"CREATE TABLE {table} (\n{body}\n);"

    def drop_table(self, entity_name: str) -> str:
        table = self.table_name(entity_name)
        if self.backend == DatabaseBackend.SQLITE:
            return f"DROP TABLE IF EXISTS {table};"
        return f"DROP TABLE IF EXISTS {table} CASCADE;"

    def column_definition(self, f: Field) -> str:
        column = to_snake_case(f.name)
        column_type = sql_type(f.data_type, self.backend)
        auto_increment = self.config.use_auto_increment and f.is_auto_increment

        if auto_increment and self.backend == DatabaseBackend.SQLITE and f.is_primary_key:
            # SQLite only autoincrements an INTEGER PRIMARY KEY column
            return f"    {column} INTEGER PRIMARY KEY AUTOINCREMENT"
        if auto_increment and self.backend == DatabaseBackend.POSTGRES:
            column_type = "BIGSERIAL" if f.data_type.unwrap_optional().kind == DataTypeKind.INT64 else "SERIAL"

        parts = [f"    {column}", column_type]
        for constraint in f.constraints:
            parts.extend(self._constraint_parts(constraint))
        if auto_increment and self.backend == DatabaseBackend.MYSQL:
            parts.append("AUTO_INCREMENT")

        if f.required and not f.is_primary_key:
            parts.append("NOT NULL")

        if f.default_value is not None and not any(p.startswith("DEFAULT") for p in parts):
            parts.append(f"DEFAULT {config_value_to_sql(f.default_value)}")

        return " ".join(parts)

    @staticmethod
    def _constraint_parts(constraint: FieldConstraint) -> list[str]:
        if constraint.kind == ConstraintKind.PRIMARY_KEY:
            return ["PRIMARY KEY"]
        if constraint.kind == ConstraintKind.UNIQUE:
            return ["UNIQUE"]
        if constraint.kind == ConstraintKind.DEFAULT_EXPRESSION and constraint.expression:
            return [f"DEFAULT {constraint.expression}"]
        if constraint.kind == ConstraintKind.CHECK and constraint.expression:
            return [f"CHECK ({constraint.expression})"]
        return []

    def _references(self, fk: FieldConstraint) -> str:
        target = self.table_name(fk.entity or "")
        target_column = to_snake_case(fk.field or "id")
        return (
            f"REFERENCES {target}({target_column}) "
            f"ON DELETE {fk.on_delete.to_sql()} ON UPDATE {fk.on_update.to_sql()}"
        )

    # =========================================================================
    # Indexes
    # =========================================================================

    def _index_migration(self, entities: list[Node]) -> Migration | None:
        up: list[str] = []
        down: list[str] = []
        seen: set[str] = set()

        for entity in entities:
            table = self.table_name(entity.name)
            for f in entity.fields:
                if not (f.is_indexed or f.is_foreign_key):
                    continue
                index = self.index_name(entity.name, f.name)
                if index in seen:
                    continue
                seen.add(index)
                column = to_snake_case(f.name)

                if self.backend == DatabaseBackend.MYSQL:
                    up.append(f"CREATE INDEX {index} ON {table} ({column});")
                    down.append(f"DROP INDEX {index} ON {table};")
                    continue
                if f.is_indexed:
                    up.append(f"CREATE INDEX {index} ON {table} ({column});")
                else:
                    up.append(f"CREATE INDEX IF NOT EXISTS {index} ON {table} ({column});")
                down.append(f"DROP INDEX IF EXISTS {self._qualified(index)};")

        if not up:
            return None
        return Migration(name=INDEX_MIGRATION, up="\n".join(up), down="\n".join(reversed(down)))

    # =========================================================================
    # Foreign keys
    # =========================================================================

    def _foreign_key_migration(self, entities: list[Node]) -> Migration | None:
        up: list[str] = []
        down: list[str] = []

        for entity in entities:
            table = self.table_name(entity.name)
            for f in entity.fields:
                fk = f.get_foreign_key()
                if fk is None:
                    continue
                name = self.foreign_key_name(entity.name, f.name, fk.entity or "")
                column = to_snake_case(f.name)
                up.append(
                    f"ALTER TABLE {table} ADD CONSTRAINT {name} "
                    f"FOREIGN KEY ({column}) {self._references(fk)};"
                )
                if self.backend == DatabaseBackend.MYSQL:
                    down.append(f"ALTER TABLE {table} DROP FOREIGN KEY {name};")
                else:
                    down.append(f"ALTER TABLE {table} DROP CONSTRAINT IF EXISTS {name};")

        if not up:
            return None
        return Migration(name=FOREIGN_KEY_MIGRATION, up="\n".join(up), down="\n".join(reversed(down)))


def generate_all_migrations(
    graph: ProjectGraph,
    backend: DatabaseBackend = DatabaseBackend.POSTGRES,
    base_timestamp: datetime | None = None,
) -> dict[str, str]:
    """
    Migration files for every entity in ``graph``, keyed by filename.

    ``base_timestamp`` defaults to the project's creation time.
    """
    generator = MigrationGenerator(
        MigrationConfig(backend=backend),
        base_timestamp=base_timestamp or graph.meta.created_at,
    )
    return {m.filename: m.to_sql() for m in generator.generate(graph.entity_nodes())}

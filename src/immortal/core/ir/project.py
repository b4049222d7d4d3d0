"""
Project metadata and per-domain configuration.

``ProjectMeta.domains`` maps a domain name (``"database"``, ``"api"`` ...)
to a DomainConfig. The code generator reads these to pick a database
backend or web framework when the generator config leaves them unset.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field

from .types import ConfigValue

IR_VERSION = "1.0.0"

DATABASE_DOMAIN = "database"
API_DOMAIN = "api"
AUTH_DOMAIN = "auth"


def _now() -> datetime:
    return datetime.now(timezone.utc)


class DomainConfig(BaseModel):
    """Settings and feature flags for one domain of the project."""

    enabled: bool = True
    settings: dict[str, ConfigValue] = Field(default_factory=dict)
    priority: int = 0
    features: list[str] = Field(default_factory=list)
    templates_dir: str | None = None

    @classmethod
    def disabled(cls) -> DomainConfig:
        return cls(enabled=False)

    def with_setting(self, key: str, value: Any) -> DomainConfig:
        self.set_setting(key, value)
        return self

    def with_feature(self, feature: str) -> DomainConfig:
        self.add_feature(feature)
        return self

    def set_setting(self, key: str, value: Any) -> None:
        self.settings[key] = ConfigValue.from_native(value)

    def get_setting(self, key: str) -> ConfigValue | None:
        return self.settings.get(key)

    def get_setting_str(self, key: str) -> str | None:
        value = self.settings.get(key)
        return value.as_str() if value is not None else None

    def get_setting_bool(self, key: str) -> bool | None:
        value = self.settings.get(key)
        return value.as_bool() if value is not None else None

    def get_setting_int(self, key: str) -> int | None:
        value = self.settings.get(key)
        return value.as_int() if value is not None else None

    def has_feature(self, feature: str) -> bool:
        return feature in self.features

    def add_feature(self, feature: str) -> None:
        if feature not in self.features:
            self.features.append(feature)

    def remove_feature(self, feature: str) -> bool:
        if feature in self.features:
            self.features.remove(feature)
            return True
        return False


def database_preset(backend: str) -> DomainConfig:
    """
    Ready-made ``database`` domain config.

    Args:
        backend: One of "postgres", "sqlite", "mysql"
    """
    if backend == "postgres":
        return (
            DomainConfig()
            .with_setting("backend", "postgres")
            .with_setting("generate_migrations", True)
            .with_setting("pool_size", 10)
            .with_feature("uuid")
            .with_feature("json")
        )
    if backend == "sqlite":
        return (
            DomainConfig()
            .with_setting("backend", "sqlite")
            .with_setting("generate_migrations", True)
            .with_setting("path", "data.db")
        )
    if backend == "mysql":
        return (
            DomainConfig()
            .with_setting("backend", "mysql")
            .with_setting("generate_migrations", True)
            .with_setting("pool_size", 10)
        )
    raise ValueError(f"Unknown database preset: {backend}")


def api_preset(kind: str) -> DomainConfig:
    """
    Ready-made ``api`` domain config.

    Args:
        kind: One of "axum_rest", "actix_rest", "graphql"
    """
    if kind == "axum_rest":
        return (
            DomainConfig()
            .with_setting("framework", "axum")
            .with_setting("style", "rest")
            .with_setting("port", 3000)
            .with_feature("cors")
            .with_feature("tracing")
        )
    if kind == "actix_rest":
        return (
            DomainConfig()
            .with_setting("framework", "actix")
            .with_setting("style", "rest")
            .with_setting("port", 8080)
            .with_feature("cors")
        )
    if kind == "graphql":
        return (
            DomainConfig()
            .with_setting("framework", "async-graphql")
            .with_setting("style", "graphql")
            .with_setting("port", 3000)
            .with_feature("playground")
        )
    raise ValueError(f"Unknown API preset: {kind}")


class ProjectMeta(BaseModel):
    """Project-level metadata."""

    name: str
    version: str = "0.1.0"
    description: str | None = None
    authors: list[str] = Field(default_factory=list)
    license: str | None = None
    repository: str | None = None
    homepage: str | None = None
    documentation: str | None = None
    keywords: list[str] = Field(default_factory=list)
    categories: list[str] = Field(default_factory=list)
    domains: dict[str, DomainConfig] = Field(default_factory=dict)
    target_language: str = "rust"
    target_framework: str | None = None
    output_dir: str = "generated"
    generate_tests: bool = True
    generate_docs: bool = True
    metadata: dict[str, Any] = Field(default_factory=dict)
    ir_version: str = IR_VERSION
    created_at: datetime = Field(default_factory=_now)
    modified_at: datetime = Field(default_factory=_now)

    def with_description(self, description: str) -> ProjectMeta:
        self.description = description
        return self

    def with_domain(self, name: str, config: DomainConfig) -> ProjectMeta:
        self.domains[name] = config
        return self

    def has_domain(self, name: str) -> bool:
        """True when the domain is configured and enabled."""
        domain = self.domains.get(name)
        return domain is not None and domain.enabled

    def get_domain(self, name: str) -> DomainConfig | None:
        return self.domains.get(name)

    def enabled_domains(self) -> list[str]:
        """Enabled domain names, highest priority first."""
        enabled = [(name, cfg) for name, cfg in self.domains.items() if cfg.enabled]
        enabled.sort(key=lambda item: -item[1].priority)
        return [name for name, _ in enabled]

    @property
    def has_database(self) -> bool:
        return self.has_domain(DATABASE_DOMAIN)

    @property
    def has_api(self) -> bool:
        return self.has_domain(API_DOMAIN)

    def enable_domain(self, name: str) -> None:
        domain = self.domains.setdefault(name, DomainConfig())
        domain.enabled = True
        self.touch()

    def disable_domain(self, name: str) -> None:
        domain = self.domains.get(name)
        if domain is not None:
            domain.enabled = False
            self.touch()

    def touch(self) -> None:
        self.modified_at = _now()

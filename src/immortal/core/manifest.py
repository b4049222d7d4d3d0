"""
Project manifest (immortal.toml) models.

The manifest sits beside a project file and overrides generator, auth and
validation defaults::

    [generator]
    framework = "actix"
    database = "sqlite"
    output_dir = "out"
    generate_migrations = false

    [auth]
    use_jwt = false
    session_duration_secs = 3600

    [validation]
    min_severity = "info"
    fail_fast = true
"""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from immortal.core.errors import ConfigError
from immortal.core.validator import Severity, Validator

if TYPE_CHECKING:
    from immortal.codegen.auth import AuthConfig
    from immortal.codegen.config import DatabaseBackend, Framework, GeneratorConfig

MANIFEST_NAME = "immortal.toml"


class GeneratorSection(BaseModel):
    """[generator] table; unset keys defer to the project and built-in defaults."""

    model_config = ConfigDict(extra="forbid")

    framework: str | None = None
    database: str | None = None
    output_dir: str | None = None
    generate_tests: bool = True
    generate_docs: bool = True
    generate_migrations: bool = True


class AuthSection(BaseModel):
    """[auth] table."""

    model_config = ConfigDict(extra="forbid")

    use_jwt: bool = True
    jwt_secret_env: str = "JWT_SECRET"
    session_duration_secs: int = Field(default=86400, gt=0)
    use_argon2: bool = True
    use_refresh_tokens: bool = False


class ValidationSection(BaseModel):
    """[validation] table."""

    model_config = ConfigDict(extra="forbid")

    min_severity: Severity = Severity.WARNING
    fail_fast: bool = False


class ManifestConfig(BaseModel):
    """Complete manifest configuration."""

    generator: GeneratorSection = Field(default_factory=GeneratorSection)
    auth: AuthSection = Field(default_factory=AuthSection)
    validation: ValidationSection = Field(default_factory=ValidationSection)

    def generator_config(self) -> GeneratorConfig:
        """
        GeneratorConfig for this manifest.

        Raises:
            ConfigError: If framework or database names an unsupported value
        """
        from immortal.codegen.config import GeneratorConfig

        section = self.generator
        config = GeneratorConfig(
            generate_tests=section.generate_tests,
            generate_docs=section.generate_docs,
            generate_migrations=section.generate_migrations,
        )
        if section.framework is not None:
            config = config.with_framework(_framework(section.framework))
        if section.database is not None:
            config = config.with_database(_database(section.database))
        if section.output_dir is not None:
            config = config.with_output_dir(section.output_dir)
        return config

    def auth_config(self) -> AuthConfig:
        from immortal.codegen.auth import AuthConfig

        return AuthConfig(**self.auth.model_dump())

    def validator(self) -> Validator:
        return Validator(
            fail_fast=self.validation.fail_fast,
            min_severity=self.validation.min_severity,
        )


def _framework(value: str) -> Framework:
    from immortal.codegen.config import Framework

    try:
        return Framework(value.lower())
    except ValueError:
        choices = ", ".join(f.value for f in Framework)
        raise ConfigError(f"Unknown framework '{value}' (expected one of: {choices})") from None


def _database(value: str) -> DatabaseBackend:
    from immortal.codegen.config import DatabaseBackend

    try:
        return DatabaseBackend(value.lower())
    except ValueError:
        choices = ", ".join(d.value for d in DatabaseBackend)
        raise ConfigError(f"Unknown database '{value}' (expected one of: {choices})") from None


def parse_manifest(data: dict[str, Any]) -> ManifestConfig:
    """
    Build a ManifestConfig from parsed TOML.

    Raises:
        ConfigError: On unknown keys, wrong types, or unsupported
            framework/database names
    """
    try:
        manifest = ManifestConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid {MANIFEST_NAME}: {e}") from e
    # Resolves framework and database names, raising on unknown ones
    manifest.generator_config()
    return manifest


def load_manifest(path: Path | str) -> ManifestConfig:
    """
    Load a manifest file, or a directory's ``immortal.toml``.

    A missing file yields the defaults.

    Raises:
        ConfigError: If the file is not valid TOML or holds invalid values
    """
    path = Path(path)
    if path.is_dir():
        path = path / MANIFEST_NAME
    if not path.exists():
        return ManifestConfig()

    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {path}: {e}") from e

    return parse_manifest(data)

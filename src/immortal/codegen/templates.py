"""
Jinja2 environment for the Rust templates.

Templates live in the ``templates/`` directory beside this module and are
rendered with StrictUndefined, so a missing context variable is an error
rather than an empty string.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, StrictUndefined, TemplateError

from immortal.core.errors import TemplateRenderError

from .naming import (
    rust_default,
    rust_field_type,
    rust_ident,
    rust_type,
    to_camel_case,
    to_pascal_case,
    to_screaming_snake_case,
    to_snake_case,
)

TEMPLATES_DIR = Path(__file__).parent / "templates"


def _rust_str_filter(value: str) -> str:
    """Quote a Python string as a Rust string literal."""
    escaped = str(value).replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def create_jinja_env() -> Environment:
    env = Environment(
        loader=FileSystemLoader(str(TEMPLATES_DIR)),
        undefined=StrictUndefined,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
        autoescape=False,
    )

    env.filters["snake"] = to_snake_case
    env.filters["pascal"] = to_pascal_case
    env.filters["camel"] = to_camel_case
    env.filters["screaming"] = to_screaming_snake_case
    env.filters["ident"] = rust_ident
    env.filters["rust_type"] = rust_type
    env.filters["field_type"] = rust_field_type
    env.filters["field_default"] = rust_default
    env.filters["rust_str"] = _rust_str_filter

    return env


# Module-level singleton
_env: Environment | None = None


def get_jinja_env() -> Environment:
    """Get the shared Jinja2 environment (lazy singleton)."""
    global _env
    if _env is None:
        _env = create_jinja_env()
    return _env


def render(template_name: str, **context: Any) -> str:
    """
    Render one template.

    Raises:
        TemplateRenderError: If the template is missing or fails to render
    """
    try:
        return get_jinja_env().get_template(template_name).render(**context)
    except TemplateError as e:
        raise TemplateRenderError(template_name, e) from e

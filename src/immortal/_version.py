"""Engine version, as reported by ``immortal --version`` and ``immortal.__version__``."""

import tomllib
from importlib import metadata
from pathlib import Path

DISTRIBUTION = "immortal-engine"
UNKNOWN_VERSION = "0+unknown"

_PYPROJECT = Path(__file__).resolve().parents[2] / "pyproject.toml"


def _source_tree_version() -> str | None:
    """``[project].version`` of the checkout this package was imported from."""
    try:
        with _PYPROJECT.open("rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError):
        return None
    project = data.get("project", {})
    if project.get("name") != DISTRIBUTION:
        return None
    return project.get("version")


def get_version() -> str:
    """Installed distribution version, else the source checkout's, else a placeholder."""
    try:
        return metadata.version(DISTRIBUTION)
    except metadata.PackageNotFoundError:
        return _source_tree_version() or UNKNOWN_VERSION

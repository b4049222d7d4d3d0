"""
Generated project: the in-memory file map a generation run produces.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from immortal.core.errors import GenerationIOError

logger = logging.getLogger(__name__)


@dataclass
class GeneratedProject:
    """
    Files produced by one generation run.

    Attributes:
        name: Project name
        files: Slash-separated relative path to full file text
        warnings: Non-blocking notes collected during generation
    """

    name: str
    files: dict[str, str] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)

    def add_file(self, path: str, content: str) -> None:
        self.files[path] = content

    def add_warning(self, warning: str) -> None:
        self.warnings.append(warning)

    def file_count(self) -> int:
        return len(self.files)

    def has_warnings(self) -> bool:
        return bool(self.warnings)

    def get_file(self, path: str) -> str | None:
        return self.files.get(path)

    def file_paths(self) -> list[str]:
        return sorted(self.files)

    def files_with_extension(self, extension: str) -> dict[str, str]:
        return {p: c for p, c in sorted(self.files.items()) if p.endswith(extension)}

    def merge(self, other: GeneratedProject) -> None:
        """Copy ``other``'s files and warnings in; its files win on path collisions."""
        self.files.update(other.files)
        self.warnings.extend(other.warnings)

    def write_to_disk(self, output_dir: Path | str) -> list[Path]:
        """
        Write every file under ``output_dir``, creating parent directories.

        Files are written one at a time; a failure leaves earlier files in
        place.

        Returns:
            Paths written, in sorted path order

        Raises:
            GenerationIOError: On the first file that cannot be written
        """
        root = Path(output_dir)
        written: list[Path] = []
        for rel_path in self.file_paths():
            target = root / rel_path
            try:
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_text(self.files[rel_path], encoding="utf-8")
            except OSError as e:
                raise GenerationIOError(str(target), e) from e
            written.append(target)
        logger.info(f"Wrote {len(written)} file(s) to {root}")
        return written

"""Tests for project file persistence."""

import json
from pathlib import Path

import pytest

from immortal.core.errors import DeserializationError, ProjectFileNotFoundError
from immortal.core.ir import IR_VERSION, ProjectGraph
from immortal.core.serialization import (
    PROJECT_EXTENSION,
    PROJECT_FORMAT,
    ProjectFile,
    from_json,
    load_project,
    save_project,
    to_json,
)


class TestJson:
    """Test to_json / from_json."""

    def test_round_trip_preserves_graph(self, blog_graph: ProjectGraph) -> None:
        restored = from_json(to_json(blog_graph))
        assert restored.model_dump() == blog_graph.model_dump()
        assert list(restored.nodes) == list(blog_graph.nodes)

    def test_envelope(self, blog_graph: ProjectGraph) -> None:
        data = json.loads(to_json(blog_graph))
        assert data["ir_version"] == IR_VERSION
        assert data["format"] == PROJECT_FORMAT
        assert data["project"]["meta"]["name"] == "Blog"

    def test_dirty_flag_not_serialized(self, blog_graph: ProjectGraph) -> None:
        blog_graph.dirty = True
        assert "dirty" not in json.loads(to_json(blog_graph))["project"]
        assert not from_json(to_json(blog_graph)).dirty

    def test_compact(self, blog_graph: ProjectGraph) -> None:
        assert "\n" not in to_json(blog_graph, compact=True)
        assert "\n" in to_json(blog_graph)

    @pytest.mark.parametrize(
        "text",
        [
            "not json",
            "{}",
            '{"ir_version": "1.0.0", "format": "immortal"}',
            "[]",
        ],
    )
    def test_malformed(self, text: str) -> None:
        with pytest.raises(DeserializationError):
            from_json(text)

    def test_incompatible_major_version(self, blog_graph: ProjectGraph) -> None:
        data = json.loads(to_json(blog_graph))
        data["ir_version"] = "2.0.0"
        with pytest.raises(DeserializationError, match="Incompatible"):
            from_json(json.dumps(data))

    def test_minor_version_accepted(self, blog_graph: ProjectGraph) -> None:
        data = json.loads(to_json(blog_graph))
        data["ir_version"] = "1.9.3"
        assert from_json(json.dumps(data)).meta.name == "Blog"

    def test_wrong_format(self, blog_graph: ProjectGraph) -> None:
        data = json.loads(to_json(blog_graph))
        data["format"] = "other"
        with pytest.raises(DeserializationError):
            from_json(json.dumps(data))

    def test_project_file_wrap(self, empty_graph: ProjectGraph) -> None:
        project_file = ProjectFile.wrap(empty_graph)
        assert project_file.is_compatible()
        assert project_file.project is empty_graph


class TestFiles:
    """Test save_project / load_project."""

    def test_save_and_load(self, tmp_path: Path, blog_graph: ProjectGraph) -> None:
        blog_graph.dirty = True
        path = save_project(blog_graph, tmp_path / "nested" / f"blog{PROJECT_EXTENSION}")
        assert path.exists()
        assert not blog_graph.dirty
        assert load_project(path).model_dump() == blog_graph.model_dump()

    def test_file_ends_with_newline(self, blog_project_file: Path) -> None:
        assert blog_project_file.read_text(encoding="utf-8").endswith("}\n")

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ProjectFileNotFoundError) as exc_info:
            load_project(tmp_path / "missing.imm.json")
        assert "missing.imm.json" in str(exc_info.value)

    def test_corrupt_file(self, tmp_path: Path) -> None:
        path = tmp_path / "broken.imm.json"
        path.write_text("{ nope", encoding="utf-8")
        with pytest.raises(DeserializationError):
            load_project(path)

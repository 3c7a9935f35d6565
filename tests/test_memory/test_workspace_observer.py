"""Tests for workspace and file observation."""

from pathlib import Path

import orjson
import pytest

from project_companion.memory import GraphStore, NodeType, WorkspaceObserver
from project_companion.memory.workspace import (
    MAX_ACTIVE_FILES,
    detect_language,
    detect_technologies,
    detect_workspace_type,
    extract_dependencies,
    file_node_id,
)


def _write_package_json(root: Path, **sections: dict[str, str]) -> None:
    (root / "package.json").write_bytes(orjson.dumps(sections))


class TestDetection:
    """Project type, technology and dependency detection."""

    @pytest.mark.parametrize(
        ("dependencies", "expected"),
        [
            ({"next": "14", "react": "18"}, "nextjs"),
            ({"react": "18"}, "react"),
            ({"vue": "3"}, "vue"),
            ({"express": "4"}, "express"),
            ({"@angular/core": "17"}, "angular"),
            ({"lodash": "4"}, "nodejs"),
        ],
    )
    def test_node_projects(self, tmp_path: Path, dependencies: dict, expected: str) -> None:
        _write_package_json(tmp_path, dependencies=dependencies)
        assert detect_workspace_type(tmp_path) == expected

    @pytest.mark.parametrize(
        ("marker", "expected"),
        [
            ("requirements.txt", "python"),
            ("pyproject.toml", "python"),
            ("Cargo.toml", "rust"),
            ("go.mod", "go"),
        ],
    )
    def test_other_projects(self, tmp_path: Path, marker: str, expected: str) -> None:
        (tmp_path / marker).write_text("")
        assert detect_workspace_type(tmp_path) == expected

    def test_unknown_project(self, tmp_path: Path) -> None:
        assert detect_workspace_type(tmp_path) == "general"

    def test_broken_package_json_is_still_node(self, tmp_path: Path) -> None:
        (tmp_path / "package.json").write_text("{not json")
        assert detect_workspace_type(tmp_path) == "nodejs"
        assert detect_technologies(tmp_path) == []

    def test_technologies_are_deduplicated(self, tmp_path: Path) -> None:
        _write_package_json(
            tmp_path,
            dependencies={"react": "18", "react-dom": "18"},
            devDependencies={"typescript": "5", "eslint": "8"},
        )
        (tmp_path / "tsconfig.json").write_text("{}")
        (tmp_path / "tailwind.config.js").write_text("")

        assert detect_technologies(tmp_path) == ["React", "TypeScript", "ESLint", "Tailwind CSS"]

    def test_language_from_suffix(self) -> None:
        assert detect_language(Path("app/page.tsx")) == "typescriptreact"
        assert detect_language(Path("main.PY")) == "python"
        assert detect_language(Path("Makefile")) == "plaintext"

    def test_python_dependencies(self) -> None:
        text = "import os\nfrom pathlib import Path\n  import structlog\nx = 'import nothing'\n"
        assert extract_dependencies(text, "python") == ["os", "pathlib", "structlog"]

    def test_javascript_dependencies(self) -> None:
        text = "import React from 'react';\nconst fs = require(\"fs\");\n"
        assert extract_dependencies(text, "typescript") == ["react", "fs"]

    def test_go_dependencies(self) -> None:
        assert extract_dependencies('import "fmt"\n', "go") == ["fmt"]

    def test_unsupported_language(self) -> None:
        assert extract_dependencies("use std::io;", "rust") == []


class TestWorkspaceObserver:
    """Graph updates made by the observer."""

    @pytest.fixture
    def store(self) -> GraphStore:
        return GraphStore()

    @pytest.fixture
    def observer(self, store: GraphStore) -> WorkspaceObserver:
        return WorkspaceObserver(store)

    def test_summary_without_workspace(self, observer: WorkspaceObserver) -> None:
        assert observer.summary() == "No workspace context available"

    def test_observe_workspace_upserts_concept(
        self, tmp_path: Path, store: GraphStore, observer: WorkspaceObserver
    ) -> None:
        """Observing twice keeps one workspace node."""
        _write_package_json(tmp_path, dependencies={"react": "18"})

        first = observer.observe_workspace(tmp_path)
        second = observer.observe_workspace(tmp_path)

        assert first == second
        node = store.get_node(first)
        assert node.type == NodeType.CONCEPT
        assert node.content == f"Workspace: {tmp_path.name}"
        assert node.metadata["type"] == "react"
        assert node.version == 2
        assert store.search("workspace")[0].id == first

    def test_observe_file_from_text(self, store: GraphStore, observer: WorkspaceObserver) -> None:
        node_id = observer.observe_file("src/app.py", text="import httpx\n")

        node = store.get_node(node_id)
        assert node.type == NodeType.FILE
        assert node.weight == 0.5
        assert node.content == "File: src/app.py"
        assert node.metadata["language"] == "python"
        assert node.metadata["dependencies"] == ["httpx"]
        assert node_id == file_node_id("src/app.py")

    def test_observe_file_from_disk(self, tmp_path: Path, observer: WorkspaceObserver) -> None:
        source = tmp_path / "index.js"
        source.write_text("const x = require('express');\n")

        node_id = observer.observe_file(source)

        assert observer.store.get_node(node_id).metadata["dependencies"] == ["express"]

    def test_observe_missing_file(self, tmp_path: Path, observer: WorkspaceObserver) -> None:
        assert observer.observe_file(tmp_path / "missing.py") is None

    def test_active_files_are_capped(self, store: GraphStore, observer: WorkspaceObserver) -> None:
        """Only the ten most recently activated files stay active."""
        paths = [f"src/f{i}.py" for i in range(MAX_ACTIVE_FILES + 2)]
        for path in paths:
            observer.observe_file(path, text="")
            observer.mark_active(path)

        assert observer.active_files == paths[2:]
        assert observer.recent_files() == paths[-5:]
        assert store.get_node(file_node_id(paths[0])).metadata["is_active"] is False
        assert store.get_node(file_node_id(paths[-1])).metadata["is_active"] is True

    def test_reactivating_moves_to_end(self, observer: WorkspaceObserver) -> None:
        observer.mark_active("a.py")
        observer.mark_active("b.py")
        observer.mark_active("a.py")

        assert observer.active_files == ["b.py", "a.py"]

    def test_forget_file(self, store: GraphStore, observer: WorkspaceObserver) -> None:
        observer.observe_file("a.py", text="")
        observer.mark_active("a.py")

        assert observer.forget_file("a.py") is True
        assert observer.forget_file("a.py") is False
        assert observer.active_files == []
        assert store.get_node(file_node_id("a.py")) is None

    def test_summary(self, tmp_path: Path, observer: WorkspaceObserver) -> None:
        (tmp_path / "pyproject.toml").write_text("")
        observer.observe_workspace(tmp_path)
        observer.observe_file("a.py", text="")
        observer.observe_file("b.py", text="")
        observer.mark_active("a.py")

        assert observer.summary() == (
            f"Working in {tmp_path.name} (python) with no detected technologies. "
            "2 files tracked, 1 currently active."
        )

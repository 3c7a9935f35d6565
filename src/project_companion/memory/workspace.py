"""Workspace and file facts fed into the graph store.

The observer runs outside the conversational loop: it inspects a project
directory and individual files and upserts ``concept`` and ``file`` nodes
under stable ids, so later conversation turns can find them through search.
"""

import hashlib
import re
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

import orjson

from project_companion.memory.graph import GraphStore
from project_companion.memory.models import NodeType, utc_now
from project_companion.telemetry import get_logger
from project_companion.telemetry.events import FILE_FORGOTTEN, FILE_OBSERVED, WORKSPACE_OBSERVED

log = get_logger(__name__)

MAX_ACTIVE_FILES = 10
RECENT_FILES = 5

LANGUAGE_BY_SUFFIX = {
    ".py": "python",
    ".js": "javascript",
    ".jsx": "javascriptreact",
    ".ts": "typescript",
    ".tsx": "typescriptreact",
    ".go": "go",
    ".rs": "rust",
    ".md": "markdown",
    ".json": "json",
    ".yaml": "yaml",
    ".yml": "yaml",
}

_JS_IMPORT = re.compile(r"import\s+.*\s+from\s+['\"`]([^'\"`]+)['\"`]")
_JS_REQUIRE = re.compile(r"require\(['\"`]([^'\"`]+)['\"`]\)")
_PY_IMPORT = re.compile(r"^\s*(?:from\s+(\S+)\s+import|import\s+(\S+))", re.MULTILINE)
_GO_IMPORT = re.compile(r"import\s+\"([^\"]+)\"")

# (substring of a dependency name, technology label)
_JS_TECHNOLOGIES = [
    ("react", "React"),
    ("vue", "Vue"),
    ("angular", "Angular"),
    ("typescript", "TypeScript"),
    ("express", "Express"),
    ("next", "Next.js"),
    ("tailwind", "Tailwind CSS"),
    ("eslint", "ESLint"),
]


@dataclass
class FileContext:
    """What is known about one observed file."""

    path: str
    language: str
    is_active: bool
    size: int
    dependencies: list[str] = field(default_factory=list)
    last_modified: str = field(default_factory=lambda: utc_now().isoformat())


@dataclass
class WorkspaceContext:
    """What is known about the observed project."""

    name: str
    path: str
    type: str
    technologies: list[str]
    active_files: list[str] = field(default_factory=list)


def detect_language(path: Path) -> str:
    """Guess a language id from the file suffix."""
    return LANGUAGE_BY_SUFFIX.get(path.suffix.lower(), "plaintext")


def extract_dependencies(text: str, language: str) -> list[str]:
    """Pull imported module names out of source text.

    Args:
        text: File contents.
        language: Language id (python, go, javascript/typescript and their
            react variants are understood).

    Returns:
        Imported names in source order; empty for other languages.
    """
    if language in ("javascript", "typescript", "javascriptreact", "typescriptreact"):
        return _JS_IMPORT.findall(text) + _JS_REQUIRE.findall(text)
    if language == "python":
        return [m[0] or m[1] for m in _PY_IMPORT.findall(text)]
    if language == "go":
        return _GO_IMPORT.findall(text)
    return []


def _read_package_json(root: Path) -> dict[str, Any] | None:
    manifest = root / "package.json"
    if not manifest.exists():
        return None
    try:
        data = orjson.loads(manifest.read_bytes())
    except (OSError, orjson.JSONDecodeError) as e:
        log.warning("package_json_unreadable", path=str(manifest), error=str(e))
        return {}
    return data if isinstance(data, dict) else {}


def detect_workspace_type(root: Path) -> str:
    """Classify a project directory from its marker files."""
    package = _read_package_json(root)
    if package is not None:
        deps = package.get("dependencies") or {}
        for dep, kind in (
            ("next", "nextjs"),
            ("react", "react"),
            ("vue", "vue"),
            ("express", "express"),
            ("@angular/core", "angular"),
        ):
            if dep in deps:
                return kind
        return "nodejs"
    if (root / "requirements.txt").exists() or (root / "pyproject.toml").exists():
        return "python"
    if (root / "Cargo.toml").exists():
        return "rust"
    if (root / "go.mod").exists():
        return "go"
    return "general"


def detect_technologies(root: Path) -> list[str]:
    """List technologies named by the project's manifests and config files."""
    found: list[str] = []
    package = _read_package_json(root)
    if package:
        deps = {**(package.get("dependencies") or {}), **(package.get("devDependencies") or {})}
        for dep in deps:
            found.extend(label for needle, label in _JS_TECHNOLOGIES if needle in dep)

    if (root / "tsconfig.json").exists():
        found.append("TypeScript")
    if (root / ".eslintrc.js").exists() or (root / ".eslintrc.json").exists():
        found.append("ESLint")
    if (root / "tailwind.config.js").exists():
        found.append("Tailwind CSS")

    return list(dict.fromkeys(found))


def file_node_id(path: str) -> str:
    """Stable graph id for a file path."""
    return "file_" + hashlib.sha1(path.encode("utf-8")).hexdigest()[:16]


class WorkspaceObserver:
    """Records workspace and file facts in a graph store.

    Args:
        store: Graph store receiving the nodes.
    """

    def __init__(self, store: GraphStore) -> None:
        self.store = store
        self.workspace: WorkspaceContext | None = None
        self.files: dict[str, FileContext] = {}
        self._active: dict[str, None] = {}

    @property
    def active_files(self) -> list[str]:
        """Active file paths, oldest first."""
        return list(self._active)

    def observe_workspace(self, path: Path | str) -> str:
        """Detect project type and technologies and record the workspace.

        Returns:
            The workspace node id.
        """
        root = Path(path).resolve()
        self.workspace = WorkspaceContext(
            name=root.name,
            path=str(root),
            type=detect_workspace_type(root),
            technologies=detect_technologies(root),
            active_files=self.active_files,
        )
        node_id = self.store.add_node(
            NodeType.CONCEPT,
            f"Workspace: {root.name}",
            asdict(self.workspace),
            weight=1.0,
            node_id=f"workspace_{root.name}",
        )
        log.info(
            WORKSPACE_OBSERVED,
            workspace=root.name,
            workspace_type=self.workspace.type,
            technologies=self.workspace.technologies,
        )
        return node_id

    def observe_file(
        self, path: Path | str, language: str | None = None, text: str | None = None
    ) -> str | None:
        """Record one file, reading it from disk when ``text`` is not given.

        Returns:
            The file node id, or None if the file could not be read.
        """
        file_path = Path(path)
        key = str(file_path)
        if text is None:
            try:
                text = file_path.read_text(encoding="utf-8", errors="replace")
            except OSError as e:
                log.warning("file_unreadable", path=key, error=str(e))
                return None

        language = language or detect_language(file_path)
        context = FileContext(
            path=key,
            language=language,
            is_active=key in self._active,
            size=len(text),
            dependencies=extract_dependencies(text, language),
        )
        self.files[key] = context

        node_id = self.store.add_node(
            NodeType.FILE,
            f"File: {key}",
            asdict(context),
            weight=0.5,
            node_id=file_node_id(key),
        )
        log.debug(FILE_OBSERVED, path=key, language=language, dependencies=len(context.dependencies))
        return node_id

    def mark_active(self, path: Path | str) -> None:
        """Mark a file active; only the most recent ten stay active."""
        key = str(path)
        self._active.pop(key, None)
        self._active[key] = None

        while len(self._active) > MAX_ACTIVE_FILES:
            evicted = next(iter(self._active))
            del self._active[evicted]
            self._set_active_flag(evicted, False)

        self._set_active_flag(key, True)
        if self.workspace is not None:
            self.workspace.active_files = self.active_files

    def forget_file(self, path: Path | str) -> bool:
        """Drop a deleted file from the observer and the graph.

        Returns:
            True if the file node existed.
        """
        key = str(path)
        self.files.pop(key, None)
        self._active.pop(key, None)
        removed = self.store.remove_node(file_node_id(key))
        log.debug(FILE_FORGOTTEN, path=key, removed=removed)
        return removed

    def recent_files(self) -> list[str]:
        """The last few active files."""
        return self.active_files[-RECENT_FILES:]

    def summary(self) -> str:
        """One-line description of the workspace for prompts."""
        if self.workspace is None:
            return "No workspace context available"
        technologies = ", ".join(self.workspace.technologies) or "no detected technologies"
        return (
            f"Working in {self.workspace.name} ({self.workspace.type}) with {technologies}. "
            f"{len(self.files)} files tracked, {len(self._active)} currently active."
        )

    def _set_active_flag(self, key: str, active: bool) -> None:
        context = self.files.get(key)
        if context is not None:
            context.is_active = active
        self.store.update_node(file_node_id(key), metadata={"is_active": active})

from __future__ import annotations

from pathlib import Path
from typing import Callable, Dict

import pytest

from jsgraph import parse
from jsgraph.config import ParseOptions
from jsgraph.loader import load_project
from jsgraph.models import GraphData


def write_files(root: Path, files: Dict[str, str]) -> Path:
    for rel_path, content in files.items():
        path = root / rel_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return root


@pytest.fixture
def make_project(tmp_path) -> Callable[[Dict[str, str]], Path]:
    """Write a small project under a fresh directory and return its root."""
    counter = {"n": 0}

    def _make(files: Dict[str, str]) -> Path:
        counter["n"] += 1
        root = tmp_path / f"project{counter['n']}"
        root.mkdir()
        return write_files(root, files)

    return _make


@pytest.fixture
def analyze(make_project) -> Callable[..., GraphData]:
    """Write a project and parse it in one step."""

    def _analyze(files: Dict[str, str], options: ParseOptions | None = None) -> GraphData:
        return parse(make_project(files), options)

    return _analyze


@pytest.fixture
def snapshot(make_project):
    def _snapshot(files: Dict[str, str], options: ParseOptions | None = None):
        return load_project(make_project(files), options)

    return _snapshot

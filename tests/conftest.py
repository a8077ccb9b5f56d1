"""Shared fixtures for building sample projects on disk."""

import textwrap
from collections.abc import Callable, Mapping
from pathlib import Path

import pytest

ProjectFactory = Callable[[Mapping[str, str]], Path]


@pytest.fixture
def make_project(tmp_path: Path) -> ProjectFactory:
    """Return a function writing ``{relative path: source}`` into a project."""

    def factory(files: Mapping[str, str]) -> Path:
        root = tmp_path / "project"
        for relative, content in files.items():
            path = root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(textwrap.dedent(content), encoding="utf-8")
        return root

    return factory

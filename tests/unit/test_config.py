"""Tests for configuration loading."""

from collections.abc import Callable, Mapping
from pathlib import Path

import pytest

from testharness.config import (
    HarnessConfig,
    load_config,
    resolve_layout,
    threads_from_env,
)
from testharness.errors import ConfigError
from testharness.testing.factories import HarnessConfigFactory

ProjectFactory = Callable[[Mapping[str, str]], Path]


class TestLoadConfig:
    """Tests for load_config function."""

    def test_defaults_without_file(self, tmp_path: Path) -> None:
        """Missing file means default settings."""
        assert load_config(tmp_path) == HarnessConfig()

    def test_loads_yaml(self, tmp_path: Path) -> None:
        """Parses and validates testharness.yaml."""
        (tmp_path / "testharness.yaml").write_text(
            """
library: mylib
source_root: lib
tests_dir: checks
test_threads: 3
doctests: false
"""
        )

        config = load_config(tmp_path)

        assert config == HarnessConfig(
            library="mylib",
            source_root="lib",
            tests_dir="checks",
            test_threads=3,
            doctests=False,
        )

    def test_empty_file(self, tmp_path: Path) -> None:
        """An empty file means default settings."""
        (tmp_path / "testharness.yaml").write_text("")

        assert load_config(tmp_path) == HarnessConfig()

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        """Malformed YAML raises ConfigError."""
        (tmp_path / "testharness.yaml").write_text("library: [unclosed\n")

        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_config(tmp_path)

    def test_unknown_key(self, tmp_path: Path) -> None:
        """Unknown settings are rejected."""
        (tmp_path / "testharness.yaml").write_text("colour: blue\n")

        with pytest.raises(ConfigError, match="Invalid configuration"):
            load_config(tmp_path)

    def test_non_mapping(self, tmp_path: Path) -> None:
        """The document must be a mapping."""
        (tmp_path / "testharness.yaml").write_text("- a\n- b\n")

        with pytest.raises(ConfigError, match="must contain a mapping"):
            load_config(tmp_path)


class TestResolveLayout:
    """Tests for resolve_layout function."""

    def test_prefers_src_layout(self, make_project: ProjectFactory) -> None:
        """Uses src/ when present and infers the single package."""
        root = make_project({"src/mylib/__init__.py": ""})

        layout = resolve_layout(root, HarnessConfig(), environ={})

        assert layout.library == "mylib"
        assert layout.source_root == root.resolve() / "src"
        assert layout.package_dir == root.resolve() / "src" / "mylib"
        assert layout.tests_dir == root.resolve() / "tests"

    def test_flat_layout(self, make_project: ProjectFactory) -> None:
        """Falls back to the project root."""
        root = make_project({"mylib/__init__.py": "", "tests/__init__.py": ""})

        layout = resolve_layout(root, HarnessConfig(), environ={})

        assert layout.source_root == root.resolve()
        assert layout.library == "mylib"

    def test_ambiguous_library(self, make_project: ProjectFactory) -> None:
        """Several packages need an explicit library setting."""
        root = make_project({"a/__init__.py": "", "b/__init__.py": ""})

        with pytest.raises(ConfigError, match="Cannot infer library"):
            resolve_layout(root, HarnessConfig(), environ={})

    def test_missing_library(self, make_project: ProjectFactory) -> None:
        """A configured library must exist."""
        root = make_project({"mylib/__init__.py": ""})

        with pytest.raises(ConfigError, match="not found"):
            resolve_layout(root, HarnessConfig(library="other"), environ={})

    def test_missing_source_root(self, make_project: ProjectFactory) -> None:
        """A configured source root must exist."""
        root = make_project({"mylib/__init__.py": ""})

        with pytest.raises(ConfigError, match="Source root not found"):
            resolve_layout(root, HarnessConfig(source_root="nope"), environ={})

    def test_thread_precedence(self, make_project: ProjectFactory) -> None:
        """Argument beats environment, which beats the file."""
        root = make_project({"mylib/__init__.py": ""})
        config = HarnessConfigFactory.build(test_threads=2)
        environ = {"TESTHARNESS_TEST_THREADS": "5"}

        assert resolve_layout(root, config, 7, environ).test_threads == 7
        assert resolve_layout(root, config, None, environ).test_threads == 5
        assert resolve_layout(root, config, None, {}).test_threads == 2

    def test_platform_default_threads(self, make_project: ProjectFactory) -> None:
        """Without overrides the thread count is at least one."""
        root = make_project({"mylib/__init__.py": ""})

        assert resolve_layout(root, HarnessConfig(), environ={}).test_threads >= 1


class TestThreadsFromEnv:
    """Tests for threads_from_env function."""

    def test_unset(self) -> None:
        """Returns None when the variable is absent or blank."""
        assert threads_from_env({}) is None
        assert threads_from_env({"TESTHARNESS_TEST_THREADS": " "}) is None

    @pytest.mark.parametrize("value", ["many", "0"])
    def test_invalid(self, value: str) -> None:
        """Rejects non-integers and values below one."""
        with pytest.raises(ConfigError):
            threads_from_env({"TESTHARNESS_TEST_THREADS": value})

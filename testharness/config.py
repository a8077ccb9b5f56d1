"""Harness configuration loaded from ``testharness.yaml``."""

import logging
import os
from collections.abc import Mapping
from pathlib import Path

import yaml
from pydantic import Field, ValidationError

from testharness.errors import ConfigError
from testharness.models.base import Model

log = logging.getLogger(__name__)

CONFIG_FILE_NAME = "testharness.yaml"
THREADS_ENV_VAR = "TESTHARNESS_TEST_THREADS"


class HarnessConfig(Model):
    """Settings describing where the library and its tests live."""

    library: str | None = Field(
        default=None, description="Import name of the library package"
    )
    source_root: str | None = Field(
        default=None, description="Directory containing the library package"
    )
    tests_dir: str = Field(default="tests", description="Integration suite directory")
    test_threads: int | None = Field(
        default=None, ge=1, description="Worker pool size per suite"
    )
    doctests: bool = Field(default=True, description="Whether to run doc-tests")


class ProjectLayout(Model):
    """Resolved locations for one run."""

    root: Path
    library: str
    source_root: Path
    tests_dir: Path
    test_threads: int
    doctests: bool

    @property
    def package_dir(self) -> Path:
        """Directory of the library package."""
        return self.source_root / self.library.replace(".", "/")


def load_config(project_root: Path) -> HarnessConfig:
    """Load the harness configuration file of a project.

    Args:
        project_root: Project directory

    Returns:
        Parsed configuration, defaults when the file does not exist

    Raises:
        ConfigError: If the file is not valid YAML or fails validation

    """
    config_file = project_root / CONFIG_FILE_NAME
    if not config_file.exists():
        log.debug("No %s in %s, using defaults", CONFIG_FILE_NAME, project_root)
        return HarnessConfig()

    try:
        data = yaml.safe_load(config_file.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_file}: {e}") from e

    if data is None:
        return HarnessConfig()
    if not isinstance(data, Mapping):
        raise ConfigError(f"{config_file} must contain a mapping")

    try:
        return HarnessConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {config_file}: {e}") from e


def resolve_layout(
    project_root: Path,
    config: HarnessConfig,
    test_threads: int | None = None,
    environ: Mapping[str, str] = os.environ,
) -> ProjectLayout:
    """Combine configuration, environment and CLI overrides into a layout.

    Thread count precedence: explicit argument, environment variable,
    configuration file, platform parallelism.
    """
    root = project_root.resolve()

    if config.source_root is not None:
        source_root = root / config.source_root
    elif (root / "src").is_dir():
        source_root = root / "src"
    else:
        source_root = root

    library = config.library or infer_library(source_root)
    layout_threads = (
        test_threads
        or threads_from_env(environ)
        or config.test_threads
        or os.cpu_count()
        or 1
    )

    layout = ProjectLayout(
        root=root,
        library=library,
        source_root=source_root,
        tests_dir=root / config.tests_dir,
        test_threads=layout_threads,
        doctests=config.doctests,
    )
    if not layout.package_dir.is_dir():
        raise ConfigError(f"Library package not found: {layout.package_dir}")
    return layout


def threads_from_env(environ: Mapping[str, str]) -> int | None:
    """Read the thread count override from the environment."""
    value = environ.get(THREADS_ENV_VAR, "").strip()
    if not value:
        return None
    try:
        threads = int(value)
    except ValueError as e:
        raise ConfigError(f"{THREADS_ENV_VAR} must be an integer, got {value!r}") from e
    if threads < 1:
        raise ConfigError(f"{THREADS_ENV_VAR} must be at least 1, got {threads}")
    return threads


def infer_library(source_root: Path) -> str:
    """Find the single package directly under ``source_root``."""
    if not source_root.is_dir():
        raise ConfigError(f"Source root not found: {source_root}")
    packages = sorted(
        child.name
        for child in source_root.iterdir()
        if child.is_dir()
        and (child / "__init__.py").exists()
        and child.name not in {"tests", "test"}
    )
    if len(packages) != 1:
        raise ConfigError(
            f"Cannot infer library package in {source_root} "
            f"(found {packages or 'none'}); set 'library' in {CONFIG_FILE_NAME}"
        )
    return packages[0]

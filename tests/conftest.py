"""Pytest configuration and shared fixtures for envdeck tests."""

import logging
import os
from collections.abc import Generator
from pathlib import Path
from typing import Any

import pytest

from envdeck.lib.logging_config import ROOT_LOGGER_NAME


@pytest.fixture
def isolated_env() -> Generator[dict[str, str]]:
    """Provide isolated environment variables for testing.

    Saves current environment and restores after test.

    Yields:
        Dictionary of original environment variables
    """
    original_env = os.environ.copy()
    yield original_env
    os.environ.clear()
    os.environ.update(original_env)


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """Create a project directory with a minimal envdeck.yaml."""
    (tmp_path / "envdeck.yaml").write_text(
        """
name: sample-app
platform:
  type: devcenter
  config:
    name: contoso-dc
    project: web
    catalog: main
    environmentDefinition: webapp
    endpoint: https://contoso.devcenter.azure.com
""",
        encoding="utf-8",
    )
    return tmp_path


@pytest.fixture(autouse=True)
def reset_envdeck_logger() -> Generator[None]:
    """Undo CLI logging setup so caplog sees envdeck records."""
    yield
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


def pytest_configure(config: Any) -> None:
    """Configure pytest with marker options."""
    config.addinivalue_line(
        "markers",
        "unit: marks tests as unit tests",
    )
    config.addinivalue_line(
        "markers",
        "integration: marks tests as integration tests",
    )

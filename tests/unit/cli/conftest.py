"""Fixtures for CLI tests."""

import logging

import pytest
from click.testing import CliRunner


@pytest.fixture(autouse=True)
def reset_root_logger():
    """The CLI reconfigures root logging; undo it after each test."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()

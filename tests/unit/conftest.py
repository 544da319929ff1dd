"""Shared fixtures for the unit tests."""

import sys

import pytest
import structlog

from helpers import FakeProject, RecordingExecutor


@pytest.fixture
def project(tmp_path):
    return FakeProject(tmp_path / "project")


@pytest.fixture
def executor():
    return RecordingExecutor()


@pytest.fixture
def isolated_imports():
    """Restore sys.path and sys.modules after tests importing generated modules."""
    saved_path = list(sys.path)
    saved_modules = set(sys.modules)
    yield
    sys.path[:] = saved_path
    for name in set(sys.modules) - saved_modules:
        del sys.modules[name]


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    monkeypatch.delenv("AUTOBOOT_ENV", raising=False)
    yield
    structlog.reset_defaults()

"""
Shared pytest fixtures and configuration for vmodels tests.
"""

import pytest

from vmodels import (
    MemoryStorage,
    ViewModelRegistry,
    _reset_context,
    _reset_registry,
    logger,
)


@pytest.fixture(autouse=True)
def reset_runtime():
    """Reset the reactive context and the default registry around each test."""
    _reset_context()
    _reset_registry()
    logger.set_enabled(True)
    yield
    _reset_registry()
    _reset_context()


@pytest.fixture
def storage():
    """Provide a fresh in-memory storage backend."""
    return MemoryStorage()


@pytest.fixture
def registry():
    """Provide an isolated registry for tests that define models."""
    registry = ViewModelRegistry()
    yield registry
    registry.reset()

"""Pytest configuration and shared fixtures."""
import pytest

from tracedoc.config import reset_config
from tracedoc import create


class CallRecorder:
    """Collects callback invocations as (name, args) tuples."""

    def __init__(self):
        self.calls = []

    def callback(self, name):
        def record(doc, *args):
            self.calls.append((name, args))
        record.__name__ = name
        return record

    def names(self):
        return [name for name, _ in self.calls]


@pytest.fixture(autouse=True)
def restore_default_config():
    """Restore the default framework config after each test."""
    yield
    reset_config()


@pytest.fixture
def player():
    """Provide a committed player document with nested structure."""
    return create({
        "name": "hero",
        "hp": 10,
        "max_hp": 10,
        "pos": {"x": 0, "y": 0},
        "items": ["sword", "shield"],
    })


@pytest.fixture
def recorder():
    """Provide a fresh call recorder."""
    return CallRecorder()

"""
Shared fixtures for the masking tests.
"""

import logging
import os
import sys

import pytest

# Add parent directory to path for server and masking imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from masking import MaskingStreamHandler, RedactionEngine, RuleStore  # noqa: E402


# Fake credentials for moto, and the masking settings server.py reads on import
TEST_ENVIRONMENT = {
    "AWS_ACCESS_KEY_ID": "testing",
    "AWS_SECRET_ACCESS_KEY": "testing",
    "AWS_REGION": "us-east-1",
    "LOG_MASKING_PROFILE": "default",
    "LOG_MASKING_CHAR": "*",
}


@pytest.fixture(autouse=True)
def masking_environment(monkeypatch):
    for key, value in TEST_ENVIRONMENT.items():
        monkeypatch.setenv(key, value)


@pytest.fixture
def store():
    """Return an empty RuleStore."""
    return RuleStore()


@pytest.fixture
def engine(store):
    """Return a RedactionEngine over the empty `store` fixture."""
    return RedactionEngine(store)


@pytest.fixture
def restore_root_handlers():
    """Undo any MaskingStreamHandler changes a test makes to the root logger."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield root
    for handler in list(root.handlers):
        if isinstance(handler, MaskingStreamHandler) and handler not in handlers:
            root.removeHandler(handler)
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)


"""
pytest configuration for the secure assets tests.

Adds src directory to Python path for imports and resets logging context
between tests.
"""

import sys
from pathlib import Path

import pytest

# Add src directory to Python path
src_dir = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_dir))

from core.logging.context import clear_log_context  # noqa: E402


@pytest.fixture(autouse=True)
def _reset_log_context():
    """Keep contextvars from leaking between tests."""
    clear_log_context()
    yield
    clear_log_context()

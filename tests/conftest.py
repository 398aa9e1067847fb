"""Pytest configuration and fixtures for test suite.

This is the root-level conftest.py that provides:
- Python path setup (so we can import tablereader without installing it)
- Basic environment variable defaults
- Shared fixtures for all tests
"""
import io
import os
import sys
from pathlib import Path
from typing import List, Tuple

import pytest

# Add project root to Python path so we can import tablereader
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))


@pytest.fixture(scope="session", autouse=True)
def setup_test_environment():
    """Set up basic test environment variables before any tests run."""
    os.environ.setdefault("TABLEREADER_LOG_LEVEL", "INFO")

    from tablereader.config import get_settings
    get_settings.cache_clear()

    yield

    get_settings.cache_clear()


@pytest.fixture
def messages() -> List[Tuple[str, str]]:
    """Collector passed as the `log` option; gets (level, message) for warn/error."""
    return []


@pytest.fixture
def all_messages():
    """Callable sink recording every level, plus the list it records into."""
    recorded: List[Tuple[str, str]] = []

    def sink(level: str, message: str) -> None:
        recorded.append((level, message))

    sink.recorded = recorded
    return sink


class UnseekableStream(io.RawIOBase):
    """Read-only byte stream that refuses to seek, like a pipe."""

    def __init__(self, data: bytes):
        self._buf = io.BytesIO(data)

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return False

    def readinto(self, b) -> int:
        chunk = self._buf.read(len(b))
        b[:len(chunk)] = chunk
        return len(chunk)


@pytest.fixture
def unseekable():
    """Factory for unseekable binary streams."""
    return UnseekableStream

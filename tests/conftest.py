"""
Test Configuration

Shared fixtures for unit and integration tests.
"""

import pytest

from tests.fixtures import ANTHROPIC_URL, DEEPSEEK_URL, OPENAI_URL, ScriptedUpstream
from thinkrelay.config import EndpointSettings, Settings
from thinkrelay.observability.logging import BufferHandler, LogLevel, configure_logging


@pytest.fixture
def upstream() -> ScriptedUpstream:
    """Scripted providers; register responses with upstream.on()."""
    return ScriptedUpstream()


@pytest.fixture
def settings() -> Settings:
    """Settings pointing every provider at the scripted upstream."""
    return Settings(
        endpoints=EndpointSettings(
            deepseek=DEEPSEEK_URL,
            openai=OPENAI_URL,
            anthropic=ANTHROPIC_URL,
        ),
    )


@pytest.fixture
def log_buffer():
    """Capture log records for the duration of a test."""
    buffer = BufferHandler(level=LogLevel.DEBUG)
    configure_logging(LogLevel.DEBUG, handlers=[buffer])
    yield buffer
    configure_logging(LogLevel.WARNING, handlers=[])


@pytest.fixture
def sample_messages():
    """Create sample messages for testing."""
    return [
        {"role": "system", "content": "You are a helpful assistant."},
        {"role": "user", "content": "Why is the sky blue?"},
    ]


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")

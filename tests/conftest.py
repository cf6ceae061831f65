"""
Test configuration for squrly.

Shared fixtures for configuration, HTTP mocking and asyncio task hygiene.
"""

# Standard library imports
import asyncio
import io
from typing import AsyncGenerator

# Third-party imports
import pytest
import pytest_asyncio
from aioresponses import aioresponses

# Local imports
from squrly.config import Config
from squrly.crawler.http_client import HttpClient
from squrly.observability.diagnostics import DiagnosticChannel

TEST_SECRET = "test-secret"

# ============================================================================
# Pytest Configuration
# ============================================================================


def pytest_configure(config):
    """Configure pytest with custom markers and settings."""
    config.addinivalue_line("markers", "unit: Unit tests for individual components")
    config.addinivalue_line("markers", "integration: Integration tests across modules")


# ============================================================================
# Asyncio hygiene
# ============================================================================


@pytest_asyncio.fixture(autouse=True)
async def cleanup_tasks() -> AsyncGenerator[None, None]:
    """
    Cancel every asyncio task a test leaves behind so a failing test cannot
    hang the ones after it.
    """
    tasks_before = asyncio.all_tasks()
    yield
    tasks_after = asyncio.all_tasks()
    new_tasks = tasks_after - tasks_before

    for task in new_tasks:
        if not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            except Exception as e:
                print(f"Unexpected error during task cleanup: {e}")


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def secret_env(monkeypatch) -> str:
    """Export the hashing secret the way the CLI expects it."""
    monkeypatch.setenv("IM_SECRET", TEST_SECRET)
    return TEST_SECRET


@pytest.fixture
def fast_config(secret_env) -> Config:
    """Configuration with intervals short enough for tests."""
    config = Config()
    config.crawler.rate_limit_interval = 0.0
    config.crawler.timeout = 5.0
    config.debug.test_mode = True
    return config


@pytest.fixture
def diagnostics() -> DiagnosticChannel:
    """Diagnostic channel writing into memory."""
    return DiagnosticChannel(io.StringIO())


# ============================================================================
# HTTP Fixtures
# ============================================================================


@pytest_asyncio.fixture
async def http_client(fast_config) -> AsyncGenerator[HttpClient, None]:
    """Initialized HTTP client; pair with ``mock_http`` for responses."""
    async with HttpClient(fast_config) as client:
        yield client


@pytest.fixture
def mock_http():
    """aioresponses mock; every URL a test touches must be registered."""
    with aioresponses() as m:
        yield m

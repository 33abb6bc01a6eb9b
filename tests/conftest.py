"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import logging
import platform

import pytest
from click.testing import CliRunner

from flatbridge import database
from flatbridge.database import DatabaseConnection
from tests.db_test_utils import FakeClickHouseClient, FakeClientFactory

EVENTS_COLUMNS = [
    ("id", "UInt32"),
    ("name", "String"),
    ("score", "Float64"),
    ("created", "DateTime"),
]


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Remove handlers the CLI installs so each test starts with a clean logger."""
    logger = logging.getLogger("flatbridge")
    level = logger.level
    yield
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(level)


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner.

    Returns:
        CliRunner instance for testing CLI commands
    """
    return CliRunner()


@pytest.fixture
def fake_client() -> FakeClickHouseClient:
    """Provide a fake ClickHouse client with an 'events' table.

    Returns:
        FakeClickHouseClient with the events schema registered
    """
    return FakeClickHouseClient(tables={"events": list(EVENTS_COLUMNS)})


@pytest.fixture
def fake_db(fake_client: FakeClickHouseClient) -> DatabaseConnection:
    """Provide a DatabaseConnection backed by the fake client."""
    return DatabaseConnection("clickhouse://localhost/default", client=fake_client)


@pytest.fixture
def patched_client(monkeypatch, fake_client: FakeClickHouseClient) -> FakeClientFactory:
    """Make every DatabaseConnection created by the code under test use the fake client."""
    factory = FakeClientFactory(fake_client)
    monkeypatch.setattr(database, "Client", factory)
    return factory


def should_skip_clickhouse_tests():
    """Check if ClickHouse tests should be skipped.

    Testcontainers has issues on Windows/macOS with Docker socket mounting.
    Only run ClickHouse tests on Linux (locally or in CI).
    """
    system = platform.system()

    # Skip on Windows and macOS - testcontainers doesn't work reliably
    if system in ("Windows", "Darwin"):
        return True, f"ClickHouse tests not supported on {system} (testcontainers limitation)"

    # On Linux, check if Docker is available
    try:
        import docker

        client = docker.from_env()
        client.ping()
        return False, None
    except Exception as e:
        return True, f"Docker is not available: {e}"


@pytest.fixture(scope="module")
def clickhouse_url():
    """Provide a connection URL for a throwaway ClickHouse server."""
    skip, reason = should_skip_clickhouse_tests()
    if skip:
        pytest.skip(reason)

    from testcontainers.clickhouse import ClickHouseContainer

    with ClickHouseContainer("clickhouse/clickhouse-server:24.3") as container:
        yield container.get_connection_url()

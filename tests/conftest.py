"""Pytest configuration for action runner tests.

Ensures the project root is in sys.path so imports work correctly.
"""

import sys
from pathlib import Path

import pytest
import pytest_asyncio

# Add project root to sys.path
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from config.schema import RunnerSettings, StartSettings  # noqa: E402
from runner.alerts import AlertChannel  # noqa: E402
from runner.sequencer import ActionRunner  # noqa: E402
from tests.fakes.sandbox import FakeHost, FakeShell  # noqa: E402


@pytest.fixture
def host():
    return FakeHost()


@pytest.fixture
def shell():
    return FakeShell()


@pytest.fixture
def alerts():
    """List receiving every alert the runner emits."""
    return []


@pytest.fixture
def settings():
    return RunnerSettings(start=StartSettings(grace_seconds=0.01))


@pytest_asyncio.fixture
async def runner(host, shell, alerts, settings):
    channel = AlertChannel()
    channel.subscribe(alerts.append)
    r = ActionRunner(host, lambda: shell, alerts=channel, settings=settings)
    yield r
    await r.close()

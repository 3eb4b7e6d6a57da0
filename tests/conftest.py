"""
Shared test configuration and fixtures for plugin statistics tests.

This module provides fake hosts, a manually driven scheduler and log capture
used across all test modules.
"""
import os
import sys
import pytest
from unittest.mock import MagicMock
from typing import Callable, Dict, List, Tuple

from loguru import logger

# Add project root to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from plugin_statistics.host import HostApplication
from plugin_statistics.scheduler import ScheduledJob, Scheduler
from plugin_statistics.transport import StatisticsTransport
from statistics_utils.config import StatisticsConfig


class FakeHost(HostApplication):
    """Host exposing the current online_users() accessor."""

    def __init__(self, name="TestPlugin", version="1.0", environment="TestServer 1.20", users=None):
        self._name = name
        self._version = version
        self._environment = environment
        self.users = list(users) if users is not None else ["alice", "bob"]

    @property
    def product_name(self):
        return self._name

    @property
    def product_version(self):
        return self._version

    @property
    def environment_version(self):
        return self._environment

    def online_users(self):
        return self.users


class LegacyHost(FakeHost):
    """Older host that only has get_online_users()."""

    online_users = None

    def get_online_users(self):
        return tuple(self.users)


class BareHost(FakeHost):
    """Host without any way to count online users."""

    online_users = None


class ManualScheduler(Scheduler):
    """Scheduler that only runs jobs when the test fires them."""

    def __init__(self):
        self.jobs: Dict[int, Tuple[Callable[[], None], float, float]] = {}
        self.cancelled: List[int] = []
        self.schedule_calls = 0
        self._next_id = 1

    def schedule_repeating(self, callback, initial_delay, period):
        self.schedule_calls += 1
        job_id = self._next_id
        self._next_id += 1
        self.jobs[job_id] = (callback, initial_delay, period)
        return ScheduledJob(job_id, self)

    def cancel(self, job_id):
        if self.jobs.pop(job_id, None) is not None:
            self.cancelled.append(job_id)

    def fire(self, job_id=None):
        """Run one job (the only one if job_id is None) once."""
        if job_id is None:
            assert len(self.jobs) == 1, f"expected one active job, found {len(self.jobs)}"
            job_id = next(iter(self.jobs))
        callback, _, _ = self.jobs[job_id]
        callback()


@pytest.fixture
def host():
    """Provide a host with two online users."""
    return FakeHost()


@pytest.fixture
def legacy_host():
    """Provide a host with only the legacy user accessor."""
    return LegacyHost()


@pytest.fixture
def bare_host():
    """Provide a host that cannot report online users."""
    return BareHost()


@pytest.fixture
def manual_scheduler():
    """Provide a scheduler driven by the test."""
    return ManualScheduler()


@pytest.fixture
def debug_config():
    """Provide a config with failure logging enabled."""
    return StatisticsConfig(debug=True)


@pytest.fixture
def mock_transport():
    """Mock transport answering every POST with HTTP 200."""
    transport = MagicMock(spec=StatisticsTransport)
    transport.post.return_value = 200
    return transport


@pytest.fixture
def log_messages():
    """Capture loguru output as 'LEVEL | message' strings."""
    messages = []
    handler_id = logger.add(lambda message: messages.append(message.rstrip("\n")),
                            level="DEBUG", format="{level} | {message}")
    yield messages
    logger.remove(handler_id)

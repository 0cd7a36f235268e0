"""Pytest plugin exposing the orchestration engine as fixtures.

This module integrates `pytest-relay` with pytest by:
- registering command-line options overriding the runtime settings;
- providing fixtures for a fresh context, a test case named after the
  running test, a runner bound to the context and an endpoint polling
  configuration.
"""

from typing import TYPE_CHECKING

import pytest

from pytest_relay.case import TestCase, TestCaseRunner
from pytest_relay.context import TestContext
from pytest_relay.correlation import PollableEndpointConfiguration
from pytest_relay.settings import get_settings

if TYPE_CHECKING:
    from _pytest.config import Config
    from _pytest.config.argparsing import Parser
    from _pytest.fixtures import FixtureRequest


def pytest_addoption(parser: 'Parser') -> None:
    """Register pytest command-line options for pytest-relay.

    Args:
        parser: Pytest argument parser.
    """
    group = parser.getgroup('relay', 'integration test orchestration')
    group.addoption(
        '--relay-timeout',
        action='store',
        type=int,
        dest='relay_timeout',
        default=None,
        help=(
            'Bound in milliseconds for waiting on background actions '
            'when a test case finishes. Overrides RELAY_CASE_TIMEOUT.'
        ),
    )
    group.addoption(
        '--relay-polling-interval',
        action='store',
        type=int,
        dest='relay_polling_interval',
        default=None,
        help=(
            'Delay in milliseconds between lookups of correlated replies. '
            'Overrides RELAY_POLLING_INTERVAL.'
        ),
    )


def pytest_configure(config: 'Config') -> None:
    """Resolve the effective case timeout and polling interval.

    The values are attached to the configuration object as
    `config.relay_timeout` and `config.relay_polling_interval`.

    Args:
        config: Pytest configuration object.
    """
    settings = get_settings()

    timeout = config.getoption('relay_timeout', default=None)
    if timeout is None:
        timeout = settings.case_timeout

    interval = config.getoption('relay_polling_interval', default=None)
    if interval is None:
        interval = settings.polling_interval

    config.relay_timeout = timeout  # type: ignore[attr-defined]
    config.relay_polling_interval = interval  # type: ignore[attr-defined]


@pytest.fixture
def relay_context() -> TestContext:
    """Provide a fresh test context."""
    return TestContext()


@pytest.fixture
def relay_case(request: 'FixtureRequest') -> TestCase:
    """Provide an empty test case named after the running test."""
    return TestCase(
        name=request.node.name,
        timeout=request.config.relay_timeout,  # type: ignore[attr-defined]
    )


@pytest.fixture
def relay_runner(relay_context: TestContext) -> TestCaseRunner:
    """Provide a runner bound to the test context."""
    return TestCaseRunner(relay_context)


@pytest.fixture
def relay_endpoint(request: 'FixtureRequest') -> PollableEndpointConfiguration:
    """Provide an endpoint polling configuration honoring the options."""
    return PollableEndpointConfiguration(
        polling_interval=request.config.relay_polling_interval,  # type: ignore[attr-defined]
    )

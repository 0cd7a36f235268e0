"""Tests configurations and fixtures."""

from typing import TYPE_CHECKING

import pytest

from pytest_relay.actions import FunctionAction
from pytest_relay.context import TestContext
from pytest_relay.errors import ActionError
from pytest_relay.settings import get_settings

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

if TYPE_CHECKING:
    from pytest_mock import MockerFixture, MockType


@pytest.fixture
def context() -> TestContext:
    """Provide a fresh test context."""
    return TestContext()


@pytest.fixture
def counter(mocker: 'MockerFixture') -> 'Callable[..., tuple[FunctionAction, MockType]]':
    """Provide a factory for actions recording their invocations.

    The factory returns the action together with the underlying mock,
    so tests can inspect the number and the order of invocations.
    """
    def make(name: str = 'counter', side_effect: object = None) -> tuple[FunctionAction, 'MockType']:
        """Build a recording action.

        Args:
            name: Name of the action.
            side_effect: Optional mock side effect (an error or a list).

        Returns:
            The action and the mock called with the context.
        """
        function = mocker.Mock(return_value=None, side_effect=side_effect)
        return FunctionAction(name=name, function=function), function

    return make


@pytest.fixture
def failing() -> 'Callable[..., FunctionAction]':
    """Provide a factory for actions that always fail."""
    def make(message: str = 'Action failed', error: type[Exception] = ActionError) -> FunctionAction:
        def fail(context: TestContext) -> None:  # noqa: ARG001
            raise error(message)

        return FunctionAction(name='failing', function=fail)

    return make


@pytest.fixture
def relay_env(mocker: 'MockerFixture') -> 'Iterator[Callable[..., None]]':
    """Provide a factory overriding settings through the environment.

    The cached settings are dropped before and after the test, so the
    overrides are visible to `get_settings` and do not leak.
    """
    def configure(**values: object) -> None:
        mocker.patch.dict('os.environ', {
            f'RELAY_{name.upper()}': str(value)
            for name, value in values.items()
        })
        get_settings.cache_clear()

    get_settings.cache_clear()
    yield configure
    get_settings.cache_clear()

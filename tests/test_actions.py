"""Tests for leaf, assertion and background actions."""

from concurrent.futures import wait
from threading import Event
from typing import TYPE_CHECKING

import pytest
from pydantic import ValidationError as SchemaValidationError

from pytest_relay.actions import (
    Assert,
    Async,
    AsyncTestAction,
    FunctionAction,
    SleepAction,
    TestAction,
    Wait,
)
from pytest_relay.errors import ActionError, ValidationError
from tests.examples.actions import DelayedAction, RecordingAction

if TYPE_CHECKING:
    from collections.abc import Callable

if TYPE_CHECKING:
    from pytest_mock import MockerFixture

if TYPE_CHECKING:
    from pytest_relay.context import TestContext


def test_abstract_action() -> None:
    """Refuse to build the abstract base action."""
    with pytest.raises(TypeError):
        TestAction()  # type: ignore[abstract]


def test_abstract_async_action() -> None:
    """Refuse to build a background action without background work."""
    with pytest.raises(TypeError):
        AsyncTestAction()  # type: ignore[abstract]


def test_function_action(context: 'TestContext', counter: 'Callable') -> None:
    """Call the wrapped function with the context."""
    action, mock = counter('greet')

    action.execute(context)

    mock.assert_called_once_with(context)
    assert action.display_name == 'greet'


def test_action_schema() -> None:
    """Reject unknown fields and keep actions immutable."""
    with pytest.raises(SchemaValidationError):
        FunctionAction(function=print, unknown=True)  # type: ignore[call-arg]

    action = FunctionAction(function=print)
    with pytest.raises(SchemaValidationError):
        action.name = 'renamed'  # type: ignore[misc]

    assert action.display_name == 'FunctionAction'


def test_sleep_action(context: 'TestContext', mocker: 'MockerFixture') -> None:
    """Sleep for the configured number of milliseconds."""
    sleep = mocker.patch('pytest_relay.actions.base.sleep')

    SleepAction(duration=1500).execute(context)

    sleep.assert_called_once_with(1.5)


@pytest.mark.parametrize('exception, message', (
    pytest.param(ActionError, None, id='type only'),
    pytest.param(Exception, 'Order ${order} rejected', id='base type and message'),
))
def test_assert(context: 'TestContext', failing: 'Callable',
                exception: type[Exception], message: str | None) -> None:
    """Pass when the nested action fails as expected."""
    context.set_variable('order', 42)

    Assert(
        action=failing('Order 42 rejected'),
        exception=exception,
        message=message,
    ).execute(context)


@pytest.mark.parametrize('action, pattern', (
    pytest.param(
        FunctionAction(function=lambda context: None),  # noqa: ARG005
        r"^Missing asserted exception 'ActionError'$",
        id='missing failure',
    ),
    pytest.param(
        FunctionAction(function=lambda context: 1 / 0),  # noqa: ARG005
        r"^Validation failed for asserted exception type - "
        r"expected: 'ActionError' but was: 'ZeroDivisionError'$",
        id='unexpected type',
    ),
))
def test_assert_failed(context: 'TestContext', action: FunctionAction, pattern: str) -> None:
    """Fail when the nested action does not fail as expected."""
    with pytest.raises(ValidationError, match=pattern):
        Assert(action=action).execute(context)


def test_assert_message_mismatch(context: 'TestContext', failing: 'Callable') -> None:
    """Fail when the error message differs."""
    assertion = Assert(action=failing('actual'), message='expected')

    with pytest.raises(ValidationError, match=r"expected: 'expected' but was: 'actual'$") as info:
        assertion.execute(context)

    assert isinstance(info.value.__cause__, ActionError)


def test_async_action_returns_immediately(context: 'TestContext') -> None:
    """Return before the background work completes."""
    release = Event()
    action = RecordingAction(work=lambda ctx: release.wait(timeout=5))

    action.execute(context)

    completions = context.outstanding_completions()
    assert len(completions) == 1
    assert action.events == []

    release.set()
    wait(completions, timeout=5)

    assert action.events == ['success']
    assert context.outstanding_completions() == []
    assert not context.has_exceptions()


def test_async_action_failure(context: 'TestContext') -> None:
    """Publish background failures and invoke the error hook."""
    def work(ctx: 'TestContext') -> None:  # noqa: ARG001
        raise ValueError('no reply')

    action = RecordingAction(work=work)
    action.execute(context)
    wait(context.outstanding_completions(), timeout=5)

    assert action.events == ['error: no reply']

    error = context.pop_exception()
    assert isinstance(error, ActionError)
    assert error.message == 'no reply'
    assert isinstance(error.__cause__, ValueError)


def test_async_action_keeps_action_errors(context: 'TestContext') -> None:
    """Publish action errors without wrapping."""
    failure = ActionError('rejected')
    action = DelayedAction(error=failure)

    action.execute(context)
    wait(context.outstanding_completions(), timeout=5)

    assert context.exceptions == [failure]


@pytest.mark.parametrize('work, expected', (
    pytest.param(lambda ctx: None, ['success hook failed'], id='success hook'),  # noqa: ARG005
    pytest.param(lambda ctx: 1 / 0, ['division by zero', 'error hook failed'], id='error hook'),  # noqa: ARG005
))
def test_async_action_hook_failure(context: 'TestContext',
                                   work: 'Callable', expected: list[str]) -> None:
    """Publish failures of completion hooks."""
    action = RecordingAction(work=work, fail_hooks=True)

    action.execute(context)
    wait(context.outstanding_completions(), timeout=5)

    assert [error.message for error in context.exceptions] == expected  # type: ignore[attr-defined]
    assert len(action.events) == 1


def test_async_block_success(context: 'TestContext', counter: 'Callable') -> None:
    """Run success actions after the background actions."""
    first, first_mock = counter('first')
    succeeded, success_mock = counter('succeeded')
    errored, error_mock = counter('errored')

    block = Async(actions=[first], success_actions=[succeeded])
    block.add_error_action(errored)

    block.execute(context)
    wait(context.outstanding_completions(), timeout=5)

    first_mock.assert_called_once_with(context)
    success_mock.assert_called_once_with(context)
    error_mock.assert_not_called()
    assert block.get_action_count() == 1


def test_async_block_failure(context: 'TestContext', counter: 'Callable',
                             failing: 'Callable') -> None:
    """Stop background actions at the first failure and run error actions."""
    after, after_mock = counter('after')
    succeeded, success_mock = counter('succeeded')
    errored, error_mock = counter('errored')

    block = Async(error_actions=[errored])
    block.add_test_action(failing('background failure'))
    block.add_test_action(after)
    block.add_success_action(succeeded)

    block.execute(context)
    wait(context.outstanding_completions(), timeout=5)

    after_mock.assert_not_called()
    success_mock.assert_not_called()
    error_mock.assert_called_once_with(context)

    assert block.get_test_action(0).name == 'failing'
    assert [error.message for error in context.exceptions] == ['background failure']  # type: ignore[attr-defined]


@pytest.mark.parametrize('condition', (
    pytest.param('${attempt} = 3', id='expression'),
    pytest.param(lambda context: context.get_variable('attempt') == 3, id='callable'),
))
def test_wait(context: 'TestContext', mocker: 'MockerFixture',
              condition: 'str | Callable') -> None:
    """Check the condition once per interval until it holds."""
    context.set_variable('attempt', 1)

    def next_attempt(seconds: float) -> None:  # noqa: ARG001
        context.set_variable('attempt', context.get_variable('attempt') + 1)

    sleep = mocker.patch('pytest_relay.actions.wait.sleep', side_effect=next_attempt)

    Wait(condition=condition, time=5000, interval=100).execute(context)

    assert sleep.call_count == 2
    assert context.get_variable('attempt') == 3


def test_wait_timeout(context: 'TestContext', mocker: 'MockerFixture') -> None:
    """Fail once the waiting budget is used up."""
    sleep = mocker.patch('pytest_relay.actions.wait.sleep')
    checks: list[int] = []

    def never(ctx: 'TestContext') -> bool:  # noqa: ARG001
        checks.append(1)
        return False

    action = Wait(name='order shipped', condition=never, time=1000, interval=300)

    with pytest.raises(ActionError, match=(
        r"^Failed to wait for condition of 'order shipped' within 1000 milliseconds$"
    )):
        action.execute(context)

    assert len(checks) == 4
    assert sleep.call_count == 4


def test_wait_interval_above_time(context: 'TestContext', mocker: 'MockerFixture') -> None:
    """Check once when the interval exceeds the budget."""
    mocker.patch('pytest_relay.actions.wait.sleep')

    with pytest.raises(ActionError):
        Wait(condition='false', time=200, interval=1000).execute(context)


def test_wait_satisfied(context: 'TestContext', mocker: 'MockerFixture') -> None:
    """Return without sleeping when the condition already holds."""
    sleep = mocker.patch('pytest_relay.actions.wait.sleep')

    Wait(condition='true').execute(context)

    sleep.assert_not_called()


def test_wait_schema() -> None:
    """Reject a zero interval."""
    with pytest.raises(SchemaValidationError):
        Wait(condition='true', interval=0)

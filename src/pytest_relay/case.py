"""Test case lifecycle.

A test case is the root of an action tree. It is executed once per
test in two phases:

- `execute` binds the case variables and runs the primary actions on
  the calling thread, checking the shared exception list of the context
  after every action;
- `finish` waits for background work, runs the final actions and
  records the result.

Exactly one `TestResult` is kept per case. A failure recorded with
`fail` always replaces the previous result, while a success never
replaces a failure. An action calling `pytest.skip` during `execute`
records a skipped result; `finish` then runs only the final actions.
"""

import logging
from concurrent.futures import wait
from datetime import timedelta
from threading import Lock
from time import monotonic
from typing import TYPE_CHECKING, Any

from pydantic import ConfigDict, Field, PrivateAttr
from pytest import skip

from pytest_relay.actions.base import TestAction  # noqa: TC001
from pytest_relay.errors import (
    ErrorContext,
    ErrorFormatter,
    TestCaseFailedError,
    TestCaseTimeoutError,
)
from pytest_relay.models import DescribedMixin
from pytest_relay.results import ResultStatus, TestResult
from pytest_relay.settings import get_settings

if TYPE_CHECKING:
    from collections.abc import Mapping

if TYPE_CHECKING:
    from pytest_relay.context import TestContext

logger = logging.getLogger(__name__)


class TestCase(DescribedMixin):
    """Root container of primary and final actions.

    Unlike other elements a test case accepts reassignment of its
    fields, so a runner may adjust `timeout` after the case is built.
    """

    __test__ = False

    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        frozen=False,
        extra='forbid',
        validate_assignment=True,
    )

    variable_definitions: dict[str, Any] = Field(
        default_factory=dict,
        title='Variable definitions',
        description=(
            'Variables bound to the context when the case starts.\n'
            'String values may reference previously defined variables.'
        ),
    )

    actions: list[TestAction] = Field(
        default_factory=list,
        title='Primary actions',
        description='Actions executed in order by `execute`.',
    )

    final_actions: list[TestAction] = Field(
        default_factory=list,
        title='Final actions',
        description='Actions always executed in order by `finish`.',
    )

    timeout: int = Field(
        default_factory=lambda: get_settings().case_timeout,
        title='Timeout',
        description=(
            'Bound in milliseconds for waiting on background actions.\n'
            'Zero or negative values use the fallback bound from settings.'
        ),
    )

    parameters: dict[str, Any] = Field(
        default_factory=dict,
        title='Parameters',
        description='Parameters of the test, published as variables.',
    )

    _result: TestResult | None = PrivateAttr(default=None)
    _started: float | None = PrivateAttr(default=None)
    _position: int | None = PrivateAttr(default=None)
    _lock: Lock = PrivateAttr(default_factory=Lock)

    def add_test_action(self, action: TestAction) -> None:
        """Append a primary action."""
        self.actions.append(action)

    def add_final_action(self, action: TestAction) -> None:
        """Append a final action."""
        self.final_actions.append(action)

    def set_variable_definitions(self, definitions: 'Mapping[str, Any]') -> None:
        """Replace the variable definitions, keeping their order."""
        self.variable_definitions.clear()
        self.variable_definitions.update(definitions)

    def get_action_count(self) -> int:
        """Return the number of primary actions."""
        return len(self.actions)

    def get_test_action(self, index: int) -> TestAction:
        """Return the primary action at a position."""
        return self.actions[index]

    def get_test_result(self) -> TestResult | None:
        """Return the recorded result, `None` while pending."""
        with self._lock:
            return self._result

    def set_test_result(self, result: TestResult) -> None:
        """Record a result unless it would hide a recorded failure.

        Args:
            result: Result to record.
        """
        with self._lock:
            if (
                result.status == ResultStatus.SUCCESS
                and self._result is not None
                and self._result.status == ResultStatus.FAILURE
            ):
                logger.debug('Ignoring success result of failed case %s', self.display_name)
                return

            self._result = result

    @property
    def is_failed(self) -> bool:
        """Check whether a failure is recorded."""
        result = self.get_test_result()
        return result is not None and result.is_failed

    @property
    def is_skipped(self) -> bool:
        """Check whether a skip is recorded."""
        result = self.get_test_result()
        return result is not None and result.is_skipped

    def fail(self, error: BaseException, context: 'TestContext | None' = None) -> None:
        """Record a failure, replacing any previous result.

        Args:
            error: Failure cause.
            context: Optional context used for the failure report.
        """
        with self._lock:
            self._result = TestResult.failed(
                error,
                duration=self._elapsed(),
                test_name=self.name,
                parameters=dict(self.parameters),
            )

        details = ErrorContext(
            case_name=self.name,
            action_num=self._position,
            error=error,
        )
        if self._position is not None:
            details['action_name'] = self.actions[self._position].display_name
        if context is not None:
            details['context'] = context.variables

        message = getattr(error, 'message', None) or str(error)
        logger.error(ErrorFormatter.format(message, details))

    def execute(self, context: 'TestContext') -> None:
        """Bind variables and run the primary actions.

        Args:
            context: Shared test context.

        Raises:
            TestCaseFailedError: If variable binding, an action or a
                background action failed. The message of the error
                equals the message of the cause.
            Skipped: If an action skipped the test with `pytest.skip`.
                The remaining primary actions are not executed.
        """
        self._started = monotonic()
        self._position = None

        logger.debug('Executing test case %s', self.display_name)

        failure: BaseException | None = None
        try:
            self.publish_variables(context)

            for position, action in enumerate(self.actions):
                self._position = position
                logger.debug('Executing action %d: %s', position + 1, action.display_name)

                action.execute(context)

                if (failure := context.pop_exception()) is not None:
                    break

        except skip.Exception as outcome:
            logger.info('Test case %s skipped: %s', self.display_name, outcome.msg)
            self.set_test_result(TestResult.skipped(
                duration=self._elapsed(),
                test_name=self.name,
                parameters=dict(self.parameters),
            ))
            raise

        except Exception as error:  # noqa: BLE001
            failure = error

        if failure is not None:
            self.fail(failure, context)
            raise TestCaseFailedError(failure) from failure

    def publish_variables(self, context: 'TestContext') -> None:
        """Publish default variables and bind the variable definitions.

        Raises:
            UnknownVariableError: If a definition references an unbound variable.
        """
        context.set_variable('test_name', self.name or self.display_name)
        context.add_variables(self.parameters)

        for name, value in self.variable_definitions.items():
            context.set_variable(name, context.resolve_dynamic_value(value))

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                'Test case variables:\n%s',
                ErrorFormatter.make_yaml(context.variables),
            )

    def finish(self, context: 'TestContext') -> None:
        """Wait for background work, run final actions and record the result.

        Args:
            context: Shared test context.

        Raises:
            TestCaseFailedError: If waiting, a background action or a final
                action failed and no failure was recorded before.
            TestCaseTimeoutError: If background actions did not complete
                within the case timeout.
        """
        failure: BaseException | None = None

        if not self.is_failed and not self.is_skipped:
            try:
                self.wait_for_completions(context)
                failure = context.pop_exception()

            except TestCaseTimeoutError as error:
                failure = error

            if failure is not None:
                self.fail(failure, context)

        self._position = None
        for position, action in enumerate(self.final_actions):
            try:
                action.execute(context)

            except Exception as error:  # noqa: BLE001
                logger.warning(
                    'Final action %d %s failed: %s',
                    position + 1, action.display_name, error,
                )
                if not self.is_failed:
                    failure = error
                    self.fail(error, context)

        if not self.is_failed and (pending := context.pop_exception()) is not None:
            failure = pending
            self.fail(pending, context)

        if self.is_failed or self.is_skipped:
            self._update_duration()
        else:
            self.set_test_result(TestResult.success(
                duration=self._elapsed(),
                test_name=self.name,
                parameters=dict(self.parameters),
            ))

        if isinstance(failure, TestCaseFailedError):
            raise failure

        if failure is not None:
            raise TestCaseFailedError(failure) from failure

    def wait_for_completions(self, context: 'TestContext') -> None:
        """Wait for every outstanding background completion.

        Completions registered while waiting are waited for as well.
        Background work is never cancelled.

        Raises:
            TestCaseTimeoutError: If the bound elapses first.
        """
        timeout = self.timeout
        if timeout <= 0:
            timeout = get_settings().wait_fallback_timeout

        deadline = monotonic() + timeout / 1000
        while outstanding := context.outstanding_completions():
            remaining = deadline - monotonic()
            if remaining <= 0:
                raise TestCaseTimeoutError

            logger.debug('Waiting for %d background actions', len(outstanding))
            wait(outstanding, timeout=remaining)

    def _elapsed(self) -> timedelta:
        if self._started is None:
            return timedelta(0)

        return timedelta(seconds=monotonic() - self._started)

    def _update_duration(self) -> None:
        with self._lock:
            if self._result is not None:
                self._result = self._result.model_copy(update={
                    'duration': self._elapsed(),
                })


class TestCaseRunner:
    """Run test cases through both lifecycle phases against one context."""

    __test__ = False

    def __init__(self, context: 'TestContext') -> None:
        """Initialize the runner.

        Args:
            context: Shared test context.
        """
        self.context = context

    def run(self, case: TestCase) -> TestResult | None:
        """Execute and finish a test case.

        `finish` always runs, even when `execute` failed.

        Args:
            case: Test case to run.

        Returns:
            The recorded test result.

        Raises:
            TestCaseFailedError: The first failure of the case.
            Skipped: If an action skipped the test, after the case finished.
        """
        failure: TestCaseFailedError | None = None
        try:
            case.execute(self.context)
        except TestCaseFailedError as error:
            failure = error
        except skip.Exception:
            case.finish(self.context)
            raise

        try:
            case.finish(self.context)
        except TestCaseFailedError as error:
            if failure is None:
                failure = error

        if failure is not None:
            raise failure

        return case.get_test_result()

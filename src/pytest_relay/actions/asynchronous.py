"""Actions completing in the background.

An asynchronous action returns to the caller immediately and finishes
its work on a daemon thread. Its completion handle is registered on the
context, so the owning test case waits for it in `TestCase.finish`.

Failures of background work can not propagate through the call stack.
They are published to the shared exception list of the context instead,
where the test case picks them up after every primary action.
"""

import logging
from abc import abstractmethod
from concurrent.futures import Future
from threading import Thread

from pydantic import Field

from pytest_relay.context import TestContext  # noqa: TC001
from pytest_relay.errors import ActionError

from .base import TestAction

logger = logging.getLogger(__name__)


class AsyncTestAction(TestAction):
    """Base class for actions executed on a background thread.

    Subclasses implement `do_execute_async` and may override the
    completion hooks. Exactly one of `on_success` and `on_error` is
    invoked per execution.
    """

    def execute(self, context: TestContext) -> None:
        """Start the background execution and return immediately.

        Args:
            context: Shared test context.
        """
        future: Future[None] = Future()
        future.set_running_or_notify_cancel()
        context.register_completion(future)

        logger.debug('Forking execution of %s', self.display_name)

        Thread(
            target=self._complete,
            args=(context, future),
            name=f'relay-async-{self.display_name}',
            daemon=True,
        ).start()

    def _complete(self, context: TestContext, future: 'Future[None]') -> None:
        """Run the work and its completion hook, then resolve the future."""
        try:
            try:
                self.do_execute_async(context)

            except Exception as error:  # noqa: BLE001
                failure = ActionError.from_exception(error)
                logger.debug('Async action %s failed: %s', self.display_name, failure.message)

                context.add_exception(failure)
                self.on_error(context, failure)

            else:
                self.on_success(context)

        except Exception as error:  # noqa: BLE001
            logger.debug('Completion hook of %s failed: %s', self.display_name, error)
            context.add_exception(ActionError.from_exception(error))

        finally:
            future.set_result(None)

    @abstractmethod
    def do_execute_async(self, context: TestContext) -> None:
        """Perform the background work."""
        raise NotImplementedError

    def on_success(self, context: TestContext) -> None:
        """Hook invoked after the work completed without errors."""

    def on_error(self, context: TestContext, error: ActionError) -> None:
        """Hook invoked after the work failed."""


class Async(AsyncTestAction):
    """Block of actions executed in the background.

    Nested actions run in declaration order and stop on the first failure.
    Depending on the outcome either the success or the error actions run
    afterwards on the same background thread.
    """

    actions: list[TestAction] = Field(
        default_factory=list,
        title='Actions',
        description='Actions executed in the background.',
    )

    success_actions: list[TestAction] = Field(
        default_factory=list,
        title='Success actions',
        description='Actions executed when all actions succeeded.',
    )

    error_actions: list[TestAction] = Field(
        default_factory=list,
        title='Error actions',
        description='Actions executed when an action failed.',
    )

    def add_test_action(self, action: TestAction) -> None:
        """Append an action to the background block."""
        self.actions.append(action)

    def add_success_action(self, action: TestAction) -> None:
        """Append an action executed on success."""
        self.success_actions.append(action)

    def add_error_action(self, action: TestAction) -> None:
        """Append an action executed on failure."""
        self.error_actions.append(action)

    def get_action_count(self) -> int:
        """Return the number of background actions."""
        return len(self.actions)

    def get_test_action(self, index: int) -> TestAction:
        """Return the background action at a position."""
        return self.actions[index]

    def do_execute_async(self, context: TestContext) -> None:
        for action in self.actions:
            action.execute(context)

    def on_success(self, context: TestContext) -> None:
        logger.info('Apply success actions after async container ...')
        for action in self.success_actions:
            action.execute(context)

    def on_error(self, context: TestContext, error: ActionError) -> None:  # noqa: ARG002
        logger.info('Apply error actions after async container ...')
        for action in self.error_actions:
            action.execute(context)

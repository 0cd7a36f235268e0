"""Base action definitions.

An action is a single step of an integration test: send a request,
wait, check a reply and so on. Actions are immutable pydantic models
that receive the shared `TestContext` on execution and may raise to
signal a failure.
"""

import logging
from abc import abstractmethod
from collections.abc import Callable
from time import sleep

from pydantic import Field

from pytest_relay.context import TestContext  # noqa: TC001
from pytest_relay.models import DescribedMixin

logger = logging.getLogger(__name__)


class TestAction(DescribedMixin):
    """Base class for executable actions."""

    __test__ = False

    @abstractmethod
    def execute(self, context: TestContext) -> None:
        """Execute the action.

        Args:
            context: Shared test context.

        Raises:
            Exception: Any failure of the action.
        """
        raise NotImplementedError


class FunctionAction(TestAction):
    """Action delegating to a plain callable receiving the context."""

    function: Callable[[TestContext], object] = Field(
        title='Function',
        description='Callable executed with the test context.',
    )

    def execute(self, context: TestContext) -> None:
        """Call the wrapped function."""
        logger.debug('Executing function action %s', self.display_name)
        self.function(context)


class SleepAction(TestAction):
    """Action blocking the executing thread for a fixed delay."""

    duration: int = Field(
        ge=0,
        title='Duration',
        description='Sleep duration in milliseconds.',
    )

    def execute(self, context: TestContext) -> None:  # noqa: ARG002
        """Sleep for the configured duration."""
        logger.debug('Sleeping %d milliseconds', self.duration)
        sleep(self.duration / 1000)

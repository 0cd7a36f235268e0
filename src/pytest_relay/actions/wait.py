"""Polling wait for a condition."""

import logging
from collections.abc import Callable
from time import monotonic, sleep

from pydantic import Field

from pytest_relay.context import TestContext  # noqa: TC001
from pytest_relay.errors import ActionError

from .base import TestAction

logger = logging.getLogger(__name__)

#: Wait condition receiving the context.
type WaitCondition = Callable[[TestContext], bool]


class Wait(TestAction):
    """Action blocking until a condition holds or the time budget runs out.

    The condition is checked once per interval. The budget is consumed
    in whole intervals, so the number of checks is `time / interval`
    rounded up, regardless of how long each check takes.
    """

    condition: str | WaitCondition = Field(
        title='Condition',
        description='Awaited state as a boolean expression or a callable.',
    )

    time: int = Field(
        default=5000,
        ge=0,
        title='Time',
        description='Total waiting budget in milliseconds.',
    )

    interval: int = Field(
        default=1000,
        gt=0,
        title='Interval',
        description='Delay between condition checks in milliseconds.',
    )

    def check_condition(self, context: TestContext) -> bool:
        """Evaluate the awaited condition once."""
        if callable(self.condition):
            return bool(self.condition(context))

        return context.evaluate_condition(self.condition)

    def execute(self, context: TestContext) -> None:
        """Poll the condition until it holds.

        Args:
            context: Shared test context.

        Raises:
            ActionError: If the condition did not hold within the budget.
        """
        interval = min(self.interval, self.time)
        time_left = self.time

        while time_left > 0:
            time_left -= interval
            started = monotonic()

            if self.check_condition(context):
                logger.info('Wait condition of %s satisfied', self.display_name)
                return

            remaining = interval - (monotonic() - started) * 1000
            if remaining > 0:
                logger.debug('Waiting %d milliseconds before the next check', remaining)
                sleep(remaining / 1000)

        raise ActionError(
            f"Failed to wait for condition of '{self.display_name}' "
            f'within {self.time} milliseconds',
        )

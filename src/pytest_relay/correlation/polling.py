"""Correlation manager that waits for late replies."""

import logging
from time import sleep
from typing import TYPE_CHECKING

from pydantic import Field

from pytest_relay.errors import CorrelationError
from pytest_relay.models import SchemaModel
from pytest_relay.settings import get_settings

from .manager import DefaultCorrelationManager

if TYPE_CHECKING:
    from pytest_relay.context import TestContext

logger = logging.getLogger(__name__)
retry_logger = logging.getLogger('pytest_relay.retry')


class PollableEndpointConfiguration(SchemaModel):
    """Polling parameters of an endpoint, in milliseconds."""

    timeout: int = Field(
        default_factory=lambda: get_settings().endpoint_timeout,
        ge=0,
        title='Timeout',
        description='Time budget for finding a correlated reply.',
    )

    polling_interval: int = Field(
        default_factory=lambda: get_settings().polling_interval,
        gt=0,
        title='Polling interval',
        description='Delay between lookups of a correlated reply.',
    )


def _next_delay(interval: int, time_left: int) -> int:
    """Return the sleep for the next round, clamped to the budget left."""
    if time_left > 0:
        return interval

    return max(interval + time_left, 0)


class PollingCorrelationManager[T](DefaultCorrelationManager[T]):
    """Correlation manager polling until the reply or the key arrives.

    Both lookups decrement the remaining budget by the polling interval
    each round; the last sleep is clamped so the total wait never exceeds
    the budget.
    """

    def __init__(self, endpoint_configuration: PollableEndpointConfiguration,
                 retry_log_message: str) -> None:
        """Initialize the manager.

        Args:
            endpoint_configuration: Timeout and polling interval source.
            retry_log_message: Message logged before every retry of `find`.
        """
        super().__init__()

        self.endpoint_configuration = endpoint_configuration
        self.retry_log_message = retry_log_message

    def get_correlation_key(self, name: str, context: 'TestContext') -> str:
        """Return a correlation key, waiting for it to be published.

        Raises:
            CorrelationError: If the key does not appear within the budget.
        """
        logger.debug("Get correlation key for '%s'", name)

        settings = get_settings()
        time_left = settings.key_timeout
        interval = settings.key_polling_interval

        while not context.has_variable(name) and time_left > 0:
            time_left -= interval
            delay = _next_delay(interval, time_left)

            retry_logger.debug(
                'Correlation key not available yet - retrying in %dms', delay,
            )
            sleep(delay / 1000)

        if context.has_variable(name):
            return context.get_variable(name)

        raise CorrelationError(f"Failed to get correlation key for '{name}'")

    def find(self, key: str, timeout: int | None = None) -> T | None:
        """Take the object correlated with a key, polling until it arrives.

        Args:
            key: Correlation key.
            timeout: Time budget in milliseconds; defaults to the endpoint timeout.

        Returns:
            The correlated object, or `None` when the budget is exhausted.
        """
        if timeout is None:
            timeout = self.endpoint_configuration.timeout

        time_left = timeout
        interval = self.endpoint_configuration.polling_interval

        stored = super().find(key, time_left)
        while stored is None and time_left > 0:
            time_left -= interval
            delay = _next_delay(interval, time_left)

            retry_logger.debug('%s - retrying in %dms', self.retry_log_message, delay)
            sleep(delay / 1000)

            stored = super().find(key, time_left)

        return stored

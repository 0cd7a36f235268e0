"""Correlation managers.

A correlation manager keeps two kinds of data: correlation keys, stored
as context variables so that the replying side can find them, and the
correlated objects themselves, kept in an `ObjectStore`.
"""

import logging
from typing import TYPE_CHECKING

from pytest_relay.errors import CorrelationError

from .store import ObjectStore

if TYPE_CHECKING:
    from pytest_relay.context import TestContext

logger = logging.getLogger(__name__)


class CorrelationManager[T]:
    """Base correlation manager operating on a single object store."""

    def __init__(self) -> None:
        self._object_store: ObjectStore[T] = ObjectStore()

    def save_correlation_key(self, name: str, key: str,
                             context: 'TestContext') -> None:
        """Publish a correlation key as a context variable.

        Args:
            name: Name of the correlation key variable.
            key: Correlation key value.
            context: Test context to publish the key to.
        """
        logger.debug("Saving correlation key for '%s'", name)
        context.set_variable(name, key)

    def get_correlation_key(self, name: str, context: 'TestContext') -> str:
        """Return a correlation key published to the context.

        Args:
            name: Name of the correlation key variable.
            context: Test context holding the key.

        Returns:
            The correlation key.

        Raises:
            CorrelationError: If the key is not published.
        """
        logger.debug("Get correlation key for '%s'", name)

        if context.has_variable(name):
            return context.get_variable(name)

        raise CorrelationError(f"Failed to get correlation key for '{name}'")

    def store(self, key: str, obj: T | None) -> None:
        """Store a correlated object; `None` objects are ignored."""
        if obj is None:
            logger.warning("Ignore correlated null object for '%s'", key)
            return

        logger.debug("Saving correlated object for '%s'", key)
        self._object_store.add(key, obj)

    def find(self, key: str, timeout: int | None = None) -> T | None:  # noqa: ARG002
        """Take the object correlated with a key.

        Args:
            key: Correlation key.
            timeout: Time budget in milliseconds, unused by this manager.

        Returns:
            The correlated object, or `None` if none is stored.
        """
        logger.debug("Finding correlated object for '%s'", key)
        return self._object_store.remove(key)

    def set_object_store(self, store: ObjectStore[T]) -> None:
        """Replace the object store."""
        self._object_store = store

    def get_object_store(self) -> ObjectStore[T]:
        """Return the object store."""
        return self._object_store


class DefaultCorrelationManager[T](CorrelationManager[T]):
    """Correlation manager looking objects up without waiting."""

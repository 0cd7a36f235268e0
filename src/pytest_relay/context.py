"""Shared runtime state of a test case.

The context is the single collaborator through which actions and
containers exchange data. It is touched concurrently by the calling
thread, background actions and parallel branches, so every piece of
state is guarded by a lock.
"""

import logging
from re import compile as compile_regex
from threading import Lock
from typing import TYPE_CHECKING, Any

from pytest_relay.errors import UnknownVariableError
from pytest_relay.expressions import evaluate

if TYPE_CHECKING:
    from collections.abc import Mapping
    from concurrent.futures import Future
    from re import Match

logger = logging.getLogger(__name__)

PLACEHOLDER_PATTERN = compile_regex(r'\$\{([^{}]+)\}')


class TestContext:
    """Variables, pending failures and background completions of a case.

    Attributes:
        variables: Snapshot of the currently bound variables.
        exceptions: Snapshot of the failures published by background work.
    """

    __test__ = False

    def __init__(self, variables: 'Mapping[str, Any] | None' = None) -> None:
        """Initialize a context.

        Args:
            variables: Optional initial variable bindings.
        """
        self._variables: dict[str, Any] = dict(variables or {})
        self._exceptions: list[BaseException] = []
        self._completions: list[Future[None]] = []

        self._variables_lock = Lock()
        self._exceptions_lock = Lock()
        self._completions_lock = Lock()

    @staticmethod
    def _unwrap(name: str) -> str:
        if match := PLACEHOLDER_PATTERN.fullmatch(name):
            return match.group(1)

        return name

    def get_variable(self, name: str) -> Any:  # noqa: ANN401
        """Return the value bound to a variable.

        Args:
            name: Variable name, either bare or as a `${name}` placeholder.

        Returns:
            The bound value.

        Raises:
            UnknownVariableError: If the variable is not bound.
        """
        name = self._unwrap(name)
        with self._variables_lock:
            if name not in self._variables:
                raise UnknownVariableError(name)
            return self._variables[name]

    def set_variable(self, name: str, value: Any) -> None:  # noqa: ANN401
        """Bind a value to a variable, replacing any previous binding."""
        name = self._unwrap(name)
        with self._variables_lock:
            self._variables[name] = value

    def has_variable(self, name: str) -> bool:
        """Check whether a variable is bound."""
        name = self._unwrap(name)
        with self._variables_lock:
            return name in self._variables

    def add_variables(self, variables: 'Mapping[str, Any]') -> None:
        """Bind several variables at once."""
        with self._variables_lock:
            self._variables.update(variables)

    @property
    def variables(self) -> dict[str, Any]:
        """Snapshot of the bound variables."""
        with self._variables_lock:
            return dict(self._variables)

    def replace_dynamic_content(self, text: str,
                                extra: 'Mapping[str, Any] | None' = None) -> str:
        """Replace `${name}` placeholders with variable values.

        Args:
            text: Text containing placeholders.
            extra: Bindings taking precedence over context variables.

        Returns:
            The text with every placeholder replaced.

        Raises:
            UnknownVariableError: If a placeholder names an unbound variable.
        """
        values = self.variables
        if extra:
            values.update(extra)

        def replace(match: 'Match[str]') -> str:
            name = match.group(1)
            if name not in values:
                raise UnknownVariableError(name)

            value = values[name]
            if isinstance(value, bool):
                return str(value).lower()

            return str(value)

        return PLACEHOLDER_PATTERN.sub(replace, text)

    def resolve_dynamic_value(self, value: Any) -> Any:  # noqa: ANN401
        """Resolve placeholders of string values, return others as is."""
        if isinstance(value, str):
            return self.replace_dynamic_content(value)

        return value

    def evaluate_condition(self, expression: str) -> bool:
        """Evaluate a boolean expression after placeholder replacement."""
        resolved = self.replace_dynamic_content(expression)
        result = evaluate(resolved)

        logger.debug('Condition %r evaluated to %s', resolved, result)
        return result

    def add_exception(self, error: BaseException) -> None:
        """Publish a failure raised outside of the calling thread."""
        with self._exceptions_lock:
            self._exceptions.append(error)

    def has_exceptions(self) -> bool:
        """Check whether any failure is pending."""
        with self._exceptions_lock:
            return bool(self._exceptions)

    def pop_exception(self) -> BaseException | None:
        """Take the earliest pending failure, if any."""
        with self._exceptions_lock:
            if not self._exceptions:
                return None
            return self._exceptions.pop(0)

    @property
    def exceptions(self) -> list[BaseException]:
        """Snapshot of the pending failures."""
        with self._exceptions_lock:
            return list(self._exceptions)

    def register_completion(self, future: 'Future[None]') -> None:
        """Register the completion handle of background work."""
        with self._completions_lock:
            self._completions.append(future)

    def outstanding_completions(self) -> list['Future[None]']:
        """Return registered completion handles that are not done yet."""
        with self._completions_lock:
            return [
                future
                for future in self._completions
                if not future.done()
            ]

"""Core exception hierarchy.

This module defines the error types raised while orchestrating test
cases: failures of single actions, aggregated failures of parallel
branches, correlation lookups and case-level failures reported to the
caller of `TestCase.execute` and `TestCase.finish`.
"""

from collections.abc import Mapping, Sequence
from os import linesep
from typing import Any, TypedDict

from yaml import dump

SNIPPET_ELLIPSIS = f' ...{linesep}'
SNIPPET_SEPARATOR = f' ---{linesep}'
SNIPPET_INDENT = 2

FORMAT_REPLACER = '<runtime object>'
FORMAT_CASE = '<anonymous case>'
FORMAT_INDENT = 4

TIMEOUT_MESSAGE = 'Failed to wait for the test container to finish properly - timeout exceeded'

SCALARS = (str, bytes, int, float, bool)


class ErrorContext(TypedDict, total=False):
    """Container describing contextual information for error formatting.

    All fields are optional; the formatter adapts output based on
    provided values.
    """

    #: Name of the test case where the error occurred.
    case_name: str | None

    #: Position of the failing primary action.
    action_num: int | None
    #: Name of the failing action.
    action_name: str | None

    #: Underlying exception that triggered formatting.
    error: BaseException | None

    #: Context variables available at the moment of failure.
    context: dict[str, Any] | None


class ErrorFormatter:
    """Utility class for formatting orchestration errors.

    Produces human-readable messages with the failure location and a
    YAML snapshot of the context variables.
    """

    @classmethod
    def format(cls, message: str, context: ErrorContext | None = None) -> str:
        """Format an error message using contextual information.

        Args:
            message: Base human-readable error message.
            context: Optional error context with location and data.

        Returns:
            A fully formatted error message suitable for display.
        """
        if not context:
            return message

        message += linesep
        message += cls.get_location_string(context, indent=FORMAT_INDENT)
        message += cls.get_snippet_string(context, indent=FORMAT_INDENT * 2)

        return message

    @classmethod
    def get_location_string(cls, context: ErrorContext, *,
                            indent: str | int | None = None) -> str:
        """Format the failure location.

        Args:
            context: Error context containing location metadata.
            indent: Optional indentation (string or number of spaces).

        Returns:
            A formatted location string with case and action.
        """
        indent = cls._ensure_indent(indent)

        case_name = context.get('case_name') or FORMAT_CASE
        message = f"{indent}in test case '{case_name}'{linesep}"

        if (action_num := context.get('action_num')) is not None:
            message += f'{indent}on action {action_num + 1}'
            if action_name := context.get('action_name'):
                message += f" '{action_name}'"
            message += linesep

        return message

    @classmethod
    def get_snippet_string(cls, context: ErrorContext, *,
                           indent: str | int | None = None) -> str:
        """Generate a YAML snippet with the context variables.

        Args:
            context: Error context containing runtime values.
            indent: Optional indentation (string or number of spaces).

        Returns:
            A formatted multi-line snippet string, or an empty string
            if no variables are available.
        """
        indent = cls._ensure_indent(indent)

        values = context.get('context')
        if not values:
            return ''

        snippet = f'{indent}{SNIPPET_ELLIPSIS}'
        snippet += cls.make_yaml({'variables': {**values}}, indent)
        snippet += linesep

        if error := context.get('error'):
            snippet += f'{indent}{SNIPPET_SEPARATOR}'
            snippet += cls.make_yaml({'error': f'{type(error).__name__}: {error}'}, indent)
            snippet += linesep

        return snippet

    @classmethod
    def _filter_unsafe(cls, value: Any) -> Any:  # noqa: ANN401
        """Recursively sanitize values for safe YAML serialization.

        Args:
            value: Arbitrary value to sanitize.

        Returns:
            A YAML-safe representation of the value.
        """
        if value is None or isinstance(value, SCALARS):
            return value

        if isinstance(value, Mapping):
            return {
                str(key): cls._filter_unsafe(item)
                for key, item in value.items()
            }

        if isinstance(value, Sequence):
            return [
                cls._filter_unsafe(item)
                for item in value
            ]

        return FORMAT_REPLACER

    @classmethod
    def make_yaml(cls, value: Any, indent: str = '') -> str:  # noqa: ANN401
        """Serialize a value to a YAML-formatted string.

        Args:
            value: Arbitrary value to serialize.
            indent: Optional indentation prefix.

        Returns:
            A YAML-formatted string representation of the value.
        """
        data = dump(
            cls._filter_unsafe(value),
            indent=SNIPPET_INDENT,
            sort_keys=False,
        )

        return cls._make_indent(data, indent)

    @staticmethod
    def _make_indent(value: str, indent: str) -> str:
        """Apply indentation to a multi-line string, dropping blank lines."""
        if not indent:
            return value

        return linesep.join(
            f'{indent}{line}'
            for line in value.splitlines()
            if line.strip()
        )

    @staticmethod
    def _ensure_indent(indent: str | int | None = None) -> str:
        """Normalize indentation given as a string or a number of spaces."""
        if isinstance(indent, int) and indent > 0:
            return ' ' * indent

        if isinstance(indent, str):
            return indent

        return ''


class RelayError(Exception, ErrorFormatter):
    """Base exception for all pytest-relay errors."""

    def __init__(self, message: str, *,
                 context: ErrorContext | None = None) -> None:
        """Initialize an error.

        Args:
            message: Human-readable error description.
            context: Error context containing optional runtime values.
        """
        self.message = message
        self.context = context

        super().__init__(message)

    def __str__(self) -> str:
        """String representation."""
        return self.format(self.message, self.context)


class ActionError(RelayError):
    """Error raised while executing an action.

    Foreign exceptions raised on background threads are wrapped into
    this type before they are published to the shared exception list.
    """

    @classmethod
    def from_exception(cls, error: BaseException) -> 'ActionError':
        """Return the error itself or wrap it preserving the message.

        Args:
            error: Exception raised by an action.

        Returns:
            An `ActionError` instance.
        """
        if isinstance(error, ActionError):
            return error

        wrapped = cls(str(error) or type(error).__name__)
        wrapped.__cause__ = error

        return wrapped


class UnknownVariableError(ActionError):
    """Error raised when a variable reference can not be resolved."""

    def __init__(self, name: str) -> None:
        """Initialize the error for a missing variable name."""
        self.name = name

        super().__init__(f"Unknown variable '{name}'")


class ExpressionError(ActionError):
    """Error raised when a boolean condition can not be evaluated."""


class CorrelationError(ActionError):
    """Error raised when a correlation key is not available."""


class ValidationError(ActionError):
    """Error raised when an asserted failure does not match expectations."""


class ParallelContainerError(ActionError):
    """Aggregated failure of the branches of a parallel container.

    Nested failures are kept and reported in the order the branches
    were declared, independently of their completion order.
    """

    def __init__(self, errors: 'Sequence[BaseException]') -> None:
        """Initialize the aggregate.

        Args:
            errors: Nested failures in declaration order.
        """
        self.errors = tuple(errors)

        message = 'Several actions failed in parallel container'
        for error in self.errors:
            message += f'{linesep}\t+ {type(error).__name__}: {error}'

        super().__init__(message)


class TestCaseFailedError(RelayError):
    """Case-level failure raised by `TestCase.execute` and `TestCase.finish`.

    The message of the error equals the message of the underlying cause.
    """

    __test__ = False

    def __init__(self, cause: BaseException | None = None, *,
                 message: str | None = None) -> None:
        """Initialize a case failure.

        Args:
            cause: The failure that made the case fail.
            message: Optional explicit message; defaults to the cause message.
        """
        self.cause = cause

        if message is None:
            if isinstance(cause, RelayError):
                message = cause.message
            elif cause is not None:
                message = str(cause) or type(cause).__name__
            else:
                message = 'Test case failed'

        super().__init__(message)


class TestCaseTimeoutError(TestCaseFailedError):
    """Case failure raised when waiting for background actions times out."""

    __test__ = False

    def __init__(self) -> None:
        """Initialize the timeout failure with its fixed message."""
        super().__init__(message=TIMEOUT_MESSAGE)

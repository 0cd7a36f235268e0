"""Test case outcome model."""

from datetime import timedelta
from enum import StrEnum
from typing import Any

from pydantic import Field

from pytest_relay.models import SchemaModel


class ResultStatus(StrEnum):
    """Final status of a test case."""

    SUCCESS = 'success'
    FAILURE = 'failure'
    SKIP = 'skip'


class TestResult(SchemaModel):
    """Outcome of a test case execution.

    Results are immutable; updates produce a copy via `model_copy`.
    """

    __test__ = False

    status: ResultStatus = Field(
        title='Status',
        description='Final status of the test case.',
    )

    cause: BaseException | None = Field(
        default=None,
        title='Cause',
        description='Failure that made the test case fail.',
    )

    error_message: str | None = Field(
        default=None,
        title='Error message',
        description='Message of the failure cause.',
    )

    duration: timedelta = Field(
        default=timedelta(0),
        title='Duration',
        description='Time elapsed since the test case started.',
    )

    test_name: str | None = Field(
        default=None,
        title='Test name',
        description='Name of the test case.',
    )

    parameters: dict[str, Any] = Field(
        default_factory=dict,
        title='Parameters',
        description='Parameters the test case was executed with.',
    )

    @property
    def is_success(self) -> bool:
        """Check whether the case completed successfully."""
        return self.status == ResultStatus.SUCCESS

    @property
    def is_failed(self) -> bool:
        """Check whether the case failed."""
        return self.status == ResultStatus.FAILURE

    @property
    def is_skipped(self) -> bool:
        """Check whether the case was skipped."""
        return self.status == ResultStatus.SKIP

    @classmethod
    def success(cls, **kwargs: Any) -> 'TestResult':  # noqa: ANN401
        """Build a successful result."""
        return cls(status=ResultStatus.SUCCESS, **kwargs)

    @classmethod
    def failed(cls, cause: BaseException, **kwargs: Any) -> 'TestResult':  # noqa: ANN401
        """Build a failed result carrying the cause and its message."""
        message = getattr(cause, 'message', None) or str(cause)
        return cls(
            status=ResultStatus.FAILURE,
            cause=cause,
            error_message=message,
            **kwargs,
        )

    @classmethod
    def skipped(cls, **kwargs: Any) -> 'TestResult':  # noqa: ANN401
        """Build a skipped result."""
        return cls(status=ResultStatus.SKIP, **kwargs)

"""Background actions used across the tests."""

from collections.abc import Callable  # noqa: TC003
from time import sleep

from pydantic import Field

from pytest_relay.actions import AsyncTestAction
from pytest_relay.context import TestContext  # noqa: TC001
from pytest_relay.errors import ActionError  # noqa: TC001


class DelayedAction(AsyncTestAction):
    """Sleep in the background, then optionally fail."""

    delay: int = 0
    error: Exception | None = None

    def do_execute_async(self, context: TestContext) -> None:
        sleep(self.delay / 1000)
        if self.error is not None:
            raise self.error


class RecordingAction(AsyncTestAction):
    """Run a callable in the background and record completion hooks."""

    work: Callable[[TestContext], object]
    events: list[str] = Field(default_factory=list)
    fail_hooks: bool = False

    def do_execute_async(self, context: TestContext) -> None:
        self.work(context)

    def on_success(self, context: TestContext) -> None:
        self.events.append('success')
        if self.fail_hooks:
            raise RuntimeError('success hook failed')

    def on_error(self, context: TestContext, error: ActionError) -> None:
        self.events.append(f'error: {error.message}')
        if self.fail_hooks:
            raise RuntimeError('error hook failed')

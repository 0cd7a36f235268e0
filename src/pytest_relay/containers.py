"""Control-flow containers.

Containers compose ordered child actions into sequences, loops,
retries, conditional blocks, parallel fan-outs and timers. All
variants share one structure, an ordered list of children, and differ
only in the algorithm applied to it. The algorithm is selected from
the `kind` discriminator by `ContainerRunner`.

Iterating variants publish their loop index to the context (as a
string) before every iteration, so that child actions and conditions
can reference it.
"""

import logging
from collections.abc import Callable
from itertools import count
from re import escape
from re import sub as re_sub
from threading import Event, Lock, Thread
from time import sleep
from typing import Literal

from pydantic import Field, PrivateAttr

from pytest_relay.actions.base import TestAction
from pytest_relay.context import TestContext  # noqa: TC001
from pytest_relay.errors import ActionError, ParallelContainerError
from pytest_relay.settings import get_settings

logger = logging.getLogger(__name__)

#: Loop guard receiving the current index and the context.
type IndexCondition = Callable[[int, TestContext], bool]

#: Guard of a conditional block receiving the context.
type ContextCondition = Callable[[TestContext], bool]

type ContainerKind = Literal[
    'sequence',
    'iterate',
    'repeat',
    'repeat-on-error',
    'conditional',
    'parallel',
    'timer',
]

#: Serial numbers of timers built without an explicit id.
_timer_serial = count(1)


class TestActionContainer(TestAction):
    """Base class for actions owning ordered child actions.

    The structure of a container is fixed once it is built, apart from
    appending children with `add_test_action`.
    """

    #: Discriminator selecting the control-flow algorithm.
    kind: ContainerKind

    actions: list[TestAction] = Field(
        default_factory=list,
        title='Actions',
        description='Child actions in execution order.',
    )

    def add_test_action(self, action: TestAction) -> None:
        """Append a child action."""
        self.actions.append(action)

    def get_action_count(self) -> int:
        """Return the number of child actions."""
        return len(self.actions)

    def get_test_action(self, index: int) -> TestAction:
        """Return the child action at a position."""
        return self.actions[index]

    def execute(self, context: TestContext) -> None:
        """Execute the children with the algorithm of the container kind."""
        runner.run(self, context)


class Sequence(TestActionContainer):
    """Children executed once each, stopping at the first failure."""

    kind: Literal['sequence'] = 'sequence'


class IteratingContainer(TestActionContainer):
    """Base class for containers looping over an integer index.

    String conditions are resolved through the context with the index
    variable bound; bare occurrences of the index name are replaced by
    the index value before evaluation, so `i lt 5` and `${i} lt 5` are
    equivalent.
    """

    condition: str | IndexCondition = Field(
        title='Condition',
        description='Loop guard as a boolean expression or a callable.',
    )

    index_name: str = Field(
        default='i',
        title='Index variable',
        description='Name of the context variable holding the loop index.',
    )

    start: int = Field(
        default=1,
        title='Start',
        description='Initial value of the loop index.',
    )

    step: int = Field(
        default=1,
        title='Step',
        description='Increment of the loop index after each iteration.',
    )

    _index: int = PrivateAttr(default=0)

    @property
    def index(self) -> int:
        """Current value of the loop index."""
        return self._index

    def check_condition(self, context: TestContext) -> bool:
        """Evaluate the loop guard for the current index.

        Args:
            context: Shared test context.

        Returns:
            The value of the guard.

        Raises:
            ExpressionError: If a string condition can not be evaluated.
            UnknownVariableError: If a string condition references an
                unbound variable.
        """
        if callable(self.condition):
            return bool(self.condition(self._index, context))

        expression = context.replace_dynamic_content(
            self.condition,
            {self.index_name: str(self._index)},
        )
        expression = re_sub(
            rf'\b{escape(self.index_name)}\b',
            str(self._index),
            expression,
        )

        return context.evaluate_condition(expression)

    def execute_iteration(self, context: TestContext) -> None:
        """Publish the index and execute every child once."""
        context.set_variable(self.index_name, str(self._index))
        for action in self.actions:
            runner.execute_action(action, context)


class Iterate(IteratingContainer):
    """Children executed while the condition holds (pre-test loop)."""

    kind: Literal['iterate'] = 'iterate'


class RepeatUntilTrue(IteratingContainer):
    """Children executed until the condition holds (post-test loop)."""

    kind: Literal['repeat'] = 'repeat'


class RepeatOnErrorUntilTrue(IteratingContainer):
    """Children retried after failures until the condition holds.

    A successful iteration ends the loop. After a failed attempt the
    container sleeps `auto_sleep` milliseconds, advances the index and
    retries. The last failure is raised once the condition holds
    without any successful attempt.
    """

    kind: Literal['repeat-on-error'] = 'repeat-on-error'

    auto_sleep: int = Field(
        default_factory=lambda: get_settings().auto_sleep,
        ge=0,
        title='Auto sleep',
        description='Delay between attempts in milliseconds.',
    )

    def do_auto_sleep(self) -> None:
        """Sleep between attempts."""
        if self.auto_sleep <= 0:
            return

        logger.info('Sleeping %d milliseconds', self.auto_sleep)
        sleep(self.auto_sleep / 1000)
        logger.info('Returning after %d milliseconds', self.auto_sleep)


class Conditional(TestActionContainer):
    """Children executed once when the condition holds, skipped otherwise."""

    kind: Literal['conditional'] = 'conditional'

    condition: str | ContextCondition = Field(
        title='Condition',
        description='Guard as a boolean expression or a callable.',
    )

    def check_condition(self, context: TestContext) -> bool:
        """Evaluate the guard."""
        if callable(self.condition):
            return bool(self.condition(context))

        return context.evaluate_condition(self.condition)


class Parallel(TestActionContainer):
    """Children executed concurrently, one thread per child.

    Every branch runs to completion regardless of the others. Failures
    are aggregated into a `ParallelContainerError` in declaration order.
    """

    kind: Literal['parallel'] = 'parallel'


class Timer(TestActionContainer):
    """Children executed repeatedly at a fixed interval.

    The timer sleeps `delay` milliseconds, then waits `interval`
    milliseconds before every tick. Each tick publishes its number,
    starting at 1, as the `<timer_id>-index` variable and executes the
    children. The first failure of a child stops the timer.

    A forked timer ticks on a daemon thread and publishes its failure to
    the context. The owning test case does not wait for it; use
    `stop_timer` to end an unbounded one.
    """

    kind: Literal['timer'] = 'timer'

    timer_id: str = Field(
        default_factory=lambda: f'relay-timer-{next(_timer_serial)}',
        title='Timer id',
        description='Identifier prefixing the published tick variable.',
    )

    interval: int = Field(
        default=1000,
        ge=0,
        title='Interval',
        description='Delay before every tick in milliseconds.',
    )

    delay: int = Field(
        default=0,
        ge=0,
        title='Delay',
        description='Initial delay before the timer starts in milliseconds.',
    )

    repeat_count: int | None = Field(
        default=None,
        ge=1,
        title='Repeat count',
        description='Number of ticks, unbounded when not set.',
    )

    fork: bool = Field(
        default=False,
        title='Fork',
        description='Tick on a background thread instead of the caller.',
    )

    _stopped: Event = PrivateAttr(default_factory=Event)
    _finished: Event = PrivateAttr(default_factory=Event)

    @property
    def index_name(self) -> str:
        """Name of the variable holding the tick number."""
        return f'{self.timer_id}-index'

    def stop_timer(self) -> None:
        """Stop ticking before the next tick."""
        self._stopped.set()

    def join(self, timeout: float | None = None) -> bool:
        """Block until the timer stopped ticking.

        Args:
            timeout: Bound in seconds, unbounded when `None`.

        Returns:
            Whether the timer stopped within the bound.
        """
        return self._finished.wait(timeout)


class ContainerRunner:
    """Single dispatch point for the control-flow algorithms."""

    def run(self, container: TestActionContainer, context: TestContext) -> None:
        """Execute a container with the algorithm selected by its kind.

        Args:
            container: Container to execute.
            context: Shared test context.

        Raises:
            Exception: Failure of a child action, see the variants.
        """
        logger.debug('Executing %s container %s', container.kind, container.display_name)

        match container.kind:
            case 'sequence':
                self.run_sequence(container, context)
            case 'iterate':
                self.run_iterate(container, context)
            case 'repeat':
                self.run_repeat(container, context)
            case 'repeat-on-error':
                self.run_repeat_on_error(container, context)
            case 'conditional':
                self.run_conditional(container, context)
            case 'parallel':
                self.run_parallel(container, context)
            case 'timer':
                self.run_timer(container, context)
            case _:
                raise ValueError(f'Unsupported container kind {container.kind!r}')

    @staticmethod
    def execute_action(action: TestAction, context: TestContext) -> None:
        """Execute a single child action."""
        logger.debug('Executing action %s', action.display_name)
        action.execute(context)

    def run_sequence(self, container: TestActionContainer, context: TestContext) -> None:
        for action in container.actions:
            self.execute_action(action, context)

    def run_iterate(self, container: IteratingContainer, context: TestContext) -> None:
        container._index = container.start  # noqa: SLF001
        while container.check_condition(context):
            container.execute_iteration(context)
            container._index += container.step  # noqa: SLF001

    def run_repeat(self, container: IteratingContainer, context: TestContext) -> None:
        container._index = container.start  # noqa: SLF001
        while True:
            container.execute_iteration(context)
            container._index += container.step  # noqa: SLF001
            if container.check_condition(context):
                break

    def run_repeat_on_error(self, container: RepeatOnErrorUntilTrue,
                            context: TestContext) -> None:
        container._index = container.start  # noqa: SLF001

        failure: Exception | None = None
        while not container.check_condition(context):
            try:
                failure = None
                container.execute_iteration(context)
                break

            except Exception as error:  # noqa: BLE001
                failure = error
                logger.info(
                    "Caught exception of type %s '%s' - performing retry #%d",
                    type(error).__name__, error, container.index,
                )

                container.do_auto_sleep()
                container._index += container.step  # noqa: SLF001

        if failure is not None:
            logger.info('All retries failed - raising exception %s', type(failure).__name__)
            raise failure

    def run_conditional(self, container: Conditional, context: TestContext) -> None:
        if not container.check_condition(context):
            logger.debug('Condition of %s is false - skipping', container.display_name)
            return

        for action in container.actions:
            self.execute_action(action, context)

    def run_parallel(self, container: TestActionContainer, context: TestContext) -> None:
        failures: dict[int, Exception] = {}
        lock = Lock()

        def branch(position: int, action: TestAction) -> None:
            try:
                self.execute_action(action, context)
            except Exception as error:  # noqa: BLE001
                logger.error('Parallel test action raised error: %s', error)  # noqa: TRY400
                with lock:
                    failures[position] = error

        threads = [
            Thread(
                target=branch,
                args=(position, action),
                name=f'relay-parallel-{position}',
                daemon=True,
            )
            for position, action in enumerate(container.actions)
        ]

        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        if failures:
            raise ParallelContainerError([
                failures[position]
                for position in sorted(failures)
            ])

    def run_timer(self, container: Timer, context: TestContext) -> None:
        container._stopped.clear()  # noqa: SLF001
        container._finished.clear()  # noqa: SLF001

        if not container.fork:
            try:
                self.run_ticks(container, context)
            finally:
                container._finished.set()  # noqa: SLF001
            return

        def forked() -> None:
            try:
                self.run_ticks(container, context)
            except ActionError as error:
                context.add_exception(error)
            finally:
                container._finished.set()  # noqa: SLF001

        Thread(target=forked, name=container.timer_id, daemon=True).start()

    def run_ticks(self, container: Timer, context: TestContext) -> None:
        if container.delay > 0:
            sleep(container.delay / 1000)

        tick = 0
        while container.repeat_count is None or tick < container.repeat_count:
            if container._stopped.wait(container.interval / 1000):  # noqa: SLF001
                logger.debug('Timer %s stopped after %d ticks', container.timer_id, tick)
                break

            tick += 1
            context.set_variable(container.index_name, str(tick))

            try:
                for action in container.actions:
                    self.execute_action(action, context)

            except Exception as error:
                logger.error(  # noqa: TRY400
                    'Timer %s stopped as a result of nested action error: %s',
                    container.timer_id, error,
                )
                failure = ActionError.from_exception(error)
                if failure is error:
                    raise
                raise failure from error


runner = ContainerRunner()

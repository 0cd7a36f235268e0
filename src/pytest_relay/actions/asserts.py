"""Action asserting that a nested action fails."""

import logging

from pydantic import Field

from pytest_relay.context import TestContext  # noqa: TC001
from pytest_relay.errors import ActionError, ValidationError

from .base import TestAction

logger = logging.getLogger(__name__)


class Assert(TestAction):
    """Expect a nested action to raise a specific error.

    The assertion passes when the nested action raises an instance of
    `exception`. When `message` is set, the error message must equal it
    after dynamic content replacement.
    """

    action: TestAction = Field(
        title='Action',
        description='Action expected to fail.',
    )

    exception: type[BaseException] = Field(
        default=ActionError,
        title='Exception type',
        description='Expected error type, subclasses are accepted.',
    )

    message: str | None = Field(
        default=None,
        title='Message',
        description='Expected error message, may contain placeholders.',
    )

    def execute(self, context: TestContext) -> None:
        """Execute the nested action and validate its failure.

        Raises:
            ValidationError: If the action succeeded or failed differently.
        """
        logger.debug('Assert container asserting exceptions of type %s', self.exception.__name__)

        try:
            self.action.execute(context)

        except Exception as error:
            actual = getattr(error, 'message', None) or str(error)

            if not isinstance(error, self.exception):
                raise ValidationError(
                    'Validation failed for asserted exception type - '
                    f"expected: '{self.exception.__name__}' but was: '{type(error).__name__}'",
                ) from error

            if self.message is not None:
                expected = context.replace_dynamic_content(self.message)
                if expected != actual:
                    raise ValidationError(
                        'Validation failed for asserted exception message - '
                        f"expected: '{expected}' but was: '{actual}'",
                    ) from error

            logger.debug('Asserted exception is as expected (%s): %s', type(error).__name__, actual)
            return

        raise ValidationError(f"Missing asserted exception '{self.exception.__name__}'")

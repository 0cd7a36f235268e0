"""Tests for the pytest plugin."""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import pytest


def test_fixtures(pytester: 'pytest.Pytester') -> None:
    """Provide fixtures bound to each other."""
    pytester.makepyfile(
        """
        from pytest_relay.actions import FunctionAction

        def test_case(relay_case, relay_context, relay_runner):
            assert relay_case.name == 'test_case'
            assert relay_runner.context is relay_context

            relay_case.add_test_action(
                FunctionAction(function=lambda ctx: ctx.set_variable('done', 'yes')),
            )
            result = relay_runner.run(relay_case)

            assert result.is_success
            assert relay_context.get_variable('done') == 'yes'
        """,
    )

    result = pytester.runpytest()

    result.assert_outcomes(passed=1)


def test_options(pytester: 'pytest.Pytester') -> None:
    """Override the case timeout and the polling interval."""
    pytester.makepyfile(
        """
        def test_options(relay_case, relay_endpoint):
            assert relay_case.timeout == 1234
            assert relay_endpoint.polling_interval == 42
        """,
    )

    result = pytester.runpytest('--relay-timeout=1234', '--relay-polling-interval=42')

    result.assert_outcomes(passed=1)


def test_default_options(pytester: 'pytest.Pytester') -> None:
    """Use settings when no options are given."""
    pytester.makepyfile(
        """
        from pytest_relay.settings import get_settings

        def test_defaults(relay_case, relay_endpoint):
            settings = get_settings()
            assert relay_case.timeout == settings.case_timeout
            assert relay_endpoint.polling_interval == settings.polling_interval
        """,
    )

    result = pytester.runpytest()

    result.assert_outcomes(passed=1)

"""CLI utilities for pytest-relay.

The settings are resolved from `RELAY_` prefixed environment variables
exactly as the pytest plugin resolves them.
"""

from click import echo, group, option
from yaml import safe_dump

from pytest_relay.settings import RelaySettings


@group(help='Command-line utilities for pytest-relay.')
def cli() -> None:
    """Root CLI group for pytest-relay tools."""
    return None


@cli.command(
    name='settings',
    help='Print the effective pytest-relay settings as YAML.',
)
@option(
    '--defaults',
    is_flag=True,
    default=False,
    help='Ignore the environment and print the default values.',
)
def print_settings(defaults: bool) -> None:  # noqa: FBT001
    """Resolve and print the settings.

    Args:
        defaults: Print the defaults instead of the resolved values.
    """
    settings = RelaySettings.model_construct() if defaults else RelaySettings()

    echo(safe_dump(settings.model_dump(), sort_keys=False), nl=False)


if __name__ == '__main__':
    cli()

"""Runtime settings resolved from the environment.

All durations are expressed in milliseconds. Values are read from
environment variables with the `RELAY_` prefix, for example
`RELAY_CASE_TIMEOUT=5000`.
"""

from functools import cache

from pydantic import Field
from pydantic_settings import SettingsConfigDict

from pytest_relay.models import SettingsModel


class RelaySettings(SettingsModel):
    """Effective orchestration settings."""

    model_config = SettingsConfigDict(
        env_prefix='RELAY_',
        frozen=True,
        extra='ignore',
    )

    case_timeout: int = Field(
        default=10000,
        title='Test case timeout',
        description=(
            'Bound for waiting on background actions when a test case finishes.'
        ),
    )

    wait_fallback_timeout: int = Field(
        default=60000,
        gt=0,
        title='Fallback wait bound',
        description=(
            'Bound used when a test case timeout is zero or negative.'
        ),
    )

    auto_sleep: int = Field(
        default=1000,
        ge=0,
        title='Retry auto sleep',
        description='Delay between attempts of a repeat-on-error container.',
    )

    endpoint_timeout: int = Field(
        default=5000,
        ge=0,
        title='Endpoint timeout',
        description='Default time budget for finding a correlated reply.',
    )

    polling_interval: int = Field(
        default=500,
        gt=0,
        title='Endpoint polling interval',
        description='Delay between lookups of a correlated reply.',
    )

    key_timeout: int = Field(
        default=1000,
        ge=0,
        title='Correlation key timeout',
        description='Time budget for a correlation key to appear in the context.',
    )

    key_polling_interval: int = Field(
        default=300,
        gt=0,
        title='Correlation key polling interval',
        description='Delay between lookups of a correlation key.',
    )


@cache
def get_settings() -> RelaySettings:
    """Return cached settings resolved from the current environment."""
    return RelaySettings()

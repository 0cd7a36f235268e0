"""Base Pydantic models for orchestration elements.

This module defines the foundational model classes used by actions,
containers, results, and runtime settings. Structural immutability keeps
a built test case deterministic: only runtime counters held in private
attributes change while it executes.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class SchemaModel(BaseModel):
    """Base immutable model for all orchestration elements.

    Design principles enforced by this model:
        - Immutability: fields cannot be reassigned after creation.
          Runtime state (loop indexes, completion handles) lives in
          private attributes.
        - Strict schema validation: unknown or extra fields are rejected
          to avoid silent errors caused by typos.
        - Arbitrary types: actions may carry callables, exceptions and
          other runtime objects.
    """

    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        frozen=True,
        extra='forbid',
    )


class DescribedMixin(SchemaModel):
    """Mixin providing element self-documentation.

    The fields defined in this model do not affect execution semantics
    and are used for logging and reporting only.
    """

    name: str | None = Field(
        default=None,
        title='Name',
        description='Short human-readable name of the element.',
    )

    description: str | None = Field(
        default=None,
        title='Description',
        description='Detailed human-readable description of the element.',
    )

    @property
    def display_name(self) -> str:
        """Return the element name or, if missing, its class name."""
        if self.name:
            return self.name

        return type(self).__name__


class SettingsModel(BaseSettings):
    """Base immutable model for runtime settings.

    Design principles enforced by this model:
        - Immutability: resolved settings cannot be modified after creation.
        - Tolerant schema handling: unknown environment variables are ignored.
    """

    model_config = SettingsConfigDict(
        frozen=True,
        extra='ignore',
    )

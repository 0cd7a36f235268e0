"""Executable units of work."""

from .asserts import Assert
from .asynchronous import Async, AsyncTestAction
from .base import FunctionAction, SleepAction, TestAction
from .wait import Wait

__all__ = (
    'Assert',
    'Async',
    'AsyncTestAction',
    'FunctionAction',
    'SleepAction',
    'TestAction',
    'Wait',
)

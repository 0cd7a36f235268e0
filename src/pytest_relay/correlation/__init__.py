"""Correlation of asynchronously arriving replies with their requests."""

from .manager import CorrelationManager, DefaultCorrelationManager
from .polling import PollableEndpointConfiguration, PollingCorrelationManager
from .store import ObjectStore

__all__ = (
    'CorrelationManager',
    'DefaultCorrelationManager',
    'ObjectStore',
    'PollableEndpointConfiguration',
    'PollingCorrelationManager',
)

"""Services layer"""

from .event_bus import EventBus
from .state_aggregator import StateAggregator
from .provider_scheduler import ProviderScheduler

__all__ = [
    "EventBus",
    "StateAggregator",
    "ProviderScheduler",
]

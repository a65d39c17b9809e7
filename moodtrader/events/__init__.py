"""
Typed observation events and the event stream boundary.

This package defines the immutable ``Event`` record and its payload variants,
plus the stream interface the tick loop polls for new observations.
"""

from .core import (
    Event,
    EventSource,
    EventType,
    GenericPayload,
    LiquidityPayload,
    MalformedEventError,
    PricePayload,
    SocialPayload,
    VolumePayload,
)
from .stream import BaseEventStream, ReplayEventStream

__all__ = [
    "Event",
    "EventSource",
    "EventType",
    "GenericPayload",
    "LiquidityPayload",
    "MalformedEventError",
    "PricePayload",
    "SocialPayload",
    "VolumePayload",
    "BaseEventStream",
    "ReplayEventStream",
]

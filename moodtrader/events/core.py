"""
Typed observation events consumed by the signal engine.

Every external observation (market, chain, social, system) is normalized into
an immutable ``Event``. The free-form key/value payload of the upstream feed is
represented as one small payload class per event family so that detectors can
read fields by name instead of probing an untyped dictionary.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Union

Scalar = Union[str, int, float, bool, None]


class MalformedEventError(ValueError):
    """Raised when a raw record cannot be turned into an Event."""


class EventSource(Enum):
    """Where an observation came from."""
    SOLANA_MARKET = "solana_market"
    SOLANA_CHAIN = "solana_chain"
    TWITTER = "twitter"
    SYSTEM = "system"


class EventType(Enum):
    """Kinds of observations."""
    # Market events
    PRICE_UPDATE = "price_update"
    PRICE_CHANGE = "price_change"
    VOLUME_SPIKE = "volume_spike"
    LIQUIDITY_CHANGE = "liquidity_change"
    NEW_TOKEN = "new_token"
    TOKEN_REVIVAL = "token_revival"

    # Social events
    MENTION_SPIKE = "mention_spike"
    SENTIMENT_SHIFT = "sentiment_shift"
    INFLUENCER_POST = "influencer_post"

    # System events
    HEARTBEAT = "heartbeat"
    ERROR = "error"


SOCIAL_EVENT_TYPES = frozenset({EventType.MENTION_SPIKE, EventType.SENTIMENT_SHIFT})


def _as_float(data: Mapping[str, Any], key: str, default: Optional[float]) -> Optional[float]:
    value = data.get(key, default)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MalformedEventError(f"Field '{key}' must be numeric, got {value!r}")
    return float(value)


@dataclass(frozen=True)
class PricePayload:
    """Payload for PRICE_UPDATE and PRICE_CHANGE events."""
    change_percent: float = 0.0
    price: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PricePayload":
        return cls(
            change_percent=_as_float(data, "changePercent", 0.0),
            price=_as_float(data, "price", None),
        )

    def to_dict(self) -> Dict[str, Scalar]:
        return {"changePercent": self.change_percent, "price": self.price}


@dataclass(frozen=True)
class VolumePayload:
    """Payload for VOLUME_SPIKE events. ``multiplier`` is volume / average."""
    multiplier: float = 1.0
    volume: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "VolumePayload":
        return cls(
            multiplier=_as_float(data, "multiplier", 1.0),
            volume=_as_float(data, "volume", None),
        )

    def to_dict(self) -> Dict[str, Scalar]:
        return {"multiplier": self.multiplier, "volume": self.volume}


@dataclass(frozen=True)
class LiquidityPayload:
    """Payload for LIQUIDITY_CHANGE events. Negative change means a drop."""
    change_percent: float = 0.0
    liquidity: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "LiquidityPayload":
        return cls(
            change_percent=_as_float(data, "changePercent", 0.0),
            liquidity=_as_float(data, "liquidity", None),
        )

    def to_dict(self) -> Dict[str, Scalar]:
        return {"changePercent": self.change_percent, "liquidity": self.liquidity}


@dataclass(frozen=True)
class SocialPayload:
    """Payload for MENTION_SPIKE, SENTIMENT_SHIFT and INFLUENCER_POST events."""
    mentions: int = 0
    sentiment: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SocialPayload":
        mentions = _as_float(data, "mentions", 0.0)
        return cls(
            mentions=int(mentions or 0),
            sentiment=_as_float(data, "sentiment", None),
        )

    def to_dict(self) -> Dict[str, Scalar]:
        return {"mentions": self.mentions, "sentiment": self.sentiment}


@dataclass(frozen=True)
class GenericPayload:
    """Fallback payload for event types without a dedicated schema."""
    values: Mapping[str, Scalar] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "GenericPayload":
        return cls(values=dict(data))

    def to_dict(self) -> Dict[str, Scalar]:
        return dict(self.values)


EventPayload = Union[PricePayload, VolumePayload, LiquidityPayload, SocialPayload, GenericPayload]

PAYLOAD_TYPES = {
    EventType.PRICE_UPDATE: PricePayload,
    EventType.PRICE_CHANGE: PricePayload,
    EventType.VOLUME_SPIKE: VolumePayload,
    EventType.LIQUIDITY_CHANGE: LiquidityPayload,
    EventType.MENTION_SPIKE: SocialPayload,
    EventType.SENTIMENT_SHIFT: SocialPayload,
    EventType.INFLUENCER_POST: SocialPayload,
}


def payload_type_for(event_type: EventType) -> type:
    """Return the payload class used for ``event_type``."""
    return PAYLOAD_TYPES.get(event_type, GenericPayload)


@dataclass(frozen=True)
class Event:
    """
    A single normalized observation.

    Attributes:
        id: Unique event identifier.
        timestamp: Epoch milliseconds when the observation was made.
        source: Producer of the observation.
        type: Kind of observation; determines the payload class.
        token_address: Token the observation refers to, if any.
        token_symbol: Human readable symbol, if known.
        data: Typed payload.
    """
    id: str
    timestamp: int
    source: EventSource
    type: EventType
    token_address: Optional[str] = None
    token_symbol: Optional[str] = None
    data: EventPayload = field(default_factory=GenericPayload)

    def __post_init__(self):
        expected = payload_type_for(self.type)
        if not isinstance(self.data, expected):
            raise MalformedEventError(
                f"Event {self.id} of type {self.type.value} needs {expected.__name__}, "
                f"got {type(self.data).__name__}"
            )

    def to_dict(self) -> Dict[str, Any]:
        """Convert the event to a JSON-serializable dictionary."""
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "source": self.source.value,
            "type": self.type.value,
            "tokenAddress": self.token_address,
            "tokenSymbol": self.token_symbol,
            "data": self.data.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Event":
        """
        Create an event from a raw record.

        Raises:
            MalformedEventError: If required fields are missing or invalid.
        """
        try:
            event_type = EventType(data["type"])
            source = EventSource(data.get("source", EventSource.SYSTEM.value))
            event_id = str(data["id"])
            timestamp = data["timestamp"]
        except (KeyError, ValueError, TypeError) as e:
            raise MalformedEventError(f"Invalid event record: {e}") from e

        if isinstance(timestamp, bool) or not isinstance(timestamp, (int, float)):
            raise MalformedEventError(f"Event {event_id} has non-numeric timestamp {timestamp!r}")

        raw_payload = data.get("data") or {}
        if not isinstance(raw_payload, Mapping):
            raise MalformedEventError(f"Event {event_id} payload must be a mapping")

        return cls(
            id=event_id,
            timestamp=int(timestamp),
            source=source,
            type=event_type,
            token_address=data.get("tokenAddress"),
            token_symbol=data.get("tokenSymbol"),
            data=payload_type_for(event_type).from_dict(raw_payload),
        )

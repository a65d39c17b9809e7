"""
Signal engine: rolling event window, pattern detectors and decaying signals.
"""

from .core import DetectorResult, Signal, SignalType
from .detectors import (
    BaseSignalDetector,
    DormancyDetector,
    EarlyMomentumDetector,
    HypeBurstDetector,
    LiquidityPullDetector,
    PriceExhaustionDetector,
    VolumeSurgeDetector,
    default_detectors,
)
from .signal_engine import SignalEngine

__all__ = [
    "DetectorResult",
    "Signal",
    "SignalType",
    "BaseSignalDetector",
    "DormancyDetector",
    "EarlyMomentumDetector",
    "HypeBurstDetector",
    "LiquidityPullDetector",
    "PriceExhaustionDetector",
    "VolumeSurgeDetector",
    "default_detectors",
    "SignalEngine",
]

"""
Risk guardrails: hard limits applied to every intent before execution.
"""

from .guardrails import RiskCheckResult, RiskGuardrails, calculate_exposure

__all__ = ["RiskCheckResult", "RiskGuardrails", "calculate_exposure"]

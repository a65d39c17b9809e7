"""
Autonomous paper-trading agent: decaying market signals, a psychological
state model, risk guardrails and a paper execution simulator.
"""

__version__ = "0.1.0"

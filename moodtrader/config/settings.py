"""
Centralized configuration management for the trading agent.

This module follows a 3-tier configuration architecture:

Tier 1: Code Defaults (settings.py)
- Default values for every threshold, interval and limit used by the core loop
- Version controlled, visible in PRs

Tier 2: Environment Variables (.env)
- Any setting can be overridden locally, e.g. RISK_MAX_DAILY_LOSS_PCT=10

Tier 3: Explicit construction
- Components accept their settings object directly, which is how tests and
  replays pin deterministic values without touching the environment.

This module uses pydantic-settings to manage configuration from environment
variables and .env files, providing a structured and validated way to
access settings throughout the application.
"""
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class SignalSettings(BaseSettings):
    """
    Configuration for the signal engine (rolling window, decay, reinforcement).
    """
    model_config = SettingsConfigDict(env_prefix='SIGNAL_')

    WINDOW_SIZE_MS: int = 3_600_000  # 1 hour rolling event window
    DECAY_HALF_LIFE_MS: int = 1_800_000  # 30 minutes
    MIN_CONFIDENCE: float = 0.3
    DECAY_RATE: float = 0.5  # Half-life decay
    REINFORCEMENT_INCREMENT: float = 0.1
    MAX_REINFORCED_CONFIDENCE: float = 0.99


class StateSettings(BaseSettings):
    """
    Configuration for the psychological state model.
    """
    model_config = SettingsConfigDict(env_prefix='STATE_')

    BASE_RISK_APPETITE: float = 0.4


class DecisionSettings(BaseSettings):
    """
    Configuration for the decision engine.
    """
    model_config = SettingsConfigDict(env_prefix='DECISION_')

    INTENT_COOLDOWN_MS: int = 60_000  # 1 minute between intents
    MIN_SIGNAL_CONFIDENCE: float = 0.5


class RiskSettings(BaseSettings):
    """
    Configuration for the risk guardrails. These are the only hard limits.
    """
    model_config = SettingsConfigDict(env_prefix='RISK_')

    MAX_POSITION_SIZE_PCT: float = 10.0  # Max % of capital per position
    MAX_DAILY_LOSS_PCT: float = 20.0  # Max daily loss before safe mode
    MAX_TOTAL_EXPOSURE_PCT: float = 50.0  # Max % of capital in positions
    DAILY_TRADE_LIMIT: Optional[int] = None  # Optional max trades per day
    TRADE_LEDGER_SIZE: int = 200  # Trailing trades kept for persistence


class ExecutionSettings(BaseSettings):
    """
    Configuration for execution (paper simulator and executor wrapping).
    """
    model_config = SettingsConfigDict(env_prefix='EXECUTION_')

    PAPER_MODE: bool = True
    INITIAL_CAPITAL: float = 100.0
    SLIPPAGE_PCT: float = 1.0
    EXECUTOR_TIMEOUT_SECONDS: float = 30.0


class LoopSettings(BaseSettings):
    """
    Configuration for the main tick loop.
    """
    model_config = SettingsConfigDict(env_prefix='LOOP_')

    TICK_INTERVAL_MS: int = 10_000  # 10s default
    PERCEPTION_POLL_MS: int = 30_000  # 30s default
    STATE_SAVE_INTERVAL_MS: int = 60_000  # 1min default
    POLL_TIMEOUT_SECONDS: float = 15.0


class Settings(BaseSettings):
    """
    Main settings object that aggregates all other settings.
    """
    model_config = SettingsConfigDict(env_file='.env', env_file_encoding='utf-8', extra='ignore')

    signals: SignalSettings = SignalSettings()
    state: StateSettings = StateSettings()
    decision: DecisionSettings = DecisionSettings()
    risk: RiskSettings = RiskSettings()
    execution: ExecutionSettings = ExecutionSettings()
    loop: LoopSettings = LoopSettings()

    DATA_DIR: str = "data"
    LOG_LEVEL: str = "INFO"
    EVENTS_FILE: Optional[str] = None  # Recorded stream consumed by main.py


settings = Settings()

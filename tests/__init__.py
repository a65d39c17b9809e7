"""
moodtrader test suite.

- unit: one directory per pipeline component
- integration: full ticks through the orchestrator and the replay CLI
"""

"""
CLI helpers for replaying recorded event streams.
"""

"""
routine-timer - deterministic routine session timer.

Sessions are started, paused, resumed and stopped at explicit instants.
Durations are always derived from the stored event log.
"""

__version__ = "0.1.0"

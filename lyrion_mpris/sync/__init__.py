"""
Synchronization module.

Poll scheduling and the engine that keeps the MPRIS snapshot in step with
the server.
"""

from .engine import BridgeEngine
from .scheduler import PollCycle, PollScheduler

__all__ = [
    "BridgeEngine",
    "PollCycle",
    "PollScheduler",
]

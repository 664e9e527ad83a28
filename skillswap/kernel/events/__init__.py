"""
Audit logging.
"""

from skillswap.kernel.events.event_store import EventStore

__all__ = ["EventStore"]

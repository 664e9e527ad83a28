"""
Dispute Engine - Deliverable disputes and admin resolution.
"""

from skillswap.engines.disputes.dispute_service import DisputeService

__all__ = [
    "DisputeService",
]

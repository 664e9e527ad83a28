"""
Negotiation Engine - Role-gated term edits, agreement and deliverables.
"""

from skillswap.engines.negotiation.negotiation_service import NegotiationService

__all__ = [
    "NegotiationService",
]

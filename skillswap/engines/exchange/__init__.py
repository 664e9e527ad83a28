"""
Exchange Engine - Proposal, acceptance, status changes, cancellation and expiry.
"""

from skillswap.engines.exchange.exchange_service import (
    ExchangeConflictError,
    ExchangeService,
)

__all__ = [
    "ExchangeConflictError",
    "ExchangeService",
]

"""
Identity: provider token verification and local user records.
"""

from skillswap.kernel.identity.jwt import (
    IdentityClaims,
    IdentityTokenVerifier,
    extract_access_token,
    verify_identity_token,
)
from skillswap.kernel.identity.identity_service import IdentityService

__all__ = [
    "IdentityClaims",
    "IdentityTokenVerifier",
    "extract_access_token",
    "verify_identity_token",
    "IdentityService",
]

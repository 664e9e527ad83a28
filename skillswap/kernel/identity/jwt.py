"""
Verification of access tokens issued by the external identity provider.

The provider signs tokens with a shared secret; this service never issues
tokens, it only checks signature, expiry and audience and exposes the claims.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from jose import JWTError, jwt
from pydantic import BaseModel, Field

from skillswap.config import get_settings
from skillswap.logging_config import get_logger

logger = get_logger(__name__)


class IdentityClaims(BaseModel):
    """Claims carried by a provider access token."""

    sub: str  # Provider user id
    email: Optional[str] = None
    role: Optional[str] = None
    exp: datetime
    iat: Optional[datetime] = None
    user_metadata: Dict[str, Any] = Field(default_factory=dict)

    @property
    def display_name(self) -> Optional[str]:
        return self.user_metadata.get("full_name") or self.user_metadata.get("name")

    @property
    def avatar_url(self) -> Optional[str]:
        return self.user_metadata.get("avatar_url")


class IdentityTokenVerifier:
    """Decode and validate provider access tokens."""

    def __init__(
        self,
        secret_key: Optional[str] = None,
        algorithm: Optional[str] = None,
        audience: Optional[str] = None,
    ):
        settings = get_settings()
        self.secret_key = secret_key or settings.identity_jwt_secret
        self.algorithm = algorithm or settings.identity_jwt_algorithm
        self.audience = audience or settings.identity_jwt_audience

    def verify(self, token: str) -> Optional[IdentityClaims]:
        """
        Verify a token.

        Returns:
            IdentityClaims if the token is valid, None otherwise
        """
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                audience=self.audience,
                options={"require_exp": True},
            )
        except JWTError as e:
            logger.debug("Rejected identity token: %s", e)
            return None

        if not payload.get("sub"):
            return None

        iat = payload.get("iat")
        return IdentityClaims(
            sub=str(payload["sub"]),
            email=payload.get("email"),
            role=payload.get("role"),
            exp=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            iat=datetime.fromtimestamp(iat, tz=timezone.utc) if iat else None,
            user_metadata=payload.get("user_metadata") or {},
        )


_verifier: Optional[IdentityTokenVerifier] = None


def get_token_verifier() -> IdentityTokenVerifier:
    """Get or create the default verifier."""
    global _verifier
    if _verifier is None:
        _verifier = IdentityTokenVerifier()
    return _verifier


def verify_identity_token(token: str) -> Optional[IdentityClaims]:
    """Verify a provider access token with the default verifier."""
    return get_token_verifier().verify(token)


def extract_access_token(headers: Mapping[str, str], cookies: Mapping[str, str]) -> Optional[str]:
    """
    Pull the provider token from the session cookie or a Bearer header.

    The cookie wins when both are present.
    """
    token = cookies.get(get_settings().session_cookie_name)
    if token:
        return token
    auth = headers.get("authorization")
    if auth and auth.lower().startswith("bearer "):
        return auth[7:].strip() or None
    return None

"""
JWT authentication provider.

Verifies HS256 (or configured algorithm) access tokens issued by the
identity service.

Example:
    auth = JWTAuth(secret="your-secret-key")

    claims = await auth.verify_token(token)
    print(claims["sub"])  # user_id
"""

from typing import Dict, Any

from jose import jwt, JWTError

from common.auth.base import AuthProvider


class JWTAuth(AuthProvider):
    """JWT token verification provider."""

    def __init__(self, secret: str, algorithm: str = "HS256"):
        """
        Initialize JWT auth provider.

        Args:
            secret: Secret key for JWT signing (keep this secure!)
            algorithm: JWT algorithm (default: HS256)
        """
        self.secret = secret
        self.algorithm = algorithm

        # Token revocation store (use Redis in production)
        self._revoked_tokens: set = set()

    async def verify_token(self, token: str) -> Dict[str, Any]:
        """Verify and decode a JWT token."""
        if token in self._revoked_tokens:
            raise ValueError("Token has been revoked")

        try:
            return jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
            )
        except JWTError as e:
            raise ValueError(f"Invalid token: {e}")

    async def revoke_token(self, token: str) -> None:
        """Add token to revocation list."""
        self._revoked_tokens.add(token)

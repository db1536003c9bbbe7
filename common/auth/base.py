"""
Abstract authentication provider interface.

Routes only need a verified user id, so the contract is limited to
token verification. Token issuance lives with the identity service.

Example:
    from common.auth import AuthProvider, JWTAuth

    def get_auth_provider(settings) -> AuthProvider:
        return JWTAuth(secret=settings.JWT_SECRET)
"""

from abc import ABC, abstractmethod
from typing import Dict, Any


class AuthProvider(ABC):
    """
    Abstract authentication provider.

    Implement this interface for different token strategies.
    """

    @abstractmethod
    async def verify_token(self, token: str) -> Dict[str, Any]:
        """
        Verify an access token and return its claims.

        Args:
            token: The raw bearer token

        Returns:
            Decoded claims; the user id is under "sub" (or "uid")

        Raises:
            ValueError: If the token is invalid, expired or revoked
        """
        pass

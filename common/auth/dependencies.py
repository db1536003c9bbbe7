"""
FastAPI authentication dependencies.

Provides a factory that creates an auth dependency which can be
injected into route handlers. Works with any AuthProvider implementation.

Example:
    from common.auth import JWTAuth, create_auth_dependency

    auth = JWTAuth(secret="your-secret")
    get_current_user_id = create_auth_dependency(lambda: auth)

    @router.get("/users/me/groups")
    async def my_groups(user_id: str = Depends(get_current_user_id)):
        ...
"""

from typing import Callable, Optional
from fastapi import Header

from common.auth.base import AuthProvider
from common.utils.exceptions import UnauthorizedException


def create_auth_dependency(
    get_auth_provider: Callable[[], AuthProvider],
    header_name: str = "Authorization",
    scheme: str = "Bearer",
):
    """
    Factory to create FastAPI auth dependencies.

    Args:
        get_auth_provider: Callable that returns the AuthProvider instance
        header_name: Header to extract token from (default: Authorization)
        scheme: Auth scheme prefix (default: Bearer)

    Returns:
        A FastAPI dependency function that extracts and verifies the user ID
    """

    async def get_current_user_id(
        authorization: Optional[str] = Header(None, alias=header_name),
    ) -> str:
        """
        Extract and verify user ID from the authorization header.

        Raises:
            UnauthorizedException: If token is missing, invalid, or expired
        """
        if not authorization:
            raise UnauthorizedException(
                message="Missing authorization header",
                code="UNAUTHORIZED",
            )

        prefix = f"{scheme} "
        if not authorization.startswith(prefix):
            raise UnauthorizedException(
                message=f"Invalid authorization scheme. Expected: {scheme}",
                code="INVALID_AUTH_SCHEME",
            )

        token = authorization[len(prefix):]
        if not token:
            raise UnauthorizedException(message="Token is empty", code="EMPTY_TOKEN")

        auth = get_auth_provider()
        try:
            payload = await auth.verify_token(token)
        except ValueError as e:
            raise UnauthorizedException(message=str(e), code="INVALID_TOKEN")

        user_id = payload.get("sub") or payload.get("uid")
        if not user_id:
            raise UnauthorizedException(message="Token missing user ID", code="INVALID_TOKEN")

        return user_id

    return get_current_user_id

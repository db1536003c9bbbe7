"""
Standard API response helpers.

Provides consistent response formatting for success and error cases.

Example:
    from common.utils import success_response

    @router.put("/groups/{group_id}/join")
    async def join_group(group_id: str, user_id: str = Depends(require_auth)):
        await membership_service.join_group(group_id, user_id)
        return success_response(message="Joined group")
"""

from typing import Any, Optional, Dict


def success_response(
    data: Any = None,
    message: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Create a standard success response.

    Args:
        data: The response data (can be dict, list, or any serializable type)
        message: Optional success message

    Returns:
        Dictionary with success=True and optional data/message
    """
    response: Dict[str, Any] = {"success": True}

    if data is not None:
        response["data"] = data

    if message:
        response["message"] = message

    return response


def list_response(
    items: list,
    message: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Create a simple list response.

    Args:
        items: List of items
        message: Optional success message

    Returns:
        Dictionary with success=True and items list
    """
    response: Dict[str, Any] = {
        "success": True,
        "data": items,
        "count": len(items),
    }

    if message:
        response["message"] = message

    return response

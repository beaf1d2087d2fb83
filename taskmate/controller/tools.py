import asyncio
from typing import Optional
from fastapi import APIRouter, Depends
from taskmate.config import DEFAULT_EXTERNAL_USER_ID
from taskmate.controller.auth import get_optional_user
from taskmate.model.user import User
from taskmate.service.composio_service import ComposioService, ComposioError, get_composio_service
from taskmate.utils.helpers import external_user_id
from taskmate.utils.response import success, fail
from taskmate.utils.logger import get_logger

logger = get_logger("tools")

router = APIRouter()

CANVAS_SEARCH_ERROR = "Canvas toolkit schema is currently inconsistent. Try again after upgrading Composio."


def resolve_user(current_user: Optional[User], user_id: Optional[str]) -> str:
    """The signed-in user's external id, else ?userId, else the shared default."""
    if current_user is not None:
        return external_user_id(current_user.user_id)
    return user_id or DEFAULT_EXTERNAL_USER_ID


@router.get("/count")
async def count_tools(
    userId: Optional[str] = None,
    current_user: Optional[User] = Depends(get_optional_user),
    composio: ComposioService = Depends(get_composio_service),
):
    external_id = resolve_user(current_user, userId)
    loop = asyncio.get_event_loop()
    try:
        gmail_tools = await loop.run_in_executor(None, composio.list_tools, external_id, ["GMAIL"])
    except ComposioError as e:
        logger.error(f"Error loading Gmail tools: {e}")
        return fail(str(e))

    try:
        canvas_tools = await loop.run_in_executor(None, composio.list_tools, external_id, ["CANVAS"])
    except ComposioError as e:
        logger.error(f"Error loading Canvas tools (ignored): {e}")
        canvas_tools = []

    return success({
        "toolCounts": {
            "gmail": len(gmail_tools),
            "canvas": len(canvas_tools),
            "total": len(gmail_tools) + len(canvas_tools),
        },
        "tools": {
            "gmail": [tool["name"] for tool in gmail_tools],
            "canvas": [tool["name"] for tool in canvas_tools],
        },
    })


@router.get("/search")
async def search_tools(
    query: Optional[str] = None,
    toolkit: str = "GMAIL",
    limit: int = 10,
    userId: Optional[str] = None,
    current_user: Optional[User] = Depends(get_optional_user),
    composio: ComposioService = Depends(get_composio_service),
):
    if not query:
        return fail("Query parameter is required", data={
            "example": "/api/tools/search?query=send%20email&toolkit=GMAIL&limit=5",
        })

    external_id = resolve_user(current_user, userId)
    try:
        loop = asyncio.get_event_loop()
        tools = await loop.run_in_executor(None, composio.list_tools, external_id, [toolkit], query, limit)
    except ComposioError as e:
        logger.error(f"Tool search '{query}' in {toolkit} failed: {e}")
        return fail(str(e))

    return success({"query": query, "toolkit": toolkit, "tools": tools}, count=len(tools))


@router.get("/canvas/search")
async def search_canvas_tools(
    query: Optional[str] = None,
    limit: int = 10,
    userId: Optional[str] = None,
    current_user: Optional[User] = Depends(get_optional_user),
    composio: ComposioService = Depends(get_composio_service),
):
    if not query:
        return fail("Query parameter is required", data={
            "example": "/api/tools/canvas/search?query=assignment&limit=5",
        })

    external_id = resolve_user(current_user, userId)
    try:
        loop = asyncio.get_event_loop()
        tools = await loop.run_in_executor(None, composio.list_tools, external_id, ["CANVAS"], query, limit)
    except ComposioError as e:
        logger.error(f"Error searching Canvas tools: {e}")
        return fail(CANVAS_SEARCH_ERROR)

    return success({"query": query, "tools": tools}, count=len(tools))

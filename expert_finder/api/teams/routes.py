"""
Microsoft Teams Bot Framework webhook endpoint for Expert Finder.
"""
import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response
from botbuilder.schema import Activity

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["teams"])


@router.post("/messages")
async def teams_messages(request: Request):
    """
    Microsoft Teams Bot Framework webhook endpoint.
    Handles all incoming Teams activities (messages, invokes, conversation updates).

    No API key required - uses Azure AD authentication from Bot Framework.
    """
    if "application/json" not in request.headers.get("Content-Type", ""):
        return Response(status_code=415)

    body = await request.json()
    activity = Activity().deserialize(body)
    logger.info(f"Received Teams activity: {activity.type}")

    auth_header = request.headers.get("Authorization", "")
    adapter = request.app.state.adapter
    bot = request.app.state.bot

    try:
        # Process with Bot Framework (handles auth automatically)
        invoke_response = await adapter.process_activity(activity, auth_header, bot.on_turn)
    except PermissionError as e:
        logger.warning(f"Rejected Teams activity: {e}")
        return Response(status_code=401)

    if invoke_response:
        return JSONResponse(content=invoke_response.body, status_code=invoke_response.status)
    return Response(status_code=201)

"""
People search endpoint used by the search task module.
"""
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse

from expert_finder.api.auth import verify_bearer_token
from expert_finder.models import UserSearch
from expert_finder.services.sharepoint_client import SharePointUnauthorizedError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["users"])


@router.post("/users")
async def search_users(
    request: Request,
    search_query: Optional[UserSearch] = Body(None),
    claims: Dict[str, Any] = Depends(verify_bearer_token),
):
    """
    Search SharePoint user profiles on behalf of the signed-in user.

    Returns the matching profile records; 403 without a body, 401 when the
    token has no user identity or SharePoint rejects the user's token, and
    400 with the error message for any other failure.
    """
    if search_query is None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Search query is required")

    from_id = claims.get("fromId")
    if not from_id:
        logger.info("Failed to get fromId from token.")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token has no user identity")

    settings = request.app.state.settings
    try:
        user_token = await request.app.state.token_service.resolve_access_token(from_id, settings.sharepoint_site_url)
        if not user_token:
            raise SharePointUnauthorizedError("Unauthorized", "No SharePoint token for user", status.HTTP_401_UNAUTHORIZED)

        logger.info("Initiated call to user search service")
        records = await request.app.state.sharepoint_client.search(
            search_query.search_text,
            search_query.search_filters,
            user_token,
            settings.sharepoint_site_url,
        )
        logger.info("Call to search service succeeded")
        return JSONResponse(content=[record.model_dump(by_alias=True) for record in records])

    except SharePointUnauthorizedError as e:
        logger.error(f"Failed to get user token to make post call to api: {e}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    except Exception as e:
        logger.error(f"Error while making post call to search service: {e}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

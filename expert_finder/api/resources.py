"""
Localized strings for the web tab.
"""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Header

from expert_finder.api.auth import verify_bearer_token
from expert_finder.resources import get_strings

router = APIRouter(prefix="/api/resource", tags=["resources"])


def _locale(accept_language: Optional[str]) -> Optional[str]:
    if not accept_language:
        return None
    return accept_language.split(",")[0].split(";")[0].strip() or None


@router.get("")
async def get_resource_strings(
    accept_language: Optional[str] = Header(None),
    claims: Dict[str, Any] = Depends(verify_bearer_token),
):
    """UI strings for the search page."""
    return get_strings(_locale(accept_language)).web_bundle()


@router.get("/error")
async def get_error_resource_strings(
    accept_language: Optional[str] = Header(None),
    claims: Dict[str, Any] = Depends(verify_bearer_token),
):
    return get_strings(_locale(accept_language)).error_bundle()

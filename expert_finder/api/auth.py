"""
Authentication utilities for the web tab API
"""
import logging
from typing import Any, Dict, Optional

import jwt
from fastapi import Header, HTTPException, Request, status

logger = logging.getLogger(__name__)

BEARER_SCHEME = "bearer"


async def verify_bearer_token(request: Request, authorization: Optional[str] = Header(None)) -> Dict[str, Any]:
    """Validate the bot-issued JWT from the Authorization header and return its claims"""
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != BEARER_SCHEME or not token.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing bearer token"
        )

    token_service = request.app.state.token_service
    try:
        return token_service.validate_short_lived_credential(token.strip())
    except jwt.PyJWTError as e:
        logger.info(f"Rejected web API token: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token"
        )

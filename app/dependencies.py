"""
FastAPI dependency injection functions.

This module provides reusable dependencies for:
- Resolving the authenticated user from a Supabase access token
- A per-request logger stamped with a short request id
"""

import logging

from fastapi import Depends, Header, HTTPException
from supabase import Client

from app.services.supabase_service import get_supabase_client, get_user_id_for_token
from app.utils.logging_utils import get_request_logger


def get_current_user_id(
    authorization: str = Header(None),
    supabase: Client = Depends(get_supabase_client)
) -> str:
    """
    Dependency returning the id of the user behind the Authorization header.

    Expected format: "Bearer <access token>" as issued by Supabase Auth
    (anonymous sessions included).

    Raises:
        HTTPException 401 if the header is missing, malformed or the token is rejected
        HTTPException 503 if Supabase is not configured
    """
    if not authorization:
        raise HTTPException(status_code=401, detail="Authorization header required")

    # Parse "Bearer <token>" format
    parts = authorization.split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1].strip():
        raise HTTPException(status_code=401, detail="Invalid Authorization header format. Expected: Bearer <token>")

    user_id = get_user_id_for_token(supabase, parts[1].strip())
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid or expired session")

    return user_id


def get_logger() -> logging.LoggerAdapter:
    """Dependency returning a logger tagged with a fresh request id."""
    return get_request_logger()

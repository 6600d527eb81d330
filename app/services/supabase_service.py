"""
Supabase service module for database and auth access.

This module provides utilities for:
- Supabase client initialization and access (as a FastAPI dependency)
- Resolving the user behind a Supabase access token
"""

from functools import lru_cache
from typing import Optional

from fastapi import Depends, HTTPException
from supabase import AuthError, Client, create_client

from app.config import Settings, get_settings


@lru_cache
def _create_supabase_client(url: str, key: str) -> Client:
    """One client per (url, key) pair; the client keeps its own connection pool."""
    return create_client(url, key)


def get_supabase_client(settings: Settings = Depends(get_settings)) -> Client:
    """
    Get Supabase client or raise error if not configured.

    This function is used as a dependency by endpoints that require Supabase to
    ensure proper error handling when Supabase is not configured.

    Returns:
        Initialized Supabase client instance

    Raises:
        HTTPException: 503 Service Unavailable if Supabase is not configured
    """
    if not settings.supabase_configured:
        raise HTTPException(
            status_code=503,
            detail="Supabase not configured. Set SUPABASE_URL and SUPABASE_SERVICE_KEY environment variables."
        )
    return _create_supabase_client(settings.supabase_url, settings.supabase_service_key)


def get_user_id_for_token(supabase: Client, access_token: str) -> Optional[str]:
    """
    Return the id of the user owning access_token, or None if Supabase rejects it.

    Anonymous sign-ins are regular users with their own id.
    """
    try:
        response = supabase.auth.get_user(access_token)
    except AuthError:
        return None
    if response is None or response.user is None:
        return None
    return response.user.id

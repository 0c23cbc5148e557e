import logging
from typing import Optional

from fastapi import Request
from supabase import Client, create_client

from cms_rbac.config.settings import Settings

logger = logging.getLogger(__name__)


def create_supabase(settings: Settings, service_role: bool = False) -> Client:
    """Build a client from settings. service_role uses the service key (bypasses RLS) when configured."""
    key = settings.supabase_key
    if service_role and settings.supabase_service_role_key:
        key = settings.supabase_service_role_key
    return create_client(settings.supabase_url, key)


def create_optional_supabase(settings: Settings) -> Optional[Client]:
    if not settings.supabase_url or not settings.supabase_key:
        logger.warning("Supabase is not configured; store-backed endpoints will be unavailable")
        return None
    return create_supabase(settings)


def get_supabase(request: Request) -> Client:
    """FastAPI dependency: the client owned by the running application."""
    client = getattr(request.app.state, "supabase", None)
    if client is None:
        raise RuntimeError("Supabase client is not initialised")
    return client

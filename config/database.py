"""
Database connection management.

Provides the Supabase client singleton backing the catalog store and the
price template repository.
"""

from supabase import create_client, Client
from functools import lru_cache
from typing import Optional
import structlog

from config.settings import settings

logger = structlog.get_logger(__name__)


class DatabaseError(Exception):
    """Base exception for database errors."""
    pass


class ConnectionError(DatabaseError):
    """Failed to connect to database."""
    pass


@lru_cache()
def get_supabase_client() -> Client:
    """
    Get cached Supabase client instance.

    Call get_supabase_client.cache_clear() to reconnect.

    Returns:
        Client: Supabase client

    Raises:
        ConnectionError: If connection fails
    """
    try:
        logger.info(
            "connecting_to_supabase",
            url=settings.supabase_url[:30] + "..."  # Log partial URL only
        )

        client = create_client(
            settings.supabase_url,
            settings.supabase_key
        )

        logger.info("supabase_connected", status="success")

        return client

    except Exception as e:
        logger.error(
            "supabase_connection_failed",
            error=str(e),
            error_type=type(e).__name__
        )
        raise ConnectionError(f"Failed to connect to Supabase: {e}") from e


def get_admin_client() -> Optional[Client]:
    """
    Get Supabase client with service role key (admin access).

    Used by the recalculation CLI, which writes outside a user session.

    Returns:
        Client: Admin Supabase client, or None if not configured
    """
    if not settings.supabase_service_key:
        logger.warning("admin_client_not_configured")
        return None

    try:
        return create_client(
            settings.supabase_url,
            settings.supabase_service_key
        )
    except Exception as e:
        logger.error("admin_client_failed", error=str(e))
        return None


# Convenience alias
db = get_supabase_client


def check_connection() -> dict:
    """
    Check database connection health.

    Returns:
        dict: Connection status with template and product counts
    """
    try:
        client = get_supabase_client()

        products = client.table("products").select("id", count="exact").execute()
        templates = client.table("price_templates").select("id", count="exact").execute()

        return {
            "status": "healthy",
            "products_count": products.count,
            "templates_count": templates.count
        }

    except Exception as e:
        return {
            "status": "unhealthy",
            "error": str(e)
        }


def reset_connection():
    """Reset the cached database connection."""
    get_supabase_client.cache_clear()
    logger.info("database_connection_reset")

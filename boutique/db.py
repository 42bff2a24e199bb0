"""
Database Module - Supabase and Redis Clients

Provides singleton instances of:
- Async Supabase client for the coupon catalog (promotions table)
- Sync Upstash Redis client for cart and wishlist snapshots
"""

from typing import Optional

from supabase import AsyncClient, acreate_client
from upstash_redis import Redis

from boutique.config import Settings, get_settings


# Singleton instances
_async_supabase_client: Optional[AsyncClient] = None
_sync_redis_client: Optional[Redis] = None


async def get_supabase(settings: Optional[Settings] = None) -> AsyncClient:
    """
    Get async Supabase client (singleton).
    Used by the coupon catalog lookup only.
    """
    global _async_supabase_client

    if _async_supabase_client is None:
        settings = settings or get_settings()
        if not settings.supabase_url or not settings.supabase_service_role_key:
            raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set")
        _async_supabase_client = await acreate_client(
            settings.supabase_url, settings.supabase_service_role_key
        )

    return _async_supabase_client


def get_redis_sync(settings: Optional[Settings] = None) -> Redis:
    """
    Get sync Upstash Redis client (singleton).

    Engine operations run to completion on the caller's thread, so the
    snapshot store uses the blocking client.
    """
    global _sync_redis_client

    if _sync_redis_client is None:
        settings = settings or get_settings()
        if not settings.upstash_redis_rest_url or not settings.upstash_redis_rest_token:
            raise ValueError("UPSTASH_REDIS_REST_URL and UPSTASH_REDIS_REST_TOKEN must be set")
        _sync_redis_client = Redis(
            url=settings.upstash_redis_rest_url,
            token=settings.upstash_redis_rest_token,
        )

    return _sync_redis_client


class StorageKeys:
    """Snapshot keys. One independent key per collection and device."""

    CART = "boutique-cart"
    WISHLIST = "boutique-wishlist"

    # Older storefront builds kept the coupon next to the cart, not inside it
    LEGACY_CART_COUPON = "boutique-cart-coupon"

    @staticmethod
    def namespaced(key: str, namespace: str = "") -> str:
        return f"{namespace}:{key}" if namespace else key

"""
FastAPI dependencies for the subscription registry and broadcast engine.
"""

from typing import Annotated

from fastapi import Depends, HTTPException, status

from hirepush.db import async_session_maker
from hirepush.services.broadcast import BroadcastEngine
from hirepush.services.push import push_transport
from hirepush.services.subscriptions import SubscriptionRegistry
from hirepush.settings import settings


def get_registry() -> SubscriptionRegistry:
    """Registry bound to the application's session factory."""
    return SubscriptionRegistry(async_session_maker)


# Type alias for registry dependency
Registry = Annotated[SubscriptionRegistry, Depends(get_registry)]


def get_broadcast_engine(registry: Registry) -> BroadcastEngine:
    """Broadcast engine using the Web Push transport (501 without VAPID keys)."""
    if not settings.push_enabled:
        raise HTTPException(
            status_code=status.HTTP_501_NOT_IMPLEMENTED,
            detail="Push notifications not configured",
        )
    return BroadcastEngine.from_settings(registry, push_transport, settings)


Broadcaster = Annotated[BroadcastEngine, Depends(get_broadcast_engine)]

"""
Push notifications router for web push subscriptions and broadcasts.
"""

import logging

from fastapi import APIRouter, HTTPException, Request, status
from fastapi.responses import JSONResponse

from hirepush.deps import Broadcaster, Registry
from hirepush.schemas import (
    BroadcastFilter,
    NotifyRequest,
    SubscribeRequest,
    UnsubscribeRequest,
)
from hirepush.services.subscriptions import Subscription
from hirepush.settings import settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/push", tags=["push"])


@router.get("/vapid-public-key")
async def get_vapid_public_key():
    """Get the VAPID public key the browser needs to subscribe."""
    if not settings.vapid_public_key:
        raise HTTPException(
            status_code=status.HTTP_501_NOT_IMPLEMENTED,
            detail="Push notifications not configured"
        )
    return JSONResponse({"publicKey": settings.vapid_public_key})


@router.post("/subscribe")
async def subscribe(
    request: Request,
    body: SubscribeRequest,
    registry: Registry,
):
    """Save (or refresh) the browser's push subscription."""
    created = await registry.upsert(
        Subscription(
            endpoint=body.endpoint,
            p256dh=body.keys.p256dh,
            auth=body.keys.auth,
            owner_tag=body.owner_tag,
            user_agent=request.headers.get("User-Agent"),
        )
    )
    return JSONResponse(
        {"message": "Subscription saved.", "created": created},
        status_code=status.HTTP_201_CREATED,
    )


@router.post("/unsubscribe")
async def unsubscribe(body: UnsubscribeRequest, registry: Registry):
    """Remove a push subscription. Unknown endpoints are not an error."""
    removed = await registry.remove(body.endpoint)
    return JSONResponse({"message": "Subscription removed.", "removed": removed})


@router.post("/notify-new-hire")
async def notify_new_hire(engine: Broadcaster, body: NotifyRequest | None = None):
    """Broadcast a new-hire announcement to every (or every tagged) subscriber."""
    body = body or NotifyRequest()
    summary = await engine.broadcast(
        body.payload(),
        BroadcastFilter(owner_tag=body.owner_tag),
    )

    if summary.attempted == 0:
        message = "No active subscriptions to notify."
    else:
        message = "Notifications sent."

    return JSONResponse({
        "message": message,
        "attempted": summary.attempted,
        "sent": summary.sent,
        "failed": summary.failed,
        "removed": summary.removed,
        "partial": summary.partial,
        "totalSent": summary.sent,
    })


@router.get("/status")
async def get_push_status(registry: Registry, owner_tag: str | None = None):
    """Get push notification status for debugging."""
    return JSONResponse({
        "vapid_configured": settings.push_enabled,
        "subscription_count": await registry.count(owner_tag),
    })

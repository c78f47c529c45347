"""
Subscription registry backed by the push_subscriptions table.

The registry is the only writer of subscriptions: the subscribe/unsubscribe
routes call it directly and the broadcast engine calls `remove` when a push
service reports an endpoint gone. Every call opens its own session, so there
is no cache to go stale between a write and the next read.
"""

import asyncio
import logging
import re
from dataclasses import dataclass
from urllib.parse import urlparse

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hirepush.errors import StoreUnavailableError, SubscriptionValidationError
from hirepush.models.push_subscription import PushSubscription
from hirepush.schemas import blank_to_none

logger = logging.getLogger(__name__)

_BASE64URL = re.compile(r"^[A-Za-z0-9_-]+={0,2}$")

# Raised by drivers when the database cannot be reached or is not ready
_UNAVAILABLE_ERRORS = (OperationalError, InterfaceError, OSError, asyncio.TimeoutError)


@dataclass(frozen=True)
class Subscription:
    """A push destination and the key material needed to encrypt to it."""

    endpoint: str
    p256dh: str
    auth: str
    owner_tag: str | None = None
    user_agent: str | None = None

    def as_subscription_info(self) -> dict:
        """Shape expected by pywebpush."""
        return {
            "endpoint": self.endpoint,
            "keys": {"p256dh": self.p256dh, "auth": self.auth},
        }

    @classmethod
    def from_row(cls, row: PushSubscription) -> "Subscription":
        return cls(
            endpoint=row.endpoint,
            p256dh=row.p256dh_key,
            auth=row.auth_key,
            owner_tag=row.owner_tag,
            user_agent=row.user_agent,
        )


def validate_subscription(subscription: Subscription) -> None:
    """Raise SubscriptionValidationError if the subscription cannot be delivered to."""
    if not subscription.endpoint or not subscription.endpoint.strip():
        raise SubscriptionValidationError("endpoint is required", field="endpoint")

    parsed = urlparse(subscription.endpoint)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise SubscriptionValidationError(
            "endpoint must be an absolute http(s) URL", field="endpoint"
        )

    for field_name in ("p256dh", "auth"):
        value = getattr(subscription, field_name)
        if not value:
            raise SubscriptionValidationError(f"{field_name} is required", field=field_name)
        if not _BASE64URL.match(value):
            raise SubscriptionValidationError(
                f"{field_name} must be base64url encoded", field=field_name
            )


class SubscriptionRegistry:
    """Durable set of active push subscriptions keyed by endpoint."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self._session_maker = session_maker

    async def upsert(self, subscription: Subscription) -> bool:
        """Insert or update a subscription by endpoint.

        Returns True when a new row was created, False when an existing
        endpoint had its keys and owner refreshed (e.g. key rotation).
        """
        validate_subscription(subscription)

        try:
            async with self._session_maker() as session:
                try:
                    async with session.begin():
                        created = await self._apply(session, subscription)
                except IntegrityError:
                    # Another request inserted the same endpoint first
                    logger.info("Concurrent insert for %s, retrying as update", _short(subscription.endpoint))
                    async with session.begin():
                        created = await self._apply(session, subscription)
        except _UNAVAILABLE_ERRORS as e:
            logger.error("Subscription store unavailable during upsert: %s", e)
            raise StoreUnavailableError("subscription store unavailable") from e

        if created:
            logger.info("New subscription registered: %s", _short(subscription.endpoint))
        else:
            logger.info("Existing subscription updated: %s", _short(subscription.endpoint))
        return created

    async def _apply(self, session: AsyncSession, subscription: Subscription) -> bool:
        result = await session.execute(
            select(PushSubscription).where(PushSubscription.endpoint == subscription.endpoint)
        )
        existing = result.scalar_one_or_none()
        owner_tag = blank_to_none(subscription.owner_tag)

        if existing:
            existing.p256dh_key = subscription.p256dh
            existing.auth_key = subscription.auth
            existing.owner_tag = owner_tag
            existing.user_agent = subscription.user_agent
            return False

        session.add(PushSubscription(
            endpoint=subscription.endpoint,
            p256dh_key=subscription.p256dh,
            auth_key=subscription.auth,
            owner_tag=owner_tag,
            user_agent=subscription.user_agent,
        ))
        return True

    async def remove(self, endpoint: str) -> int:
        """Delete a subscription by endpoint. Returns rows affected (0 if absent)."""
        try:
            async with self._session_maker.begin() as session:
                result = await session.execute(
                    delete(PushSubscription).where(PushSubscription.endpoint == endpoint)
                )
        except _UNAVAILABLE_ERRORS as e:
            logger.error("Subscription store unavailable during remove: %s", e)
            raise StoreUnavailableError("subscription store unavailable") from e

        removed = result.rowcount or 0
        if removed:
            logger.info("Subscription removed: %s", _short(endpoint))
        else:
            logger.info("Unsubscribe for unknown endpoint: %s", _short(endpoint))
        return removed

    async def list(self, owner_tag: str | None = None) -> list[Subscription]:
        """Snapshot of subscriptions, ordered by endpoint.

        With an owner_tag only subscriptions carrying exactly that tag are
        returned; untagged subscriptions are never part of a filtered list.
        A blank tag is the same as no filter.
        """
        owner_tag = blank_to_none(owner_tag)
        stmt = select(PushSubscription).order_by(PushSubscription.endpoint)
        if owner_tag is not None:
            stmt = stmt.where(PushSubscription.owner_tag == owner_tag)

        try:
            async with self._session_maker() as session:
                result = await session.execute(stmt)
                rows = result.scalars().all()
        except _UNAVAILABLE_ERRORS as e:
            logger.error("Subscription store unavailable during list: %s", e)
            raise StoreUnavailableError("subscription store unavailable") from e

        return [Subscription.from_row(row) for row in rows]

    async def count(self, owner_tag: str | None = None) -> int:
        owner_tag = blank_to_none(owner_tag)
        stmt = select(func.count()).select_from(PushSubscription)
        if owner_tag is not None:
            stmt = stmt.where(PushSubscription.owner_tag == owner_tag)

        try:
            async with self._session_maker() as session:
                return (await session.execute(stmt)).scalar_one()
        except _UNAVAILABLE_ERRORS as e:
            logger.error("Subscription store unavailable during count: %s", e)
            raise StoreUnavailableError("subscription store unavailable") from e


def _short(endpoint: str) -> str:
    """Endpoints are long capability URLs; log only the head."""
    return endpoint[:60]

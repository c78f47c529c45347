"""
Broadcast fan-out: deliver one payload to every matching subscription.

A broadcast takes one snapshot of the registry, sends to every subscriber
concurrently, and then prunes the endpoints the push service reported gone.
One subscriber's failure never affects another's attempt, and nothing short
of the initial listing failing stops a summary from being returned.
"""

import asyncio
import enum
import logging
from collections.abc import Collection, Sequence
from dataclasses import dataclass

from hirepush.errors import PermanentDeliveryError
from hirepush.schemas import BroadcastFilter, NotificationPayload
from hirepush.services.push import PushTransport
from hirepush.services.subscriptions import Subscription, SubscriptionRegistry
from hirepush.settings import Settings

logger = logging.getLogger(__name__)


class DeliveryStatus(str, enum.Enum):
    SENT = "sent"
    FAILED = "failed"


@dataclass(frozen=True)
class DeliveryOutcome:
    """Result of one delivery attempt to one subscriber."""

    endpoint: str
    status: DeliveryStatus
    remove: bool = False
    error: str | None = None


@dataclass(frozen=True)
class BroadcastSummary:
    attempted: int = 0
    sent: int = 0
    removed: int = 0
    failed: int = 0
    partial: bool = False  # Timed out before every attempt settled


def summarize(
    outcomes: Sequence[DeliveryOutcome],
    pruned: Collection[str] = (),
    attempted: int | None = None,
    partial: bool = False,
) -> BroadcastSummary:
    """Count outcomes into a summary.

    `removed` only counts endpoints marked for removal whose registry delete
    actually went through (listed in `pruned`); the rest stay stored and are
    tried again on the next broadcast.
    """
    pruned = set(pruned)
    return BroadcastSummary(
        attempted=len(outcomes) if attempted is None else attempted,
        sent=sum(1 for o in outcomes if o.status is DeliveryStatus.SENT),
        removed=sum(1 for o in outcomes if o.remove and o.endpoint in pruned),
        failed=sum(1 for o in outcomes if o.status is DeliveryStatus.FAILED),
        partial=partial,
    )


class BroadcastEngine:
    """Fans a notification out to the registry's subscribers."""

    def __init__(
        self,
        registry: SubscriptionRegistry,
        transport: PushTransport,
        max_concurrent_deliveries: int = 0,
        timeout: float | None = None,
    ):
        self.registry = registry
        self.transport = transport
        self.max_concurrent_deliveries = max_concurrent_deliveries
        self.timeout = timeout

    @classmethod
    def from_settings(
        cls,
        registry: SubscriptionRegistry,
        transport: PushTransport,
        config: Settings,
    ) -> "BroadcastEngine":
        return cls(
            registry,
            transport,
            max_concurrent_deliveries=config.max_concurrent_deliveries,
            timeout=config.broadcast_timeout_seconds,
        )

    async def broadcast(
        self,
        payload: NotificationPayload | None = None,
        filter: BroadcastFilter | None = None,
    ) -> BroadcastSummary:
        payload = payload or NotificationPayload()
        owner_tag = filter.owner_tag if filter else None

        # StoreUnavailableError propagates: no snapshot, no deliveries
        subscriptions = await self.registry.list(owner_tag)

        if not subscriptions:
            logger.info("No active subscriptions to notify (owner_tag=%s)", owner_tag)
            return BroadcastSummary()

        logger.info(
            "Sending notification to %d subscribers (owner_tag=%s): %s",
            len(subscriptions), owner_tag, payload.title,
        )

        outcomes, partial = await self._deliver_all(subscriptions, payload.serialize())
        pruned = await self._prune(outcomes)
        summary = summarize(outcomes, pruned, attempted=len(subscriptions), partial=partial)

        logger.info(
            "Broadcast finished: attempted=%d sent=%d failed=%d removed=%d%s",
            summary.attempted, summary.sent, summary.failed, summary.removed,
            " (partial)" if summary.partial else "",
        )
        return summary

    async def _deliver_all(
        self, subscriptions: list[Subscription], data: str
    ) -> tuple[list[DeliveryOutcome], bool]:
        semaphore = (
            asyncio.Semaphore(self.max_concurrent_deliveries)
            if self.max_concurrent_deliveries > 0
            else None
        )
        tasks = [
            asyncio.create_task(self._deliver(sub, data, semaphore))
            for sub in subscriptions
        ]

        try:
            done, pending = await asyncio.wait(tasks, timeout=self.timeout)
        except asyncio.CancelledError:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            # Endpoints already reported gone are still pruned
            settled = [task.result() for task in tasks if not task.cancelled()]
            if any(outcome.remove for outcome in settled):
                await asyncio.shield(self._prune(settled))
            raise

        if pending:
            logger.warning(
                "Broadcast timed out after %ss, cancelling %d in-flight deliveries",
                self.timeout, len(pending),
            )
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

        outcomes = [task.result() for task in tasks if task in done]
        return outcomes, bool(pending)

    async def _deliver(
        self,
        subscription: Subscription,
        data: str,
        semaphore: asyncio.Semaphore | None,
    ) -> DeliveryOutcome:
        if semaphore is None:
            return await self._attempt(subscription, data)
        async with semaphore:
            return await self._attempt(subscription, data)

    async def _attempt(self, subscription: Subscription, data: str) -> DeliveryOutcome:
        endpoint = subscription.endpoint
        try:
            await self.transport.send(subscription, data)
        except PermanentDeliveryError as e:
            logger.info(
                "Subscription gone (status %s), marking for removal: %s",
                e.status_code, endpoint[:60],
            )
            return DeliveryOutcome(endpoint, DeliveryStatus.FAILED, remove=True, error=str(e))
        except Exception as e:
            # Any other failure keeps the endpoint; no retry within this broadcast
            logger.error("Push notification failed for %s: %s", endpoint[:60], e)
            return DeliveryOutcome(endpoint, DeliveryStatus.FAILED, remove=False, error=str(e))

        logger.debug("Notification sent to %s", endpoint[:60])
        return DeliveryOutcome(endpoint, DeliveryStatus.SENT)

    async def _prune(self, outcomes: Sequence[DeliveryOutcome]) -> set[str]:
        """Remove dead endpoints; returns the ones the registry confirmed."""
        pruned = set()
        for outcome in outcomes:
            if not outcome.remove:
                continue
            try:
                await self.registry.remove(outcome.endpoint)
            except Exception as e:
                logger.error(
                    "Failed to remove dead subscription %s, keeping it for the next broadcast: %s",
                    outcome.endpoint[:60], e,
                )
                continue
            pruned.add(outcome.endpoint)
        return pruned

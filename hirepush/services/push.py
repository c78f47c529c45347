"""
Push delivery transport using web-push.
"""

import asyncio
import logging
from typing import Protocol

from pywebpush import WebPushException, webpush
from requests import RequestException

from hirepush.errors import PermanentDeliveryError, TransientDeliveryError
from hirepush.services.subscriptions import Subscription
from hirepush.settings import Settings, settings as default_settings

logger = logging.getLogger(__name__)

# Push service answers meaning the subscription will never accept messages again
GONE_STATUS_CODES = (404, 410)


class PushTransport(Protocol):
    """Sends one encrypted message to one subscription.

    Returns on acceptance. Raises PermanentDeliveryError when the endpoint is
    gone and TransientDeliveryError (or any other exception) otherwise.
    """

    async def send(self, subscription: Subscription, data: str) -> None:
        ...


class WebPushTransport:
    """VAPID-signed Web Push delivery through pywebpush."""

    def __init__(self, config: Settings | None = None):
        config = config or default_settings
        self.vapid_private_key = config.vapid_private_key
        self.vapid_public_key = config.vapid_public_key
        self.vapid_claims = config.vapid_claims
        self.ttl = config.push_ttl_seconds
        self.timeout = config.push_request_timeout_seconds

        if self.vapid_private_key and self.vapid_public_key:
            logger.info("Push notifications enabled - VAPID keys configured")
        else:
            logger.warning("Push notifications disabled - VAPID keys not configured")

    @property
    def enabled(self) -> bool:
        return bool(self.vapid_private_key and self.vapid_public_key)

    async def send(self, subscription: Subscription, data: str) -> None:
        # pywebpush is blocking (requests), so each send gets a worker thread
        await asyncio.to_thread(self._send_blocking, subscription, data)

    def _send_blocking(self, subscription: Subscription, data: str) -> None:
        endpoint = subscription.endpoint
        try:
            webpush(
                subscription_info=subscription.as_subscription_info(),
                data=data,
                vapid_private_key=self.vapid_private_key,
                # webpush fills in aud/exp on the dict it is given
                vapid_claims=dict(self.vapid_claims),
                ttl=self.ttl,
                timeout=self.timeout,
            )
        except WebPushException as e:
            status_code = getattr(e.response, "status_code", None)
            if status_code in GONE_STATUS_CODES:
                raise PermanentDeliveryError(endpoint, str(e), status_code=status_code) from e
            raise TransientDeliveryError(endpoint, str(e), status_code=status_code) from e
        except RequestException as e:
            raise TransientDeliveryError(endpoint, f"push service unreachable: {e}") from e
        except (ValueError, TypeError) as e:
            # Malformed p256dh/auth keys fail inside the encryption step
            logger.error(
                "Subscription keys may be malformed - p256dh: %s..., auth: %s...",
                subscription.p256dh[:20], subscription.auth[:10],
            )
            raise TransientDeliveryError(endpoint, f"encryption failed: {e}") from e


# Singleton instance
push_transport = WebPushTransport()

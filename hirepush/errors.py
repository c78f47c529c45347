"""
Error taxonomy shared by the registry, the broadcast engine and the routers.
"""


class HirePushError(Exception):
    """Base class for all service errors."""


class SubscriptionValidationError(HirePushError):
    """A subscription or payload failed validation. Never retried."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class StoreUnavailableError(HirePushError):
    """The subscription store could not be reached."""


class DeliveryError(HirePushError):
    """A single push delivery failed."""

    permanent = False

    def __init__(self, endpoint: str, message: str, status_code: int | None = None):
        super().__init__(message)
        self.endpoint = endpoint
        self.status_code = status_code


class TransientDeliveryError(DeliveryError):
    """Delivery failed but the endpoint may still be valid."""


class PermanentDeliveryError(DeliveryError):
    """The push service reported the endpoint gone (404/410)."""

    permanent = True

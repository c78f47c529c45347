# Models package
from hirepush.db import Base
from hirepush.models.push_subscription import PushSubscription

__all__ = [
    "Base",
    "PushSubscription",
]

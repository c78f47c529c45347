"""
Push subscription model for web push notifications.
"""

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from hirepush.db import Base
from hirepush.models.base import TimestampMixin


class PushSubscription(Base, TimestampMixin):
    """Web push subscription, one row per push service endpoint."""

    __tablename__ = "push_subscriptions"

    id: Mapped[int] = mapped_column(primary_key=True)

    # Push subscription data
    endpoint: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    p256dh_key: Mapped[str] = mapped_column(String(255), nullable=False)  # Public key
    auth_key: Mapped[str] = mapped_column(String(255), nullable=False)  # Auth secret

    # Application-level identity used to scope broadcasts
    owner_tag: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)

    # User agent for device identification
    user_agent: Mapped[str | None] = mapped_column(String(500), nullable=True)

    def __repr__(self) -> str:
        return f"<PushSubscription owner={self.owner_tag}>"

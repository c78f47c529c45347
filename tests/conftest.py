import asyncio
import os

# Point the app at a throwaway database before any hirepush module is imported
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine

from hirepush.db import build_session_maker, init_db
from hirepush.services.subscriptions import Subscription, SubscriptionRegistry


# Shaped like real PushSubscription.toJSON() keys
P256DH = "BNcRdreALRFXTkOOUHK1EtK2wtaz5Ry4YfYCA_0QTpQtUbVlUls0VJXg7A8u-Ts1XbjhazAkj7I99e8QcYP7DkM"
AUTH = "tBHItJI5svbpez7KI4CCXg"


def make_subscription(name: str, owner_tag: str | None = None, p256dh: str = P256DH) -> Subscription:
    return Subscription(
        endpoint=f"https://fcm.googleapis.com/fcm/send/{name}",
        p256dh=p256dh,
        auth=AUTH,
        owner_tag=owner_tag,
    )


class FakeTransport:
    """Records sends; raises the configured error or sleeps per endpoint."""

    def __init__(self, errors=None, delays=None, default_delay=0.0):
        self.errors = errors or {}
        self.delays = delays or {}
        self.default_delay = default_delay
        self.calls = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def send(self, subscription, data):
        self.calls.append((subscription.endpoint, data))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(subscription.endpoint, self.default_delay))
            error = self.errors.get(subscription.endpoint)
            if error is not None:
                raise error
        finally:
            self.in_flight -= 1

    @property
    def endpoints(self):
        return [endpoint for endpoint, _ in self.calls]


@pytest_asyncio.fixture()
async def session_maker(tmp_path):
    """Session factory over a fresh SQLite file with the schema created."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'push.db'}")
    await init_db(engine)
    yield build_session_maker(engine)
    await engine.dispose()


@pytest_asyncio.fixture()
async def registry(session_maker):
    return SubscriptionRegistry(session_maker)


@pytest_asyncio.fixture()
async def broken_registry(tmp_path):
    """Registry whose database has no schema, so every query fails."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'empty.db'}")
    yield SubscriptionRegistry(build_session_maker(engine))
    await engine.dispose()


@pytest.fixture()
def transport():
    return FakeTransport()

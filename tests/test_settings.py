"""Tests for settings parsing."""

from hirepush.settings import DEFAULT_DATABASE_URL, Settings


def test_postgres_url_uses_asyncpg_and_drops_sslmode():
    config = Settings(DATABASE_URL="postgres://user:pw@db.example.com:5432/push?sslmode=require")

    assert config.database_url == "postgresql+asyncpg://user:pw@db.example.com:5432/push"


def test_unresolved_placeholder_falls_back():
    assert Settings(DATABASE_URL="${DATABASE_URL}").database_url == DEFAULT_DATABASE_URL


def test_sqlite_url_untouched():
    config = Settings(DATABASE_URL="sqlite+aiosqlite:///./push.db")

    assert config.database_url == "sqlite+aiosqlite:///./push.db"


def test_push_enabled_and_claims():
    config = Settings(vapid_public_key="pub", vapid_private_key="priv", vapid_contact_email="ops@example.com")

    assert config.push_enabled is True
    assert config.vapid_claims == {"sub": "mailto:ops@example.com"}
    assert Settings(vapid_public_key=None, vapid_private_key=None).push_enabled is False

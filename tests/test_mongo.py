"""Tests for the startup handshake."""
import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from pymongo.errors import ServerSelectionTimeoutError

from app.core.config import settings
from app.db import mongo


def _fake_client(ping):
    client = MagicMock()
    client.admin.command = ping
    db = MagicMock()
    db.__getitem__.return_value.create_index = AsyncMock()
    client.__getitem__.return_value = db
    return client


@pytest.mark.asyncio
class TestConnectToMongo:

    async def test_successful_handshake(self, monkeypatch):
        monkeypatch.setattr(settings, "DIRECTORY_ENABLED", True)
        client = _fake_client(AsyncMock(return_value={"ok": 1}))

        with patch("app.db.mongo.AsyncIOMotorClient", return_value=client):
            assert await mongo.connect_to_mongo() is True

        assert mongo.mongodb.available is True
        client.admin.command.assert_awaited_once_with("ping")
        await mongo.disconnect_from_mongo()
        assert mongo.mongodb.available is False

    async def test_failed_handshake_means_local_only(self, monkeypatch):
        monkeypatch.setattr(settings, "DIRECTORY_ENABLED", True)
        client = _fake_client(AsyncMock(side_effect=ServerSelectionTimeoutError("no route")))

        with patch("app.db.mongo.AsyncIOMotorClient", return_value=client):
            assert await mongo.connect_to_mongo() is False

        assert mongo.mongodb.available is False

    async def test_disabled_directory_skips_connection(self, monkeypatch):
        monkeypatch.setattr(settings, "DIRECTORY_ENABLED", False)

        with patch("app.db.mongo.AsyncIOMotorClient") as client_cls:
            assert await mongo.connect_to_mongo() is False

        client_cls.assert_not_called()

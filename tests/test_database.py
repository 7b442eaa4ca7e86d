from unittest.mock import MagicMock

import pytest

from sitemapper.infrastructure import MongoClientFactory, MongoSettings
from sitemapper.infrastructure import database as database_module


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("MONGO_URI", "mongodb://db:27017")
    monkeypatch.setenv("MONGO_DATABASE", "sitemaps")
    monkeypatch.setenv("MONGO_TIMEOUT_MS", "1500")

    assert MongoSettings.from_env() == MongoSettings("mongodb://db:27017", "sitemaps", 1500)


def test_settings_defaults_and_invalid_timeout(monkeypatch):
    for name in ("MONGO_URI", "MONGO_DATABASE", "MONGO_TIMEOUT_MS"):
        monkeypatch.delenv(name, raising=False)

    assert MongoSettings.from_env() == MongoSettings()

    monkeypatch.setenv("MONGO_TIMEOUT_MS", "soon")
    with pytest.raises(RuntimeError):
        MongoSettings.from_env()


def test_factory_prepares_indexes_once_and_reconnects_after_close(monkeypatch):
    client_class = MagicMock()
    ensured: list[object] = []
    monkeypatch.setattr(database_module, "MongoClient", client_class)
    monkeypatch.setattr(database_module, "ensure_sitemap_indexes", ensured.append)
    factory = MongoClientFactory(MongoSettings("mongodb://db", "sitemaps", 250))

    first = factory.prepare_database()
    second = factory.prepare_database()

    client_class.assert_called_once_with(
        "mongodb://db", tz_aware=True, serverSelectionTimeoutMS=250, appname="sitemapper"
    )
    client_class.return_value.__getitem__.assert_called_with("sitemaps")
    assert first is second
    assert ensured == [first]

    factory.close()
    client_class.return_value.close.assert_called_once_with()
    factory.prepare_database()
    assert len(ensured) == 2

"""Tests for backend selection and the cached process-wide store."""

import logging

import pytest

from tourdesk.config import LocalStoreSettings, RemoteStoreSettings, Settings
from tourdesk.errors import BackendUnavailableError
from tourdesk.stores import LocalStore, RemoteStore, create_store, get_store, reset_store
from tourdesk.stores import selector


@pytest.fixture
def make_settings(tmp_path):
    def factory(remote_url=None):
        return Settings(
            remote=RemoteStoreSettings(url=remote_url),
            local=LocalStoreSettings(path=str(tmp_path / "local.db")),
        )
    return factory


@pytest.fixture(autouse=True)
def fresh_store_cache():
    reset_store()
    yield
    reset_store()


class TestCreateStore:

    def test_local_without_remote_config(self, make_settings):
        assert isinstance(create_store(make_settings()), LocalStore)

    def test_blank_url_counts_as_missing(self, make_settings):
        assert isinstance(create_store(make_settings("   ")), LocalStore)

    def test_remote_when_configured(self, make_settings, tmp_path):
        store = create_store(make_settings(f"sqlite+aiosqlite:///{tmp_path / 'remote.db'}"))
        assert isinstance(store, RemoteStore)
        assert store.backend == "remote"

    def test_falls_back_when_remote_fails(self, make_settings, monkeypatch, caplog):
        """Test that a construction failure is logged, not raised."""
        def broken(config):
            raise BackendUnavailableError("connection refused")

        monkeypatch.setattr(RemoteStore, "from_settings", broken)
        with caplog.at_level(logging.WARNING, logger="tourdesk.stores.selector"):
            store = create_store(make_settings("postgresql+asyncpg://user:pw@db/tours"))

        assert isinstance(store, LocalStore)
        assert "falling back to local store" in caplog.text

    def test_unknown_driver_falls_back(self, make_settings):
        store = create_store(make_settings("postgresql+nosuchdriver://user:pw@db/tours"))
        assert isinstance(store, LocalStore)

    def test_remote_from_settings_requires_url(self):
        with pytest.raises(BackendUnavailableError):
            RemoteStore.from_settings(RemoteStoreSettings(url=None))


class TestGetStore:

    def test_selected_once(self, monkeypatch):
        calls = []

        def fake_create_store(settings=None):
            calls.append(settings)
            return LocalStore.__new__(LocalStore)

        monkeypatch.setattr(selector, "create_store", fake_create_store)

        first = get_store()
        assert get_store() is first
        assert len(calls) == 1

        reset_store()
        assert get_store() is not first
        assert len(calls) == 2

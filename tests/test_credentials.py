"""Tests for keychain credential storage (keyring is replaced with a dict)."""

import keyring
import pytest
from keyring.errors import KeyringLocked, PasswordDeleteError

from claude_tracker.credentials import (
    SERVICE_NAME,
    SecretNotFoundError,
    delete_secret,
    get_secret,
    store_secret,
)


@pytest.fixture
def fake_keychain(monkeypatch):
    store = {}

    def set_password(service, name, value):
        store[(service, name)] = value

    def get_password(service, name):
        return store.get((service, name))

    def delete_password(service, name):
        if (service, name) not in store:
            raise PasswordDeleteError("not found")
        del store[(service, name)]

    monkeypatch.setattr(keyring, "set_password", set_password)
    monkeypatch.setattr(keyring, "get_password", get_password)
    monkeypatch.setattr(keyring, "delete_password", delete_password)
    return store


def test_store_and_retrieve_roundtrip(fake_keychain):
    store_secret("__test_roundtrip", "hello-world")

    assert get_secret("__test_roundtrip") == "hello-world"
    assert (SERVICE_NAME, "__test_roundtrip") in fake_keychain


def test_get_missing_secret_raises(fake_keychain):
    with pytest.raises(SecretNotFoundError, match="not found"):
        get_secret("__test_missing")


def test_missing_secret_mentions_setup(fake_keychain):
    with pytest.raises(SecretNotFoundError, match="claude-tracker setup"):
        get_secret("__test_missing")


def test_overwrite_replaces_value(fake_keychain):
    store_secret("__test_overwrite", "first")
    store_secret("__test_overwrite", "second")

    assert get_secret("__test_overwrite") == "second"


def test_delete_secret(fake_keychain):
    store_secret("__test_delete", "value")

    assert delete_secret("__test_delete") is True
    assert delete_secret("__test_delete") is False
    with pytest.raises(SecretNotFoundError):
        get_secret("__test_delete")


def test_keyring_backend_error_becomes_not_found(monkeypatch):
    def locked(service, name):
        raise KeyringLocked("locked")

    monkeypatch.setattr(keyring, "get_password", locked)

    with pytest.raises(SecretNotFoundError, match="keychain"):
        get_secret("anything")

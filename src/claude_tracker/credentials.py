"""Credential storage in the OS keychain via keyring."""

from __future__ import annotations

import keyring
from keyring.errors import KeyringError, PasswordDeleteError

SERVICE_NAME = "claude-tracker"
CLOCKIFY_API_KEY = "clockify_api_key"


class SecretNotFoundError(LookupError):
    pass


def store_secret(name: str, value: str) -> None:
    """Store (or overwrite) a secret under the claude-tracker service."""
    keyring.set_password(SERVICE_NAME, name, value)


def get_secret(name: str) -> str:
    """Fetch a secret, raising SecretNotFoundError if it isn't stored."""
    try:
        value = keyring.get_password(SERVICE_NAME, name)
    except KeyringError as e:
        raise SecretNotFoundError(f"secret '{name}' could not be read from the keychain: {e}") from e
    if value is None:
        raise SecretNotFoundError(
            f"secret '{name}' not found (run `claude-tracker setup` to store it)"
        )
    return value


def delete_secret(name: str) -> bool:
    """Remove a secret. Returns False if there was nothing to remove."""
    try:
        keyring.delete_password(SERVICE_NAME, name)
    except PasswordDeleteError:
        return False
    return True

"""Integration-test fixtures that keep CLI runs away from the real OS keyring."""

from __future__ import annotations

import pytest

from bookcast.credentials import CredentialStore


class _EmptyCredentialStore(CredentialStore):
    def __init__(self) -> None:
        self.stored: str | None = None

    def is_available(self) -> bool:
        return True

    def get_api_key(self) -> str | None:
        return self.stored

    def set_api_key(self, api_key: str) -> None:
        self.stored = api_key.strip()

    def clear_api_key(self) -> bool:
        existed = self.stored is not None
        self.stored = None
        return existed


@pytest.fixture(autouse=True)
def credential_store(monkeypatch: pytest.MonkeyPatch) -> _EmptyCredentialStore:
    store = _EmptyCredentialStore()
    monkeypatch.setattr("bookcast.cli.create_credential_store", lambda: store)
    return store

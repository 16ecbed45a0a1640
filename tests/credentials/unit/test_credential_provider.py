"""Credential provider and session tests."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime

import pytest
from sis_merge_verifier.case_catalog import Product
from sis_merge_verifier.credentials import (
    CredentialProvider,
    CredentialRefreshError,
    Session,
    SessionStateError,
)
from sis_merge_verifier.merge_api import AuthExpiredError

_NOW = datetime(2026, 5, 4, 12, 0, tzinfo=UTC)


@dataclass
class _FakeIssuer:
    fail: bool = False
    calls: list[tuple[str, str]] = field(default_factory=list)

    def create_session_token(self, email: str, password: str) -> str:
        self.calls.append((email, password))
        if self.fail:
            raise AuthExpiredError("bad credentials", status_code=401)
        return f"token-{len(self.calls)}"


def _provider(issuer: _FakeIssuer) -> CredentialProvider:
    return CredentialProvider(issuer, "qa@example.edu", "pw", clock=lambda: _NOW)


def test_current_issues_first_token_lazily_and_caches_it() -> None:
    issuer = _FakeIssuer()
    provider = _provider(issuer)

    assert issuer.calls == []
    first = provider.current()
    second = provider.current()

    assert first is second
    assert first.token == "token-1"
    assert first.generation == 1
    assert first.issued_at == _NOW
    assert issuer.calls == [("qa@example.edu", "pw")]


def test_refresh_replaces_stale_token() -> None:
    issuer = _FakeIssuer()
    provider = _provider(issuer)
    stale = provider.current()

    fresh = provider.refresh(stale)

    assert fresh.token == "token-2"
    assert fresh.generation == 2
    assert provider.current() is fresh


def test_refresh_with_already_superseded_snapshot_reuses_newer_token() -> None:
    issuer = _FakeIssuer()
    provider = _provider(issuer)
    stale = provider.current()
    newer = provider.refresh(stale)

    again = provider.refresh(stale)

    assert again is newer
    assert len(issuer.calls) == 2


def test_issuer_failure_raises_refresh_error() -> None:
    provider = _provider(_FakeIssuer(fail=True))

    with pytest.raises(CredentialRefreshError, match="Could not obtain API token"):
        provider.current()


def test_session_reads_token_from_provider_and_seeds_once() -> None:
    provider = _provider(_FakeIssuer())
    session = Session("school1", Product.ACADEMIC_SCHEDULING, provider)

    assert session.auth_token == "token-1"

    session.mark_seeded(({"name": "token", "value": "token-1"},), {"lastSchool": "school1"})
    assert session.seeded is True
    assert session.storage_seed == {"lastSchool": "school1"}

    with pytest.raises(SessionStateError, match="already seeded"):
        session.mark_seeded((), {})

"""Credential/token provider service."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol

from sis_merge_verifier.merge_api import MergeApiError

logger = logging.getLogger(__name__)


class CredentialRefreshError(Exception):
    """Raised when a token cannot be obtained or refreshed."""


class TokenIssuer(Protocol):  # pylint: disable=too-few-public-methods
    """Protocol for the API call that exchanges credentials for a token."""

    def create_session_token(self, email: str, password: str) -> str: ...


@dataclass(frozen=True)
class TokenSnapshot:
    """Read-only view of the token handed to collaborators."""

    token: str
    generation: int
    issued_at: datetime


class CredentialProvider:
    """Sole owner of the run's API token.

    Collaborators read `current()` and call `refresh(stale)` when the API
    rejects their snapshot; they never replace the token themselves.
    """

    def __init__(
        self,
        issuer: TokenIssuer,
        email: str,
        password: str,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._issuer = issuer
        self._email = email
        self._password = password
        self._clock = clock or (lambda: datetime.now(UTC))
        self._lock = threading.Lock()
        self._snapshot: TokenSnapshot | None = None

    @property
    def email(self) -> str:
        return self._email

    def current(self) -> TokenSnapshot:
        """Return the current token, obtaining the first one on demand."""
        with self._lock:
            if self._snapshot is None:
                self._snapshot = self._issue(generation=1)
            return self._snapshot

    def refresh(self, stale: TokenSnapshot | None = None) -> TokenSnapshot:
        """Replace the token unless someone already refreshed past `stale`."""
        with self._lock:
            if (
                stale is not None
                and self._snapshot is not None
                and self._snapshot.generation > stale.generation
            ):
                return self._snapshot
            generation = 1 if self._snapshot is None else self._snapshot.generation + 1
            self._snapshot = self._issue(generation=generation)
            logger.info("API token refreshed (generation %s)", generation)
            return self._snapshot

    def _issue(self, *, generation: int) -> TokenSnapshot:
        try:
            token = self._issuer.create_session_token(self._email, self._password)
        except MergeApiError as exc:
            raise CredentialRefreshError(f"Could not obtain API token: {exc}") from exc
        return TokenSnapshot(token=token, generation=generation, issued_at=self._clock())

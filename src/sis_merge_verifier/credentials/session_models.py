"""Run session entity."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from sis_merge_verifier.case_catalog import Product

from .token_provider import CredentialProvider


class SessionStateError(Exception):
    """Raised when a session is seeded twice."""


@dataclass
class Session:
    """The single authenticated session owned by one run."""

    school_id: str
    product_area: Product | None
    credentials: CredentialProvider
    cookies: tuple[Mapping[str, Any], ...] = ()
    storage_seed: Mapping[str, str] = field(default_factory=dict)
    seeded: bool = False

    @property
    def auth_token(self) -> str:
        return self.credentials.current().token

    def mark_seeded(
        self,
        cookies: tuple[Mapping[str, Any], ...],
        storage_seed: Mapping[str, str],
    ) -> None:
        if self.seeded:
            raise SessionStateError(f"Session for {self.school_id} is already seeded.")
        self.cookies = cookies
        self.storage_seed = dict(storage_seed)
        self.seeded = True

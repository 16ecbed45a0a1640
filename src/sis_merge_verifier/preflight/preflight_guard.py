"""Pre-flight guard service."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Protocol, TypeVar

from sis_merge_verifier.case_catalog import MERGE_ENTITY_DISPLAY_NAMES
from sis_merge_verifier.credentials import CredentialProvider, CredentialRefreshError
from sis_merge_verifier.merge_api import AuthExpiredError, MergeApiError, MergeSettings

logger = logging.getLogger(__name__)

_T = TypeVar("_T")


class PreflightApi(Protocol):
    """Subset of the merge/report API consulted before a run starts."""

    def get_integration_save_state_id(self, school_id: str, token: str) -> str: ...

    def get_sync_type(self, school_id: str, token: str) -> str | None: ...

    def get_merge_settings(
        self,
        school_id: str,
        entity_type: str,
        token: str,
        *,
        save_state_id: str | None = None,
    ) -> MergeSettings: ...

    def is_nightly_merge_running(self, school_id: str, token: str) -> bool: ...


@dataclass(frozen=True)
class Proceed:
    """The integration is in a testable state."""

    @property
    def aborted(self) -> bool:
        return False


@dataclass(frozen=True)
class Abort:
    """The run must stop before any side effect."""

    reason: str

    @property
    def aborted(self) -> bool:
        return True


PreflightResult = Proceed | Abort


class PreflightAbort(Exception):
    """Raised by callers that turn an Abort result into control flow."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class PreflightGuard:
    """Checks real-time merge, SIS updates, and nightly merge state, in that order."""

    def __init__(self, api: PreflightApi, credentials: CredentialProvider) -> None:
        self._api = api
        self._credentials = credentials

    def check(self, school_id: str, entity_types: Sequence[str]) -> PreflightResult:
        try:
            return self._run_checks(school_id, entity_types)
        except (MergeApiError, CredentialRefreshError) as exc:
            return Abort(str(exc))

    def _run_checks(self, school_id: str, entity_types: Sequence[str]) -> PreflightResult:
        save_state_id = self._call(
            lambda token: self._api.get_integration_save_state_id(school_id, token)
        )
        sync_type = self._call(lambda token: self._api.get_sync_type(school_id, token))
        if sync_type != "realtime":
            return Abort(
                f"Real-time merges are not currently enabled for {school_id}, "
                f"only {sync_type or 'no'} merges are enabled."
            )
        logger.info("Real-time merges enabled for %s", school_id)

        for entity_type in entity_types:
            settings = self._call(
                lambda token, entity_type=entity_type: self._api.get_merge_settings(
                    school_id, entity_type, token, save_state_id=save_state_id
                )
            )
            if not settings.sis_update_enabled:
                display = MERGE_ENTITY_DISPLAY_NAMES.get(entity_type, entity_type)
                return Abort(
                    'Merge setting "Should Coursedog send updates to the SIS?" '
                    f"is disabled for {display}"
                )
            logger.info("SIS updates enabled for %s", entity_type)

        if self._call(lambda token: self._api.is_nightly_merge_running(school_id, token)):
            return Abort(f"nightly merge in progress for {school_id}")
        return Proceed()

    def _call(self, operation: Callable[[str], _T]) -> _T:
        snapshot = self._credentials.current()
        try:
            return operation(snapshot.token)
        except AuthExpiredError:
            return operation(self._credentials.refresh(snapshot).token)

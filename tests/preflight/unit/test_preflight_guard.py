"""Pre-flight guard tests."""

from __future__ import annotations

from dataclasses import dataclass, field

from sis_merge_verifier.credentials import CredentialProvider
from sis_merge_verifier.merge_api import AuthExpiredError, MergeApiError, MergeSettings
from sis_merge_verifier.preflight import Abort, PreflightGuard, Proceed


@dataclass
class _FakeIssuer:
    issued: int = 0

    def create_session_token(self, email: str, password: str) -> str:
        self.issued += 1
        return f"token-{self.issued}"


@dataclass
class _FakePreflightApi:
    sync_type: str | None = "realtime"
    sis_updates: dict[str, bool] = field(default_factory=dict)
    nightly_running: bool = False
    save_state_error: MergeApiError | None = None
    expire_first_call: bool = False
    tokens_seen: list[str] = field(default_factory=list)
    sync_type_reads: int = 0

    def get_integration_save_state_id(self, school_id: str, token: str) -> str:
        self.tokens_seen.append(token)
        if self.expire_first_call:
            self.expire_first_call = False
            raise AuthExpiredError("expired", status_code=401)
        if self.save_state_error is not None:
            raise self.save_state_error
        return "iss-1"

    def get_sync_type(self, school_id: str, token: str) -> str | None:
        self.sync_type_reads += 1
        return self.sync_type

    def get_merge_settings(
        self,
        school_id: str,
        entity_type: str,
        token: str,
        *,
        save_state_id: str | None = None,
    ) -> MergeSettings:
        assert save_state_id == "iss-1"
        return MergeSettings(sis_update_enabled=self.sis_updates.get(entity_type, True))

    def is_nightly_merge_running(self, school_id: str, token: str) -> bool:
        return self.nightly_running


def _guard(api: _FakePreflightApi) -> PreflightGuard:
    return PreflightGuard(api, CredentialProvider(_FakeIssuer(), "qa@example.edu", "pw"))


def test_all_checks_pass() -> None:
    result = _guard(_FakePreflightApi()).check("school1", ["sections", "relationships"])

    assert isinstance(result, Proceed)
    assert result.aborted is False


def test_nightly_sync_type_aborts() -> None:
    result = _guard(_FakePreflightApi(sync_type="nightly")).check("school1", ["sections"])

    assert isinstance(result, Abort)
    assert result.reason == (
        "Real-time merges are not currently enabled for school1, only nightly merges are enabled."
    )


def test_disabled_sis_updates_abort_with_display_name() -> None:
    api = _FakePreflightApi(sis_updates={"coursesCm": False})

    result = _guard(api).check("school1", ["sections", "coursesCm"])

    assert isinstance(result, Abort)
    assert result.reason.endswith("is disabled for Courses")


def test_nightly_merge_in_progress_aborts() -> None:
    result = _guard(_FakePreflightApi(nightly_running=True)).check("school1", ["sections"])

    assert result == Abort("nightly merge in progress for school1")


def test_missing_save_state_aborts() -> None:
    api = _FakePreflightApi(
        save_state_error=MergeApiError("Integration Save State not found", status_code=404)
    )

    result = _guard(api).check("school1", ["sections"])

    assert result == Abort("Integration Save State not found")


def test_expired_token_is_refreshed_once() -> None:
    api = _FakePreflightApi(expire_first_call=True)

    result = _guard(api).check("school1", ["sections"])

    assert isinstance(result, Proceed)
    assert api.tokens_seen == ["token-1", "token-2"]


def test_sync_type_is_read_once_for_all_entity_types() -> None:
    api = _FakePreflightApi()

    result = _guard(api).check("school1", ["sections", "relationships", "coursesCm"])

    assert isinstance(result, Proceed)
    assert api.sync_type_reads == 1

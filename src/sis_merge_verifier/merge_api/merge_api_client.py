"""HTTP client for the merge/report API."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

import requests

from .api_models import (
    IN_PROGRESS_JOB_STATUSES,
    AuthExpiredError,
    MergeApiError,
    MergeApiTransientError,
    MergeSettings,
    MergeState,
    MergeStatus,
)

logger = logging.getLogger(__name__)

_FORM_TEMPLATE_PATHS = {
    "section": ("/api/v2/{school}/general/sectionTemplate",),
    "relationship": ("/api/v2/{school}/general/sectionTemplate",),
    "course": ("/api/v1/{school}/general/courseTemplate",),
    "program": (
        "/api/v1/{school}/general/programTemplate",
        "/api/v2/{school}/general/programTemplate",
    ),
}

_TEMPLATE_KEYS = {
    "section": "sectionTemplate",
    "relationship": "sectionTemplate",
    "course": "courseTemplate",
    "program": "programTemplate",
}


class MergeApiClient:
    """Thin wrapper around the application REST endpoints used by a run.

    Every call takes the bearer token explicitly; the client never stores or
    refreshes tokens itself.
    """

    def __init__(
        self,
        api_base_url: str,
        *,
        session: requests.Session | None = None,
        timeout_seconds: float = 30.0,
    ) -> None:
        self._base_url = api_base_url.rstrip("/")
        self._session = session or requests.Session()
        self._timeout = timeout_seconds

    @property
    def base_url(self) -> str:
        return self._base_url

    def create_session_token(self, email: str, password: str) -> str:
        """Exchange operator credentials for an API token."""
        payload = self._request(
            "POST", "/api/v1/sessions", token=None, json_body={"email": email, "password": password}
        )
        token = payload.get("token") if isinstance(payload, Mapping) else None
        if not isinstance(token, str) or not token:
            raise AuthExpiredError("Session response did not include a token.", payload=payload)
        return token

    def get_integration_save_state_id(self, school_id: str, token: str) -> str:
        try:
            payload = self._request(
                "GET", f"/api/v1/{school_id}/general/enabledIntegrationSaveState", token=token
            )
        except MergeApiError as exc:
            if exc.status_code == 404:
                raise MergeApiError(
                    "Integration Save State not found", status_code=404, payload=exc.payload
                ) from exc
            raise
        state = payload.get("enabledIntegrationSaveState") if isinstance(payload, Mapping) else None
        save_state_id = state.get("integrationSaveStateId") if isinstance(state, Mapping) else None
        if not save_state_id:
            raise MergeApiError("Integration Save State not found", payload=payload)
        return str(save_state_id)

    def get_sync_type(self, school_id: str, token: str) -> str | None:
        payload = self._request(
            "GET", f"/api/v1/{school_id}/general/integrationSchedule", token=token
        )
        schedule = payload.get("integrationSchedule") if isinstance(payload, Mapping) else None
        sync_type = schedule.get("syncType") if isinstance(schedule, Mapping) else None
        return str(sync_type) if sync_type else None

    def get_merge_settings(
        self,
        school_id: str,
        entity_type: str,
        token: str,
        *,
        save_state_id: str | None = None,
    ) -> MergeSettings:
        """Read the SIS-update flag for one entity type.

        Whether merges run in real time is a school-wide schedule; see `get_sync_type`.
        """
        resolved_save_state = save_state_id or self.get_integration_save_state_id(school_id, token)
        payload = self._request(
            "GET",
            f"/api/v1/int/{school_id}/merge-settings",
            token=token,
            params={"entityType": entity_type, "integrationSaveStateId": resolved_save_state},
        )
        steps = payload.get("stepsToExecute") if isinstance(payload, Mapping) else None
        sis_update = isinstance(steps, Mapping) and steps.get("syncSisData") is True
        return MergeSettings(sis_update_enabled=sis_update)

    def is_nightly_merge_running(self, school_id: str, token: str) -> bool:
        """Return True when a scheduled (non real-time) merge job is in flight."""
        payload = self._request(
            "GET",
            f"/api/v1/int/{school_id}/integrations-hub/merge-history",
            token=token,
            params={"page": 0, "size": 1, "scheduleType": "nightly"},
        )
        item = _first_item(payload)
        in_progress = item.get("inProgressMerge") if item else None
        if not isinstance(in_progress, Mapping):
            return False
        return str(in_progress.get("awsJobStatus", "")).upper() in IN_PROGRESS_JOB_STATUSES

    def get_merge_status(self, school_id: str, entity_type: str, token: str) -> MergeStatus:
        """Read the latest real-time merge history entry for an entity type."""
        payload = self._request(
            "GET",
            f"/api/v1/int/{school_id}/integrations-hub/merge-history",
            token=token,
            params={
                "page": 0,
                "size": 1,
                "scheduleType": "realtime",
                "entityType": entity_type,
            },
        )
        return parse_merge_status(payload)

    def get_merge_report(self, school_id: str, report_id: str, token: str) -> Mapping[str, Any]:
        payload = self._request("GET", f"/api/v1/{school_id}/mergeReports/{report_id}", token=token)
        if not isinstance(payload, Mapping):
            raise MergeApiError("Merge report response must be an object.", payload=payload)
        return payload

    def get_entity(self, school_id: str, report_id: str, token: str) -> Any:
        """Fetch the resulting SIS data captured after the merge."""
        return self._request(
            "GET",
            f"/api/v1/{school_id}/integration/getMergeReportBackup",
            token=token,
            params={
                "backupType": "resulting-sis-data",
                "getHeadInfo": "false",
                "mergeReportId": report_id,
            },
        )

    def get_form_template(self, school_id: str, entity_kind: str, token: str) -> Mapping[str, Any]:
        """Return the form template questions (qid -> question) for an entity kind."""
        paths = _FORM_TEMPLATE_PATHS.get(entity_kind)
        if paths is None:
            raise MergeApiError(f"No form template for entity kind: {entity_kind}")
        last_error: MergeApiError | None = None
        for path in paths:
            try:
                payload = self._request("GET", path.format(school=school_id), token=token)
            except AuthExpiredError:
                raise
            except MergeApiError as exc:
                last_error = exc
                continue
            template = (
                payload.get(_TEMPLATE_KEYS[entity_kind]) if isinstance(payload, Mapping) else None
            )
            questions = template.get("questions") if isinstance(template, Mapping) else None
            if isinstance(questions, Mapping):
                return questions
            last_error = MergeApiError(f"Form template for {entity_kind} has no questions.")
        assert last_error is not None
        raise last_error

    def _request(
        self,
        method: str,
        path: str,
        *,
        token: str | None,
        params: Mapping[str, Any] | None = None,
        json_body: Any = None,
    ) -> Any:
        headers = {"Accept": "application/json, text/plain, */*"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
            headers["Cookie"] = f"isLoggedIn=true; token={token}"
        url = f"{self._base_url}{path}"
        logger.debug("%s %s params=%s", method, url, dict(params or {}))
        try:
            response = self._session.request(
                method,
                url,
                headers=headers,
                params=params,
                json=json_body,
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise MergeApiTransientError(f"{method} {path} failed: {exc}") from exc

        payload = _decode_body(response)
        status = response.status_code
        if status in (401, 403):
            raise AuthExpiredError(
                f"{method} {path} rejected the token ({status}).",
                status_code=status,
                payload=payload,
            )
        if status >= 500:
            raise MergeApiTransientError(
                f"{method} {path} returned {status}.", status_code=status, payload=payload
            )
        if status >= 400:
            raise MergeApiError(
                f"{method} {path} returned {status}.", status_code=status, payload=payload
            )
        return payload


def parse_merge_status(payload: Any) -> MergeStatus:
    """Interpret a merge-history page (size 1) as a MergeStatus."""
    item = _first_item(payload)
    if not item:
        return MergeStatus(state=MergeState.PENDING)

    in_progress = item.get("inProgressMerge")
    if isinstance(in_progress, Mapping):
        job_status = str(in_progress.get("awsJobStatus", "")).upper()
        if job_status in IN_PROGRESS_JOB_STATUSES:
            return MergeStatus(state=MergeState.IN_PROGRESS, job_status=job_status, raw=item)

    report = item.get("mergeReport")
    if isinstance(report, Mapping):
        report_id = report.get("id") or report.get("_id")
        if report_id:
            return MergeStatus(
                state=MergeState.FINISHED,
                report_id=str(report_id),
                report_status=str(report.get("status")) if report.get("status") else None,
                started_at=_parse_timestamp(report.get("timestampStart") or report.get("date")),
                raw=item,
            )
    return MergeStatus(state=MergeState.PENDING, raw=item)


def _first_item(payload: Any) -> Mapping[str, Any] | None:
    items = payload.get("items") if isinstance(payload, Mapping) else None
    if isinstance(items, list) and items and isinstance(items[0], Mapping):
        return items[0]
    return None


def _parse_timestamp(value: Any) -> datetime | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int | float):
        seconds = value / 1000 if value > 10**11 else value
        return datetime.fromtimestamp(seconds, tz=UTC)
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
    return None


def _decode_body(response: requests.Response) -> Any:
    if not response.content:
        return {}
    try:
        return response.json()
    except ValueError:
        return response.text

"""Session seeding tests."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

import pytest
from sis_merge_verifier.browser_driving import ui_selectors as selectors
from sis_merge_verifier.case_catalog import Product
from sis_merge_verifier.credentials import CredentialProvider, Session, SessionStateError
from sis_merge_verifier.session_seeding import (
    LoginError,
    SessionSeeder,
    build_school_cookies,
    login_url,
)


class _FakeIssuer:
    def create_session_token(self, email: str, password: str) -> str:
        return "tok"


class _LoginDriver:
    """Records interactions and reveals selectors after the clicks that trigger them."""

    def __init__(self, reveals: Mapping[str, str]) -> None:
        self._reveals = reveals
        self.visible: set[str] = set()
        self.events: list[tuple[str, ...]] = []
        self.cookies: list[Mapping[str, Any]] = []
        self.scripts: list[str] = []

    def add_cookies(self, cookies: Sequence[Mapping[str, Any]]) -> None:
        self.events.append(("cookies",))
        self.cookies.extend(cookies)

    def add_init_script(self, script: str) -> None:
        self.events.append(("script",))
        self.scripts.append(script)

    def navigate(self, url: str) -> None:
        self.events.append(("navigate", url))

    def fill(self, selector: str, value: str) -> None:
        self.events.append(("fill", selector, value))

    def click(self, selector: str) -> None:
        self.events.append(("click", selector))
        revealed = self._reveals.get(selector)
        if revealed is not None:
            self.visible.add(revealed)

    def first_visible(self, signals: Mapping[str, str]) -> str | None:
        for name, selector in signals.items():
            if selector in self.visible:
                return name
        return None


class _FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.now += seconds


def _session() -> Session:
    provider = CredentialProvider(_FakeIssuer(), "qa+ops@example.edu", "pw")
    return Session("school1", Product.ACADEMIC_SCHEDULING, provider)


def _seeder() -> SessionSeeder:
    clock = _FakeClock()
    return SessionSeeder(
        "https://app.example.edu/", login_timeout_seconds=3, clock=clock, sleep=clock.sleep
    )


def test_seed_sets_storage_before_navigating_and_signs_in() -> None:
    driver = _LoginDriver(
        {
            selectors.LOGIN_NEXT_BUTTON: selectors.LOGIN_PASSWORD_INPUT,
            selectors.LOGIN_SUBMIT_BUTTON: selectors.APP_NAVIGATION,
        }
    )
    session = _session()

    _seeder().seed(session, driver, password="pw")  # type: ignore[arg-type]

    assert driver.events[0] == ("cookies",)
    assert driver.events[1] == ("script",)
    assert driver.events[2] == ("navigate", login_url("https://app.example.edu", "school1"))
    assert ("fill", selectors.LOGIN_PASSWORD_INPUT, "pw") in driver.events
    assert session.seeded is True
    assert '"school1"' in driver.scripts[0]
    assert {cookie["name"] for cookie in driver.cookies} == {
        "userSelectedSchool_qa%2Bops%40example.edu",
        "ajs_group_id",
    }


def test_unknown_email_raises_login_error() -> None:
    driver = _LoginDriver({})

    with pytest.raises(LoginError, match="was not found"):
        _seeder().seed(_session(), driver, password="pw")  # type: ignore[arg-type]


def test_incorrect_password_raises_login_error() -> None:
    driver = _LoginDriver(
        {
            selectors.LOGIN_NEXT_BUTTON: selectors.LOGIN_PASSWORD_INPUT,
            selectors.LOGIN_SUBMIT_BUTTON: selectors.LOGIN_INVALID_PASSWORD,
        }
    )

    with pytest.raises(LoginError, match="incorrect password"):
        _seeder().seed(_session(), driver, password="pw")  # type: ignore[arg-type]


def test_application_not_loading_raises_login_error() -> None:
    driver = _LoginDriver({selectors.LOGIN_NEXT_BUTTON: selectors.LOGIN_PASSWORD_INPUT})

    with pytest.raises(LoginError, match="did not load"):
        _seeder().seed(_session(), driver, password="pw")  # type: ignore[arg-type]


def test_session_cannot_be_seeded_twice() -> None:
    driver = _LoginDriver(
        {
            selectors.LOGIN_NEXT_BUTTON: selectors.LOGIN_PASSWORD_INPUT,
            selectors.LOGIN_SUBMIT_BUTTON: selectors.APP_NAVIGATION,
        }
    )
    session = _session()
    _seeder().seed(session, driver, password="pw")  # type: ignore[arg-type]

    with pytest.raises(SessionStateError):
        _seeder().seed(session, driver, password="pw")  # type: ignore[arg-type]


def test_login_url_and_cookie_scope() -> None:
    assert login_url("https://app.example.edu/", "school1") == (
        "https://app.example.edu/#/login?continue=%2Fschool1"
    )
    cookies = build_school_cookies("https://app.example.edu/some/path", "a@b.c", "school1")
    assert all(cookie["url"] == "https://app.example.edu" for cookie in cookies)
    assert cookies[0]["secure"] is True

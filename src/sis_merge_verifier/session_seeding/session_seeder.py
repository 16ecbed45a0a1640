"""Session seeding and UI login."""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable
from urllib.parse import quote, urlparse

from sis_merge_verifier.browser_driving import BrowserDriver, SignalObserver, race_signals
from sis_merge_verifier.browser_driving import ui_selectors as selectors
from sis_merge_verifier.credentials import Session
from sis_merge_verifier.run_control import RunDeadline

logger = logging.getLogger(__name__)

_STORAGE_SCRIPT = """
(() => {{
  const sid = {school};
  localStorage.setItem('ajs_group_id', JSON.stringify(sid));
  const wf = JSON.parse(localStorage.getItem('whatfix_user_data') || '{{}}');
  wf.school = sid;
  localStorage.setItem('whatfix_user_data', JSON.stringify(wf));
}})();
"""


class LoginError(Exception):
    """Raised when the UI login does not reach the application."""


class SessionSeeder:
    """Seeds cookies and client storage for the school, then signs in through the UI."""

    def __init__(
        self,
        base_url: str,
        *,
        login_timeout_seconds: float = 30.0,
        deadline: RunDeadline | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._login_timeout = login_timeout_seconds
        self._deadline = deadline
        self._clock = clock
        self._sleep = sleep

    def seed(self, session: Session, driver: BrowserDriver, *, password: str) -> None:
        """Seed storage and log in; must run before any other navigation."""
        email = session.credentials.email
        cookies = build_school_cookies(self._base_url, email, session.school_id)
        storage_seed = {
            "ajs_group_id": session.school_id,
            "whatfix_user_data.school": session.school_id,
        }
        driver.add_cookies(cookies)
        driver.add_init_script(_STORAGE_SCRIPT.format(school=json.dumps(session.school_id)))
        session.mark_seeded(cookies, storage_seed)
        self._login(driver, session.school_id, email, password)

    def _login(self, driver: BrowserDriver, school_id: str, email: str, password: str) -> None:
        logger.info("Signing in as %s", email)
        driver.navigate(login_url(self._base_url, school_id))
        driver.fill(selectors.LOGIN_EMAIL_INPUT, email)
        driver.click(selectors.LOGIN_NEXT_BUTTON)
        password_ready = race_signals(
            driver,
            (SignalObserver("password", selectors.LOGIN_PASSWORD_INPUT),),
            timeout_seconds=5,
            deadline=self._deadline,
            clock=self._clock,
            sleep=self._sleep,
        )
        if password_ready is None:
            raise LoginError(
                f'Authentication failed: the email "{email}" was not found. '
                "Verify the email address or register this user in the system."
            )
        driver.fill(selectors.LOGIN_PASSWORD_INPUT, password)
        driver.click(selectors.LOGIN_SUBMIT_BUTTON)
        outcome = race_signals(
            driver,
            (
                SignalObserver("invalid_password", selectors.LOGIN_INVALID_PASSWORD),
                SignalObserver("signed_in", selectors.APP_NAVIGATION),
            ),
            timeout_seconds=self._login_timeout,
            deadline=self._deadline,
            clock=self._clock,
            sleep=self._sleep,
        )
        if outcome == "invalid_password":
            raise LoginError(f"Authentication failed: incorrect password for {email}.")
        if outcome is None:
            raise LoginError("Authentication failed: the application did not load after sign in.")
        logger.info("Signed in to %s", school_id)


def login_url(base_url: str, school_id: str) -> str:
    return f"{base_url.rstrip('/')}/#/login?continue={quote(f'/{school_id}', safe='')}"


def build_school_cookies(base_url: str, email: str, school_id: str) -> tuple[dict, ...]:
    """Cookies that preselect the school for the signed-in user."""
    parsed = urlparse(base_url)
    url = f"{parsed.scheme}://{parsed.netloc}"
    return (
        {
            "name": f"userSelectedSchool_{quote(email, safe='')}",
            "value": school_id,
            "url": url,
            "httpOnly": False,
            "secure": parsed.scheme == "https",
            "sameSite": "Strict",
        },
        {
            "name": "ajs_group_id",
            "value": school_id,
            "url": url,
            "httpOnly": False,
            "secure": False,
            "sameSite": "Lax",
        },
    )

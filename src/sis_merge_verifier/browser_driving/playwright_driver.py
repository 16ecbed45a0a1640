"""Playwright-backed implementation of the browser-driving capability."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import Locator, Page, sync_playwright

from .driver_protocol import BrowserActionError, ViewportMode

logger = logging.getLogger(__name__)


class PlaywrightBrowserDriver:
    """One Chromium page inside a recording context.

    Use `PlaywrightBrowserDriver.launch(...)` to start a browser; `close()`
    flushes the session video into `video_dir`.
    """

    def __init__(self, page: Page, *, headless: bool = True, on_close=None) -> None:
        self._page = page
        self._headless = headless
        self._on_close = on_close

    @property
    def headless(self) -> bool:
        return self._headless

    @classmethod
    def launch(
        cls,
        *,
        headless: bool,
        action_timeout_ms: int,
        video_dir: Path | None = None,
    ) -> PlaywrightBrowserDriver:
        playwright = sync_playwright().start()
        try:
            browser = playwright.chromium.launch(headless=headless)
            context_options: dict[str, Any] = {"viewport": ViewportMode.AUTOMATED.size}
            if video_dir is not None:
                video_dir.mkdir(parents=True, exist_ok=True)
                context_options["record_video_dir"] = str(video_dir)
                context_options["record_video_size"] = {"width": 1280, "height": 720}
            context = browser.new_context(**context_options)
            context.set_default_timeout(action_timeout_ms)
            page = context.new_page()
        except PlaywrightError as exc:
            playwright.stop()
            raise BrowserActionError(f"Could not launch browser: {exc}") from exc

        def _shutdown() -> None:
            try:
                context.close()
                browser.close()
            finally:
                playwright.stop()

        return cls(page, headless=headless, on_close=_shutdown)

    def navigate(self, url: str) -> None:
        logger.debug("navigate %s", url)
        try:
            self._page.goto(url, wait_until="domcontentloaded")
        except PlaywrightError as exc:
            raise BrowserActionError(f"Navigation to {url} failed: {exc}") from exc

    def current_url(self) -> str:
        return self._page.url

    def count(self, selector: str) -> int:
        try:
            return self._page.locator(selector).count()
        except PlaywrightError:
            return 0

    def is_present(self, selector: str) -> bool:
        locator = self._first(selector)
        try:
            return locator.count() > 0 and locator.is_visible()
        except PlaywrightError:
            return False

    def is_enabled(self, selector: str) -> bool:
        locator = self._first(selector)
        try:
            return locator.count() > 0 and locator.is_enabled()
        except PlaywrightError:
            return False

    def read_text(self, selector: str) -> str | None:
        locator = self._first(selector)
        try:
            if locator.count() == 0:
                return None
            text = locator.text_content()
        except PlaywrightError:
            return None
        return text.strip() if text is not None else None

    def read_value(self, selector: str) -> str | None:
        locator = self._first(selector)
        try:
            if locator.count() == 0:
                return None
            return locator.input_value()
        except PlaywrightError:
            return None

    def fill(self, selector: str, value: str) -> None:
        try:
            self._first(selector).fill(value)
        except PlaywrightError as exc:
            raise BrowserActionError(f"Could not fill {selector}: {exc}") from exc

    def click(self, selector: str) -> None:
        try:
            self._first(selector).click()
        except PlaywrightError as exc:
            raise BrowserActionError(f"Could not click {selector}: {exc}") from exc

    def choose_option(self, selector: str, *, label: str | None = None) -> str | None:
        """Open a multiselect under `selector` and pick `label` or the first unselected option."""
        container = self._first(selector)
        try:
            wrapper = container.locator(".multiselect").first
            (wrapper if wrapper.count() > 0 else container).click()
            options = container.locator(".multiselect__content-wrapper li .multiselect__option")
            for index in range(options.count()):
                option = options.nth(index)
                classes = option.get_attribute("class") or ""
                text = (option.text_content() or "").strip()
                if not text or "multiselect__option--selected" in classes:
                    continue
                if label is not None and text != label:
                    continue
                option.click()
                return text
        except PlaywrightError as exc:
            raise BrowserActionError(f"Could not choose an option in {selector}: {exc}") from exc
        return None

    def screenshot(self, path: Path, *, region: str | None = None) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        try:
            if region is None:
                self._page.screenshot(path=str(path), full_page=True)
            else:
                self._first(region).screenshot(path=str(path))
        except PlaywrightError as exc:
            raise BrowserActionError(f"Screenshot {path.name} failed: {exc}") from exc
        return path

    def first_visible(self, signals: Mapping[str, str]) -> str | None:
        for name, selector in signals.items():
            if self.is_present(selector):
                return name
        return None

    def set_viewport(self, mode: ViewportMode) -> None:
        try:
            self._page.set_viewport_size(mode.size)
        except PlaywrightError as exc:
            raise BrowserActionError(f"Could not resize the viewport: {exc}") from exc

    def add_cookies(self, cookies: Sequence[Mapping[str, Any]]) -> None:
        self._page.context.add_cookies([dict(cookie) for cookie in cookies])

    def add_init_script(self, script: str) -> None:
        self._page.context.add_init_script(script=script)

    def close(self) -> None:
        if self._on_close is not None:
            callback, self._on_close = self._on_close, None
            callback()

    def _first(self, selector: str) -> Locator:
        return self._page.locator(selector).first

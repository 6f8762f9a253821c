"""Camoufox browser session: launch, guarded navigation, authentication."""

from __future__ import annotations

import logging
import sys
from typing import Optional
from urllib.parse import urlparse

from camoufox.async_api import AsyncCamoufox
from playwright.async_api import BrowserContext, Page

from ..constants import (
    AUTHENTICATED_HOST,
    BIZ_HOME_URL,
    BIZ_LOGIN_URL,
    LOGIN_ANY_FIELD_SELECTOR,
    MARKETING_HOST,
    OVERLAY_DISMISS_SELECTORS,
    WINDOW_SIZE,
)
from ..errors import MissingCredentials, NotStarted, UnexpectedRedirect
from ..models.session import (
    Credentials,
    PageInfo,
    SessionConfig,
    SessionStatus,
    StatusFlags,
)
from .challenges import ChallengeResolver, detect_captcha, detect_two_factor, is_visible
from .login import LoginFlow, login_form_visible

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(asctime)s [%(name)s] %(levelname)s: %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)


def host_of(url: str) -> Optional[str]:
    try:
        return urlparse(url).netloc or None
    except ValueError:
        return None


class BizSession:
    """Owns the one persistent Yelp for Business browser context and its page.

    Not safe for concurrent use: callers serialize access through a
    SerialQueue.
    """

    def __init__(self, config: SessionConfig):
        self._config = config
        self._camoufox = None
        self._context: Optional[BrowserContext] = None
        self._page: Optional[Page] = None
        self._resolver = ChallengeResolver(config)
        self._login = LoginFlow(self._resolver)

    @property
    def config(self) -> SessionConfig:
        return self._config

    @property
    def is_running(self) -> bool:
        return self._page is not None

    @property
    def page(self) -> Page:
        if self._page is None:
            raise NotStarted()
        return self._page

    # ── Lifecycle ────────────────────────────────────────────────────────────

    async def start(self):
        """Launch the persistent headful browser. No-op if already running.

        Launch failures propagate to the caller after cleanup.
        """
        if self.is_running:
            return

        self._config.user_data_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"Launching Camoufox with profile {self._config.user_data_dir}...")

        try:
            self._context = await self._launch_context()
            self._context.set_default_timeout(self._config.action_timeout_ms)
            self._context.set_default_navigation_timeout(self._config.navigation_timeout_ms)
            pages = self._context.pages
            self._page = pages[0] if pages else await self._context.new_page()
        except Exception as e:
            logger.error(f"Failed to start browser: {e}")
            await self.stop()
            raise

        logger.info("Browser session started.")

    async def _launch_context(self) -> BrowserContext:
        self._camoufox = AsyncCamoufox(
            persistent_context=True,
            user_data_dir=str(self._config.user_data_dir),
            headless=False,
            humanize=True,
            geoip=True,
            window=WINDOW_SIZE,
            slow_mo=self._config.slow_mo_ms or 0,
        )
        return await self._camoufox.__aenter__()

    async def stop(self):
        """Close the browser. Safe to call repeatedly."""
        if self._context is None and self._camoufox is None:
            return
        logger.info("Stopping browser session...")

        try:
            if self._context:
                await self._context.close()
        except Exception as e:
            logger.warning(f"Error closing context: {e}")
        finally:
            self._context = None
            self._page = None

        try:
            if self._camoufox:
                await self._camoufox.__aexit__(None, None, None)
        except Exception as e:
            logger.warning(f"Error closing camoufox: {e}")
        finally:
            self._camoufox = None

        logger.info("Browser session stopped.")

    # ── Navigation ───────────────────────────────────────────────────────────

    async def goto(self, url: str, label: str = "navigation"):
        """Navigate, dismiss cookie banners, then clear or fail on challenges."""
        page = self.page
        logger.info(f"Navigating to {url}")
        await page.goto(url, wait_until="domcontentloaded")
        logger.info(f"Landed on {page.url}")
        await self._dismiss_overlays(page)
        await self._resolver.check(page, label)

    async def _dismiss_overlays(self, page: Page):
        for selector in OVERLAY_DISMISS_SELECTORS:
            button = page.locator(selector).first
            if not await is_visible(button):
                continue
            try:
                await button.click()
                logger.info(f"Dismissed overlay {selector}")
            except Exception as e:
                logger.debug(f"Could not dismiss overlay {selector}: {e}")

    # ── Authentication ───────────────────────────────────────────────────────

    async def ensure_authenticated(self, credentials: Optional[Credentials] = None):
        """Log in if the login form is showing, then verify the portal is reachable.

        Raises:
            MissingCredentials: the form is showing and no credentials were given.
            UnexpectedRedirect: the portal home redirected to the marketing site.
        """
        await self.start()
        page = self.page

        await self.goto(BIZ_LOGIN_URL)

        if await login_form_visible(page):
            if credentials is None:
                snapshot_dir = await self._resolver.snapshot(
                    page, "biz-login-visible-but-missing-credentials"
                )
                raise MissingCredentials(snapshot_dir)
            await self._login.run(page, credentials)
        else:
            logger.info("No login form showing, session already authenticated.")

        await self.goto(BIZ_HOME_URL)
        host = host_of(page.url)
        if host != AUTHENTICATED_HOST:
            snapshot_dir = await self._resolver.snapshot(page, "biz-auth-redirected-to-marketing")
            raise UnexpectedRedirect(host or page.url, AUTHENTICATED_HOST, snapshot_dir)

        logger.info("Authenticated on the biz portal.")

    # ── Introspection ────────────────────────────────────────────────────────

    async def page_info(self) -> PageInfo:
        if not self.is_running:
            return PageInfo(started=False)
        page = self.page
        return PageInfo(started=True, url=page.url, title=await page.title())

    async def status(self) -> SessionStatus:
        """Report page state and challenge flags. Never raises."""
        try:
            page = self.page
            url = page.url
            try:
                title = await page.title()
            except Exception:
                title = None

            host = host_of(url)
            flags = StatusFlags(
                captcha_visible=await detect_captcha(page),
                two_factor_visible=await detect_two_factor(page),
                login_visible=await is_visible(page.locator(LOGIN_ANY_FIELD_SELECTOR)),
                marketing_site=host == MARKETING_HOST,
            )
            return SessionStatus(started=True, url=url, host=host, title=title, flags=flags)
        except Exception as e:
            logger.debug(f"Status unavailable: {e}")
            return SessionStatus(started=False)

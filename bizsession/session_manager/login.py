"""Credential login against the Yelp for Business login form."""

from __future__ import annotations

import logging
import sys

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page

from ..constants import (
    EMAIL_SELECTOR,
    LOGIN_REDIRECT_TIMEOUT_MS,
    PASSWORD_SELECTOR,
    SUBMIT_FALLBACK_SELECTOR,
    SUBMIT_ROLE_NAME,
    SUBMIT_TEXT,
)
from ..errors import LoginDidNotSucceed, LoginFieldsMissing, LoginSubmitFailed
from ..models.session import Credentials
from .challenges import ChallengeResolver, is_visible

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(asctime)s [%(name)s] %(levelname)s: %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)


async def login_form_visible(page: Page) -> bool:
    """The login form counts as showing while its email field is visible."""
    return await is_visible(page.locator(EMAIL_SELECTOR))


class LoginFlow:
    """Fills and submits the login form, then verifies it went away.

    Every failure is fatal and snapshotted; the form is submitted at most
    once per run.
    """

    def __init__(self, resolver: ChallengeResolver):
        self._resolver = resolver

    async def run(self, page: Page, credentials: Credentials):
        await self._resolver.check(page, "login-start")

        email = page.locator(EMAIL_SELECTOR).first
        password = page.locator(PASSWORD_SELECTOR).first
        has_email = await is_visible(email)
        has_password = await is_visible(password)
        if not has_email or not has_password:
            snapshot_dir = await self._resolver.snapshot(page, "biz-login-missing-fields")
            logger.error(f"Login fields missing (email={has_email}, password={has_password})")
            raise LoginFieldsMissing(snapshot_dir)

        logger.info("Filling login form...")
        await email.fill(credentials.username)
        await password.fill(credentials.password.get_secret_value())

        await self._submit(page)

        # Either the URL leaves /login or the stricter form check below fails.
        try:
            await page.wait_for_url(
                lambda url: "/login" not in url, timeout=LOGIN_REDIRECT_TIMEOUT_MS
            )
        except PlaywrightError:
            logger.warning(f"Still on login URL after submit: {page.url}")

        await self._resolver.check(page, "login-post-submit")

        if await login_form_visible(page):
            snapshot_dir = await self._resolver.snapshot(page, "biz-login-still-visible")
            raise LoginDidNotSucceed(snapshot_dir)

        logger.info(f"Login succeeded, now at {page.url}")

    async def _submit(self, page: Page):
        by_role = page.get_by_role("button", name=SUBMIT_ROLE_NAME).first
        by_selector = page.locator(SUBMIT_FALLBACK_SELECTOR).filter(has_text=SUBMIT_TEXT).first
        try:
            if await is_visible(by_role):
                await by_role.click()
            else:
                await by_selector.click()
        except Exception as e:
            snapshot_dir = await self._resolver.snapshot(page, "biz-login-submit-click-failed")
            raise LoginSubmitFailed(snapshot_dir, e) from e
        logger.info("Login form submitted.")

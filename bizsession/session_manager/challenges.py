"""CAPTCHA, two-factor and block-page detection, and waiting for an operator to clear them."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Locator, Page

from ..constants import (
    BLOCK_TEXT_SELECTOR,
    BLOCK_TITLE,
    BLOCK_URL_PATTERN,
    CAPTCHA_IFRAME_SELECTOR,
    CAPTCHA_MIN_SIZE,
    CAPTCHA_RESOLVED_JS,
    OTP_INPUT_SELECTOR,
    TWO_FACTOR_RESOLVED_JS,
    TWO_FACTOR_TEXT_PATTERN,
    TWO_FACTOR_TEXT_SELECTOR,
)
from ..errors import BlockedDetected, ChallengeTimeout
from ..models.session import ChallengeKind, ChallengeOutcome, SessionConfig
from .artifacts import capture_debug_artifacts

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(asctime)s [%(name)s] %(levelname)s: %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)


# ── Detection ────────────────────────────────────────────────────────────────
#
# Every query below collapses its own failure to "not present".


async def is_visible(locator: Locator) -> bool:
    try:
        return await locator.first.is_visible()
    except Exception:
        return False


def is_active_captcha_box(box: dict | None) -> bool:
    """A captcha frame blocks the user only when it renders at least 100x100."""
    if not box:
        return False
    return box["width"] >= CAPTCHA_MIN_SIZE and box["height"] >= CAPTCHA_MIN_SIZE


async def detect_captcha(page: Page) -> bool:
    """Check for a large, rendered challenge-provider iframe."""
    frames = page.locator(CAPTCHA_IFRAME_SELECTOR)
    try:
        count = await frames.count()
    except Exception as e:
        logger.warning(f"Captcha iframe count failed, treating as none present: {e}")
        return False

    for idx in range(count):
        try:
            box = await frames.nth(idx).bounding_box()
        except Exception:
            continue
        if is_active_captcha_box(box):
            return True
    return False


async def detect_two_factor(page: Page) -> bool:
    """Check for a one-time-code input or verification-code wording."""
    if await is_visible(page.locator(OTP_INPUT_SELECTOR)):
        return True
    return await is_visible(page.locator(TWO_FACTOR_TEXT_SELECTOR))


async def detect_block(page: Page) -> tuple[bool, str, str]:
    """Check the URL, title and body for a CDN block page.

    Returns:
        (blocked, url, title)
    """
    url = page.url
    try:
        title = await page.title()
    except Exception:
        title = ""

    blocked = (
        bool(BLOCK_URL_PATTERN.search(url))
        or title.strip().lower() == BLOCK_TITLE
        or await is_visible(page.locator(BLOCK_TEXT_SELECTOR))
    )
    return blocked, url, title


# ── Resolution ───────────────────────────────────────────────────────────────


class ChallengeResolver:
    """Detects challenges on the live page and blocks until they clear.

    Captcha and two-factor prompts are waited out for
    ``config.challenge_timeout_ms`` so an operator can solve them in the
    headful window. A block page is fatal immediately.
    """

    def __init__(self, config: SessionConfig):
        self._config = config

    @property
    def timeout_ms(self) -> int:
        return self._config.challenge_timeout_ms

    async def snapshot(self, page: Page, label: str) -> Path:
        return await capture_debug_artifacts(page, self._config.artifacts_dir, label)

    async def check(self, page: Page, label: str) -> list[ChallengeOutcome]:
        """Run captcha, then two-factor, then block detection.

        Block detection runs last because it reads the page after the earlier
        interstitials have settled.

        Raises:
            ChallengeTimeout: a captcha or two-factor prompt did not clear in time.
            BlockedDetected: the page is a block page.
        """
        outcomes = [
            await self.handle_captcha(page, label),
            await self.handle_two_factor(page, label),
        ]
        await self.raise_if_blocked(page, label)
        outcomes.append(ChallengeOutcome(kind=ChallengeKind.BLOCK))
        return outcomes

    async def handle_captcha(self, page: Page, label: str) -> ChallengeOutcome:
        if not await detect_captcha(page):
            return ChallengeOutcome(kind=ChallengeKind.CAPTCHA)
        return await self._wait_for_resolution(
            page,
            ChallengeKind.CAPTCHA,
            label,
            CAPTCHA_RESOLVED_JS,
            [CAPTCHA_IFRAME_SELECTOR, CAPTCHA_MIN_SIZE],
        )

    async def handle_two_factor(self, page: Page, label: str) -> ChallengeOutcome:
        if not await detect_two_factor(page):
            return ChallengeOutcome(kind=ChallengeKind.TWO_FACTOR)
        return await self._wait_for_resolution(
            page,
            ChallengeKind.TWO_FACTOR,
            label,
            TWO_FACTOR_RESOLVED_JS,
            [OTP_INPUT_SELECTOR, TWO_FACTOR_TEXT_PATTERN],
        )

    async def raise_if_blocked(self, page: Page, label: str):
        blocked, url, title = await detect_block(page)
        if not blocked:
            return
        snapshot_dir = await self.snapshot(page, f"{ChallengeKind.BLOCK.value}-{label}")
        logger.error(f"Block page detected during {label}: url={url} title={title!r}")
        raise BlockedDetected(url, title, snapshot_dir)

    async def _wait_for_resolution(
        self,
        page: Page,
        kind: ChallengeKind,
        label: str,
        predicate_js: str,
        arg: list,
    ) -> ChallengeOutcome:
        snapshot_dir = await self.snapshot(page, f"{kind.value}-{label}")
        logger.warning(
            f"{kind.label} detected during {label}; waiting up to "
            f"{self.timeout_ms / 1000:.0f}s for it to be completed in the browser window. "
            f"Snapshot: {snapshot_dir}"
        )
        try:
            await page.wait_for_function(predicate_js, arg=arg, timeout=self.timeout_ms)
        except PlaywrightError as e:
            logger.error(f"{kind.label} not resolved during {label}: {e}")
            raise ChallengeTimeout(kind, snapshot_dir) from e

        logger.info(f"{kind.label} resolved during {label}.")
        return ChallengeOutcome(
            kind=kind,
            was_present=True,
            resolved_within_timeout=True,
            snapshot_dir=snapshot_dir,
        )

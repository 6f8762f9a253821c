"""Tests for BizSession lifecycle, guarded navigation and status."""

import pytest

from bizsession.constants import (
    CAPTCHA_IFRAME_SELECTOR,
    LOGIN_ANY_FIELD_SELECTOR,
    OVERLAY_DISMISS_SELECTORS,
)
from bizsession.errors import BlockedDetected, NotStarted
from bizsession.session_manager.browser import host_of
from conftest import FakeBizSession, FakeContext, FakePage

# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


class TestLifecycle:
    def test_page_before_start(self, session):
        with pytest.raises(NotStarted):
            session.page

    @pytest.mark.asyncio
    async def test_start_adopts_existing_page(self, session, page, config):
        await session.start()
        assert session.page is page
        assert session.fake_context.default_timeout == config.action_timeout_ms
        assert session.fake_context.default_navigation_timeout == config.navigation_timeout_ms
        assert config.user_data_dir.is_dir()

    @pytest.mark.asyncio
    async def test_start_creates_page_when_none(self, config):
        session = FakeBizSession(config, FakeContext())
        await session.start()
        assert session.page is session.fake_context.pages[0]

    @pytest.mark.asyncio
    async def test_start_is_idempotent(self, session):
        await session.start()
        await session.start()
        assert session.launches == 1

    @pytest.mark.asyncio
    async def test_stop_twice_is_safe(self, session):
        await session.start()
        await session.stop()
        await session.stop()
        assert session.fake_context.closed
        assert not session.is_running
        with pytest.raises(NotStarted):
            session.page

    @pytest.mark.asyncio
    async def test_launch_failure_propagates(self, config):
        session = FakeBizSession(config, FakeContext(), launch_error=RuntimeError("no display"))
        with pytest.raises(RuntimeError, match="no display"):
            await session.start()
        assert not session.is_running

    @pytest.mark.asyncio
    async def test_goto_before_start(self, session):
        with pytest.raises(NotStarted):
            await session.goto("https://biz.yelp.com/")


# ---------------------------------------------------------------------------
# Navigation guard
# ---------------------------------------------------------------------------


class TestGoto:
    @pytest.mark.asyncio
    async def test_dismisses_cookie_banner(self, session, page):
        page.visible[OVERLAY_DISMISS_SELECTORS[0]] = True
        await session.start()
        await session.goto("https://biz.yelp.com/")
        assert page.clicks == [OVERLAY_DISMISS_SELECTORS[0]]

    @pytest.mark.asyncio
    async def test_overlay_click_failure_ignored(self, session, page):
        page.visible[OVERLAY_DISMISS_SELECTORS[0]] = True
        page.click_errors.add(OVERLAY_DISMISS_SELECTORS[0])
        await session.start()
        await session.goto("https://biz.yelp.com/")
        assert page.url == "https://biz.yelp.com/"

    @pytest.mark.asyncio
    async def test_block_aborts_navigation(self, session, page):
        page.routes["https://biz.yelp.com/inbox"] = "https://biz.yelp.com/forbidden"
        await session.start()
        with pytest.raises(BlockedDetected):
            await session.goto("https://biz.yelp.com/inbox")


# ---------------------------------------------------------------------------
# Introspection
# ---------------------------------------------------------------------------


class TestStatus:
    @pytest.mark.asyncio
    async def test_unstarted(self, session):
        status = await session.status()
        assert status.to_payload() == {"started": False}

    @pytest.mark.asyncio
    async def test_flags(self, session, page):
        page.url = "https://business.yelp.com/"
        page.visible[LOGIN_ANY_FIELD_SELECTOR] = True
        page.boxes[CAPTCHA_IFRAME_SELECTOR] = [{"x": 0, "y": 0, "width": 300, "height": 300}]
        await session.start()

        payload = (await session.status()).to_payload()

        assert payload["started"] is True
        assert payload["host"] == "business.yelp.com"
        assert payload["flags"] == {
            "captchaVisible": True,
            "twoFactorVisible": False,
            "loginVisible": True,
            "marketingSite": True,
        }

    @pytest.mark.asyncio
    async def test_page_info(self, session, page):
        assert (await session.page_info()).to_payload() == {"started": False}
        await session.start()
        info = await session.page_info()
        assert info.to_payload() == {
            "started": True,
            "url": "https://biz.yelp.com/login",
            "title": "Yelp for Business",
        }

    def test_host_of(self):
        assert host_of("https://biz.yelp.com/inbox?x=1") == "biz.yelp.com"
        assert host_of("about:blank") is None

"""Tests for the login flow and ensure_authenticated."""

import pytest

from bizsession.constants import (
    BIZ_HOME_URL,
    BIZ_LOGIN_URL,
    EMAIL_SELECTOR,
    OTP_INPUT_SELECTOR,
    PASSWORD_SELECTOR,
)
from bizsession.errors import (
    LoginDidNotSucceed,
    LoginFieldsMissing,
    LoginSubmitFailed,
    MissingCredentials,
    UnexpectedRedirect,
)
from bizsession.models.session import Credentials
from bizsession.session_manager.challenges import ChallengeResolver
from bizsession.session_manager.login import LoginFlow
from conftest import ROLE_BUTTON, snapshot_dirs

CREDS = Credentials(username="owner@example.com", password="hunter2")


def _show_login_form(page):
    page.visible[EMAIL_SELECTOR] = True
    page.visible[PASSWORD_SELECTOR] = True
    page.visible[ROLE_BUTTON] = True


def _accept_login(page):
    page.url = "https://biz.yelp.com/home"
    page.visible[EMAIL_SELECTOR] = False
    page.visible[PASSWORD_SELECTOR] = False


# ---------------------------------------------------------------------------
# LoginFlow
# ---------------------------------------------------------------------------


class TestLoginFlow:
    @pytest.mark.asyncio
    async def test_success(self, config, page):
        _show_login_form(page)
        page.on_click[ROLE_BUTTON] = _accept_login

        await LoginFlow(ChallengeResolver(config)).run(page, CREDS)

        assert page.filled == {EMAIL_SELECTOR: "owner@example.com", PASSWORD_SELECTOR: "hunter2"}
        assert page.clicks == [ROLE_BUTTON]
        assert snapshot_dirs(config) == []

    @pytest.mark.asyncio
    async def test_falls_back_to_submit_selector(self, config, page):
        _show_login_form(page)
        page.visible[ROLE_BUTTON] = False

        with pytest.raises(LoginDidNotSucceed):
            await LoginFlow(ChallengeResolver(config)).run(page, CREDS)
        assert page.clicks == ['button[type="submit"], input[type="submit"]']

    @pytest.mark.asyncio
    async def test_missing_password_field(self, config, page):
        page.visible[EMAIL_SELECTOR] = True

        with pytest.raises(LoginFieldsMissing) as exc_info:
            await LoginFlow(ChallengeResolver(config)).run(page, CREDS)
        assert exc_info.value.snapshot_dir.name.endswith("biz-login-missing-fields")
        assert page.filled == {}

    @pytest.mark.asyncio
    async def test_form_still_visible_fails_without_retry(self, config, page):
        _show_login_form(page)

        with pytest.raises(LoginDidNotSucceed) as exc_info:
            await LoginFlow(ChallengeResolver(config)).run(page, CREDS)

        assert page.clicks == [ROLE_BUTTON]
        assert (exc_info.value.snapshot_dir / "meta.json").exists()

    @pytest.mark.asyncio
    async def test_click_failure(self, config, page):
        _show_login_form(page)
        page.click_errors.add(ROLE_BUTTON)

        with pytest.raises(LoginSubmitFailed) as exc_info:
            await LoginFlow(ChallengeResolver(config)).run(page, CREDS)
        assert "click failed" in str(exc_info.value.cause)

    @pytest.mark.asyncio
    async def test_two_factor_after_submit_is_waited_out(self, config, page):
        _show_login_form(page)

        def submit(p):
            p.url = "https://biz.yelp.com/verify"
            p.visible[EMAIL_SELECTOR] = False
            p.visible[OTP_INPUT_SELECTOR] = True

        page.on_click[ROLE_BUTTON] = submit
        page.on_resolve = lambda p: p.visible.update({OTP_INPUT_SELECTOR: False})

        await LoginFlow(ChallengeResolver(config)).run(page, CREDS)

        assert len(page.wait_calls) == 1
        assert [d.name.split("Z-", 1)[1] for d in snapshot_dirs(config)] == [
            "twofactor-login-post-submit"
        ]

    def test_credentials_repr_hides_secrets(self):
        assert "hunter2" not in repr(CREDS)
        assert "owner@example.com" not in str(CREDS)


# ---------------------------------------------------------------------------
# ensure_authenticated
# ---------------------------------------------------------------------------


class TestEnsureAuthenticated:
    @pytest.mark.asyncio
    async def test_already_logged_in(self, session, page):
        await session.ensure_authenticated()
        assert page.navigations == [BIZ_LOGIN_URL, BIZ_HOME_URL]
        assert page.clicks == []

    @pytest.mark.asyncio
    async def test_form_visible_without_credentials(self, session, page, config):
        _show_login_form(page)

        with pytest.raises(LoginFieldsMissing) as exc_info:
            await session.ensure_authenticated()

        assert isinstance(exc_info.value, MissingCredentials)
        assert exc_info.value.snapshot_dir.exists()
        assert len(snapshot_dirs(config)) == 1
        assert page.filled == {}

    @pytest.mark.asyncio
    async def test_logs_in_and_lands_on_portal(self, session, page):
        _show_login_form(page)
        page.on_click[ROLE_BUTTON] = _accept_login

        await session.ensure_authenticated(CREDS)

        assert page.url == BIZ_HOME_URL
        assert page.clicks == [ROLE_BUTTON]

    @pytest.mark.asyncio
    async def test_redirect_to_marketing_site(self, session, page):
        page.routes[BIZ_HOME_URL] = "https://business.yelp.com/"

        with pytest.raises(UnexpectedRedirect) as exc_info:
            await session.ensure_authenticated()

        assert exc_info.value.host == "business.yelp.com"
        assert exc_info.value.snapshot_dir.name.endswith("biz-auth-redirected-to-marketing")

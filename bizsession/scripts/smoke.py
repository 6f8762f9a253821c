"""Open the login page once and report what is showing."""

from __future__ import annotations

import asyncio
import json

from playwright.async_api import Page

from ..config import check_environment, session_config
from ..constants import BIZ_LOGIN_URL
from ..session_manager.browser import BizSession
from ..session_manager.challenges import detect_captcha, is_visible

EMAIL_PROBE = 'input[name="email"], input[type="email"]'
PASSWORD_PROBE = 'input[name="password"], input[type="password"]'


async def probe(page: Page) -> dict:
    return {
        "ok": True,
        "url": page.url,
        "title": await page.title(),
        "loginFieldsVisible": {
            "email": await is_visible(page.locator(EMAIL_PROBE)),
            "password": await is_visible(page.locator(PASSWORD_PROBE)),
        },
        "captchaVisible": await detect_captcha(page),
    }


async def run():
    session = BizSession(session_config())
    try:
        await session.start()
        page = session.page
        await page.goto(BIZ_LOGIN_URL, wait_until="domcontentloaded")
        print(json.dumps(await probe(page), indent=2))
    finally:
        await session.stop()


def main():
    check_environment()
    asyncio.run(run())


if __name__ == "__main__":
    main()

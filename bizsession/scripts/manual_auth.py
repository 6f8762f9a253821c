"""Open the browser for a manual Yelp for Business login and persist the profile."""

from __future__ import annotations

import asyncio

from ..config import check_environment, session_config
from ..constants import BIZ_HOME_URL
from ..session_manager.artifacts import capture_debug_artifacts
from ..session_manager.browser import BizSession

INSTRUCTIONS = """
A browser window should open.
1) Complete any CAPTCHA / verification.
2) Log into Yelp for Business normally (including 2FA if prompted).
3) Once you reach the biz dashboard/inbox, come back here and press Enter.
"""


async def run():
    config = session_config()
    session = BizSession(config)
    await session.start()
    try:
        page = session.page
        # No challenge guard here: the operator is expected to clear them by hand.
        await page.goto(BIZ_HOME_URL, wait_until="domcontentloaded")

        print(INSTRUCTIONS)
        await asyncio.to_thread(input, "Press Enter to finish and close the browser...")

        snapshot_dir = await capture_debug_artifacts(
            page, config.artifacts_dir, "biz-manual-auth-finish"
        )
    finally:
        await session.stop()

    print(f"Saved debug snapshot: {snapshot_dir}")
    print(f"Session data persisted in: {config.user_data_dir}")


def main():
    check_environment()
    asyncio.run(run())


if __name__ == "__main__":
    main()

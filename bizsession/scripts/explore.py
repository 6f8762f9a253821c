"""Crawl the authenticated portal home and its inbox/leads/review links.

Runs headful and may pause for CAPTCHA or verification; complete it in the
browser window and the crawl continues.
"""

from __future__ import annotations

import asyncio
import json
from datetime import datetime, timezone
from pathlib import Path

from playwright.async_api import Error as PlaywrightError

from ..config import check_environment, resolve_credentials, session_config
from ..constants import (
    ARTIFACTS_NAMESPACE,
    BIZ_BASE,
    BIZ_HOME_URL,
    EXPLORE_KEYWORDS,
    EXPLORE_MAX_LINKS,
    EXTRACT_LINKS_JS,
)
from ..session_manager.artifacts import capture_debug_artifacts
from ..session_manager.browser import BizSession


def normalize_links(raw_links: list[dict], base: str = BIZ_BASE) -> list[dict]:
    """Resolve root-relative hrefs, keep http(s) links, dedupe, sort by href."""
    unique: dict[str, dict] = {}
    for link in raw_links:
        href = link.get("href", "").strip()
        if href.startswith("/"):
            href = f"{base}{href}"
        if not href.startswith("http"):
            continue
        unique.setdefault(href, {"href": href, "text": link.get("text", "")})
    return sorted(unique.values(), key=lambda link: link["href"])


def interesting_links(links: list[dict], limit: int = EXPLORE_MAX_LINKS) -> list[dict]:
    def matches(link: dict) -> bool:
        haystack = f"{link['href']} {link['text']}".lower()
        return any(keyword in haystack for keyword in EXPLORE_KEYWORDS)

    return [link for link in links if matches(link)][:limit]


class Explorer:
    def __init__(self, session: BizSession):
        self.session = session
        self.visited: set[str] = set()
        self.pages: list[dict] = []

    async def visit(self, label: str, url: str) -> list[dict] | None:
        if url in self.visited:
            return None
        self.visited.add(url)

        await self.session.goto(url)
        page = self.session.page
        try:
            await page.wait_for_load_state("networkidle", timeout=10_000)
        except PlaywrightError:
            pass

        snapshot_dir = await capture_debug_artifacts(
            page, self.session.config.artifacts_dir, f"explore-{label}"
        )
        links = normalize_links(await page.evaluate(EXTRACT_LINKS_JS))
        (snapshot_dir / "internal-links.json").write_text(
            json.dumps(links, indent=2), encoding="utf-8"
        )

        self.pages.append(
            {
                "url": page.url,
                "title": await page.title(),
                "artifactsDir": str(snapshot_dir),
                "internalLinksCount": len(links),
            }
        )
        return links

    async def explore(self) -> dict:
        visited_at = datetime.now(timezone.utc).isoformat()
        home_links = await self.visit("home", BIZ_HOME_URL) or []
        for idx, link in enumerate(interesting_links(home_links), start=1):
            await self.visit(f"home-link-{idx}", link["href"])
        return {"visitedAt": visited_at, "pages": self.pages, "notes": []}


async def run():
    print("Note: this runs in headful mode and may pause for CAPTCHA / verification.")
    print("If a challenge appears, complete it in the browser window and the script will continue.\n")

    config = session_config()
    session = BizSession(config)
    try:
        await session.ensure_authenticated(resolve_credentials())
        explorer = Explorer(session)
        summary = await explorer.explore()

        summary_path = Path(config.artifacts_dir) / ARTIFACTS_NAMESPACE / "explore-summary.json"
        summary_path.parent.mkdir(parents=True, exist_ok=True)
        summary_path.write_text(json.dumps(summary, indent=2), encoding="utf-8")

        print(f"Explore complete. Summary: {summary_path}")
        for visited in summary["pages"]:
            print(f"- {visited['title']} ({visited['url']}) -> {visited['artifactsDir']}")
    finally:
        await session.stop()


def main():
    check_environment()
    asyncio.run(run())


if __name__ == "__main__":
    main()

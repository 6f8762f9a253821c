"""Scripted fake Playwright objects and session factories for bizsession tests."""

from pathlib import Path

import pytest
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from bizsession.models.session import SessionConfig
from bizsession.session_manager.browser import BizSession

ROLE_BUTTON = "role:button"

# ---------------------------------------------------------------------------
# Fake page
# ---------------------------------------------------------------------------


class FakeLocator:
    """Locator keyed by its selector string; state lives on the FakePage."""

    def __init__(self, page: "FakePage", key: str, index: int = 0):
        self._page = page
        self.key = key
        self._index = index

    @property
    def first(self) -> "FakeLocator":
        return FakeLocator(self._page, self.key, 0)

    def nth(self, index: int) -> "FakeLocator":
        return FakeLocator(self._page, self.key, index)

    def filter(self, has_text=None) -> "FakeLocator":
        return self

    def _maybe_fail(self):
        if self.key in self._page.failing:
            raise PlaywrightError(f"query failed for {self.key}")

    async def count(self) -> int:
        self._maybe_fail()
        return len(self._page.boxes.get(self.key, []))

    async def is_visible(self) -> bool:
        self._maybe_fail()
        return self._page.visible.get(self.key, False)

    async def bounding_box(self):
        self._maybe_fail()
        return self._page.boxes.get(self.key, [])[self._index]

    async def fill(self, value: str):
        self._page.filled[self.key] = value

    async def click(self):
        self._page.clicks.append(self.key)
        if self.key in self._page.click_errors:
            raise PlaywrightError(f"click failed for {self.key}")
        callback = self._page.on_click.get(self.key)
        if callback:
            callback(self._page)


class FakePage:
    def __init__(self, url: str = "about:blank", title: str = "Yelp for Business"):
        self.url = url
        self.title_text = title
        self.html = "<html><body>fake</body></html>"
        self.visible: dict[str, bool] = {}
        self.boxes: dict[str, list] = {}
        self.failing: set[str] = set()
        self.click_errors: set[str] = set()
        self.on_click: dict = {}
        self.routes: dict[str, str] = {}
        self.links: list[dict] = []
        self.filled: dict[str, str] = {}
        self.clicks: list[str] = []
        self.navigations: list[str] = []
        self.wait_calls: list[dict] = []
        self.resolves_challenges = True
        self.on_resolve = None
        self.screenshot_error = False

    def locator(self, selector: str) -> FakeLocator:
        return FakeLocator(self, selector)

    def get_by_role(self, role: str, name=None) -> FakeLocator:
        return FakeLocator(self, f"role:{role}")

    async def goto(self, url: str, wait_until: str = "load"):
        self.navigations.append(url)
        self.url = self.routes.get(url, url)

    async def title(self) -> str:
        return self.title_text

    async def content(self) -> str:
        return self.html

    async def screenshot(self, path: str, full_page: bool = False):
        if self.screenshot_error:
            raise PlaywrightError("screenshot failed")
        Path(path).write_bytes(b"\x89PNG fake")

    async def wait_for_function(self, expression: str, arg=None, timeout: float = 0):
        self.wait_calls.append({"expression": expression, "arg": arg, "timeout": timeout})
        if not self.resolves_challenges:
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded.")
        if self.on_resolve:
            self.on_resolve(self)

    async def wait_for_url(self, predicate, timeout: float = 0):
        if not predicate(self.url):
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded.")

    async def wait_for_load_state(self, state: str = "load", timeout: float = 0):
        return None

    async def evaluate(self, expression: str):
        return self.links


class FakeContext:
    def __init__(self, pages=None):
        self.pages = list(pages or [])
        self.default_timeout = None
        self.default_navigation_timeout = None
        self.closed = False

    def set_default_timeout(self, timeout: float):
        self.default_timeout = timeout

    def set_default_navigation_timeout(self, timeout: float):
        self.default_navigation_timeout = timeout

    async def new_page(self) -> FakePage:
        page = FakePage()
        self.pages.append(page)
        return page

    async def close(self):
        self.closed = True


class FakeBizSession(BizSession):
    """BizSession whose launch hands back a FakeContext instead of Camoufox."""

    def __init__(self, config: SessionConfig, context: FakeContext, launch_error=None):
        super().__init__(config)
        self.fake_context = context
        self.launch_error = launch_error
        self.launches = 0

    async def _launch_context(self):
        self.launches += 1
        if self.launch_error:
            raise self.launch_error
        return self.fake_context


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def config(tmp_path) -> SessionConfig:
    return SessionConfig(
        artifacts_dir=tmp_path / "artifacts",
        user_data_dir=tmp_path / "profile",
        challenge_timeout_ms=1_500,
        slow_mo_ms=0,
    )


@pytest.fixture
def page() -> FakePage:
    return FakePage(url="https://biz.yelp.com/login")


@pytest.fixture
def session(config, page) -> FakeBizSession:
    return FakeBizSession(config, FakeContext([page]))


def snapshot_dirs(config: SessionConfig) -> list[Path]:
    root = Path(config.artifacts_dir) / "yelp-biz"
    if not root.exists():
        return []
    return sorted(p for p in root.iterdir() if p.is_dir())

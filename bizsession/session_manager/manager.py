"""Session Manager HTTP service.

Local web server exposing the Yelp for Business browser session to
external controllers. Every handler that touches the browser goes through
one SerialQueue, so at most one operation runs against the page at a time.

Endpoints:
    GET  /health                 - Liveness
    POST /yelp/biz/ensure-auth   - Start the session and log in if needed
    GET  /yelp/biz/page          - Current URL and title
    GET  /yelp/biz/status        - Page state and challenge flags (never errors)
    POST /yelp/biz/navigate      - Guarded navigation to an allow-listed URL
    POST /yelp/biz/stop          - Close the browser
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

from aiohttp import web
from pydantic import ValidationError

from ..config import (
    SESSION_MANAGER_HOST,
    SESSION_MANAGER_PORT,
    check_environment,
    ensure_dirs,
    resolve_credentials,
    session_config,
)
from ..errors import BizSessionError, InvalidRequest, NotStarted, SnapshotError
from ..models.session import (
    Credentials,
    NavigateRequest,
    NavigateResult,
    PageInfo,
    SessionStatus,
)
from .artifacts import capture_debug_artifacts
from .browser import BizSession
from .queue import SerialQueue

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(asctime)s [%(name)s] %(levelname)s: %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)


def parse_navigate_request(body: object) -> NavigateRequest:
    """Validate a navigate body before any browser work is queued.

    Raises:
        InvalidRequest: the body is malformed or the URL is not allow-listed.
    """
    if not isinstance(body, dict):
        raise InvalidRequest("Invalid request body", [{"path": [], "message": "Expected an object"}])
    try:
        return NavigateRequest.model_validate(body)
    except ValidationError as e:
        issues = [{"path": list(err["loc"]), "message": err["msg"]} for err in e.errors()]
        raise InvalidRequest("Invalid request body", issues) from None


class SessionManager:
    """Serializes control-surface operations onto the single browser session."""

    def __init__(self, session: BizSession, credentials: Optional[Credentials] = None):
        self.session = session
        self.credentials = credentials
        self.queue = SerialQueue()

    async def ensure_authenticated(self, credentials: Optional[Credentials] = None):
        credentials = credentials or self.credentials
        await self.queue.run(lambda: self.session.ensure_authenticated(credentials))

    async def current_page_info(self) -> PageInfo:
        return await self.queue.run(self.session.page_info)

    async def status(self) -> SessionStatus:
        try:
            return await self.queue.run(self.session.status)
        except Exception as e:
            logger.warning(f"Status failed: {e}")
            return SessionStatus(started=False)

    async def navigate(self, url: str, capture_label: Optional[str] = None) -> NavigateResult:
        request = parse_navigate_request({"url": url, "captureLabel": capture_label})
        return await self.queue.run(lambda: self._navigate(request))

    async def _navigate(self, request: NavigateRequest) -> NavigateResult:
        await self.session.start()
        await self.session.goto(request.url)

        page = self.session.page
        snapshot_dir = None
        if request.capture_label:
            snapshot_dir = await capture_debug_artifacts(
                page, self.session.config.artifacts_dir, request.capture_label
            )
        return NavigateResult(
            url=page.url,
            title=await page.title(),
            artifacts_dir=str(snapshot_dir) if snapshot_dir else None,
        )

    async def stop(self):
        await self.queue.run(self.session.stop)


# ── HTTP Handlers ────────────────────────────────────────────────────────────


def error_response(e: Exception) -> web.Response:
    if isinstance(e, InvalidRequest):
        return web.json_response({"error": str(e), "issues": e.issues}, status=400)
    if isinstance(e, NotStarted):
        return web.json_response({"error": str(e), "type": "NotStarted"}, status=409)
    if isinstance(e, BizSessionError):
        snapshot_dir = e.snapshot_dir if isinstance(e, SnapshotError) else None
        return web.json_response(
            {
                "error": str(e),
                "type": type(e).__name__,
                "snapshot_dir": str(snapshot_dir) if snapshot_dir else None,
            },
            status=500,
        )
    return web.json_response({"error": str(e)}, status=500)


async def handle_health(request: web.Request) -> web.Response:
    return web.json_response({"ok": True})


async def handle_ensure_auth(request: web.Request) -> web.Response:
    mgr: SessionManager = request.app["manager"]
    try:
        await mgr.ensure_authenticated()
    except Exception as e:
        logger.error(f"ensure-auth failed: {e}", exc_info=True)
        return error_response(e)
    return web.json_response({"ok": True})


async def handle_page(request: web.Request) -> web.Response:
    mgr: SessionManager = request.app["manager"]
    try:
        info = await mgr.current_page_info()
    except Exception as e:
        logger.error(f"page info failed: {e}", exc_info=True)
        return error_response(e)
    return web.json_response(info.to_payload())


async def handle_status(request: web.Request) -> web.Response:
    mgr: SessionManager = request.app["manager"]
    status = await mgr.status()
    return web.json_response(status.to_payload())


async def handle_navigate(request: web.Request) -> web.Response:
    mgr: SessionManager = request.app["manager"]
    try:
        body = await request.json() if request.can_read_body else {}
    except ValueError:
        body = None

    try:
        parsed = parse_navigate_request(body)
        result = await mgr.navigate(parsed.url, parsed.capture_label)
    except InvalidRequest as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"navigate failed: {e}", exc_info=True)
        return error_response(e)
    return web.json_response(result.model_dump(by_alias=True))


async def handle_stop(request: web.Request) -> web.Response:
    mgr: SessionManager = request.app["manager"]
    await mgr.stop()
    return web.json_response({"ok": True})


# ── App Factory ──────────────────────────────────────────────────────────────


async def on_cleanup(app: web.Application):
    mgr: SessionManager = app["manager"]
    await mgr.session.stop()
    logger.info("Session Manager stopped.")


def create_app(manager: Optional[SessionManager] = None) -> web.Application:
    """Build the aiohttp application around a SessionManager.

    Without an explicit manager, one is built from the environment.
    """
    if manager is None:
        check_environment()
        ensure_dirs()
        manager = SessionManager(BizSession(session_config()), resolve_credentials())

    app = web.Application()
    app["manager"] = manager
    app.on_cleanup.append(on_cleanup)

    app.router.add_get("/health", handle_health)
    app.router.add_post("/yelp/biz/ensure-auth", handle_ensure_auth)
    app.router.add_get("/yelp/biz/page", handle_page)
    app.router.add_get("/yelp/biz/status", handle_status)
    app.router.add_post("/yelp/biz/navigate", handle_navigate)
    app.router.add_post("/yelp/biz/stop", handle_stop)

    return app


def main():
    """Run the session manager as a standalone HTTP service."""
    app = create_app()
    logger.info(f"Session Manager starting on {SESSION_MANAGER_HOST}:{SESSION_MANAGER_PORT}")
    web.run_app(app, host=SESSION_MANAGER_HOST, port=SESSION_MANAGER_PORT)


if __name__ == "__main__":
    main()

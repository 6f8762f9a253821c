"""MCP Server entry point for the Yelp for Business session.

Exposes the session manager to MCP clients:
- ensure_auth, session_status, current_page, navigate, stop_session

The Session Manager HTTP service (aiohttp) is auto-started as part of the
MCP server lifecycle, no separate process needed.
"""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager

from aiohttp.web import AppRunner, TCPSite
from mcp.server.fastmcp import FastMCP

from .config import SESSION_MANAGER_HOST, SESSION_MANAGER_PORT
from .tools import session_tools

# Configure logging to stderr (stdout is reserved for MCP JSON-RPC)
logging.basicConfig(
    stream=sys.stderr,
    level=logging.INFO,
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
)
logger = logging.getLogger("bizsession")


# ── Lifespan: auto-start Session Manager ─────────────────────────────────────


@asynccontextmanager
async def lifespan(server: FastMCP):
    """Start the Session Manager HTTP service alongside the MCP server."""
    from .session_manager.manager import create_app

    app = create_app()
    runner = AppRunner(app)
    await runner.setup()
    site = TCPSite(runner, SESSION_MANAGER_HOST, SESSION_MANAGER_PORT)
    managed = False
    try:
        await site.start()
        logger.info(
            "Session Manager auto-started on %s:%s", SESSION_MANAGER_HOST, SESSION_MANAGER_PORT
        )
        managed = True
    except OSError:
        # Port already in use, assume a Session Manager was started manually
        logger.info(
            "Session Manager already running on %s:%s", SESSION_MANAGER_HOST, SESSION_MANAGER_PORT
        )
        await runner.cleanup()

    try:
        yield {}
    finally:
        if managed:
            await runner.cleanup()
            logger.info("Session Manager stopped.")


# ── MCP Server ───────────────────────────────────────────────────────────────

mcp = FastMCP(
    "yelp-biz-session",
    lifespan=lifespan,
    instructions=(
        "Yelp for Business session - drives one persistent, visible browser. "
        "Call ensure_auth first; if a CAPTCHA or verification code appears, ask the "
        "user to complete it in the browser window while the call waits. "
        "Use navigate to open Yelp pages and session_status to inspect the page."
    ),
)


@mcp.tool()
async def tool_ensure_auth() -> str:
    """Start the browser and log in to Yelp for Business if needed.

    Blocks while a CAPTCHA or verification prompt is waiting in the browser window.
    """
    return await session_tools.ensure_auth()


@mcp.tool()
async def tool_session_status() -> str:
    """Check page state: URL, title, and captcha/2FA/login/marketing-site flags."""
    return await session_tools.session_status()


@mcp.tool()
async def tool_current_page() -> str:
    """Return the current page title and URL."""
    return await session_tools.current_page()


@mcp.tool()
async def tool_navigate(url: str, capture_label: str = "") -> str:
    """Open a Yelp URL in the session browser.

    Args:
        url: Must start with https://biz.yelp.com/, https://business.yelp.com/ or https://www.yelp.com/.
        capture_label: If set, save a debug snapshot of the page under this label.
    """
    return await session_tools.navigate(url, capture_label)


@mcp.tool()
async def tool_stop_session() -> str:
    """Close the browser. The logged-in profile is kept on disk."""
    return await session_tools.stop_session()


# ── Entry Point ──────────────────────────────────────────────────────────────


def main():
    """Run the MCP server on STDIO transport."""
    logger.info("Starting Yelp Biz session MCP server...")
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()

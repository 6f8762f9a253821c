"""MCP tools for driving the Yelp for Business browser session."""

from __future__ import annotations

import json

import httpx

from ..config import SESSION_MANAGER_URL

# Challenge waits can take up to the configured challenge timeout per step.
REQUEST_TIMEOUT = 30 * 60.0


async def _call_session_manager(method: str, path: str, json_body: dict | None = None) -> dict:
    """Make a request to the session manager HTTP service."""
    url = f"{SESSION_MANAGER_URL}{path}"
    try:
        async with httpx.AsyncClient(timeout=REQUEST_TIMEOUT) as client:
            if method == "GET":
                resp = await client.get(url)
            else:
                resp = await client.post(url, json=json_body or {})

            if resp.status_code >= 400:
                data = resp.json()
                return {
                    "error": data.get("error", f"HTTP {resp.status_code}"),
                    "issues": data.get("issues"),
                    "snapshot_dir": data.get("snapshot_dir"),
                }
            return resp.json()

    except httpx.ConnectError:
        return {
            "error": "Session Manager is not reachable at "
            f"{SESSION_MANAGER_URL}. It should auto-start with the MCP server. "
            "If running standalone: bizsession-manager"
        }
    except httpx.TimeoutException:
        return {"error": "Session Manager timed out. A challenge may still be waiting in the browser."}
    except Exception as e:
        return {"error": f"Failed to connect to Session Manager: {e}"}


def _format_error(result: dict) -> str:
    message = f"Error: {result['error']}"
    for issue in result.get("issues") or []:
        message += f"\n- {'.'.join(str(p) for p in issue.get('path', []))}: {issue.get('message')}"
    return message


async def ensure_auth() -> str:
    """Start the browser session and log in to Yelp for Business if needed.

    Any CAPTCHA or verification prompt must be completed in the browser
    window; the call blocks until it clears or times out.
    """
    result = await _call_session_manager("POST", "/yelp/biz/ensure-auth")
    if "error" in result:
        return _format_error(result)
    return "Authenticated on biz.yelp.com."


async def session_status() -> str:
    """Return page state and challenge flags as JSON."""
    result = await _call_session_manager("GET", "/yelp/biz/status")
    if "error" in result:
        return _format_error(result)
    return json.dumps(result, indent=2)


async def current_page() -> str:
    result = await _call_session_manager("GET", "/yelp/biz/page")
    if "error" in result:
        return _format_error(result)
    if not result.get("started"):
        return "Browser session is not started."
    return f"{result.get('title')} ({result.get('url')})"


async def navigate(url: str, capture_label: str = "") -> str:
    """Navigate the session to a Yelp URL, optionally capturing a snapshot."""
    body: dict = {"url": url}
    if capture_label:
        body["captureLabel"] = capture_label
    result = await _call_session_manager("POST", "/yelp/biz/navigate", body)
    if "error" in result:
        return _format_error(result)

    message = f"Now at {result.get('title')} ({result.get('url')})"
    if result.get("artifactsDir"):
        message += f"\nSnapshot: {result['artifactsDir']}"
    return message


async def stop_session() -> str:
    result = await _call_session_manager("POST", "/yelp/biz/stop")
    if "error" in result:
        return _format_error(result)
    return "Session stopped. The browser profile is kept for the next start."

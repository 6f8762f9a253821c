"""Debug snapshots: screenshot, DOM, and metadata for offline diagnosis."""

from __future__ import annotations

import asyncio
import json
import logging
import re
import sys
from datetime import datetime, timezone
from pathlib import Path

from playwright.async_api import Page

from ..constants import ARTIFACTS_NAMESPACE

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(asctime)s [%(name)s] %(levelname)s: %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)


def safe_segment(value: str) -> str:
    """Lowercase slug safe for use as a directory name."""
    slug = re.sub(r"[^a-z0-9]+", "-", value.strip().lower())
    return slug.strip("-")[:80]


def timestamp_for_path(moment: datetime) -> str:
    moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H-%M-%S-") + f"{moment.microsecond // 1000:03d}Z"


async def _read_or_default(coro, default):
    try:
        return await coro
    except Exception as e:
        logger.warning(f"Snapshot read failed: {e}")
        return default


async def capture_debug_artifacts(
    page: Page,
    artifacts_dir: Path,
    label: str,
    namespace: str = ARTIFACTS_NAMESPACE,
) -> Path:
    """Write page.png, page.html and meta.json into a fresh labeled directory.

    Partial failures are logged and skipped so that a broken page never hides
    the error the snapshot was taken for.

    Returns:
        The snapshot directory.
    """
    now = datetime.now(timezone.utc)
    snapshot_dir = Path(artifacts_dir) / namespace / f"{timestamp_for_path(now)}-{safe_segment(label)}"
    try:
        snapshot_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.warning(f"Snapshot {label!r}: could not create {snapshot_dir}: {e}")

    url = page.url
    title, html = await asyncio.gather(
        _read_or_default(page.title(), ""),
        _read_or_default(page.content(), ""),
    )

    meta = {"capturedAt": now.isoformat().replace("+00:00", "Z"), "title": title, "url": url}
    results = await asyncio.gather(
        page.screenshot(path=str(snapshot_dir / "page.png"), full_page=True),
        asyncio.to_thread((snapshot_dir / "page.html").write_text, html, encoding="utf-8"),
        asyncio.to_thread(
            (snapshot_dir / "meta.json").write_text, json.dumps(meta, indent=2), encoding="utf-8"
        ),
        return_exceptions=True,
    )
    for name, result in zip(("page.png", "page.html", "meta.json"), results):
        if isinstance(result, Exception):
            logger.warning(f"Snapshot {label!r}: failed to write {name}: {result}")

    logger.info(f"Snapshot {label!r} written to {snapshot_dir}")
    return snapshot_dir

"""Typed exceptions for the Yelp for Business session."""

from __future__ import annotations

from pathlib import Path
from typing import Optional


class BizSessionError(Exception):
    """Base exception for all session errors."""


class ConfigError(BizSessionError):
    """Environment configuration is invalid or incomplete."""


class NotStarted(BizSessionError):
    """An operation needed the browser session before start() was called."""

    def __init__(self):
        super().__init__("Browser session not started. Call start() first.")


class InvalidRequest(BizSessionError):
    """A control-surface request failed validation before touching the browser."""

    def __init__(self, message: str, issues: Optional[list[dict]] = None):
        self.issues = issues or []
        super().__init__(message)


class SnapshotError(BizSessionError):
    """A failure caused by unexpected page state, paired with a debug snapshot."""

    def __init__(self, message: str, snapshot_dir: Path):
        self.snapshot_dir = snapshot_dir
        super().__init__(f"{message} Debug artifacts written to: {snapshot_dir}")


class ChallengeTimeout(SnapshotError):
    """A CAPTCHA or two-factor prompt was still present when the wait expired."""

    def __init__(self, kind, snapshot_dir: Path):
        self.kind = kind
        super().__init__(f"{kind.label} still present after waiting.", snapshot_dir)


class BlockedDetected(SnapshotError):
    """The target served a block page instead of content."""

    def __init__(self, url: str, title: str, snapshot_dir: Path):
        self.url = url
        self.title = title
        super().__init__(
            f"Yelp Biz appears blocked/unavailable (url={url}, title={title!r}).",
            snapshot_dir,
        )


class LoginFieldsMissing(SnapshotError):
    """The login page did not expose the expected email/password fields."""

    def __init__(self, snapshot_dir: Path, message: Optional[str] = None):
        super().__init__(
            message or "Biz login page did not expose expected email/password fields.",
            snapshot_dir,
        )


class MissingCredentials(LoginFieldsMissing):
    """The login form is showing but the caller supplied no credentials."""

    def __init__(self, snapshot_dir: Path):
        super().__init__(
            snapshot_dir,
            "Yelp Biz login form is visible but no credentials were provided. "
            "Set YELP_BUSINESS_USERNAME + YELP_BUSINESS_PASSWORD or run "
            "`bizsession-manual-auth` to log in manually.",
        )


class LoginSubmitFailed(SnapshotError):
    """Clicking the 'Log in' control raised."""

    def __init__(self, snapshot_dir: Path, cause: BaseException):
        self.cause = cause
        super().__init__(
            f"Failed to click the 'Log in' submit button (underlying error: {cause}).",
            snapshot_dir,
        )


class LoginDidNotSucceed(SnapshotError):
    """The form was submitted but the login form is still showing."""

    def __init__(self, snapshot_dir: Path):
        super().__init__("Login did not succeed (login form still visible).", snapshot_dir)


class UnexpectedRedirect(SnapshotError):
    """After authentication the portal redirected to a non-portal host."""

    def __init__(self, host: str, expected_host: str, snapshot_dir: Path):
        self.host = host
        self.expected_host = expected_host
        super().__init__(
            f"Expected to land on {expected_host} after auth, but got redirected to {host}. "
            "This usually means you are not authenticated or the account cannot access "
            "the biz portal.",
            snapshot_dir,
        )

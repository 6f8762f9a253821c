"""Application configuration loaded from environment variables."""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .errors import ConfigError
from .models.session import Credentials, SessionConfig

load_dotenv()

_TRUE_VALUES = {"1", "true", "t", "yes", "y", "on"}
_FALSE_VALUES = {"0", "false", "f", "no", "n", "off"}


def _env(name: str, environ: Optional[Mapping[str, str]] = None) -> Optional[str]:
    """Return a trimmed env var, treating blank values as unset."""
    value = (os.environ if environ is None else environ).get(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


def parse_int(name: str, value: Optional[str], default: int) -> int:
    if value is None:
        return default
    try:
        return int(value, 10)
    except ValueError:
        raise ConfigError(f"Invalid integer value for {name}: {value!r}") from None


def parse_bool(name: str, value: Optional[str], default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    raise ConfigError(f"Invalid boolean value for {name}: {value!r}")


# Paths
ARTIFACTS_DIR = Path(_env("ARTIFACTS_DIR") or "artifacts").resolve()
BIZ_USER_DATA_DIR = Path(_env("YELP_BIZ_USER_DATA_DIR") or "state/yelp-biz/user-data").resolve()

# Session manager
SESSION_MANAGER_HOST = _env("SESSION_MANAGER_HOST") or "127.0.0.1"
SESSION_MANAGER_PORT = parse_int("PORT", _env("PORT"), 3000)
SESSION_MANAGER_URL = f"http://{SESSION_MANAGER_HOST}:{SESSION_MANAGER_PORT}"

# Browser
SLOW_MO_MS = parse_int("SLOW_MO_MS", _env("SLOW_MO_MS"), 250)
BROWSER_TIMEOUT = parse_int("BROWSER_TIMEOUT", _env("BROWSER_TIMEOUT"), 30_000)
BROWSER_NAVIGATION_TIMEOUT = parse_int(
    "BROWSER_NAVIGATION_TIMEOUT", _env("BROWSER_NAVIGATION_TIMEOUT"), 45_000
)
CHALLENGE_TIMEOUT_MS = parse_int("CHALLENGE_TIMEOUT_MS", _env("CHALLENGE_TIMEOUT_MS"), 10 * 60_000)


def check_environment(environ: Optional[Mapping[str, str]] = None):
    """Reject settings this service does not support.

    Raises:
        ConfigError: on a known env var typo, or if headless mode is requested.
    """
    if _env("YELP_BUSINESS_USERNMAE", environ) is not None:
        raise ConfigError(
            "Found env var YELP_BUSINESS_USERNMAE, which looks like a typo. "
            "Did you mean YELP_BUSINESS_USERNAME?"
        )
    if parse_bool("HEADLESS", _env("HEADLESS", environ), False):
        raise ConfigError(
            "HEADLESS=true is not supported. This service always runs the browser in headful mode."
        )


def resolve_credentials(environ: Optional[Mapping[str, str]] = None) -> Optional[Credentials]:
    """Pick the single configured credential pair, or None for manual login.

    Two env var pairs are accepted: YELP_BUSINESS_* (preferred) and
    YELP_BIZ_* (alias). Setting half a pair, or both pairs, is an error.
    """
    candidates: list[tuple[str, Credentials]] = []

    for prefix in ("YELP_BUSINESS", "YELP_BIZ"):
        username = _env(f"{prefix}_USERNAME", environ)
        password = _env(f"{prefix}_PASSWORD", environ)
        if (username is None) != (password is None):
            raise ConfigError(
                f"Incomplete biz credentials: set both {prefix}_USERNAME and {prefix}_PASSWORD."
            )
        if username is not None:
            candidates.append((f"{prefix}_*", Credentials(username=username, password=password)))

    if not candidates:
        return None
    if len(candidates) > 1:
        sources = ", ".join(source for source, _ in candidates)
        raise ConfigError(
            f"Ambiguous Yelp for Business credentials: found multiple credential pairs "
            f"({sources}). Set only one pair."
        )
    return candidates[0][1]


def require_credentials(environ: Optional[Mapping[str, str]] = None) -> Credentials:
    credentials = resolve_credentials(environ)
    if credentials is None:
        raise ConfigError(
            "Missing Yelp for Business credentials. Set either "
            "(YELP_BUSINESS_USERNAME + YELP_BUSINESS_PASSWORD) or "
            "(YELP_BIZ_USERNAME + YELP_BIZ_PASSWORD). If you prefer not to store "
            "passwords, run `bizsession-manual-auth` to log in manually and persist a session."
        )
    return credentials


def session_config() -> SessionConfig:
    """Build the session settings from the environment."""
    return SessionConfig(
        artifacts_dir=ARTIFACTS_DIR,
        user_data_dir=BIZ_USER_DATA_DIR,
        challenge_timeout_ms=CHALLENGE_TIMEOUT_MS,
        slow_mo_ms=SLOW_MO_MS,
        action_timeout_ms=BROWSER_TIMEOUT,
        navigation_timeout_ms=BROWSER_NAVIGATION_TIMEOUT,
    )


def ensure_dirs():
    """Create required data directories if they don't exist."""
    ARTIFACTS_DIR.mkdir(parents=True, exist_ok=True)
    BIZ_USER_DATA_DIR.mkdir(parents=True, exist_ok=True)

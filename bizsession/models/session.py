"""Pydantic models for session configuration, challenges, and control-surface payloads."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator

from ..constants import ALLOWED_URL_PREFIXES


class SessionConfig(BaseModel):
    """Immutable settings for one persistent browser session."""

    model_config = ConfigDict(frozen=True)

    artifacts_dir: Path
    user_data_dir: Path
    challenge_timeout_ms: int = 10 * 60_000
    slow_mo_ms: Optional[int] = None
    action_timeout_ms: int = 30_000
    navigation_timeout_ms: int = 45_000


class Credentials(BaseModel):
    username: str
    password: SecretStr

    def __repr__(self) -> str:
        return "Credentials(username=***, password=***)"

    __str__ = __repr__


class ChallengeKind(str, Enum):
    CAPTCHA = "captcha"
    TWO_FACTOR = "twofactor"
    BLOCK = "blocked"

    @property
    def label(self) -> str:
        return {
            ChallengeKind.CAPTCHA: "CAPTCHA",
            ChallengeKind.TWO_FACTOR: "Two-factor / verification step",
            ChallengeKind.BLOCK: "Block page",
        }[self]


class ChallengeOutcome(BaseModel):
    """Result of one detection pass for one challenge kind."""

    kind: ChallengeKind
    was_present: bool = False
    resolved_within_timeout: bool = False
    snapshot_dir: Optional[Path] = None


class PageInfo(BaseModel):
    started: bool = False
    url: Optional[str] = None
    title: Optional[str] = None

    def to_payload(self) -> dict:
        if not self.started:
            return {"started": False}
        return self.model_dump()


class StatusFlags(BaseModel):
    captcha_visible: bool = Field(False, serialization_alias="captchaVisible")
    two_factor_visible: bool = Field(False, serialization_alias="twoFactorVisible")
    login_visible: bool = Field(False, serialization_alias="loginVisible")
    marketing_site: bool = Field(False, serialization_alias="marketingSite")


class SessionStatus(BaseModel):
    """Snapshot of the live session for monitoring callers."""

    started: bool = False
    url: Optional[str] = None
    host: Optional[str] = None
    title: Optional[str] = None
    flags: Optional[StatusFlags] = None

    def to_payload(self) -> dict:
        if not self.started:
            return {"started": False}
        return self.model_dump(by_alias=True)


class NavigateRequest(BaseModel):
    url: str
    capture_label: Optional[str] = Field(None, alias="captureLabel", min_length=1)

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("url")
    @classmethod
    def url_must_be_allowed(cls, value: str) -> str:
        if not any(value.startswith(prefix) for prefix in ALLOWED_URL_PREFIXES):
            raise ValueError(f"Only Yelp URLs are allowed: {', '.join(ALLOWED_URL_PREFIXES)}")
        return value


class NavigateResult(BaseModel):
    url: str
    title: str
    artifacts_dir: Optional[str] = Field(None, serialization_alias="artifactsDir")

"""Yelp for Business URLs, selectors, and challenge signal patterns."""

import re

# ── URLs ─────────────────────────────────────────────────────────────────────

BIZ_BASE = "https://biz.yelp.com"
BIZ_LOGIN_URL = f"{BIZ_BASE}/login"
BIZ_HOME_URL = f"{BIZ_BASE}/"

AUTHENTICATED_HOST = "biz.yelp.com"
MARKETING_HOST = "business.yelp.com"

ALLOWED_URL_PREFIXES = (
    "https://biz.yelp.com/",
    "https://business.yelp.com/",
    "https://www.yelp.com/",
)

ARTIFACTS_NAMESPACE = "yelp-biz"

# ── Browser ──────────────────────────────────────────────────────────────────

WINDOW_SIZE = (1280, 800)
LOGIN_REDIRECT_TIMEOUT_MS = 45_000

# ── Login Selectors ──────────────────────────────────────────────────────────

# Priority order: test-id, name, id, input type.
EMAIL_SELECTOR = (
    'input[data-testid="email"], input[name="email"], input#email, input[type="email"]'
)
PASSWORD_SELECTOR = (
    'input[data-testid="password"], input[name="password"], input#password, input[type="password"]'
)
LOGIN_ANY_FIELD_SELECTOR = (
    'input[data-testid="email"], input[name="email"], input[type="email"], '
    'input[data-testid="password"], input[name="password"], input[type="password"]'
)
SUBMIT_ROLE_NAME = re.compile(r"^log in$", re.IGNORECASE)
SUBMIT_FALLBACK_SELECTOR = 'button[type="submit"], input[type="submit"]'
SUBMIT_TEXT = re.compile(r"log in", re.IGNORECASE)

# ── Overlays ─────────────────────────────────────────────────────────────────

OVERLAY_DISMISS_SELECTORS = [
    "#onetrust-accept-btn-handler",
    'button[id="onetrust-accept-btn-handler"]',
]

# ── Challenge Detection ──────────────────────────────────────────────────────

CAPTCHA_IFRAME_SELECTOR = ", ".join(
    [
        'iframe[src*="captcha-delivery.com" i]',  # DataDome
        'iframe[src*="hcaptcha.com" i]',
        'iframe[src*="recaptcha" i]',
        'iframe[title*="captcha" i]',
    ]
)
# Smaller frames are invisible widgets or sign-in badges, not blocking challenges.
CAPTCHA_MIN_SIZE = 100

OTP_INPUT_SELECTOR = (
    'input[autocomplete="one-time-code"], input[name*="code" i], input[id*="code" i]'
)
TWO_FACTOR_TEXT_PATTERN = r"two[- ]factor|2fa|verification code|authentication code|enter the code"
TWO_FACTOR_TEXT_SELECTOR = f"text=/{TWO_FACTOR_TEXT_PATTERN}/i"

BLOCK_URL_PATTERN = re.compile(r"access-denied|blocked|forbidden|challenge", re.IGNORECASE)
BLOCK_TITLE = "error: the request could not be satisfied"
BLOCK_TEXT_SELECTOR = "text=/generated by cloudfront|request could not be satisfied/i"

# Resolved once no large, rendered captcha frame remains.
CAPTCHA_RESOLVED_JS = """
([selector, minSize]) => {
  const frames = Array.from(document.querySelectorAll(selector));
  return frames.every((frame) => {
    const style = window.getComputedStyle(frame);
    if (style.display === "none" || style.visibility === "hidden") return true;
    const rect = frame.getBoundingClientRect();
    if (rect.width === 0 || rect.height === 0) return true;
    return rect.width < minSize || rect.height < minSize;
  });
}
"""

# Resolved once no visible OTP input and no verification-code wording remain.
TWO_FACTOR_RESOLVED_JS = """
([selector, pattern]) => {
  const visible = (el) => {
    const style = window.getComputedStyle(el);
    if (style.display === "none" || style.visibility === "hidden") return false;
    const rect = el.getBoundingClientRect();
    return rect.width > 0 && rect.height > 0;
  };
  if (Array.from(document.querySelectorAll(selector)).some(visible)) return false;
  const bodyText = (document.body && document.body.innerText) || "";
  return !new RegExp(pattern, "i").test(bodyText);
}
"""

# ── Exploration ──────────────────────────────────────────────────────────────

EXPLORE_KEYWORDS = ["inbox", "message", "request", "leads", "review"]
EXPLORE_MAX_LINKS = 8

EXTRACT_LINKS_JS = """
() => Array.from(document.querySelectorAll("a[href]"))
  .map((a) => ({ href: a.getAttribute("href") || "", text: (a.textContent || "").trim() }))
  .filter((link) => link.href.length > 0)
"""

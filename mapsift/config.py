"""
Single-source configuration: paths, browser settings, pacing, scroll
convergence, Google Maps selectors, and the pattern denylists used by
enrichment.

Everything that might need tweaking lives here.
"""

from pathlib import Path


# ── Project Paths ─────────────────────────────────────────────────────────────

ROOT_DIR = Path(__file__).resolve().parent.parent
DATA_DIR = ROOT_DIR / "data"
LOGS_DIR = ROOT_DIR / "logs"
LOG_LEVEL: str = "INFO"


# ── Browser ───────────────────────────────────────────────────────────────────

HEADLESS: bool = True
VIEWPORT_WIDTH: int = 1920
VIEWPORT_HEIGHT: int = 1080
LOCALE: str = "en-US"
USER_AGENT: str = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/131.0.0.0 Safari/537.36"
)
GOOGLE_MAPS_SEARCH_URL: str = "https://www.google.com/maps/search/{query}?hl=en"

# ── Timeouts (milliseconds for Playwright) ────────────────────────────────────

PAGE_LOAD_TIMEOUT: int = 30_000
NAVIGATION_TIMEOUT: int = 60_000
FEED_TIMEOUT: int = 30_000
PANEL_TIMEOUT: int = 15_000
DETAILS_TIMEOUT: int = 15_000
WEBSITE_TIMEOUT: int = 15_000
CONTACT_PAGE_TIMEOUT: int = 10_000

# ── Think-time delays (seconds, randomised between the pair) ──────────────────

SEARCH_SETTLE: tuple = (3.0, 5.0)
CONSENT_SETTLE: tuple = (1.0, 2.0)
BETWEEN_ROUNDS: tuple = (2.0, 3.0)
BETWEEN_BUSINESSES: tuple = (1.0, 3.0)
PANEL_SETTLE: tuple = (2.0, 3.0)
SHARE_DIALOG_SETTLE: tuple = (1.5, 2.5)
DIALOG_CLOSE_SETTLE: tuple = (0.3, 0.5)
BACK_SETTLE: tuple = (1.0, 1.5)
WEBSITE_SETTLE: tuple = (1.5, 2.5)
CONTACT_PAGE_SETTLE: tuple = (1.0, 2.0)

# ── Scroll convergence ───────────────────────────────────────────────────────
#
#    ceiling = clamp(ceil(target / divisor) + SCROLL_BUFFER, floor, cap)

SCROLL_BUFFER: int = 10
SCROLL_FLOOR: int = 5

FEED_SCROLL_DIVISOR: int = 5
FEED_SCROLL_CAP: int = 300
FEED_STALL_LIMIT: int = 3                # unchanged height + count -> stop
FEED_SETTLE: tuple = (1.5, 2.5)
FEED_STALL_BACKOFF: tuple = (2.0, 3.0)

REVIEW_SCROLL_DIVISOR: int = 3
REVIEW_SCROLL_CAP: int = 200
REVIEW_STALL_LIMIT: int = 5
REVIEW_SETTLE: tuple = (2.0, 3.5)
REVIEW_STALL_BACKOFF: tuple = (2.0, 3.0)

SCROLL_MIN_HEIGHT: int = 500             # generic overflow container threshold
WHEEL_DISTANCE_MIN: int = 1000           # mouse-wheel fallback delta
WHEEL_DISTANCE_MAX: int = 3000

# ── Collection ───────────────────────────────────────────────────────────────

DEFAULT_MAX_RESULTS: int = 100
MAX_COLLECTION_ROUNDS: int = 6
OUTPUT_DIR: Path = DATA_DIR

# ── Google Maps selectors (CSS) ──────────────────────────────────────────────
#
#    When Google changes the UI, update these constants.

SIDEBAR_FEED: str = 'div[role="feed"]'
RESULT_ARTICLE: str = 'div[role="article"]'
PLACE_LINK: str = 'a[href*="/maps/place/"]'
ACCEPT_COOKIES: tuple = (
    'button[aria-label="Accept all"]',
    'button[aria-label="I agree"]',
    'form[action*="consent"] button',
)
FEED_SCROLL_SELECTORS: tuple = (
    '[role="feed"]',
    'div[class*="scrollable"]',
    '[aria-label*="Results"]',
)

REVIEW_CARD: str = "div[data-review-id]"
REVIEW_CARD_CLASS: str = "div.jftiEf"
REVIEW_PHOTO_BUTTON: str = 'button[aria-label^="Photo of"]'
REVIEW_SCROLL_SELECTORS: tuple = (
    "div.m6QErb.DxyBCb.kA9KIf.dS8AEf",
    "div.m6QErb.DxyBCb",
    "div.m6QErb[aria-label]",
    'div[role="main"] div.m6QErb',
    ".section-layout.section-scrollbox",
)
MORE_REVIEWS_BUTTON: str = 'button[aria-label*="More reviews"]'

BACK_BUTTONS: tuple = (
    'button[aria-label="Back"]',
    'button[aria-label="back"]',
    'button[jsaction*="back"]',
    '[data-value="Back"]',
    ".section-back-to-list-button",
)
CLOSE_BUTTONS: tuple = (
    'button[aria-label="Close"]',
    'button[aria-label="close"]',
    '[role="dialog"] button[aria-label*="Close"]',
    '[role="dialog"] button[aria-label*="close"]',
)

# ── Page text markers ────────────────────────────────────────────────────────

FEED_END_PHRASES: tuple = (
    "You've reached the end of the list",
    "No more results",
    "Can't find more places",
)
REVIEW_END_PHRASES: tuple = (
    "No more reviews",
    "end of reviews",
)
BOT_WALL_PHRASES: tuple = (
    "unusual traffic from your computer network",
    "our systems have detected unusual traffic",
    "i'm not a robot",
    "not a robot",
)
SHARE_URL_MARKERS: tuple = (
    "maps.app.goo.gl",
    "goo.gl/maps",
    "google.com/maps",
)

# ── Website resolution ───────────────────────────────────────────────────────

AD_REDIRECT_MARKER: str = "google.com/aclk"
PROVIDER_HOST_PATTERN: str = r"^(?:(?P<sub>[a-z0-9-]+)\.)?google(?:\.[a-z]{2,3}){1,2}$"
PROVIDER_SUBDOMAINS: tuple = ("", "www", "maps")
TRACKING_MARKERS: tuple = ("google.com/aclk", "redirect", "track", "click")
SOCIAL_DOMAINS: tuple = (
    "facebook.com",
    "instagram.com",
    "twitter.com",
    "x.com",
    "youtube.com",
    "linkedin.com",
    "tiktok.com",
)

# ── Enrichment denylists ─────────────────────────────────────────────────────
#
#    Heuristic and deliberately overridable: every enrichment helper takes
#    an optional replacement list.

EMAIL_MIN_LENGTH: int = 6
EMAIL_MAX_LENGTH: int = 254

INVALID_EMAIL_PATTERNS: list = [
    r"^[a-z0-9._%+\-]+@example\.",
    r"^[a-z0-9._%+\-]+@test\.",
    r"^(noreply|no-reply|donotreply|do-not-reply)",
    r"^(admin|root|webmaster|postmaster|hostmaster|mailer-daemon)@",
    r"\.(png|jpg|jpeg|gif|svg|webp|ico|bmp|css|js|woff2?|ttf|eot|pdf)$",
    r"sentry\.io",
    r"sentry-next\.wixpress\.com",
    r"wixpress\.com",
    r"cloudflare",
    r"@(domain|email|yourdomain|yoursite)\.",
    r"^(user|your|yourname|name|email)@",
]

SOCIAL_EXCLUDED_PATHS: list = [
    "sharer",
    "share",
    "intent",
    "plugins",
    "dialog",
    "tr",
    "hashtag",
    "home.php",
]

CONTACT_PAGE_HINTS: list = [
    "contact",
    "kontakt",
    "contacto",
    "contatti",
    "contatto",
    "kontakta",
    "contactez",
    "impressum",
    "about",
    "about-us",
    "over-ons",
    "get-in-touch",
    "reach-us",
]

# ── Quality score ────────────────────────────────────────────────────────────

QUALITY_MAX_SCORE: float = 10.0

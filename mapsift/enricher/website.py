"""
Website enrichment -- visit a business's own site (and, optionally, its
contact page) with the scraping page and harvest emails + social links.

Sources scanned on every page:

* visible body text and raw HTML (plain, obfuscated, URL-encoded emails)
* ``mailto:`` anchors and Cloudflare-protected addresses (BeautifulSoup)
* HTML + every link for social profile URLs

Nothing in here raises: the worst case is an empty ``Enrichment``.
"""

from typing import TYPE_CHECKING, Dict, Iterable, List, NamedTuple, Optional, Set

from bs4 import BeautifulSoup
from playwright.sync_api import TimeoutError as PlaywrightTimeout

import mapsift.config as cfg
from mapsift.enricher.deobfuscator import decode_cloudflare_email, decode_protection_href
from mapsift.enricher.filters import clean_email
from mapsift.enricher.patterns import email_candidates, extract_social, find_contact_page
from mapsift.models.business import Enrichment
from mapsift.utils.timing import pause

if TYPE_CHECKING:
    from loguru import Logger


PAGE_SNAPSHOT_JS = """
() => ({
    bodyText: document.body ? (document.body.innerText || '') : '',
    html: document.body ? (document.body.innerHTML || '') : '',
    links: Array.from(document.querySelectorAll('a[href]'))
        .map(a => a.href)
        .filter(href => href && !href.startsWith('javascript:'))
})
"""


class PageHarvest(NamedTuple):
    emails: Set[str]
    social: Dict[str, str]
    links: List[str]


def emails_from_markup(html: Optional[str], invalid_patterns: Optional[Iterable[str]] = None) -> Set[str]:
    """
    Scan a parsed DOM tree for email addresses hidden in attributes.

    Checks:
    1. <a href="mailto:..."> links
    2. Cloudflare-obfuscated <span data-cfemail="..."> / <a data-cfemail="...">
    3. Cloudflare /cdn-cgi/l/email-protection#HEX href links
    """
    found: Set[str] = set()
    if not html:
        return found
    soup = BeautifulSoup(html, "lxml")

    for tag in soup.find_all("a", href=True):
        href = tag["href"]
        if href.lower().startswith("mailto:"):
            email = clean_email(href[7:], invalid_patterns)
        else:
            email = clean_email(decode_protection_href(href), invalid_patterns)
        if email:
            found.add(email)

    for tag in soup.find_all(attrs={"data-cfemail": True}):
        email = clean_email(decode_cloudflare_email(tag["data-cfemail"]), invalid_patterns)
        if email:
            found.add(email)

    return found


def harvest(
    snapshot: dict,
    invalid_patterns: Optional[Iterable[str]] = None,
    excluded_social_paths: Optional[Iterable[str]] = None,
) -> PageHarvest:
    """Emails, social profiles and links from one page snapshot."""
    text = snapshot.get("bodyText") or ""
    html = snapshot.get("html") or ""
    links = [link for link in snapshot.get("links") or [] if link]

    emails: Set[str] = set()
    for source in (text, html):
        for candidate in email_candidates(source):
            email = clean_email(candidate, invalid_patterns)
            if email:
                emails.add(email)
    emails |= emails_from_markup(html, invalid_patterns)

    return PageHarvest(emails, extract_social(html, links, excluded_social_paths), links)


def _visit(page, url: str, timeout: int, settle: tuple, log: "Logger") -> dict:
    try:
        page.goto(url, wait_until="domcontentloaded", timeout=timeout)
    except PlaywrightTimeout:
        log.warning("  Navigation timeout for {} -- reading what loaded", url)
    pause(settle)
    return page.evaluate(PAGE_SNAPSHOT_JS) or {}


def enrich_website(
    page,
    url: Optional[str],
    *,
    log: "Logger",
    follow_contact_page: bool = True,
    invalid_patterns: Optional[Iterable[str]] = None,
    excluded_social_paths: Optional[Iterable[str]] = None,
    contact_hints: Optional[Iterable[str]] = None,
) -> Enrichment:
    """
    Collect contact data from *url* and, when found, its contact page.

    Base-page social links win over contact-page ones; emails are unioned.

    Parameters
    ----------
    page : Page
        Playwright page (navigated away from Google Maps).
    url : str or None
        Business website; ``None`` returns an empty record.
    follow_contact_page : bool
        Visit the detected contact/about page too.
    invalid_patterns, excluded_social_paths, contact_hints : list, optional
        Replacements for the denylists / vocabulary in ``mapsift.config``.

    Returns
    -------
    Enrichment
        Possibly empty, never None.
    """
    enrichment = Enrichment()
    if not url:
        return enrichment

    log.info("  Enriching from website: {}", url)
    try:
        base = harvest(
            _visit(page, url, cfg.WEBSITE_TIMEOUT, cfg.WEBSITE_SETTLE, log),
            invalid_patterns,
            excluded_social_paths,
        )
        contact_url = find_contact_page(base.links, url, contact_hints)
        emails = set(base.emails)
        social = dict(base.social)

        if follow_contact_page and contact_url and contact_url.rstrip("/") != url.rstrip("/"):
            log.info("  Checking contact page: {}", contact_url)
            try:
                extra = harvest(
                    _visit(page, contact_url, cfg.CONTACT_PAGE_TIMEOUT, cfg.CONTACT_PAGE_SETTLE, log),
                    invalid_patterns,
                    excluded_social_paths,
                )
                emails |= extra.emails
                social = {**extra.social, **social}
            except Exception as exc:
                log.warning("  Could not access contact page: {}", exc)

        enrichment = Enrichment(contact_page_url=contact_url, emails_found=emails, social=social)
        log.info(
            "  Enrichment complete: {} email(s), {} social link(s)",
            len(enrichment.emails_found),
            len(enrichment.social),
        )
    except Exception as exc:
        log.warning("  Enrichment failed for {}: {}", url, exc)

    return enrichment

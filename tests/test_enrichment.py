import pytest
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeout

from mapsift.enricher.deobfuscator import decode_cloudflare_email, decode_protection_href
from mapsift.enricher.filters import clean_email, is_valid_email
from mapsift.enricher.patterns import email_candidates, extract_social, find_contact_page
from mapsift.enricher.website import PAGE_SNAPSHOT_JS, emails_from_markup, enrich_website, harvest

from conftest import FakePage

# "info@joes.com" / "a@b.co" XOR-encoded with key 0x42
CF_INFO = "422b2c242d02282d27316c212d2f"
CF_SHORT = "422302206c212d"


# -- email filters ------------------------------------------------------------

@pytest.mark.parametrize(
    "email",
    ["foo@example.com", "info@wixpress.com", "noreply@shop.com", "logo@2x.png", "a@b.c", "", None],
)
def test_invalid_emails(email):
    assert not is_valid_email(email)


def test_valid_email_and_override():
    assert is_valid_email("foo@bar.com")
    assert is_valid_email("foo@example.com", invalid_patterns=[])


def test_clean_email():
    assert clean_email("mailto:Sales@Joes.com?subject=Hi") == "sales@joes.com"
    assert clean_email("hello%40joes.com.") == "hello@joes.com"
    assert clean_email("user@domain.com") is None


@pytest.mark.parametrize(
    "text",
    ["write to foo [at] bar [dot] com", "foo (at) bar (dot) com", "foo @ bar . com", "foo%40bar.com"],
)
def test_obfuscated_emails_are_recovered(text):
    assert "foo@bar.com" in {clean_email(c) for c in email_candidates(text)}


# -- cloudflare ---------------------------------------------------------------

def test_decode_cloudflare_email():
    assert decode_cloudflare_email(CF_INFO) == "info@joes.com"
    assert decode_cloudflare_email("zz") is None
    assert decode_cloudflare_email("42") is None


def test_decode_protection_href():
    assert decode_protection_href("/cdn-cgi/l/email-protection#" + CF_SHORT) == "a@b.co"
    assert decode_protection_href("/contact") is None


def test_emails_from_markup():
    html = (
        '<a href="mailto:Sales@Joes.com?subject=hi">Mail</a>'
        f'<span class="__cf_email__" data-cfemail="{CF_INFO}">[email protected]</span>'
        f'<a href="/cdn-cgi/l/email-protection#{CF_SHORT}">email</a>'
    )

    assert emails_from_markup(html) == {"sales@joes.com", "info@joes.com", "a@b.co"}


# -- social / contact ---------------------------------------------------------

def test_extract_social_first_profile_per_platform():
    content = (
        "https://www.facebook.com/sharer/sharer.php?u=x "
        "https://www.facebook.com/joespizza "
        "https://instagram.com/ "
        "https://www.dropbox.com/s/abc "
        "https://x.com/Joes"
    )

    assert extract_social(content) == {
        "facebook": "https://www.facebook.com/joespizza",
        "twitter": "https://x.com/joes",
    }


def test_extract_social_reads_links_too():
    social = extract_social("", ["https://www.linkedin.com/company/joes-pizza/"])

    assert social == {"linkedin": "https://www.linkedin.com/company/joes-pizza"}


def test_find_contact_page():
    links = [
        "https://other.com/contact",
        "https://www.joes.com/menu",
        "https://joes.com/contact-us",
        "https://joes.com/about",
    ]

    assert find_contact_page(links, "https://www.joes.com") == "https://joes.com/contact-us"
    assert find_contact_page(["/impressum"], "https://joes.de/") == "https://joes.de/impressum"
    assert find_contact_page(links[:2], "https://www.joes.com") is None


def test_harvest_combines_text_and_markup():
    snapshot = {
        "bodyText": "Questions? hello@joes.com or orders [at] joes [dot] com",
        "html": f'<span data-cfemail="{CF_INFO}"></span><a href="https://instagram.com/joes">ig</a>',
        "links": ["https://joes.com/contact", ""],
    }

    result = harvest(snapshot)

    assert result.emails == {"hello@joes.com", "orders@joes.com", "info@joes.com"}
    assert result.social == {"instagram": "https://instagram.com/joes"}
    assert result.links == ["https://joes.com/contact"]


# -- website visit ------------------------------------------------------------

def site_page(pages):
    page = FakePage()
    page.scripts[PAGE_SNAPSHOT_JS] = lambda _arg: pages.get(page.url, {})
    return page


SITE = {
    "https://joes.com": {
        "bodyText": "Email: hello@joes.com",
        "html": '<a href="https://facebook.com/joespizza">fb</a>',
        "links": ["https://joes.com/contact", "https://facebook.com/joespizza"],
    },
    "https://joes.com/contact": {
        "bodyText": "orders [at] joes [dot] com",
        "html": "https://facebook.com/otherpage https://instagram.com/joes",
        "links": [],
    },
}


def test_enrich_website_follows_contact_page(log):
    page = site_page(SITE)

    enrichment = enrich_website(page, "https://joes.com", log=log)

    assert page.visited == ["https://joes.com", "https://joes.com/contact"]
    assert enrichment.contact_page_url == "https://joes.com/contact"
    assert enrichment.emails_found == {"hello@joes.com", "orders@joes.com"}
    assert enrichment.social == {
        "facebook": "https://facebook.com/joespizza",
        "instagram": "https://instagram.com/joes",
    }


def test_enrich_website_without_contact_visit(log):
    page = site_page(SITE)

    enrichment = enrich_website(page, "https://joes.com", log=log, follow_contact_page=False)

    assert page.visited == ["https://joes.com"]
    assert enrichment.contact_page_url == "https://joes.com/contact"
    assert enrichment.emails_found == {"hello@joes.com"}


def test_enrich_website_reads_slow_pages(log):
    page = site_page(SITE)
    page.goto_errors["https://joes.com"] = PlaywrightTimeout("Timeout 15000ms exceeded")

    enrichment = enrich_website(page, "https://joes.com", log=log, follow_contact_page=False)

    assert enrichment.emails_found == {"hello@joes.com"}


def test_enrich_website_never_raises(log):
    page = site_page(SITE)
    page.goto_errors["https://joes.com"] = PlaywrightError("net::ERR_NAME_NOT_RESOLVED")

    enrichment = enrich_website(page, "https://joes.com", log=log)

    assert enrichment.contact_page_url is None
    assert enrichment.emails_found == set()
    assert enrichment.social == {}


def test_enrich_website_without_url(log):
    page = site_page(SITE)

    assert enrich_website(page, None, log=log).emails_found == set()
    assert page.visited == []

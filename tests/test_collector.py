import json

import mapsift.core.collector as collector
from mapsift.core.collector import BLOCKED, EMPTY, SUCCESS, collect
from mapsift.core.error_handler import BOT_WALL_JS
from mapsift.core.parser import CARD_SNAPSHOT_JS
from mapsift.core.reviews import BLOCKED as REVIEWS_BLOCKED
from mapsift.core.reviews import OK as REVIEWS_OK
from mapsift.core.reviews import ReviewResult
from mapsift.core.scroller import FEED_ARTICLE_COUNT_JS
from mapsift.enricher.website import PAGE_SNAPSHOT_JS
from mapsift.models.business import Review
from mapsift.models.request import ListingFilter, SearchRequest
from mapsift.utils.exporter import export_to_json, output_path_for

from conftest import FakePage


def cafe(n, website=None):
    links = [{"href": f"https://www.google.com/maps/place/Cafe+{n}", "ariaLabel": f"Cafe {n}"}]
    if website:
        links.append({"href": website, "ariaLabel": ""})
    return {
        "url": f"https://www.google.com/maps/place/Cafe+{n}/data=!{n}",
        "articleLabel": f"Cafe {n}",
        "text": f"Cafe {n} · Coffee shop · 4.{n}({n}0)",
        "fragments": [f"Cafe {n}", "Coffee shop", f"4.{n}({n}0)"],
        "labels": [],
        "links": links,
        "clusters": [],
    }


def feed_page(cards):
    return FakePage({
        FEED_ARTICLE_COUNT_JS: len(cards),
        CARD_SNAPSHOT_JS: {"articles": cards, "anchors": []},
    })


def test_collect_emits_each_listing_once(log):
    page = feed_page([cafe(1), cafe(2), cafe(3)])
    records = []

    summary = collect(page, SearchRequest(query="cafes", max_results=2), records.append, log=log)

    assert summary.status == SUCCESS
    assert summary.emitted == 2
    assert summary.candidates_seen == 3
    assert [r["name"] for r in records] == ["Cafe 1", "Cafe 2"]
    assert records[0]["quality_score"] is None


def test_filters_trigger_another_round(log):
    page = feed_page([cafe(1, "https://cafe1.com"), cafe(2), cafe(3)])
    records = []
    request = SearchRequest(query="cafes", max_results=2, filters=ListingFilter(require_website=True))

    summary = collect(page, request, records.append, log=log)

    assert [r["website"] for r in records] == ["https://cafe1.com"]
    assert summary.rounds == 2
    assert summary.rejected == 2
    assert summary.reached_end is True


def test_quality_score_waits_for_enrichment(log):
    records = []

    collect(feed_page([cafe(1, "https://cafe1.com")]), SearchRequest(query="cafes"), records.append, log=log)

    assert records[0]["website"] == "https://cafe1.com"
    assert records[0]["enrichment"] is None
    assert records[0]["quality_score"] is None


def test_filter_rejections_are_logged(log, log_messages):
    page = feed_page([cafe(1), cafe(2, "https://cafe2.com")])
    request = SearchRequest(query="cafes", max_results=1, filters=ListingFilter(require_website=True))
    records = []

    summary = collect(page, request, records.append, log=log)

    assert [r["name"] for r in records] == ["Cafe 2"]
    assert summary.rejected == 1
    assert any("Filtered out Cafe 1: no website" in m for m in log_messages)


def test_blocked_search_emits_nothing(log):
    page = feed_page([cafe(1)])
    page.scripts[BOT_WALL_JS] = "not a robot"
    records = []

    summary = collect(page, SearchRequest(query="cafes"), records.append, log=log)

    assert summary.status == BLOCKED
    assert records == []
    assert page.called(CARD_SNAPSHOT_JS) == []


def test_no_listings_is_empty(log):
    records = []

    summary = collect(feed_page([]), SearchRequest(query="cafes"), records.append, log=log)

    assert summary.status == EMPTY
    assert records == []


def test_enrichment_is_attached(log):
    page = feed_page([cafe(1, "https://cafe1.com"), cafe(2)])
    page.scripts[PAGE_SNAPSHOT_JS] = {"bodyText": "Say hi: hello@cafe1.com", "html": "", "links": []}
    records = []

    collect(page, SearchRequest(query="cafes", enrich=True), records.append, log=log)

    assert records[0]["enrichment"]["emails_found"] == ["hello@cafe1.com"]
    assert records[0]["quality_score"] == 0.5
    assert records[1]["enrichment"] == {"contact_page_url": None, "emails_found": [], "social": {}}


def test_processing_failure_still_emits(log, monkeypatch):
    def broken(_business):
        raise RuntimeError("boom")

    monkeypatch.setattr(collector, "quality_score", broken)
    records = []

    summary = collect(feed_page([cafe(1), cafe(2)]), SearchRequest(query="cafes", enrich=True), records.append, log=log)

    assert summary.emitted == 2
    assert [r["quality_score"] for r in records] == [None, None]


def test_review_block_stops_review_reads(log, monkeypatch):
    calls = []

    class StubExtractor:
        def __init__(self, page, log, extract_share_links=False):
            pass

        def extract(self, business, max_reviews=None):
            calls.append(business.name)
            if len(calls) == 1:
                return ReviewResult([Review(review_id="r1", rating=5)], REVIEWS_OK, "url-exact")
            return ReviewResult([], REVIEWS_BLOCKED, "url-exact")

    monkeypatch.setattr(collector, "ReviewExtractor", StubExtractor)
    records = []
    request = SearchRequest(query="cafes", scrape_reviews=True)

    summary = collect(feed_page([cafe(1), cafe(2), cafe(3)]), request, records.append, log=log)

    assert calls == ["Cafe 1", "Cafe 2"]
    assert summary.review_statuses == {REVIEWS_OK: 1, REVIEWS_BLOCKED: 1}
    assert [len(r["reviews"]) for r in records] == [1, 0, 0]


def test_export_round_trip(tmp_path):
    path = output_path_for("Cafes in Chicago!", tmp_path)

    export_to_json([{"name": "Cafe 1"}], path)

    assert path.name == "cafes_in_chicago__results.json"
    assert json.loads(path.read_text(encoding="utf-8")) == [{"name": "Cafe 1"}]

"""
Collection driver -- one search, end to end.

    search -> discovery rounds (scroll, extract, dedup, filter)
           -> reviews (needs the feed) -> details / website (navigate away)
           -> sink(record) once per business

Discovery always finishes before any panel is opened or any page is left,
so the feed never re-renders under the extractor.
"""

import math
from typing import TYPE_CHECKING, Callable, Dict, List

from pydantic import BaseModel, Field

import mapsift.config as cfg
from mapsift.core.browser import open_search
from mapsift.core.details import extract_details
from mapsift.core.parser import extract_listings
from mapsift.core.reviews import BLOCKED as REVIEWS_BLOCKED
from mapsift.core.reviews import ReviewExtractor
from mapsift.core.scroller import feed_scroller
from mapsift.enricher.quality import quality_score
from mapsift.enricher.website import enrich_website
from mapsift.exceptions import BotWallDetected
from mapsift.models.business import Business, Enrichment
from mapsift.models.request import SearchRequest
from mapsift.utils.timing import pause

if TYPE_CHECKING:
    from loguru import Logger

SUCCESS = "success"
BLOCKED = "blocked"
EMPTY = "empty"

RecordSink = Callable[[dict], None]


class CollectionSummary(BaseModel):
    """What a single ``collect`` call did."""

    query: str
    status: str = SUCCESS
    rounds: int = 0
    scroll_count: int = 0
    reached_end: bool = False
    candidates_seen: int = 0
    accepted: int = 0
    rejected: int = 0
    emitted: int = 0
    review_statuses: Dict[str, int] = Field(default_factory=dict)


# -- Discovery -------------------------------------------------------------

def discover(
    page,
    request: SearchRequest,
    summary: CollectionSummary,
    *,
    log: "Logger",
) -> List[Business]:
    """
    Scroll and extract until enough listings pass the filters or the feed
    stops growing.
    """
    target = request.result_target
    scroller = feed_scroller(page, log)
    seen: set = set()
    accepted: List[Business] = []
    scroll_target = target

    for round_no in range(1, cfg.MAX_COLLECTION_ROUNDS + 1):
        summary.rounds = round_no
        outcome = scroller.run(scroll_target)
        summary.scroll_count += outcome.scroll_count
        summary.reached_end = outcome.reached_end

        new = [b for b in extract_listings(page, math.inf, log=log) if b.url not in seen]
        seen.update(b.url for b in new)
        summary.candidates_seen = len(seen)

        for business in new:
            if len(accepted) >= target:
                break
            if not request.filters.accepts(business):
                summary.rejected += 1
                log.debug("Filtered out {}: {}", business.name, request.filters.reason(business))
                continue
            accepted.append(business)

        log.info(
            "Round {}: {} new listings, {} accepted, {} filtered out",
            round_no, len(new), len(accepted), summary.rejected,
        )

        if len(accepted) >= target:
            break
        if outcome.reached_end:
            log.info("Feed exhausted after round {}", round_no)
            break
        if not new:
            log.info("Round {} found nothing new -- stopping", round_no)
            break

        # Filtering rejected some candidates: ask the feed for that many more.
        scroll_target = len(seen) + (target - len(accepted))
        pause(cfg.BETWEEN_ROUNDS)

    summary.accepted = len(accepted)
    return accepted


# -- Per-business stages ---------------------------------------------------

def collect_reviews(
    page,
    businesses: List[Business],
    request: SearchRequest,
    summary: CollectionSummary,
    *,
    log: "Logger",
) -> None:
    extractor = ReviewExtractor(page, log, extract_share_links=request.extract_share_links)
    for index, business in enumerate(businesses, start=1):
        log.info("[{}/{}] Reviews for {}", index, len(businesses), business.name)
        result = extractor.extract(business, request.review_target)
        business.reviews = result.reviews
        summary.review_statuses[result.status] = summary.review_statuses.get(result.status, 0) + 1
        if result.status == REVIEWS_BLOCKED:
            log.warning("Blocked while reading reviews -- skipping reviews for the rest")
            for rest in businesses[index:]:
                rest.reviews = []
            break
        if index < len(businesses):
            pause(cfg.BETWEEN_BUSINESSES)


def complete_business(page, business: Business, request: SearchRequest, *, log: "Logger") -> None:
    """Details pass, then website enrichment and its quality score for one record."""
    if request.scrape_details:
        extract_details(page, business, log=log)
    if request.enrich:
        if business.website:
            business.enrichment = enrich_website(
                page,
                business.website,
                log=log,
                follow_contact_page=request.follow_contact_page,
            )
        else:
            business.enrichment = Enrichment()
        business.quality_score = quality_score(business)


# -- Driver ----------------------------------------------------------------

def collect(
    page,
    request: SearchRequest,
    sink: RecordSink,
    *,
    log: "Logger",
) -> CollectionSummary:
    """
    Run one search and hand every finished record to *sink* exactly once.

    Parameters
    ----------
    page : Page
        Playwright page; it is navigated by this call.
    request : SearchRequest
        Query, limits, optional stages and filters.
    sink : callable
        Receives one plain ``dict`` per business.
    log : Logger
        loguru logger; each stage gets a bound child.

    Returns
    -------
    CollectionSummary
    """
    summary = CollectionSummary(query=request.search_term)
    log.info("=" * 60)
    log.info("QUERY: '{}' (target: {} results)", request.search_term, request.max_results or "unlimited")
    log.info("=" * 60)

    try:
        open_search(page, request.search_term, log=log.bind(stage="search"))
    except BotWallDetected as exc:
        log.error("Search blocked: {}", exc)
        summary.status = BLOCKED
        return summary

    businesses = discover(page, request, summary, log=log.bind(stage="discovery"))
    if not businesses:
        log.warning("No listings found for '{}'", request.search_term)
        summary.status = EMPTY
        return summary

    if request.scrape_reviews:
        collect_reviews(page, businesses, request, summary, log=log.bind(stage="reviews"))

    stage_log = log.bind(stage="complete")
    for index, business in enumerate(businesses, start=1):
        try:
            complete_business(page, business, request, log=stage_log)
        except Exception as exc:
            stage_log.warning("Processing failed for {}: {}", business.name, exc)
        sink(business.to_record())
        summary.emitted += 1
        if (request.scrape_details or request.enrich) and index < len(businesses):
            pause(cfg.BETWEEN_BUSINESSES)

    log.info(
        "Done: {} emitted ({} seen, {} filtered out, {} scrolls)",
        summary.emitted, summary.candidates_seen, summary.rejected, summary.scroll_count,
    )
    return summary

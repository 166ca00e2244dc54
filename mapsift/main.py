"""
mapsift -- Google Maps listing & review collector.

Usage
-----
    python -m mapsift.main -q "plumbers" --location "New York City"
    python -m mapsift.main -q "dentists in LA" --max-results 50 --details --enrich
    python -m mapsift.main -q "cafes in Chicago" --reviews --max-reviews 20 --no-headless
"""

import argparse
import sys
import time
from pathlib import Path
from typing import List, Optional

from loguru import logger
from pydantic import ValidationError

import mapsift.config as cfg
from mapsift.core.browser import close_browser, create_browser_context
from mapsift.core.collector import EMPTY, SUCCESS, CollectionSummary, collect
from mapsift.core.error_handler import setup_logging
from mapsift.exceptions import InputError, MapsiftError
from mapsift.models.request import ListingFilter, SearchRequest
from mapsift.utils.exporter import export_to_json, output_path_for

EXIT_FAILED = 1
EXIT_INPUT = 2


# -- Single-query runner ---------------------------------------------------

def run_query(request: SearchRequest) -> tuple:
    """
    Execute one full collection for *request* and write the JSON file.

    Returns ``(summary, output_path)``; the path is None when nothing was
    written.
    """
    records: List[dict] = []
    pw = browser = None
    try:
        pw, browser, _context, page = create_browser_context()
        summary = collect(page, request, records.append, log=logger)
    finally:
        if pw and browser:
            close_browser(pw, browser)

    output_path = None
    if records:
        output_path = export_to_json(records, output_path_for(request.search_term, cfg.OUTPUT_DIR))
    return summary, output_path


# -- CLI -------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mapsift",
        description="Collect Google Maps listings, reviews and website contacts",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  mapsift -q 'plumbers' --location 'New York City'\n"
            "  mapsift -q 'dentists in LA' --max-results 50 --details --enrich\n"
            "  mapsift -q 'cafes in Chicago' --reviews --max-reviews 20\n"
        ),
    )
    parser.add_argument(
        "-q", "--query",
        type=str,
        required=True,
        help="Google Maps search query (e.g. 'plumbers')",
    )
    parser.add_argument(
        "--location",
        type=str,
        default=None,
        help="Appended to the query as '<query> in <location>'",
    )
    parser.add_argument(
        "--max-results",
        type=int,
        default=cfg.DEFAULT_MAX_RESULTS,
        help=f"Maximum listings to collect, 0 = unlimited (default: {cfg.DEFAULT_MAX_RESULTS})",
    )

    stages = parser.add_argument_group("optional stages")
    stages.add_argument("--details", action="store_true", help="Open each place page for full details")
    stages.add_argument("--reviews", action="store_true", help="Collect reviews for each listing")
    stages.add_argument(
        "--max-reviews",
        type=int,
        default=0,
        help="Maximum reviews per listing, 0 = unlimited (default: 0)",
    )
    stages.add_argument("--share-links", action="store_true", help="Capture each review's share link")
    stages.add_argument("--enrich", action="store_true", help="Visit websites for emails / social links")
    stages.add_argument(
        "--no-follow-contact",
        action="store_true",
        help="Do not visit the contact page found on a website",
    )

    filters = parser.add_argument_group("filters")
    filters.add_argument("--min-rating", type=float, default=None, help="Minimum star rating")
    filters.add_argument("--min-reviews", type=int, default=None, help="Minimum review count")
    filters.add_argument("--require-website", action="store_true", help="Skip listings without a website")
    filters.add_argument("--require-phone", action="store_true", help="Skip listings without a phone")
    filters.add_argument("--skip-sponsored", action="store_true", help="Skip sponsored listings")
    filters.add_argument(
        "--include-category",
        nargs="+",
        default=[],
        metavar="TEXT",
        help="Keep only categories containing one of these",
    )
    filters.add_argument(
        "--exclude-keyword",
        nargs="+",
        default=[],
        metavar="TEXT",
        help="Drop listings whose name or category contains one of these",
    )

    parser.add_argument(
        "--no-headless",
        action="store_true",
        default=False,
        help="Run the browser in visible (headed) mode",
    )
    parser.add_argument(
        "--output-dir",
        type=str,
        default=None,
        help=f"Output directory for the JSON file (default: {cfg.OUTPUT_DIR})",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=cfg.LOG_LEVEL,
        choices=["TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR"],
        help=f"Console log level (default: {cfg.LOG_LEVEL})",
    )
    return parser


def request_from_args(args: argparse.Namespace) -> SearchRequest:
    """Build and validate the ``SearchRequest``; raises InputError."""
    try:
        return SearchRequest(
            query=args.query,
            location=args.location,
            max_results=args.max_results,
            scrape_details=args.details,
            scrape_reviews=args.reviews or args.share_links,
            max_reviews=args.max_reviews,
            extract_share_links=args.share_links,
            enrich=args.enrich,
            follow_contact_page=not args.no_follow_contact,
            filters=ListingFilter(
                min_rating=args.min_rating,
                min_reviews=args.min_reviews,
                require_website=args.require_website,
                require_phone=args.require_phone,
                skip_sponsored=args.skip_sponsored,
                include_categories=args.include_category,
                exclude_keywords=args.exclude_keyword,
            ),
        )
    except ValidationError as exc:
        raise InputError(str(exc)) from exc


def _report(summary: Optional[CollectionSummary], output_path: Optional[Path], elapsed: float) -> None:
    logger.info("")
    logger.info("=" * 60)
    logger.info("COLLECTION COMPLETE  ({:.1f}s elapsed)", elapsed)
    logger.info("=" * 60)
    if summary is not None:
        status_icon = "OK" if summary.status == SUCCESS else summary.status.upper()
        logger.info(
            "  [{}]  '{}'  ->  {} records ({} seen, {} filtered out)",
            status_icon,
            summary.query,
            summary.emitted,
            summary.candidates_seen,
            summary.rejected,
        )
        if summary.review_statuses:
            logger.info("  Reviews: {}", summary.review_statuses)
    if output_path:
        logger.info("  JSON -> {}", output_path)
    logger.info("=" * 60)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    # -- Apply CLI overrides -----------------------------------------------
    if args.no_headless:
        cfg.HEADLESS = False
    if args.output_dir:
        cfg.OUTPUT_DIR = Path(args.output_dir)
    setup_logging(args.log_level)

    try:
        request = request_from_args(args)
    except InputError as exc:
        logger.error("Invalid input: {}", exc)
        return EXIT_INPUT

    # -- Run ---------------------------------------------------------------
    start = time.time()
    summary = output_path = None
    try:
        summary, output_path = run_query(request)
    except MapsiftError as exc:
        logger.error("Query '{}' failed: {}", request.search_term, exc)
    except Exception as exc:
        logger.exception("Query '{}' crashed: {}", request.search_term, exc)

    _report(summary, output_path, time.time() - start)

    if summary is None or summary.status not in (SUCCESS, EMPTY):
        return EXIT_FAILED
    return 0


if __name__ == "__main__":
    sys.exit(main())

"""
Bangalore PG listing scraper.
Fetches listing-aggregator pages (payingguestinbengaluru.com area and detail pages), recovers
each PG from its title/details table pair, attaches the page's photos and writes the records
to JSON (default), SQLite or CSV.
Run: pg-scraper --priority-areas   or   pg-scraper URL [URL ...] --output data/pg.json
"""

import argparse
import logging
import sys
import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import replace
from pathlib import Path, PurePosixPath
from typing import Iterable
from urllib.parse import unquote, urlsplit

import requests
from bs4 import BeautifulSoup
from bs4.builder import ParserRejectedMarkup

from .assemble import assemble, assemble_known, dedupe_listings
from .config import (
    BASE_URL,
    CANCEL_POLL_SEC,
    DEFAULT_CLASSIFIER,
    DEFAULT_TIMEOUT_MS,
    DEFAULT_USER_AGENT,
    DEFAULT_WORKERS,
    KNOWN_PAGES,
    OUTPUT_JSON,
    PRIORITY_AREAS,
    REQUEST_HEADERS,
    RETRY_BACKOFF_SEC,
    ScrapeOptions,
)
from .db import ListingSink, PersistenceError
from .images import locate_images
from .models import BatchResult, ExtractionFailure, FailureReason, ImageCandidate, Listing
from .tables import CLASSIFIERS, correlate_listings, get_classifier
from .utils import init_logger, site_root, utc_now

logger = logging.getLogger("pg_scraper")


class ParseError(ValueError):
    """Markup could not be turned into a document tree."""


def area_url(area: str) -> str:
    return f"{BASE_URL}/{area}.html"


def page_slug(url: str) -> str:
    """'.../jpnagar.html' -> 'jpnagar'. Area pages are named after the area, so this doubles as location."""
    return PurePosixPath(unquote(urlsplit(url).path)).stem


def fetch(url: str, timeout_ms: int = DEFAULT_TIMEOUT_MS, user_agent: str = DEFAULT_USER_AGENT,
          session: requests.Session | None = None) -> str:
    """GET one page. Raises requests.RequestException on timeout, connection error or HTTP error status."""
    headers = {**REQUEST_HEADERS, "User-Agent": user_agent}
    getter = session.get if session is not None else requests.get
    r = getter(url, headers=headers, timeout=timeout_ms / 1000.0)
    r.raise_for_status()
    return r.text


def parse_document(html: str) -> BeautifulSoup:
    if not html or not html.strip():
        raise ParseError("empty document")
    try:
        return BeautifulSoup(html, "html.parser")
    except ParserRejectedMarkup as e:
        raise ParseError(str(e)) from e


def extract_page(
    url: str,
    options: ScrapeOptions | None = None,
    diagnostics: list[str] | None = None,
    session: requests.Session | None = None,
    cancel_event: threading.Event | None = None,
) -> list[Listing] | ExtractionFailure:
    """
    Fetch, parse and extract one page. Returns the page's listings (possibly none) or an
    ExtractionFailure; never raises for network, markup or cancellation problems.
    An unknown classifier name raises ValueError before anything is fetched.
    """
    options = options or ScrapeOptions()
    notes = diagnostics if diagnostics is not None else []
    classifier = get_classifier(options.classifier)

    if cancel_event is not None and cancel_event.is_set():
        return ExtractionFailure(url, FailureReason.CANCELLED, "cancelled before fetch")
    try:
        html = fetch(url, options.timeout_ms, options.user_agent, session=session)
    except requests.RequestException as e:
        logger.warning("Fetch failed %s: %s", url, e)
        return ExtractionFailure(url, FailureReason.NETWORK_ERROR, str(e))
    if cancel_event is not None and cancel_event.is_set():
        return ExtractionFailure(url, FailureReason.CANCELLED, "discarded after fetch")

    try:
        document = parse_document(html)
    except ParseError as e:
        logger.warning("Parse failed %s: %s", url, e)
        return ExtractionFailure(url, FailureReason.PARSE_ERROR, str(e))

    images = locate_images(document, site_root(url), notes)
    candidates = correlate_listings(document, notes)
    known = options.known_metadata or KNOWN_PAGES.get(url)
    location = options.location or page_slug(url)
    extracted_at = utc_now()

    listings = [
        assemble(c, images, url, known_metadata=known, classifier=classifier,
                 location=location, extracted_at=extracted_at)
        for c in candidates
    ]
    if not listings and known is not None and known.name:
        listings.append(assemble_known(known, images, url, location=location, extracted_at=extracted_at))

    if options.follow_detail_pages:
        listings = attach_detail_images(listings, options, notes, session=session, cancel_event=cancel_event)
        if cancel_event is not None and cancel_event.is_set():
            return ExtractionFailure(url, FailureReason.CANCELLED, "discarded during detail pages")

    logger.info("%s -> %d listings, %d images", url, len(listings), len(images))
    if notes:
        logger.debug("%s: %d skipped elements", url, len(notes))
    return listings


def attach_detail_images(
    listings: list[Listing],
    options: ScrapeOptions,
    diagnostics: list[str] | None = None,
    session: requests.Session | None = None,
    cancel_event: threading.Event | None = None,
) -> list[Listing]:
    """
    Fetch each listing's detail page and keep its first `detail_image_limit` photos in
    `detail_images`. The page-level `images` are left as they are. A detail page that
    fails to load is noted and skipped; the listing is kept either way.
    """
    notes = diagnostics if diagnostics is not None else []
    by_url: dict[str, tuple[ImageCandidate, ...]] = {}
    enriched = []
    for listing in listings:
        detail_url = listing.detail_url
        if not detail_url or (cancel_event is not None and cancel_event.is_set()):
            enriched.append(listing)
            continue
        if detail_url not in by_url:
            try:
                document = parse_document(fetch(detail_url, options.timeout_ms, options.user_agent, session=session))
            except (requests.RequestException, ParseError) as e:
                notes.append(f"detail page {detail_url}: {e}")
                logger.warning("Detail page failed %s: %s", detail_url, e)
                by_url[detail_url] = ()
            else:
                found = locate_images(document, site_root(detail_url), notes)
                by_url[detail_url] = tuple(found[:max(0, options.detail_image_limit)])
                logger.debug("Detail page %s: %d images kept", detail_url, len(by_url[detail_url]))
        enriched.append(replace(listing, detail_images=by_url[detail_url]))
    return enriched


def _extract_with_retry(url: str, options: ScrapeOptions | None, attempts: int,
                        cancel_event: threading.Event) -> list[Listing] | ExtractionFailure:
    attempts = max(1, attempts)
    for attempt in range(1, attempts + 1):
        outcome = extract_page(url, options, cancel_event=cancel_event)
        if not isinstance(outcome, ExtractionFailure) or outcome.reason is not FailureReason.NETWORK_ERROR:
            return outcome
        if attempt < attempts:
            wait_sec = RETRY_BACKOFF_SEC * (2 ** (attempt - 1))
            logger.info("  Attempt %d/%d failed for %s; retrying in %ss", attempt, attempts, url, wait_sec)
            if cancel_event.wait(wait_sec):
                return ExtractionFailure(url, FailureReason.CANCELLED, "cancelled during backoff")
    return outcome


def _collect(future: Future, url: str) -> list[Listing] | ExtractionFailure:
    try:
        return future.result()
    except Exception as e:
        logger.exception("Unexpected error extracting %s", url)
        return ExtractionFailure(url, FailureReason.UNEXPECTED_ERROR, f"{type(e).__name__}: {e}")


def extract_pages(
    urls: Iterable[str],
    options: ScrapeOptions | None = None,
    max_workers: int = DEFAULT_WORKERS,
    retry_attempts: int = 1,
    cancel_event: threading.Event | None = None,
) -> BatchResult:
    """
    Extract many pages on a bounded thread pool. Pages share nothing, so a failure only
    removes its own URL from the batch. Results are gathered on the calling thread, in
    input order.

    Setting `cancel_event` stops the batch within CANCEL_POLL_SEC: pending pages are
    cancelled and unfinished ones are reported as CANCELLED (a request already on the
    wire finishes in the background and its result is dropped). KeyboardInterrupt does
    the same and then propagates.
    """
    cancel_event = cancel_event or threading.Event()
    urls = list(dict.fromkeys(urls))
    outcomes: dict[str, list[Listing] | ExtractionFailure] = {}

    executor = ThreadPoolExecutor(max_workers=max(1, max_workers), thread_name_prefix="pg-extract")
    try:
        futures = {
            executor.submit(_extract_with_retry, url, options, retry_attempts, cancel_event): url
            for url in urls
        }
        pending = set(futures)
        while pending and not cancel_event.is_set():
            done, pending = wait(pending, timeout=CANCEL_POLL_SEC, return_when=FIRST_COMPLETED)
            for future in done:
                outcomes[futures[future]] = _collect(future, futures[future])
    except KeyboardInterrupt:
        cancel_event.set()
        logger.warning("Interrupted: discarding %d unfinished pages", len(urls) - len(outcomes))
        raise
    finally:
        executor.shutdown(wait=not cancel_event.is_set(), cancel_futures=True)

    if cancel_event.is_set():
        unfinished = [url for url in urls if url not in outcomes]
        if unfinished:
            logger.warning("Cancelled: %d pages unfinished", len(unfinished))
        for url in unfinished:
            outcomes[url] = ExtractionFailure(url, FailureReason.CANCELLED, "cancelled in flight")

    result = BatchResult()
    for url in urls:
        outcome = outcomes[url]
        if isinstance(outcome, ExtractionFailure):
            result.failures.append(outcome)
        else:
            result.listings.extend(outcome)
    return result


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    ap = argparse.ArgumentParser(description="Extract PG listings and photos from Bangalore PG aggregator pages")
    ap.add_argument("urls", nargs="*", help="Page URLs to extract")
    ap.add_argument("--area", action="append", default=[], help="Area slug, e.g. koramangala (repeatable)")
    ap.add_argument("--priority-areas", action="store_true", help="Scrape the built-in high-traffic areas")
    ap.add_argument("--output", type=Path, default=OUTPUT_JSON, help="Destination: .json, .csv, .db or .sqlite")
    ap.add_argument("--timeout-ms", type=int, default=DEFAULT_TIMEOUT_MS, help="Per-request timeout")
    ap.add_argument("--user-agent", default=DEFAULT_USER_AGENT)
    ap.add_argument("--workers", type=int, default=DEFAULT_WORKERS, help="Concurrent page extractions")
    ap.add_argument("--retries", type=int, default=1, help="Attempts per page on network errors")
    ap.add_argument("--classifier", choices=sorted(CLASSIFIERS), default=DEFAULT_CLASSIFIER,
                    help="How detail cells map to amenities/address/contact")
    ap.add_argument("--detail-pages", action="store_true",
                    help="Also fetch each listing's detail page and keep up to 5 of its photos")
    ap.add_argument("--verbose", "-v", action="store_true", help="Debug logging on the console")
    ap.add_argument("--log-file", default=None, help="Also log to this file")
    return ap.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    init_logger("pg_scraper", console_level="DEBUG" if args.verbose else "INFO", log_file=args.log_file)

    urls = list(args.urls) + [area_url(a) for a in args.area]
    if args.priority_areas:
        urls += [area_url(a) for a in PRIORITY_AREAS]
    if not urls:
        logger.error("Nothing to scrape: pass URLs, --area or --priority-areas")
        return 2

    options = ScrapeOptions(timeout_ms=args.timeout_ms, user_agent=args.user_agent, classifier=args.classifier,
                            follow_detail_pages=args.detail_pages)
    started = time.perf_counter()
    try:
        batch = extract_pages(urls, options, max_workers=args.workers, retry_attempts=args.retries)
    except KeyboardInterrupt:
        logger.warning("Stopped; nothing written")
        return 130

    for failure in batch.failures:
        logger.warning("Failed %s: %s %s", failure.url, failure.reason.value, failure.detail)
    listings = dedupe_listings(batch.listings)
    logger.info("%d pages, %d failed, %d listings (%d after dedupe) in %.1fs",
                len(urls), len(batch.failures), len(batch.listings), len(listings),
                time.perf_counter() - started)

    sink = ListingSink(args.output)
    try:
        sink.write(listings)
    except PersistenceError as e:
        logger.error("%s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())

"""Concurrent feed probing for batches of domains.

Every domain is probed in two tiers (see ``candidates``).  All candidates of a
tier are classified concurrently; the tier's winner is the first positive
candidate in *candidate order*, not whichever answered first, so results are
stable across runs.  The subdomain tier only starts once every path probe of
that domain has finished negative.

A single ``asyncio.Semaphore`` bounds the number of in-flight requests across
the whole batch.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

import httpx

from feedprobe.main import config
from feedprobe.main.tools.candidates import path_candidates, subdomain_candidates
from feedprobe.main.tools.classifier import ClassificationResult, classify, get_http_client

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DomainResult:
    """First feed found for a domain."""

    domain: str
    feed_url: str
    classification: ClassificationResult

    def to_dict(self) -> Dict[str, Any]:
        return {"domain": self.domain, "hasFeed": True, "feedUrl": self.feed_url}


async def _bounded_classify(
    url: str, client: httpx.AsyncClient, semaphore: asyncio.Semaphore
) -> ClassificationResult:
    async with semaphore:
        return await classify(url, client)


async def _probe_tier(
    urls: List[str],
    client: httpx.AsyncClient,
    semaphore: asyncio.Semaphore,
    cancel_siblings: bool,
) -> Optional[ClassificationResult]:
    """Classify *urls* concurrently and return the first positive in order."""
    # Several catalogue entries collapse onto the same URL; fetch each once.
    pending = [
        asyncio.create_task(_bounded_classify(url, client, semaphore))
        for url in dict.fromkeys(urls)
    ]
    winner: Optional[ClassificationResult] = None
    try:
        for task in pending:
            result = await task
            if result.has_feed:
                winner = result
                break
        if winner is not None:
            later = [t for t in pending if not t.done()]
            if cancel_siblings:
                for task in later:
                    task.cancel()
                await asyncio.gather(*later, return_exceptions=True)
            else:
                await asyncio.gather(*later)
    finally:
        # Only reached with live tasks when the caller itself was cancelled
        # or a probe raised unexpectedly.
        still_running = [t for t in pending if not t.done()]
        for task in still_running:
            task.cancel()
        if still_running:
            await asyncio.gather(*still_running, return_exceptions=True)
    return winner


async def probe_domain(
    domain: str,
    client: httpx.AsyncClient,
    semaphore: asyncio.Semaphore,
    cancel_siblings: bool = False,
) -> Optional[DomainResult]:
    """Find the first feed for *domain* (no scheme), or ``None``."""
    paths = path_candidates(domain)
    subdomains = subdomain_candidates(domain)
    winner = await _probe_tier(paths, client, semaphore, cancel_siblings)
    if winner is None:
        logger.debug("No feed under known paths of %s, trying subdomains", domain)
        winner = await _probe_tier(subdomains, client, semaphore, cancel_siblings)
    if winner is None:
        logger.info("No feed found for %s", domain)
        return None
    logger.info("Discovered feed for %s: %s", domain, winner.source_url)
    return DomainResult(domain=domain, feed_url=winner.source_url, classification=winner)


async def probe_domains(
    domains: Iterable[str],
    *,
    concurrency: Optional[int] = None,
    cancel_siblings: Optional[bool] = None,
    client: httpx.AsyncClient | None = None,
) -> List[Optional[DomainResult]]:
    """Probe every domain concurrently.

    Returns one entry per input domain, in input order; ``None`` marks a
    domain without a discoverable feed.
    """
    if concurrency is None:
        concurrency = config.MAX_CONCURRENCY
    if cancel_siblings is None:
        cancel_siblings = config.CANCEL_SIBLINGS
    if concurrency < 1:
        raise ValueError("concurrency must be at least 1")
    domains = list(domains)
    # Reject bad input before any request goes out.
    for domain in domains:
        path_candidates(domain)
    if client is None:
        client = await get_http_client()

    semaphore = asyncio.Semaphore(concurrency)
    tasks = [
        asyncio.create_task(probe_domain(d, client, semaphore, cancel_siblings))
        for d in domains
    ]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        # An internal error in one domain aborts the whole batch.
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise

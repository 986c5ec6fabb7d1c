"""Decide whether a single URL serves (or advertises) an RSS/Atom feed.

``classify`` performs exactly one GET and never raises for network trouble:
timeouts, DNS/TLS failures, malformed URLs and non-2xx answers all come back
as a negative ``ClassificationResult``.  Most probed URLs are guesses that
404, so a failure is an ordinary outcome rather than an error.

On success the body is run through a ``DetectionPolicy`` (see ``detectors``)
and, when the page advertises a feed via ``<link rel="alternate">``, the
advertised feed URLs are extracted and normalised.
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

import httpx

from feedprobe.main import config
from feedprobe.main.tools.detectors import (
    DEFAULT_POLICY,
    HAS_RSS_LINK,
    IS_FEED_LIST_PAGE,
    IS_XML,
    DetectionPolicy,
    FetchedPage,
)
from feedprobe.main.tools.url_utils import normalize_url

logger = logging.getLogger(__name__)

REQUEST_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
    ),
    "Accept": (
        "application/rss+xml, application/xml, application/xhtml+xml, "
        "text/html;q=0.9, text/plain;q=0.8, */*;q=0.5"
    ),
    "Accept-Language": "en-US,en;q=0.5",
}

# Errors that mean "this candidate is not reachable", not "feedprobe is broken".
_FETCH_ERRORS = (httpx.HTTPError, httpx.InvalidURL, httpx.StreamError, UnicodeError)

_LINK_TAG_RE = re.compile(
    r'<link[^>]*rel="alternate"[^>]*type="application/(?:rss|atom)\+xml"[^>]*href="[^"]+"[^>]*>',
    re.IGNORECASE,
)
_ANCHOR_TAG_RE = re.compile(
    r'<a[^>]*href="[^"]*/(?:rss|feed|atom)[^"]*\.(?:xml|rss|atom)"[^>]*>',
    re.IGNORECASE,
)
_HREF_RE = re.compile(r'href="([^"]+)"', re.IGNORECASE)

# Reusable async HTTP client for all probes.
_http_client: httpx.AsyncClient | None = None


@dataclass(frozen=True)
class ClassificationResult:
    """Outcome of probing one URL."""

    source_url: str
    has_feed: bool
    status_code: Optional[int] = None
    content_type: str = ""
    is_xml: bool = False
    is_feed_list_page: bool = False
    has_rss_link: bool = False
    feed_urls: Tuple[str, ...] = ()
    signals: Mapping[str, bool] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "feed_urls", tuple(self.feed_urls))
        object.__setattr__(self, "signals", MappingProxyType(dict(self.signals)))

    @classmethod
    def negative(
        cls,
        url: str,
        *,
        status_code: Optional[int] = None,
        content_type: str = "",
        policy: DetectionPolicy = DEFAULT_POLICY,
    ) -> "ClassificationResult":
        return cls(
            source_url=url,
            has_feed=False,
            status_code=status_code,
            content_type=content_type,
            signals=policy.negative(),
        )

    def to_dict(self) -> Dict[str, Any]:
        """JSON shape returned by the ``/check-feed`` endpoint."""
        return {
            "hasFeed": self.has_feed,
            "status": self.status_code,
            "contentType": self.content_type,
            "isFeedListPage": self.is_feed_list_page,
            "isXML": self.is_xml,
            "hasRSSLink": self.has_rss_link,
            "feedUrls": list(self.feed_urls),
            "url": self.source_url,
        }


async def get_http_client() -> httpx.AsyncClient:
    """Get or create the shared async HTTP client."""
    global _http_client
    if _http_client is None or _http_client.is_closed:
        _http_client = httpx.AsyncClient(follow_redirects=True, headers=REQUEST_HEADERS)
    return _http_client


async def close_http_client() -> None:
    global _http_client
    if _http_client is not None:
        await _http_client.aclose()
        _http_client = None


def _looks_like_feed_url(url: str) -> bool:
    lowered = url.lower()
    return any(token in lowered for token in ("/rss", "/feed", "/atom")) or lowered.endswith(".xml")


def extract_feed_urls(base_url: str, html: str, *, scan_anchors: bool = True) -> List[str]:
    """Collect feed URLs advertised by *html*, resolved against *base_url*.

    ``<link rel="alternate" type="application/(rss|atom)+xml">`` matches come
    first, then (when *scan_anchors* is set) ``<a>`` tags pointing at
    ``.xml``/``.rss``/``.atom`` files under an rss/feed/atom path.  Both groups
    keep document order.
    """
    # Two versions of the check-feed handler existed upstream: one read only
    # <link> tags, the other also mined anchors.  Anchors are on by default;
    # FEEDPROBE_SCAN_ANCHORS=0 restores the link-only behaviour.
    matches = [m.group(0) for m in _LINK_TAG_RE.finditer(html)]
    if scan_anchors:
        matches.extend(m.group(0) for m in _ANCHOR_TAG_RE.finditer(html))

    feed_urls: List[str] = []
    for tag in matches:
        href = _HREF_RE.search(tag)
        if not href:
            continue
        url = normalize_url(base_url, href.group(1))
        if _looks_like_feed_url(url):
            feed_urls.append(url)
    return feed_urls


def classify_page(
    page: FetchedPage,
    *,
    status_code: Optional[int] = None,
    policy: DetectionPolicy = DEFAULT_POLICY,
    scan_anchors: bool = True,
) -> ClassificationResult:
    """Run *policy* over an already fetched page.  Pure: no I/O."""
    signals = policy.evaluate(page)
    has_rss_link = signals.get(HAS_RSS_LINK, False)
    feed_urls: Tuple[str, ...] = ()
    if has_rss_link:
        feed_urls = tuple(extract_feed_urls(page.url, page.text, scan_anchors=scan_anchors))
    return ClassificationResult(
        source_url=page.url,
        has_feed=any(signals.values()),
        status_code=status_code,
        content_type=page.content_type,
        is_xml=signals.get(IS_XML, False),
        is_feed_list_page=signals.get(IS_FEED_LIST_PAGE, False),
        has_rss_link=has_rss_link,
        feed_urls=feed_urls,
        signals=signals,
    )


async def _read_body(response: httpx.Response, max_bytes: int) -> str:
    chunks: List[bytes] = []
    total = 0
    async for chunk in response.aiter_bytes():
        chunks.append(chunk)
        total += len(chunk)
        if max_bytes and total >= max_bytes:
            logger.debug("Truncating body of %s at %d bytes", response.url, max_bytes)
            break
    data = b"".join(chunks)
    if max_bytes:
        data = data[:max_bytes]
    encoding = response.charset_encoding or "utf-8"
    try:
        return data.decode(encoding, errors="replace")
    except LookupError:
        return data.decode("utf-8", errors="replace")


async def _fetch(
    client: httpx.AsyncClient,
    url: str,
    policy: DetectionPolicy,
    scan_anchors: bool,
    timeout: float,
    max_body_bytes: int,
) -> ClassificationResult:
    async with client.stream(
        "GET", url, headers=REQUEST_HEADERS, timeout=timeout, follow_redirects=True
    ) as response:
        content_type = response.headers.get("content-type", "")
        if not response.is_success:
            logger.debug("Probe %s answered %s", url, response.status_code)
            return ClassificationResult.negative(
                url,
                status_code=response.status_code,
                content_type=content_type,
                policy=policy,
            )
        text = await _read_body(response, max_body_bytes)
        status_code = response.status_code

    page = FetchedPage(url=url, content_type=content_type, text=text)
    return classify_page(page, status_code=status_code, policy=policy, scan_anchors=scan_anchors)


async def _classify_with(
    client: httpx.AsyncClient,
    url: str,
    policy: DetectionPolicy,
    scan_anchors: bool,
    timeout: float,
    max_body_bytes: int,
) -> ClassificationResult:
    # httpx applies ``timeout`` per connect/read step; the deadline below caps
    # the whole exchange so a slow-dripping server cannot hold a probe open.
    try:
        return await asyncio.wait_for(
            _fetch(client, url, policy, scan_anchors, timeout, max_body_bytes),
            timeout,
        )
    except asyncio.TimeoutError:
        logger.debug("Probe %s exceeded %.1fs", url, timeout)
        return ClassificationResult.negative(url, policy=policy)
    except _FETCH_ERRORS as exc:
        logger.debug("Probe %s failed: %s", url, exc)
        return ClassificationResult.negative(url, policy=policy)


async def classify(
    url: str,
    client: httpx.AsyncClient | None = None,
    *,
    policy: DetectionPolicy = DEFAULT_POLICY,
    scan_anchors: Optional[bool] = None,
    timeout: Optional[float] = None,
    max_body_bytes: Optional[int] = None,
) -> ClassificationResult:
    """Fetch *url* once and classify the response.

    Parameters
    ----------
    url:
        Fully qualified candidate URL.
    client:
        Optional ``httpx.AsyncClient`` to reuse.  A short-lived client is
        created when omitted.
    policy:
        Detectors whose verdicts are OR'd into ``has_feed``.
    scan_anchors, timeout, max_body_bytes:
        Override the matching settings in ``feedprobe.main.config``.
    """
    if scan_anchors is None:
        scan_anchors = config.SCAN_ANCHORS
    if timeout is None:
        timeout = config.REQUEST_TIMEOUT
    if max_body_bytes is None:
        max_body_bytes = config.MAX_BODY_BYTES

    if client is not None:
        return await _classify_with(client, url, policy, scan_anchors, timeout, max_body_bytes)
    async with httpx.AsyncClient(follow_redirects=True) as own_client:
        return await _classify_with(own_client, url, policy, scan_anchors, timeout, max_body_bytes)

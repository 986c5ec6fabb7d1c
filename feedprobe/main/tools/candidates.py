"""Candidate feed URLs for a bare domain.

Two tiers are produced, always in the same order:

1. ``https://<domain><path>`` for every entry of ``FEED_PATHS``;
2. a handful of feed-specific hosts (``rss.``, ``feeds.``, ``feed.``) plus
   ``www.<domain>/rss`` for sites that only publish under their ``www`` host.

The second tier is only worth probing when nothing in the first tier turned
out to be a feed; the prober enforces that.  Order matters because the first
positive candidate wins.
"""

from __future__ import annotations

import re
from typing import List, Tuple

from feedprobe.main.errors import InvalidDomainError

# Entries prefixed with ``@`` come from malformed references seen in the wild;
# the prefix is dropped when the URL is built.
FEED_PATHS: Tuple[str, ...] = (
    "/rss",
    "/feed",
    "/feed/",
    "/feed/rss",
    "/feed.xml",
    "/rss.xml",
    "/atom.xml",
    "/feed/atom",
    "/paginas/rss-2",
    "/rss-2",
    "/rss2",
    "/feed/rss2",
    "/feed/rss-2",
    "/rss/feed",
    "/feed/rss/feed",
    "/rss/feed.xml",
    "/feed/rss.xml",
    "/index.xml",
    "@/feed/",
    "@/rss/",
    "@/rss.xml",
    "@/feed.xml",
    "@/atom.xml",
    "@/index.xml",
)

SUBDOMAIN_TEMPLATES: Tuple[str, ...] = (
    "https://rss.{domain}",
    "https://feeds.{domain}",
    "https://feed.{domain}",
    "https://www.{domain}/rss",
)

_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)


def clean_domain(raw: str) -> str:
    """Trim whitespace and strip a leading ``http://`` or ``https://``."""
    return _SCHEME_RE.sub("", (raw or "").strip())


def _check_domain(domain: str) -> str:
    if not domain or not domain.strip():
        raise InvalidDomainError("domain must not be empty")
    if "://" in domain:
        raise InvalidDomainError(f"domain must not include a scheme: {domain!r}")
    return domain


def path_candidates(domain: str) -> List[str]:
    """First tier: well-known feed paths on ``https://<domain>``."""
    domain = _check_domain(domain)
    return [f"https://{domain}{path.lstrip('@')}" for path in FEED_PATHS]


def subdomain_candidates(domain: str) -> List[str]:
    """Second tier: feed subdomains and the ``www`` fallback."""
    domain = _check_domain(domain)
    return [template.format(domain=domain) for template in SUBDOMAIN_TEMPLATES]


def generate_candidates(domain: str) -> List[str]:
    """Return every candidate for *domain*: the path tier, then the subdomain tier.

    Raises ``InvalidDomainError`` when *domain* is empty or still has a scheme;
    pass user input through ``clean_domain`` first.
    """
    return path_candidates(domain) + subdomain_candidates(domain)

"""URL helpers used when turning scraped ``href`` values into feed URLs."""

from __future__ import annotations

from urllib.parse import urljoin, urlsplit


def is_absolute_url(value: str) -> bool:
    """Return ``True`` when *value* parses as a URL with its own scheme."""
    try:
        parts = urlsplit(value)
    except ValueError:
        return False
    if not parts.scheme:
        return False
    # Hierarchical schemes need a host to stand on their own.
    if parts.scheme in {"http", "https"}:
        return bool(parts.netloc)
    return True


def _origin(scheme: str, netloc: str) -> str:
    # Credentials never belong to the origin.
    host = netloc.rpartition("@")[2]
    return f"{scheme}://{host}"


def normalize_url(base_url: str, href: str) -> str:
    """Resolve *href* found on the page at *base_url* into an absolute URL.

    * absolute hrefs are returned unchanged;
    * one leading ``@`` is dropped (a common artefact of broken feed links);
    * ``//host/path`` borrows the scheme of *base_url*;
    * ``/path`` is joined to the origin of *base_url*;
    * anything else is resolved relative to *base_url*.

    Best effort only: if *base_url* cannot be parsed the original *href* is
    returned as-is.
    """
    if is_absolute_url(href):
        return href

    candidate = href[1:] if href.startswith("@") else href

    try:
        base = urlsplit(base_url)
    except ValueError:
        return href
    if not base.scheme or not base.netloc:
        return href

    if candidate.startswith("//"):
        return f"{base.scheme}:{candidate}"
    if candidate.startswith("/"):
        return f"{_origin(base.scheme, base.netloc)}{candidate}"
    try:
        return urljoin(base_url, candidate)
    except ValueError:
        return href

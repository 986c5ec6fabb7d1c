"""Shared utilities for feedprobe.

Both the FastAPI HTTP server (``feedprobe/app_server.py``) and the FastMCP tool
server (``feedprobe/server.py``) classify single URLs and probe batches of
domains.  This module wraps those two workflows so the servers stay thin and
return identical JSON.
"""

from __future__ import annotations

import re
from typing import Any, Dict, Iterable, List, Union

from feedprobe.main.errors import InvalidDomainError
from feedprobe.main.tools.candidates import clean_domain
from feedprobe.main.tools.classifier import classify, get_http_client
from feedprobe.main.tools.prober import probe_domains

_DOMAIN_SEPARATORS = re.compile(r"[,\n]")


def parse_domains(raw: Union[str, Iterable[str]]) -> List[str]:
    """Turn user input into bare domains.

    Accepts either a comma/newline separated string or a list of strings.
    Entries are trimmed, empty ones dropped and any ``http(s)://`` prefix
    removed.
    """
    if isinstance(raw, str):
        items: Iterable[str] = _DOMAIN_SEPARATORS.split(raw)
    else:
        items = (part for entry in raw for part in _DOMAIN_SEPARATORS.split(entry or ""))
    domains = [clean_domain(item) for item in items]
    return [d for d in domains if d]


async def check_feed(url: str) -> Dict[str, Any]:
    """Classify *url* and return the ``/check-feed`` payload."""
    client = await get_http_client()
    result = await classify(url, client)
    return result.to_dict()


async def discover_feeds(raw_domains: Union[str, Iterable[str]]) -> Dict[str, Any]:
    """Probe every domain in *raw_domains* and summarise the outcome.

    Raises ``InvalidDomainError`` if no usable domain remains after parsing.
    """
    domains = parse_domains(raw_domains)
    if not domains:
        raise InvalidDomainError("at least one domain is required")
    results = await probe_domains(domains)
    return {
        "results": [r.to_dict() for r in results if r is not None],
        "notFound": [d for d, r in zip(domains, results) if r is None],
    }

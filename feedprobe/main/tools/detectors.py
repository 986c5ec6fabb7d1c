"""Heuristic feed detectors.

A detector looks at one fetched page and answers a single yes/no question.
The classifier ORs every verdict of a ``DetectionPolicy`` together, so adding a
detector widens what counts as a feed without touching the probing code.

The built-in detectors are plain substring checks on the lower-cased body and
Content-Type.  They are intentionally permissive: a page that merely talks
about "rss feeds" is accepted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, Protocol, Tuple

IS_XML = "is_xml"
IS_FEED_LIST_PAGE = "is_feed_list_page"
HAS_RSS_LINK = "has_rss_link"


@dataclass(frozen=True)
class FetchedPage:
    """A successful response, reduced to what detectors need."""

    url: str
    content_type: str
    text: str
    body: str = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "body", self.text.lower())


class Detector(Protocol):
    name: str

    def detect(self, page: FetchedPage) -> bool:
        ...


@dataclass(frozen=True)
class MarkerDetector:
    """Positive when the body (or Content-Type) contains any marker."""

    name: str
    body_markers: Tuple[str, ...]
    content_type_markers: Tuple[str, ...] = ()

    def detect(self, page: FetchedPage) -> bool:
        content_type = page.content_type.lower()
        if any(marker in content_type for marker in self.content_type_markers):
            return True
        return any(marker in page.body for marker in self.body_markers)


FEED_LIST_PAGE = MarkerDetector(
    name=IS_FEED_LIST_PAGE,
    body_markers=(
        "rss feeds",
        "feed reader",
        "really simple syndication",
        "rss feed",
        "rss-2",
        "rss2",
    ),
)

XML_DOCUMENT = MarkerDetector(
    name=IS_XML,
    content_type_markers=("xml", "rss", "atom"),
    body_markers=(
        "<?xml",
        "<rss",
        "<feed",
        'rss version="2.0"',
        'rss version="1.0"',
        'rss version="0.92"',
    ),
)

ALTERNATE_LINK = MarkerDetector(
    name=HAS_RSS_LINK,
    body_markers=(
        'type="application/rss+xml"',
        'type="application/atom+xml"',
        'rel="alternate" type="application/rss+xml"',
        'rel="alternate" type="application/atom+xml"',
    ),
)


@dataclass(frozen=True)
class DetectionPolicy:
    """An ordered, immutable set of detectors."""

    detectors: Tuple[Detector, ...]

    def __post_init__(self) -> None:
        names = [d.name for d in self.detectors]
        if len(names) != len(set(names)):
            raise ValueError(f"duplicate detector names: {names}")

    def with_detectors(self, extra: Iterable[Detector]) -> "DetectionPolicy":
        """Return a new policy with *extra* appended after the current detectors."""
        return DetectionPolicy(self.detectors + tuple(extra))

    def evaluate(self, page: FetchedPage) -> Dict[str, bool]:
        return {d.name: bool(d.detect(page)) for d in self.detectors}

    def negative(self) -> Dict[str, bool]:
        """Verdicts for a page that could not be fetched."""
        return {d.name: False for d in self.detectors}


DEFAULT_POLICY = DetectionPolicy((FEED_LIST_PAGE, XML_DOCUMENT, ALTERNATE_LINK))

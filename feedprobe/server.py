"""FastMCP server exposing feedprobe's discovery tools.

Available tools:
* ``check_feed(url: str) -> str`` – classifies a single URL and returns the same
  JSON document as the ``/check-feed`` HTTP endpoint.
* ``discover_feeds(domains: str) -> str`` – probes a comma/newline separated list
  of domains and returns the discovered feeds as JSON.
"""

import json
import logging

from fastmcp import FastMCP

from feedprobe.feed_utils import check_feed as check, discover_feeds as discover
from feedprobe.main import config
from feedprobe.main.errors import InvalidDomainError

logger = logging.getLogger(__name__)

mcp = FastMCP("feedprobe")


@mcp.tool
async def check_feed(url: str) -> str:
    """Report whether *url* is, or advertises, an RSS/Atom feed.

    Network failures come back as ``"hasFeed": false``; only unexpected
    errors produce an ``error`` document.
    """
    if not url:
        return json.dumps({"error": "url is required"})
    try:
        result = await check(url)
    except Exception:
        logger.exception("Unexpected failure while checking %s", url)
        return json.dumps({"error": "Failed to check feed"})
    return json.dumps(result)


@mcp.tool
async def discover_feeds(domains: str) -> str:
    """Find the first feed of every domain in *domains*.

    *domains* is a comma or newline separated list; ``http(s)://`` prefixes
    are ignored.
    """
    try:
        summary = await discover(domains)
    except InvalidDomainError as exc:
        return json.dumps({"error": str(exc)})
    except Exception:
        logger.exception("Unexpected failure while probing %s", domains)
        return json.dumps({"error": "Failed to discover feeds"})
    return json.dumps(summary)


def main() -> None:
    """Entry point – start the FastMCP server on stdio transport."""
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    # stdout belongs to the stdio transport; announce on the log instead.
    logger.info("feedprobe FastMCP server ready (stdio transport, MCP_PORT=%s)", config.MCP_PORT)
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()

"""Tests for the feed classifier.

All HTTP traffic goes through ``httpx.MockTransport`` so no real network
requests are made.
"""

import asyncio
from unittest import IsolatedAsyncioTestCase, TestCase

import httpx

from feedprobe.main.tools.classifier import (
    ClassificationResult,
    classify,
    classify_page,
    extract_feed_urls,
)
from feedprobe.main.tools.detectors import DEFAULT_POLICY, FetchedPage, MarkerDetector


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler), follow_redirects=True)


def _respond(status_code: int = 200, body: str = "", content_type: str = "text/html; charset=utf-8"):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, headers={"Content-Type": content_type}, content=body.encode("utf-8"))

    return handler


class TestClassify(IsolatedAsyncioTestCase):
    async def classify_with(self, handler, url: str = "https://example.com/feed", **kwargs) -> ClassificationResult:
        async with _client(handler) as client:
            return await classify(url, client, **kwargs)

    async def test_rss_content_type_is_a_feed(self) -> None:
        result = await self.classify_with(_respond(body="anything", content_type="application/rss+xml"))
        self.assertTrue(result.is_xml)
        self.assertTrue(result.has_feed)
        self.assertEqual(result.status_code, 200)
        self.assertEqual(result.content_type, "application/rss+xml")

    async def test_xml_markers_in_body(self) -> None:
        body = '<?xml version="1.0"?><rss version="2.0"><channel></channel></rss>'
        result = await self.classify_with(_respond(body=body, content_type="text/plain"))
        self.assertTrue(result.is_xml)
        self.assertTrue(result.has_feed)

    async def test_origin_relative_alternate_link(self) -> None:
        body = '<html><head><link rel="alternate" type="application/rss+xml" href="/feed.xml"></head></html>'
        result = await self.classify_with(_respond(body=body), url="https://example.com/blog")
        self.assertTrue(result.has_rss_link)
        self.assertTrue(result.has_feed)
        self.assertFalse(result.is_xml)
        self.assertEqual(result.feed_urls, ("https://example.com/feed.xml",))

    async def test_protocol_relative_alternate_link(self) -> None:
        body = '<link rel="alternate" type="application/atom+xml" href="//cdn.example.com/feed">'
        result = await self.classify_with(_respond(body=body), url="https://example.com")
        self.assertEqual(result.feed_urls, ("https://cdn.example.com/feed",))

    async def test_not_found_is_negative(self) -> None:
        result = await self.classify_with(_respond(404, body="<rss>not here</rss>"))
        self.assertFalse(result.has_feed)
        self.assertFalse(result.is_xml)
        self.assertFalse(result.is_feed_list_page)
        self.assertFalse(result.has_rss_link)
        self.assertEqual(result.feed_urls, ())
        self.assertEqual(result.status_code, 404)

    async def test_network_error_is_negative(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        result = await self.classify_with(handler)
        self.assertFalse(result.has_feed)
        self.assertIsNone(result.status_code)
        self.assertEqual(result.feed_urls, ())

    async def test_timeout_is_negative(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        result = await self.classify_with(handler)
        self.assertFalse(result.has_feed)

    async def test_malformed_urls_do_not_raise(self) -> None:
        for url in ("not a url", "http://[::1", "ftp://example.com/feed"):
            result = await classify(url)
            self.assertFalse(result.has_feed, url)
            self.assertEqual(result.source_url, url)

    async def test_redirects_are_followed(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/feed":
                return httpx.Response(301, headers={"Location": "https://example.com/feed.xml"})
            return httpx.Response(200, headers={"Content-Type": "application/atom+xml"}, content=b"<feed/>")

        result = await self.classify_with(handler)
        self.assertTrue(result.has_feed)
        self.assertEqual(result.source_url, "https://example.com/feed")

    async def test_request_headers(self) -> None:
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen.update(request.headers)
            return httpx.Response(200, content=b"")

        await self.classify_with(handler)
        self.assertTrue(seen["user-agent"].startswith("Mozilla/5.0"))
        self.assertTrue(seen["accept"].startswith("application/rss+xml, application/xml"))

    async def test_feed_list_page(self) -> None:
        body = "<html><body>Add us to your Feed Reader!</body></html>"
        result = await self.classify_with(_respond(body=body))
        self.assertTrue(result.is_feed_list_page)
        self.assertTrue(result.has_feed)
        self.assertEqual(result.feed_urls, ())

    async def test_plain_page_is_negative(self) -> None:
        result = await self.classify_with(_respond(body="<html><body>Hello</body></html>"))
        self.assertFalse(result.has_feed)
        self.assertEqual(result.status_code, 200)

    async def test_body_is_truncated(self) -> None:
        body = "x" * 32 + "<rss>"
        result = await self.classify_with(_respond(body=body, content_type="text/plain"), max_body_bytes=16)
        self.assertFalse(result.is_xml)

    async def test_anchor_scanning_can_be_disabled(self) -> None:
        body = (
            '<link rel="alternate" type="application/rss+xml" href="https://example.com/feed">'
            '<a href="/rss/news.xml">News</a>'
        )
        rich = await self.classify_with(_respond(body=body), scan_anchors=True)
        lean = await self.classify_with(_respond(body=body), scan_anchors=False)
        self.assertEqual(rich.feed_urls, ("https://example.com/feed", "https://example.com/rss/news.xml"))
        self.assertEqual(lean.feed_urls, ("https://example.com/feed",))

    async def test_same_content_classifies_identically(self) -> None:
        body = '<link rel="alternate" type="application/rss+xml" href="/feed.xml"> rss feed'
        first = await self.classify_with(_respond(body=body))
        second = await self.classify_with(_respond(body=body))
        self.assertEqual(first, second)

    async def test_extra_detector_widens_policy(self) -> None:
        json_feed = MarkerDetector(name="is_json_feed", body_markers=("jsonfeed.org/version",))
        policy = DEFAULT_POLICY.with_detectors([json_feed])
        body = '{"version": "https://jsonfeed.org/version/1.1", "items": []}'
        result = await self.classify_with(_respond(body=body, content_type="application/json"), policy=policy)
        self.assertTrue(result.has_feed)
        self.assertTrue(result.signals["is_json_feed"])
        self.assertFalse(result.is_xml)


class TestExtraction(TestCase):
    def test_link_matches_precede_anchor_matches(self) -> None:
        html = (
            '<a href="/feed/all.atom">all</a>'
            '<link rel="alternate" type="application/rss+xml" href="/rss.xml">'
            '<link rel="alternate" type="application/atom+xml" href="/atom.xml">'
        )
        self.assertEqual(
            extract_feed_urls("https://example.com/", html),
            [
                "https://example.com/rss.xml",
                "https://example.com/atom.xml",
                "https://example.com/feed/all.atom",
            ],
        )

    def test_non_feed_hrefs_are_discarded(self) -> None:
        html = '<link rel="alternate" type="application/rss+xml" href="/comments">'
        self.assertEqual(extract_feed_urls("https://example.com/", html), [])

    def test_case_of_href_is_preserved(self) -> None:
        html = '<LINK REL="alternate" TYPE="application/rss+xml" HREF="/Feeds/Main.xml">'
        self.assertEqual(extract_feed_urls("https://example.com/", html), ["https://example.com/Feeds/Main.xml"])

    def test_at_prefixed_href(self) -> None:
        html = '<link rel="alternate" type="application/rss+xml" href="@/feed/">'
        self.assertEqual(extract_feed_urls("https://example.com/news", html), ["https://example.com/feed/"])


class TestClassifyPage(TestCase):
    def test_content_type_alone_is_enough(self) -> None:
        page = FetchedPage(url="https://example.com/rss", content_type="application/rss+xml", text="")
        result = classify_page(page, status_code=200)
        self.assertTrue(result.is_xml)
        self.assertTrue(result.has_feed)

    def test_to_dict(self) -> None:
        page = FetchedPage(
            url="https://example.com",
            content_type="text/html",
            text='<link rel="alternate" type="application/rss+xml" href="/feed">',
        )
        payload = classify_page(page, status_code=200).to_dict()
        self.assertEqual(
            payload,
            {
                "hasFeed": True,
                "status": 200,
                "contentType": "text/html",
                "isFeedListPage": False,
                "isXML": False,
                "hasRSSLink": True,
                "feedUrls": ["https://example.com/feed"],
                "url": "https://example.com",
            },
        )

    def test_negative_result(self) -> None:
        result = ClassificationResult.negative("https://example.com/rss", status_code=500)
        self.assertFalse(result.has_feed)
        self.assertEqual(set(result.signals.values()), {False})


class TestDeadline(IsolatedAsyncioTestCase):
    async def test_slow_drip_body_is_cut_off_at_the_timeout(self) -> None:
        async def drip():
            for _ in range(20):
                await asyncio.sleep(0.3)
                yield b"x"

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, headers={"Content-Type": "text/plain"}, content=drip())

        loop = asyncio.get_running_loop()
        started = loop.time()
        async with _client(handler) as client:
            result = await classify("https://slow.example/feed", client, timeout=1.0)
        elapsed = loop.time() - started

        self.assertLess(elapsed, 2.0)
        self.assertFalse(result.has_feed)
        self.assertIsNone(result.status_code)


class TestResultImmutability(TestCase):
    def test_signals_cannot_be_mutated(self) -> None:
        page = FetchedPage(url="https://example.com/rss", content_type="application/rss+xml", text="")
        result = classify_page(page, status_code=200)
        with self.assertRaises(TypeError):
            result.signals["is_xml"] = False
        self.assertTrue(result.signals["is_xml"])

    def test_result_is_hashable(self) -> None:
        page = FetchedPage(url="https://example.com/rss", content_type="application/rss+xml", text="")
        first = classify_page(page, status_code=200)
        second = classify_page(page, status_code=200)
        self.assertEqual(first, second)
        self.assertEqual(hash(first), hash(second))
        self.assertEqual(len({first, second}), 1)

    def test_feed_urls_are_stored_as_tuple(self) -> None:
        result = ClassificationResult(source_url="https://example.com", has_feed=True, feed_urls=["https://example.com/feed"])
        self.assertEqual(result.feed_urls, ("https://example.com/feed",))

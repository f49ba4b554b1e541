"""HTTP adapter for the ReachabilityChecker port."""

import asyncio
import logging
import re
import time
from urllib.parse import urlsplit
from urllib.robotparser import RobotFileParser

import httpx
import logfire
from bs4 import BeautifulSoup

from wsi.config import CrawlerConfig
from wsi.domain.crawl.port.reachability import ReachabilityChecker, ReachabilityResult

logger = logging.getLogger(__name__)

_ROBOTS_META_NAME = re.compile(r"^(robots|googlebot)$", re.IGNORECASE)
# Only the head of the document is scanned for robots meta tags
_SCAN_LIMIT = 64 * 1024
_ROBOTS_SIZE_LIMIT = 512 * 1024
_ROBOTS_TTL_SECONDS = 3600.0


class HttpReachabilityChecker(ReachabilityChecker):
    """Fetches a page with httpx and checks that it may be indexed.

    Timeouts, network errors, 429 and 5xx are transient. Other non-2xx
    statuses, robots.txt exclusion and ``noindex`` directives are not.
    robots.txt files are cached per origin; one that cannot be fetched
    allows everything.

    ``timeout_seconds`` bounds each fetch as a whole, body included. Only the
    first ``_SCAN_LIMIT`` bytes of an HTML page are ever read.
    """

    def __init__(self, client: httpx.AsyncClient, config: CrawlerConfig) -> None:
        self._client = client
        self._config = config
        self._robots: dict[str, tuple[float, RobotFileParser]] = {}

    async def check(self, url: str) -> ReachabilityResult:
        timeout = self._config.timeout_seconds
        try:
            async with asyncio.timeout(timeout):
                response, head = await self._fetch_page(url)
        except (TimeoutError, httpx.TimeoutException):
            return ReachabilityResult.failed(f"timed out after {timeout}s", transient=True)
        except httpx.RequestError as e:
            return ReachabilityResult.failed(f"request failed: {e}", transient=True)

        code = response.status_code
        if code == 429 or code >= 500:
            return ReachabilityResult.failed(f"HTTP {code}", code, transient=True)
        if not 200 <= code < 300:
            return ReachabilityResult.failed(f"HTTP {code}", code)

        if "noindex" in response.headers.get("x-robots-tag", "").lower():
            return ReachabilityResult.failed("noindex in X-Robots-Tag header", code)
        if head and _has_noindex_meta(head):
            return ReachabilityResult.failed("noindex in robots meta tag", code)

        if self._config.respect_robots_txt and not await self._robots_allows(url):
            return ReachabilityResult.failed("disallowed by robots.txt", code)

        return ReachabilityResult.ok(code)

    async def _fetch_page(self, url: str) -> tuple[httpx.Response, str]:
        """Status and headers of ``url``, plus the head of the body for HTML pages."""
        async with self._client.stream(
            "GET",
            url,
            headers={"User-Agent": self._config.user_agent},
            follow_redirects=True,
            timeout=self._config.timeout_seconds,
        ) as response:
            head = ""
            if response.is_success and "html" in response.headers.get("content-type", ""):
                head = await _read_text(response, _SCAN_LIMIT)
            return response, head

    async def _robots_allows(self, url: str) -> bool:
        parts = urlsplit(url)
        origin = f"{parts.scheme}://{parts.netloc}"

        cached = self._robots.get(origin)
        if cached is None or time.monotonic() - cached[0] > _ROBOTS_TTL_SECONDS:
            parser = await self._fetch_robots(origin)
            if parser is None:
                return True
            self._robots[origin] = (time.monotonic(), parser)
        else:
            parser = cached[1]

        return parser.can_fetch(self._config.user_agent, url)

    async def _fetch_robots(self, origin: str) -> RobotFileParser | None:
        robots_url = f"{origin}/robots.txt"
        try:
            async with asyncio.timeout(self._config.timeout_seconds):
                async with self._client.stream(
                    "GET",
                    robots_url,
                    headers={"User-Agent": self._config.user_agent},
                    follow_redirects=True,
                    timeout=self._config.timeout_seconds,
                ) as response:
                    if response.status_code >= 500:
                        return None
                    # A missing robots.txt (4xx) allows everything
                    text = ""
                    if response.status_code < 400:
                        text = await _read_text(response, _ROBOTS_SIZE_LIMIT)
        except (TimeoutError, httpx.TimeoutException):
            logfire.warn("robots.txt fetch timed out", robots_url=robots_url)
            return None
        except httpx.RequestError as e:
            logfire.warn("robots.txt fetch failed", robots_url=robots_url, error=str(e))
            return None

        parser = RobotFileParser(robots_url)
        parser.parse(text.splitlines())
        return parser


async def _read_text(response: httpx.Response, limit: int) -> str:
    """Decode at most ``limit`` bytes of a streamed body."""
    body = bytearray()
    async for chunk in response.aiter_bytes():
        body.extend(chunk)
        if len(body) >= limit:
            break
    try:
        return body[:limit].decode(response.charset_encoding or "utf-8", errors="replace")
    except LookupError:
        return body[:limit].decode("utf-8", errors="replace")


def _has_noindex_meta(html: str) -> bool:
    soup = BeautifulSoup(html, "html.parser")
    for meta in soup.find_all("meta", attrs={"name": _ROBOTS_META_NAME}):
        if "noindex" in (meta.get("content") or "").lower():
            return True
    return False

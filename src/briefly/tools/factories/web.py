"""Web fetch tool factory."""

from __future__ import annotations

import asyncio
import re
from urllib import parse as urllib_parse

import httpx
from bs4 import BeautifulSoup
from loguru import logger
from republic import Tool, tool_from_model

from briefly.tools.factories.shared import WebFetchInput

REQUEST_TIMEOUT_SECONDS = 5.0
MAX_TEXT_CHARS = 8000
MIN_MAIN_CONTENT_CHARS = 100
USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/124.0 Safari/537.36"
)
NON_CONTENT_TAGS = ["script", "style", "noscript", "head", "nav", "footer", "header", "aside", "iframe", "form", "svg"]
MAIN_CONTENT_SELECTOR = "main, article, .main, #main, #content"
EMPTY_PAGE_MESSAGE = "The page appears to have no readable content."
_WHITESPACE_RE = re.compile(r"\s+")


def fetch_error(url: str, reason: str) -> str:
    return f"Error: Failed to fetch the page at {url}. {reason}"


def extract_text(html: str) -> str:
    """Strip non-content markup and collapse whitespace."""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(NON_CONTENT_TAGS):
        tag.decompose()

    main = soup.select_one(MAIN_CONTENT_SELECTOR)
    main_text = _collapse(main.get_text(" ")) if main is not None else ""
    if len(main_text) > MIN_MAIN_CONTENT_CHARS:
        return main_text

    body = soup.body or soup
    return _collapse(body.get_text(" "))


def _collapse(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text).strip()


def _normalize_url(raw_url: str) -> str | None:
    normalized = raw_url.strip()
    if not normalized:
        return None

    try:
        parsed = urllib_parse.urlparse(normalized)
    except ValueError:
        return None
    if parsed.scheme and parsed.netloc:
        if parsed.scheme not in {"http", "https"}:
            return None
        return normalized

    if parsed.scheme == "" and parsed.netloc == "" and parsed.path:
        with_scheme = f"https://{normalized}"
        try:
            parsed = urllib_parse.urlparse(with_scheme)
        except ValueError:
            return None
        if parsed.netloc:
            return with_scheme

    return None


class WebFetcher:
    """Fetches one page and reduces it to bounded plain text.

    Every expected failure comes back as an ``Error: ...`` string so the model
    can react to it conversationally.
    """

    def __init__(
        self,
        *,
        timeout_seconds: float = REQUEST_TIMEOUT_SECONDS,
        max_chars: int = MAX_TEXT_CHARS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._timeout_seconds = timeout_seconds
        self._max_chars = max_chars
        self._transport = transport

    async def fetch(self, raw_url: str) -> str:
        url = _normalize_url(raw_url)
        if url is None:
            return fetch_error(raw_url, "The URL is invalid; only http and https URLs are supported.")

        try:
            async with asyncio.timeout(self._timeout_seconds):
                html = await self._get(url)
        except TimeoutError:
            logger.warning("tool.web.timeout url={} timeout={}s", url, self._timeout_seconds)
            return fetch_error(url, f"The request timed out after {self._timeout_seconds:g} seconds.")
        except httpx.HTTPStatusError as exc:
            return fetch_error(url, f"The server responded with HTTP {exc.response.status_code}.")
        except httpx.InvalidURL:
            return fetch_error(url, "The URL is invalid.")
        except httpx.TimeoutException:
            return fetch_error(url, f"The request timed out after {self._timeout_seconds:g} seconds.")
        except httpx.HTTPError as exc:
            logger.warning("tool.web.error url={} error={}", url, exc)
            return fetch_error(url, f"Network error: {exc!s}")

        text = extract_text(html)
        if not text:
            return EMPTY_PAGE_MESSAGE
        return text[: self._max_chars]

    async def _get(self, url: str) -> str:
        async with httpx.AsyncClient(
            timeout=self._timeout_seconds,
            follow_redirects=True,
            headers={
                "User-Agent": USER_AGENT,
                "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            },
            transport=self._transport,
        ) as client:
            response = await client.get(url)
            response.raise_for_status()
            return response.text


def create_web_fetch_tool(fetcher: WebFetcher | None = None) -> Tool:
    """Create a web fetch tool that returns readable page text."""
    resolved = fetcher or WebFetcher()

    async def _handler(params: WebFetchInput) -> str:
        return await resolved.fetch(params.url)

    return tool_from_model(
        WebFetchInput,
        _handler,
        name="web.fetch",
        description=(
            "Fetches the content of a web page and returns clean, readable text. Use this when the user "
            "provides a URL or asks to look something up on a specific page."
        ),
    )

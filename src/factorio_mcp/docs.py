"""Fetch Factorio documentation from the Lua API site or the wiki.

Pages are returned as lightly cleaned HTML: the <body> content with
<script> blocks removed, truncated to keep tool output manageable.
"""

from __future__ import annotations

import logging
import re

import httpx

logger = logging.getLogger(__name__)

API_BASE_URL = "https://lua-api.factorio.com/stable"
WIKI_BASE_URL = "https://wiki.factorio.com"

USER_AGENT = "FactorioMCP/1.0"
DEFAULT_TIMEOUT = 10.0
MAX_CONTENT_CHARS = 10000

SOURCES = ("api", "wiki")

_BODY_RE = re.compile(r"<body[^>]*>([\s\S]*)</body>", re.IGNORECASE)
_SCRIPT_RE = re.compile(r"<script[^>]*>[\s\S]*?</script>", re.IGNORECASE)


def resolve_url(topic: str, source: str = "api") -> str:
    """Map a topic to the page most likely to document it."""
    lowered = topic.lower()

    if source == "wiki":
        if lowered in ("index", "main"):
            return WIKI_BASE_URL
        return f"{WIKI_BASE_URL}/{topic}"

    if lowered == "index":
        return f"{API_BASE_URL}/index-runtime.html"
    if topic.startswith("Lua"):
        return f"{API_BASE_URL}/classes/{topic}.html"
    if topic in ("defines", "concepts", "events"):
        return f"{API_BASE_URL}/{topic}.html"
    return f"{API_BASE_URL}/concepts/{topic}.html"


def fallback_urls(topic: str, source: str = "api") -> list[str]:
    """Alternative pages to try when the first guess is a 404."""
    if source == "api":
        return [
            f"{API_BASE_URL}/classes/Lua{topic}.html",
            f"{API_BASE_URL}/concepts/{topic}.html",
            f"{API_BASE_URL}/events.html#{topic}",
        ]

    underscored = topic.replace(" ", "_")
    if underscored != topic:
        return [f"{WIKI_BASE_URL}/{underscored}"]
    return []


def extract_content(html: str) -> str:
    """Return the page body without script blocks."""
    match = _BODY_RE.search(html)
    content = match.group(1) if match else html
    return _SCRIPT_RE.sub("", content)


def format_page(topic: str, url: str, html: str) -> str:
    content = extract_content(html)
    text = f"Documentation for {topic}:\nURL: {url}\n\n{content[:MAX_CONTENT_CHARS]}"
    if len(content) > MAX_CONTENT_CHARS:
        text += (
            f"\n\n... (truncated, showing first {MAX_CONTENT_CHARS} "
            f"of {len(content)} characters)"
        )
    return text


class DocsFetcher:
    """HTTP client for Factorio documentation pages.

    Args:
        client: Optional preconfigured httpx.AsyncClient (e.g. with a mock
            transport). When omitted, a client is created per lookup.
        timeout: Request timeout in seconds
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self._client = client
        self._timeout = timeout

    async def fetch(self, topic: str, source: str = "api") -> str:
        """Look up `topic` and return formatted page text.

        Not-found pages and HTTP failures are reported as text rather than
        raised, since the result goes straight back to the agent.

        Raises:
            ValueError: If topic is empty or source is unknown
        """
        if not topic:
            raise ValueError("Topic is required")
        if source not in SOURCES:
            raise ValueError(f"Unknown documentation source: {source}")

        if self._client is not None:
            return await self._fetch(self._client, topic, source)

        async with httpx.AsyncClient(
            timeout=self._timeout,
            headers={"User-Agent": USER_AGENT},
            follow_redirects=True,
        ) as client:
            return await self._fetch(client, topic, source)

    async def _fetch(self, client: httpx.AsyncClient, topic: str, source: str) -> str:
        url = resolve_url(topic, source)
        try:
            return format_page(topic, url, await self._get(client, url))
        except httpx.HTTPStatusError as e:
            if e.response.status_code != 404:
                return f"Error fetching documentation: {e}"
        except httpx.HTTPError as e:
            return f"Error fetching documentation: {e}"

        alternatives = fallback_urls(topic, source)
        for alt_url in alternatives:
            try:
                return format_page(topic, alt_url, await self._get(client, alt_url))
            except httpx.HTTPError as e:
                logger.debug(f"Documentation fallback {alt_url} failed: {e}")

        tried = "\n".join(f"- {u}" for u in [url, *alternatives])
        if source == "api":
            return (
                f'Documentation not found for "{topic}".\n\n'
                f"Tried URLs:\n{tried}\n\n"
                "Suggestions:\n"
                '- For classes, use the full name (e.g., "LuaForce", "LuaFlowStatistics")\n'
                '- For other topics, try "defines", "concepts", "events", or "index"\n'
                '- For wiki pages, set source to "wiki"\n\n'
                f"API Root: {API_BASE_URL}/index-runtime.html\n"
                f"Wiki Root: {WIKI_BASE_URL}"
            )
        return (
            f'Wiki page not found for "{topic}".\n\n'
            f"Tried URLs:\n{tried}\n\n"
            f"Suggestion: Try searching the wiki at {WIKI_BASE_URL}"
        )

    async def _get(self, client: httpx.AsyncClient, url: str) -> str:
        logger.debug(f"Fetching documentation: {url}")
        response = await client.get(url, headers={"User-Agent": USER_AGENT})
        response.raise_for_status()
        return response.text

"""
ygocdb.com card search.

Turns a free-text card name into numeric card IDs by fetching the site's
search results page and pulling card-detail links out of it.

Note: Web scraping is inherently fragile. Page structure may change.
The broad link scan only depends on result links looking like
`/card/<id>`; the structural probe is a fallback for pages where links are
rewritten and only the result heading carries the ID.
"""

import asyncio
import logging
import re
from collections.abc import AsyncIterator, Awaitable, Callable, Sequence
from contextlib import asynccontextmanager
from urllib.parse import quote

import httpx

from ygolookup.config import SEARCH_BACKOFF, ProxyConfig, settings
from ygolookup.parsers.markup import get_node_text, parse, select_by_absolute_path

logger = logging.getLogger(__name__)

# Matches: href="/card/10000040" or href='https://ygocdb.com/card/10000040'
CARD_LINK_PATTERN = re.compile(
    r"""href\s*=\s*["'](?:https?://[^/"']+)?/card/(\d+)""",
    re.IGNORECASE,
)

# Result headings sit in the Nth result block; the first block is the search form
PROBE_PATH_TEMPLATE = "html/body/main/div/div[{index}]/div[2]/h3"
PROBE_INDICES = range(2, 9)

_CARD_PATH = re.compile(r"^(?:https?://[^/]+)?/card/(\d+)")
_CARD_ID_TEXT = re.compile(r"\b(\d{5,9})\b")


def build_search_url(term: str, base_url: str | None = None) -> str:
    """Search URL for a term, percent-encoded like encodeURIComponent."""
    base_url = base_url or settings.search_url
    return f"{base_url}?search={quote(term, safe='')}"


def extract_card_ids(page: str) -> list[str]:
    """
    Collect card IDs from every card-detail link on a page.

    Args:
        page: Raw HTML of a search results page

    Returns:
        Distinct IDs in order of first appearance
    """
    seen: dict[str, None] = {}
    for match in CARD_LINK_PATTERN.finditer(page):
        seen.setdefault(match.group(1), None)
    return list(seen)


def probe_card_id(page: str) -> str | None:
    """
    Find the first result heading that carries a card ID.

    Walks the fixed family of result-block paths. A heading counts if it
    contains a card-detail link or, failing that, a bare numeric ID in its text.
    """
    root = parse(page)
    for index in PROBE_INDICES:
        heading = select_by_absolute_path(root, PROBE_PATH_TEMPLATE.format(index=index))
        if heading is None:
            continue

        pending = list(heading.children)
        while pending:
            node = pending.pop(0)
            match = _CARD_PATH.match(node.attrs.get("href", ""))
            if match:
                return match.group(1)
            pending.extend(node.children)

        text_match = _CARD_ID_TEXT.search(get_node_text(heading))
        if text_match:
            return text_match.group(1)

    return None


def _is_card_id(term: str) -> bool:
    return term.isascii() and term.isdigit()


class CardIdResolver:
    """
    Resolve card names to card IDs through the search site.

    Network exhaustion and "no results" both come back as no match; the
    caller reports "card not found" in either case.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        proxy: ProxyConfig | None = None,
        search_url: str | None = None,
        user_agent: str | None = None,
        referer: str | None = None,
        backoff: Sequence[float] = SEARCH_BACKOFF,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._client = client
        self._proxy = proxy or ProxyConfig()
        self._search_url = search_url or settings.search_url
        self._headers = {
            "User-Agent": user_agent or settings.search_user_agent,
            "Referer": referer or settings.search_referer,
        }
        self._backoff = tuple(backoff)
        self._sleep = sleep

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._client is not None:
            yield self._client
            return

        async with httpx.AsyncClient(
            headers=self._headers,
            proxy=self._proxy.for_url(self._search_url),
            trust_env=False,
            follow_redirects=True,
            timeout=30.0,
        ) as client:
            yield client

    async def fetch_search_page(self, client: httpx.AsyncClient, term: str) -> str:
        """
        Fetch the raw search results page for a term.

        Raises:
            httpx.HTTPError: If the request fails or returns an error status
        """
        url = build_search_url(term, self._search_url)
        response = await client.get(url, headers=self._headers)
        response.raise_for_status()
        return response.text

    async def resolve_all(self, term: str) -> list[str]:
        """
        Every card ID the search returns for a term.

        Args:
            term: Card name (or a numeric card ID, returned as-is)

        Returns:
            Distinct IDs in order of first appearance; empty if nothing matched
        """
        term = term.strip()
        if not term:
            return []
        if _is_card_id(term):
            return [term]

        attempts = len(self._backoff)
        async with self._session() as client:
            for attempt, delay in enumerate(self._backoff, start=1):
                if delay > 0:
                    await self._sleep(delay)

                try:
                    page = await self.fetch_search_page(client, term)
                except httpx.HTTPError as e:
                    logger.warning(
                        "Search for %r failed (attempt %d/%d): %s", term, attempt, attempts, e
                    )
                    continue

                ids = extract_card_ids(page)
                if not ids:
                    probed = probe_card_id(page)
                    if probed:
                        ids = [probed]

                if ids:
                    logger.info("Search for %r found %d card(s): %s", term, len(ids), ids)
                    return ids

                logger.info(
                    "Search for %r returned no cards (attempt %d/%d)", term, attempt, attempts
                )

        logger.info("No card found for %r", term)
        return []

    async def resolve_one(self, term: str) -> str | None:
        """First card ID the search returns for a term, or None."""
        ids = await self.resolve_all(term)
        return ids[0] if ids else None

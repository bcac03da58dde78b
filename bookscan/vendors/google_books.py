"""Async client for the Google Books volumes search."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import aiohttp

from bookscan.constants import (
    DEFAULT_LOOKUP_MAX_RESULTS,
    DEFAULT_LOOKUP_TIMEOUT,
    GOOGLE_BOOKS_URL,
)
from bookscan.errors import LookupServiceError
from bookscan.models import BookRecord

logger = logging.getLogger(__name__)

HEADERS = {
    "User-Agent": "bookscan/1.0",
    "Accept": "application/json",
}
COVER_PREFERENCE = ("extraLarge", "large", "medium", "small", "thumbnail", "smallThumbnail")


def cast_dict(value: Any) -> Dict[str, Any]:
    """Return ``value`` if it is a dict, otherwise an empty dict."""
    return value if isinstance(value, dict) else {}


def _as_tuple(value: Any) -> tuple:
    if isinstance(value, (list, tuple)):
        return tuple(str(v).strip() for v in value if str(v).strip())
    if isinstance(value, str) and value.strip():
        return (value.strip(),)
    return tuple()


def _best_cover(image_links: Dict[str, Any]) -> Optional[str]:
    for key in COVER_PREFERENCE:
        url = image_links.get(key)
        if isinstance(url, str) and url.strip():
            return url.strip().replace("http://", "https://")
    return None


def _page_count(value: Any) -> Optional[int]:
    try:
        count = int(value)
    except (TypeError, ValueError):
        return None
    return count if count > 0 else None


def normalize_volume(item: Dict[str, Any]) -> BookRecord:
    """Flatten one ``volumes`` item into a :class:`BookRecord`."""
    info = cast_dict(item.get("volumeInfo"))
    isbn_13: Optional[str] = None
    isbn_10: Optional[str] = None
    for ident in info.get("industryIdentifiers") or []:
        ident = cast_dict(ident)
        value = str(ident.get("identifier") or "").strip()
        if ident.get("type") == "ISBN_13" and not isbn_13:
            isbn_13 = value or None
        elif ident.get("type") == "ISBN_10" and not isbn_10:
            isbn_10 = value or None

    return BookRecord(
        title=str(info.get("title") or "").strip(),
        subtitle=info.get("subtitle") or None,
        authors=_as_tuple(info.get("authors")),
        publisher=info.get("publisher") or None,
        published_date=info.get("publishedDate") or None,
        page_count=_page_count(info.get("pageCount")),
        description=info.get("description") or None,
        categories=_as_tuple(info.get("categories")),
        language=info.get("language") or None,
        thumbnail=_best_cover(cast_dict(info.get("imageLinks"))),
        isbn_13=isbn_13,
        isbn_10=isbn_10,
        volume_id=item.get("id") or None,
        raw=dict(item),
    )


class GoogleBooksLookup:
    """Look up volumes by query string such as ``isbn:9780306406157``.

    Non-2xx answers raise :class:`~bookscan.errors.LookupServiceError` with the
    HTTP status; transport failures surface as ``aiohttp.ClientError`` or
    ``asyncio.TimeoutError``. Retrying is left to the user.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        session: Optional[aiohttp.ClientSession] = None,
        timeout: float = DEFAULT_LOOKUP_TIMEOUT,
        max_results: int = DEFAULT_LOOKUP_MAX_RESULTS,
        base_url: str = GOOGLE_BOOKS_URL,
    ):
        self.api_key = api_key or None
        self.timeout = timeout
        self.max_results = max_results
        self.base_url = base_url
        self._session = session
        self._owns_session = session is None

    @classmethod
    def from_settings(cls, settings, session: Optional[aiohttp.ClientSession] = None) -> "GoogleBooksLookup":
        return cls(
            api_key=settings.GOOGLE_BOOKS_API_KEY,
            session=session,
            timeout=settings.LOOKUP_TIMEOUT,
            max_results=settings.LOOKUP_MAX_RESULTS,
        )

    async def __aenter__(self) -> "GoogleBooksLookup":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession(headers=HEADERS)
        return self._session

    def _params(self, query: str) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "q": query,
            "maxResults": self.max_results,
            "printType": "books",
        }
        if self.api_key:
            params["key"] = self.api_key
        return params

    async def search_raw(self, query: str) -> List[Dict[str, Any]]:
        session = self._get_session()
        logger.debug("Google Books query %s", query)
        async with session.get(
            self.base_url,
            params=self._params(query),
            timeout=aiohttp.ClientTimeout(total=self.timeout),
        ) as response:
            if response.status != 200:
                body = await response.text()
                raise LookupServiceError(
                    response.status,
                    f"Google Books returned HTTP {response.status} for {query}",
                    body,
                )
            data = await response.json(content_type=None)

        items = cast_dict(data).get("items") or []
        return [cast_dict(item) for item in items if isinstance(item, dict)]

    async def search(self, query: str) -> List[BookRecord]:
        items = await self.search_raw(query)
        logger.debug("Google Books returned %d item(s) for %s", len(items), query)
        return [normalize_volume(item) for item in items]

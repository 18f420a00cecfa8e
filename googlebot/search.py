"""Google Custom Search client for image lookups.

Builds the request for a single medium-sized image, decodes the JSON response
into dataclasses and hands back the first result. Fields missing from the
response fall back to empty values; fields of the wrong type make the whole
response undecodable.
"""
from __future__ import annotations
import asyncio
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Optional

import aiohttp

from .config import GoogleConfig
from .errors import (
    NoResultsError,
    SearchDecodeError,
    SearchStatusError,
    SearchTransportError,
)

logger = logging.getLogger(__name__)

SEARCH_URL = "https://www.googleapis.com/customsearch/v1"


def _str(data: dict, key: str) -> str:
    value = data.get(key, "")
    if value is None:
        return ""
    if not isinstance(value, str):
        raise TypeError(f"{key} must be a string, got {type(value).__name__}")
    return value


def _float(data: dict, key: str) -> float:
    value = data.get(key, 0)
    if value is None:
        return 0.0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"{key} must be a number, got {type(value).__name__}")
    if not math.isfinite(value):
        raise ValueError(f"{key} must be a finite number, got {value}")
    return float(value)


def _int(data: dict, key: str) -> int:
    value = data.get(key, 0)
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{key} must be an integer, got {type(value).__name__}")
    return value


def _dict(data: dict, key: str) -> dict:
    value = data.get(key) or {}
    if not isinstance(value, dict):
        raise TypeError(f"{key} must be an object, got {type(value).__name__}")
    return value


@dataclass(frozen=True)
class GoogleImage:
    context_link: str = ""
    height: float = 0.0
    width: float = 0.0
    byte_size: int = 0
    thumbnail_link: str = ""
    thumbnail_height: float = 0.0
    thumbnail_width: float = 0.0

    @classmethod
    def from_dict(cls, data: dict) -> GoogleImage:
        return cls(
            context_link=_str(data, "contextLink"),
            height=_float(data, "height"),
            width=_float(data, "width"),
            byte_size=_int(data, "byteSize"),
            thumbnail_link=_str(data, "thumbnailLink"),
            thumbnail_height=_float(data, "thumbnailHeight"),
            thumbnail_width=_float(data, "thumbnailWidth"),
        )


@dataclass(frozen=True)
class SearchResult:
    title: str = ""
    html_title: str = ""
    link: str = ""
    display_link: str = ""
    snippet: str = ""
    html_snippet: str = ""
    mime: str = ""
    file_format: str = ""
    image: GoogleImage = field(default_factory=GoogleImage)

    @classmethod
    def from_dict(cls, data: dict) -> SearchResult:
        if not isinstance(data, dict):
            raise TypeError(f"search item must be an object, got {type(data).__name__}")
        return cls(
            title=_str(data, "title"),
            html_title=_str(data, "htmlTitle"),
            link=_str(data, "link"),
            display_link=_str(data, "displayLink"),
            snippet=_str(data, "snippet"),
            html_snippet=_str(data, "htmlSnippet"),
            mime=_str(data, "mime"),
            file_format=_str(data, "fileFormat"),
            image=GoogleImage.from_dict(_dict(data, "image")),
        )


@dataclass(frozen=True)
class SearchResponse:
    total_results: int = 0
    items: tuple[SearchResult, ...] = ()

    @classmethod
    def from_dict(cls, data: Any) -> SearchResponse:
        """Decode a search API response body.

        Raises:
            TypeError, ValueError: The body does not match the expected shape.
        """
        if not isinstance(data, dict):
            raise TypeError(f"response must be an object, got {type(data).__name__}")
        info = _dict(data, "searchInformation")
        # totalResults is an int64 encoded as a JSON string
        total = info.get("totalResults", "0")
        if not isinstance(total, str):
            raise TypeError("searchInformation.totalResults must be a string")
        items = data.get("items") or []
        if not isinstance(items, list):
            raise TypeError("items must be an array")
        return cls(
            total_results=int(total),
            items=tuple(SearchResult.from_dict(item) for item in items),
        )


def build_query_params(query: str, config: GoogleConfig) -> dict[str, str]:
    """Query string parameters for a single medium image result."""
    return {
        "q": query,              # String to search for
        "num": "1",              # Just return 1 image result
        "start": "1",            # No search result offset
        "imgSize": "medium",     # Just search for medium size images
        "searchType": "image",   # Search for images
        "key": config.api_key,
        "cx": config.cse_id,     # Custom search engine ID
    }


async def search_image(
    query: str,
    config: GoogleConfig,
    session: Optional[aiohttp.ClientSession] = None
) -> SearchResult:
    """Search Google for an image and return the first result.

    Args:
        query: Free text to search for
        config: Google API configuration (key, engine ID, timeout)
        session: Optional aiohttp session to reuse; a new one is opened otherwise

    Raises:
        SearchTransportError: The request could not be completed
        SearchStatusError: The API returned a status above 200
        SearchDecodeError: The response body could not be decoded
        NoResultsError: The response contained no items
    """
    logger.info("Searching Google for an image of %r", query)

    if session is None:
        async with aiohttp.ClientSession() as own_session:
            return await search_image(query, config, own_session)

    params = build_query_params(query, config)
    timeout = aiohttp.ClientTimeout(total=config.search_timeout)

    try:
        async with session.get(SEARCH_URL, params=params, timeout=timeout) as response:
            if response.status > 200:
                body = await response.text()
                logger.warning("Google search returned status %s", response.status)
                raise SearchStatusError(response.status, body)

            try:
                data = await response.json(content_type=None)
                results = SearchResponse.from_dict(data)
            except (ValueError, TypeError) as e:
                # json.JSONDecodeError is a ValueError
                logger.warning("Could not decode Google search response: %s", e)
                raise SearchDecodeError(e) from e
    except asyncio.TimeoutError as e:
        raise SearchTransportError(
            f"Google search timed out after {config.search_timeout}s") from e
    except aiohttp.ClientError as e:
        raise SearchTransportError(f"Google search request failed: {e}") from e

    if not results.items:
        logger.info("Google search for %r returned no items", query)
        raise NoResultsError()

    # Return only the first search result
    return results.items[0]

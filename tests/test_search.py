"""Tests for the Google Custom Search client."""
import asyncio
import json
import pytest
import aiohttp
from unittest.mock import AsyncMock, MagicMock
from googlebot.config import GoogleConfig, DEFAULT_CSE_ID
from googlebot.errors import (
    NoResultsError,
    SearchDecodeError,
    SearchStatusError,
    SearchTransportError,
)
from googlebot.search import (
    SEARCH_URL,
    SearchResponse,
    build_query_params,
    search_image,
)


CAT_RESPONSE = {
    "searchInformation": {"totalResults": "1234"},
    "items": [
        {
            "title": "A cat",
            "htmlTitle": "A <b>cat</b>",
            "link": "https://example.com/cat.png",
            "displayLink": "example.com",
            "snippet": "A cat",
            "htmlSnippet": "A <b>cat</b>",
            "mime": "image/png",
            "fileFormat": "image/png",
            "image": {
                "contextLink": "https://example.com/cats",
                "height": 480,
                "width": 640.7,
                "byteSize": 12345,
                "thumbnailLink": "https://example.com/thumb.png",
                "thumbnailHeight": 96,
                "thumbnailWidth": 128,
            },
        },
        {"title": "Second cat", "link": "https://example.com/cat2.png"},
    ],
}


def make_session(status=200, json_data=None, text="", json_error=None):
    """Build a mock aiohttp session whose get() yields one canned response."""
    mock_response = MagicMock()
    mock_response.status = status
    mock_response.text = AsyncMock(return_value=text)
    if json_error is not None:
        mock_response.json = AsyncMock(side_effect=json_error)
    else:
        mock_response.json = AsyncMock(return_value=json_data)

    request_ctx = MagicMock()
    request_ctx.__aenter__ = AsyncMock(return_value=mock_response)
    request_ctx.__aexit__ = AsyncMock(return_value=False)

    mock_session = MagicMock()
    mock_session.get = MagicMock(return_value=request_ctx)
    return mock_session


@pytest.fixture
def google_config():
    return GoogleConfig(api_key="test-key", search_timeout=5)


def test_build_query_params(google_config):
    params = build_query_params("big red cats", google_config)
    assert params == {
        "q": "big red cats",
        "num": "1",
        "start": "1",
        "imgSize": "medium",
        "searchType": "image",
        "key": "test-key",
        "cx": DEFAULT_CSE_ID,
    }


def test_build_query_params_custom_engine():
    params = build_query_params("cats", GoogleConfig(api_key="k", cse_id="my-engine"))
    assert params["cx"] == "my-engine"


@pytest.mark.asyncio
async def test_search_returns_first_item(google_config):
    session = make_session(json_data=CAT_RESPONSE)
    result = await search_image("cats", google_config, session=session)

    assert result.title == "A cat"
    assert result.link == "https://example.com/cat.png"
    assert result.mime == "image/png"
    assert result.image.width == 640.7
    assert result.image.height == 480.0
    assert result.image.byte_size == 12345

    session.get.assert_called_once()
    call = session.get.call_args
    assert call.args[0] == SEARCH_URL
    assert call.kwargs["params"]["q"] == "cats"
    assert call.kwargs["timeout"].total == 5


@pytest.mark.asyncio
async def test_search_status_error_keeps_raw_body(google_config):
    session = make_session(status=403, text='{"error": "forbidden"}')
    with pytest.raises(SearchStatusError) as exc_info:
        await search_image("cats", google_config, session=session)

    assert exc_info.value.status == 403
    assert exc_info.value.body == '{"error": "forbidden"}'
    assert str(exc_info.value) == 'Request error: 403, {"error": "forbidden"}'


@pytest.mark.asyncio
async def test_search_status_201_is_an_error(google_config):
    session = make_session(status=201, text="created")
    with pytest.raises(SearchStatusError):
        await search_image("cats", google_config, session=session)


@pytest.mark.asyncio
async def test_search_zero_items(google_config):
    session = make_session(json_data={"searchInformation": {"totalResults": "0"}, "items": []})
    with pytest.raises(NoResultsError) as exc_info:
        await search_image("cats", google_config, session=session)

    assert "No images found" in str(exc_info.value)
    assert not isinstance(exc_info.value, SearchDecodeError)


@pytest.mark.asyncio
async def test_search_missing_items(google_config):
    session = make_session(json_data={"searchInformation": {"totalResults": "0"}})
    with pytest.raises(NoResultsError):
        await search_image("cats", google_config, session=session)


@pytest.mark.asyncio
async def test_search_invalid_json(google_config):
    session = make_session(json_error=json.JSONDecodeError("Expecting value", "<html>", 0))
    with pytest.raises(SearchDecodeError) as exc_info:
        await search_image("cats", google_config, session=session)

    assert "No images found" in str(exc_info.value)


@pytest.mark.asyncio
async def test_search_wrong_field_type(google_config):
    bad = {"items": [{"link": "https://example.com/cat.png", "image": {"height": "tall"}}]}
    session = make_session(json_data=bad)
    with pytest.raises(SearchDecodeError):
        await search_image("cats", google_config, session=session)


@pytest.mark.asyncio
async def test_search_connection_error(google_config):
    session = MagicMock()
    session.get = MagicMock(side_effect=aiohttp.ClientConnectionError("dns failure"))
    with pytest.raises(SearchTransportError) as exc_info:
        await search_image("cats", google_config, session=session)

    assert "dns failure" in str(exc_info.value)


@pytest.mark.asyncio
async def test_search_timeout(google_config):
    session = MagicMock()
    session.get = MagicMock(side_effect=asyncio.TimeoutError())
    with pytest.raises(SearchTransportError) as exc_info:
        await search_image("cats", google_config, session=session)

    assert "timed out" in str(exc_info.value)


def test_response_tolerates_missing_fields():
    response = SearchResponse.from_dict({"items": [{"link": "https://example.com/x.jpg"}]})
    assert response.total_results == 0
    assert len(response.items) == 1
    item = response.items[0]
    assert item.link == "https://example.com/x.jpg"
    assert item.mime == ""
    assert item.image.width == 0.0


def test_response_total_results_is_string_encoded():
    response = SearchResponse.from_dict(CAT_RESPONSE)
    assert response.total_results == 1234
    assert len(response.items) == 2


def test_response_total_results_must_be_numeric_string():
    with pytest.raises(ValueError):
        SearchResponse.from_dict({"searchInformation": {"totalResults": "lots"}})
    with pytest.raises(TypeError):
        SearchResponse.from_dict({"searchInformation": {"totalResults": 12}})


@pytest.mark.asyncio
@pytest.mark.parametrize("width", [float("inf"), float("nan")])
async def test_search_non_finite_dimension(google_config, width):
    # json.loads turns 1e400 into inf and accepts a bare NaN literal
    bad = {"items": [{"link": "https://example.com/cat.png", "image": {"width": width}}]}
    session = make_session(json_data=bad)
    with pytest.raises(SearchDecodeError):
        await search_image("cats", google_config, session=session)


def test_response_rejects_overflowing_number():
    data = json.loads('{"items": [{"image": {"height": 1e400}}]}')
    with pytest.raises(ValueError):
        SearchResponse.from_dict(data)

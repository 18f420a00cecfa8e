"""Google image search command.

    !google image <search text>

Searches Google Custom Search for one medium-sized image, copies it into the
homeserver media repository and posts it to the room as an m.image.
"""
from __future__ import annotations
import logging
import math
from typing import Optional, Union

import aiohttp

from . import command
from ..config import GoogleConfig
from ..errors import UploadError
from ..media import upload_link
from ..messages import ImageInfo, ImageMessage, OutboundMessage, TextNotice
from ..search import SearchResult, search_image

logger = logging.getLogger(__name__)

USAGE = "Usage: !google image image_search_text"
NO_IMAGE_FOUND = "No image found!"


def usage_message() -> TextNotice:
    return TextNotice(USAGE)


def parse_invocation(args: list[str]) -> Union[str, TextNotice]:
    """Return the search phrase for args, or the usage notice if args are malformed."""
    if len(args) < 2 or args[0] != "image":
        return usage_message()
    # Drop the search type (currently always "image")
    return " ".join(args[1:])


def build_image_message(query: str, result: SearchResult, content_uri: str) -> ImageMessage:
    img = result.image
    return ImageMessage(
        body=query,
        url=content_uri,
        info=ImageInfo(
            height=int(math.floor(img.height)),
            width=int(math.floor(img.width)),
            mimetype=result.mime,
        ),
    )


async def handle(
    query: str,
    client,
    config: GoogleConfig,
    session: Optional[aiohttp.ClientSession] = None
) -> OutboundMessage:
    """Search for query and relay the first image into the media repository.

    Raises:
        SearchError: The search failed or found nothing
        UploadError: The image could not be re-uploaded
    """
    result = await search_image(query, config, session=session)

    if result.link == "":
        return TextNotice(NO_IMAGE_FOUND)

    try:
        content_uri = await upload_link(
            client, result.link, timeout=config.upload_timeout, session=session)
    except UploadError:
        raise
    except Exception as e:
        logger.warning(f"Upload of {result.link} failed: {e!r}")
        raise UploadError(e) from e
    logger.info(f"Relayed {result.link} as {content_uri}")

    return build_image_message(query, result, content_uri)


@command(
    path="google",
    description="Post the first Google image result. Usage: !google image <search text>"
)
async def google_handler(args: list[str], matrix_context: Optional[dict] = None) -> OutboundMessage:
    parsed = parse_invocation(args)
    if isinstance(parsed, TextNotice):
        return parsed

    if not matrix_context or not matrix_context.get("client") or not matrix_context.get("config"):
        raise RuntimeError("google command needs 'client' and 'config' in matrix_context")

    return await handle(parsed, matrix_context["client"], matrix_context["config"])

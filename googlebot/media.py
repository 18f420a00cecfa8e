"""Re-host remote images in the homeserver media repository."""
from __future__ import annotations
import asyncio
import io
import logging
import posixpath
from typing import Optional
from urllib.parse import urlparse

import aiohttp
from nio import UploadResponse

from .errors import UploadError

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"


def _filename_for(url: str) -> str:
    name = posixpath.basename(urlparse(url).path)
    return name or "image"


async def _download(url: str, session: aiohttp.ClientSession) -> tuple[bytes, str]:
    async with session.get(url) as response:
        if response.status < 200 or response.status >= 300:
            raise UploadError(f"download of {url} failed with status {response.status}")
        data = await response.read()
        content_type = response.headers.get("Content-Type", DEFAULT_CONTENT_TYPE)
        return data, content_type


async def _upload_link(client, url: str, session: aiohttp.ClientSession) -> str:
    data, content_type = await _download(url, session)
    logger.debug(f"Downloaded {len(data)} bytes ({content_type}) from {url}")

    resp, _keys = await client.upload(
        io.BytesIO(data),
        content_type=content_type,
        filename=_filename_for(url),
        filesize=len(data),
    )
    if not isinstance(resp, UploadResponse):
        # nio returns an UploadError response rather than raising
        message = getattr(resp, "message", None) or str(resp)
        status = getattr(resp, "status_code", None)
        raise UploadError(f"Upload request failed code={status} msg={message}")
    return resp.content_uri


async def upload_link(
    client,
    url: str,
    timeout: float = 30,
    session: Optional[aiohttp.ClientSession] = None
) -> str:
    """Download the resource at url and upload it to the homeserver.

    Args:
        client: matrix-nio AsyncClient (or MatrixClientWrapper)
        url: Remote resource to copy
        timeout: Upper bound in seconds for download plus upload
        session: Optional aiohttp session for the download

    Returns:
        The mxc:// content URI of the uploaded copy

    Raises:
        UploadError: Download or upload failed or timed out
    """
    try:
        if session is None:
            async with aiohttp.ClientSession() as own_session:
                return await asyncio.wait_for(
                    _upload_link(client, url, own_session), timeout=timeout)
        return await asyncio.wait_for(_upload_link(client, url, session), timeout=timeout)
    except UploadError:
        raise
    except asyncio.TimeoutError as e:
        logger.warning(f"Upload of {url} timed out after {timeout}s")
        raise UploadError(f"timed out after {timeout}s") from e
    except aiohttp.ClientError as e:
        logger.warning(f"Download of {url} failed: {e}")
        raise UploadError(e) from e

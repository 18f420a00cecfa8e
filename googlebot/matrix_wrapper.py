"""Thread-safe wrapper around matrix-nio AsyncClient.

Command tasks run concurrently and all reply through the same client. The
wrapper puts an asyncio.Lock around the calls that send events or change
client state, and forwards everything else to the wrapped AsyncClient.
"""
from __future__ import annotations
import asyncio
import logging
from typing import Optional, Any
from nio import AsyncClient

logger = logging.getLogger(__name__)


class MatrixClientWrapper:
    """Thread-safe wrapper for matrix-nio AsyncClient.

    Example:
        >>> client = AsyncClient(homeserver, user_id)
        >>> wrapped_client = MatrixClientWrapper(client)
        >>> await wrapped_client.room_send(room_id, "m.room.message", content)
    """

    def __init__(self, client: AsyncClient):
        self._client = client
        self._lock = asyncio.Lock()
        logger.info("MatrixClientWrapper initialized")

    def __getattr__(self, name: str) -> Any:
        return getattr(self._client, name)

    def __setattr__(self, name: str, value: Any) -> None:
        # Only the wrapper's own attributes live on the wrapper; access_token,
        # user_id etc. must land on the wrapped client.
        if name in ('_client', '_lock'):
            object.__setattr__(self, name, value)
        else:
            setattr(self._client, name, value)

    async def room_send(
        self,
        room_id: str,
        message_type: str,
        content: dict,
        tx_id: Optional[str] = None,
        ignore_unverified_devices: bool = False
    ):
        """Send a message to a room (thread-safe).

        Returns:
            RoomSendResponse or RoomSendError from matrix-nio
        """
        logger.debug(f"Acquiring lock for room_send to {room_id}...")
        async with self._lock:
            try:
                result = await self._client.room_send(
                    room_id,
                    message_type,
                    content,
                    tx_id=tx_id,
                    ignore_unverified_devices=ignore_unverified_devices
                )
                logger.debug(f"Message sent to {room_id}, releasing lock")
                return result
            except Exception as e:
                logger.error(f"Error in room_send to {room_id}: {e}")
                raise

    async def upload(
        self,
        data_provider,
        content_type: str = "application/octet-stream",
        filename: Optional[str] = None,
        encrypt: bool = False,
        filesize: Optional[int] = None
    ):
        """Upload media to the homeserver.

        NOTE: upload() does NOT use the lock. Uploads can be large and slow;
        serializing them would stall replies in every other room.

        Returns:
            Tuple of (UploadResponse or UploadError, decryption dict or None)
        """
        logger.debug(f"Uploading {filename} ({content_type}, {filesize} bytes)")
        return await self._client.upload(
            data_provider,
            content_type=content_type,
            filename=filename,
            encrypt=encrypt,
            filesize=filesize
        )

    async def sync(
        self,
        timeout: Optional[int] = None,
        sync_filter: Optional[dict] = None,
        since: Optional[str] = None,
        full_state: bool = False
    ):
        """Sync with the Matrix server.

        NOTE: sync() does NOT use the lock because it fires callbacks
        that need to make their own API calls (like room_send). Holding
        the lock during sync would cause deadlock when callbacks try to
        acquire the same lock.
        """
        logger.debug("Syncing with server (no lock - callbacks need access)")
        return await self._client.sync(
            timeout=timeout,
            sync_filter=sync_filter,
            since=since,
            full_state=full_state
        )

    async def set_displayname(self, displayname: str):
        async with self._lock:
            logger.debug(f"Setting display name to '{displayname}' (locked)")
            return await self._client.set_displayname(displayname)

    async def close(self):
        async with self._lock:
            logger.info("Closing client connection (locked)")
            return await self._client.close()

from __future__ import annotations
from nio import RoomMessageText, AsyncClient, RoomSendError
import asyncio
import logging
import time

from .commands import execute_command
from .messages import OutboundMessage

logger = logging.getLogger(__name__)

# Record bot start time (ms) to filter historical events on first sync.
START_TIME_MS = int(time.time() * 1000)
HISTORICAL_SKEW_MS = 5000  # allow 5s clock skew / startup delay

# Store config for use in handlers
_config = None


def set_config(config):
    """Set the bot config for use in handlers."""
    global _config
    _config = config


def is_old_event(event) -> bool:
    server_ts = getattr(event, "server_timestamp", None)
    return isinstance(server_ts, (int, float)) and server_ts < START_TIME_MS - HISTORICAL_SKEW_MS


async def send_message(client: AsyncClient, room_id: str, message: OutboundMessage) -> bool:
    """Send a command result to a room. Returns False if the homeserver refused it."""
    resp = await client.room_send(
        room_id=room_id,
        message_type="m.room.message",
        content=message.to_content(),
    )
    if isinstance(resp, RoomSendError):
        logger.error(
            "Failed to send message to %s: status_code=%s, message=%s",
            room_id,
            getattr(resp, 'status_code', 'unknown'),
            getattr(resp, 'message', str(resp))
        )
        return False
    logger.info("Message sent successfully to %s (event_id: %s)",
                room_id, getattr(resp, 'event_id', 'unknown'))
    return True


async def _handle_message_task(client: AsyncClient, room, event: RoomMessageText):
    """Background task that runs a single command and posts its result."""
    try:
        matrix_context = {
            "client": client,
            "room": room,
            "event": event,
            "config": _config.google if _config else None,
        }
        reply = await execute_command(event.body, matrix_context=matrix_context)
        if reply is None:
            return  # Not a command

        logger.info("Replying in %s to %s with %s",
                    room.room_id, event.sender, reply.msgtype)
        await send_message(client, room.room_id, reply)
    except Exception:  # pragma: no cover - log unexpected
        logger.exception("Failed handling message event")


async def on_message(client: AsyncClient, room, event: RoomMessageText):
    """Matrix event callback for incoming messages.

    Filters out old events, the bot's own messages and rooms that are not on
    the allow list, then hands the message to a background task so the sync
    loop is never blocked by a slow search or upload.
    """
    if is_old_event(event):
        logger.debug("Ignoring old event %s from %s in %s",
                     event.event_id, event.sender, room.room_id)
        return

    if event.sender == client.user_id:
        logger.debug("Ignoring message from self")
        return

    if _config and _config.allowed_rooms and room.room_id not in _config.allowed_rooms:
        logger.debug("Ignoring message from non-allowed room: %s", room.room_id)
        return

    prefix = _config.command_prefix if _config else "!"
    if not event.body or not event.body.strip().startswith(prefix):
        return

    asyncio.create_task(_handle_message_task(client, room, event))
    logger.debug("Spawned background task for message %s", event.event_id)

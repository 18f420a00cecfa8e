from __future__ import annotations
import asyncio
import logging
import signal
from nio import AsyncClient, AsyncClientConfig, RoomMessageText

from .commands import get_registry
from .config import load_config
from .handlers import on_message, set_config
from .matrix_wrapper import MatrixClientWrapper

logging.basicConfig(level=logging.INFO,
                    format="[%(levelname)s] %(name)s: %(message)s")
logger = logging.getLogger("googlebot")

STOP = asyncio.Event()


def _install_signal_handlers():
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, lambda s=sig: STOP.set())
        except NotImplementedError:  # Windows
            signal.signal(sig, lambda *_: STOP.set())


async def login_if_needed(client: MatrixClientWrapper, user_id: str, token: str | None):
    """Attach a pre-issued access token to the client.

    No password login is done. nio only sets `user_id` itself on login, so it
    is assigned here from config.
    """
    if not token:
        raise RuntimeError(
            "Access token must be provided via env var MATRIX_ACCESS_TOKEN")
    client.access_token = token
    client.user_id = user_id  # type: ignore[attr-defined]
    logger.info("Using provided access token for %s", client.user_id)


async def run():
    # Fails fast on missing homeserver, user_id or Google API key
    cfg = load_config()
    logging.getLogger().setLevel(cfg.log_level.upper())
    set_config(cfg)
    get_registry().prefix = cfg.command_prefix

    _install_signal_handlers()

    client_cfg = AsyncClientConfig(store_sync_tokens=True)
    base_client = AsyncClient(cfg.homeserver, cfg.user_id,
                              device_id=cfg.device_id, config=client_cfg)

    client = MatrixClientWrapper(base_client)

    # nio expects callbacks with the signature (room, event); ours also needs
    # the (wrapped) client.
    async def _on_message_wrapper(room, event):  # type: ignore[unused-ignore]
        await on_message(client, room, event)

    base_client.add_event_callback(_on_message_wrapper, RoomMessageText)

    await login_if_needed(client, cfg.user_id, cfg.access_token)

    if cfg.display_name:
        try:
            await client.set_displayname(cfg.display_name)
        except Exception:
            logger.warning("Could not set display name", exc_info=True)

    logger.info("Starting sync loop")

    while not STOP.is_set():
        try:
            await client.sync(timeout=30000)
        except Exception:
            logger.exception("Sync failed; retrying in 5s")
            await asyncio.sleep(5)

    logger.info("Shutting down")
    await client.close()


def main():
    asyncio.run(run())


if __name__ == "__main__":
    main()

"""WebSocket transport for the local game feed.

Receives text frames and hands them to a GameSession one at a time, in
delivery order. Reconnection policy belongs to the caller: ``listen``
returns when the connection closes.

Usage:
    session = GameSession()
    asyncio.run(listen(session))
"""

import asyncio
import logging
from typing import Optional

import websockets

from .config import get_settings
from .services.game_session import GameSession


logger = logging.getLogger(__name__)


async def listen(session: GameSession, url: Optional[str] = None,
                 stop: Optional[asyncio.Event] = None) -> int:
    """Stream feed frames into ``session`` until the socket closes.

    Returns the number of frames received.
    """
    url = url or session.settings.websocket_url or get_settings().websocket_url
    received = 0

    logger.info(f"Connecting to game feed at {url}")
    try:
        async with websockets.connect(url) as ws:
            logger.info("Connected to game feed")
            async for message in ws:
                if stop is not None and stop.is_set():
                    break
                if isinstance(message, bytes):
                    try:
                        message = message.decode("utf-8")
                    except UnicodeDecodeError:
                        logger.warning("Dropping non-UTF-8 binary frame")
                        continue
                received += 1
                session.apply_raw(message)
    except websockets.exceptions.ConnectionClosed as e:
        logger.info(f"Game feed closed: {e}")
    except OSError as e:
        logger.error(f"Could not connect to game feed at {url}: {e}")
    finally:
        session.mark_disconnected()

    logger.info(f"Game feed session ended after {received} frames")
    return received

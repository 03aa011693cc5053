"""Fall monitor - listens on the live fall channel and hands falls to the responder."""
import asyncio
import json
import logging
from typing import Awaitable, Callable, Optional
from urllib.parse import urlencode

import websockets
from websockets.exceptions import WebSocketException

from ..config import settings, get_fall_channel_url

logger = logging.getLogger(__name__)

RECONNECT_DELAY_SECONDS = 5

FallHandler = Callable[[dict], Awaitable[bool]]


class FallMonitor:
    """Keeps one channel subscription open for the companion's lifetime.

    Falls inserted while the channel is down are not replayed.
    """

    def __init__(
        self,
        on_fall: FallHandler,
        url: Optional[str] = None,
        session_token: Optional[str] = None,
        connect=None,
        reconnect_delay: float = RECONNECT_DELAY_SECONDS,
    ):
        self.on_fall = on_fall
        self.url = url or get_fall_channel_url()
        self.session_token = session_token if session_token is not None else settings.session_token
        self.reconnect_delay = reconnect_delay
        self._connect = connect or websockets.connect
        self._running = False
        self._subscribed = False

    @property
    def subscribed(self) -> bool:
        return self._subscribed

    @property
    def channel_url(self) -> str:
        if not self.session_token:
            return self.url
        return f"{self.url}?{urlencode({'token': self.session_token})}"

    async def handle_message(self, raw) -> bool:
        """Process one channel message. Returns True when a fall was handled."""
        try:
            message = json.loads(raw)
        except ValueError:
            logger.warning(f"Ignoring malformed channel message: {raw!r}")
            return False

        if message.get("type") != "INSERT" or message.get("table") != "falls":
            return False

        record = message.get("record") or {}
        if not record.get("is_fall"):
            logger.debug(f"Ignoring non-fall record {record.get('id')}")
            return False

        logger.warning(f"FALL DETECTED! Fall ID: {record.get('id')}, Time: {record.get('detected_at')}")
        try:
            await self.on_fall(record)
        except Exception as e:
            logger.error(f"Fall handler failed: {e}")
        return True

    async def _listen_once(self):
        async with self._connect(self.channel_url) as channel:
            self._subscribed = True
            logger.info("Subscribed to fall channel")
            try:
                async for raw in channel:
                    await self.handle_message(raw)
                    if not self._running:
                        break
            finally:
                self._subscribed = False

    async def run(self):
        """Subscribe and keep resubscribing until stopped."""
        if not self.session_token:
            logger.error("SESSION_TOKEN must be configured to subscribe to falls")
            return

        self._running = True
        logger.info(f"Starting fall monitor on {self.url}")

        while self._running:
            try:
                await self._listen_once()
                if self._running:
                    logger.warning("Fall channel closed by server")
            except (WebSocketException, OSError) as e:
                logger.error(f"Fall channel error: {e}")

            if self._running:
                logger.info(f"Resubscribing in {self.reconnect_delay} seconds...")
                await asyncio.sleep(self.reconnect_delay)

    def stop(self):
        """Stop after the current message; the owning task is cancelled by the caller."""
        self._running = False
        logger.info("Fall monitor stopped")

"""
Connection Manager - the long-lived link to the local automation server.

- Connects to a fixed WebSocket endpoint, says hello once open
- Hands every inbound frame to the message callback
- Reconnects forever with exponential backoff (floor reset on success)
- send() silently drops messages unless the link is open; nothing is queued
- State changes (connecting / open / closed) go to registered listeners
"""

import json
import asyncio
import logging
from enum import Enum
from typing import Dict, Any, Optional, Callable, List, Union

import websockets
from websockets.exceptions import WebSocketException, ConnectionClosed

from ..config import DEFAULT_SERVER_URL, DEFAULT_INITIAL_DELAY, DEFAULT_MAX_DELAY, DEFAULT_BACKOFF_FACTOR
from ..protocol import hello_message

logger = logging.getLogger(__name__)

OPEN_TIMEOUT = 10.0

MessageHandler = Callable[[Union[str, bytes]], Any]
StateListener = Callable[["ConnectionState"], None]


class ConnectionState(str, Enum):
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"


class Backoff:
    """Reconnect delays: initial, initial*factor, ... capped at maximum."""

    def __init__(
        self,
        initial: float = DEFAULT_INITIAL_DELAY,
        maximum: float = DEFAULT_MAX_DELAY,
        factor: float = DEFAULT_BACKOFF_FACTOR,
    ):
        self.initial = initial
        self.maximum = maximum
        self.factor = factor
        self.delay = initial

    def next_delay(self) -> float:
        """Delay to wait now; the following one grows by `factor`."""
        delay = self.delay
        self.delay = min(self.delay * self.factor, self.maximum)
        return delay

    def reset(self):
        self.delay = self.initial


class ConnectionManager:
    """
    Owns the transport to the automation server.

    Args:
        url: WebSocket endpoint
        on_message: Called with every inbound frame (from the event loop)
        backoff: Reconnect delay policy
        connect: websockets.connect compatible factory
    """

    def __init__(
        self,
        url: str = DEFAULT_SERVER_URL,
        on_message: Optional[MessageHandler] = None,
        backoff: Optional[Backoff] = None,
        connect: Callable = websockets.connect,
        open_timeout: float = OPEN_TIMEOUT,
    ):
        self.url = url
        self.on_message = on_message
        self.backoff = backoff or Backoff()
        self._connect = connect
        self._open_timeout = open_timeout
        self._ws = None
        self._state = ConnectionState.CLOSED
        self._listeners: List[StateListener] = []
        self._running = False

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def connected(self) -> bool:
        return self._state == ConnectionState.OPEN and self._ws is not None

    def add_state_listener(self, listener: StateListener):
        self._listeners.append(listener)

    def _set_state(self, state: ConnectionState):
        if state == self._state:
            return
        self._state = state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception as e:
                logger.error(f"State listener failed: {e}")

    async def send(self, message: Dict[str, Any]) -> bool:
        """Send one message. Returns False (message dropped) unless open."""
        ws = self._ws
        if self._state != ConnectionState.OPEN or ws is None:
            logger.debug(f"Not connected, dropping {message.get('type')} message")
            return False
        try:
            await ws.send(json.dumps(message))
            return True
        except ConnectionClosed as e:
            logger.debug(f"Send failed, connection closed: {e}")
            return False

    def _deliver(self, raw: Union[str, bytes]):
        if self.on_message is None:
            return
        try:
            self.on_message(raw)
        except Exception as e:
            logger.error(f"Message handler failed: {type(e).__name__}: {e}")

    async def connect_once(self) -> bool:
        """
        One connection lifetime: connect, greet, pump messages until closed.
        Returns True if the connection was ever open.
        """
        self._set_state(ConnectionState.CONNECTING)
        logger.info(f"Connecting to {self.url}")
        opened = False
        try:
            async with self._connect(self.url, open_timeout=self._open_timeout) as ws:
                self._ws = ws
                opened = True
                self.backoff.reset()
                self._set_state(ConnectionState.OPEN)
                logger.info("Connected to automation server")
                await self.send(hello_message())

                async for raw in ws:
                    self._deliver(raw)
        except (OSError, asyncio.TimeoutError, WebSocketException) as e:
            if opened:
                logger.info(f"Connection lost: {e}")
            else:
                logger.warning(f"Connection failed: {e}")
        finally:
            self._ws = None
            self._set_state(ConnectionState.CLOSED)
        return opened

    async def run_forever(self):
        """Keep the link up until stop() is called."""
        self._running = True
        while self._running:
            await self.connect_once()
            if not self._running:
                break
            delay = self.backoff.next_delay()
            logger.info(f"Disconnected. Retrying in {delay:g}s...")
            await asyncio.sleep(delay)

    async def stop(self):
        """Stop reconnecting and close the current connection."""
        self._running = False
        ws = self._ws
        if ws is not None:
            await ws.close()

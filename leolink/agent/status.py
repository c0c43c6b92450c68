"""
Connection status surface: the ON/OFF badge and the manual server probe.
"""

import asyncio
import logging
from typing import Optional, Callable

import websockets
from websockets.exceptions import WebSocketException

from .connection import ConnectionState
from ..config import DEFAULT_SERVER_URL

logger = logging.getLogger(__name__)

BADGE_ON = ("ON", "#4CAF50")
BADGE_OFF = ("OFF", "#F44336")

BadgeRenderer = Callable[[str, str], None]


class StatusIndicator:
    """
    Binary badge driven by connection state changes.
    Register an instance with ConnectionManager.add_state_listener.
    """

    def __init__(self, render: Optional[BadgeRenderer] = None):
        self._render = render
        self.text, self.color = BADGE_OFF

    def __call__(self, state: ConnectionState):
        if state == ConnectionState.OPEN:
            badge = BADGE_ON
        elif state == ConnectionState.CLOSED:
            badge = BADGE_OFF
        else:
            return
        self.text, self.color = badge
        logger.info(f"Status: {self.text}")
        if self._render is not None:
            self._render(self.text, self.color)

    @property
    def online(self) -> bool:
        return self.text == BADGE_ON[0]


async def probe_server(
    url: str = DEFAULT_SERVER_URL,
    timeout: float = 3.0,
    connect: Callable = websockets.connect,
) -> bool:
    """Open a short-lived connection to see whether the server is up."""
    try:
        async with connect(url, open_timeout=timeout):
            return True
    except (OSError, asyncio.TimeoutError, WebSocketException) as e:
        logger.debug(f"Probe of {url} failed: {e}")
        return False

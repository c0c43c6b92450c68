"""
Chrome Relay Server - the automation-server end of the Leo Link channel.
This module provides the WebSocket server the browser agent connects to,
so tools can drive the user's own browser.

Features:
- WebSocket server in a background thread (retries while the port is busy)
- Tracks the most recent agent connection
- Sends commands, with 'search' rewritten to a Google search 'open'
- Waits for the result/error of a command
- Saves screenshot and moment results to disk
"""

import json
import errno
import logging
import threading
import time
from collections import deque
from pathlib import Path
from typing import Dict, Any, Optional, Deque
from urllib.parse import quote_plus

from websockets.exceptions import ConnectionClosed
from websockets.sync.server import serve as ws_serve

from .moments import save_moment
from ..config import DEFAULT_MOMENTS_DIR
from ..protocol import ActionKind, is_terminal

logger = logging.getLogger(__name__)

SEARCH_URL = "https://www.google.com/search?q={query}"
MAX_PENDING_RESULTS = 100


def build_command(args: Dict[str, Any]) -> Dict[str, Any]:
    """
    Turn tool arguments into the command sent to the agent.

    Raises:
        ValueError: 'search' without a query
    """
    if args.get("action") == "search":
        query = args.get("query")
        if not query:
            raise ValueError("Error: 'query' parameter required for search action")
        return {"action": ActionKind.OPEN.value, "url": SEARCH_URL.format(query=quote_plus(str(query)))}
    return dict(args)


class ChromeRelayServer:
    """
    WebSocket server for the Leo Link browser agent.

    Only the most recent agent connection receives commands.
    """

    def __init__(
        self,
        host: str = "127.0.0.1",
        port: int = 2345,
        moments_dir: Path = DEFAULT_MOMENTS_DIR,
        bind_retries: int = 5,
        retry_delay: float = 2.0,
    ):
        self.host = host
        self.port = port
        self.moments_dir = Path(moments_dir)
        self.bind_retries = bind_retries
        self.retry_delay = retry_delay
        self._server = None
        self._server_thread: Optional[threading.Thread] = None
        self._running = False
        self._connection = None
        self._last_message: Optional[str] = None
        self._results: Deque[Dict[str, Any]] = deque(maxlen=MAX_PENDING_RESULTS)
        self._cond = threading.Condition()

    def start(self) -> bool:
        """Start the relay server."""
        if self._running:
            logger.warning("Relay server already running")
            return True

        self._running = True
        self._server_thread = threading.Thread(target=self._run_server, daemon=True)
        self._server_thread.start()
        logger.info(f"Chrome relay server starting on ws://{self.host}:{self.port}")
        return True

    def stop(self):
        """Stop the relay server."""
        self._running = False
        if self._server:
            self._server.shutdown()
        logger.info("Chrome relay server stopped")

    def _bind(self):
        for attempt in range(self.bind_retries + 1):
            try:
                return ws_serve(self._handle_connection, self.host, self.port)
            except OSError as e:
                if e.errno == errno.EADDRINUSE and attempt < self.bind_retries and self._running:
                    if attempt == 0:
                        logger.debug(f"Relay port {self.port} in use, waiting...")
                    time.sleep(self.retry_delay)
                    continue
                logger.warning(f"Relay server unavailable (port {self.port}: {e}) - browser tool disabled")
                return None
        return None

    def _run_server(self):
        server = self._bind()
        if server is None:
            self._running = False
            return
        with server:
            self._server = server
            logger.info(f"Chrome relay server listening on ws://{self.host}:{self.port}")
            server.serve_forever()

    def _handle_connection(self, websocket):
        """Handle one agent connection until it closes."""
        with self._cond:
            self._connection = websocket
        logger.info("Browser agent connected")

        try:
            for message in websocket:
                self._handle_message(message)
        except ConnectionClosed as e:
            logger.debug(f"Browser connection ended: {e}")
        finally:
            with self._cond:
                if self._connection is websocket:
                    self._connection = None
            logger.info("Browser agent disconnected")

    def _handle_message(self, message):
        """Handle one frame from the agent."""
        if isinstance(message, bytes):
            message = message.decode("utf-8", errors="replace")
        with self._cond:
            self._last_message = message

        try:
            data = json.loads(message)
        except ValueError:
            logger.error(f"Invalid JSON from agent: {message[:100]}")
            return
        if not isinstance(data, dict):
            return

        msg_type = data.get("type")
        if msg_type == "hello":
            logger.info(f"Agent says: {data.get('message', '')}")
        elif msg_type == "ack":
            logger.debug(f"Agent started {data.get('action')}")
        elif msg_type == "error":
            logger.warning(f"Agent error for {data.get('action')}: {data.get('message')}")

        if msg_type == "result" and data.get("action") in (ActionKind.SCREENSHOT.value, ActionKind.MOMENT.value):
            try:
                save_moment(data, self.moments_dir)
            except OSError as e:
                logger.error(f"Failed to save {data.get('action')}: {e}")

        if is_terminal(data):
            with self._cond:
                self._results.append(data)
                self._cond.notify_all()

    # Public API

    @property
    def connected(self) -> bool:
        return self._connection is not None

    @property
    def last_message(self) -> Optional[str]:
        """Raw text of the most recent frame from the agent."""
        return self._last_message

    def send_command(self, args: Dict[str, Any]) -> str:
        """
        Send a command to the connected agent.

        Returns a short confirmation; raises RuntimeError when no agent is
        connected and ValueError for unusable arguments.
        """
        action = args.get("action", "help")
        command = build_command(args)

        with self._cond:
            websocket = self._connection
            # stale replies for this action must not satisfy the next wait_for
            sent_action = command.get("action")
            for stale in [r for r in self._results if r.get("action") == sent_action]:
                self._results.remove(stale)

        if websocket is None:
            raise RuntimeError("No browser connected! Install the Leo Link agent and make sure the browser is running.")

        payload = json.dumps(command)
        logger.info(f"Sending to browser: {payload}")
        try:
            websocket.send(payload)
        except ConnectionClosed as e:
            raise RuntimeError(f"Failed to send command to browser: {e}") from e

        if action == "search":
            return "Search results opened in browser! Check your browser tabs."
        return f"Browser action '{action}' sent!"

    def wait_for(self, action: str, timeout: float = 30.0) -> Optional[Dict[str, Any]]:
        """Block until a result/error for `action` arrives; None on timeout."""
        if action == "search":
            action = ActionKind.OPEN.value

        def _find():
            for item in self._results:
                if item.get("action") == action:
                    return item
            return None

        with self._cond:
            found = self._cond.wait_for(_find, timeout=timeout)
            if found is not None:
                self._results.remove(found)
            return found

    def get_status(self) -> Dict[str, Any]:
        """Get relay server status."""
        return {
            "running": self._running,
            "host": self.host,
            "port": self.port,
            "connected": self.connected,
        }


# Global relay server instance
_relay_server: Optional[ChromeRelayServer] = None


def get_chrome_relay() -> ChromeRelayServer:
    """Get the global Chrome relay server."""
    global _relay_server
    if _relay_server is None:
        _relay_server = ChromeRelayServer()
    return _relay_server


def start_chrome_relay(host: str = "127.0.0.1", port: int = 2345, moments_dir: Path = DEFAULT_MOMENTS_DIR) -> ChromeRelayServer:
    """Start the Chrome relay server."""
    global _relay_server
    _relay_server = ChromeRelayServer(host, port, moments_dir)
    _relay_server.start()
    return _relay_server

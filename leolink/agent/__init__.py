"""
Leo Link Agent
==============
The browser-side end of the link: holds the connection to the automation
server and executes its commands in the browser.

- connection: ConnectionManager, reconnect backoff, connection state
- dispatcher: ack / result / error around every command
- executor: per-action behaviour against a BrowserHost
- status: ON/OFF badge and the manual server probe
"""

import logging
from typing import Optional, Tuple

from .connection import ConnectionManager, ConnectionState, Backoff
from .dispatcher import CommandDispatcher
from .executor import ActionExecutor, ActionOutcome, ActionError, ElementNotFoundError, NoActiveTabError
from .status import StatusIndicator, probe_server
from ..browser.host import BrowserHost
from ..config import LinkConfig

logger = logging.getLogger(__name__)


def _default_host(config: LinkConfig) -> BrowserHost:
    from ..browser.cdp_browser import CDPBrowser
    return CDPBrowser(config.cdp_host, config.cdp_port)


def build_agent(
    config: LinkConfig,
    host: Optional[BrowserHost] = None,
) -> Tuple[ConnectionManager, CommandDispatcher]:
    """Wire connection, dispatcher and executor together."""
    if host is None:
        host = _default_host(config)

    connection = ConnectionManager(
        config.server_url,
        backoff=Backoff(config.initial_delay, config.max_delay, config.backoff_factor),
    )
    executor = ActionExecutor(host, highlight_ms=config.highlight_ms)
    dispatcher = CommandDispatcher(executor, connection.send, serialize=config.serialize_commands)
    connection.on_message = dispatcher.on_message
    connection.add_state_listener(StatusIndicator())
    return connection, dispatcher


async def run_agent(config: LinkConfig, host: Optional[BrowserHost] = None):
    """Run the agent until cancelled."""
    if host is None:
        host = _default_host(config)
    connection, dispatcher = build_agent(config, host)
    logger.info(f"Leo Link agent starting ({config.server_url})")
    try:
        await connection.run_forever()
    finally:
        await connection.stop()
        await dispatcher.drain()
        host.close()

"""
Leo Link Browser Module
=======================
Browser access for the agent and the server end of the channel.

- host: BrowserHost capability the action executor drives
- cdp_browser: BrowserHost over the Chrome DevTools Protocol
- chrome_relay: WebSocket server the browser agent connects to
- moments: on-disk storage of screenshot/moment results
"""

from .host import BrowserHost, BrowserError, Tab

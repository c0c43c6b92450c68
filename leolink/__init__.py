"""
Leo Link
========
Remote browser control: a local automation server sends structured commands
(open, click, type, read, scroll, ...) over a WebSocket and a browser-side
agent executes them against the active tab, answering with ack, result or
error messages.
"""

__version__ = "1.0.0"

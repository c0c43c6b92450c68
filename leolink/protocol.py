"""
Leo Link Wire Protocol
======================
Inbound commands and outbound protocol messages exchanged with the local
automation server. One JSON object per WebSocket text frame.

Inbound (server -> agent):
  {"action": "click", "selector": "#go"}

Outbound (agent -> server), tagged by "type":
  hello   {"type": "hello", "message": "..."}
  ack     {"type": "ack", "action": ..., "status": "starting"}
  result  {"type": "result", "action": ..., "status": "success", "data"?: ..., "message"?: ...}
  error   {"type": "error", "action": ..., "message": "..."}
"""

import json
import logging
from enum import Enum
from typing import Dict, Any, Optional, Union
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

HELLO_GREETING = "Extension connected"


class ActionKind(str, Enum):
    """Every action the agent knows how to execute."""
    OPEN = "open"
    SCREENSHOT = "screenshot"
    MOMENT = "moment"
    CLICK = "click"
    TYPE = "type"
    READ = "read"
    SCROLL = "scroll"
    GET_ELEMENTS = "get_elements"
    WAIT = "wait"


class CommandParseError(ValueError):
    """Raised when an inbound frame cannot be turned into a Command."""


class UnknownActionError(CommandParseError):
    """A well-formed command whose action is not an ActionKind."""

    def __init__(self, action: str):
        super().__init__(f"Unknown action: {action}")
        self.action = action


@dataclass
class Command:
    """One inbound instruction. Fields the action does not use are ignored."""
    action: ActionKind
    selector: Optional[str] = None
    text: Optional[str] = None
    url: Optional[str] = None
    x: Optional[float] = None
    y: Optional[float] = None
    ms: Optional[float] = None
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)


@dataclass
class PageSnapshot:
    """Page state captured by the 'moment' action."""
    text: str
    title: str
    url: str
    html: str

    def to_dict(self) -> Dict[str, Any]:
        return {"text": self.text, "title": self.title, "url": self.url, "html": self.html}


def _number(value: Any) -> Optional[float]:
    # bool is an int subclass; JSON true/false is not a coordinate
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value


def _string(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def parse_command(raw: Union[str, bytes]) -> Command:
    """
    Decode one inbound frame.

    Raises:
        CommandParseError: not JSON, not an object, or no string "action".
        UnknownActionError: the action is not one the agent supports.
    """
    try:
        data = json.loads(raw)
    except (TypeError, ValueError, RecursionError) as e:
        # RecursionError: nesting deeper than the decoder can follow
        raise CommandParseError(f"Invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise CommandParseError(f"Command must be a JSON object, got {type(data).__name__}")

    action = data.get("action")
    if not isinstance(action, str) or not action:
        raise CommandParseError("Command has no action")

    try:
        kind = ActionKind(action)
    except ValueError:
        raise UnknownActionError(action) from None

    return Command(
        action=kind,
        selector=_string(data.get("selector")),
        text=_string(data.get("text")),
        url=_string(data.get("url")),
        x=_number(data.get("x")),
        y=_number(data.get("y")),
        ms=_number(data.get("ms")),
        raw=data,
    )


# ── Outbound messages ─────────────────────────────────────────────

def hello_message(greeting: str = HELLO_GREETING) -> Dict[str, Any]:
    return {"type": "hello", "message": greeting}


def ack_message(action: str) -> Dict[str, Any]:
    return {"type": "ack", "action": action, "status": "starting"}


def result_message(action: str, data: Any = None, message: Optional[str] = None) -> Dict[str, Any]:
    msg = {"type": "result", "action": action, "status": "success"}
    if data is not None:
        msg["data"] = data
    if message is not None:
        msg["message"] = message
    return msg


def error_message(action: str, message: str) -> Dict[str, Any]:
    return {"type": "error", "action": action, "message": message}


def is_terminal(message: Dict[str, Any]) -> bool:
    """True for the messages that finish a command (result or error)."""
    return message.get("type") in ("result", "error")

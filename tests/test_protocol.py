"""
Tests for the wire protocol (leolink/protocol.py)
"""
import json
import pytest

from leolink.protocol import (
    ActionKind,
    Command,
    CommandParseError,
    UnknownActionError,
    PageSnapshot,
    parse_command,
    hello_message,
    ack_message,
    result_message,
    error_message,
    is_terminal,
)


class TestParseCommand:
    """Decoding inbound frames"""

    def test_parses_click(self):
        cmd = parse_command('{"action": "click", "selector": "#go"}')
        assert cmd.action is ActionKind.CLICK
        assert cmd.selector == "#go"
        assert cmd.text is None

    def test_parses_numbers_and_bytes(self):
        cmd = parse_command(b'{"action": "scroll", "x": 10, "y": 300.5}')
        assert cmd.action is ActionKind.SCROLL
        assert cmd.x == 10
        assert cmd.y == 300.5

    def test_irrelevant_fields_are_kept_not_validated(self):
        cmd = parse_command('{"action": "wait", "ms": 50, "url": "example.com", "extra": 1}')
        assert cmd.ms == 50
        assert cmd.url == "example.com"
        assert cmd.raw["extra"] == 1

    def test_wrongly_typed_fields_are_ignored(self):
        cmd = parse_command('{"action": "scroll", "y": "lots", "x": true, "selector": 5}')
        assert cmd.y is None
        assert cmd.x is None
        assert cmd.selector is None

    @pytest.mark.parametrize("raw", ["not json", "[1, 2]", '"click"', "{}", '{"action": ""}', '{"action": 3}'])
    def test_malformed_frames_raise(self, raw):
        with pytest.raises(CommandParseError):
            parse_command(raw)

    def test_deep_nesting_is_a_parse_error(self):
        with pytest.raises(CommandParseError, match="Invalid JSON"):
            parse_command("[" * 100000)

    def test_unknown_action(self):
        with pytest.raises(UnknownActionError) as exc:
            parse_command('{"action": "fly"}')
        assert exc.value.action == "fly"
        assert str(exc.value) == "Unknown action: fly"

    def test_every_action_kind_parses(self):
        for kind in ActionKind:
            assert parse_command(json.dumps({"action": kind.value})).action is kind


class TestMessages:
    """Outbound message builders"""

    def test_hello(self):
        assert hello_message() == {"type": "hello", "message": "Extension connected"}

    def test_ack(self):
        assert ack_message("click") == {"type": "ack", "action": "click", "status": "starting"}

    def test_result_with_data(self):
        msg = result_message("scroll", data="Scrolled")
        assert msg == {"type": "result", "action": "scroll", "status": "success", "data": "Scrolled"}

    def test_result_with_message_only(self):
        msg = result_message("open", message="Opened https://example.com")
        assert "data" not in msg
        assert msg["message"] == "Opened https://example.com"

    def test_error(self):
        assert error_message("click", "boom") == {"type": "error", "action": "click", "message": "boom"}

    def test_is_terminal(self):
        assert is_terminal(result_message("read", data=""))
        assert is_terminal(error_message("read", "x"))
        assert not is_terminal(ack_message("read"))
        assert not is_terminal(hello_message())

    def test_page_snapshot_dict(self):
        snap = PageSnapshot(text="t", title="T", url="u", html="<html></html>")
        assert snap.to_dict() == {"text": "t", "title": "T", "url": "u", "html": "<html></html>"}

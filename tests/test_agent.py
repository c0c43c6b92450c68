"""
Tests for agent wiring (leolink/agent/__init__.py)
"""
import asyncio
import pytest

from conftest import FakeHost
from leolink.agent import build_agent, run_agent
from leolink.config import LinkConfig


def test_build_agent_wires_dispatcher_into_connection():
    config = LinkConfig.from_env({"LEO_LINK_URL": "ws://127.0.0.1:9", "LEO_LINK_SERIALIZE": "1"})
    connection, dispatcher = build_agent(config, FakeHost())
    assert connection.url == "ws://127.0.0.1:9"
    assert connection.on_message == dispatcher.on_message


def test_run_agent_closes_host_on_exit():
    host = FakeHost()
    config = LinkConfig.from_env({"LEO_LINK_URL": "ws://127.0.0.1:9"})

    async def scenario():
        task = asyncio.create_task(run_agent(config, host))
        await asyncio.sleep(0.05)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(scenario())
    assert host.closed

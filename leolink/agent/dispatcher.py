"""
Command Dispatcher - inbound frames to ack + result/error.

Each parsed command gets its own task: the ack goes out first, then the
executor runs, then exactly one result or error. Tasks are not serialized
unless asked, so a slow command does not hold up the next one and replies
from overlapping commands may interleave.
"""

import asyncio
import logging
from typing import Dict, Any, Optional, Callable, Awaitable, Set, Union

from .executor import ActionExecutor
from ..protocol import (
    Command,
    CommandParseError,
    UnknownActionError,
    parse_command,
    ack_message,
    result_message,
    error_message,
)

logger = logging.getLogger(__name__)

SendFn = Callable[[Dict[str, Any]], Awaitable[bool]]


class CommandDispatcher:
    """
    Routes commands to the executor and reports back through `send`.

    Args:
        executor: Runs the commands
        send: Coroutine that delivers one outbound message (dropped if offline)
        serialize: Run one command at a time, in arrival order
    """

    def __init__(self, executor: ActionExecutor, send: SendFn, serialize: bool = False):
        self._executor = executor
        self._send = send
        self._serial_lock = asyncio.Lock() if serialize else None
        self._tasks: Set[asyncio.Task] = set()

    def on_message(self, raw: Union[str, bytes]) -> Optional[asyncio.Task]:
        """Handle one inbound frame. Must be called from the event loop."""
        logger.debug(f"Command received: {str(raw)[:200]}")
        try:
            command = parse_command(raw)
        except UnknownActionError as e:
            logger.warning(str(e))
            return self._spawn(self._reject(e.action, str(e)))
        except CommandParseError as e:
            logger.error(f"Failed to parse command: {e} ({str(raw)[:100]})")
            return None
        return self._spawn(self.dispatch(command))

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def dispatch(self, command: Command):
        action = command.action.value
        await self._send(ack_message(action))

        try:
            if self._serial_lock is not None:
                async with self._serial_lock:
                    outcome = await self._executor.execute(command)
            else:
                outcome = await self._executor.execute(command)
        except Exception as e:
            logger.warning(f"Action '{action}' failed: {e}")
            await self._send(error_message(action, str(e) or type(e).__name__))
            return

        await self._send(result_message(action, data=outcome.data, message=outcome.message))

    async def _reject(self, action: str, reason: str):
        await self._send(ack_message(action))
        await self._send(error_message(action, reason))

    async def drain(self):
        """Wait for every in-flight command to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

"""
ManagerActor - serialized async access to a PolarManager.

PolarManager mutates networks in place and is not safe to call from several
threads at once. The actor owns one manager, queues requests and executes
them one at a time on a worker thread, so async callers (a UI event loop, for
example) never observe a half-finished operation and never block the loop
on Docker.
"""

import asyncio
import logging
from typing import Any, Optional

from polarbox.commands.manager import PolarManager

logger = logging.getLogger(__name__)

OPERATIONS = frozenset(
    {
        "list_networks",
        "get_network",
        "check_docker",
        "create_network",
        "start_network",
        "stop_network",
        "delete_network",
        "add_lightning_node",
        "delete_lightning_node",
        "mine_blocks",
        "fund_lnd_wallet",
        "open_channel",
        "close_channel",
        "send_payment",
        "sync_graph",
        "sync_chain",
        "get_node_info",
    }
)

_STOP = object()


class ManagerActor:
    """Runs PolarManager operations sequentially behind an asyncio queue.

    Usage::

        async with ManagerActor(manager) as actor:
            await actor.start_network("demo")
            hashes = await actor.mine_blocks("demo", 10)
    """

    def __init__(self, manager: PolarManager):
        self.manager = manager
        self._queue: Optional[asyncio.Queue] = None
        self._worker: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    async def start(self) -> None:
        if self.running:
            return
        self._queue = asyncio.Queue()
        self._worker = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Finish queued requests, then stop the worker."""
        if not self.running:
            return
        await self._queue.put(_STOP)
        await self._worker
        self._worker = None

    async def __aenter__(self) -> "ManagerActor":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    async def call(self, operation: str, *args: Any, **kwargs: Any) -> Any:
        """Queue an operation and wait for its result.

        Exceptions raised by the operation are re-raised here.

        Raises:
            AttributeError: If ``operation`` is not a manager operation.
            RuntimeError: If the actor has not been started.
        """
        if operation not in OPERATIONS:
            raise AttributeError(f"Unknown manager operation: {operation}")
        if not self.running:
            raise RuntimeError("ManagerActor is not running")

        future = asyncio.get_running_loop().create_future()
        await self._queue.put((operation, args, kwargs, future))
        return await future

    def __getattr__(self, name: str):
        if name in OPERATIONS:

            async def operation(*args: Any, **kwargs: Any) -> Any:
                return await self.call(name, *args, **kwargs)

            operation.__name__ = name
            return operation
        raise AttributeError(name)

    async def _run(self) -> None:
        while True:
            item = await self._queue.get()
            try:
                if item is _STOP:
                    return
                operation, args, kwargs, future = item
                if future.cancelled():
                    continue
                method = getattr(self.manager, operation)
                try:
                    result = await asyncio.to_thread(method, *args, **kwargs)
                except Exception as e:
                    logger.debug("%s failed: %s", operation, e)
                    if not future.cancelled():
                        future.set_exception(e)
                else:
                    if not future.cancelled():
                        future.set_result(result)
            finally:
                self._queue.task_done()

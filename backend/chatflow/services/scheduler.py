"""
Delay Scheduler - Timers that resume flows parked on DELAY nodes
"""
import logging
import asyncio
from typing import Awaitable, Callable, Dict

logger = logging.getLogger(__name__)


class DelayScheduler:
    """
    One pending timer per flow instance.

    Scheduling again for the same instance replaces the previous timer.
    Timers live in this process only; a restart drops them.
    """

    def __init__(self):
        self._tasks: Dict[str, asyncio.Task] = {}

    def schedule(
        self,
        instance_id: str,
        seconds: float,
        callback: Callable[[], Awaitable[None]]
    ) -> asyncio.Task:
        """Run ``callback`` after ``seconds``"""
        self.cancel(instance_id)
        task = asyncio.create_task(self._run(instance_id, seconds, callback))
        self._tasks[instance_id] = task
        logger.debug(f"Delay scheduled for instance {instance_id}: {seconds}s")
        return task

    async def _run(
        self,
        instance_id: str,
        seconds: float,
        callback: Callable[[], Awaitable[None]]
    ) -> None:
        try:
            await asyncio.sleep(seconds)
        except asyncio.CancelledError:
            logger.debug(f"Delay cancelled for instance {instance_id}")
            raise

        # The callback may schedule a new timer for the same instance
        if self._tasks.get(instance_id) is asyncio.current_task():
            del self._tasks[instance_id]

        try:
            await callback()
        except Exception as e:
            logger.exception(f"Error in delay continuation for instance {instance_id}: {e}")

    def cancel(self, instance_id: str) -> bool:
        """Cancel the instance's pending timer, if any"""
        task = self._tasks.pop(instance_id, None)
        if task is None or task.done():
            return False
        if task is asyncio.current_task():
            return False
        task.cancel()
        return True

    def pending(self, instance_id: str) -> bool:
        task = self._tasks.get(instance_id)
        return task is not None and not task.done()

    async def shutdown(self) -> None:
        """Cancel every pending timer"""
        tasks = list(self._tasks.values())
        self._tasks.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.info(f"Delay scheduler stopped ({len(tasks)} timers cancelled)")

# =============================================================================
# app/services/connection_events.py
# =============================================================================
import asyncio
import inspect
from typing import Awaitable, Callable, List, Set, Union
from app.core.logger import get_module_logger
from app.schemas.slack import ConnectionEvent

logger = get_module_logger(__name__, "connection_events.log")

Subscriber = Callable[[ConnectionEvent], Union[None, Awaitable[None]]]


class ConnectionEvents:
    """
    Subscription point for Slack connection changes.

    Plain callables run inline during ``publish``; coroutine subscribers are
    scheduled as background tasks so a slow listener never holds up the
    connection write that triggered the event.
    """

    def __init__(self):
        self._subscribers: List[Subscriber] = []
        self._pending: Set[asyncio.Task] = set()

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register ``callback``; the returned function unsubscribes it"""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    async def publish(self, event: ConnectionEvent) -> None:
        for callback in list(self._subscribers):
            try:
                result = callback(event)
            except Exception as e:
                logger.error(f"Connection event subscriber failed for user {event.user_id}: {str(e)}", exc_info=True)
                continue

            if inspect.isawaitable(result):
                task = asyncio.ensure_future(result)
                self._pending.add(task)
                task.add_done_callback(lambda done, user_id=event.user_id: self._on_done(done, user_id))

    async def drain(self) -> None:
        """Wait for subscriber tasks still in flight"""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def _on_done(self, task: asyncio.Task, user_id: str) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(
                f"Connection event subscriber failed for user {user_id}: {str(error)}",
                exc_info=(type(error), error, error.__traceback__),
            )

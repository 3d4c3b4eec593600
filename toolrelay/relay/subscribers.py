import asyncio
import inspect
import logging
from typing import Any, Callable, Dict, Set

from toolrelay.utils import JsonObject

log = logging.getLogger(__name__)

Listener = Callable[[JsonObject], Any]


class NotificationFanout:
    """
    Delivers worker notifications to every current subscriber.

    Listeners run in registration order. Plain functions run inline;
    coroutine functions are scheduled as tasks that the fan-out keeps until
    they finish. A listener that raises is logged and does not affect the
    others. Subscribing the same listener twice registers it once. Nothing is
    buffered: late subscribers never see earlier messages.
    """

    def __init__(self) -> None:
        # Insertion-ordered set of listeners.
        self._listeners: Dict[Listener, None] = {}
        self._tasks: Set[asyncio.Task] = set()

    def __len__(self) -> int:
        return len(self._listeners)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener and return a function that removes it again."""
        self._listeners[listener] = None
        log.debug(f"[NotificationFanout] Registered listener. Total listeners: {len(self._listeners)}")

        def unsubscribe() -> None:
            if listener in self._listeners:
                del self._listeners[listener]
                log.debug(f"[NotificationFanout] Removed listener. Total listeners: {len(self._listeners)}")

        return unsubscribe

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            log.exception(f"[NotificationFanout] Async listener failed: {exc}", exc_info=exc)

    def _execute_listener(self, listener: Listener, message: JsonObject) -> None:
        try:
            if inspect.iscoroutinefunction(listener):
                task = asyncio.create_task(listener(message))
                self._tasks.add(task)
                task.add_done_callback(self._on_task_done)
            else:
                listener(message)
        except Exception as e:
            log.exception(f"[NotificationFanout] Listener failed for '{message.get('method')}': {e}")

    def emit(self, message: JsonObject) -> None:
        # Snapshot so listeners may (un)subscribe while being notified.
        for listener in list(self._listeners):
            self._execute_listener(listener, message)

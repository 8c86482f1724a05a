"""
Synchronous event emitter shared by the APNs connection and feedback channel.
"""

import logging
from typing import Any, Callable, List

logger = logging.getLogger(__name__)

Listener = Callable[[Any], None]


class EventEmitter:
    """
    Delivers each emitted event to every subscribed listener, in
    subscription order, before ``emit`` returns.

    Listeners run on the emitter's thread (the asyncio loop for the APNs
    connection) and must not block. A failing listener is logged and does
    not stop delivery to the remaining listeners.
    """

    def __init__(self) -> None:
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> None:
        """Register a listener for all future events."""
        self._listeners.append(listener)

    def listener_count(self) -> int:
        return len(self._listeners)

    def deliver(self, event: Any) -> List[Exception]:
        """
        Deliver an event to all listeners and collect their failures.

        Every listener still runs when an earlier one raises.

        Returns:
            Exceptions raised by listeners, in subscription order
        """
        errors: List[Exception] = []
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                errors.append(e)
        return errors

    def emit(self, event: Any) -> bool:
        """
        Deliver an event to all listeners, logging any that fail.

        Returns:
            True if at least one listener received the event
        """
        for error in self.deliver(event):
            logger.error(
                f"Error in {getattr(event, 'name', type(event).__name__)} listener: {error}",
                exc_info=error,
            )
        return bool(self._listeners)

"""
Ledger Change Notifications

When a user's ledger changes, anything showing totals for that user is
stale. The store publishes a change event after every successful insert;
summary consumers subscribe and drop their cached view.

Other actors that mutate the ledger outside this process can call
`notify_changed` to get the same effect.
"""

import inspect
from typing import Awaitable, Callable, Optional, Union

import structlog

from finchat.models.transaction import Transaction


LedgerListener = Callable[
    [str, Optional[Transaction]],
    Union[None, Awaitable[None]],
]


class TransactionEvents:
    """
    In-process publish/subscribe for "ledger changed for user X".

    Listeners receive (user_id, transaction). The transaction is None
    when the change came from an external notification.
    """

    def __init__(self):
        self._listeners: list[LedgerListener] = []
        self._logger = structlog.get_logger(__name__)

    def subscribe(self, listener: LedgerListener) -> Callable[[], None]:
        """
        Register a listener.

        Returns a callable that removes it again.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    async def publish(
        self,
        user_id: str,
        transaction: Optional[Transaction] = None,
    ) -> None:
        """
        Notify every listener that `user_id`'s ledger changed.

        A failing listener is logged and skipped; it never undoes the
        write that triggered the event.
        """
        for listener in list(self._listeners):
            try:
                result = listener(user_id, transaction)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                self._logger.error(
                    "ledger_listener_failed",
                    user_id=user_id,
                    listener=getattr(listener, "__qualname__", repr(listener)),
                    error=str(e),
                )

    async def notify_changed(self, user_id: str) -> None:
        """Entry point for external actors that changed the ledger."""
        await self.publish(user_id, None)

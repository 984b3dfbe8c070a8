"""
Cooperative cancellation shared by the category exporters of one run.
"""

import asyncio


class CancellationToken:
    """
    A settable flag polled by every exporter before it starts the next item.

    Cancelling never interrupts an in-flight download or document rewrite.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    def reset(self) -> None:
        self._event.clear()


__all__ = [
    "CancellationToken",
]

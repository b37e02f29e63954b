"""Cooperative cancellation for the build pipeline.

A single :class:`CancellationToken` is created per invocation and handed to
every blocking step. Steps poll the token between units of work and raise
:class:`~chainbuild.utils.exceptions.CancellationError` once it fires.
"""

from __future__ import annotations

import threading
from typing import Optional

from chainbuild.utils.exceptions import CancellationError


class CancellationToken:
    """Thread-safe cancellation flag with an optional reason."""

    def __init__(self) -> None:
        self._event = threading.Event()
        self._reason: Optional[str] = None

    def cancel(self, reason: str = "operation cancelled") -> None:
        """Signal cancellation. Calling it more than once keeps the first reason."""
        if not self._event.is_set():
            self._reason = reason
            self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def raise_if_cancelled(self, operation: Optional[str] = None) -> None:
        """Raise CancellationError if the token has fired.

        Args:
            operation: Name of the step being interrupted, kept in the error details.

        Raises:
            CancellationError: If cancellation was requested.
        """
        if self._event.is_set():
            raise CancellationError(self._reason or "operation cancelled", operation=operation)

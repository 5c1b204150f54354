"""Cooperative cancellation for in-flight installs.

A CancellationRegistry maps an operation key (the version being installed) to
the token handed to that install. Triggering the token only asks the install
capability to stop; it is up to the capability to observe it.
"""

from __future__ import annotations

import logging
import threading

from wine_manager.installer.errors import InstallAbortedError

logger = logging.getLogger(__name__)


class CancellationToken:
    """Trigger plus observable flag for one operation.

    Backed by a threading.Event so extraction running in a worker thread
    sees the flag as soon as it is set.
    """

    def __init__(self) -> None:
        """Initialize an untriggered token."""
        self._event = threading.Event()

    def cancel(self) -> None:
        """Request cancellation."""
        self._event.set()

    @property
    def cancelled(self) -> bool:
        """Whether cancellation has been requested."""
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        """Raise InstallAbortedError if cancellation has been requested."""
        if self.cancelled:
            raise InstallAbortedError("Installation aborted by user")


class CancellationRegistry:
    """Table of live cancellation tokens, at most one per key."""

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._tokens: dict[str, CancellationToken] = {}

    def create(self, key: str) -> CancellationToken:
        """Register a fresh token under ``key`` and return it.

        Any token already registered under ``key`` is replaced.
        """
        if key in self._tokens:
            logger.debug("Replacing cancellation token for %s", key)
        token = CancellationToken()
        self._tokens[key] = token
        return token

    def get(self, key: str) -> CancellationToken | None:
        """Return the token registered under ``key``, if any."""
        return self._tokens.get(key)

    def cancel(self, key: str) -> bool:
        """Trigger the token registered under ``key``.

        Returns:
            True if a token was found and triggered.
        """
        token = self._tokens.get(key)
        if token is None:
            return False
        logger.info("Cancelling operation %s", key)
        token.cancel()
        return True

    def delete(self, key: str) -> None:
        """Discard the token registered under ``key``; no-op if absent."""
        self._tokens.pop(key, None)

    def __contains__(self, key: object) -> bool:
        return key in self._tokens

    def __len__(self) -> int:
        return len(self._tokens)


__all__ = ["CancellationRegistry", "CancellationToken"]

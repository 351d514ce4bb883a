"""Idle lock timer and the credential gate interface.

The app locks when it returns to the foreground after spending at least the configured
timeout in the background, provided the biometric gate is enabled. Unlocking is delegated to
a :class:`CredentialGate` implementation supplied by the platform layer.
"""
import logging
import time
from typing import Callable, Optional, Protocol

from ..settings import lib

DEFAULT_TIMEOUT_SECONDS = 300


class CredentialGate(Protocol):
    """Biometric or device passcode challenge."""

    def authenticate(self, prompt: str) -> bool:
        """Show the challenge. Return True on success, False on failure or cancellation."""
        ...

    def provision(self) -> None:
        """Create the credential material future challenges verify against."""
        ...

    def reset(self) -> None:
        """Remove the credential material. Must not fail if there is nothing to remove."""
        ...


class AppLock:
    """Tracks time spent in the background and decides when to lock.

    Args:
        timeout_seconds (float, optional): Background time after which the app locks.
            Defaults to the ``lock.timeout_seconds`` config value.
        clock (Callable[[], float]): Monotonic clock returning seconds.
    """

    def __init__(self, timeout_seconds: Optional[float] = None,
                 clock: Callable[[], float] = time.monotonic) -> None:
        if timeout_seconds is None:
            timeout_seconds = lib.get_settings()['lock.timeout_seconds'] or DEFAULT_TIMEOUT_SECONDS
        self.timeout_seconds = float(timeout_seconds)
        self.clock = clock
        self._background_since: Optional[float] = None

    @property
    def background_since(self) -> Optional[float]:
        return self._background_since

    def on_background(self) -> None:
        """Record the time the app went to the background, replacing any earlier record."""
        self._background_since = self.clock()

    def on_foreground(self, enabled: bool) -> bool:
        """Evaluate the lock decision for a return to the foreground.

        The background timestamp is cleared afterwards, so a repeated call for the same
        transition never locks twice.

        Args:
            enabled (bool): Whether the biometric gate is enabled.

        Returns:
            bool: True if the app should lock.
        """
        since = self._background_since
        self._background_since = None
        if since is None or not enabled:
            return False

        elapsed = self.clock() - since
        should_lock = elapsed >= self.timeout_seconds
        logging.debug(f'Returned to foreground after {elapsed:.1f}s, lock={should_lock}')
        return should_lock

    def restart(self) -> None:
        """Start the background clock from now."""
        self._background_since = self.clock()

    def reset(self) -> None:
        self._background_since = None

"""Injectable SDK logging.

Components receive an ``SdkLogger`` explicitly instead of reaching for a
global instance. The default is ``NullLogger``, so nothing is emitted unless
the caller enables logging in ``ClientOptions`` or passes its own logger.
"""

import logging
from typing import Protocol

SDK_LOGGER_NAME = "xpkit"
LOG_PREFIX = "[XPKIT]"


class SdkLogger(Protocol):
    """Anything with a ``log(message)`` method."""

    def log(self, message: str) -> None: ...


class NullLogger:
    """Discards every message."""

    def log(self, message: str) -> None:
        pass


class ConsoleLogger:
    """Forwards SDK trace messages to the standard ``xpkit`` logger at INFO."""

    def __init__(self, name: str = SDK_LOGGER_NAME):
        self._logger = logging.getLogger(name)

    def log(self, message: str) -> None:
        self._logger.info(f"{LOG_PREFIX}: {message}")


def get_logger(enabled: bool) -> SdkLogger:
    """Get the SDK logger matching a ``logging`` option."""
    return ConsoleLogger() if enabled else NullLogger()

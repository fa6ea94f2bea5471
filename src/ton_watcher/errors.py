"""Exception hierarchy for ton_watcher."""

from __future__ import annotations


class WatcherError(Exception):
    """Base class for all ton_watcher errors."""


class ConfigError(WatcherError):
    """Fatal configuration problem, raised before any polling starts."""


class InvalidAddressError(WatcherError, ValueError):
    """An account address could not be parsed."""


class ChainQueryError(WatcherError):
    """A chain query failed.

    ``transient`` is False for errors that retrying cannot fix (bad request,
    unknown method); the retry policy raises those immediately.
    """

    def __init__(self, message: str, transient: bool = True, status: int | None = None) -> None:
        super().__init__(message)
        self.transient = transient
        self.status = status


class ExhaustedRetries(WatcherError):
    """An operation kept failing for every allowed attempt."""

    def __init__(self, operation: str, attempts: int, last_error: BaseException | None = None) -> None:
        super().__init__(
            f"{operation} failed after {attempts} attempts: {last_error}"
        )
        self.operation = operation
        self.attempts = attempts
        self.last_error = last_error

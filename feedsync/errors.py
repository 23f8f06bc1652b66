"""Exceptions that abort a sync run.

Recoverable feed problems (unparsable scalars, unknown currency codes,
offers without an id or required fields) are never raised; they are logged
where they are found and counted by the caller.
"""

from __future__ import annotations


class FeedSyncError(Exception):
    """Base class for fatal sync errors."""


class FeedError(FeedSyncError):
    """The feed document cannot be processed any further."""


class MalformedFeedStream(FeedError):
    def __init__(self, message: str, *, line: int | None = None, column: int | None = None) -> None:
        self.line = line
        self.column = column
        if line is not None:
            message = f"{message} (line {line}, column {column})"
        super().__init__(message)


class UnknownAvailabilityLiteral(FeedError):
    def __init__(self, value: str, *, offer_id: str | None = None, line: int | None = None) -> None:
        self.value = value
        self.offer_id = offer_id
        self.line = line
        message = f'Unknown "available" attribute: {value!r}'
        if offer_id is not None:
            message += f" in offer {offer_id}"
        if line is not None:
            message += f" (line {line})"
        super().__init__(message)


class FeedSourceError(FeedSyncError):
    """The feed could not be opened or downloaded."""


class RepositoryIOFailure(FeedSyncError):
    """A catalog store operation failed."""

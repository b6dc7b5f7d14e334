"""Error taxonomy shared by the planner, executor, and full-text lifecycle."""

from __future__ import annotations


class FirescanError(Exception):
    """Base class for all firescan errors."""


class ConfigurationError(FirescanError):
    """Raised when a call is configured in a way that can never succeed.

    Examples: keywords without a full-text index, or inequality filters on
    more than one field.
    """


class ResourceExceededError(FirescanError):
    """Raised when a query would materialize too many documents in memory."""

    def __init__(self, count: int, ceiling: int, *, query_description: str = "") -> None:
        self.count = count
        self.ceiling = ceiling
        target = f" for {query_description}" if query_description else ""
        super().__init__(
            f"Query matches {count} documents{target}, at or above the server-side ceiling of {ceiling}"
        )


class NotFoundError(FirescanError):
    """Raised when a persisted artifact (e.g. a full-text snapshot) does not exist."""


class UnsupportedOperatorError(FirescanError):
    """Raised when residual evaluation meets an operator it cannot evaluate."""

    def __init__(self, operator: object) -> None:
        self.operator = operator
        super().__init__(f"Unsupported filter operator for in-memory evaluation: {operator!r}")

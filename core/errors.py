from __future__ import annotations

from typing import Iterable, List


class DashboardError(Exception):
    """Base class for failures that are recovered at the UI/API boundary."""

    retryable = False


class StoreUnavailable(DashboardError):
    """Raised by store adapters when the document database cannot be reached."""

    retryable = True


class ValidationFailure(DashboardError):
    def __init__(self, messages: Iterable[str]) -> None:
        self.messages: List[str] = list(messages)
        super().__init__(" ".join(self.messages))


class FetchFailure(DashboardError):
    retryable = True


class PersistFailure(DashboardError):
    retryable = True


class EmptyExportFailure(DashboardError):
    def __init__(self, message: str = "No data to export!") -> None:
        super().__init__(message)

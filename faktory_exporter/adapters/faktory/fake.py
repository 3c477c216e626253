"""In-memory fake implementing the StatusSource protocol."""

import copy
from typing import Optional

from faktory_exporter.core.exceptions import FetchError
from faktory_exporter.core.protocols.status import StatusDocument, StatusSource


class FakeStatusSource(StatusSource):
    """Spy that serves a configurable status document or failure."""

    def __init__(self, document: Optional[StatusDocument] = None) -> None:
        self._document = document
        self._error: Optional[Exception] = None
        self.fetch_calls: int = 0
        self.closed: bool = False

    def fetch_status(self) -> StatusDocument:
        self.fetch_calls += 1
        if self._error is not None:
            raise self._error
        if self._document is None:
            raise FetchError("No status document configured")
        return copy.deepcopy(self._document)

    def close(self) -> None:
        self.closed = True

    # -- test helpers --

    def set_document(self, document: StatusDocument) -> None:
        """Serve ``document`` on every subsequent fetch."""
        self._document = document
        self._error = None

    def fail_with(self, error: Exception) -> None:
        """Raise ``error`` on every subsequent fetch."""
        self._error = error

    def clear(self) -> None:
        """Reset all recorded state."""
        self._document = None
        self._error = None
        self.fetch_calls = 0
        self.closed = False

"""Status source protocol for dependency injection.

The collector only needs one operation from the upstream server: fetch the
raw status document. The Faktory wire client and the in-memory fake both
satisfy this protocol structurally.
"""

from typing import Any, Protocol, runtime_checkable

StatusDocument = dict[str, Any]


@runtime_checkable
class StatusSource(Protocol):
    """Protocol for fetching the upstream server's status document."""

    def fetch_status(self) -> StatusDocument:
        """Return the raw, undecoded status document.

        Blocks for the duration of the upstream round trip.

        Raises:
            FetchError: the server is unreachable or replied with a protocol
                error.
        """
        ...

    def close(self) -> None:
        """Release any connection held by the source."""
        ...

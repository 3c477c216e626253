"""Shared exceptions module."""

from typing import Optional


class FaktoryExporterException(Exception):
    """Base exception for the Faktory exporter."""

    pass


class ConnectionSetupError(FaktoryExporterException):
    """Raised when the Faktory connection cannot be established at start-up.

    Covers malformed connection URLs as well as failed initial handshakes.
    Fatal: the process does not start serving.
    """

    def __init__(self, message: Optional[str] = "Unable to set up Faktory connection"):
        """Create a new ConnectionSetupError instance.

        Args:
        ----
            message (str, optional): The error message. Has default message.

        """
        self.message = message
        super().__init__(self.message)


class FetchError(FaktoryExporterException):
    """Raised when the status document cannot be fetched during a scrape."""

    def __init__(self, message: Optional[str] = "Failed to fetch Faktory status"):
        """Create a new FetchError instance.

        Args:
        ----
            message (str, optional): The error message. Has default message.

        """
        self.message = message
        super().__init__(self.message)


class DecodeError(FaktoryExporterException):
    """Raised when a status document lacks a required field or has it mistyped."""

    def __init__(self, field: str, message: str = "Missing or invalid status field"):
        """Create a new DecodeError instance.

        Args:
        ----
            field (str): Dotted path of the field that failed validation.
            message (str, optional): The error message. Has default message.

        """
        self.field = field
        self.message = message
        super().__init__(f"{message}: {field}")


class FaktoryProtocolError(FaktoryExporterException):
    """Raised when the Faktory server sends an error or a malformed reply."""

    pass

"""
Transfer Errors

Every failure a transfer can hit maps onto one of these classes. Each error
aborts only the transfer in progress; the server keeps accepting and the
client exits non-zero.
"""

from typing import Optional


class TransferError(Exception):
    """Base class for all transfer failures."""


class EndpointError(TransferError, ConnectionError):
    """Bind, dial, accept or socket write failure."""


class ProtocolDecodeError(TransferError):
    """The request header is malformed."""


class ShortReadError(ProtocolDecodeError):
    """
    The stream ended before a header field was complete.

    Attributes:
        expected: Bytes the field needed
        received: Bytes that arrived before the stream closed
        clean: True if the peer closed before sending any byte of the request
    """

    def __init__(self, field: str, expected: int, received: int,
                 clean: bool = False):
        self.field = field
        self.expected = expected
        self.received = received
        self.clean = clean
        if clean:
            message = "Connection closed before any request data was sent"
        else:
            message = (f"Connection closed while reading {field}: "
                       f"got {received} of {expected} bytes")
        super().__init__(message)


class TruncatedTransferError(TransferError):
    """Fewer content bytes moved than the header declared."""

    def __init__(self, expected: int, received: int,
                 filename: Optional[str] = None):
        self.expected = expected
        self.received = received
        self.filename = filename
        target = f" for {filename}" if filename else ""
        super().__init__(
            f"Transfer truncated{target}: {received} of {expected} bytes"
        )


class LocalIOError(TransferError):
    """Open, create, read or write failure on the local filesystem."""


class EncodingError(TransferError, ValueError):
    """A value does not fit in its 32-bit length field."""

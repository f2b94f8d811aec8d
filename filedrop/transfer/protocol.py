"""
File Transfer Protocol

Design Decision: Request Framing
================================

Options Considered:
1. Length-prefixed JSON header + binary body
   - Extensible, easy to debug
   - Needs a JSON parser on both ends, header size varies with key names

2. Line-based text header ("NAME size\\n") + binary body
   - Human readable
   - Filenames containing newlines or spaces need escaping

3. Fixed binary fields with explicit lengths
   - Smallest possible header, trivial to parse
   - Not self-describing

Decision: Fixed binary fields, big-endian
- One request per connection, so no message type is needed
- Every variable-size field is preceded by its length; nothing relies on a
  terminator, the length is authoritative
- Byte order is fixed big-endian; this is a compatibility constraint, not a
  setting

Request Format:
```
offset 0      uint32   filename length (N)
offset 4      byte[N]  filename (UTF-8)
offset 4+N    uint32   content length (M)
offset 8+N    byte[M]  file content
```

No acknowledgement, checksum or trailer follows. A transfer succeeded when the
connection closes after exactly 8+N+M bytes.
"""

import asyncio
import struct
import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from ..errors import EncodingError, EndpointError, ProtocolDecodeError, ShortReadError

logger = logging.getLogger(__name__)

LENGTH_FORMAT = '>I'
LENGTH_SIZE = struct.calcsize(LENGTH_FORMAT)
MAX_FIELD_VALUE = 0xFFFFFFFF

DEFAULT_CHUNK_SIZE = 4096


def check_chunk_size(chunk_size: int) -> int:
    """Return ``chunk_size`` if it is a usable read size, else raise ValueError."""
    if isinstance(chunk_size, bool) or not isinstance(chunk_size, int) or chunk_size < 1:
        raise ValueError(f"chunk_size must be a positive integer, got {chunk_size!r}")
    return chunk_size


@dataclass(frozen=True)
class Endpoint:
    """A resolved TCP address shared by the server and the client."""
    host: str = '127.0.0.1'
    port: int = 8080

    def __str__(self) -> str:
        if ':' in self.host:
            return f"[{self.host}]:{self.port}"
        return f"{self.host}:{self.port}"


def _pack_length(value: int, field: str) -> bytes:
    if value < 0 or value > MAX_FIELD_VALUE:
        raise EncodingError(
            f"{field} {value} does not fit in a 32-bit length field"
        )
    return struct.pack(LENGTH_FORMAT, value)


@dataclass
class TransferHeader:
    """The fixed-shape prefix of a transfer request."""
    filename: str
    content_length: int

    def to_bytes(self) -> bytes:
        """Serialize the header to its wire form."""
        name_bytes = self.filename.encode('utf-8')
        return (
            _pack_length(len(name_bytes), 'filename length') +
            name_bytes +
            _pack_length(self.content_length, 'content length')
        )

    @classmethod
    async def from_reader(cls, reader: asyncio.StreamReader,
                          max_filename_length: Optional[int] = None) -> 'TransferHeader':
        """
        Read a header from a stream.

        Args:
            reader: Stream positioned at the start of a request
            max_filename_length: Reject longer filenames before reading them

        Raises:
            ShortReadError: The stream ended inside the header
            ProtocolDecodeError: The filename is too long or not UTF-8
        """
        try:
            length_bytes = await reader.readexactly(LENGTH_SIZE)
        except asyncio.IncompleteReadError as e:
            raise ShortReadError('filename length', LENGTH_SIZE, len(e.partial),
                                 clean=not e.partial) from None
        name_length = struct.unpack(LENGTH_FORMAT, length_bytes)[0]

        if max_filename_length is not None and name_length > max_filename_length:
            raise ProtocolDecodeError(
                f"Filename too long: {name_length} bytes "
                f"(limit {max_filename_length})"
            )

        try:
            name_bytes = await reader.readexactly(name_length)
        except asyncio.IncompleteReadError as e:
            raise ShortReadError('filename', name_length, len(e.partial)) from None

        try:
            filename = name_bytes.decode('utf-8')
        except UnicodeDecodeError as e:
            raise ProtocolDecodeError(f"Filename is not valid UTF-8: {e}") from None

        try:
            length_bytes = await reader.readexactly(LENGTH_SIZE)
        except asyncio.IncompleteReadError as e:
            raise ShortReadError('content length', LENGTH_SIZE, len(e.partial)) from None
        content_length = struct.unpack(LENGTH_FORMAT, length_bytes)[0]

        return cls(filename=filename, content_length=content_length)


def encode_header(name: str, content_length: int) -> bytes:
    """Encode the request header for ``name`` carrying ``content_length`` bytes."""
    return TransferHeader(name, content_length).to_bytes()


async def decode_header(reader: asyncio.StreamReader,
                        max_filename_length: Optional[int] = None) -> Tuple[str, int]:
    """Read one request header, returning ``(filename, content_length)``."""
    header = await TransferHeader.from_reader(reader, max_filename_length)
    return header.filename, header.content_length


class TransferConnection:
    """
    One end of a single-request transfer connection.

    Wraps an asyncio stream pair with exact reads, drained writes and an
    optional per-operation timeout. A connection carries exactly one request
    and is closed when it completes or fails.
    """

    def __init__(self, reader: asyncio.StreamReader,
                 writer: asyncio.StreamWriter,
                 timeout: Optional[float] = None):
        self.reader = reader
        self.writer = writer
        self.timeout = timeout
        self._closed = False

    @property
    def remote_address(self) -> Optional[Tuple[str, int]]:
        """Get remote peer address."""
        return self.writer.get_extra_info('peername')

    async def _with_timeout(self, coro):
        if self.timeout is None:
            return await coro
        return await asyncio.wait_for(coro, timeout=self.timeout)

    async def read_header(self, max_filename_length: Optional[int] = None) -> TransferHeader:
        """Read the request header from the peer."""
        return await self._with_timeout(
            TransferHeader.from_reader(self.reader, max_filename_length)
        )

    async def read_exactly(self, n: int) -> bytes:
        """
        Read exactly ``n`` bytes.

        Raises:
            asyncio.IncompleteReadError: The peer closed early
            asyncio.TimeoutError: No data within the timeout
        """
        return await self._with_timeout(self.reader.readexactly(n))

    async def write(self, data: bytes):
        """Write bytes and wait for the transport to accept them."""
        if self._closed:
            raise EndpointError("Connection closed")
        try:
            self.writer.write(data)
            await self._with_timeout(self.writer.drain())
        except (OSError, asyncio.TimeoutError) as e:
            reason = str(e) or 'timed out'
            raise EndpointError(f"Failed to send data: {reason}") from e

    async def close(self):
        """Close the connection. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        self.writer.close()
        try:
            await self.writer.wait_closed()
        except OSError as e:
            # Peer reset while closing; the transfer outcome is already decided
            logger.debug(f"Error while closing connection: {e}")


async def open_connection(endpoint: Endpoint,
                          timeout: Optional[float] = None) -> TransferConnection:
    """
    Connect to a transfer server.

    Raises:
        EndpointError: Connection refused, timed out or the host did not resolve
    """
    try:
        reader, writer = await asyncio.wait_for(
            asyncio.open_connection(endpoint.host, endpoint.port),
            timeout=timeout
        )
    except asyncio.TimeoutError:
        raise EndpointError(f"Timed out connecting to {endpoint}") from None
    except OSError as e:
        raise EndpointError(f"Failed to connect to {endpoint}: {e}") from e
    return TransferConnection(reader, writer, timeout=timeout)

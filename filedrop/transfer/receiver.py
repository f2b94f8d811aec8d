"""
Transfer Receiver

Reads one transfer request from an accepted connection and streams its
content into the upload storage.

Receive Flow:
1. Decode the header (nothing is created if this fails)
2. Reduce the filename to its base name
3. Create the destination file in the storage root
4. Copy exactly content_length bytes, chunk by chunk, as they arrive
5. Close the file and the connection
"""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

from .protocol import TransferConnection, check_chunk_size, DEFAULT_CHUNK_SIZE
from .progress import TransferProgress, ProgressCallback
from ..file.storage import UploadStorage, normalize_name
from ..errors import EndpointError, LocalIOError, TruncatedTransferError

logger = logging.getLogger(__name__)


@dataclass
class ReceivedFile:
    """Outcome of a completed receive."""
    filename: str
    path: Path
    bytes_written: int
    remote_address: Optional[Tuple[str, int]] = None


async def receive_file(reader: asyncio.StreamReader,
                       writer: asyncio.StreamWriter,
                       storage: UploadStorage,
                       chunk_size: int = DEFAULT_CHUNK_SIZE,
                       timeout: Optional[float] = None,
                       max_filename_length: Optional[int] = None,
                       progress_callback: ProgressCallback = None) -> ReceivedFile:
    """
    Receive one file over an accepted connection.

    The connection is closed before this returns, whatever the outcome.
    A truncated transfer leaves the partially written file on disk.

    Args:
        reader, writer: The accepted connection
        storage: Where the file is written
        chunk_size: Largest single read from the connection
        timeout: Per-read idle timeout in seconds (None waits forever)
        max_filename_length: Reject longer filenames in the header
        progress_callback: Called after every chunk written

    Returns:
        ReceivedFile describing the stored file

    Raises:
        ValueError: chunk_size is not a positive integer (nothing is read)
        ProtocolDecodeError: Malformed or truncated header
        TruncatedTransferError: The peer closed before all content arrived
        LocalIOError: The destination could not be created or written
        EndpointError: A read timed out
    """
    conn = TransferConnection(reader, writer, timeout=timeout)
    peer = conn.remote_address

    try:
        check_chunk_size(chunk_size)
        try:
            header = await conn.read_header(max_filename_length)
        except asyncio.TimeoutError:
            raise EndpointError(f"Timed out waiting for request header from {peer}") from None

        filename = normalize_name(header.filename)
        if filename != header.filename:
            logger.warning(f"Normalized uploaded name {header.filename!r} to {filename!r}")

        total = header.content_length
        logger.info(f"Receiving file: {filename} ({total:,} bytes) from {peer}")

        f = await storage.create(filename)
        path = storage.path_for(filename)
        progress = TransferProgress(filename=filename, total_bytes=total,
                                    direction='receive')
        written = 0

        try:
            while written < total:
                # Final chunk is sized to the remainder
                read_size = min(chunk_size, total - written)
                try:
                    chunk = await conn.read_exactly(read_size)
                except asyncio.IncompleteReadError as e:
                    # Keep what did arrive; the partial file stays on disk
                    if e.partial:
                        await _write_chunk(f, e.partial, path)
                        written += len(e.partial)
                    raise TruncatedTransferError(total, written, filename) from None
                except asyncio.TimeoutError:
                    raise EndpointError(
                        f"Timed out receiving {filename} after {written:,} of {total:,} bytes"
                    ) from None
                except ConnectionError as e:
                    raise TruncatedTransferError(total, written, filename) from e

                await _write_chunk(f, chunk, path)
                written += len(chunk)

                progress.transferred_bytes = written
                if progress_callback:
                    progress_callback(progress)
        finally:
            await f.close()

        if total == 0 and progress_callback:
            progress_callback(progress)

        logger.info(f"File received successfully: {path} ({written:,} bytes)")
        return ReceivedFile(filename=filename, path=path,
                            bytes_written=written, remote_address=peer)
    finally:
        await conn.close()


async def _write_chunk(f, data: bytes, path: Path):
    try:
        await f.write(data)
    except OSError as e:
        raise LocalIOError(f"Failed to write to {path}: {e}") from e

"""
Transfer Sender

Uploads one local file to a transfer server.

Send Flow:
1. Open the local file and capture its size once
2. Encode the header with the file's base name
3. Connect, write the header
4. Stream the body in bounded chunks until EOF or the declared size is reached
5. Close the connection
"""

import os
import logging
from pathlib import Path
from typing import Optional, Union

import aiofiles

from .protocol import (
    Endpoint, encode_header, open_connection, check_chunk_size, DEFAULT_CHUNK_SIZE
)
from .progress import TransferProgress, ProgressCallback
from ..errors import LocalIOError, TruncatedTransferError

logger = logging.getLogger(__name__)


async def send_file(local_path: Union[str, Path],
                    endpoint: Endpoint,
                    chunk_size: int = DEFAULT_CHUNK_SIZE,
                    timeout: Optional[float] = None,
                    progress_callback: ProgressCallback = None) -> int:
    """
    Send a file to the server at ``endpoint``.

    The size is read once when the file is opened. A file that grows while
    it is being sent is cut off at that size; one that shrinks produces a
    TruncatedTransferError after the connection is closed.

    Args:
        local_path: File to upload; only its base name is transmitted
        endpoint: Server address
        chunk_size: Largest single read from the file
        timeout: Connect and per-write timeout in seconds (None waits forever)
        progress_callback: Called after every chunk sent

    Returns:
        Number of content bytes sent

    Raises:
        ValueError: chunk_size is not a positive integer
        FileNotFoundError, PermissionError: The file cannot be opened
        EncodingError: The name or size does not fit the header
        EndpointError: Connecting or sending failed
        LocalIOError: Reading the file failed
        TruncatedTransferError: The file ended before the declared size
    """
    check_chunk_size(chunk_size)
    local_path = Path(local_path)
    name = local_path.name

    async with aiofiles.open(local_path, 'rb') as f:
        total = os.fstat(f.fileno()).st_size
        header = encode_header(name, total)

        conn = await open_connection(endpoint, timeout=timeout)
        logger.debug(f"Connected to {endpoint}")

        progress = TransferProgress(filename=name, total_bytes=total,
                                    direction='send')
        sent = 0
        try:
            await conn.write(header)
            logger.info(f"Sending file: {name} ({total:,} bytes) to {endpoint}")

            while sent < total:
                try:
                    chunk = await f.read(min(chunk_size, total - sent))
                except OSError as e:
                    raise LocalIOError(f"Failed to read from {local_path}: {e}") from e
                if not chunk:
                    break

                await conn.write(chunk)
                sent += len(chunk)

                progress.transferred_bytes = sent
                if progress_callback:
                    progress_callback(progress)
        finally:
            await conn.close()

    if sent < total:
        raise TruncatedTransferError(total, sent, name)

    if total == 0 and progress_callback:
        progress_callback(progress)

    logger.info(f"File sent successfully: {name} ({sent:,} bytes)")
    return sent

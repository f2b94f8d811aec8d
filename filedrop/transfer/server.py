"""
Transfer Server

Design Decision: Connection Handling
====================================

Options Considered:
1. Handle connections one at a time in the accept loop
   - Simplest
   - One slow upload blocks every other client

2. Thread per connection
   - Works with blocking sockets
   - Each idle connection holds an OS thread

3. asyncio task per connection
   - Lightweight enough to start one per connection
   - File I/O has to be offloaded (aiofiles) to keep the loop responsive

Decision: asyncio task per connection
- asyncio.start_server spawns a task for every accepted connection
- The acceptor never awaits those tasks; each one logs its own outcome
- No limit on concurrent connections and no backpressure
- Two uploads with the same name race; the last writer's bytes win
"""

import asyncio
import logging
from typing import Optional, Tuple

from .protocol import Endpoint, check_chunk_size, DEFAULT_CHUNK_SIZE
from .progress import ProgressCallback
from .receiver import receive_file
from ..file.storage import UploadStorage
from ..errors import (
    EndpointError, LocalIOError, ProtocolDecodeError, ShortReadError,
    TruncatedTransferError,
)

logger = logging.getLogger(__name__)


class TransferServer:
    """
    TCP server that accepts uploads into an UploadStorage.

    Every connection carries exactly one file and is handled by its own task.
    """

    def __init__(self, storage: UploadStorage,
                 endpoint: Endpoint = None,
                 chunk_size: int = DEFAULT_CHUNK_SIZE,
                 timeout: Optional[float] = None,
                 max_filename_length: Optional[int] = None,
                 progress_callback: ProgressCallback = None):
        self.storage = storage
        self.endpoint = endpoint or Endpoint()
        self.chunk_size = check_chunk_size(chunk_size)
        self.timeout = timeout
        self.max_filename_length = max_filename_length
        self.progress_callback = progress_callback
        self.server: Optional[asyncio.AbstractServer] = None

        # Statistics
        self.files_received = 0
        self.bytes_received = 0
        self.transfers_failed = 0
        self.active_transfers = 0
        self.connections_handled = 0

    @property
    def is_running(self) -> bool:
        return self.server is not None and self.server.is_serving()

    @property
    def address(self) -> Optional[Tuple[str, int]]:
        """Bound (host, port); resolves port 0 to the real port."""
        if not self.server or not self.server.sockets:
            return None
        return self.server.sockets[0].getsockname()[:2]

    async def start(self):
        """
        Bind the listener and start accepting connections.

        Raises:
            EndpointError: The address could not be bound
        """
        try:
            self.server = await asyncio.start_server(
                self._handle_connection,
                self.endpoint.host,
                self.endpoint.port
            )
        except OSError as e:
            raise EndpointError(f"Failed to start server on {self.endpoint}: {e}") from e

        logger.info(f"Server listening on {self.address}")

    async def serve_forever(self):
        """Start if needed and accept connections until cancelled."""
        if self.server is None:
            await self.start()
        await self.server.serve_forever()

    async def stop(self):
        """Stop accepting connections."""
        if self.server:
            self.server.close()
            await self.server.wait_closed()
            logger.info(f"Server stopped. Received {self.files_received} files, "
                        f"{self.bytes_received:,} bytes, "
                        f"{self.transfers_failed} failed")

    async def _handle_connection(self, reader: asyncio.StreamReader,
                                 writer: asyncio.StreamWriter):
        """Handle an incoming connection."""
        peer = writer.get_extra_info('peername')
        logger.info(f"New connection from {peer}")
        self.active_transfers += 1

        try:
            received = await receive_file(
                reader, writer, self.storage,
                chunk_size=self.chunk_size,
                timeout=self.timeout,
                max_filename_length=self.max_filename_length,
                progress_callback=self.progress_callback,
            )
            self.files_received += 1
            self.bytes_received += received.bytes_written

        except ShortReadError as e:
            if e.clean:
                logger.debug(f"Connection from {peer} closed without a request")
            else:
                self.transfers_failed += 1
                logger.warning(f"Malformed request from {peer}: {e}")
        except (ProtocolDecodeError, TruncatedTransferError) as e:
            self.transfers_failed += 1
            logger.warning(f"Transfer from {peer} failed: {e}")
        except (LocalIOError, EndpointError) as e:
            self.transfers_failed += 1
            logger.error(f"Transfer from {peer} failed: {e}")
        except Exception as e:
            self.transfers_failed += 1
            logger.exception(f"Error handling connection from {peer}: {e}")
        finally:
            self.active_transfers -= 1
            self.connections_handled += 1
            logger.debug(f"Connection closed: {peer}")

    def get_stats(self) -> dict:
        """Get server statistics."""
        return {
            'files_received': self.files_received,
            'bytes_received': self.bytes_received,
            'transfers_failed': self.transfers_failed,
            'active_transfers': self.active_transfers,
            'connections_handled': self.connections_handled,
            'storage_dir': str(self.storage.root),
            'address': self.address,
        }

"""
Upload Storage

Design Decision: Storage Layout
===============================

Options Considered:
1. Keep the client-supplied relative path
   - Preserves structure
   - Any "../" segment escapes the storage root

2. Content-addressed names (hash of the content)
   - Deduplicates
   - Needs an index to map hashes back to names

3. Flat directory keyed by base name
   - Nothing to index, easy to inspect by hand
   - Repeated names overwrite each other

Decision: Flat directory keyed by base name
- Every directory component of the uploaded name is stripped, so the
  destination is always a direct child of the storage root
- A repeated name overwrites the previous upload (last writer wins, no locking)
- No manifest or metadata sidecar

Storage Layout:
```
server-storage/
├── car.jpg
└── report.pdf
```
"""

import logging
from pathlib import Path
from typing import List

import aiofiles
import aiofiles.os

from ..errors import LocalIOError, ProtocolDecodeError

logger = logging.getLogger(__name__)


def normalize_name(name: str) -> str:
    """
    Reduce an uploaded filename to its final path component.

    ``../../etc/passwd`` becomes ``passwd``; ``dir\\file.txt`` becomes
    ``file.txt``. Trailing separators are ignored, as ``os.path.basename``
    of a directory path would otherwise be empty.

    Raises:
        ProtocolDecodeError: Nothing usable is left after stripping
    """
    if '\x00' in name:
        raise ProtocolDecodeError(f"Filename contains a NUL byte: {name!r}")

    # Both separators count, whatever the host platform
    normalized = name.replace('\\', '/').rstrip('/').rsplit('/', 1)[-1]

    if normalized in ('', '.', '..'):
        raise ProtocolDecodeError(f"Filename has no usable base name: {name!r}")
    return normalized


class UploadStorage:
    """
    Flat on-disk store for received files.

    Provides:
    - Base-name normalization of uploaded names
    - Lazy creation of the storage root
    - Truncate-or-create of destination files
    """

    def __init__(self, root: Path):
        """
        Initialize upload storage.

        Args:
            root: Directory received files are written into. Created on
                first use, not here.
        """
        self.root = Path(root)

    def path_for(self, name: str) -> Path:
        """Get the destination path for an uploaded name."""
        return self.root / normalize_name(name)

    async def ensure_root(self):
        """Create the storage root (and parents) if missing."""
        try:
            await aiofiles.os.makedirs(self.root, exist_ok=True)
        except OSError as e:
            raise LocalIOError(
                f"Failed to create storage directory {self.root}: {e}"
            ) from e

    async def create(self, name: str):
        """
        Open the destination file for ``name``, truncating any previous upload.

        Returns:
            An aiofiles binary file handle; use it as an async context manager
        """
        await self.ensure_root()
        path = self.path_for(name)
        try:
            handle = await aiofiles.open(path, 'wb')
        except OSError as e:
            raise LocalIOError(f"Failed to create file {path}: {e}") from e
        logger.debug(f"Created {path}")
        return handle

    def list_files(self) -> List[Path]:
        """List stored files, sorted by name."""
        if not self.root.is_dir():
            return []
        return sorted(p for p in self.root.iterdir() if p.is_file())

"""
Transfer Progress

Snapshot of a single transfer handed to progress callbacks after every chunk.
"""

import time
from dataclasses import dataclass, field
from typing import Callable


@dataclass
class TransferProgress:
    """Track bytes moved for one transfer."""
    filename: str
    total_bytes: int
    direction: str = 'send'  # 'send', 'receive'
    transferred_bytes: int = 0
    start_time: float = field(default_factory=time.time)
    # Last milestone a progress sink reported for this transfer (-1: none yet)
    logged_milestone: int = field(default=-1, repr=False, compare=False)

    @property
    def progress(self) -> float:
        """Progress as 0.0 to 1.0."""
        if self.total_bytes == 0:
            return 1.0
        return self.transferred_bytes / self.total_bytes

    @property
    def progress_percent(self) -> float:
        """Progress as percentage."""
        return self.progress * 100

    @property
    def complete(self) -> bool:
        return self.transferred_bytes >= self.total_bytes

    @property
    def elapsed_seconds(self) -> float:
        """Time elapsed since start."""
        return time.time() - self.start_time

    @property
    def speed_bytes_per_sec(self) -> float:
        """Transfer speed in bytes/second."""
        elapsed = self.elapsed_seconds
        if elapsed == 0:
            return 0
        return self.transferred_bytes / elapsed

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'filename': self.filename,
            'direction': self.direction,
            'total_bytes': self.total_bytes,
            'transferred_bytes': self.transferred_bytes,
            'progress_percent': self.progress_percent,
            'speed_bytes_per_sec': self.speed_bytes_per_sec,
            'elapsed_seconds': self.elapsed_seconds,
        }


# Progress callback type
ProgressCallback = Callable[[TransferProgress], None]

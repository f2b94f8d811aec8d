"""
File Module - Upload Storage

Handles where received files land on disk.
"""

from .storage import UploadStorage, normalize_name

__all__ = [
    'UploadStorage',
    'normalize_name',
]

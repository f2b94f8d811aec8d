"""
filedrop - Point-to-point file upload over TCP

A server accepts connections and stores each uploaded file; a client uploads
one file per connection.
"""

from .errors import (
    TransferError, EndpointError, ProtocolDecodeError, ShortReadError,
    TruncatedTransferError, LocalIOError, EncodingError,
)
from .file import UploadStorage
from .transfer import Endpoint, TransferServer, send_file, receive_file

__version__ = '0.1.0'

__all__ = [
    'TransferError',
    'EndpointError',
    'ProtocolDecodeError',
    'ShortReadError',
    'TruncatedTransferError',
    'LocalIOError',
    'EncodingError',
    'UploadStorage',
    'Endpoint',
    'TransferServer',
    'send_file',
    'receive_file',
]

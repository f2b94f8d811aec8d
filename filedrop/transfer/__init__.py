"""
Transfer Module - File Upload over TCP

Wire codec, sender, receiver and the accepting server.
"""

from .protocol import (
    Endpoint, TransferHeader, TransferConnection,
    encode_header, decode_header, open_connection,
)
from .progress import TransferProgress, ProgressCallback
from .sender import send_file
from .receiver import receive_file, ReceivedFile
from .server import TransferServer

__all__ = [
    'Endpoint',
    'TransferHeader',
    'TransferConnection',
    'encode_header',
    'decode_header',
    'open_connection',
    'TransferProgress',
    'ProgressCallback',
    'send_file',
    'receive_file',
    'ReceivedFile',
    'TransferServer',
]

"""
Unit tests for the request header codec.
"""

import asyncio
import struct
import unittest

from filedrop.errors import EncodingError, ProtocolDecodeError, ShortReadError
from filedrop.transfer.protocol import (
    DEFAULT_CHUNK_SIZE, Endpoint, TransferHeader, check_chunk_size, decode_header,
    encode_header,
)


def make_reader(data: bytes) -> asyncio.StreamReader:
    """A stream that yields `data` and then ends."""
    reader = asyncio.StreamReader()
    reader.feed_data(data)
    reader.feed_eof()
    return reader


class TestEncodeHeader(unittest.TestCase):
    """Wire layout of encoded headers."""

    def test_layout_matches_wire_format(self):
        header = encode_header('car.jpg', 3)
        self.assertEqual(
            header,
            b'\x00\x00\x00\x07' + b'car.jpg' + b'\x00\x00\x00\x03'
        )

    def test_length_counts_utf8_bytes_not_characters(self):
        header = encode_header('café.txt', 0)
        name_bytes = 'café.txt'.encode('utf-8')
        self.assertEqual(struct.unpack('>I', header[:4])[0], len(name_bytes))
        self.assertEqual(header[4:4 + len(name_bytes)], name_bytes)

    def test_big_endian_content_length(self):
        header = encode_header('a', 0x01020304)
        self.assertEqual(header[-4:], b'\x01\x02\x03\x04')

    def test_content_length_limits(self):
        encode_header('a', 0xFFFFFFFF)
        with self.assertRaises(EncodingError):
            encode_header('a', 0x100000000)
        with self.assertRaises(EncodingError):
            encode_header('a', -1)

    def test_encoding_error_is_value_error(self):
        with self.assertRaises(ValueError):
            TransferHeader('a', 2 ** 40).to_bytes()


class TestDecodeHeader(unittest.IsolatedAsyncioTestCase):
    """Reading headers back from a stream."""

    async def test_round_trip(self):
        for name, length in [('car.jpg', 3), ('', 0), ('名前.bin', 4096),
                             ('x' * 1000, 0xFFFFFFFF)]:
            reader = make_reader(encode_header(name, length))
            self.assertEqual(await decode_header(reader), (name, length))

    async def test_leaves_content_unread(self):
        reader = make_reader(encode_header('car.jpg', 3) + b'\x01\x02\x03')
        header = await TransferHeader.from_reader(reader)
        self.assertEqual(header, TransferHeader('car.jpg', 3))
        self.assertEqual(await reader.read(), b'\x01\x02\x03')

    async def test_every_truncated_prefix_fails(self):
        full = encode_header('car.jpg', 3)
        for cut in range(len(full)):
            with self.subTest(cut=cut):
                with self.assertRaises(ShortReadError):
                    await decode_header(make_reader(full[:cut]))

    async def test_empty_stream_is_clean_close(self):
        with self.assertRaises(ShortReadError) as ctx:
            await decode_header(make_reader(b''))
        self.assertTrue(ctx.exception.clean)
        self.assertEqual(ctx.exception.received, 0)

    async def test_partial_stream_is_truncation(self):
        full = encode_header('car.jpg', 3)

        with self.assertRaises(ShortReadError) as ctx:
            await decode_header(make_reader(full[:2]))
        self.assertFalse(ctx.exception.clean)
        self.assertEqual(ctx.exception.field, 'filename length')

        with self.assertRaises(ShortReadError) as ctx:
            await decode_header(make_reader(full[:6]))
        self.assertFalse(ctx.exception.clean)
        self.assertEqual(ctx.exception.field, 'filename')
        self.assertEqual((ctx.exception.expected, ctx.exception.received), (7, 2))

        with self.assertRaises(ShortReadError) as ctx:
            await decode_header(make_reader(full[:12]))
        self.assertEqual(ctx.exception.field, 'content length')

    async def test_invalid_utf8_filename(self):
        data = struct.pack('>I', 2) + b'\xff\xfe' + struct.pack('>I', 0)
        with self.assertRaises(ProtocolDecodeError):
            await decode_header(make_reader(data))

    async def test_filename_limit(self):
        data = encode_header('x' * 100, 0)
        with self.assertRaises(ProtocolDecodeError) as ctx:
            await decode_header(make_reader(data), max_filename_length=99)
        self.assertNotIsInstance(ctx.exception, ShortReadError)

        name, _ = await decode_header(make_reader(data), max_filename_length=100)
        self.assertEqual(name, 'x' * 100)


class TestCheckChunkSize(unittest.TestCase):

    def test_positive_sizes_pass_through(self):
        self.assertEqual(check_chunk_size(1), 1)
        self.assertEqual(check_chunk_size(DEFAULT_CHUNK_SIZE), DEFAULT_CHUNK_SIZE)

    def test_rejects_unusable_sizes(self):
        for value in (0, -1, 1.5, '4096', True):
            with self.subTest(value=value):
                with self.assertRaises(ValueError):
                    check_chunk_size(value)


class TestEndpoint(unittest.TestCase):

    def test_defaults(self):
        self.assertEqual(Endpoint(), Endpoint('127.0.0.1', 8080))

    def test_str(self):
        self.assertEqual(str(Endpoint('10.0.0.5', 9000)), '10.0.0.5:9000')
        self.assertEqual(str(Endpoint('::1', 8080)), '[::1]:8080')


if __name__ == '__main__':
    unittest.main()

"""
Unit tests for configuration loading.
"""

import json
import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from filedrop.config import Config, load_config
from filedrop.transfer.protocol import Endpoint


class TestConfig(unittest.TestCase):

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)

    def tearDown(self):
        self._tmp.cleanup()

    def test_defaults(self):
        config = Config()
        self.assertEqual(config.endpoint, Endpoint('127.0.0.1', 8080))
        self.assertEqual(config.storage_dir, Path('server-storage'))
        self.assertEqual(config.source_dir, Path('client-storage'))
        self.assertEqual(config.chunk_size, 4096)
        self.assertEqual(config.timeout, 30.0)

    def test_non_positive_timeout_disables(self):
        config = Config(transfer_timeout=0)
        self.assertIsNone(config.timeout)

    def test_from_file(self):
        path = self.tmp / 'config.json'
        path.write_text(json.dumps({'port': 9000, 'storage_dir': 'uploads',
                                    'chunk_size': 65536}))

        config = Config.from_file(path)

        self.assertEqual(config.port, 9000)
        self.assertEqual(config.storage_dir, Path('uploads'))
        self.assertEqual(config.chunk_size, 65536)
        self.assertEqual(config.host, '127.0.0.1')

    def test_missing_file_gives_defaults(self):
        self.assertEqual(Config.from_file(self.tmp / 'nope.json'), Config())

    def test_save_and_reload(self):
        path = self.tmp / 'config.json'
        Config(host='0.0.0.0', port=7000, transfer_timeout=5.0).save(path)

        config = Config.from_file(path)

        self.assertEqual(config.host, '0.0.0.0')
        self.assertEqual(config.port, 7000)
        self.assertEqual(config.transfer_timeout, 5.0)

    @patch.dict(os.environ, {'FILEDROP_PORT': '9100', 'FILEDROP_STORAGE_DIR': '/srv/drop'})
    def test_env_overrides_file(self):
        path = self.tmp / 'config.json'
        path.write_text(json.dumps({'port': 9000, 'host': '10.0.0.1'}))

        with patch('filedrop.config.load_dotenv'):
            config = load_config(path)

        self.assertEqual(config.port, 9100)
        self.assertEqual(config.storage_dir, Path('/srv/drop'))
        self.assertEqual(config.host, '10.0.0.1')

    @patch.dict(os.environ, {'FILEDROP_CHUNK_SIZE': '0'})
    def test_env_rejects_zero_chunk_size(self):
        with patch('filedrop.config.load_dotenv'):
            with self.assertRaises(ValueError):
                Config.from_env()

    def test_file_rejects_non_positive_chunk_size(self):
        path = self.tmp / 'config.json'
        for chunk_size in (0, -1):
            with self.subTest(chunk_size=chunk_size):
                path.write_text(json.dumps({'chunk_size': chunk_size}))
                with self.assertRaises(ValueError):
                    Config.from_file(path)


if __name__ == '__main__':
    unittest.main()

"""
Configuration Management

Handles loading configuration from environment variables and config files.
"""

import os
from pathlib import Path
from dataclasses import dataclass, field
from typing import Optional
import json

from dotenv import load_dotenv

from filedrop.transfer.protocol import Endpoint, DEFAULT_CHUNK_SIZE, check_chunk_size


@dataclass
class Config:
    """
    filedrop Configuration.

    Configuration priority (highest to lowest):
    1. Environment variables (FILEDROP_*)
    2. Config file (config.json)
    3. Default values
    """
    # Network
    host: str = '127.0.0.1'
    port: int = 8080

    # Storage
    storage_dir: Path = field(default_factory=lambda: Path('server-storage'))
    source_dir: Path = field(default_factory=lambda: Path('client-storage'))

    # Transfer
    chunk_size: int = DEFAULT_CHUNK_SIZE
    max_filename_length: int = 4096

    # Per-operation idle timeout (seconds); 0 or less disables
    transfer_timeout: float = 30.0

    # Logging
    log_level: str = 'INFO'

    @property
    def endpoint(self) -> Endpoint:
        return Endpoint(host=self.host, port=self.port)

    @property
    def timeout(self) -> Optional[float]:
        """transfer_timeout as passed to the transfer functions."""
        if self.transfer_timeout <= 0:
            return None
        return self.transfer_timeout

    @classmethod
    def from_env(cls) -> 'Config':
        """Load configuration from environment variables."""
        load_dotenv()

        config = cls()

        # Network
        config.host = os.getenv('FILEDROP_HOST', config.host)
        config.port = int(os.getenv('FILEDROP_PORT', config.port))

        # Storage
        storage_dir = os.getenv('FILEDROP_STORAGE_DIR')
        if storage_dir:
            config.storage_dir = Path(storage_dir)
        source_dir = os.getenv('FILEDROP_SOURCE_DIR')
        if source_dir:
            config.source_dir = Path(source_dir)

        # Transfer
        config.chunk_size = int(os.getenv('FILEDROP_CHUNK_SIZE', config.chunk_size))
        config.max_filename_length = int(
            os.getenv('FILEDROP_MAX_FILENAME_LENGTH', config.max_filename_length)
        )
        config.transfer_timeout = float(
            os.getenv('FILEDROP_TRANSFER_TIMEOUT', config.transfer_timeout)
        )

        # Logging
        config.log_level = os.getenv('FILEDROP_LOG_LEVEL', config.log_level)

        check_chunk_size(config.chunk_size)
        return config

    @classmethod
    def from_file(cls, path: Path) -> 'Config':
        """Load configuration from a JSON file."""
        if not path.exists():
            return cls()

        with open(path) as f:
            data = json.load(f)

        config = cls()

        # Network
        config.host = data.get('host', config.host)
        config.port = data.get('port', config.port)

        # Storage
        if 'storage_dir' in data:
            config.storage_dir = Path(data['storage_dir'])
        if 'source_dir' in data:
            config.source_dir = Path(data['source_dir'])

        # Transfer
        config.chunk_size = data.get('chunk_size', config.chunk_size)
        config.max_filename_length = data.get(
            'max_filename_length', config.max_filename_length
        )
        config.transfer_timeout = data.get('transfer_timeout', config.transfer_timeout)

        # Logging
        config.log_level = data.get('log_level', config.log_level)

        check_chunk_size(config.chunk_size)
        return config

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            'host': self.host,
            'port': self.port,
            'storage_dir': str(self.storage_dir),
            'source_dir': str(self.source_dir),
            'chunk_size': self.chunk_size,
            'max_filename_length': self.max_filename_length,
            'transfer_timeout': self.transfer_timeout,
            'log_level': self.log_level,
        }

    def save(self, path: Path):
        """Save configuration to a JSON file."""
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)


def load_config(config_path: Optional[Path] = None) -> Config:
    """
    Load configuration from file and environment.

    Environment variables override file settings.
    """
    # Start with defaults
    config = Config()

    # Load from file if provided
    if config_path and config_path.exists():
        config = Config.from_file(config_path)

    # Override with environment variables
    env_config = Config.from_env()

    # Merge (env takes precedence for non-default values)
    defaults = Config()
    for key in ['host', 'port', 'storage_dir', 'source_dir', 'chunk_size',
                'max_filename_length', 'transfer_timeout', 'log_level']:
        env_val = getattr(env_config, key)
        if env_val != getattr(defaults, key):
            setattr(config, key, env_val)

    return config


# Example config file template
EXAMPLE_CONFIG = """
{
  "host": "127.0.0.1",
  "port": 8080,
  "storage_dir": "server-storage",
  "source_dir": "client-storage",
  "chunk_size": 4096,
  "max_filename_length": 4096,
  "transfer_timeout": 30.0,
  "log_level": "INFO"
}
"""


if __name__ == "__main__":
    print("Example configuration file (config.json):")
    print(EXAMPLE_CONFIG)

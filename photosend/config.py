"""
Configuration Management

Handles loading configuration from environment variables and config files.
"""

import os
from pathlib import Path
from dataclasses import dataclass, field
from typing import Optional
import json

from dotenv import find_dotenv, load_dotenv

from .transfer.endpoint import Endpoint, DEFAULT_HOST, DEFAULT_PORT
from .transfer.worker import CHUNK_SIZE, DEFAULT_CONNECT_TIMEOUT


@dataclass
class Config:
    """
    photosend configuration.

    Configuration priority (highest to lowest):
    1. Environment variables (PHOTOSEND_*)
    2. Config file (config.json)
    3. Default values
    """
    # Sending
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    chunk_size: int = CHUNK_SIZE
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT

    # Receiving
    listen_host: str = '0.0.0.0'
    listen_port: int = DEFAULT_PORT
    output_dir: Path = field(default_factory=lambda: Path('./received'))

    # Logging
    log_level: str = 'INFO'

    @classmethod
    def from_env(cls) -> 'Config':
        """Load configuration from environment variables."""
        load_dotenv(find_dotenv(usecwd=True))

        config = cls()

        # Sending
        config.host = os.getenv('PHOTOSEND_HOST', config.host)
        config.port = int(os.getenv('PHOTOSEND_PORT', config.port))
        config.chunk_size = int(os.getenv('PHOTOSEND_CHUNK_SIZE', config.chunk_size))
        config.connect_timeout = float(
            os.getenv('PHOTOSEND_CONNECT_TIMEOUT', config.connect_timeout)
        )

        # Receiving
        config.listen_host = os.getenv('PHOTOSEND_LISTEN_HOST', config.listen_host)
        config.listen_port = int(os.getenv('PHOTOSEND_LISTEN_PORT', config.listen_port))
        output_dir = os.getenv('PHOTOSEND_OUTPUT_DIR')
        if output_dir:
            config.output_dir = Path(output_dir)

        # Logging
        config.log_level = os.getenv('PHOTOSEND_LOG_LEVEL', config.log_level)

        return config

    @classmethod
    def from_file(cls, path: Path) -> 'Config':
        """Load configuration from a JSON file."""
        if not path.exists():
            return cls()

        with open(path) as f:
            data = json.load(f)

        config = cls()

        # Sending
        config.host = str(data.get('host', config.host))
        config.port = int(data.get('port', config.port))
        config.chunk_size = int(data.get('chunk_size', config.chunk_size))
        config.connect_timeout = float(data.get('connect_timeout', config.connect_timeout))

        # Receiving
        config.listen_host = str(data.get('listen_host', config.listen_host))
        config.listen_port = int(data.get('listen_port', config.listen_port))
        if 'output_dir' in data:
            config.output_dir = Path(data['output_dir'])

        # Logging
        config.log_level = data.get('log_level', config.log_level)

        return config

    def endpoint(self) -> Endpoint:
        """The configured destination."""
        return Endpoint(host=self.host, port=self.port)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            'host': self.host,
            'port': self.port,
            'chunk_size': self.chunk_size,
            'connect_timeout': self.connect_timeout,
            'listen_host': self.listen_host,
            'listen_port': self.listen_port,
            'output_dir': str(self.output_dir),
            'log_level': self.log_level,
        }


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
    for key in config.to_dict():
        env_val = getattr(env_config, key)
        if env_val != getattr(defaults, key):
            setattr(config, key, env_val)

    return config


# Example config file template
EXAMPLE_CONFIG = """
{
  "host": "192.168.1.1",
  "port": 49000,
  "chunk_size": 1000,
  "connect_timeout": 10.0,
  "listen_host": "0.0.0.0",
  "listen_port": 49000,
  "output_dir": "./received",
  "log_level": "INFO"
}
"""

"""
Environment-driven settings.

Values are read once at import; tests override them with monkeypatch and
the helper functions below re-read the environment on each call.
"""

import os
from enum import Enum
from typing import List

from dotenv import load_dotenv

load_dotenv()


class SchemaMode(Enum):
    """Contract enforcement mode."""
    WARN = "warn"      # Log violations, don't fail
    STRICT = "strict"  # Reject invalid requests


def get_default_mode() -> SchemaMode:
    """Get schema mode from environment."""
    mode = os.environ.get('CONTRACT_MODE', 'strict').lower()
    return SchemaMode.WARN if mode == 'warn' else SchemaMode.STRICT


def _split_servers(raw: str) -> List[str]:
    return [url.strip() for url in raw.split(",") if url.strip()]


class Config:
    OPENAPI_VERSION = os.getenv('OPENAPI_VERSION', '3.0.3')
    OPENAPI_TITLE = os.getenv('OPENAPI_TITLE', 'API')
    OPENAPI_API_VERSION = os.getenv('OPENAPI_API_VERSION', '1.0.0')
    OPENAPI_DESCRIPTION = os.getenv('OPENAPI_DESCRIPTION', '')
    OPENAPI_SERVERS = _split_servers(os.getenv('OPENAPI_SERVERS', ''))

    @classmethod
    def from_env(cls) -> "Config":
        """Re-read settings from the current environment."""
        config = cls()
        config.OPENAPI_VERSION = os.getenv('OPENAPI_VERSION', '3.0.3')
        config.OPENAPI_TITLE = os.getenv('OPENAPI_TITLE', 'API')
        config.OPENAPI_API_VERSION = os.getenv('OPENAPI_API_VERSION', '1.0.0')
        config.OPENAPI_DESCRIPTION = os.getenv('OPENAPI_DESCRIPTION', '')
        config.OPENAPI_SERVERS = _split_servers(os.getenv('OPENAPI_SERVERS', ''))
        return config

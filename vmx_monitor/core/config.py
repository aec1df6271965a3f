"""
Application configuration manager.
Stores settings in a JSON file under the app support directory.
"""

import json
import logging
import os
from pathlib import Path

from vmx_monitor.core.constants import (
    CONFIG_PATH, DEFAULT_API_URL, API_URL_ENV, DEFAULT_EXPORT_ROOT,
    REQUEST_TIMEOUT_SEC,
)

# Validation bounds
_TIMEOUT_MIN = 1
_TIMEOUT_MAX = 120

logger = logging.getLogger(__name__)

_DEFAULTS = {
    'api_url': DEFAULT_API_URL,
    'request_timeout_sec': REQUEST_TIMEOUT_SEC,
    'last_directory_name': '',
    'export_root': str(DEFAULT_EXPORT_ROOT),
}


class AppConfig:
    """Manages application configuration stored as JSON."""

    def __init__(self, config_path: Path | None = None):
        self.path = config_path or CONFIG_PATH
        self._data: dict = {}
        self.load()

    def load(self):
        """Load config from disk, merging with defaults."""
        self._data = dict(_DEFAULTS)
        env_url = os.environ.get(API_URL_ENV)
        if env_url:
            self._data['api_url'] = self._validate('api_url', env_url)
        if self.path.exists():
            try:
                with open(self.path, 'r') as f:
                    saved = json.load(f)
                for key, value in saved.items():
                    if key in _DEFAULTS:
                        self._data[key] = self._validate(key, value)
            except Exception as e:
                logger.warning("Failed to load config: %s", e)

    def save(self):
        """Persist config to disk."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, 'w') as f:
            json.dump(self._data, f, indent=2)

    def get(self, key: str, default=None):
        return self._data.get(key, default)

    def set(self, key: str, value):
        value = self._validate(key, value)
        self._data[key] = value
        self.save()

    def _validate(self, key: str, value):
        """Validate and coerce config values to safe ranges."""
        if key == 'api_url':
            value = normalize_api_url(value)
            if not is_valid_api_url(value):
                logger.warning("Invalid api_url %r — using default", value)
                return DEFAULT_API_URL
            return value

        if key == 'request_timeout_sec':
            try:
                value = int(value)
            except (TypeError, ValueError):
                logger.warning("Invalid request_timeout_sec %r — using default", value)
                return REQUEST_TIMEOUT_SEC
            return max(_TIMEOUT_MIN, min(_TIMEOUT_MAX, value))

        if key == 'last_directory_name':
            return str(value or '')

        return value

    def as_dict(self) -> dict:
        return dict(self._data)

    @property
    def api_url(self) -> str:
        return self._data.get('api_url', DEFAULT_API_URL)

    @api_url.setter
    def api_url(self, value: str):
        self.set('api_url', value)

    @property
    def request_timeout_sec(self) -> int:
        return self._data.get('request_timeout_sec', REQUEST_TIMEOUT_SEC)

    @property
    def last_directory_name(self) -> str:
        return self._data.get('last_directory_name', '')

    @last_directory_name.setter
    def last_directory_name(self, value: str):
        self.set('last_directory_name', value)

    @property
    def export_root(self) -> str:
        return self._data.get('export_root', str(DEFAULT_EXPORT_ROOT))

    @export_root.setter
    def export_root(self, value: str):
        self._data['export_root'] = value
        self.save()


def normalize_api_url(value) -> str:
    return str(value or '').strip().rstrip('/')


def is_valid_api_url(value: str) -> bool:
    """True for an absolute http(s) URL with a host part."""
    value = normalize_api_url(value)
    for scheme in ('http://', 'https://'):
        if value.startswith(scheme) and len(value) > len(scheme):
            return True
    return False

"""
Application configuration manager.
Defaults, overlaid by an optional JSON file, overlaid by environment
variables. Every value passes through _validate.
"""

import os
import json
import logging
from pathlib import Path

from app.core.constants import (
    CONFIG_ENV_VAR, DEFAULT_PORT, DEFAULT_WORK_DIR, DEFAULT_COOKIES_PATH,
    DeliveryMode, FetchClient, FetchMode, FETCH_CLIENTS,
    FETCH_TIMEOUT_SEC, RENDER_TIMEOUT_SEC, MAX_OUTPUT_BYTES,
    ARTIFACT_TTL_SEC, SWEEP_INTERVAL_SEC,
)
from app.core.models import FetchStrategy

logger = logging.getLogger(__name__)

# Validation bounds (seconds unless noted)
_BOUNDS = {
    'fetch_timeout_sec': (10, 3600),
    'render_timeout_sec': (10, 3600),
    'artifact_ttl_sec': (30, 24 * 3600),
    'sweep_interval_sec': (1, 3600),
    'max_output_bytes': (64 * 1024, 1024 * 1024 * 1024),
    'port': (1, 65535),
}

_DEFAULTS = {
    'port': DEFAULT_PORT,
    'work_dir': str(DEFAULT_WORK_DIR),
    'delivery_mode': DeliveryMode.INLINE,
    'fetch_client': FetchClient.MWEB,
    'fetch_mode': FetchMode.SECTIONS,
    'cookies_path': str(DEFAULT_COOKIES_PATH),
    'cookies_content': None,
    'cookies_url': None,
    'fetch_timeout_sec': FETCH_TIMEOUT_SEC,
    'render_timeout_sec': RENDER_TIMEOUT_SEC,
    'max_output_bytes': MAX_OUTPUT_BYTES,
    'artifact_ttl_sec': ARTIFACT_TTL_SEC,
    'sweep_interval_sec': SWEEP_INTERVAL_SEC,
    'font_file': None,
    'public_base_url': '',
}

# environment variable → config key
_ENV_KEYS = {
    'PORT': 'port',
    'WORK_DIR': 'work_dir',
    'DELIVERY_MODE': 'delivery_mode',
    'FETCH_CLIENT': 'fetch_client',
    'FETCH_MODE': 'fetch_mode',
    'COOKIES_PATH': 'cookies_path',
    'YOUTUBE_COOKIES': 'cookies_content',
    'YOUTUBE_COOKIES_URL': 'cookies_url',
    'FETCH_TIMEOUT_SEC': 'fetch_timeout_sec',
    'RENDER_TIMEOUT_SEC': 'render_timeout_sec',
    'MAX_OUTPUT_BYTES': 'max_output_bytes',
    'ARTIFACT_TTL_SEC': 'artifact_ttl_sec',
    'SWEEP_INTERVAL_SEC': 'sweep_interval_sec',
    'FONT_FILE': 'font_file',
    'PUBLIC_BASE_URL': 'public_base_url',
}


class AppConfig:
    """Server configuration; read once at start-up."""

    def __init__(self, config_path: Path | None = None, env: dict | None = None):
        self.env = os.environ if env is None else env
        path = config_path or self.env.get(CONFIG_ENV_VAR)
        self.path = Path(path) if path else None
        self._data: dict = {}
        self.load()

    def load(self):
        """Load defaults, then the JSON file, then environment overrides."""
        self._data = dict(_DEFAULTS)
        if self.path and self.path.exists():
            try:
                with open(self.path, 'r') as f:
                    saved = json.load(f)
                for key, value in saved.items():
                    self.set(key, value)
            except Exception as e:
                logger.warning("Failed to load config %s: %s", self.path, e)

        for env_key, key in _ENV_KEYS.items():
            value = self.env.get(env_key)
            if value not in (None, ''):
                self.set(key, value)

    def get(self, key: str, default=None):
        return self._data.get(key, default)

    def set(self, key: str, value):
        if key not in _DEFAULTS:
            logger.warning("Ignoring unknown config key %r", key)
            return
        self._data[key] = self._validate(key, value)

    def _validate(self, key: str, value):
        """Validate and coerce config values to safe ranges."""
        if key in _BOUNDS:
            lo, hi = _BOUNDS[key]
            try:
                value = int(float(value))
            except (TypeError, ValueError):
                logger.warning("Invalid %s %r, using default", key, value)
                return _DEFAULTS[key]
            return max(lo, min(hi, value))

        if key == 'delivery_mode':
            if value not in (DeliveryMode.INLINE, DeliveryMode.STORE):
                logger.warning("Invalid delivery_mode %r, using %s", value, DeliveryMode.INLINE)
                return DeliveryMode.INLINE

        if key == 'fetch_client':
            if value not in FETCH_CLIENTS:
                logger.warning("Invalid fetch_client %r, using %s", value, FetchClient.MWEB)
                return FetchClient.MWEB

        if key == 'fetch_mode':
            if value not in (FetchMode.SLICE, FetchMode.SECTIONS):
                logger.warning("Invalid fetch_mode %r, using %s", value, FetchMode.SECTIONS)
                return FetchMode.SECTIONS

        if key == 'public_base_url':
            return str(value or '').rstrip('/')

        return value

    def as_dict(self) -> dict:
        # credentials stay out of logs and diagnostics
        data = dict(self._data)
        if data.get('cookies_content'):
            data['cookies_content'] = '<set>'
        return data

    def fetch_strategy(self, cookies_path: Path | None) -> FetchStrategy:
        """The strategy value injected into every Fetch Stage call."""
        return FetchStrategy(
            client=self.fetch_client,
            mode=self.fetch_mode,
            cookies_path=cookies_path,
        )

    @property
    def port(self) -> int:
        return self._data['port']

    @property
    def work_dir(self) -> Path:
        return Path(self._data['work_dir'])

    @property
    def delivery_mode(self) -> str:
        return self._data['delivery_mode']

    @property
    def fetch_client(self) -> str:
        return self._data['fetch_client']

    @property
    def fetch_mode(self) -> str:
        return self._data['fetch_mode']

    @property
    def cookies_path(self) -> Path:
        return Path(self._data['cookies_path'])

    @property
    def font_file(self) -> Path | None:
        value = self._data.get('font_file')
        return Path(value) if value else None

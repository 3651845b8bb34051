"""
Gateway settings from config.yaml, overridable per key by environment variables
"""

import os
import yaml
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config.yaml"


def _coerce(raw: str):
    """Turn an env string into bool, int or float when it reads as one."""
    lowered = raw.strip().lower()
    if lowered in ('true', 'false'):
        return lowered == 'true'
    for kind in (int, float):
        try:
            return kind(raw)
        except ValueError:
            continue
    return raw


def _assign(tree: Dict[str, Any], path: Tuple[str, ...], value) -> None:
    *parents, leaf = path
    node = tree
    for key in parents:
        child = node.get(key)
        if not isinstance(child, dict):
            child = node[key] = {}
        node = child
    node[leaf] = value


class Config:
    """YAML-backed settings for the gateway, the call defaults and the runner."""

    ENV_MAPPINGS = {
        'GATEWAY_URL': ('gateway', 'url'),
        'GATEWAY_TOKEN': ('gateway', 'token'),
        'GATEWAY_TOKEN_HEADER': ('gateway', 'token_header'),
        'CALL_TIMEOUT': ('call', 'timeout'),
        'CALL_RETRY': ('call', 'retry'),
        'CALL_RETRY_BACKOFF': ('call', 'retry_backoff'),
        'CALL_MAX_BODY_BYTES': ('call', 'max_body_bytes'),
        'CALL_TIMING': ('call', 'timing'),
        'HTTP_USER_AGENT': ('http', 'user_agent'),
        'HTTP_FOLLOW_REDIRECTS': ('http', 'follow_redirects'),
        'LOG_LEVEL': ('logging', 'level'),
        'LOG_FORMAT': ('logging', 'format'),
    }

    def __init__(self, config_path: Optional[str] = None, environ: Optional[Mapping[str, str]] = None):
        """
        Args:
            config_path: YAML file to read. Defaults to config.yaml at the
                repository root.
            environ: Variables consulted for overrides. Defaults to os.environ.
        """
        self.config_path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
        self._config = self._read_file()
        self._override(os.environ if environ is None else environ)

    def _read_file(self) -> Dict[str, Any]:
        if not self.config_path.is_file():
            raise FileNotFoundError(f"Configuration file not found: {self.config_path}")
        try:
            loaded = yaml.safe_load(self.config_path.read_text(encoding='utf-8'))
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {self.config_path}: {e}")

        if loaded is None:
            return {}
        if not isinstance(loaded, dict):
            raise ValueError(f"Configuration root must be a mapping: {self.config_path}")
        return loaded

    def _override(self, environ: Mapping[str, str]) -> None:
        for name, path in self.ENV_MAPPINGS.items():
            if name in environ:
                _assign(self._config, path, _coerce(environ[name]))

    def get(self, *keys, default=None):
        """Look up a nested value, e.g. ``get('gateway', 'url')``."""
        node = self._config
        for key in keys:
            if not isinstance(node, dict) or key not in node:
                return default
            node = node[key]
        return node

    def section(self, name: str) -> Dict[str, Any]:
        value = self.get(name)
        return value if isinstance(value, dict) else {}

    @property
    def gateway(self) -> Dict[str, Any]:
        """Base URL, token and auth header name."""
        return self.section('gateway')

    @property
    def call(self) -> Dict[str, Any]:
        """Default call behavior: timeout, retries, body cap and timing."""
        return self.section('call')

    @property
    def http(self) -> Dict[str, Any]:
        return self.section('http')

    @property
    def logging(self) -> Dict[str, Any]:
        return self.section('logging')

    @property
    def request(self) -> Dict[str, Any]:
        """The call the runner performs."""
        return self.section('request')

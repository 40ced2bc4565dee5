"""
Credential provisioning: materialise the yt-dlp cookies file once at
start-up. The resulting path is passed into FetchStrategy; nothing reads
a global cookie location.
"""

import os
import logging
from pathlib import Path

import requests

from app.core.config import AppConfig

logger = logging.getLogger(__name__)

_DOWNLOAD_TIMEOUT_SEC = 30


def _write_private(path: Path, content: str):
    path.parent.mkdir(parents=True, exist_ok=True)
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, 'w', encoding='utf-8') as f:
        f.write(content if content.endswith('\n') else content + '\n')


def provision_cookies(config: AppConfig) -> Path | None:
    """
    Returns the cookies path to use, or None to fetch without credentials.
    Order: inline content, then URL, then an existing file at cookies_path.
    """
    path = config.cookies_path
    content = config.get('cookies_content')
    url = config.get('cookies_url')

    if content:
        try:
            _write_private(path, content)
            logger.info("Cookies written from configuration to %s", path)
            return path
        except OSError as e:
            logger.warning("Failed to write cookies file %s: %s", path, e)
            return None

    if url:
        try:
            resp = requests.get(url, timeout=_DOWNLOAD_TIMEOUT_SEC)
            resp.raise_for_status()
            _write_private(path, resp.text)
            logger.info("Cookies downloaded to %s", path)
            return path
        except requests.exceptions.RequestException as e:
            logger.warning("Cookies download failed: %s", e)
            return None
        except OSError as e:
            logger.warning("Failed to write cookies file %s: %s", path, e)
            return None

    if path.exists():
        logger.info("Using existing cookies file %s", path)
        return path

    logger.info("No cookies configured; fetching without credentials")
    return None

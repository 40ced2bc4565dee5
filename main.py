#!/usr/bin/env python3
"""
ShortsProcessor v1.0.0: main entry point.

Development:  python main.py
Production:   gunicorn -c gunicorn_config.py "main:build_app()"
"""

import os
import sys
import atexit
import logging
from datetime import datetime

from app.core.constants import APP_NAME, APP_VERSION, DeliveryMode
from app.core.config import AppConfig
from app.core.cookies import provision_cookies
from app.core.artifact_store import ArtifactStore
from app.core.pipeline import SegmentPipeline
from app.core.transcript import TranscriptService
from app.core.diagnostics import missing_tools
from app.web.server import create_app

logger = logging.getLogger("shorts-processor")


def setup_logging():
    """Log to stderr, and to LOG_FILE as well when set."""
    handlers = [logging.StreamHandler()]
    log_file = os.environ.get("LOG_FILE")
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    logging.basicConfig(
        level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=handlers,
    )


def check_prerequisites():
    """Check that yt-dlp and ffmpeg are available, exit if not."""
    missing = missing_tools()
    if missing:
        logger.error("Missing required tools: %s. PATH = %s",
                     ", ".join(missing), os.environ.get("PATH", ""))
        sys.exit(1)


def build_app(config: AppConfig | None = None):
    """Wire config → cookies → store → pipeline → Flask app."""
    setup_logging()
    config = config or AppConfig()
    logger.info("%s v%s starting at %s", APP_NAME, APP_VERSION, datetime.now().isoformat())
    logger.info("Config: %s", config.as_dict())

    config.work_dir.mkdir(parents=True, exist_ok=True)
    cookies_path = provision_cookies(config)
    strategy = config.fetch_strategy(cookies_path)

    store = None
    if config.delivery_mode == DeliveryMode.STORE:
        store = ArtifactStore(ttl_sec=config.get('artifact_ttl_sec'),
                              sweep_interval_sec=config.get('sweep_interval_sec'))
        store.start()
        atexit.register(store.close)

    pipeline = SegmentPipeline(
        strategy,
        store=store,
        work_dir=config.work_dir,
        fetch_timeout_sec=config.get('fetch_timeout_sec'),
        render_timeout_sec=config.get('render_timeout_sec'),
        max_output_bytes=config.get('max_output_bytes'),
        font_file=config.font_file,
    )
    transcripts = TranscriptService(strategy, work_dir=config.work_dir)

    return create_app(config, pipeline, store=store, transcripts=transcripts,
                      cookies_path=cookies_path)


def main():
    setup_logging()
    check_prerequisites()
    config = AppConfig()
    try:
        app = build_app(config)
    except Exception as e:
        logger.critical("Fatal error: %s: %s", type(e).__name__, e, exc_info=True)
        sys.exit(1)

    logger.info("%s running on port %d", APP_NAME, config.port)
    # threaded: every request, and so every job, gets its own thread
    app.run(host="0.0.0.0", port=config.port, threaded=True)


if __name__ == "__main__":
    main()

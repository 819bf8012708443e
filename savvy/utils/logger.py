"""Logging bootstrap shared by the CLI and embedding applications."""

import logging
import sys
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_HANDLER_TAG = "_savvy_handler"


def setup_logging(level: str = "INFO", log_file: Optional[Path] = None) -> logging.Logger:
    """
    Configure the root logger once.

    Console output goes to stderr so streamed answers on stdout stay clean.
    Calling again replaces the handlers installed by a previous call.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in list(root_logger.handlers):
        if getattr(handler, _HANDLER_TAG, False):
            root_logger.removeHandler(handler)
            handler.close()

    formatter = logging.Formatter(LOG_FORMAT)

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(formatter)
    setattr(console, _HANDLER_TAG, True)
    root_logger.addHandler(console)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(str(log_path), mode="w")
        file_handler.setFormatter(formatter)
        setattr(file_handler, _HANDLER_TAG, True)
        root_logger.addHandler(file_handler)

    # The SDKs log every HTTP request at INFO.
    for noisy in ("httpx", "httpcore", "openai", "anthropic"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    return root_logger


def redact_headers(headers: dict) -> dict:
    """Copy of ``headers`` safe to log."""
    redacted = {}
    for key, value in headers.items():
        if key.lower() in ("authorization", "x-api-key", "api-key"):
            redacted[key] = "***REDACTED***"
        else:
            redacted[key] = value
    return redacted

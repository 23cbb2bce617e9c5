"""Logging configuration with API token masking."""

from __future__ import annotations

import logging
import re

# Authorization header values and token query parameters
SECRET_PATTERNS = [
    re.compile(r"(Bearer\s+)[A-Za-z0-9._~+/=-]+", re.IGNORECASE),
    re.compile(r"(token[=:]\s*)[A-Za-z0-9._~+/=-]+", re.IGNORECASE),
]


def scrub_secrets(text: str, token: str | None = None) -> str:
    """Replace API tokens in text with a fixed mask."""
    if token:
        text = text.replace(token, "***")
    for pattern in SECRET_PATTERNS:
        text = pattern.sub(r"\1***", text)
    return text


class TokenMaskingFilter(logging.Filter):
    """Log filter that masks API tokens."""

    def __init__(self, token: str | None = None):
        super().__init__()
        self.token = token

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = scrub_secrets(record.msg, self.token)
        return True


def setup_logging(level: int = logging.WARNING, token: str | None = None) -> None:
    """Configure root logging and attach the masking filter to its handlers."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    masking = TokenMaskingFilter(token)
    for handler in root_logger.handlers:
        handler.addFilter(masking)
    for name in ["httpx", "uvicorn", "uvicorn.access", "uvicorn.error"]:
        logging.getLogger(name).addFilter(masking)

# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Process-wide logging set-up driven by the ``[log]`` config section."""

import sys
import json
import logging

from datetime import datetime, timezone
from typing import TYPE_CHECKING, TextIO

if TYPE_CHECKING:
    from ..config.models import LogConfig

TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}


class JSONFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "time": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def _open_output(output: str) -> TextIO:
    if not output or output == "stdout":
        return sys.stdout
    try:
        return open(output, "a", encoding="utf-8")
    except OSError as e:
        print(f"failed to open log file {output}: {e}", file=sys.stderr)
        return sys.stdout


def initialize_logging(log_config: "LogConfig") -> logging.Handler:
    """Install a single root handler according to the log configuration.

    Returns the installed handler, mostly so tests can inspect it.
    """
    level = LEVELS.get(log_config.level, logging.INFO)
    stream = _open_output(log_config.output)

    handler = logging.StreamHandler(stream)
    if log_config.format == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))

    logging.basicConfig(level=level, handlers=[handler], force=True)
    logging.captureWarnings(True)
    return handler

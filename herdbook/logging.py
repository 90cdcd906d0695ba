from __future__ import annotations

import json
import logging
import sys
from logging import Logger


ROOT_LOGGER = "herdbook"
HANDLER_NAME = "herdbook-stdout"


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def _find_handler(logger: Logger):
    for handler in logger.handlers:
        if handler.get_name() == HANDLER_NAME:
            return handler
    return None


def configure_logging(json_output: bool = True, level: int = logging.INFO) -> Logger:
    """Attach the stdout handler to the package logger, or re-format the existing one.

    Every ``herdbook.*`` logger propagates here; nothing propagates past it.
    """
    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(level)

    handler = _find_handler(root)
    if handler is None:
        handler = logging.StreamHandler(stream=sys.stdout)
        handler.set_name(HANDLER_NAME)
        root.addHandler(handler)

    if json_output:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))

    root.propagate = False
    return root


def get_logger(name: str = ROOT_LOGGER, json_output: bool = True) -> Logger:
    if _find_handler(logging.getLogger(ROOT_LOGGER)) is None:
        configure_logging(json_output)
    return logging.getLogger(name)

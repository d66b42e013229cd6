# src/branchguard/util/log.py: Structured JSON logger.
# This module provides the logging setup for the policy engine. Records are
# emitted as JSON through python-json-logger, and a contextvar injects the
# identifier of the rule currently being evaluated into every record, so a
# skipped or failing rule can be traced back from the logs.

from __future__ import annotations

import contextvars
import logging
import sys
from typing import TYPE_CHECKING

from pythonjsonlogger.json import JsonFormatter

if TYPE_CHECKING:
    from ..config import LoggingConfig

rule_context: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "rule_context", default=None
)

_ROOT_LOGGER = "branchguard"
_PLAIN_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [rule=%(rule)s] %(message)s"
_JSON_FORMAT = "%(asctime)s %(name)s %(levelname)s %(rule)s %(message)s"


class RuleContextFilter(logging.Filter):
    """Attaches the current rule identifier to each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.rule = rule_context.get()
        return True


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def setup_logging(config: LoggingConfig) -> None:
    """Configure the 'branchguard' logger hierarchy."""
    logger = logging.getLogger(_ROOT_LOGGER)
    logger.setLevel(config.level.upper())
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    if config.json_format:
        handler.setFormatter(JsonFormatter(_JSON_FORMAT))
    else:
        handler.setFormatter(logging.Formatter(_PLAIN_FORMAT))
    handler.addFilter(RuleContextFilter())
    logger.addHandler(handler)

import json
import logging
from datetime import datetime, timezone
from typing import Any

REDACTED = "***"
_SENSITIVE_KEYS = {"token", "access_token", "authorization", "password", "secret"}


def get_logger(name: str) -> logging.Logger:
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger
    logger.setLevel(logging.INFO)
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    return logger


def _redact(context: dict[str, Any]) -> dict[str, Any]:
    return {key: REDACTED if key.lower() in _SENSITIVE_KEYS else value for key, value in context.items()}


def log_action(
    logger: logging.Logger,
    module: str,
    action: str,
    outcome: str,
    *,
    level: int = logging.INFO,
    **context: Any,
) -> None:
    record = {
        "ts": datetime.now(timezone.utc).isoformat(),
        "level": logging.getLevelName(level),
        "module": module,
        "action": action,
        "outcome": outcome,
    }
    record.update(_redact(context))
    logger.log(level, json.dumps(record, default=str))

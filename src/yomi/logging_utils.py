from __future__ import annotations

import os
import sys
from copy import copy, deepcopy
from typing import Any
from urllib.parse import unquote, unquote_plus

from uvicorn.config import LOGGING_CONFIG
from uvicorn.logging import AccessFormatter

_TRUTHY = {"1", "true", "yes", "on"}
_DEBUG_LOG = os.environ.get("YOMI_DEBUG", "").strip().lower() in _TRUTHY


def set_debug_logging(enabled: bool) -> None:
    global _DEBUG_LOG
    _DEBUG_LOG = enabled


def debug_enabled() -> bool:
    return _DEBUG_LOG


def debug_log(message: str) -> None:
    if _DEBUG_LOG:
        print(f"[yomi debug] {message}", file=sys.stderr)


def _decode_target(target: str) -> str:
    path, sep, query = target.partition("?")
    path = unquote(path, errors="replace")
    if not sep:
        return path
    return f"{path}?{unquote_plus(query, errors='replace')}"


class Utf8AccessFormatter(AccessFormatter):
    """Access formatter that shows kana readings instead of %-escapes."""

    def formatMessage(self, record):  # type: ignore[override]
        args = record.args
        # uvicorn passes (client, method, target, http_version, status).
        if not (isinstance(args, tuple) and len(args) == 5 and isinstance(args[2], str)):
            return super().formatMessage(record)
        readable = copy(record)
        readable.args = args[:2] + (_decode_target(args[2]),) + args[3:]
        return super().formatMessage(readable)


def build_uvicorn_log_config(*, debug: bool = False) -> dict[str, Any]:
    config = deepcopy(LOGGING_CONFIG)
    access = config.setdefault("formatters", {}).setdefault("access", {})
    access["()"] = f"{__name__}.Utf8AccessFormatter"
    if debug:
        for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
            logger_cfg = config.setdefault("loggers", {}).setdefault(name, {})
            logger_cfg["level"] = "DEBUG"
    return config

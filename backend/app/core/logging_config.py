"""
JSON-lines logging for the productores API and the dataset pipeline.

Every event is one JSON object on stdout tagged with the service name and
environment; request events also carry trace_id, endpoint and duration_ms.
In dev the same event is mirrored to the stdlib logger in readable form.
"""
from __future__ import annotations

import json
import logging
import time
from contextlib import contextmanager
from typing import Any, Iterator

from app.core.config import settings

logger = logging.getLogger('productores')


def _payload(level: str, message: str, fields: dict[str, Any]) -> dict[str, Any]:
    payload: dict[str, Any] = {
        'level': level,
        'message': message,
        'service': settings.app_name,
        'env': settings.app_env,
    }
    for key, value in fields.items():
        if value is None:
            continue
        payload[key] = round(value, 2) if key == 'duration_ms' else value
    return payload


def structured_log(level: str, message: str, **fields: Any) -> None:
    payload = _payload(level, message, fields)
    if settings.app_env == 'dev':
        logger.log(getattr(logging, level.upper(), logging.INFO), '%s %s', level, message, extra={'payload': payload})
    # datetimes and enums in fields go out as plain strings
    print(json.dumps(payload, ensure_ascii=False, default=str), flush=True)


@contextmanager
def log_duration(event: str, **fields: Any) -> Iterator[None]:
    """Log `<event>_completed` with duration_ms, or `<event>_failed` and re-raise."""
    start = time.perf_counter()
    try:
        yield
    except Exception as exc:
        structured_log('error', f'{event}_failed', duration_ms=(time.perf_counter() - start) * 1000, error=str(exc), **fields)
        raise
    structured_log('info', f'{event}_completed', duration_ms=(time.perf_counter() - start) * 1000, **fields)


def log_request(request_path: str, method: str, trace_id: str, duration_ms: float, status_code: int) -> None:
    structured_log(
        'info',
        'request',
        trace_id=trace_id,
        duration_ms=duration_ms,
        endpoint=f'{method} {request_path}',
        status_code=status_code,
    )

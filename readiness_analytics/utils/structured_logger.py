import json
import logging
import time
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


def _emit(level: int, payload: Dict[str, Any], additional_fields: Dict[str, Any]) -> None:
    if additional_fields:
        payload.update(additional_fields)
    logger.log(level, json.dumps(payload, default=str))


def request_start(endpoint: str, organization_id: Optional[str] = None, **additional_fields: Any) -> float:
    """
    Emit a structured request_start log and return the start_time (epoch seconds) for duration calculation.
    """
    start_time = time.time()
    payload: Dict[str, Any] = {
        "event": "request_start",
        "endpoint": endpoint,
        "organization_id": organization_id,
    }
    _emit(logging.INFO, payload, additional_fields)
    return start_time


def request_end(endpoint: str, start_time: float, organization_id: Optional[str] = None, http_status: int = 200, **additional_fields: Any) -> None:
    """
    Emit a structured request_end log with response_time_ms.
    """
    payload: Dict[str, Any] = {
        "event": "request_end",
        "endpoint": endpoint,
        "organization_id": organization_id,
        "http_status": http_status,
        "response_time_ms": int((time.time() - start_time) * 1000),
    }
    _emit(logging.INFO, payload, additional_fields)


def request_error(endpoint: str, start_time: float, organization_id: Optional[str] = None, http_status: int = 500, error: Optional[str] = None, **additional_fields: Any) -> None:
    """
    Emit a structured request_error log with response_time_ms and error message.
    """
    payload: Dict[str, Any] = {
        "event": "request_error",
        "endpoint": endpoint,
        "organization_id": organization_id,
        "http_status": http_status,
        "response_time_ms": int((time.time() - start_time) * 1000),
    }
    if error is not None:
        payload["error"] = error
    # Use warning for 4xx, error for 5xx
    level = logging.WARNING if 400 <= http_status < 500 else logging.ERROR
    _emit(level, payload, additional_fields)


def batch_start(batch_id: str, total_requested: int, parallelism: int, **additional_fields: Any) -> float:
    """
    Emit a structured batch_start log and return the start_time for duration calculation.
    """
    start_time = time.time()
    payload: Dict[str, Any] = {
        "event": "batch_start",
        "batch_id": batch_id,
        "total_requested": total_requested,
        "parallelism": parallelism,
    }
    _emit(logging.INFO, payload, additional_fields)
    return start_time


def batch_end(batch_id: str, start_time: float, succeeded: int, failed: int, **additional_fields: Any) -> None:
    """
    Emit a structured batch_end log; batches with failures are logged as warnings.
    """
    payload: Dict[str, Any] = {
        "event": "batch_end",
        "batch_id": batch_id,
        "succeeded": succeeded,
        "failed": failed,
        "duration_ms": int((time.time() - start_time) * 1000),
    }
    _emit(logging.WARNING if failed else logging.INFO, payload, additional_fields)

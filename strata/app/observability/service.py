from __future__ import annotations

import json
import logging
import time
from collections.abc import Sequence
from dataclasses import asdict

from strata.app.observability.contracts import SourceTrace

DEFAULT_TELEMETRY_TAG = "context-assembly"


def source_trace(
    source_id: str,
    started_at: float,
    *,
    status: str = "ok",
    hit_count: int = 0,
    rendered_count: int = 0,
    error_message: str | None = None,
) -> SourceTrace:
    elapsed_ms = int((time.perf_counter() - started_at) * 1000)
    return SourceTrace(
        source_id=source_id,
        status=status,
        hit_count=hit_count,
        rendered_count=rendered_count,
        latency_ms=max(elapsed_ms, 0),
        error_message=error_message,
    )


def emit_assembly_telemetry(
    traces: Sequence[SourceTrace],
    request_id: str,
    logger: logging.Logger | None = None,
) -> None:
    active_logger = logger or logging.getLogger(__name__)
    for trace in traces:
        payload = {
            "request_id": request_id,
            "tag": DEFAULT_TELEMETRY_TAG,
            **asdict(trace),
        }
        active_logger.info("assembly_event %s", json.dumps(payload, sort_keys=True))

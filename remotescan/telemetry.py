"""Fire-and-forget telemetry sink."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)


@dataclass
class TelemetryEvent:
    name: str
    data: dict[str, Any]
    timestamp: float = field(default_factory=time.time)


class TelemetrySink:
    """Mirrors events to the debug log, optionally keeping them in memory.

    Only injected sinks should set ``record``; the process-wide default
    lives as long as the host and must not accumulate events.
    """

    def __init__(self, enabled: bool = True, record: bool = True) -> None:
        self.enabled = enabled
        self.record = record
        self.events: list[TelemetryEvent] = []

    def emit(self, name: str, **data: Any) -> None:
        if not self.enabled:
            return
        if self.record:
            self.events.append(TelemetryEvent(name, data))
        logger.debug("telemetry %s %s", name, data)

    def send_code_scan_event(self, language_id: str, request_id: str) -> None:
        self.emit("code_scan_created", language=language_id, request_id=request_id)


default_sink = TelemetrySink(record=False)

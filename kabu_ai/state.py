from __future__ import annotations

import threading
from dataclasses import dataclass, field
from enum import Enum

from kabu_ai.models import AnalysisReport, Credentials, MarketSnapshot, ModelDescriptor, StockRecord


class SlotState(str, Enum):
    IDLE = "idle"
    IN_FLIGHT = "in_flight"
    ERRORED = "errored"


class RequestSlot:
    """
    Single-slot guard for one family of network calls.

    IDLE/ERRORED --try_begin()--> IN_FLIGHT --finish()--> IDLE | ERRORED

    A second try_begin() while IN_FLIGHT returns False; nothing is queued
    and the outstanding call is not cancelled.
    """

    def __init__(self, name: str):
        self.name = name
        self._lock = threading.Lock()
        self._state = SlotState.IDLE
        self.last_error: str | None = None

    @property
    def state(self) -> SlotState:
        with self._lock:
            return self._state

    @property
    def busy(self) -> bool:
        return self.state is SlotState.IN_FLIGHT

    def try_begin(self) -> bool:
        with self._lock:
            if self._state is SlotState.IN_FLIGHT:
                return False
            self._state = SlotState.IN_FLIGHT
            return True

    def finish(self, error: str | None = None) -> None:
        with self._lock:
            self._state = SlotState.ERRORED if error else SlotState.IDLE
            self.last_error = error


@dataclass
class AppState:
    credentials: Credentials
    theme: str = "dark"
    available_models: list[ModelDescriptor] = field(default_factory=list)
    snapshot: MarketSnapshot | None = None
    selected_stock: StockRecord | None = None
    report: AnalysisReport | None = None
    models_slot: RequestSlot = field(default_factory=lambda: RequestSlot("models"))
    scan_slot: RequestSlot = field(default_factory=lambda: RequestSlot("scan"))
    analysis_slot: RequestSlot = field(default_factory=lambda: RequestSlot("analysis"))

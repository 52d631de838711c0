import threading
from typing import Iterable, List, Optional, Union

from airgradient_core.domain.errors import NetworkError
from airgradient_core.domain.models import TelemetrySnapshot
from airgradient_core.domain.ports import TelemetrySource

Outcome = Union[TelemetrySnapshot, Exception]


def make_snapshot(
    pm02: float = 4,
    rco2: float = 763,
    atmp: float = 23.3,
    rhum: float = 37,
) -> TelemetrySnapshot:
    """Snapshot with the values of the example AirGradient response."""
    return TelemetrySnapshot(
        pm25_density=float(pm02),
        co2_level=float(rco2),
        temperature_celsius=float(atmp),
        relative_humidity_pct=float(rhum),
    )


class FakeTelemetrySource(TelemetrySource):
    """Telemetry source that replays scripted outcomes.

    Each fetch() pops the next outcome: snapshots are returned, exceptions are
    raised. Once the script is exhausted the last outcome repeats, or a
    NetworkError is raised when the script was empty.
    """

    def __init__(self, outcomes: Optional[Iterable[Outcome]] = None, endpoint: str = "http://fake/metrics"):
        self.endpoint = endpoint
        self._outcomes: List[Outcome] = list(outcomes or [])
        self._lock = threading.Lock()
        self.calls = 0
        self.closed = False
        self.fetched = threading.Event()

    def push(self, outcome: Outcome) -> None:
        with self._lock:
            self._outcomes.append(outcome)

    def fetch(self) -> TelemetrySnapshot:
        with self._lock:
            self.calls += 1
            if not self._outcomes:
                outcome: Outcome = NetworkError(self.endpoint, "connection refused")
            elif len(self._outcomes) == 1:
                outcome = self._outcomes[0]
            else:
                outcome = self._outcomes.pop(0)
        self.fetched.set()
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def close(self) -> None:
        self.closed = True


class BlockingTelemetrySource(FakeTelemetrySource):
    """Fake source whose fetch() blocks until release() is called."""

    def __init__(self, outcomes: Optional[Iterable[Outcome]] = None, endpoint: str = "http://fake/metrics"):
        super().__init__(outcomes, endpoint)
        self.entered = threading.Event()
        self._release = threading.Event()

    def release(self) -> None:
        self._release.set()

    def fetch(self) -> TelemetrySnapshot:
        self.entered.set()
        self._release.wait(timeout=5)
        return super().fetch()

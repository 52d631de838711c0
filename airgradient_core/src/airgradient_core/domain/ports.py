from typing import Any, Protocol, runtime_checkable

from airgradient_core.domain.models import SensorConfig, TelemetrySnapshot


@runtime_checkable
class TelemetrySource(Protocol):
    """Fetches one complete snapshot or raises a FetchError subclass."""

    def fetch(self) -> TelemetrySnapshot: ...

    def close(self) -> None: ...


class PushCallback(Protocol):
    def __call__(self, field: str, value: Any) -> None: ...


class RegisterCallback(Protocol):
    def __call__(self, config: SensorConfig) -> None: ...


class PushSink(Protocol):
    """Receives every pushed value together with the accessory it belongs to."""

    def __call__(self, accessory_uuid: str, field: str, value: Any) -> None: ...

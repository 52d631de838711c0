import uuid
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Mapping, Optional

from airgradient_core.domain.errors import InvalidSensorConfigError

DEFAULT_POLLING_INTERVAL_MS = 60_000


class AirQualityBand(IntEnum):
    """PM2.5 quality band, numbered like the HomeKit AirQuality characteristic."""

    EXCELLENT = 1
    GOOD = 2
    FAIR = 3
    INFERIOR = 4
    POOR = 5


class CO2Status(IntEnum):
    """Numbered like the HomeKit CarbonDioxideDetected characteristic."""

    NORMAL = 0
    ABNORMAL = 1


@dataclass(frozen=True)
class SensorConfig:
    name: str
    endpoint: str
    polling_interval_ms: int = DEFAULT_POLLING_INTERVAL_MS

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name:
            raise InvalidSensorConfigError("sensor name must be a non-empty string")
        if not isinstance(self.endpoint, str) or not self.endpoint:
            raise InvalidSensorConfigError(f"sensor {self.name!r} has no metrics endpoint")
        interval = self.polling_interval_ms
        if isinstance(interval, bool) or not isinstance(interval, int) or interval <= 0:
            # frozen dataclass, so bypass __setattr__
            object.__setattr__(self, "polling_interval_ms", DEFAULT_POLLING_INTERVAL_MS)

    @property
    def uuid(self) -> str:
        """Stable identifier derived from the endpoint only."""
        return str(uuid.uuid5(uuid.NAMESPACE_URL, self.endpoint))

    @property
    def polling_interval_s(self) -> float:
        return self.polling_interval_ms / 1000.0

    @classmethod
    def from_mapping(
        cls,
        entry: Mapping[str, Any],
        default_interval_ms: int = DEFAULT_POLLING_INTERVAL_MS,
    ) -> "SensorConfig":
        """Build a config from a raw sensors-file entry.

        Accepts the homebridge style keys (``metricsEndpoint``, ``pollingInterval``)
        as well as the snake case field names. A missing name falls back to the
        endpoint.
        """
        if not isinstance(entry, Mapping):
            raise InvalidSensorConfigError(f"sensor entry must be an object, got {entry!r}")

        endpoint = entry.get("metricsEndpoint") or entry.get("endpoint")
        if not isinstance(endpoint, str) or not endpoint.strip():
            raise InvalidSensorConfigError(f"sensor entry has no metrics endpoint: {dict(entry)!r}")
        endpoint = endpoint.strip()

        name = entry.get("name") or endpoint
        if not isinstance(name, str):
            raise InvalidSensorConfigError(f"sensor name must be a string, got {name!r}")

        interval = entry.get("pollingInterval", entry.get("polling_interval_ms"))
        if isinstance(interval, bool) or not isinstance(interval, int) or interval <= 0:
            interval = default_interval_ms

        return cls(name=name, endpoint=endpoint, polling_interval_ms=interval)


@dataclass(frozen=True)
class TelemetrySnapshot:
    """One complete reading. Never mutated; a new fetch replaces it whole.

    Numeric readings are floats. A reading the sensor sent with another JSON
    type (string, null, bool) is kept as received.
    """

    pm25_density: Any
    co2_level: Any
    temperature_celsius: Any
    relative_humidity_pct: Any
    fetched_at: Optional[float] = None

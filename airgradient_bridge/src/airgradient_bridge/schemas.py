# airgradient_bridge/schemas.py

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict

from airgradient_core.domain.classification import is_number
from airgradient_core.domain.models import TelemetrySnapshot


def _reading(value: Any) -> Any:
    # numbers are normalised to float; anything else is kept for push validation
    return float(value) if is_number(value) else value


class TelemetryPayload(BaseModel):
    """JSON body served by the sensor, e.g. {"pm02":4,"rco2":763,"atmp":23.30,"rhum":37}.

    All four keys are required. Their values are not type checked here: a
    string or null reading is rejected field by field when it is pushed.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    pm02: Any
    rco2: Any
    atmp: Any
    rhum: Any

    def to_domain(self, fetched_at: Optional[float] = None) -> TelemetrySnapshot:
        return TelemetrySnapshot(
            pm25_density=_reading(self.pm02),
            co2_level=_reading(self.rco2),
            temperature_celsius=_reading(self.atmp),
            relative_humidity_pct=_reading(self.rhum),
            fetched_at=fetched_at,
        )

# airgradient_core/domain/classification.py

import math
from typing import Any

from airgradient_core.domain.errors import FieldValidationError
from airgradient_core.domain.models import AirQualityBand, CO2Status

# Inclusive upper bounds, evaluated in ascending order.
PM25_BAND_LIMITS = (
    (12.0, AirQualityBand.EXCELLENT),
    (35.4, AirQualityBand.GOOD),
    (55.4, AirQualityBand.FAIR),
    (150.4, AirQualityBand.INFERIOR),
)

CO2_ABNORMAL_THRESHOLD_PPM = 1200.0


def classify_air_quality(pm25_density: float) -> AirQualityBand:
    """Map a PM2.5 density (µg/m³) to its quality band.

    Anything above the last limit is POOR, and so is NaN, since it matches
    no limit.
    """
    for upper, band in PM25_BAND_LIMITS:
        if pm25_density <= upper:
            return band
    return AirQualityBand.POOR


def classify_co2(co2_level: float, threshold: float = CO2_ABNORMAL_THRESHOLD_PPM) -> CO2Status:
    if co2_level <= threshold:
        return CO2Status.NORMAL
    return CO2Status.ABNORMAL


def is_number(value: Any) -> bool:
    """Bools are not numbers here."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_valid_field(value: Any) -> bool:
    """True for finite ints and floats."""
    return is_number(value) and math.isfinite(value)


def validate_field(field: str, value: Any) -> float:
    if not is_valid_field(value):
        raise FieldValidationError(field, value)
    return float(value)

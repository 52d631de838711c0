from .classification import (
    CO2_ABNORMAL_THRESHOLD_PPM,
    classify_air_quality,
    classify_co2,
    is_valid_field,
    validate_field,
)
from .errors import (
    AirGradientError,
    ConfigurationError,
    FetchError,
    FieldValidationError,
    HttpStatusError,
    InvalidSensorConfigError,
    NetworkError,
    NoDataAvailable,
    ParseError,
)
from .models import (
    DEFAULT_POLLING_INTERVAL_MS,
    AirQualityBand,
    CO2Status,
    SensorConfig,
    TelemetrySnapshot,
)

__all__ = [
    "CO2_ABNORMAL_THRESHOLD_PPM",
    "DEFAULT_POLLING_INTERVAL_MS",
    "AirGradientError",
    "AirQualityBand",
    "CO2Status",
    "ConfigurationError",
    "FetchError",
    "FieldValidationError",
    "HttpStatusError",
    "InvalidSensorConfigError",
    "NetworkError",
    "NoDataAvailable",
    "ParseError",
    "SensorConfig",
    "TelemetrySnapshot",
    "classify_air_quality",
    "classify_co2",
    "is_valid_field",
    "validate_field",
]

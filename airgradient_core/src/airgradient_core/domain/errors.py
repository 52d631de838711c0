from typing import Any, Optional


class AirGradientError(Exception):
    """Base class for all errors raised by the AirGradient bridge."""


class FetchError(AirGradientError):
    """A refresh cycle failed before a snapshot could be produced."""

    def __init__(self, endpoint: str, message: str):
        super().__init__(f"{endpoint}: {message}")
        self.endpoint = endpoint


class NetworkError(FetchError):
    """Connection refused, DNS failure, timeout and similar transport errors."""


class HttpStatusError(FetchError):
    """The endpoint answered with a non-success status code."""

    def __init__(self, endpoint: str, status_code: int):
        super().__init__(endpoint, f"unexpected HTTP status {status_code}")
        self.status_code = status_code


class ParseError(FetchError):
    """The response body is not the expected telemetry object."""


class FieldValidationError(AirGradientError):
    """A single telemetry field is non-numeric or non-finite."""

    def __init__(self, field: str, value: Any):
        super().__init__(f"Invalid {field} value: {value!r}")
        self.field = field
        self.value = value


class NoDataAvailable(AirGradientError):
    """Raised by queries made before the first successful fetch."""

    def __init__(self, message: str = "No data available"):
        super().__init__(message)


class ConfigurationError(AirGradientError):
    """The host configuration could not be loaded."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(f"{path}: {message}" if path else message)
        self.path = path


class InvalidSensorConfigError(ConfigurationError):
    """A single sensor entry is missing required values."""

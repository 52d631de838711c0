import os
from enum import Enum
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from airgradient_core.domain.models import DEFAULT_POLLING_INTERVAL_MS


class Environment(str, Enum):
    PRODUCTION = "production"
    DEVELOPMENT = "development"
    TESTING = "testing"


class Settings(BaseSettings):
    """Configuration settings for the AirGradient bridge."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Environment
    ENVIRONMENT: Environment = Environment.DEVELOPMENT

    # Sensors
    SENSORS_CONFIG_FILE: str = "sensors.json"
    DEFAULT_POLLING_INTERVAL_MS: int = DEFAULT_POLLING_INTERVAL_MS
    HTTP_TIMEOUT_SEC: Optional[float] = None  # None leaves it to the transport

    # MQTT (disabled unless a broker is set)
    MQTT_BROKER: Optional[str] = None
    MQTT_PORT: int = 1883
    MQTT_TOPIC_PREFIX: str = "airgradient"
    MQTT_CLIENT_ID: str = "airgradient-bridge"

    # Logging
    LOG_LEVEL: str = "INFO"


def get_settings() -> Settings:
    """Get settings based on environment."""
    env = os.getenv("AIRGRADIENT_ENV", "development").lower()

    if env == "production":
        return Settings(ENVIRONMENT=Environment.PRODUCTION, LOG_LEVEL="WARNING")
    elif env == "testing":
        return Settings(
            ENVIRONMENT=Environment.TESTING,
            SENSORS_CONFIG_FILE="test_sensors.json",
            DEFAULT_POLLING_INTERVAL_MS=1000,
            HTTP_TIMEOUT_SEC=2.0,
            MQTT_TOPIC_PREFIX="test/airgradient",
            MQTT_CLIENT_ID="airgradient-bridge-test",
            LOG_LEVEL="DEBUG",
        )
    else:
        return Settings(ENVIRONMENT=Environment.DEVELOPMENT, LOG_LEVEL="DEBUG")

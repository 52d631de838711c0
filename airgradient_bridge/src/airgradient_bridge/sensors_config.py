import json
import logging
import os
from typing import List

from airgradient_core.domain.errors import ConfigurationError
from airgradient_core.domain.models import DEFAULT_POLLING_INTERVAL_MS, SensorConfig

logger = logging.getLogger(__name__)


def load_sensor_configs(path: str, default_interval_ms: int = DEFAULT_POLLING_INTERVAL_MS) -> List[SensorConfig]:
    """
    Load the sensors block of the bridge configuration.

    Expected JSON structure (same keys as the homebridge platform config):

    {
      "sensors": [
        {"name": "Office", "metricsEndpoint": "http://192.168.1.20/measures/current", "pollingInterval": 60000},
        {"name": "Bedroom", "metricsEndpoint": "http://192.168.1.21/measures/current"}
      ]
    }

    A missing file yields no sensors. Entries sharing an endpoint after the
    first one are skipped, since the endpoint identifies the accessory.
    """
    if not os.path.exists(path):
        logger.warning("No sensors config found at %s", path)
        return []

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"invalid JSON: {e}", path=path) from e

    if not isinstance(raw, dict):
        raise ConfigurationError("top level must be an object", path=path)

    entries = raw.get("sensors", [])
    if not isinstance(entries, list):
        raise ConfigurationError("'sensors' must be a list", path=path)

    configs: List[SensorConfig] = []
    seen = set()
    for entry in entries:
        config = SensorConfig.from_mapping(entry, default_interval_ms=default_interval_ms)
        if config.endpoint in seen:
            logger.warning("Skipping duplicate sensor %s for endpoint %s", config.name, config.endpoint)
            continue
        seen.add(config.endpoint)
        configs.append(config)

    logger.info("Loaded %d sensor(s) from %s", len(configs), path)
    return configs

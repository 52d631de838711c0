import logging
import threading
from typing import Any, Callable, Dict, Iterable, List, Optional

from airgradient_bridge.http_source import HttpTelemetrySource
from airgradient_bridge.poller import SensorPoller
from airgradient_core.domain.models import SensorConfig
from airgradient_core.domain.ports import PushSink, TelemetrySource

logger = logging.getLogger(__name__)

MANUFACTURER = "AirGradient"


class Accessory:
    """Host-side representation of one sensor and its last pushed values."""

    def __init__(self, uuid: str, display_name: str):
        self.uuid = uuid
        self.display_name = display_name
        self.manufacturer = MANUFACTURER
        self.serial_number = uuid
        self._lock = threading.Lock()
        self._characteristics: Dict[str, Any] = {}

    def __repr__(self) -> str:
        return f"Accessory({self.display_name!r}, {self.uuid!r})"

    @classmethod
    def for_config(cls, config: SensorConfig) -> "Accessory":
        return cls(config.uuid, f"AirGradient Sensor {config.name}")

    def update_characteristic(self, field: str, value: Any) -> None:
        with self._lock:
            self._characteristics[field] = value

    def get_characteristic(self, field: str, default: Any = None) -> Any:
        with self._lock:
            return self._characteristics.get(field, default)

    @property
    def characteristics(self) -> Dict[str, Any]:
        with self._lock:
            return dict(self._characteristics)


class SensorBridge:
    """Builds one accessory and one SensorPoller per configured sensor.

    Accessories restored with configure_accessory() are reused when a sensor
    with the same endpoint is added; otherwise a new accessory is registered.
    Every value a poller pushes is written to its accessory and then handed to
    each push sink.

    Args:
        push_sinks: Extra consumers of pushed values, e.g. an MQTTPushSink.
        source_factory: Builds the telemetry source for a config. Defaults to
            an HttpTelemetrySource with ``http_timeout``.
        http_timeout: Request timeout for the default source.
    """

    def __init__(
        self,
        push_sinks: Optional[Iterable[PushSink]] = None,
        source_factory: Optional[Callable[[SensorConfig], TelemetrySource]] = None,
        http_timeout: Optional[float] = None,
    ):
        self._push_sinks: List[PushSink] = list(push_sinks or [])
        self._source_factory = source_factory or (
            lambda config: HttpTelemetrySource(config.endpoint, timeout=http_timeout)
        )
        self._lock = threading.Lock()
        self._accessories: Dict[str, Accessory] = {}
        self._registered: set = set()
        self._pollers: Dict[str, SensorPoller] = {}

    @property
    def accessories(self) -> List[Accessory]:
        with self._lock:
            return list(self._accessories.values())

    @property
    def pollers(self) -> List[SensorPoller]:
        with self._lock:
            return list(self._pollers.values())

    def get_poller(self, uuid: str) -> Optional[SensorPoller]:
        with self._lock:
            return self._pollers.get(uuid)

    def get_accessory(self, uuid: str) -> Optional[Accessory]:
        with self._lock:
            return self._accessories.get(uuid)

    def is_registered(self, uuid: str) -> bool:
        with self._lock:
            return uuid in self._registered

    def configure_accessory(self, accessory: Accessory) -> None:
        """Restore an accessory known from a previous run."""
        logger.debug("Loading accessory from cache: %s", accessory.display_name)
        with self._lock:
            self._accessories[accessory.uuid] = accessory
            self._registered.add(accessory.uuid)

    def start(self, configs: Iterable[SensorConfig]) -> List[SensorPoller]:
        pollers = []
        for config in configs:
            logger.info("Initializing sensor (%s) with metrics endpoint: %s", config.name, config.endpoint)
            pollers.append(self.add_sensor(config))
        logger.info("Did finish launching with %d sensor(s)", len(pollers))
        return pollers

    def add_sensor(self, config: SensorConfig, autostart: bool = True) -> SensorPoller:
        uuid = config.uuid
        with self._lock:
            accessory = self._accessories.get(uuid)
            previous = self._pollers.pop(uuid, None)

        if previous is not None:
            logger.info("Replacing running poller for %s", accessory.display_name if accessory else uuid)
            previous.stop()

        if accessory is not None:
            logger.info("Restoring existing accessory from cache: %s", accessory.display_name)
        else:
            logger.info("Adding new accessory for metrics endpoint: %s", config.endpoint)
            accessory = Accessory.for_config(config)

        poller = SensorPoller(
            config,
            self._make_push(accessory),
            source=self._source_factory(config),
            on_register=lambda cfg: self._register(accessory),
            autostart=autostart,
        )
        with self._lock:
            self._pollers[uuid] = poller
        return poller

    def stop(self, join: bool = True, timeout: Optional[float] = 5.0) -> None:
        with self._lock:
            pollers = list(self._pollers.values())
            self._pollers.clear()
        for poller in pollers:
            poller.stop(join=join, timeout=timeout)
        logger.info("Stopped %d poller(s)", len(pollers))

    def _register(self, accessory: Accessory) -> None:
        with self._lock:
            self._accessories[accessory.uuid] = accessory
            if accessory.uuid in self._registered:
                return
            self._registered.add(accessory.uuid)
        logger.info("Registered accessory %s", accessory.display_name)

    def _make_push(self, accessory: Accessory):
        def push(field: str, value: Any) -> None:
            accessory.update_characteristic(field, value)
            for sink in self._push_sinks:
                try:
                    sink(accessory.uuid, field, value)
                except Exception:
                    logger.exception("Push sink failed for %s on %s", field, accessory.display_name)

        return push

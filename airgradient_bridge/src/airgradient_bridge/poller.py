import logging
import threading
from typing import Callable, Optional

from airgradient_bridge.http_source import HttpTelemetrySource
from airgradient_core.domain.classification import (
    CO2_ABNORMAL_THRESHOLD_PPM,
    classify_air_quality,
    classify_co2,
    is_number,
    validate_field,
)
from airgradient_core.domain.errors import FetchError, FieldValidationError, NoDataAvailable
from airgradient_core.domain.models import AirQualityBand, CO2Status, SensorConfig, TelemetrySnapshot
from airgradient_core.domain.ports import PushCallback, RegisterCallback, TelemetrySource

logger = logging.getLogger(__name__)


class RefreshThread(threading.Thread):
    """Runs ``cycle`` immediately, then again ``interval_s`` after each cycle ends.

    The wait only starts once the previous cycle has returned, so two cycles of
    the same thread never overlap. ``on_exit`` runs once the loop has ended.
    """

    daemon = True

    def __init__(
        self,
        name: str,
        interval_s: float,
        cycle: Callable[[], object],
        on_exit: Optional[Callable[[], object]] = None,
    ):
        super().__init__(name=name)
        self.interval_s = interval_s
        self.cycle = cycle
        self.on_exit = on_exit
        self.s_stop = threading.Event()

    def stop(self):
        self.s_stop.set()

    def run(self):
        logger.debug("Refresh thread %s started (interval %.3fs)", self.name, self.interval_s)
        try:
            while not self.s_stop.is_set():
                try:
                    self.cycle()
                except Exception:
                    logger.exception("Unexpected error in refresh cycle of %s", self.name)
                self.s_stop.wait(self.interval_s)
        finally:
            if self.on_exit is not None:
                self.on_exit()
        logger.debug("Refresh thread %s stopped", self.name)


class SensorPoller:
    """Keeps the latest telemetry of one AirGradient sensor and answers queries on it.

    Construction registers the sensor through ``on_register`` and starts a
    background refresh thread. Each successful fetch atomically replaces the
    cached snapshot and pushes every valid field through ``on_push``; failed
    fetches are logged and leave the snapshot untouched.

    Queries only read the cached snapshot and raise NoDataAvailable until the
    first fetch has succeeded.
    """

    def __init__(
        self,
        config: SensorConfig,
        on_push: PushCallback,
        *,
        source: Optional[TelemetrySource] = None,
        on_register: Optional[RegisterCallback] = None,
        http_timeout: Optional[float] = None,
        co2_threshold: float = CO2_ABNORMAL_THRESHOLD_PPM,
        autostart: bool = True,
    ):
        self._config = config
        self._on_push = on_push
        self._source = source or HttpTelemetrySource(config.endpoint, timeout=http_timeout)
        self._co2_threshold = co2_threshold

        self._lock = threading.Lock()
        self._snapshot: Optional[TelemetrySnapshot] = None

        self._thread = RefreshThread(
            name=f"poller-{config.name}",
            interval_s=config.polling_interval_s,
            cycle=self.refresh,
            on_exit=self._source.close,
        )

        if on_register is not None:
            on_register(config)

        if autostart:
            self.start()

    def __repr__(self) -> str:
        return f"SensorPoller({self._config.name!r}, {self._config.endpoint!r})"

    @property
    def config(self) -> SensorConfig:
        return self._config

    @property
    def snapshot(self) -> Optional[TelemetrySnapshot]:
        with self._lock:
            return self._snapshot

    @property
    def has_data(self) -> bool:
        return self.snapshot is not None

    @property
    def is_running(self) -> bool:
        return self._thread.is_alive() and not self._thread.s_stop.is_set()

    @property
    def stopped(self) -> bool:
        return self._thread.s_stop.is_set()

    def start(self) -> None:
        logger.info(
            "Starting poller for %s (%s) every %sms",
            self._config.name,
            self._config.endpoint,
            self._config.polling_interval_ms,
        )
        self._thread.start()

    def stop(self, join: bool = False, timeout: Optional[float] = None) -> None:
        """Cancel the refresh cycle. No fetch is started after this returns.

        A fetch already in flight finishes in the background and its result is
        discarded. The telemetry source is released when the thread exits, or
        right away when the thread never started. With ``join`` the call also
        waits for the thread to exit.
        """
        logger.info("Stopping poller for %s", self._config.name)
        with self._lock:
            self._thread.stop()
        if self._thread.ident is None:
            self._source.close()
        elif join and self._thread is not threading.current_thread():
            self._thread.join(timeout)

    def refresh(self) -> bool:
        """Run one fetch cycle. Returns True when the snapshot was updated."""
        try:
            snapshot = self._source.fetch()
        except FetchError as e:
            logger.error("Error fetching data from AirGradient API for %s: %s", self._config.name, e)
            return False

        with self._lock:
            if self._thread.s_stop.is_set():
                logger.debug("Poller for %s stopped, discarding fetched data", self._config.name)
                return False
            self._snapshot = snapshot
        logger.info("Data fetched successfully for %s: %s", self._config.name, snapshot)

        self._push(snapshot)
        return True

    def _push(self, snapshot: TelemetrySnapshot) -> None:
        fields = (
            ("pm25_density", snapshot.pm25_density),
            ("temperature", snapshot.temperature_celsius),
            ("co2_level", snapshot.co2_level),
            ("humidity", snapshot.relative_humidity_pct),
        )
        for field, raw in fields:
            try:
                value = validate_field(field, raw)
            except FieldValidationError as e:
                logger.warning("%s: %s", self._config.name, e)
                continue

            self._emit(field, value)
            if field == "pm25_density":
                self._emit("air_quality", classify_air_quality(value))
            elif field == "co2_level":
                self._emit("co2_status", classify_co2(value, self._co2_threshold))

        logger.info(
            "Updated characteristics - PM2.5: %s, CO2: %s, TEMP: %s, RHUM: %s",
            snapshot.pm25_density,
            snapshot.co2_level,
            snapshot.temperature_celsius,
            snapshot.relative_humidity_pct,
        )

    def _emit(self, field: str, value) -> None:
        try:
            self._on_push(field, value)
        except Exception:
            logger.exception("Push of %s failed for %s", field, self._config.name)

    def _require_snapshot(self) -> TelemetrySnapshot:
        snapshot = self.snapshot
        if snapshot is None:
            raise NoDataAvailable()
        return snapshot

    def _require_reading(self, field: str, value) -> float:
        # a reading the sensor sent as a non-number has no value to report
        if not is_number(value):
            raise NoDataAvailable(f"No numeric {field} available")
        return value

    def get_air_quality(self) -> AirQualityBand:
        return classify_air_quality(self.get_pm25_density())

    def get_pm25_density(self) -> float:
        return self._require_reading("pm25_density", self._require_snapshot().pm25_density)

    def get_temperature(self) -> float:
        return self._require_reading("temperature", self._require_snapshot().temperature_celsius)

    def get_co2_level(self) -> float:
        return self._require_reading("co2_level", self._require_snapshot().co2_level)

    def get_co2_status(self) -> CO2Status:
        return classify_co2(self.get_co2_level(), self._co2_threshold)

    def get_humidity(self) -> float:
        return self._require_reading("humidity", self._require_snapshot().relative_humidity_pct)

"""
Canonical entry point for the airgradient_bridge package.

Usage:
    airgradient-bridge --environment production --config /etc/airgradient/sensors.json
    airgradient-bridge --once
"""

import argparse
import logging
import os
import signal
import sys
import threading
from typing import List, Optional

from airgradient_bridge.bridge import SensorBridge
from airgradient_bridge.mqtt_publisher import MQTTPublisher, MQTTPushSink
from airgradient_bridge.sensors_config import load_sensor_configs
from airgradient_core.config.environments import Settings, get_settings
from airgradient_core.domain.errors import AirGradientError, NoDataAvailable

log = logging.getLogger(__name__)


def setup_logging(config: Settings) -> None:
    """Set up logging configuration."""
    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(message)s",
    )


def make_push_sinks(config: Settings) -> List[MQTTPushSink]:
    if not config.MQTT_BROKER:
        return []
    publisher = MQTTPublisher(
        host=config.MQTT_BROKER,
        port=config.MQTT_PORT,
        client_id=config.MQTT_CLIENT_ID,
    )
    return [MQTTPushSink(publisher, prefix=config.MQTT_TOPIC_PREFIX)]


def format_poller(poller) -> str:
    try:
        return (
            f"{poller.config.name}: "
            f"air_quality={poller.get_air_quality().name} "
            f"pm2.5={poller.get_pm25_density()} "
            f"co2={poller.get_co2_level()} ({poller.get_co2_status().name}) "
            f"temp={poller.get_temperature()} "
            f"rhum={poller.get_humidity()}"
        )
    except NoDataAvailable as e:
        return f"{poller.config.name}: {e}"


def run_once(bridge: SensorBridge, configs) -> int:
    """Refresh every sensor once in the foreground and print the values."""
    failures = 0
    for config in configs:
        poller = bridge.add_sensor(config, autostart=False)
        if not poller.refresh():
            failures += 1
        print(format_poller(poller))
    bridge.stop()
    return 1 if failures else 0


def run_forever(bridge: SensorBridge, configs) -> None:
    shutdown = threading.Event()

    def sigterm_handler(signum, frame):
        log.info("Received shutdown signal, stopping bridge...")
        shutdown.set()

    signal.signal(signal.SIGTERM, sigterm_handler)
    signal.signal(signal.SIGINT, sigterm_handler)

    bridge.start(configs)
    while not shutdown.wait(1.0):
        pass
    bridge.stop()


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for airgradient_bridge."""
    parser = argparse.ArgumentParser(description="AirGradient bridge")
    parser.add_argument(
        "--environment",
        choices=["production", "development", "testing"],
        default=os.getenv("AIRGRADIENT_ENV", "development"),
        help="Environment to run in",
    )
    parser.add_argument("--config", help="Sensors config file (overrides SENSORS_CONFIG_FILE)")
    parser.add_argument(
        "--once", action="store_true", help="Poll every sensor once, print the values and exit"
    )

    args = parser.parse_args(argv)

    # Set environment variable for config
    os.environ["AIRGRADIENT_ENV"] = args.environment

    config = get_settings()
    setup_logging(config)

    sensors_file = args.config or config.SENSORS_CONFIG_FILE
    log.info("Starting AirGradient bridge...")
    log.info(f"Environment: {args.environment}")
    log.info(f"Sensors config: {sensors_file}")

    try:
        configs = load_sensor_configs(sensors_file, default_interval_ms=config.DEFAULT_POLLING_INTERVAL_MS)
    except AirGradientError as e:
        log.error(f"Could not load sensors config: {e}")
        return 2

    if not configs:
        log.warning("No sensors configured, nothing to do")
        return 0

    if args.once:
        return run_once(SensorBridge(http_timeout=config.HTTP_TIMEOUT_SEC), configs)

    sinks = make_push_sinks(config)
    bridge = SensorBridge(push_sinks=sinks, http_timeout=config.HTTP_TIMEOUT_SEC)
    try:
        run_forever(bridge, configs)
    finally:
        for sink in sinks:
            sink.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())

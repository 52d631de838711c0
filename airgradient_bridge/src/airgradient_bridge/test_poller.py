import math
import threading
import time

import pytest

from airgradient_bridge.poller import RefreshThread, SensorPoller
from airgradient_bridge.utils.mocks import (
    BlockingTelemetrySource,
    FakeTelemetrySource,
    make_snapshot,
)
from airgradient_core.domain.errors import HttpStatusError, NetworkError, NoDataAvailable, ParseError
from airgradient_core.domain.models import AirQualityBand, CO2Status, SensorConfig, TelemetrySnapshot

QUERIES = [
    "get_air_quality",
    "get_pm25_density",
    "get_temperature",
    "get_co2_level",
    "get_co2_status",
    "get_humidity",
]


def make_poller(source, pushed=None, config=None, **kwargs):
    config = config or SensorConfig(name="Office", endpoint="http://x/metrics", polling_interval_ms=1000)
    sink = pushed.append if pushed is not None else (lambda item: None)
    return SensorPoller(
        config,
        lambda field, value: sink((field, value)),
        source=source,
        autostart=False,
        **kwargs,
    )


@pytest.mark.parametrize("query", QUERIES)
def test_queries_fail_before_first_fetch(query):
    poller = make_poller(FakeTelemetrySource())
    with pytest.raises(NoDataAvailable, match="No data available"):
        getattr(poller, query)()
    assert not poller.has_data
    assert poller.snapshot is None


@pytest.mark.parametrize("query", QUERIES)
def test_queries_fail_when_every_fetch_failed(query):
    poller = make_poller(FakeTelemetrySource([NetworkError("http://x/metrics", "boom")]))
    assert poller.refresh() is False
    with pytest.raises(NoDataAvailable):
        getattr(poller, query)()


def test_successful_fetch_answers_every_query(fake_source, pushed):
    poller = make_poller(fake_source, pushed)

    assert poller.refresh() is True

    assert poller.get_air_quality() is AirQualityBand.EXCELLENT
    assert poller.get_pm25_density() == 4
    assert poller.get_temperature() == 23.3
    assert poller.get_co2_level() == 763
    assert poller.get_co2_status() is CO2Status.NORMAL
    assert poller.get_humidity() == 37
    assert poller.has_data


def test_successful_fetch_pushes_every_field(fake_source, pushed):
    poller = make_poller(fake_source, pushed)
    poller.refresh()

    assert pushed == [
        ("pm25_density", 4.0),
        ("air_quality", AirQualityBand.EXCELLENT),
        ("temperature", 23.3),
        ("co2_level", 763.0),
        ("co2_status", CO2Status.NORMAL),
        ("humidity", 37.0),
    ]


@pytest.mark.parametrize(
    "failure",
    [
        NetworkError("http://x/metrics", "Name or service not known"),
        HttpStatusError("http://x/metrics", 503),
        ParseError("http://x/metrics", "response is not valid JSON"),
    ],
)
def test_failed_fetch_keeps_previous_values(failure, pushed):
    source = FakeTelemetrySource([make_snapshot(), failure])
    poller = make_poller(source, pushed)

    assert poller.refresh() is True
    before = poller.snapshot
    pushes_before = len(pushed)

    assert poller.refresh() is False

    assert poller.snapshot is before
    assert poller.get_air_quality() is AirQualityBand.EXCELLENT
    assert poller.get_co2_status() is CO2Status.NORMAL
    assert poller.get_temperature() == 23.3
    assert poller.get_humidity() == 37
    assert len(pushed) == pushes_before


def test_snapshot_replaced_whole_on_next_success():
    source = FakeTelemetrySource([make_snapshot(), make_snapshot(pm02=40, rco2=1500, atmp=19.5, rhum=60)])
    poller = make_poller(source)
    poller.refresh()
    poller.refresh()

    assert poller.get_air_quality() is AirQualityBand.FAIR
    assert poller.get_co2_status() is CO2Status.ABNORMAL
    assert poller.get_temperature() == 19.5
    assert poller.get_humidity() == 60


def test_non_finite_humidity_skips_only_humidity_push(pushed):
    poller = make_poller(FakeTelemetrySource([make_snapshot(rhum=math.nan)]), pushed)

    assert poller.refresh() is True

    fields = [field for field, _ in pushed]
    assert "humidity" not in fields
    assert fields == ["pm25_density", "air_quality", "temperature", "co2_level", "co2_status"]
    # the cache still holds the raw value of the same response
    assert math.isnan(poller.get_humidity())
    assert poller.get_temperature() == 23.3


def test_non_finite_pm25_skips_air_quality_push(pushed):
    poller = make_poller(FakeTelemetrySource([make_snapshot(pm02=math.inf)]), pushed)
    poller.refresh()

    fields = [field for field, _ in pushed]
    assert "pm25_density" not in fields
    assert "air_quality" not in fields
    assert poller.get_air_quality() is AirQualityBand.POOR


def test_invalid_field_logs_warning(caplog):
    poller = make_poller(FakeTelemetrySource([make_snapshot(rco2=math.nan)]))
    with caplog.at_level("WARNING"):
        poller.refresh()
    assert "Invalid co2_level value: nan" in caplog.text


def test_failing_push_callback_does_not_stop_update():
    seen = []

    def on_push(field, value):
        if field == "temperature":
            raise RuntimeError("downstream is gone")
        seen.append(field)

    poller = SensorPoller(
        SensorConfig(name="Office", endpoint="http://x/metrics"),
        on_push,
        source=FakeTelemetrySource([make_snapshot()]),
        autostart=False,
    )

    assert poller.refresh() is True
    assert seen == ["pm25_density", "air_quality", "co2_level", "co2_status", "humidity"]
    assert poller.get_temperature() == 23.3


def test_custom_co2_threshold(pushed):
    poller = make_poller(FakeTelemetrySource([make_snapshot(rco2=1100)]), pushed, co2_threshold=1000)
    poller.refresh()
    assert poller.get_co2_status() is CO2Status.ABNORMAL
    assert ("co2_status", CO2Status.ABNORMAL) in pushed


def test_pollers_keep_independent_caches():
    a = make_poller(
        FakeTelemetrySource([make_snapshot(pm02=4)]),
        config=SensorConfig(name="A", endpoint="http://a/metrics", polling_interval_ms=1000),
    )
    b = make_poller(
        FakeTelemetrySource([make_snapshot(pm02=200)]),
        config=SensorConfig(name="B", endpoint="http://b/metrics", polling_interval_ms=1000),
    )

    a.refresh()
    assert a.get_air_quality() is AirQualityBand.EXCELLENT
    with pytest.raises(NoDataAvailable):
        b.get_air_quality()

    b.refresh()
    assert a.get_pm25_density() == 4
    assert b.get_air_quality() is AirQualityBand.POOR


def test_on_register_called_once_at_construction():
    registered = []
    config = SensorConfig(name="Office", endpoint="http://x/metrics")

    SensorPoller(
        config,
        lambda field, value: None,
        source=FakeTelemetrySource(),
        on_register=registered.append,
        autostart=False,
    )

    assert registered == [config]


def test_refresh_after_stop_discards_result():
    source = FakeTelemetrySource([make_snapshot()])
    poller = make_poller(source)
    poller.stop()

    assert poller.refresh() is False
    assert poller.snapshot is None
    assert source.closed


def test_example_scenario_with_thread():
    """First fetch succeeds, the following ones fail; values stay put."""
    source = FakeTelemetrySource([make_snapshot(), NetworkError("http://x/metrics", "unreachable")])
    config = SensorConfig(name="Office", endpoint="http://x/metrics", polling_interval_ms=50)
    poller = SensorPoller(config, lambda field, value: None, source=source)

    try:
        time.sleep(0.3)
        assert source.calls >= 3
        assert poller.get_air_quality() is AirQualityBand.EXCELLENT
        assert poller.get_co2_status() is CO2Status.NORMAL
        assert poller.get_temperature() == 23.3
        assert poller.get_humidity() == 37
    finally:
        poller.stop(join=True, timeout=1.0)


def test_construction_does_not_wait_for_first_fetch():
    source = BlockingTelemetrySource([make_snapshot()])
    config = SensorConfig(name="Office", endpoint="http://x/metrics", polling_interval_ms=1000)

    poller = SensorPoller(config, lambda field, value: None, source=source)
    try:
        assert source.entered.wait(timeout=1.0)
        assert not poller.has_data
        assert poller.is_running

        source.release()
        deadline = time.time() + 1.0
        while not poller.has_data and time.time() < deadline:
            time.sleep(0.01)
        assert poller.get_pm25_density() == 4
    finally:
        poller.stop(join=True, timeout=1.0)


def test_permanent_failure_retries_at_fixed_interval():
    source = FakeTelemetrySource()  # every fetch raises NetworkError
    config = SensorConfig(name="Office", endpoint="http://x/metrics", polling_interval_ms=50)
    poller = SensorPoller(config, lambda field, value: None, source=source)

    time.sleep(0.3)
    poller.stop(join=True, timeout=1.0)

    assert source.calls >= 3
    assert not poller.has_data


def test_stop_prevents_further_fetches():
    source = FakeTelemetrySource([make_snapshot()])
    config = SensorConfig(name="Office", endpoint="http://x/metrics", polling_interval_ms=50)
    poller = SensorPoller(config, lambda field, value: None, source=source)

    time.sleep(0.15)
    poller.stop(join=True, timeout=1.0)
    calls = source.calls

    time.sleep(0.2)
    assert source.calls == calls
    assert not poller.is_running
    assert source.closed


def test_in_flight_fetch_discarded_after_stop():
    source = BlockingTelemetrySource([make_snapshot()])
    config = SensorConfig(name="Office", endpoint="http://x/metrics", polling_interval_ms=1000)
    poller = SensorPoller(config, lambda field, value: None, source=source)

    assert source.entered.wait(timeout=1.0)
    poller.stop()
    source.release()
    poller.stop(join=True, timeout=1.0)

    assert poller.snapshot is None
    assert source.calls == 1


def test_refresh_thread_survives_unexpected_errors():
    calls = []

    def cycle():
        calls.append(time.time())
        raise ValueError("bug")

    thread = RefreshThread(name="test", interval_s=0.05, cycle=cycle)
    thread.start()
    time.sleep(0.2)
    thread.stop()
    thread.join(timeout=1.0)

    assert len(calls) >= 2
    assert not thread.is_alive()


def test_refresh_thread_does_not_run_when_stopped_before_start():
    calls = []
    thread = RefreshThread(name="test", interval_s=0.05, cycle=lambda: calls.append(1))
    thread.stop()
    thread.start()
    thread.join(timeout=1.0)
    assert calls == []


def test_wrong_typed_field_skips_only_that_push(pushed, caplog):
    snapshot = TelemetrySnapshot(
        pm25_density="4", co2_level=763.0, temperature_celsius=23.3, relative_humidity_pct=37.0
    )
    poller = make_poller(FakeTelemetrySource([snapshot]), pushed)

    with caplog.at_level("WARNING"):
        assert poller.refresh() is True

    assert pushed == [
        ("temperature", 23.3),
        ("co2_level", 763.0),
        ("co2_status", CO2Status.NORMAL),
        ("humidity", 37.0),
    ]
    assert "Invalid pm25_density value: '4'" in caplog.text


def test_wrong_typed_field_has_no_value_to_query():
    snapshot = TelemetrySnapshot(
        pm25_density=4.0, co2_level=None, temperature_celsius=23.3, relative_humidity_pct=37.0
    )
    poller = make_poller(FakeTelemetrySource([snapshot]))
    poller.refresh()

    with pytest.raises(NoDataAvailable, match="No numeric co2_level available"):
        poller.get_co2_level()
    with pytest.raises(NoDataAvailable):
        poller.get_co2_status()
    assert poller.get_air_quality() is AirQualityBand.EXCELLENT
    assert poller.get_temperature() == 23.3


def test_stop_without_join_closes_source_when_thread_exits():
    source = FakeTelemetrySource([make_snapshot()])
    config = SensorConfig(name="Office", endpoint="http://x/metrics", polling_interval_ms=1000)
    poller = SensorPoller(config, lambda field, value: None, source=source)
    assert source.fetched.wait(timeout=1.0)

    poller.stop()

    deadline = time.time() + 1.0
    while not source.closed and time.time() < deadline:
        time.sleep(0.01)
    assert source.closed


def test_refresh_thread_runs_on_exit_after_loop():
    exited = []
    thread = RefreshThread(name="test", interval_s=0.05, cycle=lambda: None, on_exit=lambda: exited.append(1))
    thread.start()
    thread.stop()
    thread.join(timeout=1.0)
    assert exited == [1]


def test_fetch_completing_after_stop_is_not_cached(pushed):
    source = BlockingTelemetrySource([make_snapshot()])
    poller = make_poller(source, pushed)
    worker = threading.Thread(target=poller.refresh)
    worker.start()
    assert source.entered.wait(timeout=1.0)

    poller.stop()
    source.release()
    worker.join(timeout=1.0)

    assert poller.snapshot is None
    assert pushed == []

from __future__ import annotations

import ctypes
import logging
import threading
import time

from services.sensors import HardwareSensor, SensorData, SyntheticSensor, build_sensor
from settings import Settings


class FakeDriver:
    """Stands in for ``getSensorData``: fills the struct and tracks overlapping calls."""

    def __init__(self, rc: int = 0, temperature: float = 21.5, pressure: float = 101325.0, delay: float = 0.0):
        self.rc = rc
        self.temperature = temperature
        self.pressure = pressure
        self.delay = delay
        self.calls = 0
        self.active = 0
        self.peak = 0
        self._lock = threading.Lock()

    def __call__(self, ptr) -> int:
        with self._lock:
            self.calls += 1
            self.active += 1
            self.peak = max(self.peak, self.active)
        if self.delay:
            time.sleep(self.delay)
        data = ctypes.cast(ptr, ctypes.POINTER(SensorData)).contents
        data.temperature = self.temperature
        data.pressure = self.pressure
        with self._lock:
            self.active -= 1
        return self.rc


def test_synthetic_sensor_range_and_temperature() -> None:
    sensor = SyntheticSensor(seed=7)

    readings = [sensor.read() for _ in range(50)]

    assert all(0.0 <= reading.pressure < 1.0 for reading in readings)
    assert all(reading.temperature == 70.0 for reading in readings)


def test_synthetic_sensor_is_deterministic_with_seed() -> None:
    first_sensor, second_sensor = SyntheticSensor(seed=42), SyntheticSensor(seed=42)

    first = [first_sensor.read().pressure for _ in range(3)]
    second = [second_sensor.read().pressure for _ in range(3)]

    assert first == second


def test_hardware_sensor_without_library_reads_zero(caplog) -> None:
    sensor = HardwareSensor("libdoes-not-exist-baro.so")

    reading = sensor.read()

    assert reading.pressure == 0.0
    assert reading.temperature == 0.0
    assert any("Unable to load sensor library" in record.getMessage() for record in caplog.records)


def test_hardware_sensor_copies_driver_values(monkeypatch) -> None:
    driver = FakeDriver(temperature=21.5, pressure=101325.0)
    monkeypatch.setattr(HardwareSensor, "_load", lambda self: driver)

    reading = HardwareSensor().read()

    assert reading.temperature == 21.5
    assert reading.pressure == 101325.0
    assert driver.calls == 1


def test_hardware_sensor_error_code_reads_zero(monkeypatch, caplog) -> None:
    driver = FakeDriver(rc=-2)
    monkeypatch.setattr(HardwareSensor, "_load", lambda self: driver)
    caplog.set_level(logging.WARNING, logger="services.sensors")

    reading = HardwareSensor().read()

    assert reading.temperature == 0.0
    assert reading.pressure == 0.0
    assert any("error code -2" in record.getMessage() for record in caplog.records)


def test_hardware_sensors_never_call_driver_concurrently(monkeypatch) -> None:
    driver = FakeDriver(delay=0.02)
    monkeypatch.setattr(HardwareSensor, "_load", lambda self: driver)
    sensors = [HardwareSensor() for _ in range(3)]

    def _read_many(sensor: HardwareSensor) -> None:
        for _ in range(5):
            sensor.read()

    threads = [threading.Thread(target=_read_many, args=(sensor,)) for sensor in sensors]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=5)

    assert driver.calls == 15
    assert driver.peak == 1


def test_build_sensor_selects_source_from_settings() -> None:
    assert isinstance(build_sensor(Settings(sensor_source="synthetic")), SyntheticSensor)
    hardware = build_sensor(Settings(sensor_source="hardware", sensor_library="librsd.so"))
    assert isinstance(hardware, HardwareSensor)

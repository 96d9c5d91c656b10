from __future__ import annotations

import json
import threading
import time
from typing import List

import pytest

from models.records import SampleReading
from services.notifier import NotificationClient
from services.sensors import HardwareSensor, SensorSource, SyntheticSensor
from services.supervisor import Supervisor, UnknownWorkerError, build_default_supervisor
from services.worker import header_entry_count, is_header
from settings import Settings


class ConstantSensor(SensorSource):
    def __init__(self, pressure: float) -> None:
        self.pressure = pressure

    def read(self) -> SampleReading:
        return SampleReading(temperature=21.0, pressure=self.pressure)


class SilentNotifier:
    def __init__(self) -> None:
        self.messages: List[str] = []

    def notify(self, message: str) -> bool:
        self.messages.append(message)
        return True


class StubExporter:
    def __init__(self, result: bool = True) -> None:
        self.payloads: List[str] = []
        self.result = result

    def export_data(self, json_text: str) -> bool:
        self.payloads.append(json_text)
        return self.result


def _settings(**overrides) -> Settings:
    base = Settings(
        sample_period_seconds=0.01,
        ticks_per_sample=1,
        report_every_n_samples=1000,
        history_capacity=20,
    )
    return base.with_overrides(**overrides)


def _supervisor(settings: Settings, exporter: StubExporter | None = None) -> Supervisor:
    return Supervisor(
        settings=settings,
        sensor_factory=lambda worker_id: ConstantSensor(pressure=float(worker_id[-1])),
        notifier=SilentNotifier(),
        exporter=exporter or StubExporter(),
        poll_interval=0.01,
    )


def _wait_for_samples(supervisor: Supervisor, worker_id: str, count: int, timeout: float = 5.0) -> None:
    worker = supervisor.get_worker(worker_id)
    deadline = time.monotonic() + timeout
    while worker.samples_taken < count:
        if time.monotonic() > deadline:
            pytest.fail(f"{worker_id} took only {worker.samples_taken} samples")
        time.sleep(0.01)


def test_disabled_workers_are_never_spawned() -> None:
    supervisor = _supervisor(_settings(sensor2_enabled=False))

    assert supervisor.worker_ids == ["sensor1", "sensor3"]
    assert supervisor.send_command("sensor2", "dump") is False
    assert supervisor.drain_data("sensor2") == []
    with pytest.raises(UnknownWorkerError):
        supervisor.get_worker("sensor2")


def test_drain_is_empty_until_worker_responds() -> None:
    supervisor = _supervisor(_settings())

    assert supervisor.send_command("sensor1", "dump") is True
    assert supervisor.drain_data("sensor1") == []


def test_collect_report_returns_header_and_entries() -> None:
    supervisor = _supervisor(_settings())
    supervisor.start()
    try:
        _wait_for_samples(supervisor, "sensor1", 3)
        lines = supervisor.collect_report("sensor1", timeout=5.0)
    finally:
        supervisor.shutdown()

    assert lines
    assert is_header(lines[0])
    assert header_entry_count(lines[0]) == len(lines) - 1
    assert len(lines) - 1 >= 3
    assert all(entry.startswith("1.00 ") for entry in lines[1:])


def test_workers_keep_separate_histories() -> None:
    supervisor = _supervisor(_settings())
    supervisor.start()
    try:
        _wait_for_samples(supervisor, "sensor1", 1)
        _wait_for_samples(supervisor, "sensor3", 1)
        first = supervisor.collect_report("sensor1", timeout=5.0)
        third = supervisor.collect_report("sensor3", timeout=5.0)
    finally:
        supervisor.shutdown()

    assert all(entry.startswith("1.00 ") for entry in first[1:])
    assert all(entry.startswith("3.00 ") for entry in third[1:])


def test_export_ships_report_as_json() -> None:
    exporter = StubExporter()
    supervisor = _supervisor(_settings(), exporter=exporter)
    supervisor.start()
    try:
        _wait_for_samples(supervisor, "sensor1", 2)
        assert supervisor.export("sensor1", timeout=5.0) is True
    finally:
        supervisor.shutdown()

    payload = json.loads(exporter.payloads[0])
    assert payload["sensor_id"] == "sensor1"
    assert is_header(payload["header"])
    assert len(payload["entries"]) == header_entry_count(payload["header"])


def test_export_fails_when_nothing_arrives() -> None:
    exporter = StubExporter()
    supervisor = _supervisor(_settings())
    supervisor.exporter = exporter

    assert supervisor.export("sensor1", timeout=0.05) is False
    assert exporter.payloads == []


def test_shutdown_stops_all_workers() -> None:
    supervisor = _supervisor(_settings())
    supervisor.start()
    supervisor.shutdown()

    assert all(not entry["running"] for entry in supervisor.status())


def test_build_default_supervisor_wires_configured_collaborators() -> None:
    settings = _settings(sensor1_enabled=False, sensor3_enabled=False)
    try:
        supervisor = build_default_supervisor(settings)
        assert build_default_supervisor(settings) is supervisor
        assert supervisor.worker_ids == ["sensor2"]
        worker = supervisor.get_worker("sensor2")
        assert isinstance(worker.sensor, SyntheticSensor)
        assert isinstance(supervisor.notifier, NotificationClient)
        assert supervisor.exporter.port == settings.export_port
    finally:
        build_default_supervisor.cache_clear()


def test_hardware_workers_take_turns_on_the_driver(monkeypatch) -> None:
    counts = {"active": 0, "peak": 0, "calls": 0}
    guard = threading.Lock()

    def _driver(ptr) -> int:
        with guard:
            counts["calls"] += 1
            counts["active"] += 1
            counts["peak"] = max(counts["peak"], counts["active"])
        time.sleep(0.02)
        with guard:
            counts["active"] -= 1
        return 0

    monkeypatch.setattr(HardwareSensor, "_load", lambda self: _driver)
    settings = _settings(sensor_source="hardware")
    try:
        supervisor = build_default_supervisor(settings)
        assert len(supervisor.worker_ids) == 3
        supervisor.start()
        for worker_id in supervisor.worker_ids:
            _wait_for_samples(supervisor, worker_id, 3)
        supervisor.shutdown()
    finally:
        build_default_supervisor.cache_clear()

    assert counts["calls"] >= 9
    assert counts["peak"] == 1

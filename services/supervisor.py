"""Worker orchestration: spawning, dump commands and data relay."""

from __future__ import annotations

import json
import logging
import threading
import time
from datetime import datetime, timezone
from functools import lru_cache
from typing import Callable, Dict, List, Optional

from services.channels import ChannelClosedError, WorkerChannels
from services.exporter import TcpExporter
from services.notifier import NotificationClient
from services.sensors import SensorSource, build_sensor
from services.worker import DUMP_COMMAND, Notifier, SensorWorker, header_entry_count
from settings import Settings, get_settings

logger = logging.getLogger(__name__)

SensorFactory = Callable[[str], SensorSource]


class UnknownWorkerError(KeyError):
    """Raised when a worker id is not running under this supervisor."""


class Supervisor:
    """Starts one worker per enabled sensor and holds the far end of its channels."""

    def __init__(
        self,
        settings: Settings,
        sensor_factory: SensorFactory,
        notifier: Notifier,
        exporter: Optional[TcpExporter] = None,
        poll_interval: float = 0.05,
    ) -> None:
        self.settings = settings
        self.notifier = notifier
        self.exporter = exporter or TcpExporter.from_settings(settings)
        self.poll_interval = poll_interval
        self._stop_event = threading.Event()
        self._channels: Dict[str, WorkerChannels] = {}
        self._workers: Dict[str, SensorWorker] = {}
        self._pending: Dict[str, List[str]] = {}
        self._lock = threading.Lock()
        self._started = False

        for worker_id in settings.enabled_sensors():
            channels = WorkerChannels(worker_id)
            self._channels[worker_id] = channels
            self._pending[worker_id] = []
            self._workers[worker_id] = SensorWorker(
                worker_id=worker_id,
                sensor=sensor_factory(worker_id),
                channels=channels,
                settings=settings,
                notifier=notifier,
                stop_event=self._stop_event,
            )

    @property
    def worker_ids(self) -> List[str]:
        return list(self._workers)

    def get_worker(self, worker_id: str) -> SensorWorker:
        worker = self._workers.get(worker_id)
        if worker is None:
            raise UnknownWorkerError(f"Worker {worker_id!r} is not running.")
        return worker

    def start(self) -> None:
        if self._started:
            return
        for worker in self._workers.values():
            worker.start()
        self._started = True
        logger.info("Supervisor started %d worker(s): %s", len(self._workers), ", ".join(self._workers) or "none")

    def shutdown(self, timeout: float = 2.0) -> None:
        self._stop_event.set()
        for worker in self._workers.values():
            worker.stop(timeout)
        for channels in self._channels.values():
            channels.data_out.close()
        close = getattr(self.notifier, "close", None)
        if callable(close):
            close()
        self._started = False

    def status(self) -> List[Dict[str, object]]:
        return [
            {
                "worker_id": worker_id,
                "state": worker.state.value,
                "running": worker.running,
                "samples_taken": worker.samples_taken,
                "reports_sent": worker.reports_sent,
                "history_size": len(worker.history),
            }
            for worker_id, worker in self._workers.items()
        ]

    def send_command(self, worker_id: str, command: str = DUMP_COMMAND) -> bool:
        channels = self._channels.get(worker_id)
        if channels is None:
            logger.warning("Command for unknown or disabled worker", extra={"sensor_id": worker_id})
            return False
        try:
            channels.command_in.send(command)
        except ChannelClosedError as exc:
            logger.error("Error on command send: %s", exc, extra={"sensor_id": worker_id})
            return False
        logger.debug("Command queued", extra={"sensor_id": worker_id, "command": command})
        return True

    def drain_data(self, worker_id: str) -> List[str]:
        """Return every data line received from ``worker_id`` so far, without blocking."""
        channels = self._channels.get(worker_id)
        if channels is None:
            return []
        with self._lock:
            lines = self._pending[worker_id] + channels.data_out.drain()
            self._pending[worker_id] = []
        return lines

    def collect_report(self, worker_id: str, timeout: float = 10.0) -> List[str]:
        """Send a dump command and wait for the header plus every announced entry.

        Lines already waiting on the data channel are discarded first. Returns
        whatever arrived if ``timeout`` passes before the dump is complete.
        """
        self.get_worker(worker_id)
        self.drain_data(worker_id)
        if not self.send_command(worker_id, DUMP_COMMAND):
            return []

        deadline = time.monotonic() + timeout
        received: List[str] = []
        expected: Optional[int] = None
        while time.monotonic() <= deadline:
            received.extend(self.drain_data(worker_id))
            if received and expected is None:
                expected = header_entry_count(received[0])
            if expected is not None and len(received) >= expected + 1:
                with self._lock:
                    self._pending[worker_id] = received[expected + 1:] + self._pending[worker_id]
                return received[: expected + 1]
            time.sleep(self.poll_interval)
        logger.warning(
            "Timed out waiting for history dump",
            extra={"sensor_id": worker_id, "entry_count": len(received)},
        )
        return received

    def export(self, worker_id: str, timeout: float = 10.0) -> bool:
        lines = self.collect_report(worker_id, timeout=timeout)
        if not lines:
            return False
        payload = json.dumps(
            {
                "sensor_id": worker_id,
                "exported_at": datetime.now(timezone.utc).isoformat(),
                "header": lines[0],
                "entries": lines[1:],
            }
        )
        return self.exporter.export_data(payload)


@lru_cache
def build_default_supervisor(settings: Optional[Settings] = None) -> Supervisor:
    """Factory that wires the supervisor with the configured sensor source and webhook."""
    settings = settings or get_settings()
    return Supervisor(
        settings=settings,
        sensor_factory=lambda _worker_id: build_sensor(settings),
        notifier=NotificationClient(settings),
        exporter=TcpExporter.from_settings(settings),
    )

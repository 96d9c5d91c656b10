"""Per-sensor sampling loop with a command/data channel pair."""

from __future__ import annotations

import logging
import re
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime
from enum import Enum
from typing import Optional, Protocol

from logging_config import TRACE
from models.records import SampleReading
from services.aggregator import TrendAggregator, TrendReport
from services.channels import ChannelClosedError, WorkerChannels
from services.history import RingHistory
from services.sensors import SensorSource
from settings import Settings

logger = logging.getLogger(__name__)

DUMP_COMMAND = "dump"
_HEADER_PREFIX = "#"
_ENTRY_COUNT = re.compile(r"\bentries=(\d+)\b")


class Notifier(Protocol):
    def notify(self, message: str) -> bool: ...


class WorkerState(str, Enum):
    """Phases of one worker tick."""

    idle = "idle"
    sampling = "sampling"
    reporting = "reporting"
    command_check = "command_check"
    sleeping = "sleeping"


def is_header(line: str) -> bool:
    return line.startswith(_HEADER_PREFIX)


def header_entry_count(line: str) -> Optional[int]:
    """Number of history entries announced by a dump header, if ``line`` is one."""
    if not is_header(line):
        return None
    match = _ENTRY_COUNT.search(line)
    return int(match.group(1)) if match else None


class SensorWorker:
    """Owns one sensor's history and trend state and runs its tick loop.

    Each tick samples when due, dispatches a notification when the report
    window closes, then answers every pending command with a dump of the
    history. Nothing raised inside a tick stops the loop.
    """

    def __init__(
        self,
        worker_id: str,
        sensor: SensorSource,
        channels: WorkerChannels,
        settings: Settings,
        notifier: Notifier,
        stop_event: Optional[threading.Event] = None,
    ) -> None:
        self.worker_id = worker_id
        self.sensor = sensor
        self.channels = channels
        self.notifier = notifier
        self.period = settings.sample_period_seconds
        self.ticks_per_sample = settings.ticks_per_sample
        self.history = RingHistory(settings.history_capacity)
        self.aggregator = TrendAggregator(settings.report_every_n_samples)
        self.state = WorkerState.idle
        self.tick_count = 0
        self.samples_taken = 0
        self.reports_sent = 0
        self._stop_event = stop_event or threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._notify_executor = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix=f"{worker_id}-notify"
        )
        self._pending_notification: Optional[Future[bool]] = None

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(target=self.run, name=f"worker-{self.worker_id}", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
        self._notify_executor.shutdown(wait=False, cancel_futures=True)

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run(self) -> None:
        logger.info("Worker starting", extra={"sensor_id": self.worker_id})
        while not self._stop_event.is_set():
            try:
                self.step()
            except Exception:  # noqa: BLE001 - a bad tick must not kill the worker
                logger.exception(
                    "Worker tick failed", extra={"sensor_id": self.worker_id, "tick": self.tick_count}
                )
            self.state = WorkerState.sleeping
            self._stop_event.wait(self.period)
            self.state = WorkerState.idle
        logger.info("Worker stopped", extra={"sensor_id": self.worker_id})

    def step(self) -> None:
        """Run one tick without sleeping."""
        if self.tick_count % self.ticks_per_sample == 0:
            report = self.sample()
            if report is not None:
                self.state = WorkerState.reporting
                self.dispatch_report(report)
        self.state = WorkerState.command_check
        self.handle_commands()
        self.tick_count += 1

    def sample(self) -> Optional[TrendReport]:
        self.state = WorkerState.sampling
        reading: SampleReading = self.sensor.read().validated()
        logger.log(
            TRACE,
            "Sensor read",
            extra={
                "sensor_id": self.worker_id,
                "tick": self.tick_count,
                "pressure": reading.pressure,
                "temperature": reading.temperature,
            },
        )
        record, report = self.aggregator.add_sample(reading, self._now())
        self.history.add(record)
        self.samples_taken += 1
        logger.debug("Recorded sample: %s", record, extra={"sensor_id": self.worker_id})
        return report

    def dispatch_report(self, report: TrendReport) -> Optional[Future[bool]]:
        """Hand the alert to the notification thread, keeping at most one in flight."""
        pending = self._pending_notification
        if pending is not None and not pending.done():
            logger.warning(
                "Previous notification still in flight; dropping report",
                extra={"sensor_id": self.worker_id, "trend": report.trend},
            )
            return None
        logger.info(
            "Report window closed: %s",
            report.message,
            extra={"sensor_id": self.worker_id, "trend": report.trend},
        )
        future = self._notify_executor.submit(self._send_notification, report.message)
        self._pending_notification = future
        self.reports_sent += 1
        return future

    def handle_commands(self) -> int:
        handled = 0
        while True:
            command = self.channels.command_in.try_recv()
            if command is None:
                return handled
            if command.strip().lower() != DUMP_COMMAND:
                logger.debug(
                    "Treating unknown command as dump", extra={"sensor_id": self.worker_id, "command": command}
                )
            self.dump()
            handled += 1

    def dump(self) -> None:
        entries = self.history.all()
        header = (
            f"{_HEADER_PREFIX} {self.worker_id} {self._now():%Y-%m-%d %H:%M} "
            f"entries={len(entries)} {self.aggregator.describe()}"
        )
        try:
            self.channels.data_out.send(header)
            for entry in entries:
                self.channels.data_out.send(entry)
        except ChannelClosedError as exc:
            logger.error("Error on data send: %s", exc, extra={"sensor_id": self.worker_id})
            return
        logger.debug("Sent history dump", extra={"sensor_id": self.worker_id, "entry_count": len(entries)})

    def _send_notification(self, message: str) -> bool:
        try:
            return self.notifier.notify(message)
        except Exception:  # noqa: BLE001 - notification failures are logged, never raised
            logger.exception("Notification failed", extra={"sensor_id": self.worker_id})
            return False

    def _now(self) -> datetime:
        return datetime.now().astimezone()

"""Trend aggregation logic for pressure readings."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from models.records import SampleReading, celsius_to_fahrenheit, format_record

# 0.0 doubles as "no value yet" for first/high/low, so a genuine zero reading
# at the start of a window is indistinguishable from an empty window.
UNSET = 0.0


@dataclass
class TrendState:
    """Running statistics for the current report window."""

    first_pressure: float = UNSET
    high_pressure: float = UNSET
    low_pressure: float = UNSET
    previous_pressure: float = UNSET
    count_since_report: int = 0

    @property
    def first_is_set(self) -> bool:
        return self.first_pressure != UNSET

    @property
    def low_is_set(self) -> bool:
        return self.low_pressure != UNSET


@dataclass
class TrendReport:
    """Summary emitted when a report window closes."""

    trend: str
    delta: float
    current: float
    high: float
    low: float
    reported_at: datetime

    @property
    def message(self) -> str:
        return (
            f"Today at {self.reported_at:%H:%M} the pressure is {self.trend} "
            f"(delta: {self.delta:.2f} current: {self.current:.2f} "
            f"max {self.high:.2f} min {self.low:.2f})"
        )


def classify_trend(delta: float) -> str:
    # A flat window counts as falling.
    return "rising" if delta > 0.0 else "falling"


class TrendAggregator:
    """Folds samples into ``TrendState`` and closes a report every N samples."""

    def __init__(self, report_every_n_samples: int = 12) -> None:
        if report_every_n_samples <= 0:
            raise ValueError("report_every_n_samples must be positive.")
        self.report_every_n_samples = report_every_n_samples
        self.state = TrendState()

    def add_sample(self, reading: SampleReading, now: datetime) -> tuple[str, Optional[TrendReport]]:
        """Fold one validated reading in.

        Returns the formatted history record for the sample and, when this
        sample completes the report window, the ``TrendReport`` for it.
        """
        state = self.state
        pressure = reading.pressure

        if not state.first_is_set:
            state.first_pressure = pressure
        if pressure > state.high_pressure:
            state.high_pressure = pressure
        if not state.low_is_set or pressure < state.low_pressure:
            state.low_pressure = pressure

        record = format_record(
            pressure=pressure,
            temperature_f=celsius_to_fahrenheit(reading.temperature),
            delta=pressure - state.previous_pressure,
            timestamp=now,
        )
        state.previous_pressure = pressure
        state.count_since_report += 1

        report: Optional[TrendReport] = None
        if state.count_since_report >= self.report_every_n_samples:
            report = self._close_window(pressure, now)
        return record, report

    def describe(self) -> str:
        state = self.state
        return (
            f"samples={state.count_since_report} first={state.first_pressure:.2f} "
            f"high={state.high_pressure:.2f} low={state.low_pressure:.2f} "
            f"previous={state.previous_pressure:.2f}"
        )

    def _close_window(self, current: float, now: datetime) -> TrendReport:
        state = self.state
        delta = current - state.first_pressure
        report = TrendReport(
            trend=classify_trend(delta),
            delta=delta,
            current=current,
            high=state.high_pressure,
            low=state.low_pressure,
            reported_at=now,
        )
        state.first_pressure = UNSET
        state.high_pressure = UNSET
        state.low_pressure = UNSET
        state.count_since_report = 0
        return report

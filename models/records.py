"""Domain models shared across services."""

from __future__ import annotations

import math
import sys
from dataclasses import dataclass
from datetime import datetime


@dataclass(slots=True)
class SampleReading:
    """A single temperature/pressure pair read from a sensor."""

    temperature: float
    pressure: float

    def validated(self) -> "SampleReading":
        return SampleReading(
            temperature=validate_reading(self.temperature),
            pressure=validate_reading(self.pressure),
        )


def validate_reading(value: float) -> float:
    """Coerce any non-normal float (NaN, infinities, subnormals) to 0.0."""
    value = float(value)
    if not math.isfinite(value) or 0.0 < abs(value) < sys.float_info.min:
        return 0.0
    return value


def celsius_to_fahrenheit(celsius: float) -> float:
    return celsius * 1.8 + 32


def format_record(
    pressure: float,
    temperature_f: float,
    delta: float,
    timestamp: datetime,
) -> str:
    """Render one history line: ``"<p> <tF> <delta> <YYYY-MM-DD HH:MM> (<epoch>)"``."""
    return (
        f"{pressure:.2f} {temperature_f:.2f} {delta:.2f} "
        f"{timestamp:%Y-%m-%d %H:%M} ({int(timestamp.timestamp())})"
    )

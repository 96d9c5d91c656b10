"""Sensor sources: the BMP388 driver library or a synthetic generator."""

from __future__ import annotations

import abc
import ctypes
import ctypes.util
import logging
import random
import threading
from typing import Optional

from models.records import SampleReading
from settings import Settings

logger = logging.getLogger(__name__)

SENSOR_API_OK = 0

# The driver keeps its device handle and bus address in process-wide statics,
# so only one getSensorData call may be on the bus at a time.
_DRIVER_LOCK = threading.Lock()


class SensorData(ctypes.Structure):
    _fields_ = [
        ("temperature", ctypes.c_double),
        ("pressure", ctypes.c_double),
    ]


class SensorSource(abc.ABC):
    """Anything that can produce one temperature/pressure reading on demand."""

    @abc.abstractmethod
    def read(self) -> SampleReading:
        """Return a reading; failures surface as zero values, never exceptions."""


class SyntheticSensor(SensorSource):
    """Random pressure in [0, 1) at a fixed 70.0 degrees, for running without hardware."""

    def __init__(self, seed: Optional[int] = None, temperature: float = 70.0) -> None:
        self._rng = random.Random(seed)
        self._temperature = temperature

    def read(self) -> SampleReading:
        return SampleReading(temperature=self._temperature, pressure=self._rng.random())


class HardwareSensor(SensorSource):
    """Calls ``getSensorData`` from the I2C driver shared library.

    Every instance shares one lock around the driver call, so several workers
    can each own a ``HardwareSensor`` without interleaving bus transactions.
    """

    def __init__(self, library: str = "librsd.so") -> None:
        self._library_name = library
        self._get_sensor_data = None

    def _load(self):
        if self._get_sensor_data is not None:
            return self._get_sensor_data
        path = ctypes.util.find_library(self._library_name.removeprefix("lib").split(".")[0])
        lib = ctypes.CDLL(path or self._library_name)
        func = lib.getSensorData
        func.argtypes = [ctypes.POINTER(SensorData)]
        func.restype = ctypes.c_int
        self._get_sensor_data = func
        return func

    def read(self) -> SampleReading:
        data = SensorData(0.0, 0.0)
        try:
            with _DRIVER_LOCK:
                rc = self._load()(ctypes.pointer(data))
        except (OSError, AttributeError) as exc:
            logger.error(
                "Unable to load sensor library",
                extra={"reason": str(exc)},
            )
            return SampleReading(temperature=0.0, pressure=0.0)
        if rc != SENSOR_API_OK:
            logger.warning("Sensor read returned error code %s", rc)
            return SampleReading(temperature=0.0, pressure=0.0)
        return SampleReading(temperature=data.temperature, pressure=data.pressure)


def build_sensor(settings: Settings, seed: Optional[int] = None) -> SensorSource:
    if settings.sensor_source == "hardware":
        return HardwareSensor(settings.sensor_library)
    return SyntheticSensor(seed=seed)

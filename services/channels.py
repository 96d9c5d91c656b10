"""Unbounded single-producer/single-consumer string channels."""

from __future__ import annotations

import queue
import threading
from dataclasses import dataclass, field
from typing import List, Optional


class ChannelClosedError(RuntimeError):
    """Raised when sending on a channel whose receiver has gone away."""


class Channel:
    """Unbounded queue of strings; only closing the receiver can fail a send."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._queue: "queue.SimpleQueue[str]" = queue.SimpleQueue()
        self._closed = threading.Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def close(self) -> None:
        self._closed.set()

    def send(self, item: str) -> None:
        if self._closed.is_set():
            raise ChannelClosedError(f"Receiver for channel {self.name!r} was dropped.")
        self._queue.put(item)

    def try_recv(self) -> Optional[str]:
        try:
            return self._queue.get_nowait()
        except queue.Empty:
            return None

    def drain(self) -> List[str]:
        items: List[str] = []
        while True:
            item = self.try_recv()
            if item is None:
                return items
            items.append(item)


@dataclass
class WorkerChannels:
    """Command-in and data-out channel pair shared by a worker and the supervisor."""

    worker_id: str
    command_in: Channel = field(init=False)
    data_out: Channel = field(init=False)

    def __post_init__(self) -> None:
        self.command_in = Channel(f"{self.worker_id}.command")
        self.data_out = Channel(f"{self.worker_id}.data")

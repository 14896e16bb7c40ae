#!/usr/bin/env python3
"""
Turn iio-sensor-proxy PropertiesChanged signals into orientation strings.

Repo source: sway-autorotate/tools/autorotate_watch.py

Signal bodies are handed over by the D-Bus dispatch thread through a bounded
delivery queue. When that queue is full the dispatch thread blocks, so a slow
consumer throttles bus message consumption instead of losing events.

The consumer channel is a rendezvous: after each put the watcher joins the
channel and only decodes the next body once the reaction loop has taken the
orientation (get + task_done).
"""

from __future__ import annotations

import queue
import threading
from collections.abc import Mapping, Sequence
from typing import Any

from autorotate_errors import DecodeError


ORIENTATION_PROPERTY = "AccelerometerOrientation"
DEFAULT_QUEUE_SIZE = 10


def strip_bus_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return value[1:-1]
    return value


def decode_orientation(body: Sequence[Any]) -> str:
    """
    Extract AccelerometerOrientation from a PropertiesChanged body.

    The body is (interface_name, changed_properties, invalidated_properties);
    only the changed mapping is inspected.
    """

    if not isinstance(body, Sequence) or isinstance(body, str) or len(body) < 2:
        raise DecodeError(f"unexpected signal body: {body!r}")
    changed = body[1]
    if not isinstance(changed, Mapping):
        raise DecodeError(f"changed properties is not a mapping: {type(changed).__name__}")
    if ORIENTATION_PROPERTY not in changed:
        raise DecodeError(f"{ORIENTATION_PROPERTY} not in changed properties")
    value = changed[ORIENTATION_PROPERTY]
    if not isinstance(value, str):
        raise DecodeError(f"{ORIENTATION_PROPERTY} is not a string: {type(value).__name__}")
    return strip_bus_quotes(str(value))


class OrientationWatcher:
    def __init__(self, channel: queue.Queue[str], *, queue_size: int = DEFAULT_QUEUE_SIZE) -> None:
        if queue_size < 1:
            raise ValueError("queue_size must be >= 1")
        self.channel = channel
        self.delivery: queue.Queue[tuple[Any, ...]] = queue.Queue(maxsize=queue_size)
        self.thread: threading.Thread | None = None

    def deliver(self, *body: Any) -> None:
        self.delivery.put(body)

    def handle(self, body: Sequence[Any]) -> str | None:
        try:
            orientation = decode_orientation(body)
        except DecodeError:
            return None
        self.channel.put(orientation)
        self.channel.join()
        return orientation

    def run(self) -> None:
        while True:
            self.handle(self.delivery.get())

    def start(self) -> threading.Thread:
        if self.thread and self.thread.is_alive():
            return self.thread
        self.thread = threading.Thread(target=self.run, name="orientation-watcher", daemon=True)
        self.thread.start()
        return self.thread

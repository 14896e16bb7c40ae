#!/usr/bin/env python3
"""
Auto-rotate sway outputs and touch/pen input from iio-sensor-proxy.

Repo source: sway-autorotate/tools/autorotate.py

Startup (each failure is fatal and exits with the failing stage's code):
  connect system bus -> resolve net.hadess.SensorProxy -> HasAccelerometer
  -> subscribe to PropertiesChanged -> ClaimAccelerometer -> start watcher.

Then every AccelerometerOrientation change is mapped to a sway transform and
applied to all outputs and all touch/tablet_tool inputs, one event at a time.
A failed rotation is not retried: the claim is released and the process
exits. SIGTERM/SIGINT release the claim and exit 0.
"""

from __future__ import annotations

import argparse
import os
import queue
import signal
import time
from typing import Any, Callable, NoReturn

from autorotate_bus import BusSession
from autorotate_common import log_event
from autorotate_errors import AutorotateError, NoAccelerometer
from autorotate_sway import SwayController, detect_sway_socket
from autorotate_transform import ORIENTATIONS, Transform, orientation_to_transform
from autorotate_watch import DEFAULT_QUEUE_SIZE, OrientationWatcher


class Shutdown(Exception):
    pass


def _on_signal(signum: int, _frame: object) -> None:
    raise Shutdown(signal.Signals(signum).name)


class ReactionLoop:
    def __init__(self, controller: Any, *, mapper: Callable[[str], Transform] = orientation_to_transform) -> None:
        self.controller = controller
        self.mapper = mapper

    def react(self, orientation: str) -> Transform:
        transform = self.mapper(orientation)
        log_event("rotating", orientation=orientation, degrees=transform.degrees)
        start = time.monotonic()
        self.controller.apply_transform(transform)
        log_event(
            "rotated",
            orientation=orientation,
            degrees=transform.degrees,
            elapsed_s=round(time.monotonic() - start, 3),
        )
        return transform

    def consume(self, channel: queue.Queue[str]) -> NoReturn:
        while True:
            orientation = channel.get()
            channel.task_done()
            self.react(orientation)


def run(
    args: argparse.Namespace,
    *,
    connect: Callable[[], BusSession] = BusSession.connect,
    controller: Any = None,
) -> NoReturn:
    if controller is None:
        controller = SwayController(args.sway_socket or detect_sway_socket(), swaymsg=args.swaymsg)

    session = connect()
    proxy = session.resolve_sensor_service()
    if not proxy.has_accelerometer():
        raise NoAccelerometer("no accelerometer found")

    channel: queue.Queue[str] = queue.Queue(maxsize=1)
    watcher = OrientationWatcher(channel, queue_size=args.queue_size)
    session.subscribe_orientation_changes(watcher.deliver)

    reaction = ReactionLoop(controller)
    try:
        proxy.claim_accelerometer()
        log_event("claimed")
        watcher.start()
        session.start_dispatch()
        if args.apply_initial:
            current = proxy.accelerometer_orientation()
            if current in ORIENTATIONS:
                reaction.react(current)
            else:
                log_event("initial_skipped", orientation=current)
        reaction.consume(channel)
    finally:
        session.stop_dispatch()
        if proxy.release_accelerometer():
            log_event("released")


def _positive_int(s: str) -> int:
    n = int(s)
    if n < 1:
        raise argparse.ArgumentTypeError(f"must be >= 1 (got: {n})")
    return n


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Rotate sway outputs and touch/pen input from iio-sensor-proxy.")
    p.add_argument(
        "--queue-size",
        type=_positive_int,
        default=os.environ.get("AUTOROTATE_QUEUE_SIZE", str(DEFAULT_QUEUE_SIZE)),
        help=f"Signals buffered between D-Bus and the watcher before the bus blocks (default: {DEFAULT_QUEUE_SIZE}).",
    )
    p.add_argument(
        "--sway-socket",
        default="",
        help="Sway IPC socket (default: $SWAYSOCK, else newest sway-ipc.*.sock in $XDG_RUNTIME_DIR).",
    )
    p.add_argument(
        "--swaymsg",
        default=os.environ.get("AUTOROTATE_SWAYMSG", "swaymsg"),
        help="swaymsg binary (default: swaymsg).",
    )
    p.add_argument(
        "--apply-initial",
        action="store_true",
        help="Apply the current sensor orientation once after claiming the accelerometer.",
    )
    return p


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    log_event(
        "start",
        queue_size=int(args.queue_size),
        sway_socket=args.sway_socket or None,
        swaymsg=args.swaymsg,
        apply_initial=bool(args.apply_initial),
    )

    previous = {sig: signal.signal(sig, _on_signal) for sig in (signal.SIGTERM, signal.SIGINT)}
    try:
        run(args)
    except AutorotateError as exc:
        log_event("fatal", stage=exc.stage, error=str(exc))
        return exc.exit_code
    except Shutdown as exc:
        log_event("stopped", signal=str(exc))
        return 0
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)


if __name__ == "__main__":
    raise SystemExit(main(list(__import__("sys").argv[1:])))

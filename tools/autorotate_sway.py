#!/usr/bin/env python3
"""
Apply a rotation to every sway output and every touch/pen input via swaymsg.

Repo source: sway-autorotate/tools/autorotate_sway.py

Order per event:
  1. `swaymsg -t get_outputs -r`, then `output <name> transform <deg>` for each
     output in the order sway reports them.
  2. `swaymsg -t get_inputs -r`, then `input <id> calibration_matrix ...` for
     each device of type touch/tablet_tool.

The first failure stops the sequence. Outputs that were already rotated are
left as they are.

The IPC socket comes from --sway-socket, else detect_sway_socket() ($SWAYSOCK,
then the newest sway-ipc.*.sock in the runtime dir).
"""

from __future__ import annotations

import json
import os
import subprocess
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

from autorotate_common import describe_exc, log_event
from autorotate_errors import CommandError
from autorotate_transform import Transform


CALIBRATED_INPUT_TYPES = frozenset({"touch", "tablet_tool"})

Runner = Callable[..., "subprocess.CompletedProcess[str]"]


@dataclass(frozen=True)
class InputDevice:
    identifier: str
    type: str


def _mtime(path: Path) -> float:
    try:
        return path.stat().st_mtime
    except OSError:
        return 0.0


def _is_socket(path: Path) -> bool:
    try:
        return path.is_socket()
    except OSError:
        return False


def detect_sway_socket(environ: Mapping[str, str] | None = None) -> str | None:
    """
    Locate the sway IPC socket for the current session.

    Lookup order: $SWAYSOCK if it names a socket, then the most recently
    touched sway-ipc.*.sock under $XDG_RUNTIME_DIR (/run/user/<uid> when
    unset). Returns None when nothing usable is found, in which case swaymsg
    runs with the inherited environment.
    """

    env = os.environ if environ is None else environ
    candidates: list[Path] = []
    explicit = (env.get("SWAYSOCK") or "").strip()
    if explicit:
        candidates.append(Path(explicit))

    runtime = (env.get("XDG_RUNTIME_DIR") or "").strip() or f"/run/user/{os.getuid()}"
    try:
        candidates.extend(sorted(Path(runtime).glob("sway-ipc.*.sock"), key=_mtime, reverse=True))
    except OSError:
        pass

    for p in candidates:
        if _is_socket(p):
            return str(p)
    return None


class SwayController:
    def __init__(self, sock: str | None = None, *, swaymsg: str = "swaymsg", run: Runner = subprocess.run) -> None:
        self.sock = sock
        self.swaymsg = swaymsg
        self._run = run

    def _swaymsg(self, argv: list[str]) -> subprocess.CompletedProcess[str]:
        env = dict(os.environ)
        if self.sock:
            env["SWAYSOCK"] = self.sock
        cmd = [self.swaymsg, *argv]
        try:
            return self._run(cmd, check=False, capture_output=True, text=True, env=env)
        except OSError as exc:
            raise CommandError(describe_exc(exc), argv=cmd) from exc

    def _command(self, argv: list[str]) -> None:
        proc = self._swaymsg(argv)
        if proc.returncode == 0:
            return
        msg = (proc.stderr or proc.stdout or "").strip() or f"swaymsg failed (rc={proc.returncode})"
        raise CommandError(msg, argv=[self.swaymsg, *argv], returncode=proc.returncode)

    def _query(self, kind: str) -> list[dict[str, Any]]:
        argv = ["-t", kind, "-r"]
        proc = self._swaymsg(argv)
        if proc.returncode != 0:
            msg = (proc.stderr or proc.stdout or "").strip() or f"swaymsg failed (rc={proc.returncode})"
            raise CommandError(f"{kind}: {msg}", argv=[self.swaymsg, *argv], returncode=proc.returncode)
        try:
            data = json.loads(proc.stdout)
        except json.JSONDecodeError as exc:
            raise CommandError(f"{kind}: {describe_exc(exc)}", argv=[self.swaymsg, *argv]) from exc
        if not isinstance(data, list):
            raise CommandError(f"{kind}: expected a JSON list", argv=[self.swaymsg, *argv])
        return [o for o in data if isinstance(o, dict)]

    def outputs(self) -> list[str]:
        return [str(o["name"]) for o in self._query("get_outputs") if isinstance(o.get("name"), str)]

    def inputs(self) -> list[InputDevice]:
        devices = []
        for d in self._query("get_inputs"):
            ident = d.get("identifier")
            if not isinstance(ident, str):
                continue
            devices.append(InputDevice(identifier=ident, type=str(d.get("type") or "")))
        return devices

    def set_output_transform(self, output: str, degrees: int) -> None:
        self._command(["output", output, "transform", str(int(degrees))])

    def set_calibration_matrix(self, identifier: str, matrix: list[str]) -> None:
        # "--" stops swaymsg from reading negative coefficients as options.
        self._command(["--", "input", identifier, "calibration_matrix", *matrix])

    def apply_transform(self, transform: Transform) -> None:
        for output in self.outputs():
            self.set_output_transform(output, transform.degrees)
            log_event("output_transformed", output=output, degrees=transform.degrees)

        matrix = transform.matrix_args()
        for device in self.inputs():
            if device.type not in CALIBRATED_INPUT_TYPES:
                continue
            self.set_calibration_matrix(device.identifier, matrix)
            log_event("input_calibrated", input=device.identifier, type=device.type, matrix=" ".join(matrix))

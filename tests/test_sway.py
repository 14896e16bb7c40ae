from __future__ import annotations

import json
import socket
import subprocess
from pathlib import Path
from typing import Any

import pytest

from autorotate_errors import CommandError
from autorotate_sway import InputDevice, SwayController, detect_sway_socket
from autorotate_transform import orientation_to_transform


class FakeSwaymsg:
    """Records swaymsg invocations; queries answer from the given JSON data."""

    def __init__(
        self,
        outputs: list[dict[str, Any]] | None = None,
        inputs: list[dict[str, Any]] | None = None,
        *,
        fail: tuple[str, ...] = (),
        query_fail: dict[str, BaseException | int] | None = None,
    ) -> None:
        self.data = {"get_outputs": outputs or [], "get_inputs": inputs or []}
        self.fail = set(fail)
        self.query_fail = query_fail or {}
        self.queries: list[str] = []
        self.commands: list[str] = []
        self.envs: list[dict[str, str]] = []

    def __call__(self, cmd: list[str], **kwargs: Any) -> subprocess.CompletedProcess[str]:
        self.envs.append(kwargs.get("env") or {})
        argv = cmd[1:]
        if argv[:1] == ["-t"]:
            kind = argv[1]
            self.queries.append(kind)
            failure = self.query_fail.get(kind)
            if isinstance(failure, BaseException):
                raise failure
            if isinstance(failure, int):
                return subprocess.CompletedProcess(cmd, failure, "", "sway not running")
            return subprocess.CompletedProcess(cmd, 0, json.dumps(self.data[kind]), "")
        line = " ".join(argv)
        self.commands.append(line)
        if line in self.fail:
            return subprocess.CompletedProcess(cmd, 2, "", "Error: command failed")
        return subprocess.CompletedProcess(cmd, 0, '[{"success": true}]', "")


def _controller(fake: FakeSwaymsg) -> SwayController:
    return SwayController("/tmp/sway-ipc.test.sock", run=fake)


def test_normal_single_output_touch_input() -> None:
    fake = FakeSwaymsg(outputs=[{"name": "eDP-1"}], inputs=[{"identifier": "1", "type": "touch"}])

    _controller(fake).apply_transform(orientation_to_transform("normal"))

    assert fake.commands == [
        "output eDP-1 transform 0",
        "-- input 1 calibration_matrix 1 0 0 0 1 0",
    ]


def test_right_up_two_outputs_no_inputs() -> None:
    fake = FakeSwaymsg(outputs=[{"name": "eDP-1"}, {"name": "HDMI-1"}], inputs=[])

    _controller(fake).apply_transform(orientation_to_transform("right-up"))

    assert fake.commands == ["output eDP-1 transform 90", "output HDMI-1 transform 90"]


def test_outputs_are_rotated_before_any_input_is_calibrated() -> None:
    fake = FakeSwaymsg(
        outputs=[{"name": "A"}, {"name": "B"}, {"name": "C"}],
        inputs=[
            {"identifier": "1386:890:Wacom_Pen", "type": "tablet_tool"},
            {"identifier": "1386:890:Wacom_Finger", "type": "touch"},
        ],
    )

    _controller(fake).apply_transform(orientation_to_transform("bottom-up"))

    assert fake.commands == [
        "output A transform 180",
        "output B transform 180",
        "output C transform 180",
        "-- input 1386:890:Wacom_Pen calibration_matrix -1 0 1 0 -1 1",
        "-- input 1386:890:Wacom_Finger calibration_matrix -1 0 1 0 -1 1",
    ]
    assert fake.queries == ["get_outputs", "get_inputs"]


def test_only_touch_and_tablet_tool_inputs_are_calibrated() -> None:
    fake = FakeSwaymsg(
        outputs=[{"name": "eDP-1"}],
        inputs=[
            {"identifier": "kbd", "type": "keyboard"},
            {"identifier": "pad", "type": "touchpad"},
            {"identifier": "pen", "type": "tablet_tool"},
            {"identifier": "ptr", "type": "pointer"},
            {"identifier": "tabpad", "type": "tablet_pad"},
            {"identifier": "screen", "type": "touch"},
        ],
    )

    _controller(fake).apply_transform(orientation_to_transform("left-up"))

    assert fake.commands[1:] == [
        "-- input pen calibration_matrix 0 -1 1 1 0 0",
        "-- input screen calibration_matrix 0 -1 1 1 0 0",
    ]


def test_output_enumeration_failure_issues_nothing() -> None:
    fake = FakeSwaymsg(
        outputs=[{"name": "eDP-1"}],
        inputs=[{"identifier": "1", "type": "touch"}],
        query_fail={"get_outputs": FileNotFoundError(2, "No such file or directory", "swaymsg")},
    )

    with pytest.raises(CommandError):
        _controller(fake).apply_transform(orientation_to_transform("normal"))

    assert fake.commands == []
    assert fake.queries == ["get_outputs"]


def test_output_enumeration_nonzero_exit_issues_nothing() -> None:
    fake = FakeSwaymsg(query_fail={"get_outputs": 1})

    with pytest.raises(CommandError) as excinfo:
        _controller(fake).apply_transform(orientation_to_transform("normal"))

    assert excinfo.value.returncode == 1
    assert "sway not running" in str(excinfo.value)
    assert fake.commands == []


def test_first_output_failure_stops_everything() -> None:
    fake = FakeSwaymsg(
        outputs=[{"name": "A"}, {"name": "B"}],
        inputs=[{"identifier": "1", "type": "touch"}],
        fail=("output A transform 0",),
    )

    with pytest.raises(CommandError) as excinfo:
        _controller(fake).apply_transform(orientation_to_transform("normal"))

    assert fake.commands == ["output A transform 0"]
    assert fake.queries == ["get_outputs"]
    assert excinfo.value.argv[-4:] == ["output", "A", "transform", "0"]
    assert excinfo.value.stage == "command"


def test_nth_output_failure_counts() -> None:
    fake = FakeSwaymsg(
        outputs=[{"name": "A"}, {"name": "B"}, {"name": "C"}],
        inputs=[{"identifier": "1", "type": "touch"}],
        fail=("output B transform 90",),
    )

    with pytest.raises(CommandError):
        _controller(fake).apply_transform(orientation_to_transform("right-up"))

    assert fake.commands == ["output A transform 90", "output B transform 90"]


def test_input_enumeration_failure_leaves_outputs_applied() -> None:
    fake = FakeSwaymsg(outputs=[{"name": "eDP-1"}], query_fail={"get_inputs": 1})

    with pytest.raises(CommandError):
        _controller(fake).apply_transform(orientation_to_transform("normal"))

    assert fake.commands == ["output eDP-1 transform 0"]


def test_input_failure_stops_remaining_inputs() -> None:
    fake = FakeSwaymsg(
        outputs=[{"name": "eDP-1"}],
        inputs=[{"identifier": "1", "type": "touch"}, {"identifier": "2", "type": "touch"}],
        fail=("-- input 1 calibration_matrix 1 0 0 0 1 0",),
    )

    with pytest.raises(CommandError):
        _controller(fake).apply_transform(orientation_to_transform("normal"))

    assert fake.commands == ["output eDP-1 transform 0", "-- input 1 calibration_matrix 1 0 0 0 1 0"]


def test_malformed_query_output_is_a_command_error() -> None:
    def run(cmd: list[str], **_kwargs: Any) -> subprocess.CompletedProcess[str]:
        return subprocess.CompletedProcess(cmd, 0, "not json", "")

    with pytest.raises(CommandError):
        SwayController(run=run).outputs()


def test_inputs_skip_entries_without_identifier() -> None:
    fake = FakeSwaymsg(inputs=[{"type": "touch"}, {"identifier": "7", "type": "touch"}, "junk"])  # type: ignore[list-item]

    assert _controller(fake).inputs() == [InputDevice(identifier="7", type="touch")]


def test_swaysock_is_passed_to_swaymsg() -> None:
    fake = FakeSwaymsg()

    _controller(fake).outputs()

    assert fake.envs[0]["SWAYSOCK"] == "/tmp/sway-ipc.test.sock"


def test_detect_sway_socket_without_candidates(tmp_path, monkeypatch) -> None:
    monkeypatch.delenv("SWAYSOCK", raising=False)
    monkeypatch.setenv("XDG_RUNTIME_DIR", str(tmp_path))

    assert detect_sway_socket() is None


def _listen(path: Path) -> socket.socket:
    sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
    sock.bind(str(path))
    return sock


def test_detect_sway_socket_prefers_swaysock(tmp_path: Path) -> None:
    explicit = _listen(tmp_path / "explicit.sock")
    runtime = _listen(tmp_path / "sway-ipc.1000.42.sock")
    try:
        env = {"SWAYSOCK": str(tmp_path / "explicit.sock"), "XDG_RUNTIME_DIR": str(tmp_path)}
        assert detect_sway_socket(env) == str(tmp_path / "explicit.sock")
    finally:
        explicit.close()
        runtime.close()


def test_detect_sway_socket_falls_back_to_runtime_dir(tmp_path: Path) -> None:
    (tmp_path / "stale").write_text("", encoding="utf-8")
    (tmp_path / "sway-ipc.1000.1.sock").write_text("", encoding="utf-8")
    runtime = _listen(tmp_path / "sway-ipc.1000.2.sock")
    try:
        env = {"SWAYSOCK": str(tmp_path / "stale"), "XDG_RUNTIME_DIR": str(tmp_path)}
        assert detect_sway_socket(env) == str(tmp_path / "sway-ipc.1000.2.sock")
    finally:
        runtime.close()

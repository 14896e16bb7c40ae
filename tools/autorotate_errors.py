#!/usr/bin/env python3
"""
Error types for sway-autorotate.

Repo source: sway-autorotate/tools/autorotate_errors.py

Each error names the pipeline stage it came from and the exit code the daemon
uses when that stage fails. DecodeError and ReleaseError never end the process.
"""

from __future__ import annotations

from typing import Sequence


class AutorotateError(Exception):
    stage = "unknown"
    exit_code = 1


class BusConnectionError(AutorotateError):
    stage = "connect"
    exit_code = 10


class ResolutionError(AutorotateError):
    stage = "resolve"
    exit_code = 11


class QueryError(AutorotateError):
    stage = "capability"
    exit_code = 12


class NoAccelerometer(QueryError):
    pass


class SubscriptionError(AutorotateError):
    stage = "subscribe"
    exit_code = 13


class ClaimError(AutorotateError):
    stage = "claim"
    exit_code = 14


class ReleaseError(AutorotateError):
    stage = "release"
    exit_code = 15


class InitialOrientationError(AutorotateError):
    stage = "initial"
    exit_code = 16


class DecodeError(AutorotateError):
    stage = "decode"


class UnrecognizedOrientation(AutorotateError, ValueError):
    stage = "map"
    exit_code = 20

    def __init__(self, orientation: object) -> None:
        super().__init__(f"unrecognized orientation: {orientation!r}")
        self.orientation = orientation


class CommandError(AutorotateError):
    stage = "command"
    exit_code = 21

    def __init__(self, message: str, *, argv: Sequence[str] = (), returncode: int | None = None) -> None:
        super().__init__(message)
        self.argv = list(argv)
        self.returncode = returncode

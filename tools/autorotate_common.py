#!/usr/bin/env python3
"""
Shared helpers for the sway-autorotate tools.

Repo source: sway-autorotate/tools/autorotate_common.py

Every tool logs one JSON object per line on stdout so the output can be read
straight from `journalctl --user -u sway-autorotate -o cat | jq`.
"""

from __future__ import annotations

import json
import time


def utc_iso() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())


def log_event(event: str, **extra: object) -> None:
    out = {"ts": utc_iso(), "event": event, **extra}
    print(json.dumps(out, sort_keys=True, default=str), flush=True)


def describe_exc(exc: BaseException) -> str:
    return f"{type(exc).__name__}: {exc}"

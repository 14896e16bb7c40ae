#!/usr/bin/env python3
"""
iio-sensor-proxy orientation -> sway output transform + input calibration.

Repo source: sway-autorotate/tools/autorotate_transform.py

Sway uses a degrees-based output transform (90 rotates clockwise). The
calibration matrix is the libinput 2x3 affine matrix (row-major, first two
rows of the 3x3 matrix) that maps touch/pen coordinates onto the rotated
output.
"""

from __future__ import annotations

from dataclasses import dataclass

from autorotate_errors import UnrecognizedOrientation


ORIENTATIONS = ("normal", "right-up", "bottom-up", "left-up")


@dataclass(frozen=True)
class Transform:
    degrees: int
    matrix: tuple[float, float, float, float, float, float]

    def matrix_args(self) -> list[str]:
        return [f"{v:g}" for v in self.matrix]


_TRANSFORMS: dict[str, Transform] = {
    "normal": Transform(0, (1.0, 0.0, 0.0, 0.0, 1.0, 0.0)),
    "right-up": Transform(90, (0.0, 1.0, 0.0, -1.0, 0.0, 1.0)),
    "bottom-up": Transform(180, (-1.0, 0.0, 1.0, 0.0, -1.0, 1.0)),
    "left-up": Transform(270, (0.0, -1.0, 1.0, 1.0, 0.0, 0.0)),
}


def orientation_to_transform(orientation: str) -> Transform:
    try:
        return _TRANSFORMS[orientation]
    except (KeyError, TypeError):
        raise UnrecognizedOrientation(orientation) from None

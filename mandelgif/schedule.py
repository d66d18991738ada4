from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Tuple

import numpy as np

from mandelgif.errors import NumericDomainError

# Window arithmetic is single precision throughout; the kernel sees the same
# float32 coordinates whichever code path maps a pixel.
_F = np.float32

DEFAULT_POI = (0.28693186889504513 - 0.0000115, 0.014286693904085048 - 0.000048)


def lerp(value, in_min, in_max, out_min, out_max):
    """Map `value` from [in_min, in_max] onto [out_min, out_max]. Works on float32 scalars and arrays."""
    return ((out_max - out_min) * (value - in_min) / (in_max - in_min)) + out_min


@dataclass(frozen=True)
class Window:
    x_min: np.float32
    x_max: np.float32
    y_min: np.float32
    y_max: np.float32

    @property
    def radius(self) -> float:
        return float(self.x_max - self.x_min) / 2.0


@dataclass(frozen=True)
class ZoomSchedule:
    poi_x: float = DEFAULT_POI[0]
    poi_y: float = DEFAULT_POI[1]
    frames: int = 300
    scale_start: float = 200.0
    scale_end: float = 20000.0

    def __post_init__(self) -> None:
        if self.frames <= 0:
            raise NumericDomainError(f"frames must be positive, got {self.frames}")
        if self.scale_start == self.scale_end:
            raise NumericDomainError("scale_start and scale_end must differ.")
        if self.scale_start <= 0 or self.scale_end <= 0:
            raise NumericDomainError("Zoom scales must be positive.")

    def scale(self, frame: int) -> np.float32:
        return lerp(_F(frame), _F(0), _F(self.frames), _F(self.scale_start), _F(self.scale_end))

    def radius(self, frame: int) -> np.float32:
        return _F(1) / self.scale(frame)

    def window(self, frame: int) -> Window:
        if not 0 <= frame < self.frames:
            raise IndexError(f"frame {frame} outside [0, {self.frames})")
        r = self.radius(frame)
        px, py = _F(self.poi_x), _F(self.poi_y)
        return Window(x_min=px - r, x_max=px + r, y_min=py - r, y_max=py + r)

    def __iter__(self) -> Iterator[Tuple[int, Window]]:
        for f in range(self.frames):
            yield f, self.window(f)


def pixel_coordinates(window: Window, width: int, height: int, x, y):
    """Complex-plane (re, im) for pixel column(s) x and row(s) y, as float32."""
    re = lerp(np.asarray(x, dtype=_F), _F(0), _F(width), window.x_min, window.x_max)
    im = lerp(np.asarray(y, dtype=_F), _F(0), _F(height), window.y_min, window.y_max)
    return re.astype(_F), im.astype(_F)

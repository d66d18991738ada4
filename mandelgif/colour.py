from __future__ import annotations

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class Colour:
    """
    RGBA8888 colour. Alpha is carried for the packed raster layout only;
    the renderer never produces anything but opaque pixels.
    """
    r: int
    g: int
    b: int
    a: int = 0xFF

    def mix(self, other: "Colour", t: float) -> "Colour":
        """
        Affine blend (self - other) * t + other, clamped to 0..255 per channel.
        t=0 gives `other`, t=1 gives `self`; values outside [0, 1] extrapolate.
        """
        def scale_and_clamp(f: int, o: int) -> int:
            return min(0xFF, int(max(0.0, (float(f) - o) * t + o)))

        return Colour(scale_and_clamp(self.r, other.r),
                      scale_and_clamp(self.g, other.g),
                      scale_and_clamp(self.b, other.b))

    def rgb(self):
        return (self.r, self.g, self.b)


BLACK = Colour(0, 0, 0)

# Ultra Fractal's default gradient, sampled at 16 stops.
ULTRA_FRACTAL = (
    Colour(66, 30, 15), Colour(25, 7, 26), Colour(9, 1, 47), Colour(4, 4, 73),
    Colour(0, 7, 100), Colour(12, 44, 138), Colour(24, 82, 177), Colour(57, 125, 209),
    Colour(134, 181, 229), Colour(211, 236, 248), Colour(241, 233, 191), Colour(248, 201, 95),
    Colour(255, 170, 0), Colour(204, 128, 0), Colour(153, 87, 0), Colour(106, 52, 3),
)


def palette_array(palette=ULTRA_FRACTAL) -> np.ndarray:
    """(N, 3) float64 array of the palette, for vectorised blending."""
    return np.array([c.rgb() for c in palette], dtype=np.float64)


def mix_arrays(hi: np.ndarray, lo: np.ndarray, t: np.ndarray) -> np.ndarray:
    # Same formula as Colour.mix over (N, 3) channel arrays; astype truncates toward zero.
    out = (hi - lo) * t[:, None] + lo
    return np.clip(out, 0.0, 255.0).astype(np.uint8)

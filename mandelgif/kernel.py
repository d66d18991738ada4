from __future__ import annotations

import math
from typing import Sequence, Tuple

import numpy as np

from mandelgif.colour import BLACK, ULTRA_FRACTAL, Colour, mix_arrays, palette_array
from mandelgif.errors import NumericDomainError

_F = np.float32
_TWO = _F(2)
_LN2 = math.log(2)
# |z|^2 just past escape is bounded by about bailout^4, which must stay finite in float32.
MAX_BAILOUT = float(np.finfo(_F).max) ** 0.25 / 2


def check_bailout(bailout: float) -> None:
    if not 1 < bailout <= MAX_BAILOUT:
        raise NumericDomainError(f"bailout must be within (1, {MAX_BAILOUT:.3g}], got {bailout}")


def mandelbrot(c: complex, max_iter: int, bailout: float = 4.0) -> Tuple[complex, int]:
    """
    Escape-time iteration z <- z^2 + c from z = 0 while |z| <= bailout and i < max_iter.
    Returns the final z and the iteration count.
    """
    check_bailout(bailout)
    limit = _F(bailout) * _F(bailout)
    cr, ci = _F(c.real), _F(c.imag)
    zr, zi = _F(0), _F(0)
    i = 0
    while zr * zr + zi * zi <= limit and i < max_iter:
        zr, zi = zr * zr - zi * zi + cr, _TWO * zr * zi + ci
        i += 1
    return complex(float(zr), float(zi)), i


def smooth_colour(z: complex, iters: int, max_iter: int, palette: Sequence[Colour] = ULTRA_FRACTAL) -> Colour:
    """Continuous escape-time colouring; points that never escaped are black."""
    if iters >= max_iter:
        return BLACK
    zr, zi = _F(z.real), _F(z.imag)
    mag2 = float(zr * zr + zi * zi)
    log_zn = math.log(mag2) / 4.0  # ln|z| / 2
    nu = math.log(log_zn / _LN2) / _LN2
    mu = iters + 1 - nu
    lo = palette[math.floor(iters - nu) % len(palette)]
    hi = palette[math.floor(mu) % len(palette)]
    t = mu - math.floor(mu)
    assert 0.0 <= t < 1.0, t
    return hi.mix(lo, t)


def escape_time(cr: np.ndarray, ci: np.ndarray, max_iter: int, bailout: float = 4.0):
    """
    Array form of `mandelbrot` over flat float32 coordinate arrays.
    Returns (zr, zi, iters); only still-bounded points are advanced each step.
    """
    check_bailout(bailout)
    limit = _F(bailout) * _F(bailout)
    cr = np.asarray(cr, dtype=_F)
    ci = np.asarray(ci, dtype=_F)
    zr = np.zeros_like(cr)
    zi = np.zeros_like(ci)
    iters = np.zeros(cr.shape, dtype=np.int32)

    live = np.arange(cr.size)
    for _ in range(max_iter):
        if live.size == 0:
            break
        xr, xi = zr[live], zi[live]
        nr = xr * xr - xi * xi + cr[live]
        ni = _TWO * xr * xi + ci[live]
        zr[live] = nr
        zi[live] = ni
        iters[live] += 1
        live = live[nr * nr + ni * ni <= limit]
    return zr, zi, iters


def colourise(zr: np.ndarray, zi: np.ndarray, iters: np.ndarray, max_iter: int,
              palette: Sequence[Colour] = ULTRA_FRACTAL) -> np.ndarray:
    """Array form of `smooth_colour`. Returns an (N, 4) uint8 RGBA block."""
    out = np.zeros((iters.size, 4), dtype=np.uint8)
    out[:, 3] = 0xFF

    escaped = np.flatnonzero(iters < max_iter)
    if escaped.size == 0:
        return out

    er, ei = zr[escaped], zi[escaped]
    mag2 = (er * er + ei * ei).astype(np.float64)
    log_zn = np.log(mag2) / 4.0
    nu = np.log(log_zn / _LN2) / _LN2
    n = iters[escaped].astype(np.float64)

    table = palette_array(palette)
    mu = n + 1 - nu
    lo = table[np.floor(n - nu).astype(np.int64) % len(palette)]
    hi = table[np.floor(mu).astype(np.int64) % len(palette)]
    t = mu - np.floor(mu)
    out[escaped, :3] = mix_arrays(hi, lo, t)
    return out

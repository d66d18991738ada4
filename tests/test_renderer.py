import numpy as np
import pytest

from mandelgif.kernel import mandelbrot, smooth_colour
from mandelgif.renderers.cpu import make_pool, pixel_bands, render_frame
from mandelgif.schedule import ZoomSchedule, pixel_coordinates

# r = 2 around (-0.5, 0): the whole set in view.
OVERVIEW = ZoomSchedule(poi_x=-0.5, poi_y=0.0, frames=1, scale_start=0.5, scale_end=1.0).window(0)


def test_pixel_bands_cover_range_once():
    bands = pixel_bands(10, 4)
    assert bands == [(0, 4), (4, 8), (8, 10)]
    assert pixel_bands(0, 4) == []
    with pytest.raises(ValueError):
        pixel_bands(10, 0)


def test_raster_shape_and_opaque_alpha():
    raster = render_frame(window=OVERVIEW, width=12, height=10, max_iter=60)
    assert raster.shape == (10, 12, 4)
    assert raster.dtype == np.uint8
    assert np.all(raster[..., 3] == 0xFF)


def test_render_is_deterministic_and_band_independent():
    a = render_frame(window=OVERVIEW, width=20, height=15, max_iter=80)
    b = render_frame(window=OVERVIEW, width=20, height=15, max_iter=80)
    c = render_frame(window=OVERVIEW, width=20, height=15, max_iter=80, band_size=7)
    assert a.tobytes() == b.tobytes()
    assert a.tobytes() == c.tobytes()


def test_pixels_follow_row_major_convention():
    """Pixel (x, y) is coloured from c = (lerp(x, 0, W, ...), lerp(y, 0, H, ...)) on a non-square frame."""
    width, height, max_iter = 12, 10, 60
    raster = render_frame(window=OVERVIEW, width=width, height=height, max_iter=max_iter)
    for y in range(height):
        for x in range(width):
            re, im = pixel_coordinates(OVERVIEW, width, height, x, y)
            expected = smooth_colour(*mandelbrot(complex(float(re), float(im)), max_iter), max_iter)
            got = raster[y, x, :3].astype(int)
            assert np.all(np.abs(got - np.array(expected.rgb())) <= 1), (x, y)


def test_inside_points_are_black():
    raster = render_frame(window=OVERVIEW, width=16, height=16, max_iter=40)
    # (-0.5, 0) sits in the main cardioid: pixel (8, 8) of a 16x16 view.
    assert raster[8, 8, :3].tolist() == [0, 0, 0]


def test_process_pool_matches_in_process_render():
    expected = render_frame(window=OVERVIEW, width=16, height=16, max_iter=50)
    pool = make_pool(2)
    try:
        got = render_frame(window=OVERVIEW, width=16, height=16, max_iter=50, pool=pool, band_size=37)
    finally:
        pool.shutdown()
    assert got.tobytes() == expected.tobytes()


def test_single_worker_renders_in_process():
    assert make_pool(1) is None

import numpy as np
import pytest

from mandelgif.errors import NumericDomainError
from mandelgif.schedule import DEFAULT_POI, ZoomSchedule, lerp, pixel_coordinates


def test_default_schedule_matches_reference_parameters():
    s = ZoomSchedule()
    assert s.frames == 300
    assert (s.scale_start, s.scale_end) == (200.0, 20000.0)
    assert s.poi_x == pytest.approx(0.28693186889504513 - 0.0000115)
    assert s.poi_y == pytest.approx(0.014286693904085048 - 0.000048)


def test_radius_at_frame_150():
    """r = 1 / lerp(150, 0, 300, 200, 20000) = 1/10100"""
    assert float(ZoomSchedule().radius(150)) == pytest.approx(1 / 10100, rel=1e-6)


def test_first_window_is_poi_plus_minus_one_two_hundredth():
    w = ZoomSchedule().window(0)
    assert float(w.x_min) == pytest.approx(DEFAULT_POI[0] - 1 / 200, rel=1e-6)
    assert float(w.x_max) == pytest.approx(DEFAULT_POI[0] + 1 / 200, rel=1e-6)
    assert float(w.y_min) == pytest.approx(DEFAULT_POI[1] - 1 / 200, rel=1e-5)
    assert float(w.y_max) == pytest.approx(DEFAULT_POI[1] + 1 / 200, rel=1e-5)
    assert w.radius == pytest.approx(1 / 200, rel=1e-4)


def test_windows_shrink_monotonically():
    radii = [w.radius for _, w in ZoomSchedule(frames=30)]
    assert len(radii) == 30
    assert all(a > b for a, b in zip(radii, radii[1:]))


@pytest.mark.parametrize("kwargs", [
    {"frames": 0},
    {"frames": -3},
    {"scale_start": 500.0, "scale_end": 500.0},
    {"scale_start": -1.0},
])
def test_invalid_schedules_refuse_to_start(kwargs):
    with pytest.raises(NumericDomainError):
        ZoomSchedule(**kwargs)


def test_window_outside_range_raises():
    with pytest.raises(IndexError):
        ZoomSchedule(frames=5).window(5)


def test_lerp():
    assert lerp(5.0, 0.0, 10.0, 100.0, 200.0) == 150.0
    assert lerp(0.0, 0.0, 300.0, 200.0, 20000.0) == 200.0


def test_pixel_coordinates_maps_origin_and_centre():
    w = ZoomSchedule(poi_x=-0.5, poi_y=0.0, frames=1, scale_start=0.5, scale_end=1.0).window(0)
    re, im = pixel_coordinates(w, 8, 4, np.array([0, 4]), np.array([0, 2]))
    assert re.dtype == np.float32 and im.dtype == np.float32
    assert re.tolist() == [-2.5, -0.5]
    assert im.tolist() == [-2.0, 0.0]

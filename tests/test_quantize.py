import numpy as np
import pytest

from mandelgif.gif.quantize import median_cut, nearest_indices, quantize, reconstruct


def _rgba(rgb: np.ndarray) -> np.ndarray:
    alpha = np.full(rgb.shape[:2] + (1,), 0xFF, dtype=np.uint8)
    return np.concatenate([rgb.astype(np.uint8), alpha], axis=2)


def _gradient(width=256, height=256) -> np.ndarray:
    r = np.tile(np.arange(width, dtype=np.uint8), (height, 1))
    g = np.tile(np.arange(height, dtype=np.uint8)[:, None], (1, width))
    b = ((r.astype(np.int32) + g) // 2).astype(np.uint8)
    return np.stack([r, g, b], axis=2)


class TestExactPalettes:

    def test_few_colours_are_lossless(self):
        rng = np.random.default_rng(7)
        colours = rng.integers(0, 256, size=(200, 3), dtype=np.uint8)
        picks = rng.integers(0, 200, size=(40, 30))
        rgb = colours[picks]
        palette, indices = quantize(_rgba(rgb))
        assert palette.shape[0] <= 200
        assert indices.shape == (40, 30)
        assert indices.dtype == np.uint8
        assert np.array_equal(reconstruct(palette, indices), rgb)

    def test_palette_is_sorted_and_unique(self):
        rgb = np.array([[[9, 9, 9], [1, 2, 3]], [[1, 2, 3], [0, 0, 255]]], dtype=np.uint8)
        palette, indices = quantize(_rgba(rgb))
        assert palette.tolist() == [[0, 0, 255], [1, 2, 3], [9, 9, 9]]
        assert indices.tolist() == [[2, 1], [1, 0]]

    def test_uniform_frame_has_one_entry(self):
        rgb = np.full((32, 32, 3), 77, dtype=np.uint8)
        palette, indices = quantize(_rgba(rgb))
        assert palette.tolist() == [[77, 77, 77]]
        assert not indices.any()

    def test_alpha_is_ignored(self):
        rgb = _gradient(16, 16)
        opaque = _rgba(rgb)
        clear = opaque.copy()
        clear[..., 3] = 0
        a = quantize(opaque)
        b = quantize(clear)
        assert np.array_equal(a[0], b[0])
        assert np.array_equal(a[1], b[1])


class TestReduction:

    def test_many_colours_reduce_to_256(self):
        rgb = _gradient()
        palette, indices = quantize(_rgba(rgb))
        assert palette.shape == (256, 3)
        assert indices.shape == (256, 256)
        err = ((reconstruct(palette, indices).astype(np.int64) - rgb) ** 2).sum(axis=2).mean()
        assert err < 100

    def test_reduction_is_deterministic(self):
        rng = np.random.default_rng(3)
        rgb = rng.integers(0, 256, size=(48, 48, 3), dtype=np.uint8)
        a = quantize(_rgba(rgb))
        b = quantize(_rgba(rgb.copy()))
        assert np.array_equal(a[0], b[0])
        assert np.array_equal(a[1], b[1])

    def test_pixels_map_to_nearest_entry(self):
        rng = np.random.default_rng(11)
        rgb = rng.integers(0, 256, size=(40, 40, 3), dtype=np.uint8)
        palette, indices = quantize(_rgba(rgb))
        flat = rgb.reshape(-1, 3).astype(np.int64)
        d = ((flat[:, None, :] - palette[None, :, :].astype(np.int64)) ** 2).sum(axis=2)
        chosen = d[np.arange(flat.shape[0]), indices.reshape(-1)]
        assert np.array_equal(chosen, d.min(axis=1))

    def test_median_cut_respects_cap(self):
        colours = np.array([[i, 255 - i, i // 2] for i in range(256)] * 2, dtype=np.uint8)[:300]
        colours = np.unique(colours, axis=0)
        weights = np.ones(colours.shape[0])
        palette = median_cut(colours, weights, 16)
        assert palette.shape == (16, 3)
        assert nearest_indices(colours, palette).max() < 16


def test_rejects_bad_shapes():
    with pytest.raises(ValueError):
        quantize(np.zeros((4, 4), dtype=np.uint8))

"""Tests for tileable gradient noise."""

import numpy as np
import pytest

from waveforge.noise import tileable_noise
from waveforge.waves import WaveLayer


def _grid(n=23):
    # Avoid exact lattice points so values are generally non-zero
    coords = (np.arange(n) + 0.37) / n
    return np.meshgrid(coords, coords, indexing='ij')


@pytest.mark.parametrize("period", [1, 2, 3, 5, 8])
def test_noise_tiles_in_u(period):
    u, v = _grid()
    base = tileable_noise(u, v, period, seed=4.2)
    shifted = tileable_noise(u + 1.0, v, period, seed=4.2)
    np.testing.assert_allclose(shifted, base, atol=1e-9)


@pytest.mark.parametrize("period", [1, 2, 3, 5, 8])
def test_noise_tiles_in_v(period):
    u, v = _grid()
    base = tileable_noise(u, v, period, seed=4.2)
    shifted = tileable_noise(u, v + 1.0, period, seed=4.2)
    np.testing.assert_allclose(shifted, base, atol=1e-9)


def test_noise_zero_on_lattice():
    period = 4
    coords = np.arange(period) / period
    u, v = np.meshgrid(coords, coords, indexing='ij')
    np.testing.assert_allclose(tileable_noise(u, v, period, seed=1.0), 0.0,
                               atol=1e-12)


def test_noise_is_continuous():
    u, v = _grid(41)
    eps = 1e-7
    a = tileable_noise(u, v, 3, seed=0.5)
    b = tileable_noise(u + eps, v, 3, seed=0.5)
    assert np.abs(a - b).max() < 1e-5


def test_noise_continuous_across_seam():
    v = np.linspace(0.0, 1.0, 9)
    inside = tileable_noise(np.full_like(v, 1.0 - 1e-9), v, 5, seed=2.0)
    start = tileable_noise(np.zeros_like(v), v, 5, seed=2.0)
    np.testing.assert_allclose(inside, start, atol=1e-6)


def test_noise_bounded_and_varied():
    u, v = _grid(64)
    values = tileable_noise(u, v, 6, seed=13.0)
    assert np.all(np.isfinite(values))
    assert np.abs(values).max() < 3.0
    assert values.std() > 0.05


def test_seed_decorrelates():
    u, v = _grid()
    a = tileable_noise(u, v, 4, seed=0.0)
    b = tileable_noise(u, v, 4, seed=37.5)
    assert not np.allclose(a, b)


def test_noise_is_deterministic():
    u, v = _grid()
    np.testing.assert_array_equal(tileable_noise(u, v, 4, seed=3.0),
                                  tileable_noise(u, v, 4, seed=3.0))


def test_invalid_period_clamped():
    u, v = _grid()
    np.testing.assert_array_equal(tileable_noise(u, v, 0, seed=1.0),
                                  tileable_noise(u, v, 1, seed=1.0))


@pytest.mark.parametrize("period, expected", [(2.7, 3), (2.5, 3), (2.4, 2)])
def test_fractional_period_rounds_like_layers(period, expected):
    u, v = _grid()
    np.testing.assert_array_equal(tileable_noise(u, v, period, seed=1.0),
                                  tileable_noise(u, v, expected, seed=1.0))
    assert WaveLayer(noise_scale=period).sanitized().noise_scale == expected


def test_noise_accepts_scalars():
    value = tileable_noise(0.3, 0.6, 2, seed=1.0)
    assert np.ndim(value) == 0
    assert np.isfinite(value)

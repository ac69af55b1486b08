"""Tests for the sharpening curve, layer evaluation and the randomizer."""

import math
from dataclasses import fields

import numpy as np
import pytest

from waveforge.waves import (
    MAX_LAYERS, LockFlags, WaveLayer, evaluate_layer, quantized_wavevector,
    random_layer, randomize_layer, randomize_layers, sharpen, sharpen_slope,
    snapshot_layers,
)

TWO_PI = 2.0 * math.pi


# ---------------------------------------------------------------------------
# Sharpening
# ---------------------------------------------------------------------------

def test_sharpen_identity_at_zero():
    wave = np.linspace(-1.0, 1.0, 101)
    np.testing.assert_array_equal(sharpen(wave, 0.0), wave)


def test_sharpen_identity_below_threshold():
    wave = np.linspace(-1.0, 1.0, 11)
    np.testing.assert_array_equal(sharpen(wave, 0.001), wave)


@pytest.mark.parametrize("sharpness", [0.01, 0.2, 0.5, 0.8, 1.0])
def test_sharpen_bounded(sharpness):
    wave = np.linspace(-1.0, 1.0, 401)
    out = sharpen(wave, sharpness)
    assert np.all(out >= -1.0 - 1e-12)
    assert np.all(out <= 1.0 + 1e-12)


@pytest.mark.parametrize("sharpness", [0.1, 0.5, 1.0])
def test_sharpen_keeps_extremes(sharpness):
    assert sharpen(np.float64(1.0), sharpness) == pytest.approx(1.0)
    assert sharpen(np.float64(-1.0), sharpness) == pytest.approx(-1.0)


def test_sharpen_is_monotonic():
    wave = np.linspace(-1.0, 1.0, 201)
    out = sharpen(wave, 0.7)
    assert np.all(np.diff(out) >= -1e-12)


def test_sharpen_continuous_in_sharpness():
    wave = np.linspace(-1.0, 1.0, 51)
    np.testing.assert_allclose(sharpen(wave, 0.0011), wave, atol=5e-3)


def test_sharpen_reshapes_midpoint():
    # p = 1/3 at sharpness 0.5: y3 = 0, min_y3 = -7, y4 = 2*7/8 - 1 = 0.75
    assert sharpen(np.float64(0.0), 0.5) == pytest.approx(-0.375)


def test_sharpen_slope_passthrough_without_sharpness():
    slope = np.array([0.3, -0.7])
    np.testing.assert_array_equal(
        sharpen_slope(np.array([0.1, 0.2]), slope, 0.0), slope)


def test_sharpen_slope_approximation():
    # p = 1/3: scale = 3 * |-1|^2 = 3; mix(1, -3, 0.5) = -1
    out = sharpen_slope(np.float64(0.0), np.float64(1.0), 0.5)
    assert out == pytest.approx(-1.0)


def test_sharpen_slope_falls_back_at_trough():
    # wave = -1 gives |y1| = 0: the raw slope is used
    out = sharpen_slope(np.float64(-1.0), np.float64(0.25), 0.8)
    assert out == pytest.approx(0.25)


# ---------------------------------------------------------------------------
# Wavevector quantization
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("freq, direction, expected", [
    (1.0, (1.0, 0.0), (1, 0)),
    (0.5, (1.0, 0.0), (1, 0)),
    (0.4, (1.0, 0.0), (0, 0)),
    (5.0, (3.0, 4.0), (3, 4)),
    (2.0, (0.0, -2.0), (0, -2)),
    (0.5, (-1.0, 0.0), (0, 0)),
    (1.5, (-1.0, 0.0), (-1, 0)),
])
def test_quantized_wavevector(freq, direction, expected):
    kx, ky = quantized_wavevector(freq, direction)
    assert kx == pytest.approx(expected[0] * TWO_PI)
    assert ky == pytest.approx(expected[1] * TWO_PI)


def test_zero_direction_falls_back():
    kx, ky = quantized_wavevector(1.0, (0.0, 0.0))
    assert (kx, ky) == pytest.approx((TWO_PI, 0.0))


def test_unnormalized_direction_is_normalized():
    assert quantized_wavevector(2.0, (10.0, 0.0)) == pytest.approx(
        quantized_wavevector(2.0, (1.0, 0.0)))


# ---------------------------------------------------------------------------
# Layer evaluation
# ---------------------------------------------------------------------------

def test_layer_scenario():
    layer = WaveLayer(amplitude=1.0, spatial_freq=1.0, direction=(1.0, 0.0),
                      temporal_freq=1, phase=0.0)
    h0, _, _ = evaluate_layer(layer, 0.0, 0.0, 0.0)
    h1, _, _ = evaluate_layer(layer, 0.25, 0.0, 0.0)
    assert h0 == pytest.approx(0.0, abs=1e-12)
    assert h1 == pytest.approx(1.0)


def test_layer_derivative_matches_finite_difference():
    layer = WaveLayer(amplitude=0.7, spatial_freq=2.3, direction=(0.6, 0.8),
                      temporal_freq=3, phase=0.4)
    u = np.linspace(0.0, 1.0, 17, endpoint=False)
    v = np.full_like(u, 0.37)
    eps = 1e-6

    _, du, dv = evaluate_layer(layer, u, v, 0.2)
    hu1, _, _ = evaluate_layer(layer, u + eps, v, 0.2)
    hu0, _, _ = evaluate_layer(layer, u - eps, v, 0.2)
    hv1, _, _ = evaluate_layer(layer, u, v + eps, 0.2)
    hv0, _, _ = evaluate_layer(layer, u, v - eps, 0.2)

    np.testing.assert_allclose(du, (hu1 - hu0) / (2 * eps), atol=1e-5)
    np.testing.assert_allclose(dv, (hv1 - hv0) / (2 * eps), atol=1e-5)


def test_layer_noise_changes_height():
    plain = WaveLayer(amplitude=1.0, spatial_freq=1.0)
    noisy = WaveLayer(amplitude=1.0, spatial_freq=1.0, noise_amount=0.5,
                      noise_scale=3, noise_seed=12.5)
    u = np.linspace(0.05, 0.95, 19)
    v = np.full_like(u, 0.41)
    h_plain, _, _ = evaluate_layer(plain, u, v, 0.0)
    h_noisy, _, _ = evaluate_layer(noisy, u, v, 0.0)
    assert not np.allclose(h_plain, h_noisy)


def test_layer_noise_below_threshold_ignored():
    plain = WaveLayer(amplitude=1.0, spatial_freq=1.0)
    faint = WaveLayer(amplitude=1.0, spatial_freq=1.0, noise_amount=0.0005,
                      noise_scale=3, noise_seed=12.5)
    u = np.linspace(0.05, 0.95, 19)
    v = np.full_like(u, 0.41)
    np.testing.assert_array_equal(evaluate_layer(plain, u, v, 0.5)[0],
                                  evaluate_layer(faint, u, v, 0.5)[0])


# ---------------------------------------------------------------------------
# Snapshots and clamping
# ---------------------------------------------------------------------------

def test_snapshot_is_isolated():
    layers = [WaveLayer(amplitude=0.5), WaveLayer(amplitude=0.25)]
    snap = snapshot_layers(layers, 2)
    layers[0].amplitude = 0.9
    layers[1].locked.amplitude = True
    assert snap[0].amplitude == 0.5
    assert snap[1].locked.amplitude is False


@pytest.mark.parametrize("count, expected", [
    (-3, 1), (0, 1), (1, 1), (3, 3), (8, 5), (20, 5),
])
def test_snapshot_clamps_count(count, expected):
    layers = [WaveLayer() for _ in range(5)]
    assert len(snapshot_layers(layers, count)) == expected


def test_snapshot_caps_at_max_layers():
    layers = [WaveLayer() for _ in range(12)]
    assert len(snapshot_layers(layers, 12)) == MAX_LAYERS


def test_sanitized_clamps_fields():
    layer = WaveLayer(temporal_freq=0.2, noise_scale=-4, sharpness=3.0,
                      noise_amount=-1.0)
    clean = layer.sanitized()
    assert clean.temporal_freq == 1
    assert clean.noise_scale == 1
    assert clean.sharpness == 1.0
    assert clean.noise_amount == 0.0
    # Original untouched
    assert layer.sharpness == 3.0


def test_sanitized_rounds_half_up():
    assert WaveLayer(temporal_freq=2.5).sanitized().temporal_freq == 3
    assert WaveLayer(noise_scale=3.49).sanitized().noise_scale == 3


# ---------------------------------------------------------------------------
# Randomizer
# ---------------------------------------------------------------------------

def test_random_layer_ranges():
    rng = np.random.RandomState(5)
    for _ in range(300):
        layer = random_layer(rng)
        assert 0.1 <= layer.amplitude <= 0.9
        assert 0.2 <= layer.spatial_freq <= 3.2
        assert isinstance(layer.temporal_freq, int)
        assert 1 <= layer.temporal_freq <= 8
        assert -1.0 <= layer.direction[0] <= 1.0
        assert -1.0 <= layer.direction[1] <= 1.0
        assert 0.0 <= layer.phase < TWO_PI
        assert 0.0 <= layer.sharpness <= 0.5
        assert 0.0 <= layer.noise_amount <= 0.5
        assert isinstance(layer.noise_scale, int)
        assert 1 <= layer.noise_scale <= 8
        assert 0.0 <= layer.noise_seed < 100.0
        assert layer.locked == LockFlags()


def test_random_layer_covers_integer_ranges():
    rng = np.random.RandomState(11)
    layers = [random_layer(rng) for _ in range(400)]
    assert {l.temporal_freq for l in layers} == set(range(1, 9))
    assert {l.noise_scale for l in layers} == set(range(1, 9))


def test_randomize_fully_locked_layer_is_stable():
    layer = WaveLayer(amplitude=0.33, spatial_freq=1.7, temporal_freq=5,
                      direction=(0.2, -0.9), phase=2.0, sharpness=0.4,
                      noise_amount=0.1, noise_scale=6, noise_seed=42.0,
                      locked=LockFlags.all_locked())
    rng = np.random.RandomState(0)
    first = randomize_layer(layer, rng)
    snapshot = WaveLayer(**{f.name: getattr(first, f.name)
                            for f in fields(WaveLayer)})
    second = randomize_layer(layer, rng)
    assert second == snapshot
    assert second.amplitude == 0.33
    assert second.direction == (0.2, -0.9)


def test_randomize_respects_partial_locks():
    locks = LockFlags(amplitude=True, direction=True, noise_seed=True)
    layer = WaveLayer(amplitude=0.33, direction=(0.0, 1.0), noise_seed=7.0,
                      spatial_freq=100.0, phase=100.0, locked=locks)
    randomize_layer(layer, np.random.RandomState(3))

    assert layer.amplitude == 0.33
    assert layer.direction == (0.0, 1.0)
    assert layer.noise_seed == 7.0
    assert layer.spatial_freq != 100.0
    assert layer.phase != 100.0
    assert layer.locked is locks
    assert layer.locked == LockFlags(amplitude=True, direction=True,
                                     noise_seed=True)


def test_randomize_layers_only_touches_active():
    layers = [WaveLayer(amplitude=5.0) for _ in range(4)]
    randomize_layers(layers, 2, np.random.RandomState(1))
    assert layers[0].amplitude != 5.0
    assert layers[1].amplitude != 5.0
    assert layers[2].amplitude == 5.0
    assert layers[3].amplitude == 5.0


def test_randomize_is_seeded():
    a = randomize_layer(WaveLayer(), np.random.RandomState(9))
    b = randomize_layer(WaveLayer(), np.random.RandomState(9))
    assert a == b

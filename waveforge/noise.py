"""Tileable gradient noise used to distort wave phases."""

import math

import numpy as np

# Fixed scale so the noise better fills [-1, 1]
NOISE_GAIN = 1.5

_HASH_X = (127.1, 311.7)
_HASH_Y = (269.5, 183.3)
_HASH_MULT = 43758.5453


def to_count(value):
    """Round half up and clamp to a positive integer."""
    return max(1, int(math.floor(float(value) + 0.5)))


def _fade(t):
    """Hermite fade: 3t^2 - 2t^3."""
    return t * t * (3.0 - 2.0 * t)


def _fract(x):
    return x - np.floor(x)


def _gradient(cx, cy, seed):
    """Pseudo-random gradient for (wrapped) lattice corners.

    Two independent sine-hash channels, each scaled into [-1, 1].
    """
    hx = cx + seed
    hy = cy + seed
    gx = _fract(np.sin(hx * _HASH_X[0] + hy * _HASH_X[1]) * _HASH_MULT)
    gy = _fract(np.sin(hx * _HASH_Y[0] + hy * _HASH_Y[1]) * _HASH_MULT)
    return gx * 2.0 - 1.0, gy * 2.0 - 1.0


def tileable_noise(u, v, period=1, seed=0.0):
    """Evaluate 2D gradient noise that repeats exactly over the unit tile.

    Args:
        u, v: Coordinates (scalars or broadcastable arrays) in tile space.
        period: Number of lattice cells per tile along each axis. Lattice
            corners wrap modulo this value, so the noise repeats every
            1.0 in ``u`` and ``v``.
        seed: Offset into the hash so layers decorrelate.

    Returns:
        Array of noise values, roughly in [-1, 1].
    """
    period = to_count(period)
    px = np.asarray(u, dtype=np.float64) * period
    py = np.asarray(v, dtype=np.float64) * period

    # Integer cell and fractional offset
    ix = np.floor(px)
    iy = np.floor(py)
    fx = px - ix
    fy = py - iy

    # Wrapped corners
    x0 = np.mod(ix, period)
    y0 = np.mod(iy, period)
    x1 = np.mod(ix + 1.0, period)
    y1 = np.mod(iy + 1.0, period)

    g00x, g00y = _gradient(x0, y0, seed)
    g10x, g10y = _gradient(x1, y0, seed)
    g01x, g01y = _gradient(x0, y1, seed)
    g11x, g11y = _gradient(x1, y1, seed)

    # Gradient dot offset-from-corner
    d00 = g00x * fx + g00y * fy
    d10 = g10x * (fx - 1.0) + g10y * fy
    d01 = g01x * fx + g01y * (fy - 1.0)
    d11 = g11x * (fx - 1.0) + g11y * (fy - 1.0)

    ux = _fade(fx)
    uy = _fade(fy)

    v0 = d00 + ux * (d10 - d00)
    v1 = d01 + ux * (d11 - d01)
    return (v0 + uy * (v1 - v0)) * NOISE_GAIN

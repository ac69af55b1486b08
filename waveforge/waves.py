"""Wave layers: the sharpening transfer function, per-layer evaluation,
and the parameter randomizer.

Each layer is one directional sine component. Its wavevector is snapped to
whole cycles per tile and its temporal frequency is an integer, so every
layer (and any sum of layers) tiles in space and loops in time.
"""

import math
from dataclasses import dataclass, field, fields, replace

import numpy as np

from .noise import tileable_noise, to_count

MAX_LAYERS = 8
TWO_PI = 2.0 * math.pi

# Below these thresholds sharpening / noise are treated as disabled
SHARPNESS_EPSILON = 0.001
NOISE_EPSILON = 0.001
SLOPE_EPSILON = 0.001

DEFAULT_DIRECTION = (1.0, 0.0)


@dataclass
class LockFlags:
    """Per-field flags that exempt a layer field from randomization."""

    amplitude: bool = False
    spatial_freq: bool = False
    temporal_freq: bool = False
    direction: bool = False
    phase: bool = False
    sharpness: bool = False
    noise_amount: bool = False
    noise_scale: bool = False
    noise_seed: bool = False

    @classmethod
    def all_locked(cls):
        return cls(**{f.name: True for f in fields(cls)})


@dataclass
class WaveLayer:
    """One additive Fourier component of the height field."""

    amplitude: float = 0.5
    spatial_freq: float = 1.0
    temporal_freq: int = 1
    direction: tuple = DEFAULT_DIRECTION
    phase: float = 0.0
    sharpness: float = 0.0
    noise_amount: float = 0.0
    noise_scale: int = 4
    noise_seed: float = 0.0
    locked: LockFlags = field(default_factory=LockFlags)

    def sanitized(self):
        """Return a copy with every field clamped into its valid domain.

        The copy owns its own lock record, so it is safe to hand to an
        evaluation while the original keeps being edited.
        """
        return replace(
            self,
            amplitude=float(self.amplitude),
            spatial_freq=float(self.spatial_freq),
            temporal_freq=to_count(self.temporal_freq),
            direction=(float(self.direction[0]), float(self.direction[1])),
            phase=float(self.phase),
            sharpness=min(max(float(self.sharpness), 0.0), 1.0),
            noise_amount=max(float(self.noise_amount), 0.0),
            noise_scale=to_count(self.noise_scale),
            noise_seed=float(self.noise_seed),
            locked=replace(self.locked),
        )


def default_layers():
    """The four starting layers of a new session."""
    return [
        WaveLayer(amplitude=0.8, spatial_freq=0.5, temporal_freq=1,
                  direction=(1.0, 0.0), phase=0.0),
        WaveLayer(amplitude=0.6, spatial_freq=1.0, temporal_freq=2,
                  direction=(0.7, 0.7), phase=1.57),
        WaveLayer(amplitude=0.4, spatial_freq=1.5, temporal_freq=3,
                  direction=(-0.5, 0.8), phase=3.14),
        WaveLayer(amplitude=0.3, spatial_freq=2.0, temporal_freq=4,
                  direction=(-0.8, -0.6), phase=4.71),
    ]


def snapshot_layers(layers, layer_count):
    """Freeze the active layers for one evaluation.

    ``layer_count`` is clamped to [1, MAX_LAYERS] and to the number of
    layers available. Returns a tuple of sanitized copies.
    """
    count = min(max(int(layer_count), 1), MAX_LAYERS, len(layers))
    return tuple(layer.sanitized() for layer in layers[:count])


# ---------------------------------------------------------------------------
# Sharpening transfer function
# ---------------------------------------------------------------------------

def _power(sharpness):
    """Shape exponent p in (0.2, 1.0]; smaller p means sharper valleys."""
    return 1.0 / (1.0 + 4.0 * sharpness)


def _mix(a, b, t):
    return a * (1.0 - t) + b * t


def sharpen(wave, sharpness):
    """Reshape a sine sample into an oscilloscope-like asymmetric wave.

    The sample is flipped, shifted into [-2, 0], raised to ``1/p`` in that
    negative space, shifted back and rescaled analytically to [-1, 1], then
    flipped again so valleys become sharp and peaks flatten. The result is
    blended with the input by ``sharpness``, which keeps the transform
    continuous at both ends of the range.

    Args:
        wave: Sample(s) in [-1, 1].
        sharpness: Blend/shape factor in [0, 1].

    Returns:
        Reshaped sample(s) in [-1, 1].
    """
    if sharpness <= SHARPNESS_EPSILON:
        return wave

    inv_p = 1.0 / _power(sharpness)
    y1 = -wave - 1.0
    y2 = -np.power(np.maximum(-y1, 0.0), inv_p)
    y3 = y2 + 1.0

    # Extremes at wave = -1 (y1 = -2) and wave = 1 (y1 = 0)
    min_y3 = 1.0 - 2.0 ** inv_p
    max_y3 = 1.0
    y4 = 2.0 * (y3 - min_y3) / (max_y3 - min_y3) - 1.0

    return _mix(wave, -y4, sharpness)


def sharpen_slope(wave, slope, sharpness):
    """Approximate slope of ``sharpen`` given the raw sine slope.

    Scales ``slope`` (the cosine of the phase) by the derivative of the
    power curve. The final rescale in ``sharpen`` is not mirrored here, so
    normals under strong sharpening are approximate; the look of the maps
    depends on this exact approximation.
    """
    if sharpness <= SHARPNESS_EPSILON:
        return slope

    inv_p = 1.0 / _power(sharpness)
    magnitude = np.abs(-wave - 1.0)
    scale = inv_p * np.power(magnitude, inv_p - 1.0)
    shaped = _mix(slope, -slope * scale, sharpness)
    return np.where(magnitude > SLOPE_EPSILON, shaped, slope)


# ---------------------------------------------------------------------------
# Layer evaluation
# ---------------------------------------------------------------------------

def quantized_wavevector(spatial_freq, direction):
    """Wavevector snapped to whole cycles per tile.

    The direction is normalized (a zero vector falls back to (1, 0)), and
    each axis of ``spatial_freq * direction`` is rounded half up before
    scaling by 2*pi. The realized frequency can therefore differ from the
    requested one, noticeably so for small values.
    """
    dx, dy = float(direction[0]), float(direction[1])
    length = math.hypot(dx, dy)
    if length <= 0.0 or not math.isfinite(length):
        dx, dy = DEFAULT_DIRECTION
    else:
        dx, dy = dx / length, dy / length

    kx = math.floor(spatial_freq * dx + 0.5) * TWO_PI
    ky = math.floor(spatial_freq * dy + 0.5) * TWO_PI
    return kx, ky


def layer_phase(layer, u, v, t):
    """Total phase of one layer at (u, v) and loop-phase ``t``."""
    kx, ky = quantized_wavevector(layer.spatial_freq, layer.direction)
    phase = kx * u + ky * v + layer.temporal_freq * TWO_PI * t + layer.phase
    if layer.noise_amount > NOISE_EPSILON:
        phase = phase + layer.noise_amount * tileable_noise(
            u, v, layer.noise_scale, layer.noise_seed)
    return phase


def evaluate_layer(layer, u, v, t):
    """Height contribution and its partial derivatives for one layer.

    Noise enters the phase but not the derivatives: the gradient uses the
    quantized wavevector only.

    Returns:
        (height, dh_du, dh_dv), each shaped like the broadcast of u and v.
    """
    kx, ky = quantized_wavevector(layer.spatial_freq, layer.direction)
    phase = layer_phase(layer, u, v, t)

    wave = np.sin(phase)
    height = layer.amplitude * sharpen(wave, layer.sharpness)

    slope = layer.amplitude * sharpen_slope(wave, np.cos(phase),
                                            layer.sharpness)
    return height, slope * kx, slope * ky


# ---------------------------------------------------------------------------
# Randomizer
# ---------------------------------------------------------------------------

def random_layer(rng=None):
    """Draw a plausible random layer with all fields unlocked."""
    if rng is None:
        rng = np.random.RandomState()

    return WaveLayer(
        amplitude=rng.uniform(0.1, 0.9),
        spatial_freq=rng.uniform(0.2, 3.2),
        temporal_freq=int(rng.randint(1, 9)),
        direction=(rng.uniform(-1.0, 1.0), rng.uniform(-1.0, 1.0)),
        phase=rng.uniform(0.0, TWO_PI),
        sharpness=rng.uniform(0.0, 0.5),
        noise_amount=rng.uniform(0.0, 0.5),
        noise_scale=int(rng.randint(1, 9)),
        noise_seed=rng.uniform(0.0, 100.0),
    )


def randomize_layer(layer, rng=None):
    """Overwrite the unlocked fields of ``layer`` in place.

    Locked fields and the lock record itself are left untouched.
    Returns the same layer.
    """
    fresh = random_layer(rng)
    for f in fields(LockFlags):
        if not getattr(layer.locked, f.name):
            setattr(layer, f.name, getattr(fresh, f.name))
    return layer


def randomize_layers(layers, layer_count, rng=None):
    """Randomize the active layers; inactive ones keep their values."""
    if rng is None:
        rng = np.random.RandomState()
    count = min(max(int(layer_count), 0), len(layers))
    for layer in layers[:count]:
        randomize_layer(layer, rng)
    return layers

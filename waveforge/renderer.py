"""Field evaluation and frame rendering.

Sums the active wave layers into a height field or a tangent-space normal
map. The same functions serve interactive preview and frame export; only
the tiling factor differs.
"""

from dataclasses import dataclass, replace

import numpy as np
from PIL import Image

from .waves import evaluate_layer, snapshot_layers

OUTPUT_MODES = ("normal", "height")
NORMAL_MAP_FORMATS = ("opengl", "directx")

# Minimum height span for renormalization
SPAN_EPSILON = 0.001


@dataclass
class FieldConfig:
    """Global modifiers applied on top of the summed layers."""

    # Global height multiplier
    wave_scale: float = 0.2

    # Normal mode
    normal_intensity: float = 0.6
    normal_map_format: str = "opengl"  # "opengl" or "directx" (flipped Y)

    # Height mode
    height_range: float = 1.0
    normalize_heights: bool = False

    output_mode: str = "normal"

    # Preview only: how many copies of the tile per axis
    tiling_preview: int = 1

    def __post_init__(self):
        if self.output_mode not in OUTPUT_MODES:
            raise ValueError(
                f"output_mode must be one of {OUTPUT_MODES}, "
                f"got {self.output_mode!r}")
        if self.normal_map_format not in NORMAL_MAP_FORMATS:
            raise ValueError(
                f"normal_map_format must be one of {NORMAL_MAP_FORMATS}, "
                f"got {self.normal_map_format!r}")
        self.tiling_preview = max(1, int(self.tiling_preview))


def _split_uv(uv, tiling):
    uv = np.asarray(uv, dtype=np.float64)
    if tiling > 1:
        uv = np.mod(uv * tiling, 1.0)
    return uv[..., 0], uv[..., 1]


def _scalar_or_array(arr):
    arr = np.asarray(arr)
    return float(arr) if arr.ndim == 0 else arr


def field_gradient(layers, layer_count, uv, t, config):
    """Summed (dh/du, dh/dv) of the active layers, times ``wave_scale``."""
    active = snapshot_layers(layers, layer_count)
    u, v = _split_uv(uv, config.tiling_preview)

    dhdx = np.zeros(np.broadcast(u, v).shape, dtype=np.float64)
    dhdy = np.zeros_like(dhdx)
    for layer in active:
        _, du, dv = evaluate_layer(layer, u, v, t)
        dhdx = dhdx + du
        dhdy = dhdy + dv

    return (_scalar_or_array(dhdx * config.wave_scale),
            _scalar_or_array(dhdy * config.wave_scale))


def field_height(layers, layer_count, uv, t, config):
    """Summed height of the active layers, before display mapping.

    With ``normalize_heights`` the result is remapped into [-1, 1] against
    the worst-case bounds +/- sum(|amplitude|) * wave_scale. Normalization
    is skipped when ``wave_scale`` is zero or the unscaled span
    2 * sum(|amplitude|) is at most 0.001.
    """
    active = snapshot_layers(layers, layer_count)
    u, v = _split_uv(uv, config.tiling_preview)

    total = np.zeros(np.broadcast(u, v).shape, dtype=np.float64)
    for layer in active:
        height, _, _ = evaluate_layer(layer, u, v, t)
        total = total + height
    total = total * config.wave_scale

    if config.normalize_heights and config.wave_scale != 0.0:
        # Span guard uses the unscaled bounds
        bound = sum(abs(layer.amplitude) for layer in active)
        if 2.0 * bound > SPAN_EPSILON:
            min_height = -bound * config.wave_scale
            span = 2.0 * bound * config.wave_scale
            total = 2.0 * (total - min_height) / span - 1.0

    return _scalar_or_array(total)


def evaluate_height(layers, layer_count, uv, t, config):
    """Height sample mapped to the displayable range [0, 1].

    Args:
        layers: Sequence of WaveLayer (only the first ``layer_count`` used).
        layer_count: Number of active layers, clamped to [1, 8].
        uv: Coordinate(s), trailing axis of length 2, in [0, 1).
        t: Loop-phase in [0, 1).
        config: FieldConfig.

    Returns:
        Float for a single coordinate, otherwise an array shaped like
        ``uv[..., 0]``.
    """
    height = field_height(layers, layer_count, uv, t, config)
    mapped = np.clip((np.asarray(height) * config.height_range + 1.0) * 0.5,
                     0.0, 1.0)
    return _scalar_or_array(mapped)


def evaluate_normal(layers, layer_count, uv, t, config):
    """Tangent-space normal encoded into [0, 1] RGB.

    Returns:
        Array with a trailing axis of length 3.
    """
    dhdx, dhdy = field_gradient(layers, layer_count, uv, t, config)
    intensity = config.normal_intensity

    nx = -np.asarray(dhdx) * intensity
    ny = -np.asarray(dhdy) * intensity
    nz = np.ones_like(nx)
    length = np.sqrt(nx * nx + ny * ny + nz * nz)
    normal = np.stack([nx / length, ny / length, nz / length], axis=-1)

    if config.normal_map_format == "directx":
        normal[..., 1] = -normal[..., 1]

    return normal * 0.5 + 0.5


def pixel_uv(resolution):
    """Pixel-centre coordinates for a square frame.

    Row 0 is the top of the image, so ``v`` decreases down the rows.

    Returns:
        Array of shape (resolution, resolution, 2).
    """
    resolution = max(1, int(resolution))
    centres = (np.arange(resolution, dtype=np.float64) + 0.5) / resolution
    u, v = np.meshgrid(centres, 1.0 - centres, indexing='xy')
    return np.stack([u, v], axis=-1)


def render(layers, layer_count, t, config=None, resolution=512):
    """Render one frame of the field.

    Args:
        layers: Sequence of WaveLayer.
        layer_count: Number of active layers.
        t: Loop-phase in [0, 1).
        config: FieldConfig instance (defaults used if None).
        resolution: Output width and height in pixels.

    Returns:
        PIL Image, ``RGB`` in normal mode and ``L`` in height mode.
    """
    if config is None:
        config = FieldConfig()

    uv = pixel_uv(resolution)

    if config.output_mode == "normal":
        rgb = evaluate_normal(layers, layer_count, uv, t, config)
        return Image.fromarray(_to_bytes(rgb))

    height = evaluate_height(layers, layer_count, uv, t, config)
    return Image.fromarray(_to_bytes(height))


def export_config(config):
    """Copy of ``config`` suitable for exported tiles (no preview tiling)."""
    return replace(config, tiling_preview=1)


def _to_bytes(values):
    return np.clip(np.round(values * 255.0), 0, 255).astype(np.uint8)

"""WaveForge - Generate tileable, perfectly looping wave normal and height maps."""

from .renderer import (FieldConfig, evaluate_height, evaluate_normal,
                       field_gradient, field_height, render)
from .waves import (MAX_LAYERS, LockFlags, WaveLayer, default_layers,
                    random_layer, randomize_layer, randomize_layers, sharpen)
from .noise import tileable_noise
from .animation import AnimationClock, loop_phase

__version__ = "0.1.0"
__all__ = [
    "generate", "render", "FieldConfig", "WaveLayer", "LockFlags",
    "MAX_LAYERS", "evaluate_height", "evaluate_normal", "field_gradient",
    "field_height", "default_layers", "random_layer", "randomize_layer",
    "randomize_layers", "sharpen", "tileable_noise", "AnimationClock",
    "loop_phase",
]


def generate(layers=None, layer_count=None, t=0.0, resolution=512, **kwargs):
    """Render one frame of a wave map.

    Args:
        layers: List of WaveLayer. Defaults to the built-in starting layers.
        layer_count: Number of active layers (default: all given layers,
            at most 8).
        t: Loop-phase in [0, 1).
        resolution: Output width and height in pixels.
        **kwargs: Additional FieldConfig parameters (wave_scale,
            normal_intensity, output_mode, etc.).

    Returns:
        PIL Image, RGB for normal maps and L for height maps.
    """
    if layers is None:
        layers = default_layers()
    if layer_count is None:
        layer_count = min(len(layers), MAX_LAYERS)
    config = FieldConfig(**kwargs)
    return render(layers, layer_count, t, config=config,
                  resolution=resolution)

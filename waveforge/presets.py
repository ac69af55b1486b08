"""Reading and writing session settings and presets as JSON.

Two layouts are supported, both compatible with files saved by the browser
version of the generator:

* settings files: a flat object with every session field;
* preset files: ``{"version", "name", "timestamp", "settings": {...}}``.

Missing fields fall back to the documented defaults, so older files keep
loading as the schema grows.
"""

import json
import logging
import math
from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from pathlib import Path

import numpy as np

from .renderer import FieldConfig
from .waves import (MAX_LAYERS, LockFlags, WaveLayer, default_layers,
                    random_layer)

logger = logging.getLogger(__name__)

SETTINGS_VERSION = "1.1"
PRESET_VERSION = "1.0"
DEFAULT_PRESET_NAME = "Fourier Wave Preset"

# JSON key -> attribute name
_LAYER_KEYS = {
    "amplitude": "amplitude",
    "spatialFreq": "spatial_freq",
    "temporalFreq": "temporal_freq",
    "direction": "direction",
    "phase": "phase",
    "sharpness": "sharpness",
    "noiseAmount": "noise_amount",
    "noiseScale": "noise_scale",
    "noiseSeed": "noise_seed",
}
_ATTR_KEYS = {attr: key for key, attr in _LAYER_KEYS.items()}

_CONFIG_KEYS = {
    "waveScale": "wave_scale",
    "normalIntensity": "normal_intensity",
    "heightRange": "height_range",
    "normalizeHeights": "normalize_heights",
    "normalMapFormat": "normal_map_format",
    "tilingPreview": "tiling_preview",
    "outputMode": "output_mode",
}


class PresetError(ValueError):
    """A settings or preset file could not be read."""


@dataclass
class Settings:
    """Everything a session persists: field config, layers and timing."""

    config: FieldConfig = field(default_factory=FieldConfig)
    layers: list = field(default_factory=list)
    layer_count: int = 4
    loop_duration: float = 10.0
    speed: float = 1.0
    export_resolution: int = 512
    export_frames: int = 30

    def __post_init__(self):
        self.layer_count = min(max(int(self.layer_count), 1), MAX_LAYERS)
        if not self.layers:
            self.layers = default_layers()

    @property
    def active_layers(self):
        return self.layers[:self.layer_count]


def new_settings(rng=None):
    """Fresh settings: the default layers padded with random ones."""
    settings = Settings()
    pad_layers(settings.layers, rng)
    return settings


def pad_layers(layers, rng=None):
    """Extend ``layers`` in place with random layers up to MAX_LAYERS."""
    if len(layers) < MAX_LAYERS and rng is None:
        rng = np.random.RandomState()
    while len(layers) < MAX_LAYERS:
        layers.append(random_layer(rng))
    return layers


# ---------------------------------------------------------------------------
# Layer <-> dict
# ---------------------------------------------------------------------------

def layer_to_dict(layer):
    data = {}
    for attr, key in _ATTR_KEYS.items():
        value = getattr(layer, attr)
        if attr == "direction":
            value = {"x": float(value[0]), "y": float(value[1])}
        data[key] = value
    data["locked"] = {_ATTR_KEYS[f.name]: getattr(layer.locked, f.name)
                      for f in fields(LockFlags)}
    return data


def _parse_direction(value):
    if isinstance(value, dict):
        return (float(value.get("x", 1.0)), float(value.get("y", 0.0)))
    if isinstance(value, (list, tuple)) and len(value) == 2:
        return (float(value[0]), float(value[1]))
    raise PresetError(f"invalid direction: {value!r}")


def layer_from_dict(data):
    """Build a WaveLayer, defaulting any missing field."""
    if not isinstance(data, dict):
        raise PresetError(f"wave layer must be an object, got {data!r}")

    kwargs = {}
    try:
        for key, attr in _LAYER_KEYS.items():
            if key not in data or data[key] is None:
                continue
            if attr == "direction":
                kwargs[attr] = _parse_direction(data[key])
            elif attr in ("temporal_freq", "noise_scale"):
                kwargs[attr] = int(math.floor(float(data[key]) + 0.5))
            else:
                kwargs[attr] = float(data[key])
    except PresetError:
        raise
    except (TypeError, ValueError) as exc:
        raise PresetError(f"invalid wave layer: {exc}") from exc

    locked = data.get("locked") or {}
    kwargs["locked"] = LockFlags(**{
        attr: bool(locked.get(key, False)) for key, attr in _LAYER_KEYS.items()
    })
    return WaveLayer(**kwargs)


# ---------------------------------------------------------------------------
# Settings <-> dict
# ---------------------------------------------------------------------------

def settings_to_dict(settings):
    """Flat settings object; only the active layers are stored."""
    data = {
        "version": SETTINGS_VERSION,
        "timestamp": _timestamp(),
        "loopDuration": settings.loop_duration,
        "speed": settings.speed,
        "layerCount": settings.layer_count,
    }
    for key, attr in _CONFIG_KEYS.items():
        data[key] = getattr(settings.config, attr)
    data["waveLayers"] = [layer_to_dict(layer)
                          for layer in settings.active_layers]
    data["exportRes"] = str(settings.export_resolution)
    data["exportFrames"] = str(settings.export_frames)
    return data


def settings_from_dict(data, rng=None):
    """Rebuild Settings from a flat settings object.

    Layer lists shorter than MAX_LAYERS are padded with random layers.
    """
    if not isinstance(data, dict):
        raise PresetError("settings must be a JSON object")

    default_config = FieldConfig()

    config_kwargs = {}
    for key, attr in _CONFIG_KEYS.items():
        config_kwargs[attr] = data.get(key, getattr(default_config, attr))

    try:
        config = FieldConfig(**config_kwargs)
        layers = [layer_from_dict(item)
                  for item in data.get("waveLayers") or []]
        if not layers:
            layers = default_layers()
        pad_layers(layers, rng)

        settings = Settings(
            config=config,
            layers=layers,
            layer_count=int(data.get("layerCount") or Settings.layer_count),
            loop_duration=float(data.get("loopDuration",
                                         Settings.loop_duration)),
            speed=float(data.get("speed", Settings.speed)),
            export_resolution=int(data.get("exportRes",
                                           Settings.export_resolution)),
            export_frames=int(data.get("exportFrames",
                                       Settings.export_frames)),
        )
    except PresetError:
        raise
    except (TypeError, ValueError) as exc:
        raise PresetError(f"invalid settings: {exc}") from exc

    logger.debug("Loaded settings with %d active layers",
                 settings.layer_count)
    return settings


def preset_to_dict(settings, name=DEFAULT_PRESET_NAME):
    """Preset wrapper around the settings object."""
    inner = settings_to_dict(settings)
    for key in ("version", "timestamp", "exportRes", "exportFrames"):
        inner.pop(key, None)
    return {
        "version": PRESET_VERSION,
        "name": name,
        "timestamp": _timestamp(),
        "settings": inner,
    }


def preset_from_dict(data, rng=None):
    if not isinstance(data, dict) or not isinstance(data.get("settings"),
                                                    dict):
        raise PresetError("Invalid preset format: missing 'settings' object")
    logger.debug("Importing preset %r",
                 data.get("name") or "Unnamed preset")
    return settings_from_dict(data["settings"], rng=rng)


# ---------------------------------------------------------------------------
# Files
# ---------------------------------------------------------------------------

def _read_json(path):
    path = Path(path)
    try:
        with path.open('r', encoding='utf-8') as fh:
            return json.load(fh)
    except json.JSONDecodeError as exc:
        raise PresetError(f"{path}: not valid JSON ({exc})") from exc


def _write_json(path, data):
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open('w', encoding='utf-8') as fh:
        json.dump(data, fh, indent=2)
    return path


def load_settings(path, rng=None):
    """Load a settings file or a preset file, whichever ``path`` holds."""
    data = _read_json(path)
    if isinstance(data, dict) and "settings" in data:
        return preset_from_dict(data, rng=rng)
    return settings_from_dict(data, rng=rng)


def save_settings(path, settings):
    path = _write_json(path, settings_to_dict(settings))
    logger.info("Saved settings to %s", path)
    return path


def load_preset(path, rng=None):
    return preset_from_dict(_read_json(path), rng=rng)


def save_preset(path, settings, name=DEFAULT_PRESET_NAME):
    path = _write_json(path, preset_to_dict(settings, name=name))
    logger.info("Saved preset %r to %s", name, path)
    return path


def _timestamp():
    return datetime.now(timezone.utc).isoformat()

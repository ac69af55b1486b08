"""CLI entry point for WaveForge."""

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path

import numpy as np

from .animation import loop_phase
from .export import export_sequence
from .presets import (PresetError, load_preset, load_settings, new_settings,
                      save_preset, save_settings)
from .renderer import OUTPUT_MODES, render
from .waves import randomize_layers


def _load(path, rng=None):
    if path is None:
        return new_settings(rng)
    return load_settings(path, rng=rng)


def _apply_overrides(settings, args):
    overrides = {}
    if getattr(args, "mode", None):
        overrides["output_mode"] = args.mode
    if getattr(args, "tiling", None) is not None:
        overrides["tiling_preview"] = args.tiling
    if getattr(args, "directx", False):
        overrides["normal_map_format"] = "directx"
    if overrides:
        settings.config = replace(settings.config, **overrides)
    return settings


def cmd_render(args):
    rng = np.random.RandomState(args.seed) if args.seed is not None else None
    settings = _apply_overrides(_load(args.settings, rng), args)
    t = loop_phase(args.time, settings.speed, settings.loop_duration)
    resolution = args.resolution or settings.export_resolution

    image = render(settings.layers, settings.layer_count, t,
                   settings.config, resolution)

    output = Path(args.output)
    output.parent.mkdir(parents=True, exist_ok=True)
    image.save(str(output))
    print(f"Saved {settings.config.output_mode} map "
          f"({image.size[0]}x{image.size[1]}, t={t:.3f}) to {output}")


def cmd_export(args):
    rng = np.random.RandomState(args.seed) if args.seed is not None else None
    settings = _apply_overrides(_load(args.settings, rng), args)
    frames = args.frames or settings.export_frames
    resolution = args.resolution or settings.export_resolution

    written = export_sequence(
        settings.layers, settings.layer_count, args.output_dir,
        config=settings.config, resolution=resolution,
        frame_count=frames, archive=args.zip,
    )
    print(f"Exported {frames} frames ({resolution}x{resolution}) "
          f"to {args.output_dir}")
    if args.zip:
        print(f"Archive: {written[-1]}")


def cmd_randomize(args):
    rng = np.random.RandomState(args.seed) if args.seed is not None else None
    path = Path(args.settings)
    if path.exists():
        settings = load_settings(path, rng=rng)
    else:
        settings = new_settings(rng)
    if args.layers is not None:
        settings.layer_count = min(max(args.layers, 1), len(settings.layers))

    randomize_layers(settings.layers, settings.layer_count, rng)
    save_settings(path, settings)
    print(f"Randomized {settings.layer_count} layers in {path}")


def cmd_preset(args):
    if args.action == "export":
        settings = load_settings(args.settings)
        save_preset(args.preset, settings, name=args.name)
        print(f"Exported preset to {args.preset}")
    else:
        settings = load_preset(args.preset)
        save_settings(args.settings, settings)
        print(f"Imported preset into {args.settings}")


def build_parser():
    parser = argparse.ArgumentParser(
        prog="waveforge",
        description="Generate tileable, looping wave normal and height maps"
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true",
        help="Enable debug logging"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    def add_common(p):
        p.add_argument(
            "--settings", "-c", default=None,
            help="Settings or preset JSON file (default: built-in layers)"
        )
        p.add_argument(
            "--resolution", "-r", type=int, default=None,
            help="Output size in pixels (default: from settings, 512)"
        )
        p.add_argument(
            "--mode", "-m", choices=OUTPUT_MODES, default=None,
            help="Output normal or height map (default: from settings)"
        )
        p.add_argument(
            "--directx", action="store_true",
            help="Use the DirectX (flipped Y) normal map convention"
        )
        p.add_argument(
            "--seed", "-s", type=int, default=None,
            help="Seed for layers padded in at random"
        )

    p = sub.add_parser("render", help="Render a single frame")
    add_common(p)
    p.add_argument(
        "--time", "-t", type=float, default=0.0,
        help="Elapsed seconds; scaled by speed and wrapped to the loop"
    )
    p.add_argument(
        "--tiling", type=int, default=None,
        help="Preview tiling factor (default: from settings)"
    )
    p.add_argument(
        "--output", "-o", default="wave.png",
        help="Output file path (default: wave.png)"
    )
    p.set_defaults(func=cmd_render)

    p = sub.add_parser("export", help="Export a loopable frame sequence")
    add_common(p)
    p.add_argument(
        "--frames", "-n", type=int, default=None,
        help="Number of frames in the loop (default: from settings, 30)"
    )
    p.add_argument(
        "--zip", action="store_true",
        help="Also pack the frames into a ZIP archive"
    )
    p.add_argument(
        "--output-dir", "-o", default="frames",
        help="Directory for the frames (default: frames)"
    )
    p.set_defaults(func=cmd_export)

    p = sub.add_parser("randomize", help="Randomize unlocked layer fields")
    p.add_argument("settings", help="Settings file to update (created if missing)")
    p.add_argument(
        "--layers", "-l", type=int, default=None,
        help="Number of active layers (1-8)"
    )
    p.add_argument(
        "--seed", "-s", type=int, default=None,
        help="Random seed for reproducible randomization"
    )
    p.set_defaults(func=cmd_randomize)

    p = sub.add_parser("preset", help="Convert between settings and presets")
    p.add_argument("action", choices=("export", "import"))
    p.add_argument("settings", help="Settings file")
    p.add_argument("preset", help="Preset file")
    p.add_argument(
        "--name", default="Fourier Wave Preset",
        help="Preset name when exporting"
    )
    p.set_defaults(func=cmd_preset)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        args.func(args)
    except (PresetError, OSError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())

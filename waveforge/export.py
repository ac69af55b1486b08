"""Writing loopable frame sequences to disk."""

import logging
import zipfile
from pathlib import Path

from .animation import frame_phases
from .renderer import FieldConfig, export_config, render
from .waves import snapshot_layers

logger = logging.getLogger(__name__)


def frame_filename(mode, index):
    return f"wave_{mode}_{index:04d}.png"


def archive_filename(mode, frame_count):
    return f"fourier_waves_{mode}_{frame_count}frames.zip"


def render_sequence(layers, layer_count, config=None, resolution=512,
                    frame_count=30):
    """Yield ``(index, image)`` for one full loop.

    Layers are snapshotted once, so edits made while the sequence is being
    consumed do not leak into later frames. Preview tiling is ignored.
    """
    if config is None:
        config = FieldConfig()
    config = export_config(config)
    active = snapshot_layers(layers, layer_count)

    for index, t in enumerate(frame_phases(frame_count)):
        yield index, render(active, len(active), t, config, resolution)


def export_sequence(layers, layer_count, output_dir, config=None,
                    resolution=512, frame_count=30, archive=False):
    """Render a loopable PNG sequence into ``output_dir``.

    Args:
        layers: Sequence of WaveLayer.
        layer_count: Number of active layers.
        output_dir: Directory for the frames (created if missing).
        config: FieldConfig; ``tiling_preview`` is forced to 1.
        resolution: Frame width and height in pixels.
        frame_count: Number of evenly spaced frames in the loop.
        archive: Also pack the frames into a ZIP file in ``output_dir``.

    Returns:
        List of written paths: the frames, then the archive if requested.
    """
    if config is None:
        config = FieldConfig()
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    mode = config.output_mode

    written = []
    for index, image in render_sequence(layers, layer_count, config,
                                        resolution, frame_count):
        path = output_dir / frame_filename(mode, index)
        image.save(str(path))
        written.append(path)
        logger.debug("Wrote frame %d/%d: %s", index + 1, frame_count, path)

    if archive:
        zip_path = output_dir / archive_filename(mode, len(written))
        with zipfile.ZipFile(zip_path, 'w', zipfile.ZIP_DEFLATED) as zf:
            for path in written:
                zf.write(path, arcname=path.name)
        written.append(zip_path)
        logger.info("Created %s with %d %s map images",
                    zip_path, len(written) - 1, mode)

    return written

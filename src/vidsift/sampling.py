"""Timestamp selection and still-frame extraction."""

import logging
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import cv2
import numpy.typing as npt

from .decoder import Decoder
from .errors import DecodeFailure, DecoderError, DecoderNotFound

logger = logging.getLogger(__name__)


@dataclass
class SampledFrame:
    """One decoded still taken from a video."""

    index: int
    timestamp: float
    image: npt.NDArray[Any]


def sample_timestamps(duration: float, frame_count: int) -> list[float]:
    """Choose the offsets (seconds) at which frames are sampled.

    Samples are evenly spaced at ``duration * (i+1)/(frame_count+1)``, which
    excludes the very start and end. Videos shorter than ``frame_count``
    seconds get one sample in the middle of every whole second instead.

    Args:
        duration: Video duration in seconds.
        frame_count: Requested number of samples (values < 1 count as 1).

    Returns:
        Timestamps in ascending order.
    """
    frame_count = max(1, frame_count)
    if duration <= 0:
        return []
    if duration < frame_count:
        points = [i + 0.5 for i in range(int(duration))]
        return points or [duration / 2.0]
    return [duration * (i + 1) / (frame_count + 1) for i in range(frame_count)]


def midpoint_index(timestamps: list[float]) -> int:
    """Index of the temporal midpoint sample."""
    return len(timestamps) // 2


async def sample_frames(
    decoder: Decoder, path: str, timestamps: list[float], timeout: float | None = None
) -> list[SampledFrame]:
    """Extract and decode a still at every timestamp.

    Frames that the decoder cannot produce are skipped. All scratch images
    live in a private temporary directory removed before returning.

    Args:
        decoder: External decoder
        path: Video file
        timestamps: Offsets in seconds, in the order returned
        timeout: Per-frame decoder timeout (None = no limit)

    Returns:
        Decoded frames in timestamp order (possibly fewer than requested)
    """
    frames: list[SampledFrame] = []
    scratch = Path(tempfile.mkdtemp(prefix="vidsift-frames-"))
    try:
        for index, timestamp in enumerate(timestamps):
            output = scratch / f"frame_{index:03d}.jpg"
            try:
                await decoder.extract_frame(path, timestamp, output, timeout)
                if not output.exists() or output.stat().st_size == 0:
                    msg = f"Decoder produced no image at {timestamp:.3f}s for {path}"
                    raise DecodeFailure(msg)
                image = cv2.imread(str(output))
                if image is None:
                    msg = f"Unreadable image at {timestamp:.3f}s for {path}"
                    raise DecodeFailure(msg)
            except DecoderNotFound:
                raise
            except (DecodeFailure, DecoderError) as e:
                logger.debug(f"Skipping frame {index}: {e}")
                continue
            frames.append(SampledFrame(index=index, timestamp=timestamp, image=image))
    finally:
        remove_scratch(scratch)
    return frames


def remove_scratch(path: Path) -> None:
    """Delete a scratch file or directory, logging instead of raising on failure."""
    try:
        if path.is_dir():
            shutil.rmtree(path)
        else:
            path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning(f"Failed to remove scratch path {path}: {e}")

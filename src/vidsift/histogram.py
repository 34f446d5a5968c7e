"""Coarse RGB bucket histograms for sampled frames."""

from typing import Any

import numpy as np
import numpy.typing as npt

FRAME_SEPARATOR = "|"
CHANNEL_SEPARATOR = ";"
BIN_SEPARATOR = ","

_COLOR_CHANNELS = 3

ChannelHistograms = tuple[npt.NDArray[np.float64], npt.NDArray[np.float64], npt.NDArray[np.float64]]


def frame_histogram(image: npt.NDArray[Any], stride: int = 5, bins: int = 4) -> str:
    """Compute normalized per-channel bucket histograms for one frame.

    Pixels are sampled every ``stride`` rows and columns; each of R, G and B
    is bucketed into ``bins`` equal-width bins over [0, 256) and divided by
    the number of sampled pixels.

    Args:
        image: BGR or BGRA frame as loaded by OpenCV.
        stride: Pixel sampling step in both axes.
        bins: Number of buckets per channel.

    Returns:
        "r0,r1,..;g0,..;b0,.." with 4 decimals, or "" if no pixel was sampled.
    """
    if image is None or image.ndim != _COLOR_CHANNELS or image.shape[2] < _COLOR_CHANNELS:
        return ""

    sampled = image[::stride, ::stride, :_COLOR_CHANNELS].reshape(-1, _COLOR_CHANNELS)
    count = sampled.shape[0]
    if count == 0:
        return ""

    buckets = np.minimum(sampled.astype(np.int64) * bins // 256, bins - 1)
    # OpenCV stores channels as B, G, R
    channels = []
    for channel in (2, 1, 0):
        hist = np.bincount(buckets[:, channel], minlength=bins) / count
        channels.append(BIN_SEPARATOR.join(f"{value:.4f}" for value in hist))
    return CHANNEL_SEPARATOR.join(channels)


def join_histograms(frames: list[str]) -> str:
    """Serialize per-frame histograms, dropping frames that produced nothing."""
    return FRAME_SEPARATOR.join(frame for frame in frames if frame)


def parse_frame(text: str) -> ChannelHistograms | None:
    """Parse one serialized frame into R, G and B vectors.

    Returns:
        Tuple of three float arrays, or None if the text is malformed.
    """
    channels = text.split(CHANNEL_SEPARATOR)
    if len(channels) != _COLOR_CHANNELS:
        return None
    try:
        r, g, b = (np.array([float(v) for v in ch.split(BIN_SEPARATOR)]) for ch in channels)
    except ValueError:
        return None
    return r, g, b


def parse_histograms(text: str) -> list[ChannelHistograms | None]:
    """Parse a serialized histogram string into per-frame channel vectors.

    Unparseable frames are kept as None so frame indices stay aligned.
    """
    if not text:
        return []
    return [parse_frame(frame) for frame in text.split(FRAME_SEPARATOR)]

"""Perceptual (DCT) and average-brightness hashes for sampled frames."""

import logging
import sys
from typing import Any

import cv2
import numpy as np
import numpy.typing as npt

from .errors import HashLengthMismatch

logger = logging.getLogger(__name__)

# Constants for magic values
_PHASH_SIZE = 32
_PHASH_BLOCK = 8
_AHASH_SIZE = 8
_COLOR_CHANNELS = 3
_BGRA_CHANNELS = 4
_GRAY_NDIM = 2

# Distance reported for hashes that cannot be compared; never a match.
MAX_DISTANCE = sys.maxsize


def to_luminance(image: npt.NDArray[Any]) -> npt.NDArray[np.float32]:
    """Convert an OpenCV image to luminance using 0.3R + 0.59G + 0.11B.

    Args:
        image: BGR, BGRA or single-channel image.

    Returns:
        2-D float32 luminance array.

    Raises:
        ValueError: If the image is empty or has an unsupported channel count.
    """
    if image is None or image.size == 0:
        msg = "Cannot hash an empty image"
        raise ValueError(msg)

    if image.ndim == _GRAY_NDIM:
        return image.astype(np.float32)
    if image.ndim == _GRAY_NDIM + 1 and image.shape[2] in (_COLOR_CHANNELS, _BGRA_CHANNELS):
        b = image[:, :, 0].astype(np.float32)
        g = image[:, :, 1].astype(np.float32)
        r = image[:, :, 2].astype(np.float32)
        return np.float32(0.3) * r + np.float32(0.59) * g + np.float32(0.11) * b

    msg = f"Unsupported image shape {image.shape}"
    raise ValueError(msg)


def _shrink(image: npt.NDArray[Any], size: int) -> npt.NDArray[Any]:
    if image is None or image.size == 0:
        msg = "Cannot hash an empty image"
        raise ValueError(msg)
    return cv2.resize(image, (size, size), interpolation=cv2.INTER_AREA)


def _bits(mask: npt.NDArray[np.bool_]) -> str:
    return "".join("1" if bit else "0" for bit in mask.ravel())


def phash(image: npt.NDArray[Any]) -> str:
    """Compute the 63-bit DCT perceptual hash of an image.

    The image is shrunk to 32x32, converted to luminance and transformed with
    a 2-D DCT. The 8x8 low-frequency block minus the DC term gives 63
    coefficients; each bit is 1 when its coefficient exceeds their mean.

    Args:
        image: BGR, BGRA or single-channel image.

    Returns:
        63-character string of '0'/'1' in row-major order.
    """
    small = _shrink(image, _PHASH_SIZE)
    luma = to_luminance(small)
    dct = cv2.dct(luma)
    coefficients = dct[:_PHASH_BLOCK, :_PHASH_BLOCK].ravel()[1:]
    return _bits(coefficients > coefficients.mean())


def ahash(image: npt.NDArray[Any]) -> str:
    """Compute the 64-bit average hash of an image.

    Args:
        image: BGR, BGRA or single-channel image.

    Returns:
        64-character string of '0'/'1'; a bit is 1 when the pixel is at
        least as bright as the 8x8 mean.
    """
    small = _shrink(image, _AHASH_SIZE)
    luma = to_luminance(small)
    return _bits(luma >= luma.mean())


def hamming_distance(a: str, b: str, strict: bool = False) -> int:
    """Count differing positions between two equal-length bit strings.

    Args:
        a: First hash.
        b: Second hash.
        strict: Raise instead of reporting MAX_DISTANCE on a length mismatch.

    Returns:
        Number of differing positions, or MAX_DISTANCE if lengths differ.

    Raises:
        HashLengthMismatch: If lengths differ and strict is set.
    """
    if len(a) != len(b):
        if strict:
            msg = f"Cannot compare hashes of length {len(a)} and {len(b)}"
            raise HashLengthMismatch(msg)
        logger.debug(f"Hash length mismatch ({len(a)} vs {len(b)}), treating as no match")
        return MAX_DISTANCE
    return sum(1 for x, y in zip(a, b, strict=True) if x != y)

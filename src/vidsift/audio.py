"""Exact-match audio digest of a video's leading audio track."""

import hashlib
import logging
import os
import tempfile
from pathlib import Path

from .config import DetectorConfig
from .decoder import Decoder
from .errors import DecodeFailure
from .sampling import remove_scratch

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 1024 * 1024


def digest_file(path: Path) -> str:
    """SHA-256 hex digest of a file, read in chunks."""
    sha = hashlib.sha256()
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(_CHUNK_SIZE), b""):
            sha.update(chunk)
    return sha.hexdigest()


async def audio_fingerprint(decoder: Decoder, path: str, cfg: DetectorConfig) -> str:
    """Digest the first ``cfg.audio_seconds`` of a video's audio.

    The track is decoded to raw mono 16-bit PCM at ``cfg.audio_sample_rate``
    and hashed with SHA-256. Only bit-identical audio produces equal digests,
    so a mismatch says nothing about whether two videos differ.

    Args:
        decoder: External decoder
        path: Video file
        cfg: Detector configuration

    Returns:
        64-character hex digest

    Raises:
        DecodeFailure: If the decoder produced no audio
    """
    fd, name = tempfile.mkstemp(prefix="vidsift-audio-", suffix=".pcm")
    scratch = Path(name)
    try:
        os.close(fd)
        await decoder.extract_audio(
            path, scratch, cfg.audio_seconds, cfg.audio_sample_rate, cfg.extract_timeout
        )
        if not scratch.exists() or scratch.stat().st_size == 0:
            msg = f"Decoder produced empty audio for {path}"
            raise DecodeFailure(msg)
        return digest_file(scratch)
    finally:
        remove_scratch(scratch)

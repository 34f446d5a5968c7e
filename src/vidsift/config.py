#!/usr/bin/env python3
"""Configuration dataclass for the vidsift package."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Literal

# Type aliases
ClusterStrategy = Literal["star", "components"]

DEFAULT_VIDEO_EXTENSIONS = frozenset({".mp4", ".mkv", ".avi", ".mov", ".wmv", ".flv", ".webm"})

MIN_THRESHOLD = 0.5
MAX_THRESHOLD = 1.0


@dataclass
class DetectorConfig:
    """Settings for feature extraction, scoring and clustering."""

    # External decoder
    ffmpeg_path: str = "ffmpeg"
    ffprobe_path: str = "ffprobe"
    probe_timeout: float = 3.0
    extract_timeout: float | None = 120.0  # None = wait forever on frame/audio calls

    # Feature store
    cache_path: Path = field(default_factory=lambda: Path("video_cache.json"))

    # Sampling
    frame_count: int = 5
    histogram_stride: int = 5
    histogram_bins: int = 4
    audio_seconds: float = 60.0
    audio_sample_rate: int = 44100

    # Concurrency
    max_workers: int = 10
    show_progress: bool = False

    # Scoring
    similarity_threshold: float = 0.75
    phash_distance_threshold: int = 5
    min_boost_frames: int = 3
    boost_phash_score: float = 0.8
    boost: float = 0.1
    weight_phash: float = 0.4
    weight_ahash: float = 0.2
    weight_audio: float = 0.3
    weight_color: float = 0.1

    # Clustering
    duration_tolerance: float = 2.0
    cluster_strategy: ClusterStrategy = "star"

    video_extensions: frozenset[str] = DEFAULT_VIDEO_EXTENSIONS

    def __post_init__(self) -> None:
        """Normalize path and extension values."""
        self.cache_path = Path(self.cache_path)
        self.video_extensions = frozenset(ext.lower() for ext in self.video_extensions)

    @property
    def weight_visual(self) -> float:
        """Share of the score budget held by the two visual hashes."""
        return self.weight_phash + self.weight_ahash

    def with_threshold(self, threshold: float) -> DetectorConfig:
        """Return a copy with the similarity threshold clamped to [0.5, 1.0]."""
        clamped = min(MAX_THRESHOLD, max(MIN_THRESHOLD, threshold))
        return replace(self, similarity_threshold=clamped)

    def validate(self) -> None:
        """Validate configuration parameters.

        Raises:
            ValueError: If any parameter is invalid.
        """
        if not MIN_THRESHOLD <= self.similarity_threshold <= MAX_THRESHOLD:
            msg = (f"similarity_threshold must be in [{MIN_THRESHOLD},{MAX_THRESHOLD}], "
                   f"got {self.similarity_threshold}")
            raise ValueError(msg)
        if self.max_workers < 1:
            msg = f"max_workers must be >= 1, got {self.max_workers}"
            raise ValueError(msg)
        if self.frame_count < 1:
            msg = f"frame_count must be >= 1, got {self.frame_count}"
            raise ValueError(msg)
        if self.histogram_stride < 1 or self.histogram_bins < 1:
            msg = (f"histogram_stride and histogram_bins must be >= 1, "
                   f"got {self.histogram_stride} and {self.histogram_bins}")
            raise ValueError(msg)
        if self.probe_timeout <= 0:
            msg = f"probe_timeout must be positive, got {self.probe_timeout}"
            raise ValueError(msg)
        if self.extract_timeout is not None and self.extract_timeout <= 0:
            msg = f"extract_timeout must be positive or None, got {self.extract_timeout}"
            raise ValueError(msg)
        if self.audio_seconds <= 0 or self.audio_sample_rate <= 0:
            msg = (f"audio_seconds and audio_sample_rate must be positive, "
                   f"got {self.audio_seconds} and {self.audio_sample_rate}")
            raise ValueError(msg)
        if self.duration_tolerance < 0:
            msg = f"duration_tolerance must be >= 0, got {self.duration_tolerance}"
            raise ValueError(msg)
        weights = (self.weight_phash, self.weight_ahash, self.weight_audio, self.weight_color)
        if any(w < 0 for w in weights) or self.weight_visual <= 0:
            msg = f"weights must be non-negative with a positive visual share, got {weights}"
            raise ValueError(msg)
        if self.cluster_strategy not in ("star", "components"):
            msg = f"cluster_strategy must be 'star' or 'components', got {self.cluster_strategy!r}"
            raise ValueError(msg)

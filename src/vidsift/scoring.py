"""Weighted multi-channel similarity between two video feature records."""

import math

import numpy as np

from .config import DetectorConfig
from .hashing import hamming_distance
from .histogram import parse_histograms
from .models import ScoreBreakdown, VideoFeatureRecord

# Split of the visual share between pHash and aHash
_VISUAL_PHASH_SHARE = 0.7
_VISUAL_AHASH_SHARE = 0.3


def _count_matched(source: list[str], target: list[str], max_distance: int) -> int:
    return sum(
        1 for h1 in source if any(hamming_distance(h1, h2) <= max_distance for h2 in target)
    )


def _bhattacharyya(h1: np.ndarray, h2: np.ndarray) -> float:
    if h1.shape != h2.shape:
        return 0.0
    return float(np.sum(np.sqrt(np.clip(h1, 0.0, None) * np.clip(h2, 0.0, None))))


def color_similarity(hist1: str, hist2: str) -> tuple[float, bool]:
    """Compare two serialized histogram sequences.

    Frames are paired by index up to the shorter sequence; each pair scores
    the mean Bhattacharyya coefficient of its R, G and B channels.

    Returns:
        Tuple of (similarity 0.0-1.0, whether any frame pair was comparable).
    """
    frames1 = parse_histograms(hist1)
    frames2 = parse_histograms(hist2)
    total = 0.0
    compared = 0
    for ch1, ch2 in zip(frames1, frames2, strict=False):
        if ch1 is None or ch2 is None:
            continue
        total += sum(_bhattacharyya(a, b) for a, b in zip(ch1, ch2, strict=True)) / 3.0
        compared += 1
    if compared == 0:
        return 0.0, False
    return min(1.0, total / compared), True


class SimilarityScorer:
    """Scores a pair of feature records on visual, audio and color channels.

    A channel that is unavailable on either side drops out of the weight
    budget: audio counts when both fingerprints exist (unequal digests score
    0), color when both histograms can be compared. The visual channel is
    always counted, so two records with no features score 0.
    """

    def __init__(self, cfg: DetectorConfig | None = None):
        """Initialize scorer.

        Args:
            cfg: Configuration holding weights, thresholds and boost settings
        """
        self.cfg = cfg or DetectorConfig()

    @property
    def threshold(self) -> float:
        """Score at or above which a pair is a candidate duplicate."""
        return self.cfg.similarity_threshold

    def breakdown(self, a: VideoFeatureRecord, b: VideoFeatureRecord) -> ScoreBreakdown:
        """Compute every channel score and the overall score for a pair."""
        cfg = self.cfg

        # pHash: count matches in both directions and keep the smaller for symmetry
        hashes_a, hashes_b = a.perceptual_hashes, b.perceptual_hashes
        if hashes_a and hashes_b:
            matched = min(
                _count_matched(hashes_a, hashes_b, cfg.phash_distance_threshold),
                _count_matched(hashes_b, hashes_a, cfg.phash_distance_threshold),
            )
            phash_score = min(1.0, matched / min(len(hashes_a), len(hashes_b)))
        else:
            matched = 0
            phash_score = 0.0

        if a.average_hash and b.average_hash:
            distance = hamming_distance(a.average_hash, b.average_hash)
            ahash_score = max(0.0, 1.0 - distance / len(a.average_hash))
        else:
            ahash_score = 0.0

        visual = _VISUAL_PHASH_SHARE * phash_score + _VISUAL_AHASH_SHARE * ahash_score

        audio_available = bool(a.audio_fingerprint) and bool(b.audio_fingerprint)
        audio = 1.0 if audio_available and a.audio_fingerprint == b.audio_fingerprint else 0.0

        color, color_available = (0.0, False)
        if a.color_histogram and b.color_histogram:
            color, color_available = color_similarity(a.color_histogram, b.color_histogram)

        weighted = visual * cfg.weight_visual
        budget = cfg.weight_visual
        if audio_available:
            weighted += audio * cfg.weight_audio
            budget += cfg.weight_audio
        if color_available:
            weighted += color * cfg.weight_color
            budget += cfg.weight_color
        overall = weighted / budget if budget > 0 else 0.0

        if matched >= cfg.min_boost_frames and phash_score > cfg.boost_phash_score:
            overall += cfg.boost
        overall = min(1.0, max(0.0, overall))
        if not math.isfinite(overall):
            overall = 0.0

        return ScoreBreakdown(
            phash=phash_score,
            ahash=ahash_score,
            visual=min(1.0, visual),
            audio=audio,
            color=color,
            matched_frames=matched,
            overall=overall,
        )

    def score(self, a: VideoFeatureRecord, b: VideoFeatureRecord) -> float:
        """Overall similarity of two records, 0.0-1.0."""
        return self.breakdown(a, b).overall

    def is_duplicate(self, a: VideoFeatureRecord, b: VideoFeatureRecord) -> bool:
        """Check whether a pair reaches the similarity threshold."""
        return self.score(a, b) >= self.threshold

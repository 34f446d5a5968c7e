"""vidsift - Find near-duplicate videos by perceptual, audio and color fingerprints."""

from .cache import FeatureCache
from .clustering import DuplicateClusterer
from .config import DetectorConfig
from .decoder import Decoder, FFmpegDecoder
from .detector import VideoDuplicateDetector, detect_duplicates, find_videos
from .errors import (
    CacheCorrupt,
    DecodeFailure,
    DecoderError,
    DecoderNotFound,
    DecoderTimeout,
    HashLengthMismatch,
    ProbeError,
    ProbeTimeout,
    VidsiftError,
)
from .models import DuplicateGroup, ScoreBreakdown, VideoFeatureRecord
from .pipeline import ExtractionPipeline
from .scoring import SimilarityScorer

__version__ = "0.1.0"

__all__ = [
    "CacheCorrupt",
    "DecodeFailure",
    "Decoder",
    "DecoderError",
    "DecoderNotFound",
    "DecoderTimeout",
    "DetectorConfig",
    "DuplicateClusterer",
    "DuplicateGroup",
    "ExtractionPipeline",
    "FFmpegDecoder",
    "FeatureCache",
    "HashLengthMismatch",
    "ProbeError",
    "ProbeTimeout",
    "ScoreBreakdown",
    "SimilarityScorer",
    "VideoDuplicateDetector",
    "VideoFeatureRecord",
    "VidsiftError",
    "detect_duplicates",
    "find_videos",
]

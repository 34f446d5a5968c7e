"""Duplicate detection entry points: directory scan, extraction and clustering."""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Iterable, Sequence
from pathlib import Path

from .cache import FeatureCache, cache_key
from .clustering import DuplicateClusterer
from .config import DEFAULT_VIDEO_EXTENSIONS, DetectorConfig
from .decoder import Decoder
from .models import DuplicateGroup, VideoFeatureRecord
from .pipeline import ExtractionPipeline, ProgressCallback
from .scoring import SimilarityScorer

logger = logging.getLogger(__name__)

DetectionItem = str | os.PathLike[str] | VideoFeatureRecord


def find_videos(
    directory: str | os.PathLike[str], extensions: Iterable[str] = DEFAULT_VIDEO_EXTENSIONS
) -> list[str]:
    """Recursively collect video files under a directory.

    Args:
        directory: Root directory to walk
        extensions: Lower-case suffixes to accept ("" accepts extensionless files)

    Returns:
        Sorted absolute paths
    """
    wanted = {ext.lower() for ext in extensions}

    def _on_error(e: OSError) -> None:
        logger.warning(f"Cannot read directory {e.filename}: {e.strerror}")

    found: list[str] = []
    for root, _, files in os.walk(directory, onerror=_on_error):
        for name in files:
            if Path(name).suffix.lower() in wanted:
                found.append(os.path.abspath(os.path.join(root, name)))
    return sorted(found)


def _common_root(paths: Sequence[str]) -> str | None:
    try:
        return os.path.commonpath([os.path.dirname(p) for p in paths])
    except ValueError:
        return None


class VideoDuplicateDetector:
    """Main class wiring cache, extraction pipeline, scorer and clusterer.

    One detector owns one FeatureCache: every run loads the entries under
    the scanned root, extracts what is missing or stale, saves the cache
    back (also when the run is cancelled) and clusters the records.
    """

    def __init__(
        self,
        cfg: DetectorConfig | None = None,
        cache: FeatureCache | None = None,
        decoder: Decoder | None = None,
        scorer: SimilarityScorer | None = None,
    ):
        """Initialize detector.

        Args:
            cfg: Detector configuration (validated here)
            cache: Feature cache (defaults to one at cfg.cache_path)
            decoder: External decoder (defaults to ffmpeg/ffprobe)
            scorer: Pair scorer (defaults to SimilarityScorer(cfg))

        Raises:
            ValueError: If the configuration is invalid
        """
        self.cfg = cfg or DetectorConfig()
        self.cfg.validate()
        self.cache = cache or FeatureCache(self.cfg.cache_path)
        self.pipeline = ExtractionPipeline(self.cfg, self.cache, decoder)
        self.scorer = scorer or SimilarityScorer(self.cfg)
        self.clusterer = DuplicateClusterer(
            self.scorer, self.cfg.duration_tolerance, self.cfg.cluster_strategy
        )

    def _save_cache(self) -> None:
        try:
            self.cache.save()
        except OSError as e:
            logger.warning(f"Feature cache not saved: {e}")

    async def detect_async(
        self,
        items: Iterable[DetectionItem],
        progress: ProgressCallback | None = None,
        root: str | os.PathLike[str] | None = None,
    ) -> list[DuplicateGroup]:
        """Find duplicate groups among videos.

        Args:
            items: Video paths, or feature records that are used as-is
            progress: Called as ``progress(done, total)`` during extraction
            root: Directory that scopes the cache (defaults to the common parent)

        Returns:
            Disjoint duplicate groups of two or more paths
        """
        ordered: list[str | VideoFeatureRecord] = []
        for item in items:
            if isinstance(item, VideoFeatureRecord):
                ordered.append(item)
            else:
                ordered.append(os.path.abspath(os.fspath(item)))

        paths = [item for item in ordered if isinstance(item, str)]
        extracted: dict[str, VideoFeatureRecord] = {}
        if paths:
            scope = os.fspath(root) if root is not None else _common_root(paths)
            self.cache.load(scope)
            try:
                for record in await self.pipeline.run(paths, progress):
                    extracted[cache_key(record.path)] = record
            finally:
                self._save_cache()

        records: list[VideoFeatureRecord] = []
        for item in ordered:
            if isinstance(item, VideoFeatureRecord):
                records.append(item)
            elif cache_key(item) in extracted:
                records.append(extracted[cache_key(item)])
        return self.clusterer.cluster(records)

    def detect(
        self,
        items: Iterable[DetectionItem],
        progress: ProgressCallback | None = None,
        root: str | os.PathLike[str] | None = None,
    ) -> list[DuplicateGroup]:
        """Blocking wrapper around ``detect_async``."""
        return asyncio.run(self.detect_async(items, progress, root))

    def scan(
        self, directory: str | os.PathLike[str], progress: ProgressCallback | None = None
    ) -> list[DuplicateGroup]:
        """Find duplicates among every video under ``directory``."""
        videos = find_videos(directory, self.cfg.video_extensions)
        logger.info(f"Found {len(videos)} video file(s) in {directory}")
        return self.detect(videos, progress, root=directory)


def detect_duplicates(
    paths: Iterable[DetectionItem],
    progress: ProgressCallback | None = None,
    *,
    config: DetectorConfig | None = None,
    cache: FeatureCache | None = None,
    decoder: Decoder | None = None,
    root: str | os.PathLike[str] | None = None,
) -> list[DuplicateGroup]:
    """Detect groups of near-duplicate videos.

    Args:
        paths: Video paths (or precomputed feature records)
        progress: Called as ``progress(done, total)`` after each file
        config: Detector configuration
        cache: Feature cache to use for this run
        decoder: External decoder override
        root: Directory that scopes the cache

    Returns:
        Disjoint duplicate groups of two or more paths
    """
    detector = VideoDuplicateDetector(config, cache, decoder)
    return detector.detect(paths, progress, root)

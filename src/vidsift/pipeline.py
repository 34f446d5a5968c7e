"""Bounded-parallel feature extraction over many video files."""

from __future__ import annotations

import asyncio
import logging
import os
import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

from tqdm import tqdm

from .audio import audio_fingerprint
from .cache import FeatureCache
from .config import DetectorConfig
from .decoder import Decoder, FFmpegDecoder
from .errors import DecodeFailure, DecoderError, DecoderNotFound, VidsiftError
from .hashing import ahash, phash
from .histogram import frame_histogram, join_histograms
from .models import VideoFeatureRecord
from .sampling import SampledFrame, midpoint_index, sample_frames, sample_timestamps

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


@dataclass
class FrameFeatures:
    """Visual features computed from the sampled frames of one video."""

    perceptual_hashes: list[str] = field(default_factory=list)
    average_hash: str = ""
    color_histogram: str = ""


class _Progress:
    """Completed-file counter that tolerates out-of-order completion."""

    def __init__(self, total: int, callback: ProgressCallback | None, bar: tqdm):
        self.total = total
        self.done = 0
        self.callback = callback
        self.bar = bar
        self._lock = threading.Lock()

    def tick(self) -> None:
        with self._lock:
            self.done += 1
            done = self.done
        self.bar.update(1)
        if self.callback is not None:
            try:
                self.callback(done, self.total)
            except Exception:  # noqa: BLE001
                logger.exception(f"Progress callback failed at {done}/{self.total}")


class ExtractionPipeline:
    """Extracts feature records for many files with a fixed worker budget.

    Each file goes through probe -> frame sampling -> hashing -> audio digest
    in that order. At most ``cfg.max_workers`` files are in flight at once,
    which bounds the number of decoder processes. A file that fails is
    logged and left out of the result; it never aborts the batch.
    """

    def __init__(
        self,
        cfg: DetectorConfig,
        cache: FeatureCache,
        decoder: Decoder | None = None,
    ):
        """Initialize pipeline.

        Args:
            cfg: Detector configuration
            cache: Feature cache consulted before and updated after extraction
            decoder: External decoder (defaults to ffmpeg/ffprobe from cfg)
        """
        self.cfg = cfg
        self.cache = cache
        self.decoder = decoder or FFmpegDecoder(cfg.ffmpeg_path, cfg.ffprobe_path)

    def compute_frame_features(self, frames: list[SampledFrame], midpoint: int) -> FrameFeatures:
        """Hash and histogram decoded frames.

        Args:
            frames: Decoded frames in timestamp order
            midpoint: Sample index whose frame provides the average hash

        Returns:
            FrameFeatures; channels stay empty when no frame could be used
        """
        features = FrameFeatures()
        histograms: list[str] = []
        for frame in frames:
            try:
                features.perceptual_hashes.append(phash(frame.image))
                if frame.index == midpoint:
                    features.average_hash = ahash(frame.image)
            except ValueError as e:
                logger.debug(f"Cannot hash frame {frame.index}: {e}")
                continue
            histograms.append(
                frame_histogram(frame.image, self.cfg.histogram_stride, self.cfg.histogram_bins)
            )
        features.color_histogram = join_histograms(histograms)
        return features

    async def extract(self, path: str) -> VideoFeatureRecord:
        """Build the feature record for one file, reusing a valid cache entry.

        Args:
            path: Absolute path of the video

        Returns:
            Feature record (a copy; the cache keeps its own)

        Raises:
            OSError: If the file cannot be stat'ed
            ProbeError: If the duration cannot be obtained
            DecoderNotFound: If ffmpeg/ffprobe are missing
        """
        stat = await asyncio.to_thread(os.stat, path)
        cached = self.cache.lookup(path, stat.st_size, stat.st_mtime)
        if cached is not None:
            logger.debug(f"Cache hit for {path}")
            return cached

        duration = await self.decoder.probe(path, self.cfg.probe_timeout)
        timestamps = sample_timestamps(duration, self.cfg.frame_count)
        frames = await sample_frames(self.decoder, path, timestamps, self.cfg.extract_timeout)
        if not frames:
            logger.warning(f"No frames could be extracted from {path}")
        features = await asyncio.to_thread(
            self.compute_frame_features, frames, midpoint_index(timestamps)
        )

        try:
            fingerprint = await audio_fingerprint(self.decoder, path, self.cfg)
        except DecoderNotFound:
            raise
        except (DecodeFailure, DecoderError) as e:
            logger.debug(f"Audio channel unavailable for {path}: {e}")
            fingerprint = ""

        record = VideoFeatureRecord(
            path=path,
            file_size=stat.st_size,
            last_modified=stat.st_mtime,
            duration=duration,
            perceptual_hashes=features.perceptual_hashes,
            average_hash=features.average_hash,
            audio_fingerprint=fingerprint,
            color_histogram=features.color_histogram,
        )
        self.cache.update(record)
        return record

    async def run(
        self,
        paths: Iterable[str | os.PathLike[str]],
        progress: ProgressCallback | None = None,
    ) -> list[VideoFeatureRecord]:
        """Extract features for every path with bounded parallelism.

        Args:
            paths: Video files
            progress: Called as ``progress(done, total)`` after each file finishes

        Returns:
            Records of the files that succeeded, in input order
        """
        targets = [os.path.abspath(os.fspath(p)) for p in paths]
        semaphore = asyncio.Semaphore(self.cfg.max_workers)
        bar = tqdm(total=len(targets), desc="Extracting features", disable=not self.cfg.show_progress)
        tracker = _Progress(len(targets), progress, bar)

        async def worker(path: str) -> VideoFeatureRecord | None:
            async with semaphore:
                try:
                    return await self.extract(path)
                except (VidsiftError, OSError) as e:
                    logger.warning(f"Skipping {path}: {e}")
                    return None
                except Exception:  # noqa: BLE001
                    logger.exception(f"Unexpected error extracting {path}")
                    return None
                finally:
                    tracker.tick()

        try:
            results = await asyncio.gather(*(worker(p) for p in targets))
        finally:
            bar.close()

        records = [r for r in results if r is not None]
        logger.info(f"Extracted features for {len(records)}/{len(targets)} video(s)")
        return records

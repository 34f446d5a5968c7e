"""Pydantic models for type-safe data structures."""

from pydantic import BaseModel, ConfigDict, Field, field_validator

PHASH_BITS = 63
AHASH_BITS = 64


def _check_bits(value: str, bits: int, name: str) -> str:
    if len(value) != bits or set(value) - {"0", "1"}:
        msg = f"{name} must be a {bits}-character bit string, got {value!r}"
        raise ValueError(msg)
    return value


class VideoFeatureRecord(BaseModel):
    """Multi-modal fingerprint of one video file.

    Attributes:
        path: Absolute file path, used as the identity key.
        file_size: File size in bytes at extraction time.
        last_modified: File modification time (``st_mtime``) at extraction time.
        duration: Duration in seconds reported by the probe.
        perceptual_hashes: One 63-bit pHash per sampled frame, in sample-time order.
        average_hash: 64-bit aHash of the midpoint frame, empty if unavailable.
        audio_fingerprint: SHA-256 hex digest of the audio prefix, empty if unavailable.
        color_histogram: Serialized per-frame RGB histograms, empty if unavailable.
    """
    model_config = ConfigDict(validate_assignment=True)

    path: str
    file_size: int = Field(ge=0)
    last_modified: float
    duration: float = Field(ge=0.0)
    perceptual_hashes: list[str] = Field(default_factory=list)
    average_hash: str = ""
    audio_fingerprint: str = ""
    color_histogram: str = ""

    @field_validator("perceptual_hashes")
    @classmethod
    def _phash_length(cls, hashes: list[str]) -> list[str]:
        for value in hashes:
            _check_bits(value, PHASH_BITS, "perceptual hash")
        return hashes

    @field_validator("average_hash")
    @classmethod
    def _ahash_length(cls, value: str) -> str:
        return _check_bits(value, AHASH_BITS, "average hash") if value else value

    def matches_stat(self, file_size: int, last_modified: float) -> bool:
        """Check whether this record is still valid for a file's current stat."""
        return self.file_size == file_size and self.last_modified == last_modified


class ScoreBreakdown(BaseModel):
    """Per-channel similarity between two feature records.

    Attributes:
        phash: Fraction of pHash frames matched, 0.0-1.0.
        ahash: Bitwise agreement of the average hashes, 0.0-1.0.
        visual: Combined visual score (0.7 pHash + 0.3 aHash).
        audio: 1.0 when the audio fingerprints are equal, else 0.0.
        color: Mean Bhattacharyya coefficient of the color histograms.
        matched_frames: Number of pHash frames within the distance threshold.
        overall: Final weighted score, 0.0-1.0.
    """
    phash: float = Field(ge=0.0, le=1.0)
    ahash: float = Field(ge=0.0, le=1.0)
    visual: float = Field(ge=0.0, le=1.0)
    audio: float = Field(ge=0.0, le=1.0)
    color: float = Field(ge=0.0, le=1.0)
    matched_frames: int = Field(ge=0)
    overall: float = Field(ge=0.0, le=1.0)


class DuplicateGroup(BaseModel):
    """Set of paths believed to hold the same content.

    Attributes:
        paths: Member paths; the first entry is the representative the
            others were compared against.
    """
    paths: list[str] = Field(min_length=2)

    @property
    def representative(self) -> str:
        """Path every other member was scored against."""
        return self.paths[0]

    @property
    def path_set(self) -> frozenset[str]:
        """Members as an unordered set."""
        return frozenset(self.paths)

    def __len__(self) -> int:
        """Return number of members."""
        return len(self.paths)

    def __contains__(self, path: object) -> bool:
        """Check membership by path."""
        return path in self.paths

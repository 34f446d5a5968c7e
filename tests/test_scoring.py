"""
Unit tests for multi-channel similarity scoring
"""

import pytest

from fakes import bits, frame_histogram_text, invert, make_record
from vidsift import DetectorConfig, SimilarityScorer
from vidsift.scoring import color_similarity

P1 = bits("01", 63)
P2 = bits("0011", 63)
P3 = bits("000111", 63)
A1 = bits("0110", 64)


class TestColorSimilarity:
    """Test histogram comparison."""

    def test_identical_histograms(self):
        text = frame_histogram_text(1)
        score, available = color_similarity(text, text)

        assert available
        assert score == pytest.approx(1.0, abs=1e-3)

    def test_disjoint_histograms(self):
        """Test that histograms with no overlapping buckets score 0."""
        black = "1,0,0,0;1,0,0,0;1,0,0,0"
        white = "0,0,0,1;0,0,0,1;0,0,0,1"
        score, available = color_similarity(black, white)

        assert available
        assert score == 0.0

    def test_unparseable_frames_skipped(self):
        """Test that malformed frames are ignored rather than scored."""
        good = "1,0,0,0;1,0,0,0;1,0,0,0"
        score, available = color_similarity(f"{good}|bad", f"{good}|{good}")

        assert available
        assert score == pytest.approx(1.0)

    def test_nothing_comparable(self):
        assert color_similarity("", "") == (0.0, False)
        assert color_similarity("bad", "worse") == (0.0, False)


class TestSimilarityScorer:
    """Test SimilarityScorer scores and thresholds."""

    def test_identical_visual_records_are_duplicates(self):
        """Test that records with equal hashes and nothing else clear the default threshold."""
        scorer = SimilarityScorer()
        a = make_record("/v/a.mp4", perceptual_hashes=[P1, P2, P3], average_hash=A1)
        b = make_record("/v/b.mp4", perceptual_hashes=[P1, P2, P3], average_hash=A1)

        assert scorer.score(a, b) >= 0.75
        assert scorer.is_duplicate(a, b)

    def test_empty_records_score_zero(self):
        scorer = SimilarityScorer()
        a = make_record("/v/a.mp4")
        b = make_record("/v/b.mp4")

        assert scorer.score(a, b) == 0.0
        assert not scorer.is_duplicate(a, b)

    def test_score_is_symmetric(self):
        """Test that unequal frame counts give the same score both ways."""
        scorer = SimilarityScorer()
        a = make_record("/v/a.mp4", perceptual_hashes=[P1, P1, P2, P3, invert(P3)],
                        average_hash=A1, audio_fingerprint="x" * 64)
        b = make_record("/v/b.mp4", perceptual_hashes=[P1, invert(P2), P3],
                        average_hash=invert(A1), audio_fingerprint="x" * 64)

        assert scorer.score(a, b) == pytest.approx(scorer.score(b, a))
        assert scorer.breakdown(a, b).matched_frames == scorer.breakdown(b, a).matched_frames

    def test_score_bounds(self):
        """Test that every combination stays within [0, 1]."""
        scorer = SimilarityScorer()
        hash_sets = [[], [P1], [P1, P2, P3], [invert(P1), P2]]
        ahashes = ["", A1, invert(A1)]
        for hashes_a in hash_sets:
            for hashes_b in hash_sets:
                for ah in ahashes:
                    a = make_record("/v/a.mp4", perceptual_hashes=hashes_a, average_hash=ah)
                    b = make_record("/v/b.mp4", perceptual_hashes=hashes_b, average_hash=A1)
                    assert 0.0 <= scorer.score(a, b) <= 1.0

    def test_audio_alone_is_not_enough(self):
        """Test that matching audio cannot outweigh unrelated visuals."""
        scorer = SimilarityScorer()
        a = make_record("/v/a.mp4", perceptual_hashes=[P1], average_hash=A1,
                        audio_fingerprint="f" * 64)
        b = make_record("/v/b.mp4", perceptual_hashes=[invert(P1)], average_hash=invert(A1),
                        audio_fingerprint="f" * 64)

        breakdown = scorer.breakdown(a, b)
        assert breakdown.audio == 1.0
        assert breakdown.visual == 0.0
        assert breakdown.overall < 0.75

    def test_different_audio_scores_zero(self):
        """Test that two present but unequal fingerprints keep their weight at 0."""
        scorer = SimilarityScorer()
        a = make_record("/v/a.mp4", perceptual_hashes=[P1, P2, P3], average_hash=A1,
                        audio_fingerprint="a" * 64)
        b = make_record("/v/b.mp4", perceptual_hashes=[P1, P2, P3], average_hash=A1,
                        audio_fingerprint="b" * 64)

        assert scorer.breakdown(a, b).audio == 0.0
        assert scorer.score(a, b) == pytest.approx(0.6 / 0.9 + 0.1)

    def test_different_audio_keeps_pair_below_threshold(self):
        """Test that matching frames with partial aHash agreement and other audio is not a duplicate."""
        scorer = SimilarityScorer()
        ahash_b = invert(A1[:48]) + A1[48:]  # agrees on 16 of 64 bits
        a = make_record("/v/a.mp4", perceptual_hashes=[P1, P2], average_hash=A1,
                        audio_fingerprint="a" * 64)
        b = make_record("/v/b.mp4", perceptual_hashes=[P1, P2], average_hash=ahash_b,
                        audio_fingerprint="b" * 64)

        breakdown = scorer.breakdown(a, b)
        assert breakdown.visual == pytest.approx(0.7 + 0.3 * 0.25)
        assert breakdown.overall == pytest.approx(0.775 * 0.6 / 0.9)
        assert not scorer.is_duplicate(a, b)

    def test_boost_applies_with_three_matched_frames(self):
        """Test the +0.1 boost for at least three strongly matched frames."""
        scorer = SimilarityScorer()
        a = make_record("/v/a.mp4", perceptual_hashes=[P1, P2, P3], average_hash=A1)
        b = make_record("/v/b.mp4", perceptual_hashes=[P1, P2, P3], average_hash=invert(A1))

        breakdown = scorer.breakdown(a, b)
        assert breakdown.matched_frames == 3
        assert breakdown.visual == pytest.approx(0.7)
        assert breakdown.overall == pytest.approx(0.8)

    def test_no_boost_below_three_frames(self):
        scorer = SimilarityScorer()
        a = make_record("/v/a.mp4", perceptual_hashes=[P1, P2], average_hash=A1)
        b = make_record("/v/b.mp4", perceptual_hashes=[P1, P2], average_hash=invert(A1))

        # Only the visual channel is available on both sides
        assert scorer.score(a, b) == pytest.approx(0.7)

        a.audio_fingerprint = "a" * 64
        b.audio_fingerprint = "b" * 64
        assert scorer.score(a, b) == pytest.approx(0.7 * 0.6 / 0.9)

    def test_threshold_from_config(self):
        """Test that a stricter threshold rejects a borderline pair."""
        strict = SimilarityScorer(DetectorConfig().with_threshold(0.9))
        a = make_record("/v/a.mp4", perceptual_hashes=[P1, P2, P3], average_hash=A1)
        b = make_record("/v/b.mp4", perceptual_hashes=[P1, P2, P3], average_hash=invert(A1))

        assert strict.threshold == 0.9
        assert not strict.is_duplicate(a, b)
        assert SimilarityScorer().is_duplicate(a, b)

    def test_near_hashes_match(self):
        """Test that hashes within the distance threshold count as matched."""
        scorer = SimilarityScorer()
        near = "10" + P1[2:]  # 2 bits differ
        a = make_record("/v/a.mp4", perceptual_hashes=[P1])
        b = make_record("/v/b.mp4", perceptual_hashes=[near])

        assert scorer.breakdown(a, b).phash == 1.0


class TestDetectorConfig:
    """Test configuration validation."""

    def test_threshold_clamped(self):
        cfg = DetectorConfig()

        assert cfg.with_threshold(0.2).similarity_threshold == 0.5
        assert cfg.with_threshold(1.5).similarity_threshold == 1.0
        assert cfg.with_threshold(0.8).similarity_threshold == 0.8

    def test_validate_rejects_bad_values(self):
        with pytest.raises(ValueError):
            DetectorConfig(max_workers=0).validate()
        with pytest.raises(ValueError):
            DetectorConfig(similarity_threshold=0.3).validate()
        with pytest.raises(ValueError):
            DetectorConfig(cluster_strategy="ring").validate()  # type: ignore[arg-type]
        with pytest.raises(ValueError):
            DetectorConfig(probe_timeout=0).validate()

    def test_defaults_valid(self):
        DetectorConfig().validate()

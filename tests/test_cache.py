"""
Unit tests for the persistent feature cache
"""

import json
import os
import tempfile
from pathlib import Path

from fakes import bits, make_record
from vidsift import FeatureCache

P1 = bits("01", 63)


class TestFeatureCache:
    """Test lookup, invalidation and persistence of feature records."""

    def test_lookup_hit_returns_copy(self):
        """Test that a matching stat returns an equal but independent record."""
        with tempfile.TemporaryDirectory() as tmpdir:
            cache = FeatureCache(Path(tmpdir) / "cache.json")
            record = make_record("/videos/a.mp4", perceptual_hashes=[P1])
            cache.update(record)

            hit = cache.lookup("/videos/a.mp4", 100, 1.0)

            assert hit == record
            hit.perceptual_hashes.append(P1)
            assert cache.get("/videos/a.mp4").perceptual_hashes == [P1]

    def test_stale_entry_is_a_miss(self):
        """Test that a changed size or mtime invalidates the entry."""
        with tempfile.TemporaryDirectory() as tmpdir:
            cache = FeatureCache(Path(tmpdir) / "cache.json")
            cache.update(make_record("/videos/a.mp4"))
            cache.update(make_record("/videos/b.mp4"))

            assert cache.lookup("/videos/a.mp4", 101, 1.0) is None
            assert "/videos/a.mp4" not in cache
            assert cache.lookup("/videos/b.mp4", 100, 2.0) is None

    def test_keys_ignore_case(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            cache = FeatureCache(Path(tmpdir) / "cache.json")
            cache.update(make_record("/Videos/Clip.MP4"))

            assert cache.lookup("/videos/clip.mp4", 100, 1.0) is not None

    def test_save_and_load_round_trip(self):
        """Test that saved records load back unchanged."""
        with tempfile.TemporaryDirectory() as tmpdir:
            store = Path(tmpdir) / "cache.json"
            record = make_record("/videos/a.mp4", perceptual_hashes=[P1],
                                 average_hash=bits("0", 64), audio_fingerprint="ab" * 32)
            cache = FeatureCache(store)
            cache.update(record)
            cache.save()

            reloaded = FeatureCache(store)
            assert reloaded.load() == 1
            assert reloaded.get("/videos/a.mp4") == record

            # Stored as a JSON object keyed by path
            data = json.loads(store.read_text())
            assert list(data) == ["/videos/a.mp4"]

    def test_load_scoped_to_root(self):
        """Test that only entries under the scanned directory are loaded."""
        with tempfile.TemporaryDirectory() as tmpdir:
            store = Path(tmpdir) / "cache.json"
            cache = FeatureCache(store)
            cache.update(make_record("/media/movies/a.mp4"))
            cache.update(make_record("/media/movies2/b.mp4"))
            cache.update(make_record("/media/shows/c.mp4"))
            cache.save()

            scoped = FeatureCache(store)
            assert scoped.load("/media/movies") == 1
            assert "/media/movies/a.mp4" in scoped
            assert "/media/movies2/b.mp4" not in scoped

    def test_save_preserves_other_scopes(self):
        """Test that saving a scoped cache keeps entries of other directories."""
        with tempfile.TemporaryDirectory() as tmpdir:
            store = Path(tmpdir) / "cache.json"
            seed = FeatureCache(store)
            seed.update(make_record("/media/movies/a.mp4"))
            seed.update(make_record("/media/shows/c.mp4"))
            seed.save()

            scoped = FeatureCache(store)
            scoped.load("/media/movies")
            scoped.update(make_record("/media/movies/new.mp4"))
            scoped.save()

            data = json.loads(store.read_text())
            assert set(data) == {"/media/movies/a.mp4", "/media/movies/new.mp4",
                                 "/media/shows/c.mp4"}

    def test_concurrent_instances_do_not_drop_entries(self):
        """Test that two caches saving in turn both keep their entries."""
        with tempfile.TemporaryDirectory() as tmpdir:
            store = Path(tmpdir) / "cache.json"
            first = FeatureCache(store)
            second = FeatureCache(store)
            first.load()
            second.load()

            first.update(make_record("/a/x.mp4"))
            second.update(make_record("/b/y.mp4"))
            first.save()
            second.save()

            assert set(json.loads(store.read_text())) == {"/a/x.mp4", "/b/y.mp4"}

    def test_corrupt_store_starts_empty(self):
        """Test that an unparseable store is treated as empty and replaced on save."""
        with tempfile.TemporaryDirectory() as tmpdir:
            store = Path(tmpdir) / "cache.json"
            store.write_text("{not json")
            cache = FeatureCache(store)

            assert cache.load() == 0

            cache.update(make_record("/videos/a.mp4"))
            cache.save()
            assert set(json.loads(store.read_text())) == {"/videos/a.mp4"}

    def test_invalid_entries_skipped(self):
        """Test that malformed entries are dropped while valid ones load."""
        with tempfile.TemporaryDirectory() as tmpdir:
            store = Path(tmpdir) / "cache.json"
            good = make_record("/videos/good.mp4").model_dump()
            store.write_text(json.dumps({
                "/videos/good.mp4": good,
                "/videos/short.mp4": {**good, "path": "/videos/short.mp4",
                                      "perceptual_hashes": ["0101"]},
                "/videos/junk.mp4": "junk",
            }))

            cache = FeatureCache(store)

            assert cache.load() == 1
            assert "/videos/good.mp4" in cache

    def test_missing_store(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            cache = FeatureCache(Path(tmpdir) / "missing" / "cache.json")

            assert cache.load() == 0
            cache.save()
            assert (Path(tmpdir) / "missing" / "cache.json").exists()
            # No temp files left next to the store
            assert os.listdir(Path(tmpdir) / "missing") == ["cache.json"]

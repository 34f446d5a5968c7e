"""Grouping of feature records into disjoint duplicate sets."""

import logging
from collections.abc import Sequence

from .config import ClusterStrategy
from .models import DuplicateGroup, VideoFeatureRecord
from .scoring import SimilarityScorer

logger = logging.getLogger(__name__)


class UnionFind:
    """Disjoint-set forest over hashable items."""

    def __init__(self) -> None:
        """Initialize an empty forest."""
        self.parent: dict[str, str] = {}

    def find(self, x: str) -> str:
        """Return the root of ``x``, compressing the path on the way."""
        if self.parent.setdefault(x, x) != x:
            self.parent[x] = self.find(self.parent[x])
        return self.parent[x]

    def union(self, x: str, y: str) -> None:
        """Merge the sets containing ``x`` and ``y``."""
        rx, ry = self.find(x), self.find(y)
        if rx != ry:
            self.parent[ry] = rx


class DuplicateClusterer:
    """Turns pairwise similarity into duplicate groups.

    Two strategies are available:
    - "star": every group is built around one representative (the first
      unprocessed record in input order); members are only guaranteed to be
      similar to that representative, not to each other.
    - "components": connected components of the similarity graph, so chains
      of similar pairs end up in one group.

    Pairs whose durations differ by more than ``duration_tolerance`` seconds
    are never scored.
    """

    def __init__(
        self,
        scorer: SimilarityScorer,
        duration_tolerance: float = 2.0,
        strategy: ClusterStrategy = "star",
    ):
        """Initialize clusterer.

        Args:
            scorer: Pair scorer; its threshold decides membership
            duration_tolerance: Max duration difference (seconds) for a pair to be scored
            strategy: "star" or "components"
        """
        self.scorer = scorer
        self.duration_tolerance = duration_tolerance
        self.strategy = strategy

    def _comparable(self, a: VideoFeatureRecord, b: VideoFeatureRecord) -> bool:
        return abs(a.duration - b.duration) <= self.duration_tolerance

    def _similar(self, a: VideoFeatureRecord, b: VideoFeatureRecord) -> bool:
        return self._comparable(a, b) and self.scorer.score(a, b) >= self.scorer.threshold

    def cluster(self, records: Sequence[VideoFeatureRecord]) -> list[DuplicateGroup]:
        """Group records into duplicate sets.

        Args:
            records: Feature records in the order they should be considered

        Returns:
            Disjoint groups with at least two members each
        """
        unique = _dedupe_paths(records)
        if self.strategy == "components":
            groups = self._connected_components(unique)
        else:
            groups = self._star(unique)
        logger.info(f"Found {len(groups)} duplicate group(s) among {len(unique)} video(s)")
        return groups

    def _star(self, records: list[VideoFeatureRecord]) -> list[DuplicateGroup]:
        processed: set[str] = set()
        groups: list[DuplicateGroup] = []

        for i, rep in enumerate(records):
            if rep.path in processed:
                continue
            processed.add(rep.path)
            members = [rep.path]

            for other in records[i + 1:]:
                if other.path in processed:
                    continue
                if self._similar(rep, other):
                    members.append(other.path)
                    processed.add(other.path)

            if len(members) > 1:
                groups.append(DuplicateGroup(paths=members))
        return groups

    def _connected_components(self, records: list[VideoFeatureRecord]) -> list[DuplicateGroup]:
        uf = UnionFind()
        for record in records:
            uf.find(record.path)

        for i, a in enumerate(records):
            for b in records[i + 1:]:
                if uf.find(a.path) == uf.find(b.path):
                    continue
                if self._similar(a, b):
                    uf.union(a.path, b.path)

        # Preserve input order inside and across groups
        components: dict[str, list[str]] = {}
        for record in records:
            components.setdefault(uf.find(record.path), []).append(record.path)
        return [DuplicateGroup(paths=paths) for paths in components.values() if len(paths) > 1]


def _dedupe_paths(records: Sequence[VideoFeatureRecord]) -> list[VideoFeatureRecord]:
    seen: set[str] = set()
    unique: list[VideoFeatureRecord] = []
    for record in records:
        if record.path in seen:
            logger.debug(f"Ignoring repeated record for {record.path}")
            continue
        seen.add(record.path)
        unique.append(record)
    return unique

"""Drug-drug interaction checks."""

import logging
from collections import Counter
from typing import Any, Iterable

from common.clinical_safety.models import (
    Interaction,
    InteractionCheckResult,
    InteractionSeverity,
    Medication,
    PatientContext,
)
from common.clinical_safety.reference import BaseReferenceStore

from ..cache import TTLCache
from ..config import config
from .base import BaseChecker


class InteractionChecker(BaseChecker):
    """Pairwise interaction lookup over a medication list.

    Results are cached per distinct, sorted, lower-cased medication name set,
    so input order never changes the cache key or the result. Cache entries
    are namespaced by the reference dataset version.
    """

    name = "interactions"

    def __init__(
        self,
        reference_store: BaseReferenceStore,
        cache: TTLCache | None = None,
        logger: logging.Logger | None = None,
    ):
        super().__init__(reference_store, logger)
        self.cache = cache or TTLCache(
            ttl_seconds=config.INTERACTION_CACHE_TTL_SECONDS,
            max_entries=config.INTERACTION_CACHE_MAX_ENTRIES,
        )

    @staticmethod
    def cache_key(medications: Iterable) -> tuple[str, ...]:
        """Distinct lower-cased medication names in sorted order."""
        names = {Medication.from_value(m).normalized_name for m in medications or ()}
        names.discard("")
        return tuple(sorted(names))

    def check_interactions(self, medications: Iterable) -> InteractionCheckResult:
        names = self.cache_key(medications)
        if len(names) < 2:
            return InteractionCheckResult()

        key = (self.reference_store.dataset_version, names)
        cached = self.cache.get(key)
        if cached is not None:
            self.logger.debug(f"Interaction cache hit for {len(names)} medications")
            return cached

        pairs = [
            (names[i], names[j])
            for i in range(len(names))
            for j in range(i + 1, len(names))
        ]
        rows = self._require(self.reference_store.find_interactions(pairs))

        unique: dict[tuple, Interaction] = {}
        for interaction in rows:
            current = unique.get(interaction.pair)
            if current is None or interaction.severity.rank > current.severity.rank:
                unique[interaction.pair] = interaction

        interactions = sorted(
            unique.values(), key=lambda i: (-i.severity.rank, i.pair)
        )
        result = InteractionCheckResult(interactions=tuple(interactions))
        self.cache.put(key, result)

        self.logger.info(
            f"Checked {len(pairs)} medication pairs: {len(interactions)} interactions, "
            f"highest severity {result.highest_severity.value}"
        )
        return result

    def check(self, medications: Iterable, patient: PatientContext) -> InteractionCheckResult:
        return self.check_interactions(medications)

    def interactions_for_medication(self, name: str) -> list[Interaction]:
        """All known interactions involving one medication, most severe first."""
        rows = self._require(self.reference_store.interactions_for(name))
        return sorted(rows, key=lambda i: (-i.severity.rank, i.pair))

    def statistics(self) -> dict[str, Any]:
        rows = self._require(self.reference_store.all_interactions())
        counts = Counter(i.severity.value for i in rows)
        return {
            "totalInteractions": len(rows),
            "bySeverity": {
                s.value: counts.get(s.value, 0)
                for s in InteractionSeverity
                if s != InteractionSeverity.NONE
            },
            "datasetVersion": self.reference_store.dataset_version,
            "cache": self.cache.stats(),
        }

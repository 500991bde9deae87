"""Quick search — ad-hoc, non-persisted single-indicator lookup."""

import asyncio

from ..exceptions import ValidationError
from ..intel.classifier import classify
from ..sources.base import MatchSource, applicable_sources
from ..utils.logging import get_logger

logger = get_logger("engine.quick_search")


class QuickSearch:
    """Classify one raw value and search every applicable source.

    Nothing is written: no hunt job, no match rows. Results are flattened in
    source order with no deduplication beyond what each source returns.
    """

    def __init__(self, sources: list[MatchSource], result_cap: int = 100) -> None:
        self._sources = {s.kind: s for s in sources}
        self._result_cap = result_cap

    async def search(self, organization_id: str, raw_value: str) -> list[dict]:
        value = (raw_value or "").strip()
        if not value:
            raise ValidationError("Search value must not be empty")

        classification = classify(value)
        selected = [
            self._sources[kind]
            for kind in applicable_sources(classification.kind)
            if kind in self._sources
        ]

        # gather keeps source order; any adapter error fails the whole request
        hit_lists = await asyncio.gather(*[
            source.search(organization_id, value, classification.kind, limit=self._result_cap)
            for source in selected
        ])

        results = []
        for source, hits in zip(selected, hit_lists):
            for hit in hits:
                results.append({
                    "source": source.kind.value,
                    "endpoint_id": hit.endpoint_id,
                    "endpoint_hostname": hit.endpoint_hostname or "Unknown",
                    "matched_value": hit.matched_value,
                    "context": hit.context,
                })

        logger.info(
            "quick_search_completed",
            kind=classification.kind.value,
            sources=[s.kind.value for s in selected],
            results=len(results),
        )
        return results

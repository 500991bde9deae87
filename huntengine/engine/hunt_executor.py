"""Hunt executor — runs a hunt job's indicators against the match sources.

Searches for every (indicator, source) pair run concurrently under a
semaphore. The executor itself persists each finished search's hits, in the
order the source returned them, so match writes have a single writer. Any
error or cancellation fails the job; matches written before it are kept.
"""

import asyncio
from dataclasses import dataclass

from ..intel.classifier import IndicatorKind, classify
from ..intel.indicator_store import IndicatorStore
from ..sources.base import MatchSource, MatchSourceKind, RawHit, applicable_sources
from ..utils.logging import get_logger
from .hunt_jobs import HuntJobStore
from .match_store import MatchStore

logger = get_logger("engine.hunt_executor")


@dataclass
class HuntSummary:
    """Aggregates of one successful hunt run."""

    total_matches: int
    total_endpoints: int


class HuntExecutor:
    """Drives a hunt job from pending to completed or failed."""

    def __init__(
        self,
        indicator_store: IndicatorStore,
        job_store: HuntJobStore,
        match_store: MatchStore,
        sources: list[MatchSource],
        max_concurrency: int = 4,
    ) -> None:
        self._indicators = indicator_store
        self._jobs = job_store
        self._matches = match_store
        self._sources = {s.kind: s for s in sources}
        self._max_concurrency = max_concurrency

    async def execute_hunt(
        self,
        organization_id: str,
        job_id: int,
        indicator_ids: list[int] | None = None,
    ) -> HuntSummary:
        """Run a pending hunt job. Defaults to the indicator ids stored on the job."""
        job = await self._jobs.get(organization_id, job_id)
        ids = list(indicator_ids) if indicator_ids is not None else job["indicator_ids"]

        await self._jobs.update_status(organization_id, job_id, "running", indicator_ids=ids)
        logger.info("hunt_started", job_id=job_id, indicators=len(ids))

        endpoint_ids: set[int] = set()
        total_matches = 0

        try:
            indicators = await self._indicators.get(organization_id, ids)
            unresolved = len(set(ids)) - len(indicators)
            if unresolved:
                logger.warning("hunt_indicators_unresolved", job_id=job_id, count=unresolved)

            semaphore = asyncio.Semaphore(self._max_concurrency)
            tasks = []
            for indicator in indicators:
                kind = classify(indicator["value"]).kind
                for source_kind in applicable_sources(kind):
                    source = self._sources.get(source_kind)
                    if source is None:
                        continue
                    tasks.append(asyncio.create_task(
                        self._search(semaphore, organization_id, indicator, kind, source)
                    ))

            try:
                for finished in asyncio.as_completed(tasks):
                    indicator, source_kind, hits = await finished
                    await self._matches.insert_many(job_id, indicator["id"], source_kind, hits)
                    endpoint_ids.update(h.endpoint_id for h in hits)
                    total_matches += len(hits)
            finally:
                for task in tasks:
                    if not task.done():
                        task.cancel()
                await asyncio.gather(*tasks, return_exceptions=True)

        except asyncio.CancelledError:
            logger.warning("hunt_cancelled", job_id=job_id, partial_matches=total_matches)
            # a second cancel must not leave the job running
            await asyncio.shield(self._mark_failed(
                organization_id, job_id, endpoint_ids, total_matches, "cancelled"
            ))
            raise
        except Exception as exc:
            logger.error(
                "hunt_failed",
                job_id=job_id,
                error=str(exc),
                partial_matches=total_matches,
            )
            await self._mark_failed(
                organization_id, job_id, endpoint_ids, total_matches,
                str(exc) or exc.__class__.__name__,
            )
            raise

        await self._jobs.update_status(
            organization_id,
            job_id,
            "completed",
            total_endpoints=len(endpoint_ids),
            matches_found=total_matches,
        )
        logger.info(
            "hunt_completed",
            job_id=job_id,
            matches=total_matches,
            endpoints=len(endpoint_ids),
        )
        return HuntSummary(total_matches=total_matches, total_endpoints=len(endpoint_ids))

    async def _mark_failed(
        self,
        organization_id: str,
        job_id: int,
        endpoint_ids: set[int],
        total_matches: int,
        error_message: str,
    ) -> None:
        await self._jobs.update_status(
            organization_id,
            job_id,
            "failed",
            total_endpoints=len(endpoint_ids),
            matches_found=total_matches,
            error_message=error_message,
        )

    @staticmethod
    async def _search(
        semaphore: asyncio.Semaphore,
        organization_id: str,
        indicator: dict,
        kind: IndicatorKind,
        source: MatchSource,
    ) -> tuple[dict, MatchSourceKind, list[RawHit]]:
        async with semaphore:
            hits = await source.search(organization_id, indicator["value"], kind)
        return indicator, source.kind, hits

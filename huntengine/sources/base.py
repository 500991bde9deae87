"""Match source contract and the indicator-kind dispatch table."""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from ..exceptions import SourceUnavailableError
from ..intel.classifier import IndicatorKind
from ..utils.logging import get_logger

logger = get_logger("sources.base")


class MatchSourceKind(str, Enum):
    INVENTORY = "inventory"
    LOG = "log"


# Which sources can answer for which indicator kind. Tuples keep a stable
# inventory-then-log order for callers that flatten results.
SOURCES_BY_KIND: dict[IndicatorKind, tuple[MatchSourceKind, ...]] = {
    IndicatorKind.FILE_HASH: (MatchSourceKind.INVENTORY,),
    IndicatorKind.FILE_PATH: (MatchSourceKind.INVENTORY, MatchSourceKind.LOG),
    IndicatorKind.FILE_NAME: (MatchSourceKind.INVENTORY, MatchSourceKind.LOG),
    IndicatorKind.PROCESS_NAME: (MatchSourceKind.LOG,),
}


def applicable_sources(kind: IndicatorKind) -> tuple[MatchSourceKind, ...]:
    """Return the match sources that apply to an indicator kind."""
    return SOURCES_BY_KIND.get(IndicatorKind(kind), ())


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so the value is matched literally (escape char ``\\``)."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


@dataclass
class RawHit:
    """One record returned by a match source."""

    endpoint_id: int
    matched_value: str
    endpoint_hostname: Optional[str] = None
    context: dict = field(default_factory=dict)


class MatchSource:
    """Read-only search provider over endpoint-derived records.

    Subclasses set ``kind`` and implement ``_query``. ``search`` applies the
    dispatch table, the per-call timeout and the result cap. Hits beyond the
    cap are dropped silently for the caller and reported in the log only.
    """

    kind: MatchSourceKind

    def __init__(self, db_session_factory, result_cap: int = 100, timeout_seconds: float = 30.0) -> None:
        self._session_factory = db_session_factory
        self._result_cap = result_cap
        self._timeout = timeout_seconds

    def supports(self, kind: IndicatorKind) -> bool:
        return self.kind in applicable_sources(kind)

    async def search(
        self,
        organization_id: str,
        value: str,
        kind: IndicatorKind,
        limit: Optional[int] = None,
    ) -> list[RawHit]:
        """Find records matching ``value`` using the strategy for ``kind``."""
        if not self.supports(kind):
            return []

        cap = limit if limit is not None else self._result_cap
        try:
            # One extra row tells us whether the cap truncated anything
            hits = await asyncio.wait_for(
                self._query(organization_id, value, IndicatorKind(kind), cap + 1),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError as exc:
            logger.error("source_timeout", source=self.kind.value, timeout=self._timeout)
            raise SourceUnavailableError(
                self.kind.value, f"query timed out after {self._timeout}s"
            ) from exc
        except SQLAlchemyError as exc:
            logger.error("source_query_error", source=self.kind.value, error=str(exc))
            raise SourceUnavailableError(self.kind.value, str(exc)) from exc

        if len(hits) > cap:
            logger.warning(
                "source_results_truncated",
                source=self.kind.value,
                cap=cap,
                kind=IndicatorKind(kind).value,
            )
            hits = hits[:cap]
        return hits

    async def _query(
        self,
        organization_id: str,
        value: str,
        kind: IndicatorKind,
        limit: int,
    ) -> list[RawHit]:
        raise NotImplementedError

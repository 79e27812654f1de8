"""Concurrent resolution of every applicable stat on a tile.

Settle-all fan-out: each stat query runs as its own task and a failure
becomes an error entry for that stat only. The batch returns once every
task has settled; results keep declaration order.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Iterable

from tilestats.application.dtos.tile_stats import (
    BatchMetadata,
    RequestContext,
    ResolvedStatResult,
)
from tilestats.application.services.condition_evaluator import ConditionEvaluator
from tilestats.application.services.query_dispatcher import QueryDispatcher
from tilestats.application.services.value_formatter import ValueFormatter
from tilestats.core.constants import ERROR_FORMATTED_VALUE, PRIVATE_STATS_PERMISSION
from tilestats.domain.entities.tile import StatDeclaration
from tilestats.domain.exceptions import QueryError

logger = logging.getLogger(__name__)


class StatAggregator:
    """Filter stats by conditions and visibility, then run them concurrently."""

    def __init__(
        self,
        dispatcher: QueryDispatcher,
        evaluator: ConditionEvaluator,
        formatter: ValueFormatter,
    ) -> None:
        self.dispatcher = dispatcher
        self.evaluator = evaluator
        self.formatter = formatter

    def applicable_stats(
        self, stats: Iterable[StatDeclaration], context: RequestContext
    ) -> list[StatDeclaration]:
        """Return the stats this request may see, in declaration order.

        Private stats require the viewer to hold stats.read.
        """
        can_see_private = context.viewer.has_permission(PRIVATE_STATS_PERMISSION)
        return [
            stat
            for stat in stats
            if (can_see_private or not stat.is_private)
            and self.evaluator.evaluate(stat.conditions, context)
        ]

    async def run_all(
        self, stats: Iterable[StatDeclaration], context: RequestContext
    ) -> list[ResolvedStatResult]:
        """Resolve every applicable stat concurrently; never raises for a single stat."""
        applicable = self.applicable_stats(stats, context)
        return await self.run_stats(applicable, context)

    async def run_stats(
        self, stats: list[StatDeclaration], context: RequestContext
    ) -> list[ResolvedStatResult]:
        """Resolve the given stats concurrently without re-checking applicability."""
        if not stats:
            return []
        settled = await asyncio.gather(
            *(self._run_one(stat, context) for stat in stats),
            return_exceptions=True,
        )
        results: list[ResolvedStatResult] = []
        for stat, outcome in zip(stats, settled):
            if isinstance(outcome, BaseException):
                if isinstance(outcome, asyncio.CancelledError):
                    raise outcome
                logger.error(
                    "Stat %s failed outside the dispatcher",
                    stat.stat_id,
                    exc_info=outcome,
                )
                outcome = self._error_result(
                    stat, QueryError("INTERNAL_ERROR", "Stat could not be computed"), 0.0
                )
            results.append(outcome)
        return results

    async def _run_one(
        self, stat: StatDeclaration, context: RequestContext
    ) -> ResolvedStatResult:
        started = time.perf_counter()
        try:
            outcome = await self.dispatcher.execute(stat.query, context, stat_id=stat.stat_id)
        except QueryError as e:
            elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
            return self._error_result(stat, e, elapsed_ms)
        return ResolvedStatResult(
            stat_id=stat.stat_id,
            label=stat.label,
            value=outcome.value,
            formatted_value=self.formatter.format(outcome.value, stat.format),
            format=stat.format,
            execution_time_ms=outcome.execution_time_ms,
        )

    @staticmethod
    def _error_result(
        stat: StatDeclaration, error: QueryError, execution_time_ms: float
    ) -> ResolvedStatResult:
        return ResolvedStatResult(
            stat_id=stat.stat_id,
            label=stat.label,
            value=None,
            formatted_value=ERROR_FORMATTED_VALUE,
            format=stat.format,
            execution_time_ms=execution_time_ms,
            error=error.to_dict(),
        )

    @staticmethod
    def summarize(
        results: list[ResolvedStatResult],
        *,
        tile_id: str,
        organization_id: str,
        execution_time_ms: float,
        cached: bool = False,
    ) -> BatchMetadata:
        """Compute batch metadata once all results have landed."""
        successful = sum(1 for result in results if result.succeeded)
        return BatchMetadata(
            tile_id=tile_id,
            organization_id=organization_id,
            execution_time_ms=execution_time_ms,
            total_stats=len(results),
            successful_stats=successful,
            failed_stats=len(results) - successful,
            cached=cached,
        )

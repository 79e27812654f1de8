"""Query dispatcher: one QuerySpecification in, one scalar (or QueryError) out.

Standard operations become filtered aggregates on the data store; the
organization filter is always appended here, from the explicit request
context. 'custom' queries go through a dedicated RPC with the organization
id as a bound parameter; the raw query text is never modified.

Only QueryError leaves execute(). Messages in QueryError are fixed,
client-safe strings; backend detail goes to the log.
"""

from __future__ import annotations

import asyncio
import logging
import re
import time
from typing import Any

from tilestats.application.dtos.tile_stats import (
    QueryOutcome,
    RequestContext,
    ResolvedFilter,
)
from tilestats.application.interfaces.services import IStatsDataStore
from tilestats.application.services.variable_resolver import (
    VariableResolver,
    parse_time_range,
)
from tilestats.domain.entities.tile import QuerySpecification
from tilestats.domain.enums import ConditionOperator, QueryOperation
from tilestats.domain.exceptions import (
    DataStoreError,
    QueryError,
    UnresolvedPlaceholderError,
)
from tilestats.shared.telemetry.tracing import StatQuerySpan
from tilestats.shared.utils.datetime import to_iso_utc

logger = logging.getLogger(__name__)

_ORGANIZATION_FIELD = "organization_id"

_COLUMN_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]{0,62}$")
_READ_ONLY_QUERY_RE = re.compile(r"^\s*(select|with)\b", re.IGNORECASE)
_FORBIDDEN_SQL_RE = re.compile(
    r"\b(insert|update|delete|merge|drop|alter|truncate|create|grant|revoke|copy|call|execute)\b",
    re.IGNORECASE,
)

_AGGREGATE_FUNCTIONS = {
    QueryOperation.SUM: "sum",
    QueryOperation.AVG: "avg",
    QueryOperation.MIN: "min",
    QueryOperation.MAX: "max",
}

# Client-facing messages per error code (never include backend detail).
_SAFE_MESSAGES = {
    "PERMISSION_DENIED": "Permission denied for stat query",
    "QUERY_FAILED": "Stat query failed",
    "NETWORK_ERROR": "Data store is unreachable",
    "QUERY_TIMEOUT": "Stat query timed out",
    "MALFORMED_QUERY": "Stat query is malformed",
}


def validate_custom_query(raw: str) -> str:
    """Return the trimmed query if it is a single read-only SELECT/WITH statement.

    Raises:
        QueryError: INVALID_CUSTOM_QUERY otherwise.
    """
    text = raw.strip().rstrip(";").strip()
    if not _READ_ONLY_QUERY_RE.match(text) or ";" in text or _FORBIDDEN_SQL_RE.search(text):
        raise QueryError(
            "INVALID_CUSTOM_QUERY",
            "Custom query must be a single read-only SELECT statement",
        )
    return text


def _extract_scalar(result: Any) -> Any:
    """Reduce an RPC result (scalar, row, or list of rows) to a single value."""
    if isinstance(result, list):
        if not result:
            return None
        result = result[0]
    if isinstance(result, dict):
        if "value" in result:
            return result["value"]
        if len(result) == 1:
            return next(iter(result.values()))
        raise QueryError("INVALID_RESULT", "Custom query must return a single value")
    return result


def _as_number(value: Any) -> int | float | None:
    if value is None:
        return None
    if isinstance(value, bool):
        raise QueryError("INVALID_RESULT", "Stat query returned a non-numeric value")
    if isinstance(value, (int, float)):
        return value
    try:
        text = str(value).strip()
        return int(text) if text.lstrip("-").isdigit() else float(text)
    except ValueError:
        raise QueryError("INVALID_RESULT", "Stat query returned a non-numeric value") from None


class QueryDispatcher:
    """Execute QuerySpecifications against an IStatsDataStore."""

    def __init__(
        self,
        data_store: IStatsDataStore,
        resolver: VariableResolver | None = None,
        *,
        timeout_seconds: float = 10.0,
        custom_query_function: str = "execute_tile_query",
    ) -> None:
        self.data_store = data_store
        self.resolver = resolver or VariableResolver()
        self.timeout_seconds = timeout_seconds
        self.custom_query_function = custom_query_function

    async def execute(
        self,
        spec: QuerySpecification,
        context: RequestContext,
        *,
        stat_id: str | None = None,
    ) -> QueryOutcome:
        """Run spec for context and return the scalar with its execution time.

        Raises:
            QueryError: On any failure (validation, data store, timeout, result shape).
        """
        started = time.perf_counter()
        with StatQuerySpan(stat_id, spec.operation.value, spec.table):
            try:
                value = await asyncio.wait_for(
                    self._run(spec, context), timeout=self.timeout_seconds
                )
            except QueryError:
                raise
            except asyncio.TimeoutError:
                logger.warning(
                    "Stat query timed out after %ss: stat=%s table=%s",
                    self.timeout_seconds,
                    stat_id,
                    spec.table,
                )
                raise QueryError("QUERY_TIMEOUT", _SAFE_MESSAGES["QUERY_TIMEOUT"]) from None
            except UnresolvedPlaceholderError as e:
                raise QueryError(
                    "UNRESOLVED_PLACEHOLDER", f"Unresolved placeholder: {e.token}"
                ) from e
            except DataStoreError as e:
                logger.warning(
                    "Stat query failed: stat=%s table=%s code=%s detail=%s",
                    stat_id,
                    spec.table,
                    e.code,
                    e.message,
                )
                code = e.code if e.code in _SAFE_MESSAGES else "QUERY_FAILED"
                raise QueryError(code, _SAFE_MESSAGES[code]) from e
            except Exception as e:
                logger.exception("Unexpected stat query failure: stat=%s", stat_id)
                raise QueryError("QUERY_FAILED", _SAFE_MESSAGES["QUERY_FAILED"]) from e
        elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
        return QueryOutcome(value=value, execution_time_ms=elapsed_ms)

    async def _run(self, spec: QuerySpecification, context: RequestContext) -> Any:
        if spec.operation == QueryOperation.CUSTOM:
            return await self._run_custom(spec, context)

        if not _COLUMN_RE.match(spec.table or ""):
            raise QueryError("MALFORMED_QUERY", "Stat query has an invalid table name")
        if spec.operation.requires_field and not (spec.field and _COLUMN_RE.match(spec.field)):
            raise QueryError(
                "MALFORMED_QUERY",
                f"Operation '{spec.operation.value}' requires a target field",
            )
        filters = self.resolve_filters(spec, context)

        if spec.operation == QueryOperation.COUNT:
            return int(await self.data_store.count(spec.table, filters))
        if spec.operation == QueryOperation.COUNT_DISTINCT:
            return int(
                await self.data_store.count_distinct(spec.table, spec.field, filters)
            )
        function = _AGGREGATE_FUNCTIONS[spec.operation]
        raw = await self.data_store.aggregate(spec.table, function, spec.field, filters)
        if spec.operation in (QueryOperation.MIN, QueryOperation.MAX):
            # min/max may legitimately be timestamps or text.
            return raw
        return _as_number(raw)

    def resolve_filters(
        self, spec: QuerySpecification, context: RequestContext
    ) -> list[ResolvedFilter]:
        """Build data store filters: declared conditions, filter-by pairs, organization scope.

        Raises:
            QueryError: MALFORMED_QUERY for an unknown operator or invalid field.
            UnresolvedPlaceholderError: In strict mode, for unknown tokens.
        """
        filters: list[ResolvedFilter] = []
        for condition in spec.conditions:
            if not _COLUMN_RE.match(condition.field or ""):
                raise QueryError("MALFORMED_QUERY", "Stat query has an invalid filter field")
            try:
                op = ConditionOperator.parse(condition.operator)
            except (ValueError, AttributeError):
                raise QueryError(
                    "MALFORMED_QUERY", f"Unknown filter operator: {condition.operator!r}"
                ) from None
            if condition.field == _ORGANIZATION_FIELD:
                # Tenant scope comes from the request only.
                continue
            filters.append(
                ResolvedFilter(
                    field=condition.field,
                    operator=op,
                    value=self.resolver.resolve(condition.value, context),
                )
            )
        for key, value in context.filters.items():
            if key == _ORGANIZATION_FIELD:
                continue
            filters.append(ResolvedFilter(key, ConditionOperator.EQUALS, value))
        filters.append(
            ResolvedFilter(_ORGANIZATION_FIELD, ConditionOperator.EQUALS, context.organization_id)
        )
        return filters

    async def _run_custom(self, spec: QuerySpecification, context: RequestContext) -> Any:
        if not spec.query:
            raise QueryError("MALFORMED_QUERY", "Custom stat query has no query text")
        query_text = validate_custom_query(spec.query)
        params: dict[str, Any] = {}
        for condition in spec.conditions:
            if _COLUMN_RE.match(condition.field or "") and condition.field != _ORGANIZATION_FIELD:
                params[condition.field] = self.resolver.resolve(condition.value, context)
        params.update(
            {
                "time_range_start": to_iso_utc(parse_time_range(context.time_range, context.now)),
                "time_range_end": to_iso_utc(context.now),
                _ORGANIZATION_FIELD: context.organization_id,
            }
        )
        result = await self.data_store.call_rpc(
            self.custom_query_function,
            {"query_text": query_text, "params": params},
        )
        return _extract_scalar(result)

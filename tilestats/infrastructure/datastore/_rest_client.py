"""Thin PostgREST (Supabase REST API) client for read-only stat queries.

All HTTP calls use httpx.AsyncClient so they do not block the event loop.
The client is shared across the concurrent queries of a request; it holds
no per-request state. HTTP and transport failures are raised as
DataStoreError with a stable code; backend detail stays in the message
for logs.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

import httpx

from tilestats.application.dtos.tile_stats import ResolvedFilter
from tilestats.domain.exceptions import DataStoreError
from tilestats.infrastructure.datastore.filters import render_filters

logger = logging.getLogger(__name__)

_REST_PATH = "/rest/v1"
_CONTENT_RANGE_RE = re.compile(r"^(?:\d+-\d+|\*)/(\d+|\*)$")


def _status_code_to_error(status: int) -> str:
    if status in (401, 403):
        return "PERMISSION_DENIED"
    return "QUERY_FAILED"


class SupabaseRESTClient:
    """Aggregate queries and RPC calls over the PostgREST HTTP API."""

    def __init__(
        self,
        base_url: str,
        service_key: str,
        http: httpx.AsyncClient,
        *,
        distinct_scan_limit: int = 10_000,
    ) -> None:
        self._base = base_url.rstrip("/") + _REST_PATH
        self._service_key = service_key
        self._http = http
        self.distinct_scan_limit = distinct_scan_limit

    def _headers(self, extra: dict[str, str] | None = None) -> dict[str, str]:
        headers = {"Accept": "application/json", "Content-Type": "application/json"}
        if self._service_key:
            headers["apikey"] = self._service_key
            headers["Authorization"] = f"Bearer {self._service_key}"
        if extra:
            headers.update(extra)
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: list[tuple[str, str]] | None = None,
        body: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        url = f"{self._base}/{path.lstrip('/')}"
        try:
            resp = await self._http.request(
                method,
                url,
                params=params,
                json=body,
                headers=self._headers(headers),
            )
        except httpx.TimeoutException as e:
            raise DataStoreError("QUERY_TIMEOUT", f"{method} {path}: {e!s}") from e
        except httpx.TransportError as e:
            raise DataStoreError("NETWORK_ERROR", f"{method} {path}: {e!s}") from e
        if resp.status_code >= 400:
            raise DataStoreError(
                _status_code_to_error(resp.status_code),
                f"{method} {path} -> {resp.status_code}: {resp.text[:500]}",
                status_code=resp.status_code,
            )
        return resp

    @staticmethod
    def _json(resp: httpx.Response) -> Any:
        if not resp.content:
            return None
        try:
            return resp.json()
        except json.JSONDecodeError as e:
            raise DataStoreError("QUERY_FAILED", "Response is not valid JSON") from e

    async def select_rows(
        self,
        table: str,
        filters: list[ResolvedFilter],
        *,
        columns: str = "*",
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Return rows of table matching filters."""
        params = [("select", columns), *render_filters(filters)]
        if limit is not None:
            params.append(("limit", str(limit)))
        rows = self._json(await self._request("GET", table, params=params))
        return rows if isinstance(rows, list) else []

    async def count(self, table: str, filters: list[ResolvedFilter]) -> int:
        """Exact row count from the Content-Range header of a HEAD request."""
        params = [("select", "*"), *render_filters(filters)]
        resp = await self._request(
            "HEAD", table, params=params, headers={"Prefer": "count=exact"}
        )
        content_range = resp.headers.get("content-range", "")
        match = _CONTENT_RANGE_RE.match(content_range.strip())
        if not match or match.group(1) == "*":
            raise DataStoreError(
                "QUERY_FAILED", f"Unexpected Content-Range for {table}: {content_range!r}"
            )
        return int(match.group(1))

    async def aggregate(
        self, table: str, function: str, field: str, filters: list[ResolvedFilter]
    ) -> Any:
        """Run a PostgREST aggregate (requires db-aggregates-enabled on the server)."""
        params = [("select", f"value:{field}.{function}()"), *render_filters(filters)]
        rows = self._json(await self._request("GET", table, params=params))
        if not rows:
            return None
        if not isinstance(rows, list) or not isinstance(rows[0], dict):
            raise DataStoreError("QUERY_FAILED", f"Unexpected aggregate payload for {table}")
        return rows[0].get("value")

    async def count_distinct(
        self, table: str, field: str, filters: list[ResolvedFilter]
    ) -> int:
        """Count distinct non-null values client-side (PostgREST has no COUNT(DISTINCT))."""
        rows = await self.select_rows(
            table,
            filters,
            columns=field,
            limit=self.distinct_scan_limit,
        )
        if len(rows) >= self.distinct_scan_limit:
            logger.warning(
                "count_distinct on %s.%s hit scan limit %s; result is a lower bound",
                table,
                field,
                self.distinct_scan_limit,
            )
        distinct = {
            json.dumps(row.get(field), sort_keys=True, default=str)
            for row in rows
            if row.get(field) is not None
        }
        return len(distinct)

    async def call_rpc(self, function: str, params: dict[str, Any]) -> Any:
        """POST /rpc/<function> with named parameters as the JSON body."""
        resp = await self._request("POST", f"rpc/{function}", body=params)
        return self._json(resp)

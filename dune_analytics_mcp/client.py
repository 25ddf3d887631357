"""Async HTTP client for the parts of the Dune API the tools rely on."""

import csv
import io
import json
import logging
from typing import Any, Optional

import httpx

from dune_analytics_mcp.config import DuneSettings

logger = logging.getLogger(__name__)


def extract_rows(data: Any) -> list:
    """Return ``result.rows`` from a results payload, or [] if it is absent."""
    if not isinstance(data, dict):
        return []
    result = data.get("result")
    if not isinstance(result, dict):
        return []
    rows = result.get("rows")
    if not isinstance(rows, list):
        return []
    return rows


def _format_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"))
    return str(value)


def rows_to_csv(rows: list) -> str:
    """
    Convert result rows to CSV text.

    The header comes from the keys of the first row. Every row is written in
    order against that header. Missing columns are left empty and unknown
    columns are dropped.
    """
    if not rows:
        return ""

    fieldnames = list(rows[0].keys())
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(fieldnames)
    for row in rows:
        writer.writerow([_format_value(row.get(name)) for name in fieldnames])

    return buffer.getvalue().rstrip("\n")


class DuneClient:
    """Client for Dune query results and executions."""

    def __init__(
        self,
        settings: DuneSettings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings
        self._transport = transport

    async def make_request(
        self,
        method: str,
        endpoint: str,
        params: Optional[dict] = None,
    ) -> Any:
        """Make an HTTP request to the Dune API and return the decoded JSON body."""
        url = f"{self.settings.base_url}{endpoint}"
        logger.debug("%s %s params=%s", method, url, params)
        async with httpx.AsyncClient(
            timeout=self.settings.timeout,
            transport=self._transport,
        ) as client:
            response = await client.request(
                method=method,
                url=url,
                headers=self.settings.headers,
                params=params,
            )
            response.raise_for_status()
            return response.json()

    async def get_latest_results(self, query_id: int, limit: int) -> list:
        """Rows from the most recent materialized run of a saved query."""
        data = await self.make_request(
            "GET", f"/query/{query_id}/results", params={"limit": limit}
        )
        return extract_rows(data)

    async def execute_query(self, query_id: int) -> Optional[str]:
        """
        Trigger a new run of a saved query.

        Returns:
            The execution ID, or None when the response did not include one.
        """
        data = await self.make_request("POST", f"/query/execute/{query_id}")
        if not isinstance(data, dict):
            return None
        return data.get("execution_id") or None

    async def get_execution_status(self, execution_id: str) -> Optional[str]:
        data = await self.make_request("GET", f"/execution/{execution_id}/status")
        if not isinstance(data, dict):
            return None
        return data.get("state")

    async def get_execution_results(self, execution_id: str, limit: int) -> list:
        data = await self.make_request(
            "GET", f"/execution/{execution_id}/results", params={"limit": limit}
        )
        return extract_rows(data)

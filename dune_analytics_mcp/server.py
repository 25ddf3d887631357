"""
Dune Analytics MCP Server

An MCP server exposing Dune Analytics query results as CSV text.
Provides tools for reading the latest results of a saved query, running a
query and waiting for it to finish, and aggregated reports built from fixed
sets of community queries.
"""

import asyncio
import logging
import sys
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional, Sequence

import httpx
from fastmcp import FastMCP

from dune_analytics_mcp.client import DuneClient, rows_to_csv
from dune_analytics_mcp.config import DuneSettings

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]

NO_DATA = "No data available"
NO_DATA_FROM_ANY_QUERY = "No data available from any queries"
FAILED_TO_START = "Failed to start query execution"

WAITING_STATES = frozenset({"PENDING", "EXECUTING"})
COMPLETED_STATE = "COMPLETED"


# =============================================================================
# AGGREGATION QUERY SETS
# =============================================================================

# Repeated IDs are intentional: every entry is fetched and reported.
CHAINLINK_REVENUE_QUERY_IDS = (
    3295297, 3300590, 3295297, 3295297, 3295297, 3295297, 3300575, 3295234,
    3295196, 3295226, 3294714,
)

PUMPFUN_QUERY_IDS = (4032586, 5232018, 5239138, 5239155, 5324340)

SOLANA_MEMECOIN_QUERY_IDS = (
    4010816, 5126341, 5001416, 4006260, 5370965, 5370964, 5073803, 5402837,
    4010816, 5126416, 5126361, 5041379, 5374546, 5371447, 5073810, 5131612,
    5129526, 5002608, 5126485, 4007266, 5073823, 5002622, 5137851, 5138002,
)

DEX_TRADING_QUERY_IDS = (
    4234, 4235, 21693, 4319, 4319, 2180075, 4388, 21689, 4323, 4323, 1847,
    4424, 3084516, 3084516, 3364122, 3155213, 2687239, 7486, 8243, 14138,
)


# =============================================================================
# TOOL HANDLERS
# =============================================================================

def normalize_state(state: Optional[str]) -> str:
    """Map ``QUERY_STATE_COMPLETED`` style states onto ``COMPLETED``."""
    if state is None:
        return ""
    state = str(state)
    if state.startswith("QUERY_STATE_"):
        return state[len("QUERY_STATE_"):]
    return state


def rows_to_text(rows: list) -> str:
    # rows without any columns render as "" and count as no data
    csv_text = rows_to_csv(rows)
    if not csv_text:
        return NO_DATA
    return csv_text


async def fetch_latest_result(client: DuneClient, query_id: int, limit: int) -> str:
    """Latest results of ``query_id`` as CSV, or a message describing the failure."""
    try:
        rows = await client.get_latest_results(query_id, limit)
        return rows_to_text(rows)
    except httpx.HTTPStatusError as e:
        logger.warning("HTTP error fetching results for query %s: %s", query_id, e)
        return f"HTTP error fetching query results: {e}"
    except Exception as e:
        logger.warning("Error processing results for query %s: %s", query_id, e)
        return f"Error processing query results: {e}"


async def run_query_to_completion(
    client: DuneClient,
    query_id: int,
    limit: int,
    sleep: Sleep,
    poll_interval: float,
) -> str:
    """
    Execute a saved query, poll until it leaves the queue, and return its rows.

    The poll loop has no attempt cap. Each status read is bounded only by the
    HTTP timeout, and ``sleep(poll_interval)`` runs between reads.
    """
    try:
        execution_id = await client.execute_query(query_id)
        if not execution_id:
            return FAILED_TO_START
        logger.info("Query %s started as execution %s", query_id, execution_id)

        while True:
            state = await client.get_execution_status(execution_id)
            normalized = normalize_state(state)
            if normalized in WAITING_STATES:
                logger.debug("Execution %s is %s", execution_id, state)
                await sleep(poll_interval)
            elif normalized == COMPLETED_STATE:
                break
            else:
                logger.warning("Execution %s ended in state %s", execution_id, state)
                return f"Query execution failed with state: {state}"

        rows = await client.get_execution_results(execution_id, limit)
        return rows_to_text(rows)
    except httpx.HTTPStatusError as e:
        logger.warning("HTTP error running query %s: %s", query_id, e)
        return f"HTTP error running query: {e}"
    except Exception as e:
        logger.warning("Error processing query %s: %s", query_id, e)
        return f"Error processing query: {e}"


@dataclass
class QueryOutcome:
    """Result of fetching one query within an aggregated report."""

    query_id: int
    rows: list = field(default_factory=list)
    csv: str = ""
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def has_data(self) -> bool:
        return self.ok and bool(self.csv)


async def collect_outcomes(
    client: DuneClient, query_ids: Sequence[int], limit: int
) -> List[QueryOutcome]:
    """
    Fetch and format each query in order.

    Fetch and CSV conversion both run inside the per-query ``try``, so one
    failing or malformed query never stops the others.
    """
    outcomes = []
    for query_id in query_ids:
        try:
            rows = await client.get_latest_results(query_id, limit)
            outcomes.append(
                QueryOutcome(query_id=query_id, rows=rows, csv=rows_to_csv(rows))
            )
        except Exception as e:
            logger.warning("Error fetching query %s: %s", query_id, e)
            outcomes.append(QueryOutcome(query_id=query_id, error=str(e)))
    return outcomes


def format_report(outcomes: Sequence[QueryOutcome]) -> str:
    successful = [outcome for outcome in outcomes if outcome.has_data]
    if not successful:
        return NO_DATA_FROM_ANY_QUERY

    sections = [f"Successfully retrieved data from {len(successful)} queries.\n\n"]
    for outcome in successful:
        sections.append(f"=== Query ID: {outcome.query_id} ===\n")
        sections.append(f"CSV data:\n{outcome.csv}\n\n")
    return "".join(sections)


async def aggregate_latest_results(
    client: DuneClient, query_ids: Sequence[int], limit: int, label: str
) -> str:
    """Build one report from the latest results of several queries."""
    try:
        outcomes = await collect_outcomes(client, query_ids, limit)
        failed = [outcome for outcome in outcomes if not outcome.ok]
        if failed:
            logger.info(
                "%s: %d of %d queries failed", label, len(failed), len(outcomes)
            )
        return format_report(outcomes)
    except Exception as e:
        logger.warning("Error processing %s: %s", label, e)
        return f"Error processing {label}: {e}"


# =============================================================================
# SERVER FACTORY
# =============================================================================

def create_server(
    settings: DuneSettings,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    sleep: Sleep = asyncio.sleep,
) -> FastMCP:
    """Create the MCP server with every Dune tool registered against ``settings``."""
    client = DuneClient(settings, transport=transport)

    mcp = FastMCP(
        name="dune-analytics-mcp",
        instructions="""
        This MCP server provides Dune Analytics query results as CSV text.

        - get_latest_result reads the latest stored results of a query.
        - run_query executes a query and waits for it to finish. This can take
          minutes and consumes Dune credits.
        - get_chainlink_revenue, get_pumpfun_data, get_solana_memecoin_data and
          get_dex_trading_data return reports built from curated query sets.
        """
    )

    @mcp.tool
    async def get_latest_result(query_id: int, limit: int = 100) -> str:
        """
        Get the latest results for a specific query ID as a CSV string on dune analytics.

        Args:
            query_id: Dune query ID.
            limit: Limit the number of results returned (default: 100).

        Returns:
            Query results as CSV, or a message when no data is available.
        """
        return await fetch_latest_result(client, query_id, limit)

    @mcp.tool
    async def run_query(query_id: int, limit: int = 100) -> str:
        """
        Run a query by ID and return results as a CSV string on dune analytics.

        Args:
            query_id: Dune query ID.
            limit: Limit the number of results returned (default: 100).

        Returns:
            Query results as CSV, or a message describing why the run failed.
        """
        return await run_query_to_completion(
            client, query_id, limit, sleep, settings.poll_interval
        )

    @mcp.tool
    async def get_chainlink_revenue(limit: int = 100) -> str:
        """
        Get comprehensive Chainlink revenue data including cumulative revenue,
        product-wise income, and financial metrics.

        Aggregates multiple Dune queries covering revenue across Chainlink
        products such as Feeds, VRF (Verifiable Random Function), CCIP
        (Cross-Chain Interoperability Protocol), and Automation, from October
        2020 to July 2024, with total product revenue breakdown and cumulative
        income trends.

        Args:
            limit: Limit the number of results returned per query (default: 100).
        """
        return await aggregate_latest_results(
            client, CHAINLINK_REVENUE_QUERY_IDS, limit, "Chainlink revenue data"
        )

    @mcp.tool
    async def get_pumpfun_data(limit: int = 100) -> str:
        """
        Get comprehensive Pump.fun platform data including top token creators,
        active wallets, address distribution, and trader rankings.

        Covers token creation count, graduated tokens, graduation rate and daily
        token numbers per creator; active wallets ranked by realized profits over
        the past 30 days; Pumpfun and PumpSwap address totals with volume
        distribution excluding bots; and trader leaderboards with transaction
        counts, active days and total volume, with and without high-frequency bots.

        Args:
            limit: Limit the number of results returned per query (default: 100).
        """
        return await aggregate_latest_results(
            client, PUMPFUN_QUERY_IDS, limit, "Pump.fun data"
        )

    @mcp.tool
    async def get_solana_memecoin_data(limit: int = 100) -> str:
        """
        Get comprehensive Solana memecoin launch platform ecosystem data including
        platform performance metrics, daily statistics, and trending tokens.

        Covers launch platforms like Pump.fun, LaunchLab, Moonshot, Believe,
        LetsBonk, and Boop: launched token counts, active addresses, graduated
        tokens, daily active addresses, market share and daily deployed token
        counts, plus trending tokens from the past 24 hours and 7 days with market
        cap and launch platform.

        Args:
            limit: Limit the number of results returned per query (default: 100).
        """
        return await aggregate_latest_results(
            client, SOLANA_MEMECOIN_QUERY_IDS, limit, "Solana memecoin data"
        )

    @mcp.tool
    async def get_dex_trading_data(limit: int = 100) -> str:
        """
        Get comprehensive DEX (Decentralized Exchange) trading data including
        volume metrics, unique trading addresses, market share analysis, and
        platform rankings.

        Covers DEX trading volumes over 24 hours, 7 days, 30 days and 12 months,
        unique trading addresses, market share by volume for DEXs and frontends,
        Solana DEX volume, and DEX and aggregator rankings by 7-day and 24-hour
        volume. USD volume may omit uncommon tokens, and proxy contract
        interactions are counted as single traders.

        Args:
            limit: Limit the number of results returned per query (default: 100).
        """
        return await aggregate_latest_results(
            client, DEX_TRADING_QUERY_IDS, limit, "DEX trading data"
        )

    return mcp


# =============================================================================
# MAIN ENTRY POINT
# =============================================================================

def main(argv: Optional[List[str]] = None) -> None:
    if argv is None:
        argv = sys.argv[1:]

    settings = DuneSettings.from_env()
    debug = settings.debug or "--debug" in argv

    # stdout carries the stdio transport, so logs go to stderr
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    mcp = create_server(settings)

    # Check for HTTP mode via command line argument
    if "--http" in argv:
        port = 8000
        for i, arg in enumerate(argv):
            if arg == "--port" and i + 1 < len(argv):
                port = int(argv[i + 1])

        logger.info("Starting Dune MCP server on http://127.0.0.1:%d", port)
        mcp.run(transport="streamable-http", host="127.0.0.1", port=port)
    else:
        # Default: stdio transport for desktop MCP clients
        mcp.run()


if __name__ == "__main__":
    main()

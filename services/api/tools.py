from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional
import json
import re

from services.config.logging import get_logger
from services.exports import payloads
from services.ingestion import cse_client
from services.resolver.core import Catalog, search

logger = get_logger(__name__)

SYMBOL_RE = re.compile(r"^[A-Z]+\.[A-Z0-9]+$")
SYMBOL_FORMAT_ERROR = "Invalid symbol format. Use format like 'JKH.N0000'"

_QUERY_SCHEMA = {
    "type": "object",
    "properties": {
        "query": {
            "type": "string",
            "minLength": 1,
            "description": "Company name or symbol to search (e.g., 'JKH' or 'John Keells')",
        }
    },
    "required": ["query"],
}
_SYMBOL_SCHEMA = {
    "type": "object",
    "properties": {
        "symbol": {
            "type": "string",
            "pattern": SYMBOL_RE.pattern,
            "description": "Ticker symbol from CSE (e.g., 'JKH.N0000')",
        }
    },
    "required": ["symbol"],
}
_NO_ARGS = {"type": "object", "properties": {}}


class ToolNotFoundError(KeyError):
    """No tool registered under the requested name."""


@dataclass(frozen=True)
class ToolResult:
    text: str
    is_error: bool = False

    def as_content(self) -> Dict[str, Any]:
        return {"content": [{"type": "text", "text": self.text}], "isError": self.is_error}


@dataclass(frozen=True)
class Tool:
    name: str
    title: str
    description: str
    handler: Callable[[Dict[str, Any]], ToolResult]
    input_schema: Dict[str, Any] = field(default_factory=lambda: dict(_NO_ARGS))

    def describe(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "title": self.title,
            "description": self.description,
            "inputSchema": self.input_schema,
        }


class ToolRegistry:
    def __init__(self) -> None:
        self._tools: Dict[str, Tool] = {}

    def register(self, tool: Tool) -> None:
        logger.debug("Registering tool %s", tool.name)
        self._tools[tool.name] = tool

    def get(self, name: str) -> Optional[Tool]:
        return self._tools.get(name)

    def list_tools(self) -> List[Dict[str, Any]]:
        return [t.describe() for t in self._tools.values()]

    def call(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> ToolResult:
        tool = self._tools.get(name)
        if tool is None:
            logger.warning("Unknown tool %s", name)
            raise ToolNotFoundError(name)
        logger.debug("Calling tool %s", name)
        try:
            return tool.handler(dict(arguments or {}))
        except ValueError as e:
            return ToolResult(f"Invalid arguments for {name}: {e}", is_error=True)


def _dump(payload: Any) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False)


def _query_arg(args: Dict[str, Any]) -> str:
    q = args.get("query")
    if not isinstance(q, str) or len(q) < 1:
        raise ValueError("query must be a non-empty string")
    return q


def _symbol_arg(args: Dict[str, Any]) -> str:
    s = args.get("symbol")
    if not isinstance(s, str) or not SYMBOL_RE.fullmatch(s):
        raise ValueError(SYMBOL_FORMAT_ERROR)
    return s


def build_registry(catalog: Catalog, session: Any = None) -> ToolRegistry:
    """Register the search and market-data tools against one catalog.

    `session` is handed to every CSE fetch; None means plain `requests`.
    """
    reg = ToolRegistry()

    def search_company(args: Dict[str, Any]) -> ToolResult:
        query = _query_arg(args)
        results = search(catalog, query)
        if not results:
            return ToolResult(f'No companies found matching "{query}". Try a different search term.')
        return ToolResult(_dump(payloads.search_payload(query, results)))

    def get_stock_data(args: Dict[str, Any]) -> ToolResult:
        res = cse_client.get_stock_data(catalog, _symbol_arg(args), session)
        if not res.ok:
            return ToolResult(f"Error fetching stock data: {res.error}", is_error=True)
        return ToolResult(_dump(payloads.stock_quote_payload(res.data)))

    def get_detailed_company_info(args: Dict[str, Any]) -> ToolResult:
        res = cse_client.get_company_info(catalog, _symbol_arg(args), session)
        if not res.ok:
            return ToolResult(f"Error fetching detailed company info: {res.error}", is_error=True)
        return ToolResult(_dump(payloads.company_info_payload(res.data)))

    def get_top_gainers(args: Dict[str, Any]) -> ToolResult:
        res = cse_client.get_top_gainers(session)
        if not res.ok:
            return ToolResult(f"Error fetching top gainers: {res.error}", is_error=True)
        return ToolResult(_dump(payloads.movers_payload("Top 10 Gainers", "gainers", res.data)))

    def get_top_losers(args: Dict[str, Any]) -> ToolResult:
        res = cse_client.get_top_losers(session)
        if not res.ok:
            return ToolResult(f"Error fetching top losers: {res.error}", is_error=True)
        return ToolResult(_dump(payloads.movers_payload("Top 10 Losers", "losers", res.data)))

    def get_most_active_stocks(args: Dict[str, Any]) -> ToolResult:
        res = cse_client.get_most_active(session)
        if not res.ok:
            return ToolResult(f"Error fetching most active stocks: {res.error}", is_error=True)
        return ToolResult(_dump(payloads.most_active_payload(res.data)))

    def get_market_summary(args: Dict[str, Any]) -> ToolResult:
        res = cse_client.get_market_summary(session)
        if not res.ok:
            return ToolResult(f"Error fetching market summary: {res.error}", is_error=True)
        return ToolResult(_dump(payloads.market_summary_payload(res.data)))

    reg.register(Tool(
        "search_company", "Search Company",
        "Search for Colombo Stock Exchange companies by name or symbol. "
        "Uses fuzzy matching to return the 3 closest matches.",
        search_company, _QUERY_SCHEMA,
    ))
    reg.register(Tool(
        "get_stock_data", "Get Stock Data",
        "Get real-time stock price data for a specific CSE ticker symbol. "
        "Use search_company first to find the correct symbol.",
        get_stock_data, _SYMBOL_SCHEMA,
    ))
    reg.register(Tool(
        "get_detailed_company_info", "Get Detailed Company Info",
        "Get comprehensive company information including 52-week high/low, YTD metrics, "
        "market cap, and beta values. Use search_company first to find the correct symbol.",
        get_detailed_company_info, _SYMBOL_SCHEMA,
    ))
    reg.register(Tool(
        "get_top_gainers", "Get Top Gainers",
        "Get the top 10 gaining stocks in the CSE for the current trading day.",
        get_top_gainers,
    ))
    reg.register(Tool(
        "get_top_losers", "Get Top Losers",
        "Get the top 10 losing stocks in the CSE for the current trading day.",
        get_top_losers,
    ))
    reg.register(Tool(
        "get_most_active_stocks", "Get Most Active Stocks",
        "Get the top 10 most actively traded stocks by volume in the CSE for the current trading day.",
        get_most_active_stocks,
    ))
    reg.register(Tool(
        "get_market_summary", "Get Market Summary",
        "Get the overall market summary including total trade volume, share volume, and trade date.",
        get_market_summary,
    ))
    return reg

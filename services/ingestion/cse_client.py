from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import requests

from services.config.env import get_cse_config
from services.config.logging import get_logger
from services.resolver.core import Catalog

"""
Colombo Stock Exchange public API (no key). Every endpoint is a POST.
Fetchers never raise for network faults; they return a FetchResult whose
status tells the caller what happened. Tests inject a fake session.
"""

logger = get_logger(__name__)

OK = "ok"
NOT_FOUND = "not_found"
TIMEOUT = "timeout"
API_ERROR = "api_error"
NETWORK_ERROR = "network_error"
BAD_PAYLOAD = "bad_payload"

STOCK_DATA = "homeCompanyData"
COMPANY_INFO = "companyInfoSummery"
TOP_GAINERS = "topGainers"
TOP_LOSERS = "topLooses"
MOST_ACTIVE = "mostActiveTrades"
MARKET_SUMMARY = "marketSummery"


@dataclass(frozen=True)
class FetchResult:
    status: str
    data: Any = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == OK


@dataclass(frozen=True)
class StockQuote:
    id: Optional[int]
    symbol: str
    company_name: str
    price: Optional[float]
    change: Optional[float]
    change_percentage: Optional[float]
    last_updated: str


@dataclass(frozen=True)
class CompanyInfo:
    symbol: Optional[str]
    company_name: Optional[str]
    last_traded_price: Optional[float] = None
    price_52_week_high: Optional[float] = None
    price_52_week_low: Optional[float] = None
    ytd_share_volume: Optional[float] = None
    ytd_turnover: Optional[float] = None
    market_cap: Optional[float] = None
    shares_issued: Optional[float] = None
    beta: Optional[float] = None
    last_updated: str = ""


@dataclass(frozen=True)
class PriceMove:
    symbol: str
    price: Optional[float]
    change: Optional[float]
    change_percentage: Optional[float]


@dataclass(frozen=True)
class ActiveTrade:
    symbol: str
    trade_volume: Optional[float]
    share_volume: Optional[float]
    turnover: Optional[float]


@dataclass(frozen=True)
class MarketSummary:
    trade_volume: Optional[float]
    share_volume: Optional[float]
    trade_date: Optional[str]  # ISO-8601 UTC


def build_url(endpoint: str) -> str:
    return f"{get_cse_config().base_url}/{endpoint}"


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _num(v: Any) -> Optional[float]:
    if v is None or isinstance(v, bool):
        return None
    try:
        return float(v)
    except (TypeError, ValueError):
        return None


def _epoch_ms_to_iso(v: Any) -> Optional[str]:
    if v in (None, ""):
        return None
    if isinstance(v, str):
        return v
    try:
        dt = datetime.fromtimestamp(float(v) / 1000.0, tz=timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError):
        return None
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _section(payload: Dict[str, Any], key: str) -> Dict[str, Any]:
    v = payload.get(key)
    return v if isinstance(v, dict) else {}


def parse_stock_data(payload: Dict[str, Any], company_name: str) -> StockQuote:
    raw_id = payload.get("id")
    return StockQuote(
        id=int(raw_id) if isinstance(raw_id, (int, float)) and not isinstance(raw_id, bool) else None,
        symbol=payload.get("symbol") or "",
        company_name=company_name,
        price=_num(payload.get("price")),
        change=_num(payload.get("change")),
        change_percentage=_num(payload.get("changePercentage")),
        last_updated=now_iso(),
    )


def parse_company_info(payload: Dict[str, Any]) -> CompanyInfo:
    info = _section(payload, "reqSymbolInfo")
    beta = _section(payload, "reqSymbolBetaInfo")
    return CompanyInfo(
        symbol=info.get("symbol"),
        company_name=info.get("name"),
        last_traded_price=_num(info.get("lastTradedPrice")),
        price_52_week_high=_num(info.get("p12HiPrice")),
        price_52_week_low=_num(info.get("p12LowPrice")),
        ytd_share_volume=_num(info.get("ytdShareVolume")),
        ytd_turnover=_num(info.get("ytdTurnover")),
        market_cap=_num(info.get("marketCap")),
        shares_issued=_num(info.get("sharesIssued")),
        beta=_num(beta.get("beta")),
        last_updated=now_iso(),
    )


def parse_price_moves(payload: Any) -> List[PriceMove]:
    out: List[PriceMove] = []
    for item in payload or []:
        if not isinstance(item, dict):
            continue
        out.append(PriceMove(
            symbol=item.get("symbol") or "",
            price=_num(item.get("price")),
            change=_num(item.get("change")),
            change_percentage=_num(item.get("changePercentage")),
        ))
    return out


def parse_most_active(payload: Any) -> List[ActiveTrade]:
    out: List[ActiveTrade] = []
    for item in payload or []:
        if not isinstance(item, dict):
            continue
        out.append(ActiveTrade(
            symbol=item.get("symbol") or "",
            trade_volume=_num(item.get("tradeVolume")),
            share_volume=_num(item.get("shareVolume")),
            turnover=_num(item.get("turnover")),
        ))
    return out


def parse_market_summary(payload: Dict[str, Any]) -> MarketSummary:
    payload = payload or {}
    return MarketSummary(
        trade_volume=_num(payload.get("tradeVolume")),
        share_volume=_num(payload.get("shareVolume")),
        trade_date=_epoch_ms_to_iso(payload.get("tradeDate")),
    )


def _post(endpoint: str, session: Any = None, **kwargs: Any) -> FetchResult:
    http = session if session is not None else requests
    url = build_url(endpoint)
    logger.debug("POST %s", url)
    try:
        r = http.post(url, timeout=get_cse_config().timeout, **kwargs)
        r.raise_for_status()
        return FetchResult(OK, r.json())
    except requests.Timeout:
        logger.warning("POST %s timed out", url)
        return FetchResult(TIMEOUT, error="Request timed out. Please try again.")
    except requests.HTTPError as e:
        resp = e.response
        code = resp.status_code if resp is not None else "unknown"
        reason = resp.reason if resp is not None else ""
        logger.warning("POST %s failed with HTTP %s", url, code)
        return FetchResult(API_ERROR, error=f"API error: {code} - {reason}")
    except (requests.RequestException, ValueError) as e:
        logger.warning("POST %s failed: %s", url, e)
        return FetchResult(NETWORK_ERROR, error=f"Network error: {e}")


def _expect(res: FetchResult, kind: type, endpoint: str) -> FetchResult:
    """Check the reply body shape; JSON null counts as an empty body."""
    if not res.ok:
        return res
    if res.data is None:
        return FetchResult(OK, kind())
    if not isinstance(res.data, kind):
        logger.warning("%s returned %s, expected %s", endpoint, type(res.data).__name__, kind.__name__)
        return FetchResult(BAD_PAYLOAD, error=f"Unexpected response from {endpoint}")
    return res


def _symbol_not_found(symbol: str) -> FetchResult:
    return FetchResult(
        NOT_FOUND,
        error=f"Symbol {symbol} not found. Please use search_company to find valid symbols.",
    )


def get_stock_data(catalog: Catalog, symbol: str, session: Any = None) -> FetchResult:
    company = catalog.find_symbol(symbol)
    if company is None:
        return _symbol_not_found(symbol)
    res = _expect(_post(STOCK_DATA, session, params={"symbol": symbol}, json={}), dict, STOCK_DATA)
    if not res.ok:
        return res
    return FetchResult(OK, parse_stock_data(res.data, company.name))


def get_company_info(catalog: Catalog, symbol: str, session: Any = None) -> FetchResult:
    if catalog.find_symbol(symbol) is None:
        return _symbol_not_found(symbol)
    res = _expect(_post(COMPANY_INFO, session, data={"symbol": symbol}), dict, COMPANY_INFO)
    if not res.ok:
        return res
    return FetchResult(OK, parse_company_info(res.data))


def get_top_gainers(session: Any = None) -> FetchResult:
    res = _expect(_post(TOP_GAINERS, session, json={}), list, TOP_GAINERS)
    return FetchResult(OK, parse_price_moves(res.data)) if res.ok else res


def get_top_losers(session: Any = None) -> FetchResult:
    res = _expect(_post(TOP_LOSERS, session, json={}), list, TOP_LOSERS)
    return FetchResult(OK, parse_price_moves(res.data)) if res.ok else res


def get_most_active(session: Any = None) -> FetchResult:
    res = _expect(_post(MOST_ACTIVE, session, json={}), list, MOST_ACTIVE)
    return FetchResult(OK, parse_most_active(res.data)) if res.ok else res


def get_market_summary(session: Any = None) -> FetchResult:
    res = _expect(_post(MARKET_SUMMARY, session, json={}), dict, MARKET_SUMMARY)
    return FetchResult(OK, parse_market_summary(res.data)) if res.ok else res
